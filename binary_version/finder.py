from __future__ import annotations
import asyncio
import logging
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

from .config import FinderConfig
from .models.info import VersionInfo
from .models.kinds import BinaryKind
from .matchers import BaseMatcher, UBootMatcher, LinuxKernelMatcher, CustomPatternMatcher
from .utils.async_bridge import AsyncStreamBridge, is_async_stream
from .exceptions import BinaryVersionError, UnsupportedKindError, InvalidConfigurationError

Pattern = Union[str, bytes]


class BinaryVersionFinder:
    """
    Finds the version string of firmware and kernel binaries.

    The finder selects a matcher from the requested BinaryKind (or an
    explicit pattern) and runs it over an already open, seekable byte
    stream. ``version`` and ``version_with_pattern`` return None for every
    failure; ``lookup`` and ``lookup_with_pattern`` raise the underlying
    BinaryVersionError instead, for callers that need the cause.

    A call assumes exclusive use of the stream cursor and leaves it at an
    unspecified position.

    Attributes:
        config (FinderConfig): Configuration for the matchers.
    """

    def __init__(self, config: Optional[FinderConfig] = None):
        """
        Initialize the BinaryVersionFinder.

        Args:
            config: Configuration for the finder
        """
        self.config = config or FinderConfig()
        self.logger = logging.getLogger(__name__)

    def _matcher_for_kind(self, kind: BinaryKind) -> BaseMatcher:
        if kind == BinaryKind.UBOOT:
            return UBootMatcher(self.config)
        elif kind == BinaryKind.LINUX_KERNEL:
            return LinuxKernelMatcher(self.config)

        raise UnsupportedKindError(f"Unsupported binary kind: {kind!r}")

    def lookup(self, stream: BinaryIO, kind: BinaryKind) -> VersionInfo:
        """
        Locate the version of a binary of the given kind.

        Args:
            stream: Seekable binary stream
            kind: Binary family to look for

        Returns:
            VersionInfo for the version found

        Raises:
            BinaryVersionError: Describing why no version was found
            OSError: If the stream fails in a way the matchers do not wrap
        """
        return self._matcher_for_kind(kind).locate(stream)

    def lookup_with_pattern(
            self,
            stream: BinaryIO,
            pattern: Pattern,
            strategy: Optional[str] = None
    ) -> VersionInfo:
        """
        Locate a version using a caller-supplied regular expression.

        Args:
            stream: Readable binary stream, read to the end
            pattern: Regular expression whose first group is the version
            strategy: 'buffer' or 'strings' (defaults to config value)

        Returns:
            VersionInfo for the version found

        Raises:
            BinaryVersionError: Describing why no version was found
        """
        matcher = CustomPatternMatcher(pattern, self.config, strategy=strategy)
        return matcher.locate(stream)

    def version(self, stream: BinaryIO, kind: BinaryKind) -> Optional[str]:
        """
        Get the version of a binary of the given kind.

        Args:
            stream: Seekable binary stream
            kind: Binary family to look for

        Returns:
            The version string, or None if it could not be determined
        """
        try:
            return self.lookup(stream, kind).version
        except (BinaryVersionError, OSError) as e:
            self.logger.debug(f"No {kind} version: {e.__class__.__name__}: {e}")
            return None

    def version_with_pattern(
            self,
            stream: BinaryIO,
            pattern: Pattern,
            strategy: Optional[str] = None
    ) -> Optional[str]:
        """
        Get a version using a caller-supplied regular expression.

        Args:
            stream: Readable binary stream, read to the end
            pattern: Regular expression whose first group is the version
            strategy: 'buffer' or 'strings' (defaults to config value)

        Returns:
            The version string, or None if the pattern did not match
        """
        try:
            return self.lookup_with_pattern(stream, pattern, strategy=strategy).version
        except (BinaryVersionError, OSError) as e:
            self.logger.debug(f"No version for pattern {pattern!r}: {e.__class__.__name__}: {e}")
            return None

    async def version_async(self, stream: Any, kind: BinaryKind) -> Optional[str]:
        """
        Asynchronously get the version of a binary of the given kind.

        ``stream`` may be a regular binary stream or one whose ``read``,
        ``seek`` and ``tell`` are coroutines. The lookup runs in the default
        executor; with an asynchronous stream every stream call is awaited
        on the running loop.

        Args:
            stream: Seekable binary stream, synchronous or asynchronous
            kind: Binary family to look for

        Returns:
            The version string, or None if it could not be determined
        """
        loop = asyncio.get_running_loop()
        source = AsyncStreamBridge(stream, loop) if is_async_stream(stream) else stream
        return await loop.run_in_executor(None, self.version, source, kind)

    async def version_with_pattern_async(
            self,
            stream: Any,
            pattern: Pattern,
            strategy: Optional[str] = None
    ) -> Optional[str]:
        """
        Asynchronously get a version using a caller-supplied pattern.

        See version_async for the handling of ``stream``.
        """
        loop = asyncio.get_running_loop()
        source = AsyncStreamBridge(stream, loop) if is_async_stream(stream) else stream
        return await loop.run_in_executor(
            None, self.version_with_pattern, source, pattern, strategy
        )

    def version_from_file(
            self,
            path: Union[str, Path],
            kind: Optional[BinaryKind] = None,
            pattern: Optional[Pattern] = None
    ) -> Optional[str]:
        """
        Get the version of a binary file.

        With a pattern the custom matcher is used, with a kind that kind
        only. Without either, U-Boot is tried first and then Linux kernel.

        Args:
            path: Path to the binary
            kind: Binary family to look for
            pattern: Regular expression whose first group is the version

        Returns:
            The version string, or None if it could not be determined

        Raises:
            OSError: If the file cannot be opened
            InvalidConfigurationError: If both kind and pattern are given
        """
        if kind is not None and pattern is not None:
            raise InvalidConfigurationError("Pass either a kind or a pattern, not both")

        with open(path, 'rb') as stream:
            if pattern is not None:
                return self.version_with_pattern(stream, pattern)

            if kind is not None:
                return self.version(stream, kind)

            for candidate in (BinaryKind.UBOOT, BinaryKind.LINUX_KERNEL):
                stream.seek(0)
                found = self.version(stream, candidate)
                if found is not None:
                    self.logger.debug(f"{path} matched as {candidate.value}")
                    return found

        return None

    def __enter__(self) -> 'BinaryVersionFinder':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        # Matchers hold no state beyond a single call
        pass


def version(stream: BinaryIO, kind: BinaryKind, config: Optional[FinderConfig] = None) -> Optional[str]:
    """Get the version of a binary of the given kind."""
    return BinaryVersionFinder(config).version(stream, kind)


def version_with_pattern(
        stream: BinaryIO,
        pattern: Pattern,
        config: Optional[FinderConfig] = None,
        strategy: Optional[str] = None
) -> Optional[str]:
    """Get a version using a caller-supplied regular expression."""
    return BinaryVersionFinder(config).version_with_pattern(stream, pattern, strategy=strategy)


async def version_async(stream: Any, kind: BinaryKind, config: Optional[FinderConfig] = None) -> Optional[str]:
    """Asynchronously get the version of a binary of the given kind."""
    return await BinaryVersionFinder(config).version_async(stream, kind)


async def version_with_pattern_async(
        stream: Any,
        pattern: Pattern,
        config: Optional[FinderConfig] = None,
        strategy: Optional[str] = None
) -> Optional[str]:
    """Asynchronously get a version using a caller-supplied regular expression."""
    return await BinaryVersionFinder(config).version_with_pattern_async(stream, pattern, strategy=strategy)


def version_from_file(
        path: Union[str, Path],
        kind: Optional[BinaryKind] = None,
        pattern: Optional[Pattern] = None,
        config: Optional[FinderConfig] = None
) -> Optional[str]:
    """Get the version of a binary file, trying U-Boot then Linux kernel by default."""
    return BinaryVersionFinder(config).version_from_file(path, kind=kind, pattern=pattern)
