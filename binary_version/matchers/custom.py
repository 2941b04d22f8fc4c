import io
from typing import BinaryIO, Optional, Union

from ..models.info import VersionInfo
from ..exceptions import PatternNotFoundError, InvalidConfigurationError
from ..utils.patterns import VersionPattern
from ..utils.stream_utils import read_chunk
from ..utils.strings import PrintableRunScanner
from .base import BaseMatcher


class CustomPatternMatcher(BaseMatcher):
    """
    Matcher driven by a caller-supplied regular expression.

    The whole stream is read into memory. With the ``buffer`` strategy the
    pattern runs over the raw bytes and the capture is read as a C string,
    ending at its first NUL. With ``strings`` it runs over each printable
    run and the first matching run wins. The first capture group is the
    version.
    """

    name = "custom"

    def __init__(self, pattern: Union[str, bytes], config=None, strategy: Optional[str] = None):
        super().__init__(config)
        self.strategy = strategy or self.config.custom_strategy
        if self.strategy not in ('buffer', 'strings'):
            raise InvalidConfigurationError(f"Invalid custom pattern strategy: {self.strategy}")

        # Compiled lazily so that an invalid pattern is reported by locate()
        self.raw_pattern = pattern

    def locate(self, stream: BinaryIO) -> VersionInfo:
        pattern = VersionPattern(self.raw_pattern)
        buffer = read_chunk(stream, -1)

        if self.strategy == 'strings':
            version = self._search_runs(pattern, buffer)
        else:
            # Binary buffers hold C strings; a capture ends at its NUL
            version = pattern.first_capture(buffer, c_string=True)

        return VersionInfo(version=version, matcher=self.name)

    def _search_runs(self, pattern: VersionPattern, buffer: bytes) -> str:
        runs = PrintableRunScanner(
            io.BytesIO(buffer),
            min_length=self.config.min_run_length,
            chunk_size=self.config.chunk_size
        )
        for run in runs:
            if pattern.search(run):
                return pattern.first_capture(run)

        raise PatternNotFoundError(f"{pattern!r} matched no printable string")
