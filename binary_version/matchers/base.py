# binary_version/matchers/base.py
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional
import logging

from ..config import FinderConfig
from ..exceptions import BinaryVersionError
from ..models.info import VersionInfo


class BaseMatcher(ABC):
    """Base class for all version matchers."""

    # Short name reported in VersionInfo.matcher
    name = "base"

    def __init__(self, config: Optional[FinderConfig] = None):
        """
        Initialize the matcher.

        Args:
            config: Configuration shared by the matchers of one lookup
        """
        self.config = config or FinderConfig()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def locate(self, stream: BinaryIO) -> VersionInfo:
        """
        Locate the version string in a byte stream.

        Args:
            stream: Seekable binary stream, owned by the matcher for the call

        Returns:
            VersionInfo describing the version found

        Raises:
            BinaryVersionError: Describing why no version could be produced
        """
        pass

    def find(self, stream: BinaryIO) -> Optional[str]:
        """
        Attempt to produce a version string from a byte stream.

        Args:
            stream: Seekable binary stream

        Returns:
            The version string, or None if it could not be located
        """
        try:
            return self.locate(stream).version
        except (BinaryVersionError, OSError) as e:
            self.logger.debug(f"No version found: {e.__class__.__name__}: {e}")
            return None
