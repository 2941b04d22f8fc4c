import re
import logging
from typing import Union, Optional, Pattern

from ..exceptions import PatternNotFoundError, InvalidEncodingError, InvalidPatternError

logger = logging.getLogger(__name__)

# Version token: digits, an optional separator, a dot, then anything up to
# whitespace or NUL
KERNEL_VERSION_PATTERN = rb'(\d+.?\.[^\s\x00]+)'

# U-Boot banner, e.g. "U-Boot SPL 2019.04 (01/04/2019)"
UBOOT_VERSION_PATTERN = rb'U-Boot(?: SPL)? (\d+.?\.[^\s\x00]+)(?: \([^)]*\))?'

# Banner found in the decompressed kernel payload
LINUX_BANNER_PATTERN = rb'Linux version (\S+)'

# C0 controls (NUL excluded) and DEL
CONTROL_CHARACTERS = re.compile(r"[\x01-\x1f\x7f]")


class VersionPattern:
    """
    Returns the first captured version token of a regular expression.

    Only the form of the pattern that a search needs is compiled. A text
    pattern searches text directly, and raw bytes through their UTF-8 view
    (undecodable bytes stand in as lone surrogates and never survive
    ``decode_version``). A bytes pattern searches bytes directly, and text
    through a latin-1 rendition of the pattern, one character per byte.
    Captures are returned as strict UTF-8 text.
    """

    def __init__(self, pattern: Union[str, bytes]):
        self.pattern = pattern
        self._text_regex: Optional[Pattern] = None
        self._bytes_regex: Optional[Pattern] = None

        # The native form is always needed, so a bad pattern fails here
        if isinstance(pattern, bytes):
            self._bytes_regex = self._compile(pattern)
        else:
            self._text_regex = self._compile(pattern)

    def __repr__(self) -> str:
        return f"VersionPattern({self.pattern!r})"

    def _compile(self, pattern: Union[str, bytes]) -> Pattern:
        try:
            return re.compile(pattern)
        except re.error as e:
            raise InvalidPatternError(f"Invalid version pattern {self.pattern!r}: {e}") from e

    @property
    def text_regex(self) -> Pattern:
        """The pattern compiled for text input."""
        if self._text_regex is None:
            self._text_regex = self._compile(self.pattern.decode('latin-1'))
        return self._text_regex

    def search(self, data: Union[bytes, bytearray, memoryview, str]):
        """Return the raw regex match on ``data`` or None."""
        if isinstance(data, str):
            return self.text_regex.search(data)
        if self._bytes_regex is None:
            return self._text_regex.search(bytes(data).decode('utf-8', 'surrogateescape'))
        return self._bytes_regex.search(data)

    def first_capture(self, data: Union[bytes, bytearray, memoryview, str], c_string: bool = False) -> str:
        """
        Apply the pattern and return the first capture group.

        A pattern without groups yields the whole match.

        Args:
            data: Bytes or text to search
            c_string: Treat the capture as a C string: it ends at its first
                NUL and must not contain other control characters

        Raises:
            PatternNotFoundError: If the pattern does not match
            InvalidEncodingError: If the captured bytes are not valid UTF-8,
                or a C string capture holds control characters
        """
        match = self.search(data)
        if match is None:
            raise PatternNotFoundError(f"{self!r} did not match")

        value = match.group(1) if match.re.groups else match.group(0)
        if value is None:
            raise PatternNotFoundError(f"{self!r} matched without capturing a version")

        if c_string:
            value = value.split(b'\x00' if isinstance(value, bytes) else '\x00', 1)[0]
            if not value:
                raise PatternNotFoundError(f"{self!r} captured an empty string")

        version = decode_version(value)
        if c_string and CONTROL_CHARACTERS.search(version):
            raise InvalidEncodingError(f"Version {version!r} contains control characters")

        return version

    def find(self, data: Union[bytes, bytearray, memoryview, str]) -> Optional[str]:
        """Like first_capture, but returns None instead of raising."""
        try:
            return self.first_capture(data)
        except (PatternNotFoundError, InvalidEncodingError) as e:
            logger.debug(str(e))
            return None


def decode_version(value: Union[bytes, str]) -> str:
    """
    Decode a captured version token as strict UTF-8.

    Raises:
        InvalidEncodingError: If the bytes are not valid UTF-8
    """
    try:
        if isinstance(value, str):
            # Undecodable input bytes show up as lone surrogates
            value.encode('utf-8')
            return value
        return bytes(value).decode('utf-8')
    except UnicodeError as e:
        raise InvalidEncodingError(f"Version bytes are not valid UTF-8: {e}") from e
