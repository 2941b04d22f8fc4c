"""
Helpers for reading fixed-layout fields from seekable byte streams.

Offsets handed to these helpers are absolute from the start of the stream.
"""
import io
import struct
import logging
from typing import BinaryIO

from ..exceptions import StreamAccessError

logger = logging.getLogger(__name__)


def read_exact(stream: BinaryIO, size: int) -> bytes:
    """
    Read exactly ``size`` bytes from the current position.

    Args:
        stream: Readable binary stream
        size: Number of bytes to read

    Returns:
        The bytes read

    Raises:
        StreamAccessError: On an I/O error or a short read
    """
    try:
        data = stream.read(size)
    except (OSError, ValueError) as e:
        raise StreamAccessError(f"Read of {size} bytes failed: {e}") from e

    if data is None or len(data) != size:
        got = 0 if data is None else len(data)
        raise StreamAccessError(f"Short read: wanted {size} bytes, got {got}")

    return data


def read_chunk(stream: BinaryIO, size: int) -> bytes:
    """
    Read up to ``size`` bytes; an empty result means end of stream.

    Raises:
        StreamAccessError: On an I/O error
    """
    try:
        data = stream.read(size)
    except (OSError, ValueError) as e:
        raise StreamAccessError(f"Read of {size} bytes failed: {e}") from e

    return data or b''


def seek_to(stream: BinaryIO, offset: int) -> None:
    """Seek to an absolute offset, raising StreamAccessError on failure."""
    try:
        stream.seek(offset, io.SEEK_SET)
    except (OSError, ValueError) as e:
        raise StreamAccessError(f"Seek to 0x{offset:04X} failed: {e}") from e


def tell(stream: BinaryIO) -> int:
    """Return the current stream position, raising StreamAccessError on failure."""
    try:
        return stream.tell()
    except (OSError, ValueError) as e:
        raise StreamAccessError(f"Unable to query stream position: {e}") from e


class FixedFieldReader:
    """
    Reads unsigned integers at absolute offsets of a seekable stream.

    Every accessor seeks before reading, so the result does not depend on
    where the previous read left the cursor.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def _read(self, offset: int, fmt: str) -> int:
        seek_to(self.stream, offset)
        data = read_exact(self.stream, struct.calcsize(fmt))
        return struct.unpack(fmt, data)[0]

    def read_u8(self, offset: int) -> int:
        return self._read(offset, '<B')

    def read_u16_le(self, offset: int) -> int:
        return self._read(offset, '<H')

    def read_u16_be(self, offset: int) -> int:
        return self._read(offset, '>H')

    def read_u32_le(self, offset: int) -> int:
        return self._read(offset, '<I')

    def read_u32_be(self, offset: int) -> int:
        return self._read(offset, '>I')

    def read_block(self, offset: int, size: int) -> bytes:
        """
        Read up to ``size`` bytes starting at ``offset``.

        A block shorter than requested is returned as is, the way a single
        ``read`` call behaves near the end of a file.
        """
        seek_to(self.stream, offset)
        return read_chunk(self.stream, size)


class ChainedReader(io.RawIOBase):
    """
    Read-only stream yielding ``prefix`` first, then the rest of ``stream``.

    The embedded stream scanner uses it to hand a decoder the tail of the
    current window followed by everything after it, without rewinding the
    underlying stream.
    """

    def __init__(self, prefix: bytes, stream: BinaryIO):
        super().__init__()
        self._prefix = memoryview(bytes(prefix))
        self._stream = stream

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        want = len(buffer)
        if want == 0:
            return 0

        if self._prefix:
            count = min(want, len(self._prefix))
            buffer[:count] = self._prefix[:count]
            self._prefix = self._prefix[count:]
            return count

        data = read_chunk(self._stream, want)
        buffer[:len(data)] = data
        return len(data)
