"""
Incremental decoders for the compression containers found in kernel images.

Every decoder pulls from a file-like reader and yields decompressed blocks
as soon as they are available, so a caller looking for a marker string can
stop long before the end of a large payload. Any malformed or truncated
input raises DecompressionError.
"""
import bz2
import lzma
import zlib
import struct
import logging
from typing import BinaryIO, Iterator, Tuple

from ..models.kinds import CompressionFormat
from ..exceptions import DecompressionError

logger = logging.getLogger(__name__)

# Ordered magic table, matched as exact prefixes
COMPRESSION_MAGICS: Tuple[Tuple[CompressionFormat, bytes], ...] = (
    (CompressionFormat.GZIP, b'\x1f\x8b\x08'),
    (CompressionFormat.XZ, b'\xfd7zXZ\x00'),
    (CompressionFormat.BZIP2, b'BZh'),
    (CompressionFormat.LZMA, b'\x5d\x00\x00'),
    (CompressionFormat.LZO, b'\x89LZ'),
    (CompressionFormat.LZ4, b'\x02\x21\x4c\x18'),
    (CompressionFormat.ZSTD, b'\x28\xb5\x2f\xfd'),
)

MAX_MAGIC_LENGTH = max(len(magic) for _, magic in COMPRESSION_MAGICS)

# Input bytes handed to a decoder per step
READ_SIZE = 0x4000

# liblzma allocates the whole dictionary up front; garbage headers can ask
# for gigabytes
LZMA_MEMORY_LIMIT = 256 * 1024 * 1024

# Legacy LZ4 framing used by the kernel build
LZ4_LEGACY_MAGIC = 0x184C2102
LZ4_LEGACY_BLOCK_SIZE = 8 * 1024 * 1024
LZ4_LEGACY_MAX_COMPRESSED = LZ4_LEGACY_BLOCK_SIZE + LZ4_LEGACY_BLOCK_SIZE // 255 + 16

# lzop container
LZOP_MAGIC = b'\x89LZO\x00\r\n\x1a\n'
LZOP_MAX_BLOCK_SIZE = 64 * 1024 * 1024
LZOP_F_ADLER32_D = 0x00000001
LZOP_F_ADLER32_C = 0x00000002
LZOP_F_H_EXTRA_FIELD = 0x00000040
LZOP_F_CRC32_D = 0x00000100
LZOP_F_CRC32_C = 0x00000200
LZOP_F_H_FILTER = 0x00000800


def match_magic(data: bytes, offset: int = 0):
    """
    Return the compression format whose magic starts at ``offset``.

    Args:
        data: Buffer to inspect
        offset: Position of the candidate magic

    Returns:
        The matching CompressionFormat, or None
    """
    for fmt, magic in COMPRESSION_MAGICS:
        if data.startswith(magic, offset):
            return fmt
    return None


def iter_decompressed(fmt: CompressionFormat, reader: BinaryIO) -> Iterator[bytes]:
    """
    Decompress ``reader`` incrementally.

    The reader must be positioned on the first byte of the compressed
    stream and its ``read(n)`` must only return fewer than ``n`` bytes at
    end of stream (an ``io.BufferedReader`` satisfies this).

    Args:
        fmt: Compression format of the stream
        reader: Binary reader positioned at the magic

    Yields:
        Non-empty blocks of decompressed data

    Raises:
        DecompressionError: If the stream is invalid, truncated or its
            codec library is unavailable
    """
    if fmt == CompressionFormat.GZIP:
        decoder = zlib.decompressobj(16 + zlib.MAX_WBITS)
        return _iter_decompressor(decoder, reader, fmt)
    elif fmt == CompressionFormat.XZ:
        decoder = lzma.LZMADecompressor(format=lzma.FORMAT_XZ, memlimit=LZMA_MEMORY_LIMIT)
        return _iter_decompressor(decoder, reader, fmt)
    elif fmt == CompressionFormat.LZMA:
        decoder = lzma.LZMADecompressor(format=lzma.FORMAT_ALONE, memlimit=LZMA_MEMORY_LIMIT)
        return _iter_decompressor(decoder, reader, fmt)
    elif fmt == CompressionFormat.BZIP2:
        return _iter_decompressor(bz2.BZ2Decompressor(), reader, fmt)
    elif fmt == CompressionFormat.ZSTD:
        return _iter_zstd(reader)
    elif fmt == CompressionFormat.LZ4:
        return _iter_lz4_legacy(reader)
    elif fmt == CompressionFormat.LZO:
        return _iter_lzop(reader)

    raise DecompressionError(f"Unsupported compression format: {fmt}")


def _iter_decompressor(decoder, reader: BinaryIO, fmt: CompressionFormat) -> Iterator[bytes]:
    # zlib, lzma, bz2 and zstandard decompression objects share this shape
    while True:
        data = reader.read(READ_SIZE)
        if not data:
            if not decoder.eof:
                raise DecompressionError(f"Truncated {fmt.value} stream")
            return

        try:
            block = decoder.decompress(data)
        except (zlib.error, lzma.LZMAError, OSError, EOFError, ValueError, MemoryError) as e:
            raise DecompressionError(f"Invalid {fmt.value} stream: {e}") from e

        if block:
            yield block

        if decoder.eof:
            return


def _iter_zstd(reader: BinaryIO) -> Iterator[bytes]:
    try:
        import zstandard
    except ImportError:
        logger.warning("zstandard library not available, cannot decode zstd streams")
        raise DecompressionError("zstd support requires the zstandard package")

    decoder = zstandard.ZstdDecompressor().decompressobj()
    try:
        yield from _iter_decompressor(decoder, reader, CompressionFormat.ZSTD)
    except zstandard.ZstdError as e:
        raise DecompressionError(f"Invalid zstd stream: {e}") from e


def _read_exact(reader: BinaryIO, size: int, what: str) -> bytes:
    data = reader.read(size)
    if len(data) != size:
        raise DecompressionError(f"Truncated stream while reading {what}")
    return data


def _read_u32(reader: BinaryIO, fmt: str, what: str) -> int:
    return struct.unpack(fmt, _read_exact(reader, 4, what))[0]


def _iter_lz4_legacy(reader: BinaryIO) -> Iterator[bytes]:
    try:
        import lz4.block
    except ImportError:
        logger.warning("lz4 library not available, cannot decode lz4 streams")
        raise DecompressionError("lz4 support requires the lz4 package")

    if _read_u32(reader, '<I', "lz4 magic") != LZ4_LEGACY_MAGIC:
        raise DecompressionError("Not a legacy lz4 stream")

    produced = False
    while True:
        header = reader.read(4)
        if len(header) < 4:
            if produced:
                return
            raise DecompressionError("Truncated lz4 stream")

        size = struct.unpack('<I', header)[0]
        if size == LZ4_LEGACY_MAGIC:
            # Concatenated frame
            continue

        if size == 0 or size > LZ4_LEGACY_MAX_COMPRESSED:
            # The kernel appends the uncompressed size after the last block
            if produced:
                return
            raise DecompressionError(f"Invalid lz4 block size {size}")

        block = reader.read(size)
        if len(block) != size:
            if produced:
                # Trailing size word that happened to look like a block length
                return
            raise DecompressionError("Truncated stream while reading lz4 block")

        try:
            data = lz4.block.decompress(block, uncompressed_size=LZ4_LEGACY_BLOCK_SIZE)
        except lz4.block.LZ4BlockError as e:
            raise DecompressionError(f"Invalid lz4 block: {e}") from e

        produced = True
        if data:
            yield data


def _read_lzop_header(reader: BinaryIO) -> int:
    """Consume an lzop file header and return its flags."""
    if _read_exact(reader, len(LZOP_MAGIC), "lzop magic") != LZOP_MAGIC:
        raise DecompressionError("Not an lzop stream")

    version, _lib_version = struct.unpack('>HH', _read_exact(reader, 4, "lzop version"))
    if version >= 0x0940:
        _read_exact(reader, 2, "lzop version needed")

    method = _read_exact(reader, 1, "lzop method")[0]
    if method not in (1, 2, 3):
        raise DecompressionError(f"Unsupported lzop method {method}")

    if version >= 0x0940:
        _read_exact(reader, 1, "lzop level")

    flags = _read_u32(reader, '>I', "lzop flags")
    if flags & LZOP_F_H_FILTER:
        _read_exact(reader, 4, "lzop filter")

    # mode, mtime_low and, for newer versions, mtime_high
    _read_exact(reader, 12 if version >= 0x0940 else 8, "lzop mode/mtime")

    name_length = _read_exact(reader, 1, "lzop name length")[0]
    _read_exact(reader, name_length + 4, "lzop name and header checksum")

    if flags & LZOP_F_H_EXTRA_FIELD:
        extra_length = _read_u32(reader, '>I', "lzop extra field length")
        _read_exact(reader, extra_length + 4, "lzop extra field")

    return flags


def _iter_lzop(reader: BinaryIO) -> Iterator[bytes]:
    try:
        import lzo
    except ImportError:
        logger.warning("python-lzo library not available, cannot decode lzo streams")
        raise DecompressionError("lzo support requires the python-lzo package")

    flags = _read_lzop_header(reader)

    while True:
        dst_len = _read_u32(reader, '>I', "lzop block length")
        if dst_len == 0:
            return
        if dst_len > LZOP_MAX_BLOCK_SIZE:
            raise DecompressionError(f"Invalid lzop block length {dst_len}")

        src_len = _read_u32(reader, '>I', "lzop compressed block length")
        if src_len == 0 or src_len > dst_len:
            raise DecompressionError(f"Invalid lzop compressed block length {src_len}")

        checksums = bool(flags & LZOP_F_ADLER32_D) + bool(flags & LZOP_F_CRC32_D)
        if src_len < dst_len:
            checksums += bool(flags & LZOP_F_ADLER32_C) + bool(flags & LZOP_F_CRC32_C)
        if checksums:
            _read_exact(reader, 4 * checksums, "lzop block checksums")

        block = _read_exact(reader, src_len, "lzop block")
        if src_len == dst_len:
            # Stored uncompressed
            yield block
            continue

        try:
            data = lzo.decompress(block, False, dst_len)
        except lzo.error as e:
            raise DecompressionError(f"Invalid lzo block: {e}") from e

        yield data
