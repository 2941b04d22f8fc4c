"""
Common fixtures and utilities for testing the binary_version library.

The images built here are synthetic: only the bytes the matchers look at
are laid out as in real images, everything else is zero padding.
"""
import bz2
import gzip
import io
import lzma
import struct

import numpy as np
import pytest


X86_VERSION = b"4.1.30-1-MANJARO (builduser@foutrelis) #1 SMP PREEMPT Tue Aug 16 19:31:51 CEST 2016"
UIMAGE_NAME = b"Linux-4.1.15-1.2.0+g274a055"
ARM_BANNER = b"Linux version 4.4.1 (otavio@ossystems) (gcc version 5.2.0 (GCC) ) #1 SMP PREEMPT\n"


def build_x86_image(
        version=X86_VERSION,
        setup_sects=15,
        kernel_version_ptr=0x1C00,
        loadflags=0x01,
        boot_flag=0xAA55
):
    """
    Build an x86 boot sector and setup area.

    Args:
        version: Bytes stored at kernel_version_ptr + 0x200
        setup_sects: Value of the setup_sects field
        kernel_version_ptr: Value of the kernel_version field
        loadflags: Value of the loadflags field (bit 0 selects bzImage)
        boot_flag: Value of the boot_flag field

    Returns:
        The image bytes
    """
    size = max(kernel_version_ptr + 0x200 + len(version) + 0x40, 0x400)
    image = bytearray(size)
    image[0x1F1] = setup_sects
    struct.pack_into('<H', image, 0x1FE, boot_flag)
    struct.pack_into('<H', image, 0x20E, kernel_version_ptr)
    image[0x211] = loadflags
    start = kernel_version_ptr + 0x200
    image[start:start + len(version)] = version
    return bytes(image)


def build_uimage(name=UIMAGE_NAME, payload=b'\x00' * 0x400):
    """Build a legacy U-Boot image: 64-byte header followed by the payload."""
    header = bytearray(64)
    struct.pack_into('>I', header, 0, 0x27051956)
    header[32:32 + len(name)] = name
    return bytes(header) + payload


def compress_payload(fmt, data):
    """
    Compress ``data`` the way the kernel build does for ``fmt``.

    Skips the calling test when the codec library is not installed.
    """
    if fmt == 'gzip':
        return gzip.compress(data, mtime=0)
    elif fmt == 'xz':
        return lzma.compress(data, format=lzma.FORMAT_XZ)
    elif fmt == 'lzma':
        return lzma.compress(data, format=lzma.FORMAT_ALONE)
    elif fmt == 'bzip2':
        return bz2.compress(data)
    elif fmt == 'zstd':
        zstandard = pytest.importorskip("zstandard")
        return zstandard.ZstdCompressor().compress(data)
    elif fmt == 'lz4':
        lz4_block = pytest.importorskip("lz4.block")
        out = struct.pack('<I', 0x184C2102)
        block_size = 8 * 1024 * 1024
        for start in range(0, len(data), block_size):
            block = lz4_block.compress(data[start:start + block_size], store_size=False)
            out += struct.pack('<I', len(block)) + block
        # The kernel appends the uncompressed size
        return out + struct.pack('<I', len(data))
    elif fmt == 'lzo':
        lzo = pytest.importorskip("lzo")
        block = lzo.compress(data, 1, False)
        header = b'\x89LZO\x00\r\n\x1a\n'
        header += struct.pack('>HHBI', 0x1030, 0x2080, 1, 0)  # version, lib version, method, flags
        header += struct.pack('>II', 0o100644, 0)  # mode, mtime
        header += b'\x00' + struct.pack('>I', 0)  # empty name, header checksum
        if len(block) < len(data):
            body = struct.pack('>II', len(data), len(block)) + block
        else:
            body = struct.pack('>II', len(data), len(data)) + data
        return header + body + struct.pack('>I', 0)

    raise ValueError(f"Unknown compression format: {fmt}")


def build_kernel_payload(banner=ARM_BANNER, lead=0x800):
    """Decompressed kernel stand-in with the banner after some code."""
    return b'\x00' * lead + banner + b'\x00' * 0x400


def build_arm_zimage(compressed, stub_size=0x300, decoys=b''):
    """
    Build an ARM zImage: decompressor stub with the magic at 0x24,
    optional decoy bytes, then the compressed payload.
    """
    stub = bytearray(stub_size)
    struct.pack_into('<I', stub, 0x24, 0x016F2818)
    return bytes(stub) + decoys + compressed


def build_uboot_image(banner=b"U-Boot 2019.04 (01/04/2019)", offset=0x100, size=0x1000):
    """U-Boot binary with its banner at ``offset`` surrounded by NULs."""
    image = bytearray(size)
    image[offset:offset + len(banner)] = banner
    return bytes(image)


@pytest.fixture
def x86_bzimage():
    """x86 bzImage stand-in."""
    return build_x86_image(loadflags=0x01)


@pytest.fixture
def x86_zimage():
    """x86 zImage stand-in."""
    return build_x86_image(loadflags=0x00)


@pytest.fixture
def uimage():
    """ARM uImage stand-in."""
    return build_uimage()


@pytest.fixture
def arm_zimage():
    """ARM zImage with a gzip-compressed payload."""
    return build_arm_zimage(compress_payload('gzip', build_kernel_payload()))


@pytest.fixture
def garbage():
    """
    Random bytes that carry none of the signatures the matchers look for.

    Yields:
        The bytes
    """
    rng = np.random.default_rng(20190404)
    data = bytearray(rng.integers(0, 256, size=0x4000, dtype=np.uint8).tobytes())
    data[0x0:0x4] = b'\x00' * 4
    data[0x24:0x28] = b'\x00' * 4
    data[0x1FE:0x200] = b'\x00' * 2
    return bytes(data)


@pytest.fixture
def stream_of():
    """Factory fixture wrapping bytes into a fresh seekable stream."""
    def make(data):
        return io.BytesIO(data)
    return make


@pytest.fixture
def make_x86_image():
    """Factory fixture for x86 boot images, see build_x86_image."""
    return build_x86_image


@pytest.fixture
def make_uimage():
    """Factory fixture for legacy U-Boot images."""
    return build_uimage


@pytest.fixture
def make_kernel_payload():
    """Factory fixture for decompressed kernel stand-ins."""
    return build_kernel_payload


@pytest.fixture
def make_arm_zimage():
    """Factory fixture wrapping a compressed payload into an ARM zImage."""
    return build_arm_zimage


@pytest.fixture
def make_uboot_image():
    """Factory fixture for U-Boot binaries with a banner."""
    return build_uboot_image


@pytest.fixture
def compress():
    """
    Factory fixture compressing data in a kernel compression format.

    Usage: ``compress('xz', data)``; skips the test when the codec library
    is not installed.
    """
    return compress_payload
