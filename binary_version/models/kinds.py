# binary_version/models/kinds.py
from enum import Enum


class BinaryKind(Enum):
    """
    Top-level binary format hint supplied by the caller.

    Used to select which matcher looks for the version string.
    """
    UBOOT = "uboot"
    LINUX_KERNEL = "linux_kernel"


class LinuxKernelSubKind(Enum):
    """
    Linux kernel image layouts, determined only by checking the stream.
    """
    UIMAGE = "uImage"  # U-Boot legacy image header
    ARM_ZIMAGE = "arm-zImage"  # ARM self-decompressing image
    X86_BZIMAGE = "x86-bzImage"  # x86 boot protocol, loaded high
    X86_ZIMAGE = "x86-zImage"  # x86 boot protocol, loaded low


class CompressionFormat(Enum):
    """Compression containers the kernel build can append to an ARM zImage stub."""
    GZIP = "gzip"
    XZ = "xz"
    BZIP2 = "bzip2"
    LZMA = "lzma"
    LZO = "lzo"
    LZ4 = "lz4"
    ZSTD = "zstd"
