from typing import BinaryIO, Optional
import logging

from ..models.info import VersionInfo
from ..models.kinds import BinaryKind, LinuxKernelSubKind
from ..exceptions import UnrecognizedFormatError, FieldRangeError, StreamAccessError
from ..utils.patterns import VersionPattern, KERNEL_VERSION_PATTERN
from ..utils.stream_utils import FixedFieldReader
from .base import BaseMatcher
from .embedded import EmbeddedStreamScanner

logger = logging.getLogger(__name__)

# U-Boot legacy image magic, big endian at offset 0
UIMAGE_MAGIC_NUMBER = 0x27051956
UIMAGE_MAGIC_OFFSET = 0x0000

# ARM zImage magic, little endian at offset 0x24
ARM_ZIMAGE_MAGIC_NUMBER = 0x016F2818
ARM_ZIMAGE_MAGIC_OFFSET = 0x0024

# x86 boot protocol header, Documentation/x86/boot.rst
#
# Offset/Size  Proto  Name            Meaning
# 01F1/1       ALL    setup_sects     The size of the setup in sectors
# 01FE/2       ALL    boot_flag       0xAA55 magic number
# 020E/2       2.00+  kernel_version  Pointer to kernel version string
# 0211/1       2.00+  loadflags       Boot protocol option flags
X86_SETUP_SECTS_OFFSET = 0x01F1
X86_BOOT_FLAG_OFFSET = 0x01FE
X86_BOOT_FLAG = 0xAA55
X86_KERNEL_VERSION_OFFSET = 0x020E
X86_LOADFLAGS_OFFSET = 0x0211
X86_LOADED_HIGH = 0x01

SECTOR_SIZE = 0x200

# Bytes examined for the version token
VERSION_BLOCK_SIZE = 0x200


class ImageKindDetector:
    """
    Classifies a Linux kernel image by checking magic numbers.

    The checks run in a fixed order (uImage, ARM zImage, x86 boot flag) and
    the first match decides the kind.
    """

    def __init__(self, stream: BinaryIO):
        self.fields = FixedFieldReader(stream)

    def identify(self) -> LinuxKernelSubKind:
        """
        Determine the image kind.

        Returns:
            The detected LinuxKernelSubKind

        Raises:
            UnrecognizedFormatError: If no signature matches
            StreamAccessError: If a check cannot seek or read
        """
        if self.fields.read_u32_be(UIMAGE_MAGIC_OFFSET) == UIMAGE_MAGIC_NUMBER:
            return LinuxKernelSubKind.UIMAGE

        if self.fields.read_u32_le(ARM_ZIMAGE_MAGIC_OFFSET) == ARM_ZIMAGE_MAGIC_NUMBER:
            return LinuxKernelSubKind.ARM_ZIMAGE

        boot_flag = self.fields.read_u16_le(X86_BOOT_FLAG_OFFSET)
        if boot_flag != X86_BOOT_FLAG:
            raise UnrecognizedFormatError(f"Bad x86 boot flag 0x{boot_flag:04X}")

        # loadflags bit 0 (LOADED_HIGH): protected-mode code loaded at
        # 0x100000 for bzImage, 0x10000 for zImage
        if self.fields.read_u8(X86_LOADFLAGS_OFFSET) & X86_LOADED_HIGH:
            return LinuxKernelSubKind.X86_BZIMAGE
        return LinuxKernelSubKind.X86_ZIMAGE

    def detect(self) -> Optional[LinuxKernelSubKind]:
        """Like identify, but returns None when the kind cannot be determined."""
        try:
            return self.identify()
        except (UnrecognizedFormatError, StreamAccessError) as e:
            logger.debug(f"Unable to detect kernel image kind: {e}")
            return None


class LinuxKernelMatcher(BaseMatcher):
    """
    Matcher for Linux kernel images.

    Supports U-Boot uImage, ARM zImage and x86 zImage/bzImage. Once a kind
    is detected its extraction either succeeds or the lookup fails; other
    kinds are not tried.
    """

    name = "linux_kernel"

    def __init__(self, config=None):
        super().__init__(config)
        self.pattern = VersionPattern(KERNEL_VERSION_PATTERN)

    def locate(self, stream: BinaryIO) -> VersionInfo:
        sub_kind = ImageKindDetector(stream).identify()
        self.logger.debug(f"Detected {sub_kind.value} image")

        compression = None
        if sub_kind == LinuxKernelSubKind.ARM_ZIMAGE:
            # The scan starts where the magic check left the cursor
            version, compression = EmbeddedStreamScanner(stream, self.config).scan()
        else:
            fields = FixedFieldReader(stream)
            if sub_kind == LinuxKernelSubKind.UIMAGE:
                block = fields.read_block(0, VERSION_BLOCK_SIZE)
            else:
                block = self._read_x86_version_block(fields)
            version = self.pattern.first_capture(block)

        return VersionInfo(
            version=version,
            matcher=self.name,
            kind=BinaryKind.LINUX_KERNEL,
            sub_kind=sub_kind,
            compression=compression
        )

    def _read_x86_version_block(self, fields: FixedFieldReader) -> bytes:
        setup_sects = fields.read_u8(X86_SETUP_SECTS_OFFSET)
        kernel_version_ptr = fields.read_u16_le(X86_KERNEL_VERSION_OFFSET)

        # kernel_version holds the string offset less 0x200 and must be
        # less than 0x200 * setup_sects
        if kernel_version_ptr >= setup_sects * SECTOR_SIZE:
            raise FieldRangeError(
                f"kernel_version pointer 0x{kernel_version_ptr:04X} outside setup "
                f"({setup_sects} sectors)"
            )

        return fields.read_block(kernel_version_ptr + SECTOR_SIZE, VERSION_BLOCK_SIZE)
