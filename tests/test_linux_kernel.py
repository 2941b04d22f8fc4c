"""
Tests for Linux kernel image detection and version extraction.
"""
import io

import pytest

from binary_version import version, BinaryKind, LinuxKernelSubKind
from binary_version.matchers import ImageKindDetector, LinuxKernelMatcher
from binary_version.exceptions import (
    UnrecognizedFormatError, FieldRangeError, PatternNotFoundError, StreamAccessError
)


class TestImageKindDetector:
    """Tests for ImageKindDetector."""

    def test_x86_kinds(self, x86_bzimage, x86_zimage):
        assert ImageKindDetector(io.BytesIO(x86_bzimage)).detect() == LinuxKernelSubKind.X86_BZIMAGE
        assert ImageKindDetector(io.BytesIO(x86_zimage)).detect() == LinuxKernelSubKind.X86_ZIMAGE

    def test_uimage(self, uimage):
        assert ImageKindDetector(io.BytesIO(uimage)).detect() == LinuxKernelSubKind.UIMAGE

    def test_arm_zimage(self, arm_zimage):
        assert ImageKindDetector(io.BytesIO(arm_zimage)).detect() == LinuxKernelSubKind.ARM_ZIMAGE

    def test_uimage_magic_takes_priority(self, make_x86_image):
        """The uImage magic wins over the ARM and x86 signatures."""
        image = bytearray(make_x86_image())
        image[0:4] = (0x27051956).to_bytes(4, 'big')
        image[0x24:0x28] = (0x016F2818).to_bytes(4, 'little')

        assert ImageKindDetector(io.BytesIO(bytes(image))).detect() == LinuxKernelSubKind.UIMAGE

    def test_arm_magic_before_boot_flag(self, make_x86_image):
        image = bytearray(make_x86_image())
        image[0x24:0x28] = (0x016F2818).to_bytes(4, 'little')

        assert ImageKindDetector(io.BytesIO(bytes(image))).detect() == LinuxKernelSubKind.ARM_ZIMAGE

    def test_bad_boot_flag(self, make_x86_image):
        image = make_x86_image(boot_flag=0x55AA)
        detector = ImageKindDetector(io.BytesIO(image))

        assert detector.detect() is None
        with pytest.raises(UnrecognizedFormatError):
            detector.identify()

    @pytest.mark.parametrize("size", [0, 3, 0x27, 0x1FF, 0x211])
    def test_truncated_image(self, size, make_x86_image):
        """A short read at any check means no kind, never a default."""
        image = make_x86_image()[:size]
        detector = ImageKindDetector(io.BytesIO(image))

        assert detector.detect() is None
        with pytest.raises(StreamAccessError):
            detector.identify()


class TestX86Extraction:
    """Tests for the x86 boot protocol version lookup."""

    def test_bzimage(self, x86_bzimage):
        assert version(io.BytesIO(x86_bzimage), BinaryKind.LINUX_KERNEL) == "4.1.30-1-MANJARO"

    def test_zimage(self, x86_zimage):
        assert version(io.BytesIO(x86_zimage), BinaryKind.LINUX_KERNEL) == "4.1.30-1-MANJARO"

    def test_synthetic_header(self):
        """Fields written at their documented offsets yield the version."""
        image = bytearray(0x2000)
        image[0x1F1] = 15
        image[0x1FE:0x200] = b'\x55\xAA'
        image[0x20E:0x210] = (0x1C00).to_bytes(2, 'little')
        image[0x1C00 + 0x200:0x1C00 + 0x205] = b"5.0.8"

        assert version(io.BytesIO(bytes(image)), BinaryKind.LINUX_KERNEL) == "5.0.8"

    def test_pointer_at_setup_boundary_fails(self, make_x86_image):
        """kernel_version must be strictly less than setup_sects * 512."""
        image = make_x86_image(version=b"5.0.8", setup_sects=15, kernel_version_ptr=15 * 512)
        matcher = LinuxKernelMatcher()

        with pytest.raises(FieldRangeError):
            matcher.locate(io.BytesIO(image))
        assert version(io.BytesIO(image), BinaryKind.LINUX_KERNEL) is None

    def test_pointer_just_below_boundary(self, make_x86_image):
        image = make_x86_image(version=b"5.0.8", setup_sects=15, kernel_version_ptr=15 * 512 - 1)
        assert version(io.BytesIO(image), BinaryKind.LINUX_KERNEL) == "5.0.8"

    def test_zero_setup_sects(self, make_x86_image):
        image = make_x86_image(version=b"5.0.8", setup_sects=0, kernel_version_ptr=0)
        assert version(io.BytesIO(image), BinaryKind.LINUX_KERNEL) is None

    def test_no_version_text(self, make_x86_image):
        image = make_x86_image(version=b"\x00" * 16)
        with pytest.raises(PatternNotFoundError):
            LinuxKernelMatcher().locate(io.BytesIO(image))

    def test_invalid_utf8_version(self, make_x86_image):
        image = make_x86_image(version=b"5.0.8-\xff\xfe rest")
        assert version(io.BytesIO(image), BinaryKind.LINUX_KERNEL) is None

    def test_version_info(self, x86_bzimage):
        info = LinuxKernelMatcher().locate(io.BytesIO(x86_bzimage))

        assert info.version == "4.1.30-1-MANJARO"
        assert info.kind == BinaryKind.LINUX_KERNEL
        assert info.sub_kind == LinuxKernelSubKind.X86_BZIMAGE
        assert info.compression is None


class TestUImageExtraction:
    """Tests for the uImage version lookup."""

    def test_uimage(self, uimage):
        assert version(io.BytesIO(uimage), BinaryKind.LINUX_KERNEL) == "4.1.15-1.2.0+g274a055"

    def test_version_info(self, uimage):
        info = LinuxKernelMatcher().locate(io.BytesIO(uimage))

        assert info.version == "4.1.15-1.2.0+g274a055"
        assert info.sub_kind == LinuxKernelSubKind.UIMAGE
        assert info.compression is None

    def test_version_beyond_first_block_is_ignored(self, make_uimage):
        """Only the first 512 bytes are examined."""
        image = make_uimage(name=b"Linux", payload=b"\x00" * 0x200 + b"9.9.9\x00")
        assert version(io.BytesIO(image), BinaryKind.LINUX_KERNEL) is None

    def test_no_fall_through_to_x86(self, make_x86_image):
        """A matched uImage magic is never retried as another kind."""
        image = bytearray(make_x86_image(version=b"5.0.8"))
        image[0:4] = (0x27051956).to_bytes(4, 'big')

        assert version(io.BytesIO(bytes(image)), BinaryKind.LINUX_KERNEL) is None


class TestGarbage:
    """Tests for inputs that are not kernel images."""

    def test_random_bytes(self, garbage):
        assert version(io.BytesIO(garbage), BinaryKind.LINUX_KERNEL) is None

    def test_empty_stream(self):
        assert version(io.BytesIO(b""), BinaryKind.LINUX_KERNEL) is None

    def test_arm_magic_without_payload(self, make_arm_zimage):
        image = make_arm_zimage(b"")
        assert version(io.BytesIO(image), BinaryKind.LINUX_KERNEL) is None

    def test_idempotent(self, x86_bzimage, arm_zimage):
        """Independent streams over the same bytes give the same result."""
        for image in (x86_bzimage, arm_zimage):
            first = version(io.BytesIO(image), BinaryKind.LINUX_KERNEL)
            second = version(io.BytesIO(image), BinaryKind.LINUX_KERNEL)
            assert first == second
            assert first is not None
