"""
Version matchers, one per supported binary family plus the custom pattern
matcher.
"""

from .base import BaseMatcher
from .uboot import UBootMatcher
from .linux_kernel import LinuxKernelMatcher, ImageKindDetector
from .embedded import EmbeddedStreamScanner
from .custom import CustomPatternMatcher

__all__ = [
    'BaseMatcher',
    'UBootMatcher',
    'LinuxKernelMatcher',
    'ImageKindDetector',
    'EmbeddedStreamScanner',
    'CustomPatternMatcher',
]
