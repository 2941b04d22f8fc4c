# binary_version/__init__.py
from .finder import (
    BinaryVersionFinder, version, version_with_pattern,
    version_async, version_with_pattern_async, version_from_file
)
from .models.kinds import BinaryKind, LinuxKernelSubKind, CompressionFormat
from .models.info import VersionInfo
from .config import FinderConfig
from .exceptions import *

__version__ = "0.1.0"
