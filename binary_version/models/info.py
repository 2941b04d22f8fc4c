# binary_version/models/info.py
from dataclasses import dataclass
from typing import Optional
from .kinds import BinaryKind, LinuxKernelSubKind, CompressionFormat


@dataclass
class VersionInfo:
    """Contains information about a located version string."""
    version: str
    matcher: str
    kind: Optional[BinaryKind] = None
    sub_kind: Optional[LinuxKernelSubKind] = None
    compression: Optional[CompressionFormat] = None

    @property
    def is_compressed(self) -> bool:
        """Return True if the version was found inside a compressed payload."""
        return self.compression is not None

    def __str__(self) -> str:
        """String representation of the version info."""
        label = self.sub_kind.value if self.sub_kind else self.matcher
        return f"{label}: {self.version}"
