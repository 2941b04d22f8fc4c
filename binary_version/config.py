from dataclasses import dataclass
from typing import Set, Optional
from .models.kinds import CompressionFormat
from .exceptions import InvalidConfigurationError


@dataclass
class FinderConfig:
    """Configuration for the BinaryVersionFinder."""

    # Stream reading
    chunk_size: int = 0x200
    min_run_length: int = 4

    # Matching strategies
    uboot_strategy: str = 'chunks'  # 'chunks', 'strings'
    custom_strategy: str = 'buffer'  # 'buffer', 'strings'

    # Embedded stream scanning
    bridge_window_boundaries: bool = True
    max_decompressed_size: int = 64 * 1024 * 1024
    enabled_compressions: Optional[Set[CompressionFormat]] = None  # None means all formats

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.chunk_size < 1:
            raise InvalidConfigurationError("chunk_size must be at least 1")

        if self.min_run_length < 1:
            raise InvalidConfigurationError("min_run_length must be at least 1")

        if self.uboot_strategy not in ('chunks', 'strings'):
            raise InvalidConfigurationError(f"Invalid U-Boot strategy: {self.uboot_strategy}")

        if self.custom_strategy not in ('buffer', 'strings'):
            raise InvalidConfigurationError(f"Invalid custom pattern strategy: {self.custom_strategy}")

        if self.max_decompressed_size < 1:
            raise InvalidConfigurationError("max_decompressed_size must be at least 1")

        if self.enabled_compressions is not None:
            unknown = [fmt for fmt in self.enabled_compressions
                       if not isinstance(fmt, CompressionFormat)]
            if unknown:
                raise InvalidConfigurationError(f"Unknown compression formats: {unknown}")

    def is_compression_enabled(self, fmt: CompressionFormat) -> bool:
        """
        Check if a compression format is enabled in this configuration.

        Args:
            fmt: Compression format to check

        Returns:
            True if the format is enabled, False otherwise
        """
        # If enabled_compressions is None, all formats are enabled
        if self.enabled_compressions is None:
            return True

        return fmt in self.enabled_compressions
