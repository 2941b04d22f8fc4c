from typing import BinaryIO

from ..models.info import VersionInfo
from ..models.kinds import BinaryKind
from ..exceptions import PatternNotFoundError
from ..utils.patterns import VersionPattern, UBOOT_VERSION_PATTERN
from ..utils.stream_utils import read_chunk
from ..utils.strings import PrintableRunScanner
from .base import BaseMatcher


class UBootMatcher(BaseMatcher):
    """
    Matcher for U-Boot and U-Boot SPL binaries.

    Looks for the version banner, e.g. ``U-Boot SPL 2019.04 (01/04/2019)``,
    either in fixed-size chunks of the raw stream or in its printable runs
    (``FinderConfig.uboot_strategy``).
    """

    name = "uboot"

    def __init__(self, config=None):
        super().__init__(config)
        self.pattern = VersionPattern(UBOOT_VERSION_PATTERN)

    def locate(self, stream: BinaryIO) -> VersionInfo:
        if self.config.uboot_strategy == 'strings':
            version = self._search_runs(stream)
        else:
            version = self._search_chunks(stream)

        return VersionInfo(version=version, matcher=self.name, kind=BinaryKind.UBOOT)

    def _search_chunks(self, stream: BinaryIO) -> str:
        while True:
            chunk = read_chunk(stream, self.config.chunk_size)
            if not chunk:
                raise PatternNotFoundError("No U-Boot banner before end of stream")

            if self.pattern.search(chunk):
                return self.pattern.first_capture(chunk)

    def _search_runs(self, stream: BinaryIO) -> str:
        runs = PrintableRunScanner(
            stream,
            min_length=self.config.min_run_length,
            chunk_size=self.config.chunk_size
        )
        for run in runs:
            if self.pattern.search(run):
                return self.pattern.first_capture(run)

        raise PatternNotFoundError("No U-Boot banner in printable strings")
