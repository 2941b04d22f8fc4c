"""
Scanner for compressed payloads embedded at an unknown offset.

An ARM zImage is a small decompression stub followed by the compressed
kernel. The stub does not record where the payload starts, so the stream
is searched for the magic of every supported compression format and each
candidate is decompressed speculatively until the ``Linux version`` banner
turns up.
"""
import io
import logging
from typing import BinaryIO, Iterable, List, Optional, Tuple

import numpy as np

from ..config import FinderConfig
from ..models.kinds import CompressionFormat
from ..exceptions import (
    DecompressionError, PatternNotFoundError, InvalidEncodingError
)
from ..utils.decompress import (
    COMPRESSION_MAGICS, MAX_MAGIC_LENGTH, iter_decompressed, match_magic
)
from ..utils.patterns import VersionPattern, LINUX_BANNER_PATTERN, decode_version
from ..utils.stream_utils import ChainedReader, read_chunk, seek_to, tell

# First byte of every magic; they are pairwise distinct
MAGIC_FIRST_BYTES = np.array(sorted({magic[0] for _, magic in COMPRESSION_MAGICS}), dtype=np.uint8)

# Decompressed bytes kept between blocks so a banner split across two
# blocks is still seen
BANNER_TAIL = 0x100


class EmbeddedStreamScanner:
    """
    Finds the kernel version inside an embedded compressed stream.

    The stream is read in windows of ``config.chunk_size`` bytes starting at
    its current position. Every offset of a window is tested once against
    the magic table. For each candidate the current stream position is
    saved, the rest of the window chained with the remaining stream is fed
    to the decoder, and on failure the position is restored before the scan
    moves to the next offset.

    With ``config.bridge_window_boundaries`` (the default) the last
    ``MAX_MAGIC_LENGTH - 1`` bytes of a window are carried over and tested
    in the next one, so a magic straddling two windows is not missed.
    Without it each window is scanned in isolation and such a magic is
    skipped.
    """

    def __init__(self, stream: BinaryIO, config: Optional[FinderConfig] = None,
                 banner: bytes = LINUX_BANNER_PATTERN):
        self.stream = stream
        self.config = config or FinderConfig()
        self.banner = VersionPattern(banner)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def scan(self) -> Tuple[str, CompressionFormat]:
        """
        Scan the stream for the banner.

        Returns:
            Tuple of (version, compression format of the payload)

        Raises:
            PatternNotFoundError: If the end of stream is reached first
            StreamAccessError: On an I/O error of the underlying stream
        """
        carry = b''
        window_start = tell(self.stream)

        while True:
            chunk = read_chunk(self.stream, self.config.chunk_size)
            at_eof = not chunk
            window = carry + chunk

            if self.config.bridge_window_boundaries and not at_eof:
                # Offsets without a full lookahead wait for the next window
                limit = max(len(window) - (MAX_MAGIC_LENGTH - 1), 0)
            else:
                limit = len(window)

            for offset in self._candidate_offsets(window, limit):
                fmt = match_magic(window, offset)
                if fmt is None or not self.config.is_compression_enabled(fmt):
                    continue

                self.logger.debug(
                    f"Candidate {fmt.value} stream at offset 0x{window_start + offset:X}"
                )
                version = self._try_candidate(window, offset, fmt)
                if version is not None:
                    return version, fmt

            if at_eof:
                raise PatternNotFoundError("No compressed kernel payload with a version banner")

            if self.config.bridge_window_boundaries:
                carry = window[limit:]
            window_start += limit if self.config.bridge_window_boundaries else len(window)

    @staticmethod
    def _candidate_offsets(window: bytes, limit: int) -> Iterable[int]:
        """Offsets below ``limit`` whose byte starts some magic."""
        if limit <= 0:
            return []
        data = np.frombuffer(window, dtype=np.uint8, count=limit)
        offsets: List[int] = np.flatnonzero(np.isin(data, MAGIC_FIRST_BYTES)).tolist()
        return offsets

    def _try_candidate(self, window: bytes, offset: int, fmt: CompressionFormat) -> Optional[str]:
        position = tell(self.stream)
        reader = io.BufferedReader(ChainedReader(window[offset:], self.stream))

        try:
            return self._search_payload(fmt, reader)
        except (DecompressionError, PatternNotFoundError, InvalidEncodingError) as e:
            self.logger.debug(f"Rejected {fmt.value} candidate: {e}")

        # Resume right after the window that was read before the attempt
        seek_to(self.stream, position)
        return None

    def _search_payload(self, fmt: CompressionFormat, reader: BinaryIO) -> str:
        tail = bytearray()
        produced = 0

        for block in iter_decompressed(fmt, reader):
            produced += len(block)
            if produced > self.config.max_decompressed_size:
                raise DecompressionError(
                    f"Payload exceeds {self.config.max_decompressed_size} decompressed bytes"
                )

            tail += block
            match = self.banner.search(tail)
            if match is not None and match.end() < len(tail):
                # Token is terminated, it cannot grow with the next block
                return decode_version(match.group(1))

            if match is not None:
                del tail[:match.start()]
            elif len(tail) > BANNER_TAIL:
                del tail[:-BANNER_TAIL]

        # Stream ended cleanly; a token running up to the end is complete
        return self.banner.first_capture(bytes(tail))
