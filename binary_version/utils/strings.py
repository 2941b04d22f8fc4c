"""
Printable string extraction over byte streams, in the manner of the
``strings`` utility.
"""
import re
from typing import BinaryIO, Iterator

from .stream_utils import read_chunk

# Printable ASCII range, space through tilde
PRINTABLE_MIN = 0x20
PRINTABLE_MAX = 0x7E

_PRINTABLE_RUN = re.compile(rb'[\x20-\x7e]+')


def is_printable(byte: int) -> bool:
    """Check if a byte is printable ASCII."""
    return PRINTABLE_MIN <= byte <= PRINTABLE_MAX


class PrintableRunScanner:
    """
    Lazy iterator over the printable runs ("stanzas") of a byte stream.

    A run is a maximal sequence of printable ASCII bytes at least
    ``min_length`` long. Shorter runs are dropped without being emitted.
    The iterator consumes the stream and cannot be restarted.
    """

    def __init__(self, stream: BinaryIO, min_length: int = 4, chunk_size: int = 0x200):
        if min_length < 1:
            raise ValueError("min_length must be at least 1")
        self.stream = stream
        self.min_length = min_length
        self.chunk_size = chunk_size
        self._runs = self._scan()

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        return next(self._runs)

    def _scan(self) -> Iterator[str]:
        # Printable bytes of a run still open at the end of the last chunk
        pending = bytearray()

        while True:
            chunk = read_chunk(self.stream, self.chunk_size)
            if not chunk:
                break

            position = 0
            for match in _PRINTABLE_RUN.finditer(chunk):
                if match.start() != position and pending:
                    # A non-printable byte closed the run carried from the
                    # previous chunk
                    if len(pending) >= self.min_length:
                        yield pending.decode('ascii')
                    pending = bytearray()

                pending += match.group(0)
                position = match.end()

                if position < len(chunk):
                    if len(pending) >= self.min_length:
                        yield pending.decode('ascii')
                    pending = bytearray()

            if position != len(chunk) and pending:
                # Chunk ends in non-printable bytes
                if len(pending) >= self.min_length:
                    yield pending.decode('ascii')
                pending = bytearray()

        if len(pending) >= self.min_length:
            yield pending.decode('ascii')


def iter_printable_runs(stream: BinaryIO, min_length: int = 4, chunk_size: int = 0x200) -> Iterator[str]:
    """
    Iterate over the printable runs of ``stream``.

    Args:
        stream: Readable binary stream
        min_length: Shortest run that is emitted
        chunk_size: Bytes read from the stream at a time

    Returns:
        A PrintableRunScanner over the stream
    """
    return PrintableRunScanner(stream, min_length=min_length, chunk_size=chunk_size)

