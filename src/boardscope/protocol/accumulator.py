"""Streaming reassembly of instrument replies.

Accumulators are pure state objects: a session feeds them every inbound chunk
with `append` and asks `is_complete` after each one. They never fail; a reply
that never completes is ended by the session deadline or by the remote
closing the connection.
"""

from __future__ import annotations

from loguru import logger

from boardscope.util.defaults import ERROR_EXCERPT_CHARS, MIN_COMPLETENESS_CHECK_BYTES

HEADER_LINE_COUNT = 4
BINARY_MARKER = ord("#")
NEWLINE = ord("\n")


def count_header_lines(text_part: bytes) -> int:
    """Number of non-empty trimmed lines in an ASCII header section."""
    text = text_part.decode("ascii", errors="replace")
    return sum(1 for line in text.split("\n") if line.strip())


def ascii_digit(byte: int) -> int | None:
    """Value of an ASCII decimal digit byte, None for anything else."""
    if 0x30 <= byte <= 0x39:
        return byte - 0x30
    return None


def ascii_excerpt(data: bytes, limit: int = ERROR_EXCERPT_CHARS) -> str:
    """First `limit` characters of `data` decoded as ASCII, for error messages."""
    return data[:limit].decode("ascii", errors="replace")


class Accumulator:
    """Append-only byte buffer with a completeness predicate.

    Bytes are kept strictly in arrival order. Once `is_complete` returns True
    it keeps returning True, whatever is appended afterwards.
    """

    def __init__(self):
        self._buffer = bytearray()
        self._complete = False
        self.chunk_count = 0

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def buffer(self) -> bytes:
        """Snapshot of everything received so far."""
        return bytes(self._buffer)

    def append(self, data: bytes) -> None:
        self._buffer += data
        self.chunk_count += 1
        logger.trace(
            "Chunk {} appended: {} bytes ({} total)",
            self.chunk_count,
            len(data),
            len(self._buffer),
        )

    def is_complete(self) -> bool:
        if not self._complete:
            self._complete = self._check_complete()
        return self._complete

    def excerpt(self, limit: int = ERROR_EXCERPT_CHARS) -> str:
        return ascii_excerpt(self._buffer, limit)

    def _check_complete(self) -> bool:
        raise NotImplementedError()


class FrameAccumulator(Accumulator):
    """Completeness for an oscilloscope reply: ASCII lines then `#N<len><bytes>`.

    The reply is complete once the buffer holds the whole binary block
    declared by its header:

        len(buffer) >= hash_index + 2 + digit_count + declared_byte_length

    The marker position, and everything derived from the bytes before it, is
    computed once. Later appends only extend the search from where the last
    one stopped.
    """

    def __init__(self, min_check_bytes: int = MIN_COMPLETENESS_CHECK_BYTES):
        super().__init__()
        self.min_check_bytes = min_check_bytes
        self._search_from = 0
        self._hash_index = -1
        self._header_ok = False
        self._expected_length: int | None = None

    @property
    def hash_index(self) -> int:
        """Offset of the binary block marker, -1 until it has arrived."""
        return self._hash_index

    @property
    def expected_length(self) -> int | None:
        """Total reply length once the block header is readable, else None."""
        return self._expected_length

    def _check_complete(self) -> bool:
        if len(self._buffer) <= self.min_check_bytes:
            return False
        if self._expected_length is None:
            self._expected_length = self._find_expected_length()
            if self._expected_length is None:
                return False
            logger.debug(
                "Binary block at offset {} declares {} total bytes",
                self._hash_index,
                self._expected_length,
            )
        return len(self._buffer) >= self._expected_length

    def _find_expected_length(self) -> int | None:
        if self._hash_index < 0:
            idx = self._buffer.find(BINARY_MARKER, self._search_from)
            if idx < 0:
                self._search_from = len(self._buffer)
                return None
            self._hash_index = idx
            # bytes before the marker are final, so this never changes
            self._header_ok = (
                count_header_lines(self._buffer[:idx]) >= HEADER_LINE_COUNT
            )
        if not self._header_ok:
            return None

        digit_pos = self._hash_index + 1
        if len(self._buffer) <= digit_pos:
            return None
        digit_count = ascii_digit(self._buffer[digit_pos])
        if digit_count is None:
            return None
        length_end = digit_pos + 1 + digit_count
        if digit_count == 0 or len(self._buffer) < length_end:
            return None
        length_digits = self._buffer[digit_pos + 1 : length_end]
        if any(ascii_digit(b) is None for b in length_digits):
            return None
        return length_end + int(length_digits.decode("ascii"))


class LineAccumulator(Accumulator):
    """Completeness for single line ASCII replies.

    By default any non-empty chunk completes the reply (first chunk wins, as
    multimeters answer in one segment). With `require_terminator` the reply
    completes once a newline has arrived.
    """

    def __init__(self, require_terminator: bool = False):
        super().__init__()
        self.require_terminator = require_terminator

    def _check_complete(self) -> bool:
        if self.require_terminator:
            return NEWLINE in self._buffer
        return len(self._buffer) > 0
