"""Parsing of complete instrument replies.

Pure functions, no I/O. `parse_response` splits an oscilloscope reply into
its four ASCII header lines and the raw sample bytes of the `#N<len>` block;
`clean_ascii` normalizes a single line multimeter reply.
"""

from __future__ import annotations

import re

from boardscope.types import ParsedHeader, ParsedResponse, ParseError

from .accumulator import (
    BINARY_MARKER,
    HEADER_LINE_COUNT,
    NEWLINE,
    ascii_digit,
)

MIN_PREAMBLE_FIELDS = 10

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E]")


def clean_ascii(data: bytes | str) -> str:
    """Strip non-printable characters and surrounding whitespace."""
    if isinstance(data, bytes):
        data = data.decode("ascii", errors="replace")
    return _NON_PRINTABLE.sub("", data).strip()


def header_lines(text_part: bytes) -> list[str]:
    """Non-empty trimmed ASCII lines, in order."""
    text = text_part.decode("ascii", errors="replace")
    return [line.strip() for line in text.split("\n") if line.strip()]


def parse_response(buffer: bytes) -> ParsedResponse:
    """Split an oscilloscope reply into header lines and sample bytes.

    Checks run in a fixed order and the first failure wins: empty buffer,
    missing `#` marker, fewer than four header lines, non-digit length
    count, short preamble.

    When more than four lines precede the marker the last four are used,
    as stray replies from earlier commands can lead the buffer.

    Parameters
    ----------
    buffer : bytes
        Everything received for one request.

    Returns
    -------
    ParsedResponse
        Header lines, split preamble and the payload bytes from the end of
        the block header to the end of the buffer, minus one trailing newline.

    Raises
    ------
    ParseError
        With kind "empty", "no_binary_marker", "insufficient_header_lines",
        "bad_digit_count", "bad_byte_length" or "incomplete_preamble".
    """
    if len(buffer) == 0:
        raise ParseError("No response received from the instrument.", kind="empty")

    hash_index = buffer.find(BINARY_MARKER)
    if hash_index < 0:
        raise ParseError(
            "No binary data block (#) in response.",
            kind="no_binary_marker",
        )

    lines = header_lines(buffer[:hash_index])
    if len(lines) < HEADER_LINE_COUNT:
        raise ParseError(
            f"Expected {HEADER_LINE_COUNT} header lines before the binary block, "
            f"got {len(lines)}.",
            kind="insufficient_header_lines",
            got=len(lines),
        )
    scale_line, vpp_line, freq_line, preamble_line = lines[-HEADER_LINE_COUNT:]

    digit_count = (
        ascii_digit(buffer[hash_index + 1]) if len(buffer) > hash_index + 1 else None
    )
    if digit_count is None:
        raise ParseError(
            "Could not parse the digit count of the binary block.",
            kind="bad_digit_count",
        )

    preamble = tuple(preamble_line.split(","))
    if len(preamble) < MIN_PREAMBLE_FIELDS:
        raise ParseError(
            f"Incomplete preamble ({len(preamble)} fields): {preamble_line!r}",
            kind="incomplete_preamble",
            field_count=len(preamble),
        )

    payload_offset = hash_index + 2 + digit_count
    length_digits = buffer[hash_index + 2 : payload_offset]
    if len(length_digits) < digit_count or any(
        ascii_digit(b) is None for b in length_digits
    ):
        raise ParseError(
            "Could not parse the byte length of the binary block.",
            kind="bad_byte_length",
        )

    sample_bytes = buffer[payload_offset:]
    if sample_bytes and sample_bytes[-1] == NEWLINE:
        sample_bytes = sample_bytes[:-1]
    # "#0" announces a block of unspecified length
    declared = int(length_digits.decode("ascii")) if digit_count else len(sample_bytes)

    header = ParsedHeader(
        text_lines=tuple(lines),
        binary_marker_offset=hash_index,
        digit_count=digit_count,
        declared_byte_length=declared,
    )
    return ParsedResponse(
        header=header,
        scale_line=scale_line,
        vpp_line=vpp_line,
        freq_line=freq_line,
        preamble=preamble,
        sample_bytes=bytes(sample_bytes),
    )
