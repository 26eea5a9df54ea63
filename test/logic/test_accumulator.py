"""Tests for reply completeness detection."""

import pytest

from boardscope.device.mock import build_scope_response
from boardscope.protocol import FrameAccumulator, LineAccumulator
from boardscope.protocol.accumulator import ascii_digit, count_header_lines

HEADER = b"1.0\n2.5\n1000.0\n0,0,20,1,0.001,0,0,0.04,0,128\n"


def feed(acc, data, step=1):
    """Append `data` in `step` sized chunks, return the buffer length at first completion."""
    for start in range(0, len(data), step):
        acc.append(data[start : start + step])
        if acc.is_complete():
            return len(acc)
    return None


class TestFrameAccumulator:
    def test_complete_at_declared_length(self):
        response = build_scope_response(trailing_newline=False)
        acc = FrameAccumulator()
        assert feed(acc, response) == len(response)
        assert acc.expected_length == len(response)
        assert acc.hash_index == len(HEADER)

    def test_large_chunks(self):
        response = build_scope_response()
        acc = FrameAccumulator()
        assert feed(acc, response, step=4096) == len(response)
        assert acc.chunk_count == 1

    def test_not_complete_at_or_below_minimum(self):
        small = b"1\n2\n3\n4\n#13abc"
        acc = FrameAccumulator()
        acc.append(small)
        assert len(small) <= 50
        assert not acc.is_complete()

        relaxed = FrameAccumulator(min_check_bytes=0)
        relaxed.append(small)
        assert relaxed.is_complete()

    def test_stays_complete(self):
        acc = FrameAccumulator()
        acc.append(build_scope_response())
        assert acc.is_complete()
        acc.append(b"#9999999999 more junk")
        assert acc.is_complete()
        assert acc.is_complete()

    def test_needs_four_header_lines(self):
        acc = FrameAccumulator()
        acc.append(b"1.0\n2.5\n0,0,20,1,0.001,0,0,0.04,0,128\n#220" + bytes(40))
        assert not acc.is_complete()
        assert acc.expected_length is None

    def test_blank_lines_do_not_count(self):
        acc = FrameAccumulator()
        acc.append(b"1.0\n\n\n2.5\n  \n1000.0\n" + b"#220" + bytes(40))
        assert not acc.is_complete()

    @pytest.mark.parametrize("block", [b"#X20", b"#0", b"#2A0"])
    def test_bad_block_header_never_completes(self, block):
        acc = FrameAccumulator()
        acc.append(HEADER + block + bytes(100))
        assert not acc.is_complete()

    def test_waits_for_length_digits(self):
        acc = FrameAccumulator()
        acc.append(HEADER + b"#9")
        assert not acc.is_complete()
        acc.append(b"000000")
        assert not acc.is_complete()
        acc.append(b"005")
        assert not acc.is_complete()
        assert acc.expected_length == len(HEADER) + 2 + 9 + 5
        acc.append(b"abcde")
        assert acc.is_complete()

    def test_marker_found_after_many_chunks(self):
        acc = FrameAccumulator()
        for line in HEADER.splitlines(keepends=True):
            acc.append(line)
            assert not acc.is_complete()
        acc.append(b"\n" * 10)
        assert not acc.is_complete()
        assert acc.hash_index == -1
        acc.append(b"#15")
        acc.append(b"12345")
        assert acc.is_complete()
        assert acc.hash_index == len(HEADER) + 10

    def test_excerpt_is_bounded(self):
        acc = FrameAccumulator()
        acc.append(b"x" * 500)
        assert acc.excerpt() == "x" * 100
        assert acc.excerpt(10) == "x" * 10


class TestLineAccumulator:
    def test_first_chunk_wins(self):
        acc = LineAccumulator()
        assert not acc.is_complete()
        acc.append(b"+1.2")
        assert acc.is_complete()

    def test_require_terminator(self):
        acc = LineAccumulator(require_terminator=True)
        acc.append(b"OWON,XDM1041")
        assert not acc.is_complete()
        acc.append(b",1234\r\n")
        assert acc.is_complete()
        assert acc.buffer == b"OWON,XDM1041,1234\r\n"


def test_helpers():
    assert ascii_digit(ord("0")) == 0
    assert ascii_digit(ord("9")) == 9
    assert ascii_digit(ord("A")) is None
    assert ascii_digit("²".encode("utf-8")[0]) is None
    assert count_header_lines(b"a\n\n b \n") == 2
