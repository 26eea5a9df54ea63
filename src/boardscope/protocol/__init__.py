"""
Pure framing, parsing and decoding of instrument replies.

Nothing in this package touches a socket: accumulators are fed bytes by
boardscope.comms, the parser and decoder take complete buffers.
"""

from .accumulator import Accumulator, FrameAccumulator, LineAccumulator
from .decoder import (
    calibration_from_response,
    decode_response,
    decode_waveform,
    normalize_metric,
    parse_float,
)
from .parser import clean_ascii, parse_response

__all__ = [
    "Accumulator",
    "FrameAccumulator",
    "LineAccumulator",
    "calibration_from_response",
    "clean_ascii",
    "decode_response",
    "decode_waveform",
    "normalize_metric",
    "parse_float",
    "parse_response",
]
