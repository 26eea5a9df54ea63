"""Decoded oscilloscope data and the intermediate parse products."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from mashumaro import DataClassDictMixin

HORIZONTAL_DIVISIONS = 10
VERTICAL_DIVISIONS = 8


@dataclass(frozen=True)
class ParsedHeader:
    """Location and size of the `#N<len>` binary block in a response.

    `text_lines` holds the non-empty, trimmed ASCII lines before the marker.
    """

    text_lines: tuple[str, ...]
    binary_marker_offset: int
    digit_count: int
    declared_byte_length: int

    @property
    def payload_offset(self) -> int:
        return self.binary_marker_offset + 2 + self.digit_count


@dataclass(frozen=True)
class ParsedResponse:
    """Output of ResponseParser.parse: header plus raw unsigned sample bytes."""

    header: ParsedHeader
    scale_line: str
    vpp_line: str
    freq_line: str
    preamble: tuple[str, ...]
    sample_bytes: bytes


@dataclass(frozen=True)
class CalibrationParams:
    """Sample-to-volts and sample-to-seconds calibration of a capture."""

    x_increment: float
    y_increment: float
    y_origin: float
    y_reference: float
    voltage_scale_per_div: float


@dataclass(kw_only=True, repr=False)
class DecodedWaveform(DataClassDictMixin):
    """A calibrated capture and its summary metrics.

    `samples` is serialized as a plain list of floats so the record can be
    stored as JSON by callers.
    """

    samples: np.ndarray = field(
        metadata={
            "serialize": lambda a: [float(v) for v in a],
            "deserialize": lambda v: np.asarray(v, dtype=np.float64),
        }
    )
    time_per_div: float
    voltage_per_div: float
    voltage_offset: float
    peak_to_peak_voltage: float
    frequency_hz: float
    x_increment: float = 0.0

    def __len__(self) -> int:
        return len(self.samples)

    def __repr__(self):
        return (
            f"DecodedWaveform(<{len(self.samples)} samples>, "
            f"time_per_div={self.time_per_div}, "
            f"voltage_per_div={self.voltage_per_div}, "
            f"voltage_offset={self.voltage_offset}, "
            f"peak_to_peak_voltage={self.peak_to_peak_voltage}, "
            f"frequency_hz={self.frequency_hz})"
        )

    @property
    def voltage_range(self) -> float:
        """Full screen vertical range in volts."""
        return self.voltage_per_div * VERTICAL_DIVISIONS

    def time_axis(self) -> np.ndarray:
        """Sample times in seconds, starting at zero."""
        return np.arange(len(self.samples), dtype=np.float64) * self.x_increment
