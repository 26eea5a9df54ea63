"""Calibration of raw oscilloscope samples.

Each raw unsigned byte maps to volts with the preamble calibration:

    volts = (raw - y_reference) * y_increment + y_origin

and the horizontal scale assumes 10 divisions across the captured record.
"""

from __future__ import annotations

import math
import re

import numpy as np

from boardscope.types import (
    HORIZONTAL_DIVISIONS,
    CalibrationParams,
    DecodedWaveform,
    DecodeError,
    ParsedResponse,
)

SENTINEL_THRESHOLD = 1e30  # instruments report ~9.9e37 for "no signal"

# preamble field index for each calibration value
X_INCREMENT_FIELD = 4
Y_INCREMENT_FIELD = 7
Y_ORIGIN_FIELD = 8
Y_REFERENCE_FIELD = 9

_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_float(text: str) -> float:
    """Parse the leading number of `text`, NaN if there is none.

    Lenient like instrument front ends: trailing units or junk are ignored.
    """
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return math.nan
    return float(match.group(0))


def normalize_metric(value: float) -> float:
    """Map NaN and overflow sentinels (|x| > 1e30) to 0."""
    if math.isnan(value) or abs(value) > SENTINEL_THRESHOLD:
        return 0.0
    return value


def _preamble_field(preamble: tuple[str, ...], index: int, name: str) -> float:
    value = parse_float(preamble[index])
    if not math.isfinite(value):
        raise DecodeError(
            f"Preamble field {index} ({name}) is not a number: {preamble[index]!r}"
        )
    return value


def calibration_from_response(parsed: ParsedResponse) -> CalibrationParams:
    """Extract calibration from the preamble and the V/div header line.

    An unreadable or zero V/div falls back to 1.0.
    """
    preamble = parsed.preamble
    voltage_scale = parse_float(parsed.scale_line)
    if math.isnan(voltage_scale) or voltage_scale == 0:
        voltage_scale = 1.0
    return CalibrationParams(
        x_increment=_preamble_field(preamble, X_INCREMENT_FIELD, "x_increment"),
        y_increment=_preamble_field(preamble, Y_INCREMENT_FIELD, "y_increment"),
        y_origin=_preamble_field(preamble, Y_ORIGIN_FIELD, "y_origin"),
        y_reference=_preamble_field(preamble, Y_REFERENCE_FIELD, "y_reference"),
        voltage_scale_per_div=voltage_scale,
    )


def decode_waveform(
    raw_bytes: bytes,
    calibration: CalibrationParams,
    peak_to_peak: float = 0.0,
    frequency: float = 0.0,
) -> DecodedWaveform:
    """Convert raw sample bytes to volts and derive the summary metrics.

    Parameters
    ----------
    raw_bytes : bytes
        One unsigned byte per sample, framing already removed.
    calibration : CalibrationParams
        Preamble calibration.
    peak_to_peak, frequency : float
        Instrument measured Vpp and frequency, normalized here so sentinel
        readings become 0.

    Returns
    -------
    DecodedWaveform
    """
    raw = np.frombuffer(raw_bytes, dtype=np.uint8).astype(np.float64)
    samples = (raw - calibration.y_reference) * calibration.y_increment
    samples += calibration.y_origin
    return DecodedWaveform(
        samples=samples,
        time_per_div=calibration.x_increment * len(samples) / HORIZONTAL_DIVISIONS,
        voltage_per_div=calibration.voltage_scale_per_div,
        voltage_offset=calibration.y_origin,
        peak_to_peak_voltage=normalize_metric(peak_to_peak),
        frequency_hz=normalize_metric(frequency),
        x_increment=calibration.x_increment,
    )


def decode_response(parsed: ParsedResponse) -> DecodedWaveform:
    """Calibrate and decode a parsed oscilloscope reply."""
    calibration = calibration_from_response(parsed)
    return decode_waveform(
        parsed.sample_bytes,
        calibration,
        peak_to_peak=parse_float(parsed.vpp_line),
        frequency=parse_float(parsed.freq_line),
    )
