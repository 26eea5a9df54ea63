"""Tests for waveform calibration and decoding."""

import math

import numpy as np
import pytest

from boardscope.device.mock import build_scope_response
from boardscope.protocol import (
    calibration_from_response,
    decode_response,
    decode_waveform,
    normalize_metric,
    parse_float,
    parse_response,
)
from boardscope.types import CalibrationParams, DecodedWaveform, DecodeError

CAL = CalibrationParams(
    x_increment=0.001,
    y_increment=0.04,
    y_origin=0.0,
    y_reference=128.0,
    voltage_scale_per_div=1.0,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1.0", 1.0),
        (" -2e-3", -0.002),
        ("5.00E-01V", 0.5),
        ("9.9E37", 9.9e37),
        (".25", 0.25),
    ],
)
def test_parse_float(text, expected):
    assert parse_float(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["", "abc", "****", "-"])
def test_parse_float_nan(text):
    assert math.isnan(parse_float(text))


@pytest.mark.parametrize(
    "value, expected",
    [(math.nan, 0.0), (9.9e37, 0.0), (-9.9e37, 0.0), (1e30, 1e30), (2.5, 2.5)],
)
def test_normalize_metric(value, expected):
    assert normalize_metric(value) == expected


class TestDecodeWaveform:
    def test_calibration_formula(self):
        raw = bytes([0, 64, 118, 128, 255])
        waveform = decode_waveform(raw, CAL, peak_to_peak=2.5, frequency=1000.0)
        expected = (np.array([0, 64, 118, 128, 255]) - 128) * 0.04
        np.testing.assert_allclose(waveform.samples, expected)
        assert waveform.samples[2] == pytest.approx(-0.4)
        assert waveform.time_per_div == pytest.approx(0.001 * 5 / 10)
        assert waveform.voltage_per_div == 1.0
        assert waveform.voltage_offset == 0.0
        assert waveform.peak_to_peak_voltage == 2.5
        assert waveform.frequency_hz == 1000.0

    def test_origin_offset(self):
        cal = CalibrationParams(0.5, 0.1, 1.5, 100.0, 2.0)
        waveform = decode_waveform(bytes([100, 110]), cal)
        np.testing.assert_allclose(waveform.samples, [1.5, 2.5])
        assert waveform.voltage_offset == 1.5

    def test_sentinels_become_zero(self):
        waveform = decode_waveform(bytes(4), CAL, peak_to_peak=9.9e37, frequency=math.nan)
        assert waveform.peak_to_peak_voltage == 0
        assert waveform.frequency_hz == 0

    def test_empty_payload(self):
        waveform = decode_waveform(b"", CAL)
        assert len(waveform) == 0
        assert waveform.time_per_div == 0


class TestDecodeResponse:
    def test_from_parsed_reply(self):
        raw = bytes(range(118, 138))
        waveform = decode_response(parse_response(build_scope_response(samples=raw)))
        assert len(waveform) == 20
        assert waveform.samples[0] == pytest.approx(-0.4)
        assert waveform.time_per_div == pytest.approx(0.002)
        assert waveform.peak_to_peak_voltage == 2.5
        assert waveform.frequency_hz == 1000.0

    def test_sentinel_header_fields(self):
        parsed = parse_response(build_scope_response(vpp="9.9E37", freq="****"))
        waveform = decode_response(parsed)
        assert waveform.peak_to_peak_voltage == 0
        assert waveform.frequency_hz == 0

    @pytest.mark.parametrize("scale", ["abc", "0", "0.0"])
    def test_voltage_scale_fallback(self, scale):
        parsed = parse_response(build_scope_response(scale=scale))
        assert calibration_from_response(parsed).voltage_scale_per_div == 1.0

    def test_voltage_scale_with_units(self):
        parsed = parse_response(build_scope_response(scale="5.000000e-01V"))
        assert calibration_from_response(parsed).voltage_scale_per_div == 0.5

    def test_non_numeric_preamble_field(self):
        parsed = parse_response(
            build_scope_response(preamble="0,0,20,1,0.001,0,0,abc,0,128")
        )
        with pytest.raises(DecodeError) as excinfo:
            decode_response(parsed)
        assert "y_increment" in excinfo.value.message


class TestDecodedWaveform:
    def make(self):
        return decode_waveform(bytes([128, 153, 103]), CAL, 2.0, 50.0)

    def test_helpers(self):
        waveform = self.make()
        assert waveform.voltage_range == 8.0
        np.testing.assert_allclose(waveform.time_axis(), [0.0, 0.001, 0.002])
        assert "<3 samples>" in repr(waveform)

    def test_dict_round_trip(self):
        waveform = self.make()
        as_dict = waveform.to_dict()
        assert as_dict["samples"] == pytest.approx([0.0, 1.0, -1.0])
        restored = DecodedWaveform.from_dict(as_dict)
        np.testing.assert_allclose(restored.samples, waveform.samples)
        assert restored.frequency_hz == 50.0
