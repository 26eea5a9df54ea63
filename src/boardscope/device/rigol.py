# Driver for Rigol DS1000Z/MSO series oscilloscopes over raw TCP (SCPI, port 5555)
from __future__ import annotations

from boardscope.comms import measure_waveform, scope_capture_commands
from boardscope.device.device import Instrument
from boardscope.types import MeasureResult
from boardscope.util.defaults import DEFAULT_SCOPE_TIMEOUT_MS

CHANNELS = (1, 2, 3, 4)


class RigolScope(Instrument):
    default_timeout_ms = DEFAULT_SCOPE_TIMEOUT_MS
    default_commands = {
        "IDN": "*IDN?",
        "RUN": ":RUN",
        "STOP": ":STOP",
        "AUTOSCALE": ":AUT",
    }

    async def capture(self, channel: int = 1) -> MeasureResult:
        """Capture the on-screen waveform of one channel.

        Returns WaveformResult with calibrated samples, V/div, time/div, Vpp
        and frequency, or ErrorResult.
        """
        if channel not in CHANNELS:
            raise ValueError(f"Channel must be one of {CHANNELS}, got {channel}")
        return await measure_waveform(self.endpoint(), scope_capture_commands(channel))
