import asyncio
import json
from typing import Optional

import click

from boardscope.cli.base import echo_result, instrument_options, resolve_instrument, tree_option
from boardscope.device import RigolScope
from boardscope.device.mock import MockScopeServer
from boardscope.device.rigol import CHANNELS
from boardscope.types import MeasureResult
from boardscope.util import DEFAULT_SCOPE_PORT


@click.group()
@tree_option
def scope():
    """Oscilloscope commands."""
    pass


async def _capture(
    channel: int,
    mock: bool,
    instrument: Optional[str],
    host: Optional[str],
    port: Optional[int],
    timeout_ms: Optional[int],
) -> MeasureResult:
    if not mock:
        inst = resolve_instrument(
            RigolScope, DEFAULT_SCOPE_PORT, instrument, host, port, timeout_ms
        )
        return await inst.capture(channel)
    async with MockScopeServer() as server:
        inst = RigolScope(host=server.host, port=server.port, timeout_ms=timeout_ms)
        return await inst.capture(channel)


@scope.command()
@instrument_options
@click.option(
    "--channel",
    "-c",
    type=click.IntRange(min(CHANNELS), max(CHANNELS)),
    default=1,
    help="Channel to capture (default: 1)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the full result as JSON")
@click.option("--mock", is_flag=True, help="Capture from a local mock oscilloscope")
def capture(instrument, host, port, timeout_ms, channel, as_json, mock):
    """Capture and decode the waveform of one channel.

    Prints a summary (sample count, V/div, time/div, Vpp, frequency), or the
    full result including samples with --json.
    """
    result = asyncio.run(_capture(channel, mock, instrument, host, port, timeout_ms))
    if as_json or not result.ok:
        echo_result(result)
        return
    waveform = result.waveform
    summary = {
        "points": len(waveform),
        "voltage_per_div": waveform.voltage_per_div,
        "time_per_div": waveform.time_per_div,
        "voltage_offset": waveform.voltage_offset,
        "peak_to_peak_voltage": waveform.peak_to_peak_voltage,
        "frequency_hz": waveform.frequency_hz,
    }
    if len(waveform):
        summary["min_voltage"] = float(waveform.samples.min())
        summary["max_voltage"] = float(waveform.samples.max())
    click.echo(json.dumps(summary, indent=2))
