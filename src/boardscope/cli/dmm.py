import asyncio
from typing import Optional

import click

from boardscope.cli.base import echo_result, instrument_options, resolve_instrument, tree_option
from boardscope.device import OwonMultimeter
from boardscope.device.mock import MockMultimeterServer
from boardscope.device.owon import MODES
from boardscope.types import MeasureError, MeasureResult
from boardscope.util import DEFAULT_DMM_PORT

MOCK_READINGS = ("+1.2345E+00 VDC\r\n", "+1.2351E+00 VDC\r\n", "+1.2348E+00 VDC\r\n")


@click.group()
@tree_option
def dmm():
    """Multimeter commands."""
    pass


def _multimeter(instrument, host, port, timeout_ms) -> OwonMultimeter:
    return resolve_instrument(
        OwonMultimeter, DEFAULT_DMM_PORT, instrument, host, port, timeout_ms
    )


async def _with_mock(
    mock: bool, run, timeout_ms: Optional[int], **server_kwargs
) -> Optional[MeasureResult]:
    if not mock:
        return await run(None)
    async with MockMultimeterServer(**server_kwargs) as server:
        return await run(
            OwonMultimeter(host=server.host, port=server.port, timeout_ms=timeout_ms)
        )


@dmm.command()
@click.argument("action", type=click.Choice(sorted(MODES)), default="voltage")
@instrument_options
@click.option("--mock", is_flag=True, help="Read from a local mock multimeter")
def read(action, instrument, host, port, timeout_ms, mock):
    """Take one reading in mode ACTION (voltage, resistance or diode)."""

    async def run(inst):
        inst = inst or _multimeter(instrument, host, port, timeout_ms)
        return await inst.read(action)

    echo_result(asyncio.run(_with_mock(mock, run, timeout_ms)))


@dmm.command()
@click.argument("action", type=click.Choice(sorted(MODES)))
@instrument_options
@click.option("--mock", is_flag=True, help="Configure a local mock multimeter")
def configure(action, instrument, host, port, timeout_ms, mock):
    """Switch the multimeter to mode ACTION."""

    async def run(inst):
        inst = inst or _multimeter(instrument, host, port, timeout_ms)
        return await inst.configure(action)

    echo_result(asyncio.run(_with_mock(mock, run, timeout_ms)))


@dmm.command()
@instrument_options
@click.option(
    "--count",
    "-n",
    type=click.IntRange(min=0),
    default=0,
    help="Stop after this many readings (default: run until disconnected)",
)
@click.option("--mock", is_flag=True, help="Monitor a local mock multimeter")
def monitor(instrument, host, port, timeout_ms, count, mock):
    """Print readings the multimeter sends on its own.

    Readings are printed one per line as they arrive; connection status
    changes go to stderr.
    """

    async def run(inst):
        inst = inst or _multimeter(instrument, host, port, timeout_ms)
        mon = inst.monitor(on_status=lambda status: click.echo(f"[{status}]", err=True))
        try:
            await mon.start()
        except MeasureError as err:
            return err.to_result()
        received = 0
        try:
            async for reading in mon.readings():
                click.echo(reading)
                received += 1
                if count and received >= count:
                    break
        finally:
            await mon.stop()
        if mon.last_error is not None:
            return mon.last_error.to_result()
        return None

    if mock and not count:
        count = len(MOCK_READINGS)
    result = asyncio.run(
        _with_mock(mock, run, timeout_ms, pushed=MOCK_READINGS, push_delay=0.05)
    )
    echo_result(result)
