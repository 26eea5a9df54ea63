"""Utils for scripting

Blocking wrappers around the async API, for notebooks and plain scripts that
don't run an event loop. Each call runs its own loop with `asyncio.run`, so
they can't be used from inside a coroutine.
"""

import asyncio
from typing import Optional, Union

from loguru import logger

from boardscope.comms import probe
from boardscope.device import Instrument, OwonMultimeter, RigolScope
from boardscope.system import create_instrument
from boardscope.types import InstrumentEndpoint, MeasureResult
from boardscope.util import DEFAULT_PROBE_TIMEOUT_MS

InstrumentLike = Union[str, Instrument]


def _instrument(instrument: InstrumentLike, driver: type) -> Instrument:
    if isinstance(instrument, str):
        instrument = create_instrument(instrument)
    if not isinstance(instrument, driver):
        raise TypeError(
            f"{instrument!r} is not a {driver.__name__} (got {type(instrument).__name__})"
        )
    return instrument


def capture_waveform(
    instrument: InstrumentLike, channel: int = 1, raise_on_error: bool = False
) -> MeasureResult:
    """Capture one waveform from a scope.

    Parameters
    ----------
    instrument : str | RigolScope
        Configured instrument name or driver instance
    channel : int
        Channel 1-4
    raise_on_error : bool
        Raise the matching MeasureError instead of returning an ErrorResult

    Returns
    -------
    MeasureResult
        WaveformResult, or ErrorResult
    """
    scope = _instrument(instrument, RigolScope)
    result = asyncio.run(scope.capture(channel))
    logger.debug("capture_waveform({}, {}) -> {}", scope, channel, result.type)
    return result.raise_for_status() if raise_on_error else result


def read_value(
    instrument: InstrumentLike, mode: str = "voltage", raise_on_error: bool = False
) -> MeasureResult:
    """Take one multimeter reading; ValueResult or ErrorResult."""
    dmm = _instrument(instrument, OwonMultimeter)
    result = asyncio.run(dmm.read(mode))
    return result.raise_for_status() if raise_on_error else result


def configure_instrument(
    instrument: InstrumentLike, action: str, raise_on_error: bool = False
) -> MeasureResult:
    """Run a command map action (query or write) on any instrument."""
    inst = _instrument(instrument, Instrument)
    result = asyncio.run(inst.execute(action))
    return result.raise_for_status() if raise_on_error else result


def probe_endpoint(
    host: str, port: int, timeout_ms: Optional[int] = None
) -> MeasureResult:
    """Check that host:port accepts connections."""
    endpoint = InstrumentEndpoint(
        host, port, timeout_ms if timeout_ms is not None else DEFAULT_PROBE_TIMEOUT_MS
    )
    return asyncio.run(probe(endpoint))
