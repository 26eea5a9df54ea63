"""Reachability check of every configured instrument.

Used by `boardscope instruments check`.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from boardscope.comms import probe
from boardscope.system.instconfig import (
    list_available_instruments,
    load_instrument_config,
)
from boardscope.types import ErrorResult, InstrumentConfig
from boardscope.util.defaults import DEFAULT_PROBE_TIMEOUT_MS

MAX_COL = 150


def clean_error_message(error_msg: str) -> str:
    """Single line, truncated error message for the summary table."""
    if not error_msg:
        return "Unknown error"
    error_msg = " ".join(str(error_msg).split()).strip("\"'")
    if not error_msg:
        return "Unknown error occurred"
    if len(error_msg) > MAX_COL:
        error_msg = error_msg[: MAX_COL - 3] + "..."
    return error_msg


async def _check_one(config: InstrumentConfig, timeout_ms: int) -> dict:
    result = await probe(config.endpoint.with_timeout(timeout_ms))
    status = {
        "status": result.ok,
        "type": config.type,
        "driver": config.driver,
        "address": str(config.endpoint),
        "message": "",
        "error_type": "",
    }
    if isinstance(result, ErrorResult):
        status["message"] = clean_error_message(result.message)
        status["error_type"] = f"{result.error}/{result.kind}"
    return status


async def check_instruments(
    instruments: Optional[list[str]] = None,
    timeout_ms: int = DEFAULT_PROBE_TIMEOUT_MS,
) -> dict[str, dict]:
    """Probe configured instruments concurrently.

    Parameters
    ----------
    instruments : Optional[list[str]]
        Instrument names to check. If None, checks all of them.
    timeout_ms : int
        Connect deadline per instrument.

    Returns
    -------
    dict[str, dict]
        Instrument name -> status dict with keys status, type, driver,
        address, message and error_type.
    """
    wanted = None if instruments is None else {name.lower() for name in instruments}
    names = [
        name
        for name in list_available_instruments()
        if wanted is None or name.lower() in wanted
    ]

    results: dict[str, dict] = {}
    checks = {}
    for name in names:
        try:
            config = load_instrument_config(name)
        except ValueError as e:
            logger.warning(f"Skipping instrument {name}: {e}")
            results[name] = {
                "status": False,
                "type": "",
                "driver": "",
                "address": "",
                "message": clean_error_message(str(e)),
                "error_type": "config",
            }
            continue
        checks[name] = _check_one(config, timeout_ms)

    statuses = await asyncio.gather(*checks.values())
    results.update(zip(checks.keys(), statuses))
    return {name: results[name] for name in names}


def print_summary(results: dict[str, dict], console: Optional[Console] = None):
    """Print a formatted summary of instrument check results."""
    console = console or Console(color_system="standard")

    ya = "[green]+[/green]"
    na = "[red]-[/red]"

    table = Table(title="Instruments")
    table.add_column("")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Driver")
    table.add_column("Address")
    table.add_column("Error")

    for name, status in results.items():
        error = ""
        if not status["status"]:
            error = f"{status['error_type']}: {status['message']}"
        table.add_row(
            ya if status["status"] else na,
            name,
            status["type"],
            status["driver"],
            status["address"],
            error,
        )

    console.print(table)
    available = sum(1 for status in results.values() if status["status"])
    console.print(f"{available}/{len(results)} instruments reachable", highlight=False)
