import asyncio
import json
import sys
from typing import Optional, Type

import click

from boardscope.comms import probe as probe_endpoint
from boardscope.device import Instrument
from boardscope.types import InstrumentEndpoint, MeasureResult
from boardscope.util import (
    DEFAULT_LOGLEVEL,
    DEFAULT_PROBE_TIMEOUT_MS,
    format_error_response,
    start_log,
)


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


def instrument_options(f):
    """Add --instrument / --host / --port / --timeout-ms options."""
    f = click.option(
        "--timeout-ms",
        "-t",
        type=int,
        default=None,
        help="Request deadline in milliseconds (default: driver default)",
    )(f)
    f = click.option("--port", "-p", type=int, default=None, help="Instrument TCP port")(
        f
    )
    f = click.option("--host", "-ha", default=None, help="Instrument address")(f)
    f = click.option(
        "--instrument",
        "-i",
        default=None,
        help="Configured instrument name (see `boardscope instruments list`)",
    )(f)
    return f


def resolve_instrument(
    driver: Type[Instrument],
    default_port: int,
    instrument: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    timeout_ms: Optional[int] = None,
) -> Instrument:
    """Build a driver from a configured name or an explicit address."""
    from boardscope.system import create_instrument

    if instrument and host:
        raise click.UsageError("Use either --instrument or --host, not both.")
    if instrument:
        try:
            inst = create_instrument(instrument)
        except ValueError as e:
            raise click.ClickException(str(e))
        if not isinstance(inst, driver):
            raise click.UsageError(
                f"Instrument '{instrument}' uses driver {type(inst).__name__}, "
                f"expected {driver.__name__}"
            )
    elif host:
        inst = driver(host=host, port=port if port is not None else default_port)
    else:
        raise click.UsageError("Must define --instrument or --host.")
    if timeout_ms is not None:
        inst.timeout_ms = timeout_ms
    return inst


def echo_result(result: Optional[MeasureResult]) -> None:
    """Print a result as JSON; errors go to stderr and exit with status 1."""
    if result is None:
        return
    text = json.dumps(result.to_dict(), indent=2)
    if result.ok:
        click.echo(text)
    else:
        click.echo(text, err=True)
        sys.exit(1)


@click.group()
@tree_option
@click.option(
    "--log-level",
    "-ll",
    default=DEFAULT_LOGLEVEL,
    help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR) (default: INFO)",
)
@click.option(
    "--log-to-stdout/--no-log-to-stdout",
    "-lts/",
    default=False,
    help="Enable/disable console logging (default: disabled)",
)
@click.option(
    "--log-to-file/--no-log-to-file",
    "-ltf/",
    default=False,
    help="Enable/disable logging to file (default: disabled)",
)
@click.option(
    "--log-path",
    "-lp",
    default="",
    help="Custom path for log file (default: ~/.boardscope/boardscope.log)",
)
def cli(log_level, log_to_stdout, log_to_file, log_path):
    """boardscope - networked bench instrument control.

    Captures oscilloscope waveforms and multimeter readings over raw TCP
    (SCPI), providing:

    - One-shot waveform capture and decoding

    - Multimeter mode switching, readings and live monitoring

    - INI based instrument configuration and reachability checks
    """
    start_log(
        log_to_file=log_to_file,
        log_to_stdout=log_to_stdout,
        log_path=log_path,
        clear_prev=False,
        log_level=log_level,
    )


@cli.command()
@click.argument("host")
@click.argument("port", type=int)
@click.option(
    "--timeout-ms",
    "-t",
    type=int,
    default=DEFAULT_PROBE_TIMEOUT_MS,
    help="Connect deadline in milliseconds (default: 2000)",
)
def probe(host: str, port: int, timeout_ms: int):
    """Check that HOST:PORT accepts TCP connections."""
    result = asyncio.run(probe_endpoint(InstrumentEndpoint(host, port, timeout_ms)))
    echo_result(result)


@cli.command(name="exec")
@click.argument("action")
@click.option("--instrument", "-i", required=True, help="Configured instrument name")
@click.option("--timeout-ms", "-t", type=int, default=None, help="Request deadline")
def exec_action(action: str, instrument: str, timeout_ms: Optional[int]):
    """Run a command map ACTION on a configured instrument.

    Commands containing "?" are queries and print the reply; other commands
    are written and acknowledged.
    """
    inst = resolve_instrument(Instrument, 0, instrument=instrument, timeout_ms=timeout_ms)
    echo_result(asyncio.run(inst.execute(action)))


@cli.group()
@tree_option
def instruments():
    """Manage instrument configurations."""
    pass


@instruments.command(name="list")
def list_instruments():
    """List available instrument configurations."""
    from boardscope.system import list_available_instruments

    available = list_available_instruments()
    click.echo("\nAvailable instrument configurations:")
    click.echo("------------------------------------")
    if not available:
        click.echo("No instrument configurations found")
        click.echo("")
        return

    package_instruments = [name for name, src in available.items() if src == "package"]
    user_instruments = [name for name, src in available.items() if src == "user"]

    if package_instruments:
        click.echo("\nPackage defaults:")
        for name in sorted(package_instruments):
            click.echo(f"  - {name}")

    if user_instruments:
        click.echo("\nUser configurations:")
        for name in sorted(user_instruments):
            click.echo(f"  - {name}")
    click.echo("")


@instruments.command()
@click.option("--instrument", "-i", default="", help="Check one instrument only")
@click.option(
    "--timeout-ms",
    "-t",
    type=int,
    default=DEFAULT_PROBE_TIMEOUT_MS,
    help="Connect deadline per instrument (default: 2000)",
)
def check(instrument: str, timeout_ms: int):
    """Probe configured instruments and print a summary table."""
    from boardscope.util.instrument_check import check_instruments, print_summary

    names = [instrument] if instrument else None
    results = asyncio.run(check_instruments(names, timeout_ms=timeout_ms))
    print_summary(results)


@instruments.command()
def init():
    """Write the packaged instruments to ~/.boardscope/instruments.ini.

    Existing user sections are kept.
    """
    from boardscope.system import create_default_instruments_file

    try:
        path = create_default_instruments_file()
    except OSError:
        click.echo(f"Error: {format_error_response()}", err=True)
        sys.exit(1)
    click.echo(f"Wrote instrument configurations to {path}")
