"""
One request/response cycle against one instrument.

An InstrumentSession runs a small state machine:

```
IDLE -> CONNECTING -> AWAITING_RESPONSE -> DECODING -> RESOLVED
            |                 |                          ^
            +-----------------+--------------------------+
```

- CONNECTING: the deadline starts here. Failing or running out of time
  resolves with a ConnectError.
- AWAITING_RESPONSE: the command sequence is written once, then every chunk
  is fed to the accumulator. The state ends when the accumulator reports a
  complete reply, the remote ends the stream (best effort decode of whatever
  arrived), or the deadline fires (TimeoutError, partial buffer discarded).
- DECODING: the session's finisher turns the buffer into a result.
- RESOLVED: exactly one result per session. The channel is closed before the
  result is handed back, on every path.

Two variants share this skeleton and differ only in the completeness
predicate: oscilloscope capture (FrameAccumulator, binary block framing) and
multimeter capture (LineAccumulator, first non-empty chunk wins).

Sessions never raise MeasureError to their caller. Every failure is returned
as an ErrorResult. Caller cancellation still propagates, after the channel
is closed.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Optional, Sequence

from loguru import logger

from boardscope.protocol import (
    Accumulator,
    FrameAccumulator,
    LineAccumulator,
    clean_ascii,
    decode_response,
    parse_response,
)
from boardscope.protocol.accumulator import ascii_excerpt
from boardscope.types import (
    AckResult,
    ConnectError,
    DecodeError,
    ErrorResult,
    InstrumentEndpoint,
    InstrumentTimeoutError,
    MeasureError,
    MeasureResult,
    ParseError,
    ValueResult,
    WaveformResult,
)
from boardscope.util.defaults import ERROR_EXCERPT_CHARS

from .transport import TransportChannel


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    AWAITING_RESPONSE = "awaiting_response"
    DECODING = "decoding"
    RESOLVED = "resolved"


TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.CONNECTING}),
    SessionState.CONNECTING: frozenset(
        {SessionState.AWAITING_RESPONSE, SessionState.RESOLVED}
    ),
    SessionState.AWAITING_RESPONSE: frozenset(
        {SessionState.DECODING, SessionState.RESOLVED}
    ),
    SessionState.DECODING: frozenset({SessionState.RESOLVED}),
    SessionState.RESOLVED: frozenset(),
}


def scope_capture_commands(channel: int = 1) -> list[str]:
    """The pipelined capture sequence; replies arrive in this order."""
    return [
        f":WAV:SOUR CHAN{channel}",
        ":WAV:MODE NORM",
        ":WAV:FORM BYTE",
        f":CHAN{channel}:SCAL?",
        ":MEAS:VPP?",
        ":MEAS:FREQ?",
        ":WAV:PRE?",
        ":WAV:DATA?",
    ]


SCOPE_CAPTURE_COMMANDS = tuple(scope_capture_commands(1))

Finisher = Callable[[bytes], MeasureResult]


def finish_waveform(buffer: bytes) -> MeasureResult:
    return WaveformResult(waveform=decode_response(parse_response(buffer)))


def finish_value(buffer: bytes) -> MeasureResult:
    return ValueResult(value=clean_ascii(buffer))


def finish_ack(buffer: bytes) -> MeasureResult:
    return AckResult()


class InstrumentSession:
    """Runs one request against one endpoint and resolves exactly once.

    Parameters
    ----------
    endpoint : InstrumentEndpoint
        Address and deadline.
    commands : Sequence[str]
        Commands written before reading. Empty for a bare connection probe.
    accumulator : Accumulator | None
        Completeness predicate for the reply. None for write-only requests,
        which resolve as soon as the write is flushed.
    finish : Callable[[bytes], MeasureResult]
        Turns a complete buffer into the success result. May raise
        MeasureError.
    channel_factory : Callable[[InstrumentEndpoint], TransportChannel]
        Creates the channel, one per session.
    """

    def __init__(
        self,
        endpoint: InstrumentEndpoint,
        commands: Sequence[str],
        accumulator: Optional[Accumulator],
        finish: Finisher,
        channel_factory: Callable[
            [InstrumentEndpoint], TransportChannel
        ] = TransportChannel,
    ):
        self.endpoint = endpoint
        self.commands = list(commands)
        self.accumulator = accumulator
        self.finish = finish
        self.channel_factory = channel_factory
        self.state = SessionState.IDLE
        self.result: Optional[MeasureResult] = None

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal session transition {self.state.value} -> {new_state.value}"
            )
        logger.debug(
            "Session {}: {} -> {}", self.endpoint, self.state.value, new_state.value
        )
        self.state = new_state

    def _resolve(self, result: MeasureResult) -> MeasureResult:
        self._transition(SessionState.RESOLVED)
        self.result = result
        if result.ok:
            logger.info("Session {} resolved: {}", self.endpoint, result.type)
        else:
            logger.warning(
                "Session {} failed ({}/{}): {}",
                self.endpoint,
                result.error,
                result.kind,
                result.message,
            )
        return result

    async def run(self) -> MeasureResult:
        """Drive the state machine to RESOLVED and return the result."""
        self._transition(SessionState.CONNECTING)
        channel = self.channel_factory(self.endpoint)
        try:
            result = await self._drive(channel)
        except MeasureError as err:
            result = self._error_result(err)
        except Exception as err:
            logger.exception("Unexpected error in session {}", self.endpoint)
            result = ErrorResult(
                error="internal", kind=type(err).__name__, message=str(err)
            )
        finally:
            channel.close()
        return self._resolve(result)

    async def _drive(self, channel: TransportChannel) -> MeasureResult:
        try:
            async with asyncio.timeout(self.endpoint.timeout):
                await channel.open(timeout=None)
                self._transition(SessionState.AWAITING_RESPONSE)
                if self.commands:
                    await channel.write_commands(self.commands)
                buffer = await self._collect(channel)
        except TimeoutError as e:
            if self.state is SessionState.CONNECTING:
                raise ConnectError(
                    f"Timed out after {self.endpoint.timeout_ms} ms connecting to "
                    f"{self.endpoint}",
                    reason="timeout",
                ) from e
            received = len(self.accumulator) if self.accumulator is not None else 0
            raise InstrumentTimeoutError(
                f"Timed out after {self.endpoint.timeout_ms} ms waiting for a "
                f"complete response from {self.endpoint} ({received} bytes received)"
            ) from e
        self._transition(SessionState.DECODING)
        return self.finish(buffer)

    async def _collect(self, channel: TransportChannel) -> bytes:
        acc = self.accumulator
        if acc is None:
            return b""
        async for chunk in channel.chunks():
            acc.append(chunk)
            if acc.is_complete():
                return acc.buffer
        logger.debug(
            "Remote {} ended the stream with {} bytes buffered", self.endpoint, len(acc)
        )
        if len(acc) == 0:
            raise ParseError(
                "Connection closed by the instrument before any data arrived.",
                kind="empty",
            )
        return acc.buffer

    def _error_result(self, err: MeasureError) -> ErrorResult:
        result = err.to_result()
        if isinstance(err, (ParseError, DecodeError)) and self.accumulator is not None:
            if len(self.accumulator):
                excerpt = ascii_excerpt(self.accumulator.buffer, ERROR_EXCERPT_CHARS)
                result.message = f"{result.message} Response: {excerpt!r}"
        return result


async def measure_waveform(
    endpoint: InstrumentEndpoint, commands: Optional[Sequence[str]] = None
) -> MeasureResult:
    """Capture and decode one oscilloscope waveform.

    Returns WaveformResult, or ErrorResult on any failure.
    """
    if commands is None:
        commands = SCOPE_CAPTURE_COMMANDS
    session = InstrumentSession(endpoint, commands, FrameAccumulator(), finish_waveform)
    return await session.run()


async def measure_value(endpoint: InstrumentEndpoint, command: str) -> MeasureResult:
    """Send one multimeter command and return the first reply chunk, cleaned."""
    session = InstrumentSession(endpoint, [command], LineAccumulator(), finish_value)
    return await session.run()


async def query(endpoint: InstrumentEndpoint, command: str) -> MeasureResult:
    """Send one query and return the reply once a full line has arrived."""
    session = InstrumentSession(
        endpoint, [command], LineAccumulator(require_terminator=True), finish_value
    )
    return await session.run()


async def configure(endpoint: InstrumentEndpoint, command: str) -> MeasureResult:
    """Write one configuration command; success once written and closed."""
    session = InstrumentSession(endpoint, [command], None, finish_ack)
    return await session.run()


async def probe(endpoint: InstrumentEndpoint) -> MeasureResult:
    """Check that the endpoint accepts connections."""
    session = InstrumentSession(endpoint, [], None, finish_ack)
    return await session.run()
