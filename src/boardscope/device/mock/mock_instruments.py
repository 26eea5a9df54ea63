"""asyncio TCP servers that behave like bench instruments.

Used by the test-suite and by `boardscope ... --mock`. Each server listens on
127.0.0.1 with an OS assigned port.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from loguru import logger

from boardscope.types import InstrumentEndpoint
from boardscope.util.defaults import DEFAULT_HOST_ADDR

DEFAULT_PREAMBLE = "0,0,20,1,0.001,0,0,0.04,0,128"
DEFAULT_SAMPLES = bytes([118, 120, 122, 124, 126, 128, 130, 132, 134, 136] * 2)


def build_scope_response(
    samples: bytes = DEFAULT_SAMPLES,
    scale: str = "1.0",
    vpp: str = "2.5",
    freq: str = "1000.0",
    preamble: str = DEFAULT_PREAMBLE,
    trailing_newline: bool = True,
) -> bytes:
    """A capture reply: four header lines then a `#N<len><bytes>` block."""
    length = str(len(samples))
    header = f"{scale}\n{vpp}\n{freq}\n{preamble}\n#{len(length)}{length}"
    return header.encode("ascii") + samples + (b"\n" if trailing_newline else b"")


class MockInstrumentServer:
    """Base mock server; subclasses implement `handle`.

    Records every received byte per connection in `received`.
    """

    def __init__(self):
        self._server: Optional[asyncio.base_events.Server] = None
        self.host = DEFAULT_HOST_ADDR
        self.port = 0
        self.received: list[bytes] = []
        self.connections = 0
        self._writers: set[asyncio.StreamWriter] = set()

    async def start(self) -> MockInstrumentServer:
        self._server = await asyncio.start_server(self._on_connect, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]
        logger.debug("{} listening on {}:{}", self.__class__.__name__, self.host, self.port)
        return self

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            for writer in list(self._writers):
                writer.close()
            await self._server.wait_closed()
            self._server = None

    def endpoint(self, timeout_ms: int = 2000) -> InstrumentEndpoint:
        return InstrumentEndpoint(self.host, self.port, timeout_ms)

    async def _on_connect(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.connections += 1
        self._writers.add(writer)
        self.received.append(b"")
        index = len(self.received) - 1
        try:
            await self.handle(reader, writer, index)
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            self._writers.discard(writer)
            writer.close()

    async def _read_lines(self, reader: asyncio.StreamReader, index: int, count: int):
        """Read until `count` newline terminated commands have arrived."""
        while self.received[index].count(b"\n") < count:
            data = await reader.read(4096)
            if not data:
                return False
            self.received[index] += data
        return True

    async def _drain_forever(self, reader: asyncio.StreamReader, index: int):
        while True:
            data = await reader.read(4096)
            if not data:
                return
            self.received[index] += data

    async def handle(self, reader, writer, index: int) -> None:
        raise NotImplementedError()

    async def __aenter__(self):
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()


class MockScopeServer(MockInstrumentServer):
    """Replies to the capture sequence once all its commands have arrived.

    Parameters
    ----------
    response : bytes
        Full reply; defaults to build_scope_response().
    expected_commands : int
        Newline count to wait for before replying.
    chunk_size : int | None
        Split the reply into chunks of this size (None for one write).
    chunk_delay : float
        Seconds between chunks.
    close_after_reply : bool
        End the connection after replying instead of idling like a real scope.
    """

    def __init__(
        self,
        response: Optional[bytes] = None,
        expected_commands: int = 8,
        chunk_size: Optional[int] = None,
        chunk_delay: float = 0.0,
        close_after_reply: bool = False,
    ):
        super().__init__()
        self.response = build_scope_response() if response is None else response
        self.expected_commands = expected_commands
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self.close_after_reply = close_after_reply

    def commands(self, index: int = -1) -> list[str]:
        return self.received[index].decode("ascii").splitlines()

    async def handle(self, reader, writer, index: int) -> None:
        if not await self._read_lines(reader, index, self.expected_commands):
            return
        size = self.chunk_size or len(self.response) or 1
        for start in range(0, len(self.response), size):
            writer.write(self.response[start : start + size])
            await writer.drain()
            if self.chunk_delay:
                await asyncio.sleep(self.chunk_delay)
        if not self.close_after_reply:
            await self._drain_forever(reader, index)


class MockMultimeterServer(MockInstrumentServer):
    """Answers every query line with `reading`; other lines are recorded only.

    `pushed` readings are sent unprompted right after connecting, like
    front-panel triggers, `push_delay` seconds apart.
    """

    def __init__(
        self,
        reading: str = "+1.2345E+00 VDC\r\n",
        pushed: Sequence[str] = (),
        push_delay: float = 0.0,
    ):
        super().__init__()
        self.reading = reading
        self.pushed = list(pushed)
        self.push_delay = push_delay

    def lines(self, index: int = -1) -> list[str]:
        return self.received[index].decode("ascii").splitlines()

    async def handle(self, reader, writer, index: int) -> None:
        for item in self.pushed:
            writer.write(item.encode("ascii"))
            await writer.drain()
            if self.push_delay:
                await asyncio.sleep(self.push_delay)
        pending = b""
        while True:
            data = await reader.read(4096)
            if not data:
                return
            self.received[index] += data
            pending += data
            while b"\n" in pending:
                line, pending = pending.split(b"\n", 1)
                if b"?" in line:
                    writer.write(self.reading.encode("ascii"))
                    await writer.drain()


class SilentServer(MockInstrumentServer):
    """Accepts connections and never replies."""

    async def handle(self, reader, writer, index: int) -> None:
        await self._drain_forever(reader, index)
