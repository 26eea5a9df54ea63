"""
A single outbound TCP connection to one instrument.

The channel owns an asyncio stream pair. It never retries: connect failures,
write failures and resets surface as MeasureError subclasses for the caller
to handle.
"""

from __future__ import annotations

import asyncio
import socket
from typing import AsyncIterator, Optional, Sequence

from loguru import logger

from boardscope.types import ConnectError, InstrumentEndpoint, WriteError

READ_CHUNK_BYTES = 64 * 1024
_USE_ENDPOINT_TIMEOUT = object()


def join_commands(commands: Sequence[str]) -> bytes:
    """Newline terminate each command and join them into one write."""
    return "".join(cmd.strip() + "\n" for cmd in commands).encode("ascii")


class TransportChannel:
    """Connection to one instrument endpoint.

    Usage
    -----
    ```python
    channel = TransportChannel(endpoint)
    try:
        await channel.open()
        await channel.write_commands(["*IDN?"])
        async for chunk in channel.chunks():
            ...
    finally:
        channel.close()
    ```

    `close` is idempotent and safe before `open`. The channel can also be
    used as an async context manager.
    """

    def __init__(self, endpoint: InstrumentEndpoint):
        self.endpoint = endpoint
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._writer is not None and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self, timeout=_USE_ENDPOINT_TIMEOUT) -> TransportChannel:
        """Connect to the endpoint.

        Parameters
        ----------
        timeout : float | None, optional
            Seconds to wait for the connection. Defaults to the endpoint
            timeout; None disables it when an outer deadline is running.

        Raises
        ------
        ConnectError
            reason "timeout", "refused", "dns" or "other".
        """
        if timeout is _USE_ENDPOINT_TIMEOUT:
            timeout = self.endpoint.timeout
        host, port = self.endpoint.host, self.endpoint.port
        logger.debug("Connecting to {}:{}", host, port)
        try:
            if timeout is None:
                self._reader, self._writer = await asyncio.open_connection(host, port)
            else:
                self._reader, self._writer = await asyncio.wait_for(
                    asyncio.open_connection(host, port), timeout
                )
        except asyncio.TimeoutError as e:
            raise ConnectError(
                f"Timed out connecting to {host}:{port}", reason="timeout"
            ) from e
        except ConnectionRefusedError as e:
            raise ConnectError(
                f"Connection refused by {host}:{port}", reason="refused"
            ) from e
        except socket.gaierror as e:
            raise ConnectError(
                f"Could not resolve {host}: {e}", reason="dns"
            ) from e
        except OSError as e:
            raise ConnectError(
                f"Could not connect to {host}:{port}: {e}", reason="other"
            ) from e
        logger.debug("Connected to {}:{}", host, port)
        return self

    async def write(self, data: bytes) -> None:
        """Write and flush `data`."""
        if not self.is_open:
            raise WriteError(f"Channel to {self.endpoint} is not open")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (OSError, RuntimeError) as e:
            raise WriteError(f"Write to {self.endpoint} failed: {e}") from e
        logger.trace("Wrote {} bytes to {}", len(data), self.endpoint)

    async def write_commands(self, commands: Sequence[str]) -> None:
        """Write a command sequence as one logical write, in program order."""
        logger.debug("Sending to {}: {}", self.endpoint, list(commands))
        await self.write(join_commands(commands))

    async def read_chunk(self, max_bytes: int = READ_CHUNK_BYTES) -> bytes:
        """Next inbound chunk; b"" once the remote has closed its side."""
        if self._reader is None or self._closed:
            return b""
        try:
            return await self._reader.read(max_bytes)
        except OSError as e:
            raise ConnectError(
                f"Connection to {self.endpoint} failed while reading: {e}",
                reason="reset",
            ) from e

    async def chunks(self) -> AsyncIterator[bytes]:
        """Inbound chunks in arrival order until the remote ends the stream."""
        while True:
            chunk = await self.read_chunk()
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        """Release the socket. Safe to call any number of times."""
        if self._closed:
            return
        self._closed = True
        if self._writer is not None:
            try:
                self._writer.close()
            except RuntimeError:
                # event loop already gone, the transport is released with it
                pass
            logger.debug("Closed channel to {}", self.endpoint)

    async def __aenter__(self) -> TransportChannel:
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
