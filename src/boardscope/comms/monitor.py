"""
Persistent multimeter connection.

Some multimeters push readings on their own, e.g. when the probe button on
the front panel is pressed. The monitor keeps one connection open and
forwards every non-empty cleaned chunk as a reading.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable, Optional

from loguru import logger

from boardscope.protocol import clean_ascii
from boardscope.types import InstrumentEndpoint, MeasureError

from .transport import TransportChannel

_STOP = object()


class MultimeterMonitor:
    """Streams unsolicited readings from one instrument.

    Status is one of "disconnected", "connected" or "error".

    ```python
    async with MultimeterMonitor(endpoint) as monitor:
        async for reading in monitor.readings():
            print(reading)
    ```
    """

    def __init__(
        self,
        endpoint: InstrumentEndpoint,
        on_data: Optional[Callable[[str], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ):
        self.endpoint = endpoint
        self.on_data = on_data
        self.on_status = on_status
        self.status = "disconnected"
        self.last_error: Optional[MeasureError] = None
        self._channel: Optional[TransportChannel] = None
        self._task: Optional[asyncio.Task] = None
        self._queue: asyncio.Queue = asyncio.Queue()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _set_status(self, status: str) -> None:
        if status == self.status:
            return
        logger.info("Monitor {}: {}", self.endpoint, status)
        self.status = status
        if self.on_status is not None:
            try:
                self.on_status(status)
            except Exception:
                logger.exception("Monitor {} status callback failed", self.endpoint)

    async def start(self) -> None:
        """Connect and start forwarding readings.

        Raises
        ------
        ConnectError
            If the connection can't be opened.
        """
        await self.stop()
        self._queue = asyncio.Queue()
        self._channel = TransportChannel(self.endpoint)
        try:
            await self._channel.open()
        except MeasureError as err:
            self.last_error = err
            self._channel.close()
            self._channel = None
            self._set_status("error")
            raise
        self._set_status("connected")
        self._task = asyncio.create_task(self._listen(self._channel))

    async def _listen(self, channel: TransportChannel) -> None:
        try:
            async for chunk in channel.chunks():
                reading = clean_ascii(chunk)
                if not reading:
                    continue
                logger.debug("Monitor {} reading: {}", self.endpoint, reading)
                self._queue.put_nowait(reading)
                if self.on_data is not None:
                    self.on_data(reading)
        except MeasureError as err:
            self.last_error = err
            self._set_status("error")
        except Exception:
            logger.exception("Monitor {} data callback failed", self.endpoint)
            self._set_status("error")
        else:
            self._set_status("disconnected")
        finally:
            channel.close()
            self._queue.put_nowait(_STOP)

    async def stop(self) -> None:
        """Close the connection. Safe to call when not running."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._channel is not None:
            self._channel.close()
            self._channel = None
        if self.status == "connected":
            self._set_status("disconnected")

    async def readings(self) -> AsyncIterator[str]:
        """Readings in arrival order until the connection ends."""
        while True:
            item = await self._queue.get()
            if item is _STOP:
                return
            yield item

    async def __aenter__(self) -> MultimeterMonitor:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
