"""Tests for TransportChannel against local asyncio servers."""

import pytest
import pytest_asyncio

from boardscope.comms import TransportChannel, join_commands
from boardscope.device.mock import MockMultimeterServer, MockScopeServer
from boardscope.types import ConnectError, InstrumentEndpoint, WriteError
from boardscope.util import TEST_LOGLEVEL, shutdown_log, start_log


def test_join_commands():
    assert join_commands([":WAV:MODE NORM", " :WAV:DATA? "]) == (
        b":WAV:MODE NORM\n:WAV:DATA?\n"
    )
    assert join_commands([]) == b""


class TestTransportChannel:
    @pytest.fixture(autouse=True, scope="class")
    def client_log(self):
        start_log(log_to_file=False, log_to_stdout=True, log_level=TEST_LOGLEVEL)
        yield
        shutdown_log()

    @pytest_asyncio.fixture
    async def dmm_server(self):
        async with MockMultimeterServer(reading="+0.5000E+00 VDC\r\n") as server:
            yield server

    @pytest.mark.asyncio
    async def test_query_round_trip(self, dmm_server: MockMultimeterServer):
        async with TransportChannel(dmm_server.endpoint()) as channel:
            assert channel.is_open
            await channel.write_commands(["MEAS:SHOW?"])
            chunk = await channel.read_chunk()
        assert chunk == b"+0.5000E+00 VDC\r\n"
        assert channel.closed
        assert not channel.is_open

    @pytest.mark.asyncio
    async def test_chunks_end_when_remote_closes(self):
        reply = b"x" * 100
        async with MockScopeServer(
            response=reply, expected_commands=1, chunk_size=30, close_after_reply=True
        ) as server:
            channel = TransportChannel(server.endpoint())
            try:
                await channel.open()
                await channel.write_commands([":WAV:DATA?"])
                received = b""
                async for chunk in channel.chunks():
                    received += chunk
            finally:
                channel.close()
        assert received == reply

    @pytest.mark.asyncio
    async def test_connect_refused(self, free_port):
        channel = TransportChannel(InstrumentEndpoint("127.0.0.1", free_port, 2000))
        with pytest.raises(ConnectError) as excinfo:
            await channel.open()
        assert excinfo.value.reason == "refused"
        assert excinfo.value.to_result().error == "connect"
        channel.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, dmm_server: MockMultimeterServer):
        channel = TransportChannel(dmm_server.endpoint())
        channel.close()
        channel.close()
        assert channel.closed

        channel = TransportChannel(dmm_server.endpoint())
        await channel.open()
        channel.close()
        channel.close()
        assert channel.closed

    @pytest.mark.asyncio
    async def test_write_after_close(self, dmm_server: MockMultimeterServer):
        channel = TransportChannel(dmm_server.endpoint())
        await channel.open()
        channel.close()
        with pytest.raises(WriteError):
            await channel.write(b"*IDN?\n")
        assert await channel.read_chunk() == b""

    @pytest.mark.asyncio
    async def test_write_before_open(self, dmm_server: MockMultimeterServer):
        channel = TransportChannel(dmm_server.endpoint())
        with pytest.raises(WriteError):
            await channel.write_commands(["*IDN?"])
