"""Tests for the InstrumentSession state machine."""

import asyncio
import time

import numpy as np
import pytest
import pytest_asyncio

from boardscope.comms import (
    SCOPE_CAPTURE_COMMANDS,
    InstrumentSession,
    SessionState,
    TransportChannel,
    configure,
    measure_value,
    measure_waveform,
    probe,
    query,
    scope_capture_commands,
)
from boardscope.comms.session import finish_waveform
from boardscope.device.mock import (
    DEFAULT_PREAMBLE,
    MockMultimeterServer,
    MockScopeServer,
    SilentServer,
    build_scope_response,
)
from boardscope.protocol import FrameAccumulator
from boardscope.types import (
    ConnectError,
    ErrorResult,
    InstrumentEndpoint,
    InstrumentTimeoutError,
    MeasureResult,
    ValueResult,
    WaveformResult,
)
from boardscope.util import TEST_LOGLEVEL, shutdown_log, start_log

# reply from the capture example: V/div, Vpp, frequency, preamble, 20 samples
SCENARIO_REPLY = (
    b"1.0\n2.5\n1000.0\n0,0,0,0,0.001,0,0,0.04,0,128\n#210" + bytes(range(118, 138))
)


class CountingChannel(TransportChannel):
    instances: list["CountingChannel"] = []

    def __init__(self, endpoint):
        super().__init__(endpoint)
        self.close_calls = 0
        CountingChannel.instances.append(self)

    def close(self):
        self.close_calls += 1
        super().close()


def scope_session(endpoint, commands=SCOPE_CAPTURE_COMMANDS):
    return InstrumentSession(
        endpoint,
        commands,
        FrameAccumulator(),
        finish_waveform,
        channel_factory=CountingChannel,
    )


async def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class TestSessionStates:
    def test_illegal_transition(self):
        session = scope_session(InstrumentEndpoint("127.0.0.1", 1, 100))
        assert session.state is SessionState.IDLE
        with pytest.raises(RuntimeError):
            session._transition(SessionState.RESOLVED)

    def test_capture_commands(self):
        assert scope_capture_commands(3) == [
            ":WAV:SOUR CHAN3",
            ":WAV:MODE NORM",
            ":WAV:FORM BYTE",
            ":CHAN3:SCAL?",
            ":MEAS:VPP?",
            ":MEAS:FREQ?",
            ":WAV:PRE?",
            ":WAV:DATA?",
        ]
        assert list(SCOPE_CAPTURE_COMMANDS) == scope_capture_commands(1)


class TestScopeSession:
    @pytest.fixture(autouse=True, scope="class")
    def client_log(self):
        start_log(log_to_file=False, log_to_stdout=True, log_level=TEST_LOGLEVEL)
        yield
        shutdown_log()

    @pytest.fixture(autouse=True)
    def reset_channels(self):
        CountingChannel.instances.clear()

    @pytest.mark.asyncio
    async def test_happy_path(self):
        async with MockScopeServer(response=SCENARIO_REPLY) as server:
            session = scope_session(server.endpoint(timeout_ms=15000))
            result = await session.run()
            await wait_until(lambda: len(server.commands()) >= 8)
            assert server.commands() == list(SCOPE_CAPTURE_COMMANDS)

        assert isinstance(result, WaveformResult)
        assert result.ok
        assert session.state is SessionState.RESOLVED
        assert session.result is result
        waveform = result.waveform
        assert len(waveform) == 20
        assert waveform.voltage_per_div == 1.0
        assert waveform.time_per_div == pytest.approx(0.002)
        assert waveform.peak_to_peak_voltage == 2.5
        assert waveform.frequency_hz == 1000.0
        assert waveform.samples[0] == pytest.approx(-0.4)
        expected = (np.arange(118, 138) - 128) * 0.04
        np.testing.assert_allclose(waveform.samples, expected)
        assert [ch.close_calls for ch in CountingChannel.instances] == [1]

    @pytest.mark.asyncio
    async def test_chunked_delivery(self):
        samples = bytes(range(0, 250))
        response = build_scope_response(samples=samples)
        async with MockScopeServer(
            response=response, chunk_size=7, chunk_delay=0.001
        ) as server:
            result = await measure_waveform(server.endpoint(timeout_ms=5000))
        assert result.ok, result
        assert len(result.waveform) == 250

    @pytest.mark.asyncio
    async def test_other_channel(self):
        async with MockScopeServer() as server:
            result = await measure_waveform(
                server.endpoint(), scope_capture_commands(2)
            )
            await wait_until(lambda: len(server.commands()) >= 8)
            assert server.commands()[0] == ":WAV:SOUR CHAN2"
        assert result.ok

    @pytest.mark.asyncio
    async def test_timeout(self):
        async with SilentServer() as server:
            session = scope_session(server.endpoint(timeout_ms=100))
            start = time.monotonic()
            result = await session.run()
            elapsed = time.monotonic() - start

        assert isinstance(result, ErrorResult)
        assert result.error == "timeout"
        assert "100 ms" in result.message
        assert 0.09 <= elapsed < 1.0
        assert [ch.close_calls for ch in CountingChannel.instances] == [1]
        with pytest.raises(InstrumentTimeoutError):
            result.raise_for_status()

    @pytest.mark.asyncio
    async def test_partial_reply_times_out(self):
        partial = build_scope_response()[:60]
        async with MockScopeServer(response=partial) as server:
            result = await measure_waveform(server.endpoint(timeout_ms=200))
        assert result.error == "timeout"
        assert "60 bytes" in result.message

    @pytest.mark.asyncio
    async def test_no_binary_marker(self):
        reply = b"1.0\n2.5\n1000.0\nno block here, the scope is confused\n"
        async with MockScopeServer(response=reply, close_after_reply=True) as server:
            session = scope_session(server.endpoint())
            result = await session.run()

        assert isinstance(result, ErrorResult)
        assert result.error == "parse"
        assert result.kind == "no_binary_marker"
        assert "1.0" in result.message.split("Response:", 1)[1]
        assert [ch.close_calls for ch in CountingChannel.instances] == [1]

    @pytest.mark.asyncio
    async def test_remote_closes_without_data(self):
        async with MockScopeServer(response=b"", close_after_reply=True) as server:
            result = await measure_waveform(server.endpoint())
        assert result.error == "parse"
        assert result.kind == "empty"

    @pytest.mark.asyncio
    async def test_remote_closes_after_short_block(self):
        # declared 20 bytes, 5 delivered: decoded best effort
        response = build_scope_response(trailing_newline=False)[:-15]
        async with MockScopeServer(response=response, close_after_reply=True) as server:
            result = await measure_waveform(server.endpoint())
        assert result.ok
        assert len(result.waveform) == 5

    @pytest.mark.asyncio
    async def test_decode_error(self):
        response = build_scope_response(
            preamble=DEFAULT_PREAMBLE.replace("0.04", "n/a")
        )
        async with MockScopeServer(response=response) as server:
            result = await measure_waveform(server.endpoint())
        assert result.error == "decode"
        assert "Response:" in result.message

    @pytest.mark.asyncio
    async def test_connect_refused(self, free_port):
        session = scope_session(InstrumentEndpoint("127.0.0.1", free_port, 2000))
        result = await session.run()
        assert result.error == "connect"
        assert result.kind == "refused"
        assert session.state is SessionState.RESOLVED
        assert [ch.close_calls for ch in CountingChannel.instances] == [1]
        with pytest.raises(ConnectError):
            result.raise_for_status()

    @pytest.mark.asyncio
    async def test_cancellation_closes_channel(self):
        async with SilentServer() as server:
            session = scope_session(server.endpoint(timeout_ms=10000))
            task = asyncio.create_task(session.run())
            await wait_until(lambda: session.state is SessionState.AWAITING_RESPONSE)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        assert [ch.close_calls for ch in CountingChannel.instances] == [1]
        assert CountingChannel.instances[0].closed

    @pytest.mark.asyncio
    async def test_concurrent_sessions(self):
        async with MockScopeServer() as server:
            results = await asyncio.gather(
                *(measure_waveform(server.endpoint()) for _ in range(5))
            )
            assert server.connections == 5
        assert all(result.ok for result in results)


class TestMultimeterSession:
    @pytest.fixture(autouse=True, scope="class")
    def client_log(self):
        start_log(log_to_file=False, log_to_stdout=True, log_level=TEST_LOGLEVEL)
        yield
        shutdown_log()

    @pytest_asyncio.fixture
    async def dmm_server(self):
        async with MockMultimeterServer() as server:
            yield server

    @pytest.mark.asyncio
    async def test_measure_value(self, dmm_server: MockMultimeterServer):
        result = await measure_value(dmm_server.endpoint(), "MEAS:SHOW?")
        assert isinstance(result, ValueResult)
        assert result.value == "+1.2345E+00 VDC"
        assert dmm_server.lines() == ["MEAS:SHOW?"]

    @pytest.mark.asyncio
    async def test_query(self, dmm_server: MockMultimeterServer):
        dmm_server.reading = "OWON,XDM1041,2000000,V3.7.2\n"
        result = await query(dmm_server.endpoint(), "*IDN?")
        assert result.value == "OWON,XDM1041,2000000,V3.7.2"

    @pytest.mark.asyncio
    async def test_configure(self, dmm_server: MockMultimeterServer):
        result = await configure(dmm_server.endpoint(), "CONF:VOLT:DC AUTO")
        assert result.ok
        assert result.type == "ack"
        await wait_until(lambda: dmm_server.received and dmm_server.received[-1])
        assert dmm_server.lines() == ["CONF:VOLT:DC AUTO"]

    @pytest.mark.asyncio
    async def test_measure_value_timeout(self):
        async with SilentServer() as server:
            result = await measure_value(server.endpoint(timeout_ms=100), "MEAS:SHOW?")
        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_probe(self, dmm_server: MockMultimeterServer, free_port):
        assert (await probe(dmm_server.endpoint())).ok
        result = await probe(InstrumentEndpoint("127.0.0.1", free_port, 2000))
        assert result.error == "connect"


def test_result_serialization():
    result = ErrorResult(
        error="parse",
        kind="insufficient_header_lines",
        message="Expected 4 header lines",
        details={"got": 3},
    )
    restored = MeasureResult.from_dict(result.to_dict())
    assert isinstance(restored, ErrorResult)
    assert restored.details == {"got": 3}
    assert restored.status == "error"
    assert not restored.ok

    value = MeasureResult.from_msgpack(ValueResult(value="1.5 V").to_msgpack())
    assert isinstance(value, ValueResult)
    assert value.raise_for_status() is value
