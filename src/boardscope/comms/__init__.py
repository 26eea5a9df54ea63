"""
Network side of instrument communication.

- TransportChannel: one TCP connection, connect/write/read/close
- InstrumentSession: request/response state machine and the public
  measure_waveform / measure_value / query / configure / probe coroutines
- MultimeterMonitor: long lived connection for unsolicited readings

Examples
--------
```python
import asyncio
from boardscope.comms import measure_waveform
from boardscope.types import InstrumentEndpoint

result = asyncio.run(
    measure_waveform(InstrumentEndpoint("192.168.0.200", 5555, 15000))
)
if result.ok:
    print(result.waveform.peak_to_peak_voltage)
```
"""

from .monitor import MultimeterMonitor
from .session import (
    SCOPE_CAPTURE_COMMANDS,
    TRANSITIONS,
    InstrumentSession,
    SessionState,
    configure,
    measure_value,
    measure_waveform,
    probe,
    query,
    scope_capture_commands,
)
from .transport import TransportChannel, join_commands

__all__ = [
    "MultimeterMonitor",
    "SCOPE_CAPTURE_COMMANDS",
    "TRANSITIONS",
    "InstrumentSession",
    "SessionState",
    "TransportChannel",
    "configure",
    "join_commands",
    "measure_value",
    "measure_waveform",
    "probe",
    "query",
    "scope_capture_commands",
]
