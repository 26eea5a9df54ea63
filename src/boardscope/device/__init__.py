# -*- coding: utf-8 -*-
"""
Instrument drivers for boardscope.

- RigolScope: oscilloscope waveform capture
- OwonMultimeter: multimeter mode switching and readings
- ScpiInstrument: any raw-TCP SCPI instrument described by a command map

Each driver holds configuration only; every request opens and closes its own
connection.

Examples
--------
```python
from boardscope.device import RigolScope
scope = RigolScope(host="192.168.0.200", port=5555)
result = await scope.capture(channel=1)
```

See Also
--------
boardscope.system : Instrument configuration files
boardscope.comms : Sessions used by the drivers
"""

from typing import Type

from .device import Instrument
from .owon import OwonMultimeter
from .rigol import RigolScope
from .scpi import ScpiInstrument

VALID_DRIVERS: dict[str, Type[Instrument]] = {
    "ScpiInstrument": ScpiInstrument,
    "OwonMultimeter": OwonMultimeter,
    "RigolScope": RigolScope,
}

# driver used when an INI section names only the instrument type
DEFAULT_DRIVERS = {
    "multimeter": "OwonMultimeter",
    "oscilloscope": "RigolScope",
}


def get_valid_driver_types() -> dict[str, Type[Instrument]]:
    """Mapping of driver names to driver classes."""
    return dict(VALID_DRIVERS)


__all__ = [
    "DEFAULT_DRIVERS",
    "Instrument",
    "OwonMultimeter",
    "RigolScope",
    "ScpiInstrument",
    "VALID_DRIVERS",
    "get_valid_driver_types",
]
