"""
Instrument configuration management.

INI based instrument definitions, see boardscope.system.instconfig for the
file format.

Examples
--------
```python
from boardscope.system import create_instrument
scope = create_instrument("rigol")
```
"""

from .instconfig import (
    create_default_instruments_file,
    create_instrument,
    list_available_instruments,
    load_instrument_config,
    save_instrument_config,
    user_instruments_file,
    validate_instrument_config,
)

__all__ = [
    "create_default_instruments_file",
    "create_instrument",
    "list_available_instruments",
    "load_instrument_config",
    "save_instrument_config",
    "user_instruments_file",
    "validate_instrument_config",
]
