# -*- coding: utf-8 -*-
"""
Utility functions and constants for boardscope.

- Default ports, timeouts and protocol thresholds
- Log configuration and management (loguru)

Examples
--------
Logging to the terminal while debugging an instrument:
```python
from boardscope.util import start_log
start_log(log_to_file=False, log_to_stdout=True, log_level="TRACE")
```

See Also
--------
boardscope.util.logging : Logging configuration
boardscope.util.defaults : Default constants
"""
# everything here will be exported at top level of util

from .defaults import (
    DEFAULT_COMMAND_TIMEOUT_MS,
    DEFAULT_DMM_PORT,
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_PROBE_TIMEOUT_MS,
    DEFAULT_SCOPE_PORT,
    DEFAULT_SCOPE_TIMEOUT_MS,
    ERROR_EXCERPT_CHARS,
    MIN_COMPLETENESS_CHECK_BYTES,
    SINGLE_LINE_ERR_LOG,
    TEST_LOGLEVEL,
)
from .logging import (
    clear_log,
    format_error_response,
    log_default_path,
    shutdown_log,
    start_log,
)

__all__ = [
    "DEFAULT_COMMAND_TIMEOUT_MS",
    "DEFAULT_DMM_PORT",
    "DEFAULT_HOST_ADDR",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_PROBE_TIMEOUT_MS",
    "DEFAULT_SCOPE_PORT",
    "DEFAULT_SCOPE_TIMEOUT_MS",
    "ERROR_EXCERPT_CHARS",
    "MIN_COMPLETENESS_CHECK_BYTES",
    "SINGLE_LINE_ERR_LOG",
    "TEST_LOGLEVEL",
    "clear_log",
    "format_error_response",
    "log_default_path",
    "shutdown_log",
    "start_log",
]
