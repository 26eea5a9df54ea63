# -*- coding: utf-8 -*-

DEFAULT_HOST_ADDR = "127.0.0.1"
DEFAULT_SCOPE_PORT = 5555
DEFAULT_DMM_PORT = 9876
DEFAULT_SCOPE_TIMEOUT_MS = 15000  # full waveform transfer
DEFAULT_COMMAND_TIMEOUT_MS = 2000  # single line config/measure commands
DEFAULT_PROBE_TIMEOUT_MS = 2000
MIN_COMPLETENESS_CHECK_BYTES = 50  # below this a header can't have fully arrived
ERROR_EXCERPT_CHARS = 100  # raw buffer chars quoted in parse errors
DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"
SINGLE_LINE_ERR_LOG = False  # reformat tracebacks into a single line for error results
