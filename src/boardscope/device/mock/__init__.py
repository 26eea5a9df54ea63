from .mock_instruments import (
    DEFAULT_PREAMBLE,
    DEFAULT_SAMPLES,
    MockInstrumentServer,
    MockMultimeterServer,
    MockScopeServer,
    SilentServer,
    build_scope_response,
)

__all__ = [
    "DEFAULT_PREAMBLE",
    "DEFAULT_SAMPLES",
    "MockInstrumentServer",
    "MockMultimeterServer",
    "MockScopeServer",
    "SilentServer",
    "build_scope_response",
]
