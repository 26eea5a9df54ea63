"""
Data model, result messages and the error taxonomy.

The boardscope.types package is shared by every layer:

1. Endpoints and configuration
    - InstrumentEndpoint: host, port and per-request deadline
    - InstrumentConfig: an instrument definition from an INI file

2. Waveform data
    - ParsedHeader / ParsedResponse: framing of a raw oscilloscope reply
    - CalibrationParams: preamble derived calibration
    - DecodedWaveform: calibrated samples and summary metrics

3. Results
    - WaveformResult, ValueResult, AckResult: success variants
    - ErrorResult: failure variant, carries the error category and cause

4. Errors
    - MeasureError and its subclasses, raised below the session boundary and
      converted into ErrorResult by the session

Examples
--------
Handling results:
```python
from boardscope.types import ErrorResult
if isinstance(result, ErrorResult):
    print(f"Error ({result.error}/{result.kind}): {result.message}")
```

See Also
--------
boardscope.comms.session : Where errors become results
"""

from __future__ import annotations

from typing import Optional

from .config import INSTRUMENT_TYPES, InstrumentConfig, InstrumentEndpoint
from .messages import (
    AckResult,
    ErrorResult,
    MeasureResult,
    Message,
    ValueResult,
    WaveformResult,
)
from .waveform import (
    HORIZONTAL_DIVISIONS,
    VERTICAL_DIVISIONS,
    CalibrationParams,
    DecodedWaveform,
    ParsedHeader,
    ParsedResponse,
)


# Exceptions
class MeasureError(Exception):
    """Base exception for a failed instrument request.

    Terminal for the session that raised it; never retried at this layer.
    """

    category = "internal"

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.category

    def details(self) -> dict[str, int]:
        return {}

    def to_result(self) -> ErrorResult:
        return ErrorResult(
            error=self.category,
            kind=self.kind,
            message=self.message,
            details=self.details(),
        )


class ConnectError(MeasureError):
    """TCP connect failed: timeout, refused, DNS or other socket failure."""

    category = "connect"

    def __init__(self, message: str, reason: str = "other"):
        super().__init__(message, kind=reason)
        self.reason = reason


class WriteError(MeasureError):
    """Socket failure while writing commands."""

    category = "write"


class InstrumentTimeoutError(MeasureError, TimeoutError):
    """Deadline exceeded while awaiting a complete response."""

    category = "timeout"


class ParseError(MeasureError):
    """Malformed response framing or header."""

    category = "parse"

    def __init__(
        self,
        message: str,
        kind: str,
        got: Optional[int] = None,
        field_count: Optional[int] = None,
    ):
        super().__init__(message, kind=kind)
        self.got = got
        self.field_count = field_count

    def details(self) -> dict[str, int]:
        details = {}
        if self.got is not None:
            details["got"] = self.got
        if self.field_count is not None:
            details["field_count"] = self.field_count
        return details


class DecodeError(MeasureError):
    """Calibration math cannot proceed, e.g. a non-numeric preamble field."""

    category = "decode"


class UnknownCommandError(MeasureError):
    """An action key is missing from an instrument's command map."""

    category = "unknown_command"


_ERROR_CLASSES = {
    cls.category: cls
    for cls in (
        MeasureError,
        ConnectError,
        WriteError,
        InstrumentTimeoutError,
        ParseError,
        DecodeError,
        UnknownCommandError,
    )
}


def error_from_result(result: ErrorResult) -> MeasureError:
    """Rebuild the exception an ErrorResult was made from."""
    cls = _ERROR_CLASSES.get(result.error, MeasureError)
    if cls is ConnectError:
        return ConnectError(result.message, reason=result.kind)
    if cls is ParseError:
        return ParseError(
            result.message,
            kind=result.kind,
            got=result.details.get("got"),
            field_count=result.details.get("field_count"),
        )
    return cls(result.message, kind=result.kind)


__all__ = [
    "INSTRUMENT_TYPES",
    "InstrumentConfig",
    "InstrumentEndpoint",
    "Message",
    "MeasureResult",
    "WaveformResult",
    "ValueResult",
    "AckResult",
    "ErrorResult",
    "HORIZONTAL_DIVISIONS",
    "VERTICAL_DIVISIONS",
    "CalibrationParams",
    "DecodedWaveform",
    "ParsedHeader",
    "ParsedResponse",
    "MeasureError",
    "ConnectError",
    "WriteError",
    "InstrumentTimeoutError",
    "ParseError",
    "DecodeError",
    "UnknownCommandError",
    "error_from_result",
]
