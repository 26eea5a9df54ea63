"""Result types returned by instrument sessions.

Every session resolves to exactly one of these. Success variants carry the
payload, ErrorResult carries the error taxonomy. All of them serialize with
`to_dict()` (JSON-friendly) and `to_msgpack()`.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from mashumaro.config import BaseConfig
from mashumaro.mixins.msgpack import DataClassMessagePackMixin
from mashumaro.types import Discriminator

from .waveform import DecodedWaveform


@dataclass
class Message(DataClassMessagePackMixin):
    """Base class for all results."""

    def __repr__(self):
        msg = self.__class__.__name__ + "("
        for i, (field_name, val) in enumerate(self.__dict__.items()):
            if i not in (0, len(self.__dict__)):
                msg += ", "
            if isinstance(val, np.ndarray):
                msg += f"{field_name}=<Array>"
            else:
                msg += f"{field_name}={getattr(self, field_name)}"
        return msg + ")"


@dataclass(kw_only=True, repr=False)
class MeasureResult(Message):
    """Outcome of one instrument session.

    `status` is "success" or "error"; `type` selects the subclass on
    deserialization.
    """

    type: str  # subclass to define
    status: str  # subclass to define

    class Config(BaseConfig):
        discriminator = Discriminator(field="type", include_subtypes=True)

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def raise_for_status(self) -> MeasureResult:
        """Return self on success, raise the matching MeasureError otherwise."""
        return self


@dataclass(kw_only=True, repr=False)
class WaveformResult(MeasureResult):
    type: str = "waveform"
    status: str = "success"
    waveform: DecodedWaveform


@dataclass(kw_only=True, repr=False)
class ValueResult(MeasureResult):
    type: str = "value"
    status: str = "success"
    value: str = ""


@dataclass(kw_only=True, repr=False)
class AckResult(MeasureResult):
    type: str = "ack"
    status: str = "success"


@dataclass(kw_only=True, repr=False)
class ErrorResult(MeasureResult):
    """A failed session.

    `error` is the taxonomy category (connect, write, timeout, parse, decode,
    unknown_command, internal) and `kind` the specific cause within it, e.g.
    "refused" or "no_binary_marker".
    """

    type: str = "error"
    status: str = "error"
    error: str = "internal"
    kind: str = ""
    message: str = ""
    details: dict[str, int] = field(default_factory=dict)

    def raise_for_status(self) -> MeasureResult:
        from . import error_from_result

        raise error_from_result(self)
