"""Configuration types for instrument endpoints and instrument definitions."""

from dataclasses import dataclass, field

from mashumaro import DataClassDictMixin

INSTRUMENT_TYPES = ("multimeter", "oscilloscope")


@dataclass(frozen=True)
class InstrumentEndpoint(DataClassDictMixin):
    """Network address of one instrument plus the deadline for a single request.

    Immutable, created per request by the caller.
    """

    host: str
    port: int
    timeout_ms: int

    @property
    def timeout(self) -> float:
        """Deadline in seconds, as asyncio expects."""
        return self.timeout_ms / 1000.0

    def with_timeout(self, timeout_ms: int) -> "InstrumentEndpoint":
        return InstrumentEndpoint(self.host, self.port, timeout_ms)

    def __str__(self):
        return f"{self.host}:{self.port}"


@dataclass(kw_only=True)
class InstrumentConfig(DataClassDictMixin):
    """An instrument definition loaded from an INI section.

    Attributes
    ----------
    name : str
        Section name, e.g. "owon_xdm".
    type : str
        One of INSTRUMENT_TYPES.
    driver : str
        Driver class name in boardscope.device.
    endpoint : InstrumentEndpoint
        Address and default timeout.
    command_map : dict[str, str]
        Action key -> SCPI command string.
    """

    name: str
    type: str
    driver: str
    endpoint: InstrumentEndpoint
    command_map: dict[str, str] = field(default_factory=dict)
