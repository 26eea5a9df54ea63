"""Instrument base class.

All instrument drivers inherit from Instrument. A driver holds configuration
only: every request opens its own connection through boardscope.comms, so a
driver instance can serve concurrent requests without sharing any socket.

The Instrument class provides:
1. Configuration validation
2. The command map (action key -> SCPI command)
3. Generic action execution (query or write, decided by the command)
4. Endpoint construction with the driver's default timeout
"""

from __future__ import annotations

from typing import Optional, Type, TypeVar

from loguru import logger

from boardscope.comms import configure, probe, query
from boardscope.types import (
    InstrumentConfig,
    InstrumentEndpoint,
    MeasureResult,
    UnknownCommandError,
)
from boardscope.util.defaults import DEFAULT_COMMAND_TIMEOUT_MS

I = TypeVar("I", bound="Instrument")


class Instrument:
    """Base class for all networked instruments.

    Attributes
    ----------
    required_config : dict[str, Type]
        Required configuration parameters and their types
    default_commands : dict[str, str]
        Command map entries available unless overridden by configuration
    default_timeout_ms : int
        Request deadline when the configuration gives none

    Examples
    --------
    ```python
    dmm = OwonMultimeter(host="192.168.1.100", port=9876)
    result = await dmm.execute("IDN")
    ```
    """

    required_config: dict[str, Type] = {"host": str, "port": int}
    default_commands: dict[str, str] = {"IDN": "*IDN?"}
    default_timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS

    host: str
    port: int

    def __init__(
        self,
        name: str = "",
        timeout_ms: Optional[int] = None,
        command_map: Optional[dict[str, str]] = None,
        **config_kwargs,
    ):
        for key, value in config_kwargs.items():
            setattr(self, key, value)
        for key, value in self.required_config.items():
            if not hasattr(self, key):
                logger.error(
                    f"Instrument {self.__class__.__name__} missing required config "
                    + f"key: {key}"
                )
                raise ValueError(
                    f"Instrument {self.__class__.__name__} missing required config "
                    + f"key: {key}"
                )
            if not isinstance(getattr(self, key), value):
                logger.error(
                    f"Instrument {self.__class__.__name__} config key {key} "
                    + f"has wrong type: {type(getattr(self, key))} (expected {value})"
                )
                raise ValueError(
                    f"Instrument {self.__class__.__name__} config key {key} has "
                    + f"wrong type: {type(getattr(self, key))} (expected {value})"
                )
        self.name = name or self.__class__.__name__
        self.timeout_ms = timeout_ms if timeout_ms is not None else self.default_timeout_ms
        self.command_map = {
            key.upper(): cmd
            for key, cmd in {**self.default_commands, **(command_map or {})}.items()
        }

    @classmethod
    def from_config(cls: Type[I], config: InstrumentConfig) -> I:
        return cls(
            name=config.name,
            host=config.endpoint.host,
            port=config.endpoint.port,
            timeout_ms=config.endpoint.timeout_ms,
            command_map=config.command_map,
        )

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r}, {self.host}:{self.port})"

    def endpoint(self, timeout_ms: Optional[int] = None) -> InstrumentEndpoint:
        return InstrumentEndpoint(
            self.host,
            self.port,
            timeout_ms if timeout_ms is not None else self.timeout_ms,
        )

    def command(self, action_key: str) -> str:
        """SCPI command for an action key.

        Raises
        ------
        UnknownCommandError
            If the command map has no entry for the key.
        """
        try:
            return self.command_map[action_key.upper()]
        except KeyError:
            raise UnknownCommandError(
                f"Instrument {self.name} has no command configured for {action_key}",
                kind=action_key,
            ) from None

    async def check_connection(self) -> MeasureResult:
        """Open and close a connection to the instrument."""
        return await probe(self.endpoint())

    async def execute(self, action_key: str) -> MeasureResult:
        """Run a command map action.

        Commands containing "?" are queries and return a ValueResult with the
        reply line. Other commands are written and acknowledged.
        """
        try:
            cmd = self.command(action_key)
        except UnknownCommandError as err:
            logger.warning(err.message)
            return err.to_result()
        logger.debug("{} executing {} -> {}", self.name, action_key, cmd)
        if "?" in cmd:
            return await query(self.endpoint(), cmd)
        return await configure(self.endpoint(), cmd)

    def unroll_metadata(self) -> dict:
        """Configuration of this instrument as a plain dict."""
        return {
            "name": self.name,
            "driver": self.__class__.__name__,
            "host": self.host,
            "port": self.port,
            "timeout_ms": self.timeout_ms,
            "command_map": dict(self.command_map),
        }
