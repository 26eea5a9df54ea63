# Driver for Owon XDM series bench multimeters over raw TCP (SCPI)
from __future__ import annotations

from loguru import logger

from boardscope.comms import measure_value
from boardscope.device.scpi import ScpiInstrument
from boardscope.types import MeasureResult, UnknownCommandError
from boardscope.util.defaults import DEFAULT_COMMAND_TIMEOUT_MS

# mode -> (configure action, read action)
MODES = {
    "voltage": ("CONFIGURE_VOLTAGE", "READ_DC"),
    "resistance": ("CONFIGURE_RESISTANCE", "READ_RESISTANCE"),
    "diode": ("CONFIGURE_DIODE", "READ_DIODE"),
}


class OwonMultimeter(ScpiInstrument):
    default_timeout_ms = DEFAULT_COMMAND_TIMEOUT_MS
    default_commands = {
        "IDN": "*IDN?",
        "READ_DC": "MEAS:SHOW?",
        "READ_RESISTANCE": "MEAS:SHOW?",
        "READ_DIODE": "MEAS:SHOW?",
        "CONFIGURE_VOLTAGE": "CONF:VOLT:DC AUTO",
        "CONFIGURE_RESISTANCE": "CONF:RES AUTO",
        "CONFIGURE_DIODE": "CONF:DIOD",
    }

    def _mode_actions(self, mode: str) -> tuple[str, str]:
        try:
            return MODES[mode]
        except KeyError:
            raise UnknownCommandError(
                f"Unknown multimeter mode {mode!r}, expected one of {sorted(MODES)}",
                kind=mode,
            ) from None

    async def configure(self, mode: str) -> MeasureResult:
        """Switch measurement mode ("voltage", "resistance" or "diode")."""
        try:
            action, _ = self._mode_actions(mode)
        except UnknownCommandError as err:
            return err.to_result()
        return await self.execute(action)

    async def read(self, mode: str = "voltage") -> MeasureResult:
        """Take one reading in the given mode.

        The first reply chunk is the reading; these meters answer in a single
        segment.
        """
        try:
            _, action = self._mode_actions(mode)
            cmd = self.command(action)
        except UnknownCommandError as err:
            logger.warning(err.message)
            return err.to_result()
        return await measure_value(self.endpoint(), cmd)
