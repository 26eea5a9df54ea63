"""Generic SCPI instrument driven entirely by its command map."""

from __future__ import annotations

from typing import Callable, Optional

from boardscope.comms import MultimeterMonitor
from boardscope.device.device import Instrument


class ScpiInstrument(Instrument):
    """Any raw-TCP SCPI instrument.

    Everything it can do comes from the configured command map; see
    Instrument.execute.
    """

    def monitor(
        self,
        on_data: Optional[Callable[[str], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ) -> MultimeterMonitor:
        """A (not yet started) monitor for unsolicited readings."""
        return MultimeterMonitor(self.endpoint(), on_data=on_data, on_status=on_status)
