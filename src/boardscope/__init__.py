# -*- coding: utf-8 -*-
"""# boardscope

Talks to networked bench instruments (oscilloscopes and multimeters) over raw
TCP with SCPI commands, and turns their replies into calibrated waveforms and
readings.

- [Types](boardscope/types.html): endpoints, waveforms, results and errors.
- [Protocol](boardscope/protocol.html): reply framing, parsing and decoding.
- [Comms](boardscope/comms.html): connections and request sessions.
- [Devices](boardscope/device.html): Rigol, Owon and generic SCPI drivers.
- [System](boardscope/system.html): INI instrument configuration.
- [CLI](boardscope/cli.html): the `boardscope` command.

Every request opens its own connection and resolves to exactly one result:
`WaveformResult`, `ValueResult`, `AckResult` or `ErrorResult`.
"""

from ._version import __version__
