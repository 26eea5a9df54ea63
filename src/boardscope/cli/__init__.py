"""
Command-line interface for boardscope.

This module provides command-line tools for talking to networked bench
instruments, including:

- Probing an address for a listening instrument
- Capturing oscilloscope waveforms
- Multimeter readings, mode switching and live monitoring
- Running any configured command map action
- Managing instrument configurations

The CLI is built using the Click framework. Every command prints its result
as JSON and exits with status 1 when the request fails.

Examples
--------
Capturing channel 2 from a configured scope:
```bash
$ boardscope scope capture -i rigol -c 2
```

Reading a multimeter by address:
```bash
$ boardscope dmm read resistance --host 192.168.1.100
```

Trying things out without hardware:
```bash
$ boardscope scope capture --mock --json
```

See Also
--------
boardscope.device : Instrument drivers
boardscope.system : Instrument configuration


CLI Tree
--------

```
$ boardscope --tree
cli
└── dmm
    └── configure
    └── monitor
    └── read
└── exec
└── instruments
    └── check
    └── init
    └── list
└── probe
└── scope
    └── capture
```
"""

from .base import cli, tree_option
from .dmm import dmm
from .scope import scope

# Register subcommands directly under cli
cli.add_command(scope)
cli.add_command(dmm)

__all__ = ["cli", "tree_option"]
