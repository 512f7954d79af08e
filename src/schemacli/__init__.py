"""schemacli: schema-driven command-line application framework.

Command schemas plus a fixed runtime library are compiled into one
self-contained, executable zip application with command dispatch,
typed flag parsing, help generation and shell tab-completion.
"""

from schemacli.version import __version__

__all__: list[str] = ["__version__"]
