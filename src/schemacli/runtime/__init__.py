"""Runtime layer: the fixed library bundled into every built artifact.

Rules
-----
* Standard library only, plus Rich when it happens to be importable.
* May import :mod:`schemacli.exceptions` and :mod:`schemacli.version`;
  never ``compiler`` or ``cli``.
* All registry state is owned by instances, never by module globals.
"""
