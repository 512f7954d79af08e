"""Allow ``python -m schemacli`` invocation.

This module simply delegates to the builder's error-boundary entry
point so that ``python -m schemacli`` behaves identically to the
``schemacli`` console script.
"""

from __future__ import annotations

from schemacli.cli.app import cli

if __name__ == "__main__":
    cli()
