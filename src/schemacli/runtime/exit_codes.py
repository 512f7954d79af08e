"""Exit-code constants shared by artifacts and the builder.

Centralised here so that every exit path uses a well-known, tested
value rather than magic integers scattered across the codebase.
"""

from __future__ import annotations

from schemacli.exceptions import (
    EnvironmentError,
    ExternalError,
    InternalError,
    SchemaError,
    UsageError,
    ValidationError,
)

SUCCESS: int = 0
"""Clean exit: command completed without error."""

USAGE: int = 1
"""Unknown command or flag, missing required flag, mutex violation."""

VALIDATION: int = 2
"""A flag value (or, at build time, a schema) failed validation."""

ENVIRONMENT: int = 3
"""A required external dependency is missing."""

INTERNAL: int = 4
"""Framework invariant violated, or an unhandled exception escaped."""

EXTERNAL: int = 5
"""An external command exited unsuccessfully."""

KEYBOARD_INTERRUPT: int = 130
"""User pressed Ctrl+C.  Follows POSIX convention (128 + SIGINT=2)."""


_BY_EXCEPTION: tuple[tuple[type[Exception], int], ...] = (
    (UsageError, USAGE),
    (ValidationError, VALIDATION),
    (SchemaError, VALIDATION),
    (EnvironmentError, ENVIRONMENT),
    (ExternalError, EXTERNAL),
    (InternalError, INTERNAL),
)


def code_for(exc: BaseException) -> int:
    """Return the exit code that reports *exc*."""
    for exc_type, code in _BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return code
    if isinstance(exc, KeyboardInterrupt):
        return KEYBOARD_INTERRUPT
    return INTERNAL
