"""Custom exception hierarchy for schemacli.

Every error the framework reports to a user is a subclass of
:class:`SchemaCliError`.  Each subclass corresponds to exactly one
process exit code (see :mod:`schemacli.runtime.exit_codes`); all of
them are fatal to the current run.  This module is bundled into every
built artifact, so it must not import anything outside the standard
library.

Hierarchy
---------
SchemaCliError
├── UsageError          unknown command/flag, missing required flag, mutex violation
├── ValidationError     flag value failed type validation
├── EnvironmentError    missing external dependency
├── InternalError       framework invariant violated (registration defect)
├── ExternalError       a shelled-out command failed
└── SchemaError         malformed command schema (build time only)
"""

from __future__ import annotations


class SchemaCliError(Exception):
    """Base exception for all schemacli errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the error boundaries can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Run time ---------------------------------------------------------------

class UsageError(SchemaCliError):
    """Raised when the command line is structurally wrong."""


class ValidationError(SchemaCliError):
    """Raised when a flag value does not satisfy its declared type."""


class EnvironmentError(SchemaCliError):
    """Raised when a required runtime dependency is not available."""


class InternalError(SchemaCliError):
    """Raised when a framework invariant is violated.

    This signals a defect in command registration (an unresolvable
    handler, an unknown flag type, a duplicate flag) rather than bad
    user input.
    """


class ExternalError(SchemaCliError):
    """Raised when an external command exits unsuccessfully."""


# --- Build time -------------------------------------------------------------

class SchemaError(SchemaCliError):
    """Raised when a command schema document cannot be compiled."""
