"""Type validators used by the flag parser, the schema compiler and handlers.

The ``is_*`` predicates are side-effect free apart from
:func:`is_valid_path`, which consults the filesystem at call time.  The
``require_*`` variants raise :class:`~schemacli.exceptions.ValidationError`
(exit code 2) and return the checked value.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable

from schemacli.exceptions import ValidationError

_INT_RE = re.compile(r"-?[0-9]+")
_KEY_RE = re.compile(r"[A-Za-z][A-Za-z0-9_-]*")

TRUE_WORDS: frozenset[str] = frozenset({"true", "yes", "1", "on"})
FALSE_WORDS: frozenset[str] = frozenset({"false", "no", "0", "off"})


def is_int(value: str) -> bool:
    """Return ``True`` for an optionally negative run of ASCII digits."""
    return _INT_RE.fullmatch(value) is not None


def is_bool(value: str) -> bool:
    """Return ``True`` for any case-insensitive boolean spelling."""
    lowered = value.lower()
    return lowered in TRUE_WORDS or lowered in FALSE_WORDS


def normalize_bool(value: str) -> str:
    """Map a boolean spelling onto ``"true"`` or ``"false"``.

    Values outside the accepted vocabulary normalise to ``"false"``;
    callers validate with :func:`is_bool` first.
    """
    return "true" if value.lower() in TRUE_WORDS else "false"


def is_valid_path(value: str) -> bool:
    """Return ``True`` when *value* names an existing file or directory."""
    return bool(value) and os.path.exists(value)


def is_enum(value: str, allowed: Iterable[str]) -> bool:
    return value in tuple(allowed)


def is_valid_key(value: str) -> bool:
    """Return ``True`` for names usable as a command or flag name.

    Names start with a letter and continue with letters, digits, ``_``
    or ``-``; this keeps them safe to emit into generated Python and
    shell source.
    """
    return _KEY_RE.fullmatch(value) is not None


def is_port(value: str) -> bool:
    """Return ``True`` for a TCP/UDP port number in ``1..65535``."""
    return value.isdigit() and value.isascii() and 1 <= int(value) <= 65535


# ---------------------------------------------------------------------------
# Raising variants for handlers
# ---------------------------------------------------------------------------

def require_int(name: str, value: str) -> int:
    """Return *value* as an ``int`` or raise :class:`ValidationError`."""
    if not is_int(value):
        raise ValidationError(f"'{name}' must be an integer, got '{value}'")
    return int(value)


def require_path(name: str, value: str) -> str:
    if not is_valid_path(value):
        raise ValidationError(f"'{name}' path does not exist: '{value}'")
    return value


def require_enum(name: str, value: str, allowed: Iterable[str]) -> str:
    choices = tuple(allowed)
    if not is_enum(value, choices):
        raise ValidationError(f"'{name}' must be one of: {', '.join(choices)}, got '{value}'")
    return value


def require_nonempty(name: str, value: str) -> str:
    if not value:
        raise ValidationError(f"'{name}' cannot be empty")
    return value


def require_port(name: str, value: str) -> int:
    if not is_port(value):
        raise ValidationError(f"'{name}' must be a valid port (1-65535), got '{value}'")
    return int(value)
