"""Diagnostic console with optional Rich support.

Errors, warnings and hints go to stderr with a coloured severity
prefix.  Rich is imported lazily so that a built artifact keeps working
(in plain text) on an interpreter where Rich is not installed.
"""

from __future__ import annotations

import sys
from typing import Any

from schemacli.exceptions import EnvironmentError


def _load_rich_console_class() -> type[Any]:
    """Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
    try:
        from rich.console import Console
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Console


def _escape(text: str) -> str:
    from rich.markup import escape

    return escape(text)


def get_rich_console(*, color: bool = True) -> Any:
    """Create a Rich console instance targeting stderr."""
    console_class = _load_rich_console_class()
    return console_class(stderr=True, no_color=not color, highlight=False)


class ConsoleProxy:
    """Severity-prefixed stderr printer with a plain-text fallback.

    Parameters
    ----------
    color:
        When ``False`` Rich renders without ANSI colour codes.
    """

    def __init__(self, *, color: bool = True) -> None:
        self.color: bool = color

    def print(self, *objects: object) -> None:
        """Render with Rich when available, else plain stderr print."""
        try:
            rich_console = get_rich_console(color=self.color)
        except EnvironmentError:
            print(*objects, file=sys.stderr)
            return
        rich_console.print(*objects, soft_wrap=True)

    def plain(self, message: str) -> None:
        """Print *message* literally; square brackets are not markup."""
        try:
            rich_console = get_rich_console(color=self.color)
        except EnvironmentError:
            print(message, file=sys.stderr)
            return
        rich_console.print(message, markup=False, emoji=False, soft_wrap=True)

    def _prefixed(self, label: str, style: str, message: str) -> None:
        try:
            rich_console = get_rich_console(color=self.color)
        except EnvironmentError:
            print(f"{label} {message}", file=sys.stderr)
            return
        rich_console.print(
            f"[{style}]{label}[/{style}] {_escape(message)}",
            soft_wrap=True,
        )

    def error(self, message: str, *, hint: str | None = None) -> None:
        """Print ``Error: <message>`` and an optional ``Hint:`` line."""
        self._prefixed("Error:", "bold red", message)
        if hint:
            self._prefixed("Hint:", "yellow", hint)

    def warning(self, message: str) -> None:
        self._prefixed("Warning:", "yellow", message)

    def success(self, message: str) -> None:
        self._prefixed("OK:", "bold green", message)


console = ConsoleProxy()
