"""Command registry: maps command names to help text and handlers.

Handlers are plain callables taking a single
:class:`~schemacli.runtime.dispatcher.Context` and returning an exit code
(``None`` meaning success).  A command registered without an explicit
handler is resolved by convention: ``cmd_<name>`` (dashes become
underscores) looked up in the registry's handler namespace.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from schemacli.exceptions import InternalError

if TYPE_CHECKING:
    from schemacli.runtime.dispatcher import Context

Handler = Callable[["Context"], "int | None"]


def default_handler_name(command: str) -> str:
    """Return the conventional handler name for *command*."""
    return "cmd_" + command.replace("-", "_")


@dataclass(frozen=True, slots=True)
class CommandEntry:
    """A registered command."""

    name: str
    help_text: str
    handler: Handler | None = None

    @property
    def handler_name(self) -> str:
        if self.handler is not None:
            return getattr(self.handler, "__name__", default_handler_name(self.name))
        return default_handler_name(self.name)


class CommandRegistry:
    """Ordered set of :class:`CommandEntry` keyed by name.

    Parameters
    ----------
    namespace:
        Mapping searched for ``cmd_<name>`` when an entry carries no
        explicit handler.
    """

    def __init__(self, namespace: Mapping[str, Any] | None = None) -> None:
        self._entries: dict[str, CommandEntry] = {}
        self._namespace: dict[str, Any] = dict(namespace or {})

    def register(
        self,
        name: str,
        help_text: str = "",
        handler: Handler | None = None,
    ) -> CommandEntry:
        """Register *name*; raise :class:`InternalError` if it already exists."""
        if name in self._entries:
            raise InternalError(f"Command '{name}' is already registered")
        entry = CommandEntry(name=name, help_text=help_text, handler=handler)
        self._entries[name] = entry
        return entry

    def exists(self, name: str) -> bool:
        return name in self._entries

    def get(self, name: str) -> CommandEntry | None:
        return self._entries.get(name)

    def help_for(self, name: str) -> str:
        entry = self._entries.get(name)
        return entry.help_text if entry is not None else ""

    def handler_for(self, name: str) -> Handler | None:
        """Resolve the handler of *name*, or ``None`` when unresolvable."""
        entry = self._entries.get(name)
        if entry is None:
            return None
        if entry.handler is not None:
            return entry.handler
        candidate = self._namespace.get(default_handler_name(name))
        return candidate if callable(candidate) else None

    def list_names(self) -> list[str]:
        """All registered names, lexicographically sorted."""
        return sorted(self._entries)

    @property
    def entries(self) -> tuple[CommandEntry, ...]:
        return tuple(self._entries[name] for name in self.list_names())


class LazyHandler:
    """Handler that imports its module on first call.

    Generated artifacts register one per command so that only the
    dispatched command's module is imported, and an import failure
    surfaces inside the dispatcher's error boundary.
    """

    def __init__(self, command: str, module: str, attribute: str | None = None) -> None:
        self.command = command
        self.module = module
        self.attribute = attribute or default_handler_name(command)

    def resolve(self) -> Handler:
        """Import the module and return the handler callable.

        Raises
        ------
        InternalError
            If the module cannot be imported or defines no callable
            with the expected name.
        """
        try:
            module = importlib.import_module(self.module)
        except ImportError as exc:
            raise InternalError(
                f"Cannot import handler module '{self.module}' for command '{self.command}': {exc}",
            ) from exc
        handler = getattr(module, self.attribute, None)
        if not callable(handler):
            raise InternalError(
                f"Handler '{self.attribute}' for command '{self.command}' not found",
                hint=f"Define {self.attribute}(ctx) in the command's main.py.",
            )
        return handler

    def __call__(self, ctx: Context) -> int | None:
        return self.resolve()(ctx)

    def __repr__(self) -> str:
        return f"LazyHandler({self.command!r}, {self.module!r}, {self.attribute!r})"
