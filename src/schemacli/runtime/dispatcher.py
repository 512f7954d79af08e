"""Command dispatch and the artifact's error boundary.

:class:`Application` owns one :class:`~schemacli.runtime.flags.FlagRegistry`
and one :class:`~schemacli.runtime.commands.CommandRegistry`.  A run is
exactly one parse pass followed by at most one handler invocation.

:meth:`Application.run` is the **sole error boundary** of a built
artifact: it converts every :class:`~schemacli.exceptions.SchemaCliError`
into a coloured stderr message and the matching exit code, so handlers
never call :func:`sys.exit` themselves.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import IO, NoReturn

from schemacli.exceptions import (
    EnvironmentError,
    ExternalError,
    InternalError,
    SchemaCliError,
    UsageError,
)
from schemacli.runtime import builtins, exit_codes, validation
from schemacli.runtime.commands import CommandRegistry
from schemacli.runtime.console import ConsoleProxy
from schemacli.runtime.flags import GLOBAL_SCOPE, FlagRegistry
from schemacli.runtime.log import configure_logging, detect_color_support, get_logger

DEFAULT_DESCRIPTION: str = "A schema-driven CLI"

_HELP_FLAGS: tuple[str, ...] = ("--help", "-h")
_VERSION_FLAGS: tuple[str, ...] = ("--version", "-V")


# ---------------------------------------------------------------------------
# Handler context
# ---------------------------------------------------------------------------

@dataclass
class Context:
    """Everything a command handler may read or do during one run."""

    app: Application
    command: str

    @property
    def flags(self) -> FlagRegistry:
        return self.app.flags

    def get_value(self, name: str, default: str = "") -> str:
        return self.app.flags.get_value(name, default)

    def has_flag(self, name: str) -> bool:
        return self.app.flags.has_flag(name)

    def is_true(self, name: str) -> bool:
        return self.app.flags.is_true(name)

    def get_positional(self, index: int, default: str = "") -> str:
        return self.app.flags.get_positional(index, default)

    @property
    def positionals(self) -> tuple[str, ...]:
        return self.app.flags.positionals

    @property
    def logger(self) -> logging.Logger:
        return get_logger(f"commands.{self.command}")

    def out(self, text: str = "") -> None:
        """Write a line to stdout unless quiet mode is active."""
        if not self.app.quiet:
            self.app.write(text)

    def success(self, message: str) -> None:
        """Print an ``OK:`` status line on stderr unless quiet."""
        if not self.app.quiet:
            self.app.console.success(message)

    def warning(self, message: str) -> None:
        """Print a ``Warning:`` status line on stderr unless quiet."""
        if not self.app.quiet:
            self.app.console.warning(message)

    # --- Validated flag values ------------------------------------------

    def require_int(self, name: str) -> int:
        return validation.require_int(name, self.get_value(name))

    def require_port(self, name: str) -> int:
        return validation.require_port(name, self.get_value(name))

    def require_path(self, name: str) -> str:
        return validation.require_path(name, self.get_value(name))

    def require_enum(self, name: str, allowed: Sequence[str]) -> str:
        return validation.require_enum(name, self.get_value(name), allowed)

    def require_value(self, name: str) -> str:
        """Return the flag value, raising :class:`ValidationError` when empty."""
        return validation.require_nonempty(name, self.get_value(name))

    def require_command(self, name: str) -> str:
        """Return the path of executable *name* or raise :class:`EnvironmentError`."""
        found = shutil.which(name)
        if found is None:
            raise EnvironmentError(
                f"Required command '{name}' not found",
                hint=f"Install {name} and make sure it is on PATH.",
            )
        return found

    def run_external(
        self,
        args: Sequence[str],
        *,
        capture: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        """Run an external command, raising :class:`ExternalError` on failure.

        Raises
        ------
        EnvironmentError
            If ``args[0]`` is not on ``PATH``.
        ExternalError
            If the process cannot be started or exits non-zero.
        """
        if not args:
            raise InternalError("run_external() needs at least a program name")
        self.require_command(args[0])
        self.logger.debug("Running: %s", " ".join(args))
        try:
            completed = subprocess.run(
                list(args),
                capture_output=capture,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ExternalError(f"Command '{args[0]}' could not be started: {exc}") from exc
        if completed.returncode != 0:
            raise ExternalError(
                f"Command '{args[0]}' failed with exit code {completed.returncode}",
            )
        return completed


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

class Application:
    """A built CLI: registries, help rendering and dispatch.

    Parameters
    ----------
    name:
        Program name used in help, version output and completions.
    version:
        Version string reported by ``--version`` and ``version``.
    description:
        One-line summary shown at the top of the global help.
    completions:
        Completion scripts keyed by dialect (``"bash"``, ``"zsh"``).
    """

    def __init__(
        self,
        name: str = "cli",
        version: str = "1.0.0",
        description: str = DEFAULT_DESCRIPTION,
        *,
        completions: Mapping[str, str] | None = None,
    ) -> None:
        self.name: str = name
        self.version: str = version
        self.description: str = description
        self.completions: dict[str, str] = dict(completions or {})
        self.flags: FlagRegistry = FlagRegistry.with_builtins()
        self.commands: CommandRegistry = CommandRegistry(namespace=vars(builtins))
        self.console: ConsoleProxy = ConsoleProxy(color=detect_color_support())
        self.quiet: bool = False
        self._command: str | None = None
        builtins.register_builtins(self)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    @staticmethod
    def write(text: str, *, stream: IO[str] | None = None) -> None:
        """Write *text* plus a trailing newline to stdout (or *stream*)."""
        target = stream if stream is not None else sys.stdout
        target.write(text if text.endswith("\n") else text + "\n")

    def version_text(self) -> str:
        return f"{self.name} version {self.version}"

    def command_table(self) -> str:
        return "\n".join(
            f"  {entry.name:<20} {entry.help_text}".rstrip()
            for entry in self.commands.entries
        )

    def global_help(self) -> str:
        name = self.name
        return "\n".join(
            [
                f"{name} - {self.description}",
                "",
                "Usage:",
                f"  {name} <command> [options] [arguments]",
                f"  {name} [global-options]",
                "",
                "Commands:",
                self.command_table(),
                "",
                "Global Options:",
                self.flags.generate_help(GLOBAL_SCOPE),
                "",
                f"Run '{name} <command> --help' for command-specific help.",
                "",
                "Enable tab completion:",
                f'  eval "$({name} completion)"          # bash (add to ~/.bashrc)',
                f'  eval "$({name} completion -s zsh)"   # zsh  (add to ~/.zshrc)',
            ]
        )

    def command_help(self, command: str) -> str:
        help_text = self.commands.help_for(command) or "No description available"
        return "\n".join(
            [
                f"{self.name} {command} - {help_text}",
                "",
                "Usage:",
                f"  {self.name} {command} [options] [arguments]",
                "",
                "Options:",
                self.flags.generate_help(command),
            ]
        )

    def help_for(self, topic: str = "") -> str:
        """Command help when *topic* is a registered command, else global help."""
        if topic and self.commands.exists(topic):
            return self.command_help(topic)
        return self.global_help()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, argv: Sequence[str]) -> int:
        """Route *argv* to a command handler and return its exit code.

        Raises
        ------
        UsageError
            Unknown command, or any usage failure raised by the parser.
        ValidationError
            A flag value failed type validation.
        InternalError
            The command's handler cannot be resolved.
        """
        self._command = None
        if not argv:
            self.write(self.global_help())
            return exit_codes.SUCCESS

        command = argv[0]
        if command in _HELP_FLAGS:
            self.write(self.global_help())
            return exit_codes.SUCCESS
        if command in _VERSION_FLAGS:
            self.write(self.version_text())
            return exit_codes.SUCCESS

        if not self.commands.exists(command):
            raise UsageError(f"Unknown command: {command}")
        self._command = command

        self.flags.parse(command, argv[1:])
        self._configure_logging()

        if self.flags.is_true("help"):
            self.write(self.command_help(command))
            return exit_codes.SUCCESS

        handler = self.commands.handler_for(command)
        if handler is None:
            entry = self.commands.get(command)
            handler_name = entry.handler_name if entry is not None else command
            raise InternalError(
                f"Handler '{handler_name}' for command '{command}' not found",
            )

        get_logger().debug("Executing command: %s", command)
        result = handler(Context(self, command))
        return exit_codes.SUCCESS if result is None else int(result)

    def _configure_logging(self) -> None:
        """Apply ``--verbose``/``--quiet``/``--no-color``/``log-file``."""
        self.console.color = detect_color_support()
        level = "info"
        if self.flags.is_true("verbose"):
            level = "debug"
        elif self.flags.is_true("quiet"):
            level = "none"
        self.quiet = level == "none"

        color: bool | None = None
        if self.flags.is_true("no-color"):
            color = False
            self.console.color = False

        configure_logging(
            level,
            color=color,
            log_file=self.flags.get_value("log-file") or None,
        )

    # ------------------------------------------------------------------
    # Error boundary
    # ------------------------------------------------------------------

    def run(self, argv: Sequence[str] | None = None) -> int:
        """Dispatch *argv* (default ``sys.argv[1:]``) and return an exit code.

        Never raises for framework errors: each is rendered on stderr and
        mapped through :func:`~schemacli.runtime.exit_codes.code_for`.
        """
        if argv is None:
            argv = sys.argv[1:]
        try:
            return self.dispatch(list(argv))
        except UsageError as exc:
            self.console.error(str(exc), hint=exc.hint)
            self.write("", stream=sys.stderr)
            self.write(self.help_for(self._command or ""), stream=sys.stderr)
            return exit_codes.USAGE
        except SchemaCliError as exc:
            self.console.error(str(exc), hint=exc.hint)
            return exit_codes.code_for(exc)
        except KeyboardInterrupt:
            self.console.print("\nAborted by user.")
            return exit_codes.KEYBOARD_INTERRUPT
        except Exception as exc:  # noqa: BLE001
            self.console.error(
                "Unexpected error. Please report this issue.",
                hint=f"{type(exc).__name__}: {exc}",
            )
            return exit_codes.INTERNAL

    def main(self, argv: Sequence[str] | None = None) -> NoReturn:
        """Console-script style entry point: :meth:`run` then exit."""
        sys.exit(self.run(argv))
