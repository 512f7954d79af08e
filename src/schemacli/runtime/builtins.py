"""Commands every built artifact ships with.

``help``, ``version``, ``commands`` and ``completion`` are registered
before any schema-declared command, so a schema cannot redefine them.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from typing import TYPE_CHECKING

from schemacli.exceptions import InternalError
from schemacli.runtime.flags import FlagDefinition

if TYPE_CHECKING:
    from schemacli.runtime.dispatcher import Application, Context

BUILTIN_COMMANDS: tuple[tuple[str, str], ...] = (
    ("help", "Show help information"),
    ("version", "Show version information"),
    ("commands", "List available commands"),
    ("completion", "Generate shell completion script"),
)
"""``(name, help)`` pairs in registration order."""

SHELL_FLAG = FlagDefinition(
    "shell",
    "s",
    "enum:bash:zsh",
    help_text="Shell type (bash, zsh)",
    scope="completion",
)

SHELLS: tuple[str, ...] = ("bash", "zsh")


def register_builtins(app: Application) -> None:
    for name, help_text in BUILTIN_COMMANDS:
        app.commands.register(name, help_text)
    app.flags.register(SHELL_FLAG)


def detect_shell(environ: Mapping[str, str] | None = None) -> str:
    """Guess the calling shell: ``ZSH_VERSION``, ``BASH_VERSION``, then ``$SHELL``."""
    env = os.environ if environ is None else environ
    if env.get("ZSH_VERSION"):
        return "zsh"
    if env.get("BASH_VERSION"):
        return "bash"
    shell = os.path.basename(env.get("SHELL", ""))
    return shell if shell in SHELLS else "bash"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def cmd_help(ctx: Context) -> None:
    ctx.app.write(ctx.app.help_for(ctx.get_positional(0)))


def cmd_version(ctx: Context) -> None:
    ctx.app.write(ctx.app.version_text())


def cmd_commands(ctx: Context) -> None:
    ctx.app.write("Available commands:")
    ctx.app.write(ctx.app.command_table())


def cmd_completion(ctx: Context) -> None:
    """Print the completion script for ``--shell`` (or the detected shell)."""
    shell = ctx.get_value("shell") or detect_shell()
    script = ctx.app.completions.get(shell)
    if script is None:
        raise InternalError(f"No {shell} completion script is bundled with {ctx.app.name}")
    ctx.logger.debug("Emitting %s completion", shell)
    sys.stdout.write(script)
