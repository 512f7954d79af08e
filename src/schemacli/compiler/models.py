"""Immutable build-time data models.

:class:`ArgSpec` and :class:`CommandSchema` mirror one ``schema.json``
document.  :class:`CompletionMetadata` accumulates what the completion
generator needs while the compiler walks the project.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from schemacli.runtime.builtins import BUILTIN_COMMANDS, SHELL_FLAG
from schemacli.runtime.flags import BUILTIN_FLAGS, FlagDefinition


@dataclass(frozen=True, slots=True)
class ArgSpec:
    """One entry of a schema's ``args`` array."""

    name: str
    """Long flag name, without dashes."""

    short: str = ""
    """Single-character short name, or empty."""

    type: str = "string"
    """Type string: ``string``, ``int``, ``bool``, ``path``, ``enum:a:b`` or ``none``."""

    required: bool = False
    default: str = ""
    help: str = ""

    def to_flag(self, scope: str) -> FlagDefinition:
        return FlagDefinition(
            long_name=self.name,
            short_name=self.short,
            type=self.type,
            required=self.required,
            default=self.default,
            help_text=self.help,
            scope=scope,
        )


@dataclass(frozen=True, slots=True)
class CommandSchema:
    """A parsed ``schema.json`` document."""

    name: str
    description: str
    args: tuple[ArgSpec, ...] = ()
    source: Path | None = None
    """File the schema was read from, for error messages."""


@dataclass(frozen=True, slots=True)
class CompiledCommand:
    """A command accepted by the compiler, ready for staging."""

    schema: CommandSchema
    handler_path: Path
    """The command's ``main.py``."""

    module: str
    """Module name of the handler inside the artifact's ``_commands`` package."""

    flags: tuple[FlagDefinition, ...] = ()
    """Normalised definitions, in schema order."""


@dataclass
class CompletionMetadata:
    """Command and flag facts collected during compilation.

    Keys of :attr:`flag_types`, :attr:`flag_shorts` and
    :attr:`flag_help` are ``"<command>:<flag>"``.
    """

    commands: list[str] = field(default_factory=list)
    descriptions: dict[str, str] = field(default_factory=dict)
    command_flags: dict[str, list[str]] = field(default_factory=dict)
    flag_types: dict[str, str] = field(default_factory=dict)
    flag_shorts: dict[str, str] = field(default_factory=dict)
    flag_help: dict[str, str] = field(default_factory=dict)
    global_flags: tuple[FlagDefinition, ...] = BUILTIN_FLAGS

    @classmethod
    def with_builtins(cls) -> CompletionMetadata:
        """Metadata pre-seeded with the builtin commands and their flags."""
        metadata = cls()
        for name, help_text in BUILTIN_COMMANDS:
            metadata.add_command(name, help_text)
        metadata.add_flag(SHELL_FLAG.scope, SHELL_FLAG)
        return metadata

    def add_command(self, name: str, description: str) -> None:
        self.commands.append(name)
        self.descriptions[name] = description
        self.command_flags.setdefault(name, [])

    def add_flag(self, command: str, definition: FlagDefinition) -> None:
        key = f"{command}:{definition.long_name}"
        self.command_flags.setdefault(command, []).extend(definition.spellings)
        self.flag_types[key] = definition.type
        self.flag_help[key] = definition.help_text
        if definition.short_name:
            self.flag_shorts[key] = definition.short_name

    def flag_names(self, command: str) -> list[str]:
        """Long names declared for *command*, in declaration order."""
        prefix = f"{command}:"
        return [key[len(prefix):] for key in self.flag_types if key.startswith(prefix)]
