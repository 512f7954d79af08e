"""Flag registry and argument parser.

A :class:`FlagRegistry` owns three pieces of per-process state: the
ordered flag definitions, the value store (long name → normalised
string value) and the positional arguments of the last parse pass.

Parsing rules
-------------
* ``--flag=value`` splits on the first ``=``.
* ``--flag value`` / ``-f value`` consume the next token as the value,
  unless the flag is ``bool``/``none`` typed or the next token starts
  with ``-``; in those cases the value is ``"true"``.
* ``-abc`` expands to ``-a -b -c``, each valued ``"true"``.
* Anything else (including a lone ``-``) is positional.

After the pass every required flag visible to the command must hold a
non-empty value, and every mutex group may hold at most one non-empty
member.

A registry supports one parse pass at a time.  Build a fresh registry
per process (or per test) rather than sharing one across threads.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from schemacli.exceptions import InternalError, UsageError, ValidationError
from schemacli.runtime.validation import (
    is_bool,
    is_enum,
    is_int,
    is_valid_path,
    normalize_bool,
)

GLOBAL_SCOPE: str = "global"
"""Scope sentinel for flags recognised by every command."""

ALL_SCOPES: str = "all"
"""Pseudo-scope accepted by :meth:`FlagRegistry.generate_help`."""

FLAG_KINDS: tuple[str, ...] = ("string", "int", "bool", "path", "enum", "none")


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FlagType:
    """Parsed form of a type string such as ``int`` or ``enum:a:b``."""

    kind: str
    choices: tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> FlagType:
        """Parse *text* or raise :class:`InternalError` for unknown types."""
        if text.startswith("enum:"):
            choices = tuple(value for value in text[len("enum:"):].split(":") if value)
            if not choices:
                raise InternalError(f"Enum flag type declares no values: {text}")
            return cls("enum", choices)
        if text in FLAG_KINDS and text != "enum":
            return cls(text)
        raise InternalError(f"Unknown flag type: {text}")

    @property
    def takes_value(self) -> bool:
        """Whether ``--flag value`` may consume the following token."""
        return self.kind not in ("bool", "none")

    @property
    def hint(self) -> str:
        """Placeholder rendered after the flag spelling in help output."""
        if self.kind == "enum":
            return "<" + "|".join(self.choices) + ">"
        if self.kind in ("string", "int", "path"):
            return f"<{self.kind}>"
        return ""

    def __str__(self) -> str:
        if self.kind == "enum":
            return "enum:" + ":".join(self.choices)
        return self.kind


@dataclass(frozen=True, slots=True)
class FlagDefinition:
    """One registered flag.  Immutable once registered."""

    long_name: str
    short_name: str = ""
    type: str = "string"
    required: bool = False
    default: str = ""
    help_text: str = ""
    scope: str = GLOBAL_SCOPE

    @property
    def flag_type(self) -> FlagType:
        return FlagType.parse(self.type)

    def visible_to(self, command: str) -> bool:
        """Return ``True`` if *command* may use this flag."""
        return self.scope == GLOBAL_SCOPE or self.scope == command

    def matches(self, key: str) -> bool:
        return key == self.long_name or (bool(self.short_name) and key == self.short_name)

    @property
    def spellings(self) -> tuple[str, ...]:
        """``("--long", "-s")`` or ``("--long",)``."""
        if self.short_name:
            return (f"--{self.long_name}", f"-{self.short_name}")
        return (f"--{self.long_name}",)


@dataclass(frozen=True, slots=True)
class MutexGroup:
    """Named set of flag long names of which at most one may be set."""

    name: str
    members: tuple[str, ...]


def _scopes_overlap(first: str, second: str) -> bool:
    return first == second or GLOBAL_SCOPE in (first, second)


def _display(key: str) -> str:
    return f"-{key}" if len(key) == 1 else f"--{key}"


# ---------------------------------------------------------------------------
# Built-in global flags
# ---------------------------------------------------------------------------

BUILTIN_FLAGS: tuple[FlagDefinition, ...] = (
    FlagDefinition("help", "h", "none", help_text="Show help message"),
    FlagDefinition("verbose", "v", "none", help_text="Enable verbose output"),
    FlagDefinition("quiet", "q", "none", help_text="Suppress output"),
    FlagDefinition("no-color", "", "none", help_text="Disable colored output"),
    FlagDefinition("version", "V", "none", help_text="Show version"),
)

BUILTIN_MUTEX_GROUPS: tuple[MutexGroup, ...] = (
    MutexGroup("verbosity", ("verbose", "quiet")),
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class FlagRegistry:
    """Flag definitions, current values and positional arguments."""

    def __init__(self) -> None:
        self._definitions: list[FlagDefinition] = []
        self._values: dict[str, str] = {}
        self._positionals: list[str] = []
        self._mutex_groups: dict[str, MutexGroup] = {}

    @classmethod
    def with_builtins(cls) -> FlagRegistry:
        """Return a registry pre-loaded with the global built-in flags."""
        registry = cls()
        for definition in BUILTIN_FLAGS:
            registry.register(definition)
        for group in BUILTIN_MUTEX_GROUPS:
            registry.register_mutex_group(group.name, *group.members)
        return registry

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, definition: FlagDefinition) -> None:
        """Append *definition* and seed its default value.

        Raises
        ------
        InternalError
            If the type string is unknown, or the long/short name clashes
            with a flag already visible in an overlapping scope.
        """
        FlagType.parse(definition.type)
        for existing in self._definitions:
            if not _scopes_overlap(existing.scope, definition.scope):
                continue
            if existing.long_name == definition.long_name:
                raise InternalError(
                    f"Duplicate flag --{definition.long_name} "
                    f"(scopes '{existing.scope}' and '{definition.scope}')",
                )
            if definition.short_name and existing.short_name == definition.short_name:
                raise InternalError(
                    f"Short flag -{definition.short_name} of --{definition.long_name} "
                    f"is already used by --{existing.long_name}",
                )
        self._definitions.append(definition)
        if definition.default:
            self._values[definition.long_name] = definition.default

    def register_mutex_group(self, name: str, *flag_names: str) -> None:
        """Declare *flag_names* mutually exclusive under group *name*."""
        self._mutex_groups[name] = MutexGroup(name, tuple(flag_names))

    @property
    def definitions(self) -> tuple[FlagDefinition, ...]:
        return tuple(self._definitions)

    @property
    def mutex_groups(self) -> tuple[MutexGroup, ...]:
        return tuple(self._mutex_groups.values())

    def visible(self, command: str) -> list[FlagDefinition]:
        """Definitions usable by *command*, in registration order."""
        return [d for d in self._definitions if d.visible_to(command)]

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, command: str, tokens: Sequence[str]) -> list[str]:
        """Parse *tokens* for *command* and return the positional arguments.

        Raises
        ------
        UsageError
            Unknown flag, flag outside the command's scope, missing
            required flag, or mutex-group violation.
        ValidationError
            A value failed its flag's type validation.
        """
        self._reset_values(command)
        self._positionals = []

        index = 0
        while index < len(tokens):
            token = tokens[index]
            index += 1

            if token.startswith("--"):
                body = token[2:]
                if "=" in body:
                    key, value = body.split("=", 1)
                    self._store(self._lookup(key, command), value)
                    continue
                index = self._take(body, command, tokens, index)
            elif token.startswith("-") and token != "-":
                keys = token[1:]
                if len(keys) > 1:
                    for key in keys:
                        self._store(self._lookup(key, command), "true")
                else:
                    index = self._take(keys, command, tokens, index)
            else:
                self._positionals.append(token)

        self._validate_required(command)
        self._validate_mutex_groups()
        return list(self._positionals)

    def _take(self, key: str, command: str, tokens: Sequence[str], index: int) -> int:
        """Store a flag that may consume ``tokens[index]``; return the new index."""
        definition = self._lookup(key, command)
        if (
            definition.flag_type.takes_value
            and index < len(tokens)
            and not tokens[index].startswith("-")
        ):
            self._store(definition, tokens[index])
            return index + 1
        self._store(definition, "true")
        return index

    def _lookup(self, key: str, command: str) -> FlagDefinition:
        for definition in self._definitions:
            if definition.visible_to(command) and definition.matches(key):
                return definition
        for definition in self._definitions:
            if definition.matches(key):
                raise UsageError(
                    f"Flag --{definition.long_name} is not valid for command '{command}'",
                )
        raise UsageError(f"Unknown flag: {_display(key)}")

    def _reset_values(self, command: str) -> None:
        # Defaults of the command's own flags are seeded last so they win
        # over same-named flags declared by other commands.
        self._values = {}
        hidden = [d for d in self._definitions if not d.visible_to(command)]
        for definition in [*hidden, *self.visible(command)]:
            if definition.default:
                self._values[definition.long_name] = definition.default

    def _store(self, definition: FlagDefinition, value: str) -> None:
        name = definition.long_name
        flag_type = definition.flag_type

        if flag_type.kind == "int":
            if not is_int(value):
                raise ValidationError(f"Flag --{name} requires an integer, got '{value}'")
        elif flag_type.kind == "bool":
            if not is_bool(value):
                raise ValidationError(
                    f"Flag --{name} requires a boolean, got '{value}'",
                    hint="Use one of: true, false, yes, no, 1, 0, on, off",
                )
            value = normalize_bool(value)
        elif flag_type.kind == "path":
            if not is_valid_path(value):
                raise ValidationError(f"Flag --{name} path does not exist: '{value}'")
        elif flag_type.kind == "enum":
            if not is_enum(value, flag_type.choices):
                raise ValidationError(
                    f"Flag --{name} must be one of: {', '.join(flag_type.choices)}, "
                    f"got '{value}'",
                )

        self._values[name] = value

    def _validate_required(self, command: str) -> None:
        for definition in self.visible(command):
            if definition.required and not self._values.get(definition.long_name):
                raise UsageError(f"Required flag --{definition.long_name} is missing")

    def _validate_mutex_groups(self) -> None:
        for group in self._mutex_groups.values():
            set_flags = [f"--{name}" for name in group.members if self._values.get(name)]
            if len(set_flags) > 1:
                raise UsageError(f"Flags {' '.join(set_flags)} are mutually exclusive")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_value(self, name: str, default: str = "") -> str:
        return self._values.get(name) or default

    def has_flag(self, name: str) -> bool:
        return bool(self._values.get(name))

    def is_true(self, name: str) -> bool:
        return self._values.get(name, "false") == "true"

    def get_positional(self, index: int, default: str = "") -> str:
        if 0 <= index < len(self._positionals):
            return self._positionals[index] or default
        return default

    @property
    def positionals(self) -> tuple[str, ...]:
        return tuple(self._positionals)

    @property
    def positional_count(self) -> int:
        return len(self._positionals)

    @property
    def values(self) -> dict[str, str]:
        """Snapshot of the value store."""
        return dict(self._values)

    # ------------------------------------------------------------------
    # Help
    # ------------------------------------------------------------------

    def generate_help(self, scope: str = GLOBAL_SCOPE) -> str:
        """Render one line per flag visible to *scope* (or every flag for ``"all"``)."""
        lines: list[str] = []
        for definition in self._definitions:
            if scope != ALL_SCOPES and not definition.visible_to(scope):
                continue
            lines.append(_help_line(definition))
        return "\n".join(lines)


def _help_line(definition: FlagDefinition) -> str:
    spelling = f"  --{definition.long_name}"
    if definition.short_name:
        spelling += f", -{definition.short_name}"
    hint = definition.flag_type.hint
    if hint:
        spelling += f" {hint}"

    line = f"{spelling:<22} {definition.help_text}".rstrip()
    if definition.required:
        line += " (required)"
    elif definition.default:
        line += f" [default: {definition.default}]"
    return line
