"""Schema compiler: ``schema.json`` documents to registration source.

Each command directory under ``<project>/commands`` holds a
``schema.json`` and a ``main.py``.  The compiler reads the schemas in
sorted directory order, checks every declaration against a scratch
:class:`~schemacli.runtime.flags.FlagRegistry` (so the artifact can never
fail registration at start-up), collects :class:`CompletionMetadata` and
renders the ``_registrations.py`` module of the artifact.

Only the flat schema shape is read: scalar top-level fields and an
``args`` array of flat objects.  Nested values are ignored.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from schemacli.compiler.models import ArgSpec, CommandSchema, CompiledCommand, CompletionMetadata
from schemacli.exceptions import InternalError, SchemaError
from schemacli.runtime.builtins import SHELL_FLAG
from schemacli.runtime.commands import default_handler_name
from schemacli.runtime.flags import FlagDefinition, FlagRegistry, FlagType
from schemacli.runtime.log import get_logger
from schemacli.runtime.validation import is_bool, is_enum, is_int, is_valid_key, normalize_bool

COMMANDS_DIR: str = "commands"
SCHEMA_FILE: str = "schema.json"
HANDLER_FILE: str = "main.py"

_SHORT_RE = re.compile(r"[A-Za-z0-9]")
_UNSAFE_ENUM_CHARS = re.compile(r"[\s'\"`\\$]")

logger = get_logger("compiler")


# ---------------------------------------------------------------------------
# Document loading
# ---------------------------------------------------------------------------

def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def _text(value: Any) -> str:
    """Render a JSON scalar the way a shell user would have typed it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.lower() == "true"


def _scalar_fields(document: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in document.items() if _is_scalar(value)}


def _arg_spec(item: Any, path: Path, index: int) -> ArgSpec:
    if not isinstance(item, dict):
        raise SchemaError(f"{path}: args[{index}] must be an object")
    fields = _scalar_fields(item)
    name = _text(fields.get("name")).strip()
    if not name:
        raise SchemaError(f"{path}: args[{index}] has no name")
    return ArgSpec(
        name=name,
        short=_text(fields.get("short")).strip(),
        type=_text(fields.get("type")).strip() or "string",
        required=_flag(fields.get("required", False)),
        default=_text(fields.get("default")),
        help=_text(fields.get("help")),
    )


def load_schema(path: Path) -> CommandSchema:
    """Read and parse one ``schema.json``.

    Raises
    ------
    SchemaError
        If the file is unreadable, is not valid JSON, is not an object,
        or lacks a ``name`` or ``description``.
    """
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SchemaError(f"{path}: cannot read schema ({exc.strerror})") from exc
    except json.JSONDecodeError as exc:
        raise SchemaError(
            f"{path}: invalid JSON ({exc.msg} at line {exc.lineno}, column {exc.colno})",
        ) from exc

    if not isinstance(document, dict):
        raise SchemaError(f"{path}: top level must be a JSON object")

    fields = _scalar_fields(document)
    name = _text(fields.get("name")).strip()
    description = _text(fields.get("description")).strip()
    if not name:
        raise SchemaError(f"{path}: missing required field 'name'")
    if not description:
        raise SchemaError(f"{path}: missing required field 'description'")

    raw_args = document.get("args", [])
    if raw_args is None:
        raw_args = []
    if not isinstance(raw_args, list):
        raise SchemaError(f"{path}: 'args' must be an array")

    args = tuple(_arg_spec(item, path, index) for index, item in enumerate(raw_args))
    return CommandSchema(name=name, description=description, args=args, source=path)


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------

class SchemaCompiler:
    """Validate command schemas and accumulate build metadata.

    One compiler instance corresponds to one build.
    """

    def __init__(self) -> None:
        self.metadata: CompletionMetadata = CompletionMetadata.with_builtins()
        self.commands: list[CompiledCommand] = []
        self.skipped: list[tuple[str, str]] = []
        """``(directory name, reason)`` for each command that was skipped."""

        self._registry = FlagRegistry.with_builtins()
        self._registry.register(SHELL_FLAG)
        self._names: set[str] = set(self.metadata.commands)
        self._modules: set[str] = set()

    def compile_project(self, project_dir: Path) -> list[CompiledCommand]:
        """Compile every command directory under ``project_dir/commands``.

        Raises
        ------
        SchemaError
            If the ``commands`` directory is missing or any schema is
            invalid.  Directories lacking a schema or handler are skipped
            with a warning instead.
        """
        commands_dir = Path(project_dir) / COMMANDS_DIR
        if not commands_dir.is_dir():
            raise SchemaError(
                f"No '{COMMANDS_DIR}' directory in {project_dir}",
                hint=f"Create {COMMANDS_DIR}/<name>/{SCHEMA_FILE} and {HANDLER_FILE}.",
            )

        for directory in sorted(p for p in commands_dir.iterdir() if p.is_dir()):
            schema_path = directory / SCHEMA_FILE
            handler_path = directory / HANDLER_FILE
            if not schema_path.is_file():
                self._skip(directory.name, f"no {SCHEMA_FILE}")
                continue
            if not handler_path.is_file():
                self._skip(directory.name, f"no {HANDLER_FILE}")
                continue
            self.compile_command(load_schema(schema_path), handler_path)
        return list(self.commands)

    def _skip(self, directory: str, reason: str) -> None:
        logger.warning("Skipping command directory '%s': %s", directory, reason)
        self.skipped.append((directory, reason))

    def compile_command(self, schema: CommandSchema, handler_path: Path) -> CompiledCommand:
        """Check *schema* and record it.

        Raises
        ------
        SchemaError
            Invalid or duplicate command name, invalid flag declaration,
            or a flag clashing with one already visible to the command.
        """
        where = str(schema.source or schema.name)
        name = schema.name
        if not is_valid_key(name):
            raise SchemaError(
                f"{where}: invalid command name '{name}'",
                hint="Names start with a letter and contain only letters, digits, '-' and '_'.",
            )
        if name in self._names:
            raise SchemaError(f"{where}: command '{name}' is defined more than once")

        module = name.replace("-", "_")
        if module in self._modules:
            raise SchemaError(f"{where}: command '{name}' clashes with another command's module name")

        flags = tuple(self._check_arg(arg, name, where) for arg in schema.args)
        for definition in flags:
            try:
                self._registry.register(definition)
            except InternalError as exc:
                raise SchemaError(f"{where}: {exc}") from exc

        self._names.add(name)
        self._modules.add(module)
        self.metadata.add_command(name, schema.description)
        for definition in flags:
            self.metadata.add_flag(name, definition)

        compiled = CompiledCommand(schema=schema, handler_path=handler_path, module=module, flags=flags)
        self.commands.append(compiled)
        logger.debug("Compiled command '%s' with %d flag(s)", name, len(flags))
        return compiled

    def _check_arg(self, arg: ArgSpec, command: str, where: str) -> FlagDefinition:
        if not is_valid_key(arg.name):
            raise SchemaError(f"{where}: invalid flag name '{arg.name}'")
        if arg.short and not _SHORT_RE.fullmatch(arg.short):
            raise SchemaError(f"{where}: short name of --{arg.name} must be one letter or digit, got '{arg.short}'")
        try:
            flag_type = FlagType.parse(arg.type)
        except InternalError as exc:
            raise SchemaError(f"{where}: --{arg.name}: {exc}") from exc
        for choice in flag_type.choices:
            if _UNSAFE_ENUM_CHARS.search(choice):
                raise SchemaError(f"{where}: --{arg.name}: enum value {choice!r} contains whitespace or quotes")

        default = arg.default
        if default:
            if flag_type.kind == "int" and not is_int(default):
                raise SchemaError(f"{where}: default of --{arg.name} is not an integer: '{default}'")
            if flag_type.kind == "bool":
                if not is_bool(default):
                    raise SchemaError(f"{where}: default of --{arg.name} is not a boolean: '{default}'")
                default = normalize_bool(default)
            if flag_type.kind == "enum" and not is_enum(default, flag_type.choices):
                raise SchemaError(
                    f"{where}: default of --{arg.name} must be one of: {', '.join(flag_type.choices)}",
                )
        return ArgSpec(
            name=arg.name,
            short=arg.short,
            type=str(flag_type),
            required=arg.required,
            default=default,
            help=arg.help,
        ).to_flag(command)


# ---------------------------------------------------------------------------
# Code generation
# ---------------------------------------------------------------------------

_REGISTRATIONS_HEADER = '''"""Command registrations. Generated by schemacli; do not edit."""

from schemacli.runtime.commands import LazyHandler
from schemacli.runtime.flags import FlagDefinition


def register(app):
'''


def render_registrations(commands: Sequence[CompiledCommand], *, package: str = "_commands") -> str:
    """Return the source of the artifact's ``_registrations`` module.

    Flags are registered before their command, both in schema order.
    """
    lines = [_REGISTRATIONS_HEADER.rstrip("\n")]
    if not commands:
        lines.append("    pass")
    for compiled in commands:
        name = compiled.schema.name
        lines.append(f"    # {name}")
        for definition in compiled.flags:
            lines.append(
                "    app.flags.register(FlagDefinition("
                f"{definition.long_name!r}, {definition.short_name!r}, {definition.type!r}, "
                f"{definition.required!r}, {definition.default!r}, {definition.help_text!r}, "
                f"{definition.scope!r}))"
            )
        handler = f"LazyHandler({name!r}, {package + '.' + compiled.module!r}, {default_handler_name(name)!r})"
        lines.append(f"    app.commands.register({name!r}, {compiled.schema.description!r}, {handler})")
    return "\n".join(lines) + "\n"
