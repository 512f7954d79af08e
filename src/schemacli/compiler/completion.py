"""Shell completion generator.

:func:`build_completion_model` turns :class:`CompletionMetadata` into a
dialect-neutral :class:`CompletionModel`; :func:`render_bash` and
:func:`render_zsh` are small renderers over that model.  Every function
here is pure, so regenerating from the same metadata is byte-identical.

Completion behaviour, in both dialects:

1. The first word completes from every command name plus the global flags.
2. After that, the first word not starting with ``-`` selects the command.
3. In a flag's value position, ``bool`` offers ``true``/``false``,
   ``path`` offers filesystem entries and ``enum`` offers its values.
4. Otherwise the command's flags plus the global flags are offered.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from schemacli.compiler.models import CompletionMetadata
from schemacli.runtime.flags import FlagDefinition, FlagType

VALUE_WORDS = "words"
VALUE_FILES = "files"

_HELP_COMMAND = "help"


@dataclass(frozen=True, slots=True)
class ValueCompletion:
    """What to offer in the value position of one flag."""

    spellings: tuple[str, ...]
    kind: str
    """:data:`VALUE_WORDS` or :data:`VALUE_FILES`."""

    words: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class OptionCompletion:
    """One flag spelling with its description and value completion."""

    spelling: str
    description: str
    value: ValueCompletion | None = None


@dataclass(frozen=True, slots=True)
class CommandCompletion:
    name: str
    description: str
    options: tuple[OptionCompletion, ...] = ()
    values: tuple[ValueCompletion, ...] = ()
    completes_commands: bool = False
    """Whether positional words complete to command names (``help <topic>``)."""

    @property
    def flag_words(self) -> tuple[str, ...]:
        return tuple(option.spelling for option in self.options)


@dataclass(frozen=True, slots=True)
class CompletionModel:
    program: str
    commands: tuple[CommandCompletion, ...]
    global_options: tuple[OptionCompletion, ...]

    @property
    def command_names(self) -> tuple[str, ...]:
        return tuple(command.name for command in self.commands)

    @property
    def global_flag_words(self) -> tuple[str, ...]:
        return tuple(option.spelling for option in self.global_options)

    @property
    def function_name(self) -> str:
        """Shell-safe function name derived from the program name."""
        return "_" + re.sub(r"\W", "_", self.program)


# ---------------------------------------------------------------------------
# Metadata -> model
# ---------------------------------------------------------------------------

def _value_completion(spellings: tuple[str, ...], type_text: str) -> ValueCompletion | None:
    flag_type = FlagType.parse(type_text)
    if flag_type.kind == "bool":
        return ValueCompletion(spellings, VALUE_WORDS, ("true", "false"))
    if flag_type.kind == "path":
        return ValueCompletion(spellings, VALUE_FILES)
    if flag_type.kind == "enum":
        return ValueCompletion(spellings, VALUE_WORDS, flag_type.choices)
    return None


def _options(
    long_name: str,
    short_name: str,
    description: str,
    value: ValueCompletion | None,
) -> list[OptionCompletion]:
    options = [OptionCompletion(f"--{long_name}", description or long_name, value)]
    if short_name:
        options.append(OptionCompletion(f"-{short_name}", description or long_name, value))
    return options


def _global_options(definitions: tuple[FlagDefinition, ...]) -> tuple[OptionCompletion, ...]:
    options: list[OptionCompletion] = []
    for definition in definitions:
        value = _value_completion(definition.spellings, definition.type)
        options.extend(_options(definition.long_name, definition.short_name, definition.help_text, value))
    return tuple(options)


def build_completion_model(metadata: CompletionMetadata, program: str) -> CompletionModel:
    """Collapse *metadata* into the per-command entries both renderers share."""
    commands: list[CommandCompletion] = []
    for name in metadata.commands:
        options: list[OptionCompletion] = []
        values: list[ValueCompletion] = []
        for flag_name in metadata.flag_names(name):
            key = f"{name}:{flag_name}"
            short = metadata.flag_shorts.get(key, "")
            spellings = (f"--{flag_name}", f"-{short}") if short else (f"--{flag_name}",)
            value = _value_completion(spellings, metadata.flag_types[key])
            if value is not None:
                values.append(value)
            options.extend(_options(flag_name, short, metadata.flag_help.get(key, ""), value))
        commands.append(
            CommandCompletion(
                name=name,
                description=metadata.descriptions.get(name, ""),
                options=tuple(options),
                values=tuple(values),
                completes_commands=name == _HELP_COMMAND,
            )
        )
    return CompletionModel(
        program=program,
        commands=tuple(commands),
        global_options=_global_options(metadata.global_flags),
    )


# ---------------------------------------------------------------------------
# bash
# ---------------------------------------------------------------------------

_BASH_PREAMBLE = """\
# bash completion for {program}. Generated by schemacli; do not edit.

{function}_completions() {{
    local cur prev words cword
    if declare -F _init_completion >/dev/null 2>&1; then
        _init_completion -n = || return
    else
        COMPREPLY=()
        cur="${{COMP_WORDS[COMP_CWORD]}}"
        prev="${{COMP_WORDS[COMP_CWORD-1]}}"
        words=("${{COMP_WORDS[@]}}")
        cword="${{COMP_CWORD}}"
    fi

    # --flag=value arrives as one word or as "--flag" "=" "value"
    if [[ "${{cur}}" == --*=* ]]; then
        prev="${{cur%%=*}}"
        cur="${{cur#*=}}"
    elif [[ "${{cur}}" == "=" ]]; then
        cur=""
    elif [[ "${{prev}}" == "=" && ${{cword}} -ge 2 ]]; then
        prev="${{words[cword-2]}}"
    fi

    local commands="{commands}"
    local global_flags="{global_flags}"

    if [[ ${{cword}} -eq 1 ]]; then
        COMPREPLY=($(compgen -W "${{commands}} ${{global_flags}}" -- "${{cur}}"))
        return 0
    fi

    local cmd="" i
    for ((i = 1; i < cword; i++)); do
        if [[ "${{words[i]}}" != -* ]]; then
            cmd="${{words[i]}}"
            break
        fi
    done

    case "${{cmd}}" in
"""

_BASH_EPILOGUE = """\
        *)
            COMPREPLY=($(compgen -W "${{global_flags}}" -- "${{cur}}"))
            return 0
            ;;
    esac
}}

complete -F {function}_completions {program}
"""


def _bash_value_case(value: ValueCompletion) -> list[str]:
    if value.kind == VALUE_FILES:
        reply = 'COMPREPLY=($(compgen -f -- "${cur}"))'
    else:
        reply = f'COMPREPLY=($(compgen -W "{" ".join(value.words)}" -- "${{cur}}"))'
    return [
        f"                {'|'.join(value.spellings)})",
        f"                    {reply}",
        "                    return 0",
        "                    ;;",
    ]


def _bash_command_case(command: CommandCompletion) -> list[str]:
    lines = [f"        {command.name})"]
    if command.completes_commands:
        lines.append('            COMPREPLY=($(compgen -W "${commands}" -- "${cur}"))')
    else:
        if command.values:
            lines.append('            case "${prev}" in')
            for value in command.values:
                lines.extend(_bash_value_case(value))
            lines.append("            esac")
        words = " ".join((*command.flag_words, "${global_flags}"))
        lines.append(f'            COMPREPLY=($(compgen -W "{words}" -- "${{cur}}"))')
    lines.extend(["            return 0", "            ;;"])
    return lines


def render_bash(model: CompletionModel) -> str:
    """Render the bash completion script for *model*."""
    fields = {
        "program": model.program,
        "function": model.function_name,
        "commands": " ".join(model.command_names),
        "global_flags": " ".join(model.global_flag_words),
    }
    body: list[str] = []
    for command in model.commands:
        body.extend(_bash_command_case(command))
    return (
        _BASH_PREAMBLE.format(**fields)
        + "\n".join(body)
        + "\n"
        + _BASH_EPILOGUE.format(**fields)
    )


# ---------------------------------------------------------------------------
# zsh
# ---------------------------------------------------------------------------

def _zsh_quote(text: str) -> str:
    """Single-quote *text* for zsh source."""
    return "'" + text.replace("'", "'\\''") + "'"


def _zsh_describe(text: str) -> str:
    """Escape the characters ``_arguments`` treats specially in descriptions."""
    for char in ("\\", "[", "]", ":"):
        text = text.replace(char, "\\" + char)
    return text


def _zsh_option(option: OptionCompletion) -> str:
    spec = f"{option.spelling}[{_zsh_describe(option.description)}]"
    value = option.value
    if value is not None:
        if value.kind == VALUE_FILES:
            spec += ":path:_files"
        else:
            spec += ":value:(" + " ".join(value.words) + ")"
    return _zsh_quote(spec)


def render_zsh(model: CompletionModel) -> str:
    """Render the zsh completion script for *model*."""
    function = model.function_name
    lines = [
        f"#compdef {model.program}",
        "# zsh completion. Generated by schemacli; do not edit.",
        "",
        f"{function}() {{",
        "    local context state state_descr line",
        "    typeset -A opt_args",
        "    local -a commands global_opts",
        "",
        "    global_opts=(",
    ]
    lines.extend(f"        {_zsh_option(option)}" for option in model.global_options)
    lines.extend(["    )", "", "    commands=("])
    lines.extend(
        "        " + _zsh_quote(f"{command.name}:{command.description}")
        for command in model.commands
    )
    lines.extend(
        [
            "    )",
            "",
            "    _arguments -C \\",
            '        "${global_opts[@]}" \\',
            "        '1: :->command' \\",
            "        '*:: :->args'",
            "",
            "    case $state in",
            "        command)",
            "            _describe -t commands 'command' commands",
            "            ;;",
            "        args)",
            "            case $words[1] in",
        ]
    )
    for command in model.commands:
        lines.append(f"                {command.name})")
        if command.completes_commands:
            lines.append("                    _describe -t commands 'command' commands")
        else:
            lines.append("                    _arguments \\")
            lines.extend(
                f"                        {_zsh_option(option)} \\" for option in command.options
            )
            lines.append('                        "${global_opts[@]}"')
        lines.append("                    ;;")
    lines.extend(
        [
            "                *)",
            '                    _arguments "${global_opts[@]}"',
            "                    ;;",
            "            esac",
            "            ;;",
            "    esac",
            "}",
            "",
            f"compdef {function} {model.program}",
        ]
    )
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

RENDERERS = {
    "bash": render_bash,
    "zsh": render_zsh,
}


def generate_completions(metadata: CompletionMetadata, program: str) -> dict[str, str]:
    """Return ``{"bash": script, "zsh": script}`` for *metadata*."""
    model = build_completion_model(metadata, program)
    return {dialect: render(model) for dialect, render in RENDERERS.items()}
