"""Artifact assembly: stage the runtime and commands, then zip them.

Archive layout::

    __main__.py          generated entry point
    _registrations.py    generated register(app)
    _completions.py      generated BASH / ZSH constants
    _commands/<m>.py     each command's main.py
    schemacli/           runtime subset (no compiler, no builder CLI)
"""

from __future__ import annotations

import shutil
import tempfile
import zipapp
from dataclasses import dataclass
from pathlib import Path

from schemacli.compiler.completion import generate_completions
from schemacli.compiler.installer import write_installer
from schemacli.compiler.models import CompiledCommand
from schemacli.compiler.schema import SchemaCompiler, render_registrations
from schemacli.exceptions import SchemaError
from schemacli.runtime.dispatcher import DEFAULT_DESCRIPTION
from schemacli.runtime.log import get_logger
from schemacli.runtime.validation import is_valid_key

PACKAGE_DIR: Path = Path(__file__).resolve().parent.parent
"""The installed ``schemacli`` package directory."""

RUNTIME_FILES: tuple[str, ...] = ("__init__.py", "version.py", "exceptions.py")
RUNTIME_PACKAGES: tuple[str, ...] = ("runtime",)

INTERPRETER: str = "/usr/bin/env python3"
COMMANDS_PACKAGE: str = "_commands"

logger = get_logger("compiler")


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Outcome of :func:`build_project`."""

    name: str
    version: str
    artifact: Path
    commands: tuple[str, ...]
    skipped: tuple[tuple[str, str], ...] = ()
    installer: Path | None = None

    @property
    def artifact_size(self) -> int:
        return self.artifact.stat().st_size

    @property
    def installer_size(self) -> int | None:
        return self.installer.stat().st_size if self.installer is not None else None


# ---------------------------------------------------------------------------
# Generated sources
# ---------------------------------------------------------------------------

def render_completions_module(completions: dict[str, str]) -> str:
    return (
        '"""Shell completion scripts. Generated by schemacli; do not edit."""\n\n'
        f"BASH = {completions['bash']!r}\n\n"
        f"ZSH = {completions['zsh']!r}\n"
    )


def render_main_module(name: str, version: str, description: str) -> str:
    return f'''"""Entry point of {name}. Generated by schemacli; do not edit."""

import sys

import _completions
import _registrations
from schemacli.runtime.dispatcher import Application

app = Application(
    name={name!r},
    version={version!r},
    description={description!r},
    completions={{"bash": _completions.BASH, "zsh": _completions.ZSH}},
)
_registrations.register(app)
sys.exit(app.run(sys.argv[1:]))
'''


# ---------------------------------------------------------------------------
# Staging
# ---------------------------------------------------------------------------

def _stage_runtime(staging: Path) -> None:
    package = staging / "schemacli"
    package.mkdir(parents=True)
    for filename in RUNTIME_FILES:
        shutil.copy2(PACKAGE_DIR / filename, package / filename)
    for subpackage in RUNTIME_PACKAGES:
        target = package / subpackage
        target.mkdir()
        for source in sorted((PACKAGE_DIR / subpackage).glob("*.py")):
            shutil.copy2(source, target / source.name)


def _stage_commands(staging: Path, commands: list[CompiledCommand]) -> None:
    package = staging / COMMANDS_PACKAGE
    package.mkdir()
    (package / "__init__.py").write_text('"""Command handlers."""\n', encoding="utf-8")
    for compiled in commands:
        shutil.copy2(compiled.handler_path, package / f"{compiled.module}.py")


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

def build_project(
    project_dir: Path | str,
    output_dir: Path | str | None = None,
    *,
    name: str | None = None,
    version: str = "1.0.0",
    description: str = DEFAULT_DESCRIPTION,
    installer: bool = False,
) -> BuildResult:
    """Compile *project_dir* into ``<output_dir>/<name>.pyz``.

    Parameters
    ----------
    project_dir:
        Directory containing ``commands/<name>/{schema.json,main.py}``.
    output_dir:
        Destination directory; defaults to ``<project_dir>/dist``.
    name:
        Program name; defaults to the project directory name.
    version, description:
        Reported by the artifact's ``version`` command and help.
    installer:
        Also write ``<name>-install.sh`` next to the artifact.

    Returns
    -------
    BuildResult

    Raises
    ------
    SchemaError
        If the project or any schema is invalid.
    """
    project = Path(project_dir).resolve()
    if not project.is_dir():
        raise SchemaError(f"Project directory not found: {project}")

    name = name or project.name
    if not is_valid_key(name):
        raise SchemaError(
            f"Invalid program name: '{name}'",
            hint="Pass --name with letters, digits, '-' or '_', starting with a letter.",
        )
    output = Path(output_dir) if output_dir is not None else project / "dist"

    compiler = SchemaCompiler()
    commands = compiler.compile_project(project)
    completions = generate_completions(compiler.metadata, program=name)

    output.mkdir(parents=True, exist_ok=True)
    artifact = output / f"{name}.pyz"
    with tempfile.TemporaryDirectory(prefix="schemacli-build-") as tmp:
        staging = Path(tmp) / "app"
        _stage_runtime(staging)
        _stage_commands(staging, commands)
        (staging / "_registrations.py").write_text(
            render_registrations(commands, package=COMMANDS_PACKAGE), encoding="utf-8"
        )
        (staging / "_completions.py").write_text(
            render_completions_module(completions), encoding="utf-8"
        )
        (staging / "__main__.py").write_text(
            render_main_module(name, version, description), encoding="utf-8"
        )
        zipapp.create_archive(staging, target=artifact, interpreter=INTERPRETER)
    logger.info("Built %s (%d command(s))", artifact, len(commands))

    installer_path = None
    if installer:
        installer_path = write_installer(artifact, output / f"{name}-install.sh", name=name)
        logger.info("Wrote installer %s", installer_path)

    return BuildResult(
        name=name,
        version=version,
        artifact=artifact,
        commands=tuple(c.schema.name for c in commands),
        skipped=tuple(compiler.skipped),
        installer=installer_path,
    )
