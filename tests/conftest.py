"""Shared pytest fixtures and configuration for the schemacli test suite.

Guidelines
----------
* No internet access in any test.
* Host shells are never required; shell lookups are mocked, and the few
  tests that execute ``sh`` skip when it is unavailable.
* Registries are built fresh per test; no state is shared.
* The ``schemacli`` logger is reset after every test.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from schemacli.runtime.dispatcher import Application
from schemacli.runtime.log import LOGGER_NAME

DEPLOY_SCHEMA: dict = {
    "name": "deploy",
    "description": "Deploy the application",
    "args": [
        {
            "name": "env",
            "short": "e",
            "type": "enum:dev:staging:prod",
            "required": True,
            "help": "Target environment",
        },
        {
            "name": "dry-run",
            "short": "n",
            "type": "bool",
            "default": "false",
            "help": "Only print what would happen",
        },
    ],
}

DEPLOY_HANDLER = '''\
def cmd_deploy(ctx):
    suffix = " (dry run)" if ctx.is_true("dry-run") else ""
    ctx.out(f"Deploying to {ctx.get_value('env')}{suffix}")
'''

GREET_SCHEMA: dict = {
    "name": "greet",
    "description": "Print a greeting",
    "args": [
        {"name": "name", "short": "N", "type": "string", "default": "World", "help": "Who to greet"},
        {"name": "times", "short": "t", "type": "int", "default": "1", "help": "Repeat count"},
    ],
}

GREET_HANDLER = '''\
def cmd_greet(ctx):
    for _ in range(int(ctx.get_value("times", "1"))):
        ctx.out(f"Hello, {ctx.get_value('name')}!")
'''


@pytest.fixture(autouse=True)
def _reset_schemacli_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture()
def app() -> Application:
    return Application(
        name="tool",
        version="1.2.3",
        description="Test tool",
        completions={"bash": "# bash completion\n", "zsh": "# zsh completion\n"},
    )


WriteCommand = Callable[..., Path]


@pytest.fixture()
def write_command(tmp_path: Path) -> WriteCommand:
    """Return a factory writing ``commands/<directory>/`` under *tmp_path*.

    ``schema`` may be a dict (dumped as JSON), a raw string, or ``None``
    to omit ``schema.json``; ``handler=None`` omits ``main.py``.
    """

    def _write(
        directory: str,
        schema: dict | str | None,
        handler: str | None = "def handler(ctx):\n    return None\n",
    ) -> Path:
        command_dir = tmp_path / "commands" / directory
        command_dir.mkdir(parents=True, exist_ok=True)
        if schema is not None:
            text = schema if isinstance(schema, str) else json.dumps(schema, indent=2)
            (command_dir / "schema.json").write_text(text, encoding="utf-8")
        if handler is not None:
            (command_dir / "main.py").write_text(handler, encoding="utf-8")
        return command_dir

    return _write


@pytest.fixture()
def project(tmp_path: Path, write_command: WriteCommand) -> Path:
    """A project with ``deploy`` and ``greet`` commands."""
    write_command("deploy", DEPLOY_SCHEMA, DEPLOY_HANDLER)
    write_command("greet", GREET_SCHEMA, GREET_HANDLER)
    return tmp_path
