"""Tests for dispatch, builtins and the artifact error boundary.

Coverage:
* Dispatch steps: empty argv, global help/version, unknown command,
  parse, command help, handler resolution and invocation.
* Exit-code mapping for every error kind, KeyboardInterrupt and
  unexpected exceptions.
* Context helpers: out/quiet, status lines, validated flag values,
  require_command, run_external, logger.
* Builtin commands: help, version, commands, completion.
* Post-parse logging configuration (verbose, quiet, log file).
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from schemacli.exceptions import ExternalError
from schemacli.runtime import exit_codes
from schemacli.runtime.builtins import detect_shell
from schemacli.runtime.dispatcher import Application, Context
from schemacli.runtime.flags import FlagDefinition


def _recording_handler(seen: list[Context]):
    def handler(ctx: Context) -> None:
        seen.append(ctx)

    return handler


@pytest.fixture()
def deploy_app(app: Application) -> tuple[Application, list[Context]]:
    seen: list[Context] = []
    app.flags.register(
        FlagDefinition("env", "e", "enum:dev:staging:prod", required=True, help_text="Target", scope="deploy")
    )
    app.commands.register("deploy", "Deploy the application", _recording_handler(seen))
    return app, seen


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

class TestScenarios:
    def test_required_enum_missing(
        self, deploy_app: tuple[Application, list[Context]], capsys: pytest.CaptureFixture[str]
    ) -> None:
        app, seen = deploy_app
        assert app.run(["deploy"]) == exit_codes.USAGE
        assert seen == []
        err = capsys.readouterr().err
        assert "Error: Required flag --env is missing" in err
        assert "tool deploy - Deploy the application" in err

    def test_required_enum_given(self, deploy_app: tuple[Application, list[Context]]) -> None:
        app, seen = deploy_app
        assert app.run(["deploy", "-e", "staging"]) == exit_codes.SUCCESS
        assert len(seen) == 1
        assert seen[0].get_value("env") == "staging"
        assert seen[0].command == "deploy"

    def test_int_validation(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        app.flags.register(FlagDefinition("times", type="int", default="1"))
        app.commands.register("greet", "Greet", lambda ctx: None)
        assert app.run(["greet", "--times", "abc"]) == exit_codes.VALIDATION
        assert "--times requires an integer, got 'abc'" in capsys.readouterr().err

    def test_unknown_command(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        assert app.run(["foo"]) == exit_codes.USAGE
        captured = capsys.readouterr()
        assert "Error: Unknown command: foo" in captured.err
        assert "Commands:" in captured.err
        assert captured.out == ""


# ---------------------------------------------------------------------------
# Dispatch steps
# ---------------------------------------------------------------------------

class TestDispatch:
    def test_empty_argv_prints_global_help(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        assert app.run([]) == exit_codes.SUCCESS
        out = capsys.readouterr().out
        assert out.startswith("tool - Test tool\n")
        assert "Global Options:" in out
        assert 'eval "$(tool completion)"' in out

    @pytest.mark.parametrize("flag", ["--help", "-h"])
    def test_global_help_flag(self, app: Application, flag: str, capsys: pytest.CaptureFixture[str]) -> None:
        assert app.run([flag]) == exit_codes.SUCCESS
        assert "Usage:" in capsys.readouterr().out

    @pytest.mark.parametrize("flag", ["--version", "-V"])
    def test_global_version_flag(self, app: Application, flag: str, capsys: pytest.CaptureFixture[str]) -> None:
        assert app.run([flag]) == exit_codes.SUCCESS
        assert capsys.readouterr().out == "tool version 1.2.3\n"

    def test_command_help(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        called: list[Context] = []
        app.flags.register(FlagDefinition("times", "t", "int", default="1", help_text="Repeat count", scope="greet"))
        app.commands.register("greet", "Print a greeting", _recording_handler(called))
        assert app.run(["greet", "--help"]) == exit_codes.SUCCESS
        out = capsys.readouterr().out
        assert out.startswith("tool greet - Print a greeting\n")
        assert "  --times, -t <int>    Repeat count [default: 1]" in out
        assert called == []

    def test_handler_return_value_is_exit_code(self, app: Application) -> None:
        app.commands.register("three", "", lambda ctx: 3)
        assert app.run(["three"]) == 3

    def test_positionals_reach_handler(self, app: Application) -> None:
        seen: list[Context] = []
        app.commands.register("echo", "", _recording_handler(seen))
        app.run(["echo", "a", "b"])
        assert seen[0].positionals == ("a", "b")
        assert seen[0].get_positional(1) == "b"

    def test_unresolvable_handler_is_internal(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        app.commands.register("ghost", "No handler")
        assert app.run(["ghost"]) == exit_codes.INTERNAL
        assert "Handler 'cmd_ghost' for command 'ghost' not found" in capsys.readouterr().err

    def test_verbose_and_quiet_are_exclusive(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        assert app.run(["version", "-v", "-q"]) == exit_codes.USAGE
        assert "mutually exclusive" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Error boundary
# ---------------------------------------------------------------------------

class TestErrorBoundary:
    def test_external_error(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        def fail(ctx: Context) -> None:
            raise ExternalError("git push failed", hint="Check your remote.")

        app.commands.register("push", "", fail)
        assert app.run(["push"]) == exit_codes.EXTERNAL
        err = capsys.readouterr().err
        assert "Error: git push failed" in err
        assert "Hint: Check your remote." in err

    def test_keyboard_interrupt(self, app: Application) -> None:
        def interrupt(ctx: Context) -> None:
            raise KeyboardInterrupt

        app.commands.register("wait", "", interrupt)
        assert app.run(["wait"]) == exit_codes.KEYBOARD_INTERRUPT

    def test_unexpected_exception(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        def crash(ctx: Context) -> None:
            raise RuntimeError("kaboom")

        app.commands.register("crash", "", crash)
        assert app.run(["crash"]) == exit_codes.INTERNAL
        err = capsys.readouterr().err
        assert "Please report" in err
        assert "RuntimeError: kaboom" in err

    def test_main_exits_with_code(self, app: Application) -> None:
        with pytest.raises(SystemExit) as exc_info:
            app.main(["foo"])
        assert exc_info.value.code == exit_codes.USAGE


# ---------------------------------------------------------------------------
# Context helpers
# ---------------------------------------------------------------------------

class TestContext:
    def test_out_respects_quiet(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        app.commands.register("say", "", lambda ctx: ctx.out("hello"))
        app.run(["say"])
        assert capsys.readouterr().out == "hello\n"
        app.run(["say", "--quiet"])
        assert capsys.readouterr().out == ""

    def test_require_command_missing(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        app.commands.register("needs", "", lambda ctx: ctx.require_command("kubectl") and None)
        with patch("schemacli.runtime.dispatcher.shutil.which", return_value=None):
            assert app.run(["needs"]) == exit_codes.ENVIRONMENT
        assert "Required command 'kubectl' not found" in capsys.readouterr().err

    def test_run_external_success(self, app: Application) -> None:
        results: list[int] = []
        app.commands.register(
            "ext", "", lambda ctx: results.append(ctx.run_external([sys.executable, "-c", "pass"]).returncode)
        )
        assert app.run(["ext"]) == exit_codes.SUCCESS
        assert results == [0]

    def test_run_external_failure(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        app.commands.register(
            "ext", "", lambda ctx: ctx.run_external([sys.executable, "-c", "raise SystemExit(3)"]) and None
        )
        assert app.run(["ext"]) == exit_codes.EXTERNAL
        assert "failed with exit code 3" in capsys.readouterr().err

    def test_run_external_captures_output(self, app: Application) -> None:
        outputs: list[str] = []
        app.commands.register(
            "ext",
            "",
            lambda ctx: outputs.append(
                ctx.run_external([sys.executable, "-c", "print('hi')"], capture=True).stdout
            ),
        )
        app.run(["ext"])
        assert outputs == ["hi\n"]

    def test_logger_is_namespaced(self, app: Application) -> None:
        names: list[str] = []
        app.commands.register("log", "", lambda ctx: names.append(ctx.logger.name))
        app.run(["log"])
        assert names == ["schemacli.commands.log"]

    def test_status_lines_respect_quiet(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        def report(ctx: Context) -> None:
            ctx.success("deployed")
            ctx.warning("cache is cold")

        app.commands.register("report", "", report)
        app.run(["report"])
        err = capsys.readouterr().err
        assert "OK: deployed" in err
        assert "Warning: cache is cold" in err
        app.run(["report", "-q"])
        assert capsys.readouterr().err == ""


class TestContextValidation:
    @pytest.fixture()
    def serve_app(self, app: Application) -> tuple[Application, list[object]]:
        seen: list[object] = []

        def serve(ctx: Context) -> None:
            seen.append(ctx.require_port("port"))
            seen.append(ctx.require_enum("mode", ("fast", "safe")))
            seen.append(ctx.require_value("host"))

        app.flags.register(FlagDefinition("port", "p", "string", default="8080", scope="serve"))
        app.flags.register(FlagDefinition("mode", "m", "string", default="fast", scope="serve"))
        app.flags.register(FlagDefinition("host", "H", "string", scope="serve"))
        app.commands.register("serve", "Serve", serve)
        return app, seen

    def test_valid_values_are_returned(self, serve_app: tuple[Application, list[object]]) -> None:
        app, seen = serve_app
        assert app.run(["serve", "--host", "localhost", "-p", "9000"]) == exit_codes.SUCCESS
        assert seen == [9000, "fast", "localhost"]

    def test_invalid_port_is_validation_error(
        self, serve_app: tuple[Application, list[object]], capsys: pytest.CaptureFixture[str]
    ) -> None:
        app, seen = serve_app
        assert app.run(["serve", "--host", "x", "--port", "99999"]) == exit_codes.VALIDATION
        assert "'port' must be a valid port (1-65535), got '99999'" in capsys.readouterr().err
        assert seen == []

    def test_bad_enum_and_empty_value(
        self, serve_app: tuple[Application, list[object]], capsys: pytest.CaptureFixture[str]
    ) -> None:
        app, _seen = serve_app
        assert app.run(["serve", "--host", "x", "-m", "slow"]) == exit_codes.VALIDATION
        assert "'mode' must be one of: fast, safe, got 'slow'" in capsys.readouterr().err
        assert app.run(["serve"]) == exit_codes.VALIDATION
        assert "'host' cannot be empty" in capsys.readouterr().err

    def test_require_int_and_path(self, app: Application, tmp_path: Path) -> None:
        seen: list[object] = []

        def copy(ctx: Context) -> None:
            seen.append(ctx.require_int("count"))
            seen.append(ctx.require_path("source"))

        app.flags.register(FlagDefinition("count", "c", "string", default="2", scope="copy"))
        app.flags.register(FlagDefinition("source", "s", "string", scope="copy"))
        app.commands.register("copy", "Copy", copy)
        assert app.run(["copy", "-s", str(tmp_path)]) == exit_codes.SUCCESS
        assert seen == [2, str(tmp_path)]
        assert app.run(["copy", "-s", str(tmp_path / "missing")]) == exit_codes.VALIDATION


# ---------------------------------------------------------------------------
# Builtins
# ---------------------------------------------------------------------------

class TestBuiltins:
    def test_builtins_registered(self, app: Application) -> None:
        assert app.commands.list_names() == ["commands", "completion", "help", "version"]

    def test_help_without_topic(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        assert app.run(["help"]) == exit_codes.SUCCESS
        assert capsys.readouterr().out.startswith("tool - Test tool")

    def test_help_with_topic(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        assert app.run(["help", "completion"]) == exit_codes.SUCCESS
        out = capsys.readouterr().out
        assert out.startswith("tool completion - Generate shell completion script")
        assert "--shell, -s <bash|zsh>" in out

    def test_version(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        app.run(["version"])
        assert capsys.readouterr().out == "tool version 1.2.3\n"

    def test_commands_listing(self, app: Application, capsys: pytest.CaptureFixture[str]) -> None:
        app.commands.register("deploy", "Deploy things", lambda ctx: None)
        app.run(["commands"])
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "Available commands:"
        assert f"  {'deploy':<20} Deploy things" in lines

    @pytest.mark.parametrize(("shell", "expected"), [("bash", "# bash completion\n"), ("zsh", "# zsh completion\n")])
    def test_completion_explicit_shell(
        self, app: Application, shell: str, expected: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert app.run(["completion", "--shell", shell]) == exit_codes.SUCCESS
        assert capsys.readouterr().out == expected

    def test_completion_rejects_unknown_shell(self, app: Application) -> None:
        assert app.run(["completion", "-s", "fish"]) == exit_codes.VALIDATION

    def test_completion_autodetects(
        self, app: Application, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("ZSH_VERSION", "5.9")
        app.run(["completion"])
        assert capsys.readouterr().out == "# zsh completion\n"

    def test_completion_missing_script_is_internal(self) -> None:
        bare = Application(name="bare")
        assert bare.run(["completion", "-s", "bash"]) == exit_codes.INTERNAL

    def test_shell_flag_is_scoped(self, app: Application) -> None:
        assert app.run(["version", "--shell", "bash"]) == exit_codes.USAGE


class TestDetectShell:
    @pytest.mark.parametrize(
        ("environ", "expected"),
        [
            ({"ZSH_VERSION": "5.9", "BASH_VERSION": "5.2"}, "zsh"),
            ({"BASH_VERSION": "5.2", "SHELL": "/bin/zsh"}, "bash"),
            ({"SHELL": "/usr/bin/zsh"}, "zsh"),
            ({"SHELL": "/usr/bin/fish"}, "bash"),
            ({}, "bash"),
        ],
    )
    def test_markers(self, environ: dict[str, str], expected: str) -> None:
        assert detect_shell(environ) == expected


# ---------------------------------------------------------------------------
# Logging from flags
# ---------------------------------------------------------------------------

class TestLoggingFromFlags:
    def test_log_file_receives_records(self, app: Application, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "run.log"
        app.flags.register(FlagDefinition("log-file", type="string", help_text="Write logs to a file"))
        app.commands.register("work", "", lambda ctx: ctx.logger.info("working hard"))
        assert app.run(["work", "--log-file", str(log_file)]) == exit_codes.SUCCESS
        content = log_file.read_text(encoding="utf-8")
        assert "INFO: working hard" in content

    def test_verbose_enables_debug(self, app: Application, tmp_path: Path) -> None:
        log_file = tmp_path / "debug.log"
        app.flags.register(FlagDefinition("log-file", type="string"))
        app.commands.register("work", "", lambda ctx: ctx.logger.debug("details"))
        app.run(["work", "-v", f"--log-file={log_file}"])
        assert "DEBUG: details" in log_file.read_text(encoding="utf-8")

    def test_quiet_silences_logging(self, app: Application, tmp_path: Path) -> None:
        log_file = tmp_path / "quiet.log"
        app.flags.register(FlagDefinition("log-file", type="string"))
        app.commands.register("work", "", lambda ctx: ctx.logger.error("hidden"))
        app.run(["work", "-q", f"--log-file={log_file}"])
        assert "hidden" not in log_file.read_text(encoding="utf-8")

    def test_no_color_applies_to_one_run(self, app: Application, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("schemacli.runtime.dispatcher.detect_color_support", lambda: True)
        app.commands.register("noop", "", lambda ctx: None)
        app.run(["noop", "--no-color"])
        assert app.console.color is False
        app.run(["noop"])
        assert app.console.color is True
