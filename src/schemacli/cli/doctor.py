"""``schemacli doctor``: environment diagnostics command.

Gathers system information and renders a Rich table summarising
whether this machine can build artifacts and whether the tools the
artifacts and installers rely on (a shell for completions, a base64
decoder for the installer) are present.

Only an interpreter older than the supported minimum is a failure;
every other missing piece is a warning.
"""

from __future__ import annotations

import platform
import shutil
import sys
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from schemacli.runtime import exit_codes
from schemacli.runtime.console import console
from schemacli.version import __version__

MIN_PYTHON: tuple[int, int] = (3, 10)

OK = "[green]OK[/green]"
WARN = "[yellow]WARN[/yellow]"
FAIL = "[red]FAIL[/red]"


# ---------------------------------------------------------------------------
# Tool detection
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ToolStatus:
    """Result of a PATH lookup for one executable.

    Attributes
    ----------
    name : str
        Executable that was looked up.
    path : Path | None
        Resolved location, or ``None`` when not on PATH.
    """

    name: str
    path: Path | None

    @property
    def found(self) -> bool:
        return self.path is not None


def detect_tool(name: str) -> ToolStatus:
    """Locate *name* on PATH via :func:`shutil.which`."""
    result = shutil.which(name)
    return ToolStatus(name=name, path=Path(result).resolve() if result else None)


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _schemacli_version_check() -> tuple[str, str, str]:
    return "schemacli", __version__, OK


def _python_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    ok = tuple(sys.version_info[:2]) >= MIN_PYTHON
    required = ".".join(str(part) for part in MIN_PYTHON)
    status = OK if ok else f"[red]FAIL (>={required} required)[/red]"
    return "Python", version, status


def _rich_check() -> tuple[str, str, str]:
    """Rich is optional: artifacts fall back to plain output without it."""
    try:
        import rich  # noqa: F401
    except ImportError:
        return "rich", "not installed (plain output)", WARN
    try:
        return "rich", version("rich"), OK
    except PackageNotFoundError:
        return "rich", "unknown", OK


def _tool_check(name: str) -> tuple[str, str, str]:
    status = detect_tool(name)
    if status.found:
        return name, str(status.path), OK
    return name, "not found", WARN


def _decoder_check() -> tuple[str, str, str]:
    """The installer decodes its payload with base64, else openssl."""
    for name in ("base64", "openssl"):
        status = detect_tool(name)
        if status.found:
            return "decoder", f"{name} ({status.path})", OK
    return "decoder", "neither base64 nor openssl found", WARN


def _os_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the OS row."""
    system_raw = platform.system()
    system_display = {
        "Windows": "Windows",
        "Linux": "Linux",
        "Darwin": "macOS",
    }.get(system_raw, system_raw)
    value = f"{system_display} {platform.release()} ({platform.machine()})"
    return "OS", value, OK


def collect_checks() -> list[tuple[str, str, str]]:
    return [
        _schemacli_version_check(),
        _python_version_check(),
        _rich_check(),
        _tool_check("bash"),
        _tool_check("zsh"),
        _decoder_check(),
        _os_check(),
    ]


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    for word in ("FAIL", "WARN", "OK"):
        if word in status:
            return word
    return status


def _print_plain_doctor_table(checks: list[tuple[str, str, str]]) -> None:
    """Render doctor output without Rich."""
    print("\nschemacli doctor", file=sys.stderr)
    print("=" * 64, file=sys.stderr)
    print(f"{'Component':<12} {'Value':<40} {'Status':<8}", file=sys.stderr)
    print("-" * 64, file=sys.stderr)
    for label, value, status in checks:
        print(f"{label:<12} {value:<40} {_status_plain(status):<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor() -> int:
    """Execute all diagnostic checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when no check failed,
        :data:`exit_codes.ENVIRONMENT` otherwise.
    """
    checks = collect_checks()
    has_failure = any("FAIL" in status for _, _, status in checks)

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        _print_plain_doctor_table(checks)
        print("Some checks failed." if has_failure else "All checks passed.", file=sys.stderr)
        return exit_codes.ENVIRONMENT if has_failure else exit_codes.SUCCESS

    table = Table(
        title="schemacli doctor",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Component", style="bold", min_width=12)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for label, value, status in checks:
        table.add_row(label, value, status)

    console.print()
    console.print(table)
    console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.ENVIRONMENT
    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
