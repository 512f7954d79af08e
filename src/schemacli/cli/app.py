"""Builder entry point and command routing for schemacli.

This module is the **sole error boundary** of the builder.  It catches
:class:`~schemacli.exceptions.SchemaCliError`, ``KeyboardInterrupt``
and any unexpected ``Exception``, rendering user-friendly messages via
Rich and returning well-defined exit codes.

Built artifacts have their own boundary,
:meth:`schemacli.runtime.dispatcher.Application.run`.
"""

from __future__ import annotations

import argparse
import sys

from schemacli.exceptions import SchemaCliError
from schemacli.runtime import exit_codes
from schemacli.runtime.console import console
from schemacli.runtime.dispatcher import DEFAULT_DESCRIPTION
from schemacli.runtime.log import configure_logging
from schemacli.version import __version__


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    * ``schemacli build [PROJECT] ...``  compile a project into an artifact
    * ``schemacli doctor``               environment diagnostics
    * ``schemacli --version``
    """
    parser = argparse.ArgumentParser(
        prog="schemacli",
        description="Compile command schemas into a self-contained CLI.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output.",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    build = subparsers.add_parser(
        "build",
        help="Build an executable artifact from a project directory.",
    )
    build.add_argument(
        "project",
        nargs="?",
        default=".",
        help="Project directory containing commands/ (default: current directory).",
    )
    build.add_argument(
        "-o",
        "--output",
        dest="output_dir",
        default=None,
        help="Output directory (default: PROJECT/dist).",
    )
    build.add_argument(
        "-n",
        "--name",
        default=None,
        help="Program name (default: the project directory name).",
    )
    build.add_argument(
        "--app-version",
        default="1.0.0",
        help="Version reported by the artifact (default: 1.0.0).",
    )
    build.add_argument(
        "-d",
        "--description",
        default=DEFAULT_DESCRIPTION,
        help="One-line description shown in the artifact's help.",
    )
    build.add_argument(
        "-e",
        "--installer",
        action="store_true",
        help="Also write a self-extracting sh installer.",
    )

    subparsers.add_parser("doctor", help="Run environment diagnostics.")
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_build(args: argparse.Namespace) -> int:
    """Compile the project and print a build summary."""
    from schemacli.compiler.artifact import build_project

    result = build_project(
        args.project,
        args.output_dir,
        name=args.name,
        version=args.app_version,
        description=args.description,
        installer=args.installer,
    )

    console.success(f"Built {result.artifact} ({result.artifact_size} bytes)")
    console.plain(f"Commands: {', '.join(result.commands) or '(none)'}")
    if result.skipped:
        skipped = ", ".join(directory for directory, _ in result.skipped)
        console.warning(f"Skipped incomplete command directories: {skipped}")
    if result.installer is not None:
        console.success(f"Installer {result.installer} ({result.installer_size} bytes)")
    console.plain(f"Try it: {result.artifact} --help")
    return exit_codes.SUCCESS


def _handle_doctor() -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from schemacli.cli.doctor import run_doctor

    return run_doctor()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the schemacli builder.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    color = False if args.no_color else None
    if args.no_color:
        console.color = False
    configure_logging("debug" if args.verbose else "warn", color=color)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS
    if args.command == "doctor":
        return _handle_doctor()
    return _handle_build(args)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except SchemaCliError as exc:
        console.error(str(exc), hint=exc.hint)
        sys.exit(exit_codes.code_for(exc))
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.error(
            "Unexpected error. Please report this issue.",
            hint=f"{type(exc).__name__}: {exc}",
        )
        sys.exit(exit_codes.INTERNAL)
