"""Command-line interface for oav.

Usage::

    oav init --spec api/openapi.yaml --mode both
    oav validate
    oav validate --skip-compile --server-generators spring,go-server
    oav -v validate
    oav config set generator_overrides.spring ./oav/spring.yaml
    oav clean
"""

from __future__ import annotations

import argparse
import asyncio
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Optional

from oav import __version__, docker
from oav.config import CONFIG_FILE, Config, Mode, parse_csv
from oav.errors import ConfigurationError, OavError
from oav.output import Output
from oav.pipeline import Pipeline
from oav.scaffold import WorkspaceScaffolder
from oav.workspace import (
    OAV_DIR,
    Workspace,
    discover_spec,
    ensure_gitignore,
    normalize_spec_path,
    remove_gitignore_entries,
    to_posix_path,
)

Handler = Callable[[Path, Output, argparse.Namespace], int]

_NO_SPEC_MESSAGE = "No OpenAPI spec found. Pass --spec or set spec in .oavc."


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_init(root: Path, output: Output, args: argparse.Namespace) -> int:
    """Create the workspace and persist the initial ``.oavc``."""
    workspace = Workspace(root)
    workspace.ensure()
    ensure_gitignore(root, args.ignore_config)

    config = Config.load(root).with_overrides(
        spec=args.spec,
        mode=args.mode,
        server_generators=args.server_generators,
        client_generators=args.client_generators,
    )
    config.spec = _resolve_spec(root, config)
    config_path = config.save(root)
    WorkspaceScaffolder(workspace).write_all()

    output.println("Initialized OpenAPI Validator.")
    output.println(f"Config: {config_path}")
    output.println(f"Workspace: {workspace.oav_dir}")
    return 0


def cmd_validate(root: Path, output: Output, args: argparse.Namespace) -> int:
    """Run the pipeline and turn its outcome into an exit status."""
    workspace = Workspace(root)
    workspace.ensure()
    ensure_gitignore(root)
    WorkspaceScaffolder(workspace).write_all()

    stored = Config.load(root)
    config = stored.with_overrides(
        spec=args.spec,
        mode=args.mode,
        server_generators=args.server_generators,
        client_generators=args.client_generators,
        skip_lint=args.skip_lint,
        skip_generate=args.skip_generate,
        skip_compile=args.skip_compile,
    )
    config.spec = _resolve_spec(root, config)

    if config.any_stage_enabled:
        docker.ensure_available()

    workspace.prepare_runtime_dirs()
    if stored.spec != config.spec and args.spec is None:
        # Remember a discovered spec; one-off flags are not persisted.
        stored.spec = config.spec
        stored.save(root)

    pipeline = Pipeline(config, workspace, Path(config.spec), output)
    result = asyncio.run(pipeline.run())

    output.print_summary(result.passed, result.failed)
    output.println_always("")
    output.println_always(f"Dashboard: {workspace.dashboard_path}")

    if not result.success:
        output.print_error("Validation failed. See dashboard for details.")
    return result.exit_code


def cmd_config(root: Path, output: Output, args: argparse.Namespace) -> int:
    """``oav config [get|set|edit|print|ignore|unignore]``."""
    action = args.config_command or "print"
    if action != "ignore":
        ensure_gitignore(root)

    if action == "get":
        value = Config.load(root).get_value(args.key)
        if value:
            output.print_plain(value)
    elif action == "set":
        config = Config.load(root)
        config.set_value(args.key, args.value)
        path = config.save(root)
        output.println(f"Updated {path}")
    elif action == "edit":
        _edit_config(root)
    elif action == "ignore":
        ensure_gitignore(root, ignore_config=True)
        output.println(f"Added {CONFIG_FILE} to .gitignore.")
    elif action == "unignore":
        remove_gitignore_entries(root, [CONFIG_FILE])
        output.println(f"Removed {CONFIG_FILE} from .gitignore.")
    else:
        output.print_plain(Config.load(root).to_yaml().rstrip("\n"))
    return 0


def cmd_clean(root: Path, output: Output, args: argparse.Namespace) -> int:
    """Remove the ``.oav`` workspace."""
    path = Workspace(root).oav_dir
    if path.exists():
        shutil.rmtree(path)
        output.println(f"Removed {path}")
    else:
        output.println(f"No {OAV_DIR} directory found.")
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolve_spec(root: Path, config: Config) -> str:
    spec = config.spec or discover_spec(root)
    if not spec:
        raise ConfigurationError(_NO_SPEC_MESSAGE)
    return to_posix_path(normalize_spec_path(root, spec))


def _edit_config(root: Path) -> None:
    path = root / CONFIG_FILE
    if not path.exists():
        Config().save(root)
    editor = shlex.split(os.environ.get("EDITOR") or "vi")
    try:
        result = subprocess.run([*editor, str(path)], check=False)
    except OSError as exc:
        raise OavError(f"Failed to open editor: {exc}") from exc
    if result.returncode != 0:
        raise OavError("Editor exited with a non-zero status")


def _add_stage_selection(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--spec", default=None, help="Path to the OpenAPI spec")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in Mode],
        default=None,
        help="Generator scopes to cover (default from .oavc: server)",
    )
    parser.add_argument(
        "--server-generators",
        type=parse_csv,
        default=None,
        metavar="A,B",
        help="Comma-separated server generators (default: all)",
    )
    parser.add_argument(
        "--client-generators",
        type=parse_csv,
        default=None,
        metavar="A,B",
        help="Comma-separated client generators (default: all)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oav",
        description="OpenAPI Validator -- lint, generate and compile an OpenAPI spec",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  oav init --spec openapi.yaml\n"
            "  oav validate --mode both\n"
            "  oav validate --skip-compile\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Stream tool output live")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only print errors and the dashboard path")

    commands = parser.add_subparsers(dest="command", required=True)

    init = commands.add_parser("init", help="Create .oavc and the .oav workspace")
    _add_stage_selection(init)
    init.add_argument("--ignore-config", action="store_true", help="Also git-ignore .oavc")
    init.set_defaults(handler=cmd_init)

    validate = commands.add_parser("validate", help="Run lint, generate, compile and report")
    _add_stage_selection(validate)
    validate.add_argument("--skip-lint", action="store_true")
    validate.add_argument("--skip-generate", action="store_true")
    validate.add_argument("--skip-compile", action="store_true")
    validate.set_defaults(handler=cmd_validate)

    config = commands.add_parser("config", help="Show or change .oavc")
    config_commands = config.add_subparsers(dest="config_command")
    get = config_commands.add_parser(
        "get", help="Print a value. Use dot notation for map keys (generator_overrides.spring)"
    )
    get.add_argument("key")
    set_ = config_commands.add_parser(
        "set", help="Set a value. Use dot notation for map keys (generator_overrides.spring)"
    )
    set_.add_argument("key")
    set_.add_argument("value")
    config_commands.add_parser("edit", help="Open .oavc in $EDITOR")
    config_commands.add_parser("print", help="Print the whole configuration")
    config_commands.add_parser("ignore", help="Add .oavc to .gitignore")
    config_commands.add_parser("unignore", help="Remove .oavc from .gitignore")
    config.set_defaults(handler=cmd_config)

    clean = commands.add_parser("clean", help="Remove the .oav workspace")
    clean.set_defaults(handler=cmd_clean)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None, *, root: Optional[Path] = None) -> int:
    """CLI entry point for ``oav`` and ``python -m oav``; returns the exit status."""
    args = build_parser().parse_args(argv)
    output = Output(verbose=args.verbose, quiet=args.quiet)
    handler: Handler = args.handler
    try:
        return handler(Path(root or Path.cwd()).resolve(), output, args)
    except (OavError, OSError) as exc:
        output.print_error(str(exc))
        return 1
