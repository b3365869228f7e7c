"""Workspace layout and repository helpers.

Everything oav writes lives under ``<repo>/.oav``.  :class:`Workspace`
derives every path from the repository root so the steps, the ledger and
the report agree on locations.  The module also owns ``.gitignore``
maintenance and OpenAPI spec discovery.
"""

from __future__ import annotations

from pathlib import Path, PurePath
from typing import Callable, Optional

import yaml
from rich.console import Console
from rich.prompt import Prompt

from oav.errors import ConfigurationError
from oav.generators import SCOPES
from oav.ledger import StatusLedger
from oav.models import Stage

OAV_DIR = ".oav"
DEFAULT_SPEC_NAMES: tuple[str, ...] = ("openapi.yaml", "openapi.yml")
_SKIP_DIRS = frozenset({".git", OAV_DIR, "target", "node_modules", ".idea", ".vscode"})
_MAX_DISCOVERY_DEPTH = 4


class Workspace:
    """Paths of the ``.oav`` working directory of one repository."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def oav_dir(self) -> Path:
        return self.root / OAV_DIR

    @property
    def status_path(self) -> Path:
        """Tab-separated status ledger of the current run."""
        return self.oav_dir / "status.tsv"

    @property
    def reports_dir(self) -> Path:
        return self.oav_dir / "reports"

    @property
    def dashboard_path(self) -> Path:
        return self.reports_dir / "dashboard.html"

    @property
    def compose_path(self) -> Path:
        return self.oav_dir / "docker-compose.yaml"

    @property
    def generated_dir(self) -> Path:
        return self.oav_dir / "generated"

    def stage_reports_dir(self, stage: Stage, scope: Optional[str] = None) -> Path:
        """``reports/<stage>`` or ``reports/<stage>/<scope>``."""
        path = self.reports_dir / stage.value
        return path / scope if scope else path

    def generators_dir(self, scope: str) -> Path:
        """Directory holding the generator configs of *scope*."""
        return self.oav_dir / "generators" / scope

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    def ensure(self) -> Path:
        self.oav_dir.mkdir(parents=True, exist_ok=True)
        return self.oav_dir

    def prepare_runtime_dirs(self) -> None:
        """Create the report tree and truncate the status ledger.

        Called once at the start of ``validate`` so the ledger only ever
        holds the entries of the current run.
        """
        self.stage_reports_dir(Stage.LINT).mkdir(parents=True, exist_ok=True)
        for stage in (Stage.GENERATE, Stage.COMPILE):
            for scope in SCOPES:
                self.stage_reports_dir(stage, scope).mkdir(parents=True, exist_ok=True)
        self.generated_dir.mkdir(parents=True, exist_ok=True)
        StatusLedger(self.status_path).reset()

    def to_container_path(self, path: Path) -> str:
        """Map a path inside the repository to its location under ``/work``."""
        absolute = path if path.is_absolute() else self.root / path
        try:
            relative = absolute.resolve().relative_to(self.root)
        except ValueError:
            raise ConfigurationError(f"Path is outside the repository: {path}") from None
        return f"/work/{to_posix_path(relative)}"


def to_posix_path(path: PurePath | str) -> str:
    """Render *path* with forward slashes, as container paths require."""
    return str(path).replace("\\", "/")


# ---------------------------------------------------------------------------
# .gitignore maintenance
# ---------------------------------------------------------------------------

def ensure_gitignore(root: Path, ignore_config: bool = False) -> None:
    """Make sure ``.oav/`` (and optionally ``.oavc``) are git-ignored."""
    entries = [f"{OAV_DIR}/"]
    if ignore_config:
        entries.append(".oavc")
    add_gitignore_entries(root, entries)


def add_gitignore_entries(root: Path, entries: list[str]) -> None:
    path = Path(root) / ".gitignore"
    content = path.read_text(encoding="utf-8") if path.exists() else ""
    existing = {line.strip() for line in content.splitlines()}

    changed = False
    for entry in entries:
        if entry in existing:
            continue
        if content and not content.endswith("\n"):
            content += "\n"
        content += f"{entry}\n"
        existing.add(entry)
        changed = True

    if changed:
        path.write_text(content, encoding="utf-8")


def remove_gitignore_entries(root: Path, entries: list[str]) -> None:
    path = Path(root) / ".gitignore"
    if not path.exists():
        return
    kept = [
        line
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip() not in entries
    ]
    new_content = "\n".join(kept)
    if new_content:
        new_content += "\n"
    path.write_text(new_content, encoding="utf-8")


# ---------------------------------------------------------------------------
# Spec discovery
# ---------------------------------------------------------------------------

def normalize_spec_path(root: Path, spec: str) -> Path:
    """Resolve *spec* against *root* and return it relative to *root*.

    Raises:
        ConfigurationError: If the file does not exist or lies outside *root*.
    """
    root = Path(root).resolve()
    candidate = Path(spec)
    absolute = candidate if candidate.is_absolute() else root / candidate
    if not absolute.exists():
        raise ConfigurationError(f"Spec file not found: {absolute}")
    try:
        return absolute.resolve().relative_to(root)
    except ValueError:
        raise ConfigurationError("Spec path must be inside the repository") from None


def find_spec_candidates(root: Path) -> list[str]:
    """Relative paths of YAML files up to four levels deep that declare ``openapi``."""
    root = Path(root)
    matches: list[str] = []

    def _walk(directory: Path, depth: int) -> None:
        try:
            children = sorted(directory.iterdir())
        except OSError:
            return
        for child in children:
            if child.is_symlink():
                continue
            if child.is_dir():
                if child.name not in _SKIP_DIRS and depth < _MAX_DISCOVERY_DEPTH:
                    _walk(child, depth + 1)
            elif _is_yaml(child) and _is_openapi_spec(child):
                matches.append(to_posix_path(child.relative_to(root)))

    _walk(root, 1)
    return sorted(matches)


def discover_spec(
    root: Path,
    *,
    choose: Optional[Callable[[list[str]], Optional[str]]] = None,
) -> Optional[str]:
    """Find the spec to validate.

    ``openapi.yaml`` / ``openapi.yml`` at the root win outright.  Otherwise
    every candidate found by :func:`find_spec_candidates` is offered to
    *choose* (an interactive prompt by default), which may return ``None``
    to quit.
    """
    for name in DEFAULT_SPEC_NAMES:
        if (Path(root) / name).is_file():
            return name

    candidates = find_spec_candidates(root)
    if not candidates:
        return None
    return (choose or prompt_for_spec)(candidates)


def prompt_for_spec(candidates: list[str], console: Optional[Console] = None) -> Optional[str]:
    """Ask the user to pick one of *candidates*; ``q`` quits."""
    console = console or Console()
    console.print("No default OpenAPI spec found.")
    console.print("Select a spec to use:")
    for idx, path in enumerate(candidates, start=1):
        console.print(f"  {idx}) {path}")
    console.print("  q) quit")

    choices = [str(i) for i in range(1, len(candidates) + 1)] + ["q"]
    try:
        answer = Prompt.ask(
            f"Select [1-{len(candidates)}] or q",
            choices=choices,
            show_choices=False,
            console=console,
        )
    except EOFError:
        # Non-interactive stdin reads as "quit".
        return None
    if answer.lower() == "q":
        return None
    return candidates[int(answer) - 1]


def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in (".yaml", ".yml")


def _is_openapi_spec(path: Path) -> bool:
    try:
        doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError):
        return False
    return isinstance(doc, dict) and "openapi" in doc
