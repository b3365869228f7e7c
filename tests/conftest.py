"""Shared pytest fixtures for the oav test suite.

Provides reusable fixtures for:
- A temporary repository with an OpenAPI spec and a prepared ``.oav`` workspace
- Console-free ``Output`` instances
- A fake process runner with configurable per-target outcomes
- Step contexts wired to all of the above
"""

from __future__ import annotations

import io
import textwrap
from pathlib import Path
from typing import Callable, Iterable
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from oav.config import Config
from oav.ledger import StatusLedger
from oav.models import Task
from oav.output import Output
from oav.runner import ProcessRunner
from oav.scaffold import WorkspaceScaffolder
from oav.steps.base import StepContext
from oav.workspace import Workspace

SAMPLE_SPEC = textwrap.dedent(
    """\
    openapi: 3.0.3
    info:
      title: Pets
      version: 1.0.0
    paths:
      /pets:
        get:
          operationId: listPets
          responses:
            "200":
              description: OK
    """
)


# ---------------------------------------------------------------------------
# Repository & workspace
# ---------------------------------------------------------------------------

@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """Temporary repository root containing ``openapi.yaml``."""
    root = tmp_path / "repo"
    root.mkdir()
    (root / "openapi.yaml").write_text(SAMPLE_SPEC, encoding="utf-8")
    return root


@pytest.fixture
def workspace(repo: Path) -> Workspace:
    """Workspace with runtime directories and bundled generator configs."""
    ws = Workspace(repo)
    ws.ensure()
    WorkspaceScaffolder(ws).write_all()
    ws.prepare_runtime_dirs()
    return ws


@pytest.fixture
def ledger(workspace: Workspace) -> StatusLedger:
    return StatusLedger(workspace.status_path)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def _make_output(verbose: bool = False, quiet: bool = False) -> Output:
    """Output writing to in-memory consoles (read back via ``.console.file``)."""
    return Output(
        verbose=verbose,
        quiet=quiet,
        console=Console(file=io.StringIO(), width=200, highlight=False),
        err_console=Console(file=io.StringIO(), width=200, highlight=False),
    )


@pytest.fixture
def make_output() -> Callable[..., Output]:
    return _make_output


@pytest.fixture
def output() -> Output:
    return _make_output()


@pytest.fixture
def console_text() -> Callable[[Output], str]:
    """Reads back what an in-memory ``Output`` printed to its console."""
    return lambda out: out.console.file.getvalue()  # type: ignore[attr-defined]


@pytest.fixture
def error_text() -> Callable[[Output], str]:
    return lambda out: out.err_console.file.getvalue()  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Fake runner
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_runner() -> Callable[..., MagicMock]:
    """Factory for a ``ProcessRunner`` stand-in.

    Every task "runs" by writing a small log; targets listed in *failing*
    report failure.  ``runner.run_task.await_args_list`` holds the tasks in
    execution order.

    Usage:
        def test_step(fake_runner):
            runner = fake_runner(failing={"go-server"})
    """
    def factory(failing: Iterable[str] = ()) -> MagicMock:
        failing_targets = set(failing)

        async def _run_task(task: Task) -> bool:
            task.log_path.write_text(
                f"{task.header()}\n\nran {task.target}\n", encoding="utf-8"
            )
            return task.target not in failing_targets

        runner = MagicMock(spec=ProcessRunner)
        runner.verbose = False
        runner.run_task = AsyncMock(side_effect=_run_task)
        return runner

    return factory


@pytest.fixture
def ran_targets() -> Callable[[MagicMock], list[tuple[str, str]]]:
    """``(scope, target)`` of every task the fake runner received, in order."""
    return lambda runner: [
        (c.args[0].scope, c.args[0].target) for c in runner.run_task.await_args_list
    ]


# ---------------------------------------------------------------------------
# Step context
# ---------------------------------------------------------------------------

@pytest.fixture
def make_context(
    workspace: Workspace, ledger: StatusLedger, output: Output, fake_runner
) -> Callable[..., StepContext]:
    """Factory for a :class:`StepContext` over the temporary workspace."""
    def factory(config: Config | None = None, runner: MagicMock | None = None) -> StepContext:
        return StepContext(
            workspace=workspace,
            config=config or Config(),
            runner=runner or fake_runner(),
            ledger=ledger,
            output=output,
            spec_path=Path("openapi.yaml"),
        )

    return factory
