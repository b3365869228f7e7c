"""Shared machinery for task-running stages."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from oav.config import Config
from oav.ledger import StatusLedger
from oav.models import Stage, StageResult, StatusEntry, Task
from oav.output import Output
from oav.runner import ProcessRunner
from oav.workspace import Workspace


@dataclass
class StepContext:
    """Everything a stage needs for one pipeline run."""

    workspace: Workspace
    config: Config
    runner: ProcessRunner
    ledger: StatusLedger
    output: Output
    spec_path: Optional[Path] = None

    def require_spec(self) -> Path:
        if self.spec_path is None:
            raise ValueError("spec_path must be set before running spec-based stages")
        return self.spec_path


class Step:
    """A stage that resolves tasks and runs them one after another.

    Subclasses implement :meth:`run`; :meth:`run_tasks` records exactly one
    ledger entry per task, whatever its outcome.
    """

    stage: Stage
    #: Print a progress line per task.
    show_substeps: bool = True

    def __init__(self, context: StepContext) -> None:
        self.context = context

    @property
    def workspace(self) -> Workspace:
        return self.context.workspace

    @property
    def config(self) -> Config:
        return self.context.config

    @property
    def ledger(self) -> StatusLedger:
        return self.context.ledger

    @property
    def output(self) -> Output:
        return self.context.output

    async def run(self) -> StageResult:
        raise NotImplementedError

    async def run_tasks(self, tasks: list[Task]) -> list[StatusEntry]:
        """Run *tasks* in order and append their entries to the ledger."""
        entries: list[StatusEntry] = []
        for task in tasks:
            entries.append(await self.run_task(task))
        return entries

    async def run_task(self, task: Task) -> StatusEntry:
        task.log_path.parent.mkdir(parents=True, exist_ok=True)
        status = self.output.substep_start(task.label) if self.show_substeps else None
        try:
            success = await self.context.runner.run_task(task)
        except BaseException:
            if status is not None:
                status.stop()
            raise
        entry = self.ledger.append(StatusEntry.for_task(task, success))
        if self.show_substeps:
            self.output.substep_finish(task.label, success, status)
        return entry
