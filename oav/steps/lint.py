"""Lint stage: one Redocly run against the validated spec."""

from __future__ import annotations

from oav import docker
from oav.models import Stage, StageResult, Task
from oav.steps.base import Step

LINT_SCOPE = "spec"
LINT_TARGET = "redocly"


class LintStep(Step):
    """Runs the linter container once; its result is the stage result."""

    stage = Stage.LINT
    show_substeps = False

    def resolve_tasks(self) -> list[Task]:
        spec_path = self.context.require_spec()
        log_path = self.workspace.stage_reports_dir(Stage.LINT) / f"{LINT_TARGET}.log"
        return [
            Task(
                stage=Stage.LINT,
                scope=LINT_SCOPE,
                target=LINT_TARGET,
                command=docker.lint_command(self.workspace, spec_path, self.config.redocly_image),
                log_path=log_path,
            )
        ]

    async def run(self) -> StageResult:
        entries = await self.run_tasks(self.resolve_tasks())
        return StageResult(stage=self.stage, entries=entries)
