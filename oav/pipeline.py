"""oav pipeline orchestrator.

Runs the validation stages in a fixed order:

Lint     -- Redocly lint of the OpenAPI spec.
Generate -- openapi-generator once per generator config and scope.
Compile  -- build of every generated project (needs Generate).
Report   -- HTML dashboard rendered from the status ledger.

Every enabled stage runs even when an earlier one failed; the number of
failed stages decides the exit status.  Report is always attempted and never
counts as a failure.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from oav.config import Config
from oav.errors import ConfigurationError
from oav.ledger import StatusLedger
from oav.models import StageResult
from oav.output import Output
from oav.rendering import TemplateRenderer
from oav.runner import ProcessRunner
from oav.steps import CompileStep, GenerateStep, LintStep, ReportStep, Step, StepContext
from oav.workspace import Workspace


class PipelineResult(BaseModel):
    """Aggregate outcome of one ``validate`` run."""

    stages: list[StageResult] = Field(default_factory=list)
    failures: int = Field(default=0, ge=0, description="Number of failed stages")
    report_ok: bool = Field(default=False)
    passed: int = Field(default=0, ge=0, description="Tasks recorded as ok")
    failed: int = Field(default=0, ge=0, description="Tasks recorded as fail")

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        return self.failures == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


class Pipeline:
    """Sequences the stages of one validation run.

    Attributes:
        config: Effective configuration (``.oavc`` plus command-line flags).
        workspace: Paths of the ``.oav`` directory.
        ledger: Status ledger shared by every stage of the run.
        runner: Process runner shared by every task of the run.
    """

    def __init__(
        self,
        config: Config,
        workspace: Workspace,
        spec_path: Path,
        output: Output,
        *,
        runner: Optional[ProcessRunner] = None,
        ledger: Optional[StatusLedger] = None,
        renderer: Optional[TemplateRenderer] = None,
    ) -> None:
        self.config = config
        self.workspace = workspace
        self.output = output
        self.ledger = ledger or StatusLedger(workspace.status_path)
        self.runner = runner or ProcessRunner(verbose=output.verbose, cwd=workspace.root)
        self.renderer = renderer or TemplateRenderer()
        self.context = StepContext(
            workspace=workspace,
            config=config,
            runner=self.runner,
            ledger=self.ledger,
            output=output,
            spec_path=Path(spec_path),
        )

    # ------------------------------------------------------------------
    # Stage dispatch
    # ------------------------------------------------------------------

    async def run(self) -> PipelineResult:
        """Run every enabled stage, then the report.

        Raises:
            OSError: When a log or the ledger cannot be written; the ledger
                can no longer be trusted so the run stops.
        """
        stages: list[StageResult] = []

        if self.config.lint:
            stages.append(await self._run_stage("Lint", LintStep(self.context), show_progress=True))

        if self.config.generate:
            self.output.phase_header("Generate")
            stages.append(await self._run_stage("Generate", GenerateStep(self.context)))

        if self.config.compile:
            if self.config.generate:
                self.output.phase_header("Compile")
                stages.append(await self._run_stage("Compile", CompileStep(self.context)))
            else:
                self.output.println("Skipping compile (generate disabled)")

        report_ok = self._run_report()

        passed, failed = self.ledger.counts()
        return PipelineResult(
            stages=stages,
            failures=sum(1 for s in stages if not s.success),
            report_ok=report_ok,
            passed=passed,
            failed=failed,
        )

    async def _run_stage(self, label: str, step: Step, *, show_progress: bool = False) -> StageResult:
        spinner = self.output.start_spinner(label) if show_progress else None
        error: Optional[str] = None
        try:
            result = await step.run()
        except ConfigurationError as exc:
            error = str(exc)
            result = StageResult(stage=step.stage, error=error)
        except BaseException:
            if spinner is not None:
                spinner.stop()
            raise

        if show_progress:
            self.output.finish_spinner(spinner, label, result.success)
        if error is not None:
            self.output.print_error(error)
        return result

    def _run_report(self) -> bool:
        spinner = self.output.start_spinner("Report")
        report_ok = ReportStep(self.workspace, self.ledger, self.output, self.renderer).run()
        self.output.finish_spinner(spinner, "Report", report_ok)
        return report_ok
