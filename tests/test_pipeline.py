"""Unit tests for the pipeline orchestrator (oav.pipeline).

Tests cover:
- PipelineResult exit code
- Stage order and ledger order
- Failure counting per stage, lint failure not stopping later stages
- Compile gating on generate, disabled stages
- ConfigurationError containment, report failures, OSError propagation
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from oav.config import Config
from oav.generators import supported_names
from oav.models import Stage, TaskStatus
from oav.pipeline import Pipeline, PipelineResult
from oav.steps import CONFIG_TARGET


def _pipeline(config, workspace, output, runner):
    return Pipeline(config, workspace, Path("openapi.yaml"), output, runner=runner)


@pytest.mark.unit
class TestPipelineResult:
    def test_exit_code(self):
        assert PipelineResult(failures=0).exit_code == 0
        assert PipelineResult(failures=2).exit_code == 1
        assert PipelineResult(failures=2).success is False


@pytest.mark.unit
class TestPipeline:
    @pytest.mark.asyncio
    async def test_all_stages_pass(self, workspace, ledger, output, fake_runner):
        runner = fake_runner()
        result = await _pipeline(Config(), workspace, output, runner).run()

        servers = len(supported_names("server"))
        assert [s.stage for s in result.stages] == [Stage.LINT, Stage.GENERATE, Stage.COMPILE]
        assert result.failures == 0
        assert result.exit_code == 0
        assert (result.passed, result.failed) == (1 + 2 * servers, 0)
        assert result.report_ok is True
        assert workspace.dashboard_path.is_file()

    @pytest.mark.asyncio
    async def test_entries_per_stage_match_tasks(self, workspace, ledger, output, fake_runner):
        runner = fake_runner()
        result = await _pipeline(Config(), workspace, output, runner).run()

        assert runner.run_task.await_count == len(ledger.load())
        for stage_result in result.stages:
            assert len(stage_result.entries) == len(ledger.entries_for(stage_result.stage))

    @pytest.mark.asyncio
    async def test_ledger_order_is_execution_order(self, workspace, ledger, output, fake_runner):
        runner = fake_runner()
        await _pipeline(Config(server_generators=["spring", "go-server"]), workspace, output, runner).run()

        executed = [(c.args[0].stage, c.args[0].target) for c in runner.run_task.await_args_list]
        assert [(e.stage, e.target) for e in ledger.load()] == executed
        assert executed == [
            (Stage.LINT, "redocly"),
            (Stage.GENERATE, "go-server"),
            (Stage.GENERATE, "spring"),
            (Stage.COMPILE, "go-server"),
            (Stage.COMPILE, "spring"),
        ]

    @pytest.mark.asyncio
    async def test_lint_failure_does_not_stop_other_stages(
        self, workspace, ledger, output, fake_runner
    ):
        runner = fake_runner(failing={"redocly"})
        config = Config(server_generators=["spring"])

        result = await _pipeline(config, workspace, output, runner).run()

        assert [s.success for s in result.stages] == [False, True, True]
        assert result.failures == 1
        assert result.exit_code == 1
        assert {e.stage for e in ledger.load()} == {Stage.LINT, Stage.GENERATE, Stage.COMPILE}
        assert result.report_ok is True

    @pytest.mark.asyncio
    async def test_failures_count_stages_not_tasks(self, workspace, output, fake_runner):
        runner = fake_runner(failing={"spring", "go-server"})
        config = Config(lint=False, server_generators=["spring", "go-server"])

        result = await _pipeline(config, workspace, output, runner).run()

        assert result.failed == 4
        assert result.failures == 2

    @pytest.mark.asyncio
    async def test_generate_disabled_skips_compile(
        self, workspace, ledger, output, fake_runner, console_text
    ):
        runner = fake_runner()
        config = Config(generate=False, compile=True)

        result = await _pipeline(config, workspace, output, runner).run()

        assert [s.stage for s in result.stages] == [Stage.LINT]
        assert ledger.entries_for(Stage.COMPILE) == []
        assert "Skipping compile (generate disabled)" in console_text(output)

    @pytest.mark.asyncio
    async def test_disabled_stages_still_produce_report(self, workspace, ledger, output, fake_runner):
        runner = fake_runner()
        config = Config(lint=False, generate=False, compile=False)

        result = await _pipeline(config, workspace, output, runner).run()

        runner.run_task.assert_not_awaited()
        assert result.stages == []
        assert result.exit_code == 0
        assert workspace.dashboard_path.is_file()

    @pytest.mark.asyncio
    async def test_compile_configuration_error_counts_as_failure(
        self, workspace, ledger, output, fake_runner, error_text
    ):
        runner = fake_runner()
        config = Config(lint=False, server_generators=["spring", "rust-axum"])
        # Generate records a _config_ entry; compile rejects the unknown name.

        result = await _pipeline(config, workspace, output, runner).run()

        generate, compile_ = result.stages
        assert [e.target for e in generate.entries] == [CONFIG_TARGET]
        assert compile_.error is not None
        assert result.failures == 2
        assert ledger.entries_for(Stage.COMPILE) == []
        assert "Unsupported server generator for compile: rust-axum" in error_text(output)
        assert result.report_ok is True

    @pytest.mark.asyncio
    async def test_report_failure_is_not_counted(self, workspace, output, fake_runner):
        runner = fake_runner()
        config = Config(lint=True, generate=False)
        workspace.reports_dir.joinpath("dashboard.html").mkdir()

        result = await _pipeline(config, workspace, output, runner).run()

        assert result.report_ok is False
        assert result.failures == 0

    @pytest.mark.asyncio
    async def test_os_error_propagates(self, workspace, output, fake_runner):
        runner = fake_runner()
        runner.run_task = AsyncMock(side_effect=PermissionError("log is read-only"))

        with pytest.raises(OSError):
            await _pipeline(Config(), workspace, output, runner).run()

    @pytest.mark.asyncio
    async def test_failure_statuses_recorded(self, workspace, ledger, output, fake_runner):
        runner = fake_runner(failing={"go-server"})
        config = Config(lint=False, compile=False, server_generators=["aspnetcore", "go-server", "spring"])

        await _pipeline(config, workspace, output, runner).run()

        assert [e.status for e in ledger.load()] == [TaskStatus.OK, TaskStatus.FAIL, TaskStatus.OK]
