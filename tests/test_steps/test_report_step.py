"""Unit tests for the report stage (oav.steps.report).

Tests cover:
- render_dashboard (empty ledger, counts, stage order, escaping, missing logs)
- read_log_snippet truncation and decoding
- ReportStep writing, re-running and write failures
"""

from __future__ import annotations

import re
from unittest.mock import patch

import pytest

from oav.ledger import StatusLedger
from oav.models import Stage, StatusEntry, TaskStatus
from oav.steps import ReportStep, render_dashboard, summarize
from oav.steps.report import LOG_SNIPPET_BYTES, read_log_snippet


def _entry(tmp_path, stage, target, status=TaskStatus.OK, scope="server", log_text=None,
           log_name=None):
    log_path = tmp_path / (log_name or f"{stage.value}-{target}.log")
    if log_text is not None:
        log_path.write_text(log_text, encoding="utf-8")
    return StatusEntry(
        stage=stage, scope=scope, target=target, status=status, log_path=str(log_path),
    )


def _count(html: str, element_id: str) -> int:
    match = re.search(rf'id="{element_id}">(\d+)<', html)
    assert match, f"missing #{element_id}"
    return int(match.group(1))


@pytest.mark.unit
class TestRenderDashboard:
    def test_empty_ledger(self):
        html = render_dashboard([])
        assert (_count(html, "total"), _count(html, "passed"), _count(html, "failed")) == (0, 0, 0)
        assert 'id="stage-' not in html

    def test_counts_and_sections_in_stage_order(self, tmp_path):
        entries = [
            _entry(tmp_path, Stage.COMPILE, "spring", TaskStatus.FAIL, log_text="x"),
            _entry(tmp_path, Stage.LINT, "redocly", scope="spec", log_text="x"),
            _entry(tmp_path, Stage.COMPILE, "go-server", log_text="x"),
        ]
        html = render_dashboard(entries)

        assert (_count(html, "total"), _count(html, "passed"), _count(html, "failed")) == (3, 2, 1)
        assert html.index('id="stage-lint"') < html.index('id="stage-compile"')
        assert 'id="stage-generate"' not in html

    def test_rendering_is_idempotent(self, tmp_path):
        entries = [_entry(tmp_path, Stage.GENERATE, "spring", log_text="generated\n")]
        assert render_dashboard(entries) == render_dashboard(entries)

    def test_log_and_ledger_text_is_escaped(self, tmp_path):
        entries = [
            _entry(
                tmp_path, Stage.GENERATE, "<b>spring</b>", TaskStatus.FAIL,
                log_text="<script>alert('x')</script> & more",
                log_name="generate-spring.log",
            )
        ]
        html = render_dashboard(entries)

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "&amp; more" in html
        assert "&lt;b&gt;spring&lt;/b&gt;" in html

    def test_missing_log(self, tmp_path):
        entry = _entry(tmp_path, Stage.LINT, "redocly", scope="spec")
        html = render_dashboard([entry])
        assert f"Log file not found: {entry.log_path}" in html

    def test_summary_matches_ledger(self, tmp_path):
        entries = [
            _entry(tmp_path, Stage.GENERATE, "a"),
            _entry(tmp_path, Stage.GENERATE, "b", TaskStatus.FAIL),
        ]
        summary = summarize(entries)
        assert (summary.total, summary.passed, summary.failed) == (2, 1, 1)


@pytest.mark.unit
class TestReadLogSnippet:
    def test_truncates_to_limit(self, tmp_path):
        log = tmp_path / "big.log"
        log.write_bytes(b"a" * (LOG_SNIPPET_BYTES + 50))
        assert len(read_log_snippet(log)) == LOG_SNIPPET_BYTES

    def test_invalid_utf8_is_replaced(self, tmp_path):
        log = tmp_path / "bin.log"
        log.write_bytes(b"ok \xff\xfe end")
        assert read_log_snippet(log).startswith("ok ")


@pytest.mark.unit
class TestReportStep:
    def test_writes_dashboard(self, workspace, ledger, output):
        ledger.append(_entry(workspace.root, Stage.LINT, "redocly", scope="spec", log_text="clean"))

        assert ReportStep(workspace, ledger, output).run() is True

        html = workspace.dashboard_path.read_text(encoding="utf-8")
        assert _count(html, "total") == 1
        assert "clean" in html

    def test_rerun_reports_same_counts(self, workspace, ledger, output):
        ledger.append(_entry(workspace.root, Stage.GENERATE, "spring", TaskStatus.FAIL))
        step = ReportStep(workspace, ledger, output)

        step.run()
        first = workspace.dashboard_path.read_text(encoding="utf-8")
        step.run()
        assert workspace.dashboard_path.read_text(encoding="utf-8") == first

    def test_write_failure_is_reported_not_raised(self, workspace, ledger, output, error_text):
        with patch("pathlib.Path.write_text", side_effect=PermissionError("read-only")):
            assert ReportStep(workspace, ledger, output).run() is False
        assert "Report generation failed: read-only" in error_text(output)

    def test_quiet_suppresses_failure_message(self, workspace, ledger, make_output, error_text):
        quiet = make_output(quiet=True)
        with patch("pathlib.Path.write_text", side_effect=PermissionError("read-only")):
            assert ReportStep(workspace, StatusLedger(workspace.status_path), quiet).run() is False
        assert error_text(quiet) == ""
