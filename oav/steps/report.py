"""Report stage: render the status ledger as an HTML dashboard.

:func:`render_dashboard` is a pure function of the ledger entries (plus the
log files they point at), so the dashboard can be regenerated at any time.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from oav.ledger import StatusLedger
from oav.models import Stage, StatusEntry
from oav.output import Output
from oav.rendering import TemplateRenderer
from oav.workspace import Workspace

LOG_SNIPPET_BYTES = 100_000
DASHBOARD_TITLE = "OpenAPI Validator Report"


class DashboardSummary(BaseModel):
    """Aggregate task counts shown at the top of the dashboard."""

    total: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)


def summarize(entries: list[StatusEntry]) -> DashboardSummary:
    passed = sum(1 for e in entries if e.passed)
    return DashboardSummary(total=len(entries), passed=passed, failed=len(entries) - passed)


def read_log_snippet(path: Path, limit: int = LOG_SNIPPET_BYTES) -> str:
    """First *limit* bytes of a log, decoded leniently."""
    try:
        with open(path, "rb") as fh:
            content = fh.read(limit)
    except OSError:
        return f"Log file not found: {path}"
    return content.decode("utf-8", errors="replace")


def build_sections(entries: list[StatusEntry]) -> list[dict[str, Any]]:
    """Group entries by stage in pipeline order, omitting empty stages."""
    sections: list[dict[str, Any]] = []
    for stage in Stage:
        stage_entries = [e for e in entries if e.stage is stage]
        if not stage_entries:
            continue
        rows = []
        for entry in stage_entries:
            log_path = Path(entry.log_path)
            rows.append(
                {
                    "scope": entry.scope,
                    "target": entry.target,
                    "status": entry.status.value,
                    "log_name": log_path.name or "log",
                    "log_content": read_log_snippet(log_path),
                }
            )
        sections.append({"stage": stage.value, "title": stage.display_name, "rows": rows})
    return sections


def render_dashboard(
    entries: list[StatusEntry],
    renderer: Optional[TemplateRenderer] = None,
    *,
    title: str = DASHBOARD_TITLE,
) -> str:
    """Render the complete, self-contained dashboard document."""
    renderer = renderer or TemplateRenderer()
    return renderer.render(
        "dashboard.html.j2",
        {
            "title": title,
            "summary": summarize(entries),
            "sections": build_sections(entries),
        },
    )


class ReportStep:
    """Writes ``.oav/reports/dashboard.html`` from the ledger."""

    def __init__(
        self,
        workspace: Workspace,
        ledger: StatusLedger,
        output: Output,
        renderer: Optional[TemplateRenderer] = None,
    ) -> None:
        self.workspace = workspace
        self.ledger = ledger
        self.output = output
        self.renderer = renderer or TemplateRenderer()

    def run(self) -> bool:
        """Render and write the dashboard; report failures instead of raising."""
        try:
            html = render_dashboard(self.ledger.load(), self.renderer)
            self.workspace.reports_dir.mkdir(parents=True, exist_ok=True)
            self.workspace.dashboard_path.write_text(html, encoding="utf-8")
        except OSError as exc:
            if not self.output.quiet:
                self.output.print_error(f"Report generation failed: {exc}")
            return False
        return True
