"""Data models for pipeline tasks and their recorded outcomes.

Provides Pydantic v2 models for a single scheduled tool invocation
(:class:`Task`), the immutable ledger record it produces
(:class:`StatusEntry`) and the per-stage aggregate derived from those
records (:class:`StageResult`).
"""

from __future__ import annotations

import shlex
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Stage(str, Enum):
    """Pipeline stages that record ledger entries, in execution order."""

    LINT = "lint"
    GENERATE = "generate"
    COMPILE = "compile"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class TaskStatus(str, Enum):
    """Outcome of one task."""

    OK = "ok"
    FAIL = "fail"

    @classmethod
    def from_success(cls, success: bool) -> "TaskStatus":
        return cls.OK if success else cls.FAIL


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

class Task(BaseModel):
    """One external invocation with a known log destination."""

    stage: Stage
    scope: str = Field(..., description="Sub-partition such as 'spec', 'server' or 'client'")
    target: str = Field(..., description="Generator or check name")
    command: list[str] = Field(..., min_length=1, description="argv of the external tool")
    log_path: Path

    @property
    def label(self) -> str:
        """Human label used for console progress lines."""
        return f"{self.stage.display_name} {self.scope} {self.target}"

    def header(self) -> str:
        """Shell line that reproduces this task, written at the top of its log."""
        return f"$ {shlex.join(self.command)}"


# ---------------------------------------------------------------------------
# Status entry
# ---------------------------------------------------------------------------

class StatusEntry(BaseModel):
    """Immutable ledger record for a finished task."""

    model_config = ConfigDict(frozen=True)

    stage: Stage
    scope: str
    target: str
    status: TaskStatus
    log_path: str

    @computed_field  # type: ignore[misc]
    @property
    def passed(self) -> bool:
        return self.status is TaskStatus.OK

    @classmethod
    def for_task(cls, task: Task, success: bool) -> "StatusEntry":
        return cls(
            stage=task.stage,
            scope=task.scope,
            target=task.target,
            status=TaskStatus.from_success(success),
            log_path=str(task.log_path),
        )

    def to_line(self) -> str:
        """Tab-separated ledger line, without the trailing newline."""
        return "\t".join(
            (self.stage.value, self.scope, self.target, self.status.value, self.log_path)
        )

    @classmethod
    def from_line(cls, line: str) -> Optional["StatusEntry"]:
        """Parse a ledger line, returning ``None`` for partial or unknown data."""
        parts = line.rstrip("\r\n").split("\t")
        if len(parts) < 5 or not all(parts[:5]):
            return None
        stage, scope, target, status, log_path = parts[:5]
        try:
            return cls(
                stage=Stage(stage),
                scope=scope,
                target=target,
                status=TaskStatus(status),
                log_path=log_path,
            )
        except ValueError:
            return None


# ---------------------------------------------------------------------------
# Stage result
# ---------------------------------------------------------------------------

class StageResult(BaseModel):
    """Outcome of a stage, derived from the entries it appended."""

    stage: Stage
    entries: list[StatusEntry] = Field(default_factory=list)
    error: Optional[str] = Field(
        default=None,
        description="Configuration error that stopped the stage before any task ran",
    )

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        """True when the stage was not aborted and no entry failed."""
        return self.error is None and all(e.passed for e in self.entries)

    @property
    def passed(self) -> int:
        return sum(1 for e in self.entries if e.passed)

    @property
    def failed(self) -> int:
        return sum(1 for e in self.entries if not e.passed)
