"""Pipeline stages.

Each task-running stage resolves its tasks, runs them through the shared
:class:`~oav.runner.ProcessRunner` and appends one ledger entry per task.
"""

from oav.steps.base import Step, StepContext
from oav.steps.compile import CompileStep, resolve_compile_targets
from oav.steps.generate import CONFIG_TARGET, GenerateStep, resolve_generator_configs
from oav.steps.lint import LintStep
from oav.steps.report import ReportStep, render_dashboard, summarize

__all__ = [
    "Step",
    "StepContext",
    "LintStep",
    "GenerateStep",
    "CompileStep",
    "ReportStep",
    "CONFIG_TARGET",
    "render_dashboard",
    "resolve_compile_targets",
    "resolve_generator_configs",
    "summarize",
]
