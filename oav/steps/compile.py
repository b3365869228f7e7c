"""Compile stage: build generated sources through compose services.

Targets come from the request or from the supported generator set of the
scope.  A requested name outside that set is treated as a typo and rejects
the whole stage before anything runs.
"""

from __future__ import annotations

from oav import docker
from oav.errors import ConfigurationError
from oav.generators import build_service_name, supported_names
from oav.models import Stage, StageResult, Task
from oav.steps.base import Step


def resolve_compile_targets(scope: str, requested: list[str]) -> list[str]:
    """Sorted target names for *scope*.

    Raises:
        ConfigurationError: If any requested name is not a supported
            generator of *scope*.
    """
    supported = supported_names(scope)
    names = [raw.strip() for raw in requested if raw.strip()] or supported
    unsupported = [name for name in names if name not in supported]
    if unsupported:
        raise ConfigurationError(
            f"Unsupported {scope} generator for compile: {', '.join(unsupported)}"
        )
    return sorted(set(names))


class CompileStep(Step):
    """Runs ``build-<name>`` / ``build-client-<name>`` for every target."""

    stage = Stage.COMPILE

    def resolve_tasks(self, scope: str) -> list[Task]:
        report_dir = self.workspace.stage_reports_dir(Stage.COMPILE, scope)
        tasks: list[Task] = []
        for name in resolve_compile_targets(scope, self.config.requested_generators(scope)):
            service = build_service_name(scope, name)
            tasks.append(
                Task(
                    stage=Stage.COMPILE,
                    scope=scope,
                    target=name,
                    command=docker.compose_run_command(self.workspace, service),
                    log_path=report_dir / f"{service}.log",
                )
            )
        return tasks

    async def run(self) -> StageResult:
        """Resolve every scope first, then build.

        Raises:
            ConfigurationError: Before any task runs, if a target is unsupported.
        """
        tasks: list[Task] = []
        for scope in self.config.mode.scopes:
            tasks.extend(self.resolve_tasks(scope))
        entries = await self.run_tasks(tasks)
        return StageResult(stage=self.stage, entries=entries)
