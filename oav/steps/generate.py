"""Generate stage: run openapi-generator once per generator config.

Configs are resolved per scope from ``.oav/generators/<scope>/``.  When a
requested config cannot be found the scope stops before any generator runs
and a single ``_config_`` failure is recorded instead, which keeps "the
configuration is wrong" apart from "a generator ran and failed".
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from oav import docker
from oav.errors import ConfigurationError
from oav.models import Stage, StageResult, StatusEntry, Task, TaskStatus
from oav.steps.base import Step

CONFIG_TARGET = "_config_"
ERROR_LOG_NAME = "_errors.log"


def resolve_generator_configs(
    config_dir: Path,
    requested: list[str],
    overrides: Optional[dict[str, str]] = None,
    root: Optional[Path] = None,
) -> list[tuple[str, Path]]:
    """Map generator names to config files, sorted by name.

    Args:
        config_dir: Directory of bundled ``<name>.yaml`` configs.
        requested: Names to use; empty means every config in *config_dir*.
        overrides: ``name -> path`` replacing the bundled config of that name.
            Relative paths are resolved against *root*.
        root: Repository root for relative override paths.

    Raises:
        ConfigurationError: If the directory is missing, a requested or
            overridden config does not exist, or nothing was found.
    """
    overrides = overrides or {}
    if not config_dir.is_dir():
        raise ConfigurationError(f"Missing config directory: {config_dir}")

    resolved: dict[str, Path] = {}
    names = [raw.strip() for raw in requested if raw.strip()]
    if names:
        for name in names:
            path = _override_path(overrides.get(name), root) or config_dir / f"{name}.yaml"
            if not path.is_file():
                raise ConfigurationError(f"Missing generator config: {path}")
            resolved[name] = path
    else:
        for path in config_dir.glob("*.yaml"):
            if not path.is_file():
                continue
            override = _override_path(overrides.get(path.stem), root)
            if override is not None and not override.is_file():
                raise ConfigurationError(f"Missing generator config: {override}")
            resolved[path.stem] = override or path

    if not resolved:
        raise ConfigurationError(f"No generator configs found under {config_dir}")
    return sorted(resolved.items())


def _override_path(raw: Optional[str], root: Optional[Path]) -> Optional[Path]:
    if not raw:
        return None
    path = Path(raw)
    if not path.is_absolute() and root is not None:
        path = root / path
    return path


def write_error_log(log_path: Path, message: str) -> None:
    """Replace *log_path* with *message*; a scope records one config error per run."""
    with open(log_path, "w", encoding="utf-8") as fh:
        fh.write(f"{message}\n")


class GenerateStep(Step):
    """Runs every resolved generator of each scope selected by ``mode``."""

    stage = Stage.GENERATE

    def resolve_tasks(self, scope: str) -> list[Task]:
        """Tasks for *scope*, one per resolved config, sorted by generator name.

        Raises:
            ConfigurationError: When the configs of *scope* cannot be resolved.
        """
        spec_path = self.context.require_spec()
        configs = resolve_generator_configs(
            self.workspace.generators_dir(scope),
            self.config.requested_generators(scope),
            self.config.generator_overrides,
            self.workspace.root,
        )
        report_dir = self.workspace.stage_reports_dir(Stage.GENERATE, scope)
        return [
            Task(
                stage=Stage.GENERATE,
                scope=scope,
                target=name,
                command=docker.generate_command(
                    self.workspace, spec_path, config_path, self.config.generator_image
                ),
                log_path=report_dir / f"{name}.log",
            )
            for name, config_path in configs
        ]

    async def run(self) -> StageResult:
        entries: list[StatusEntry] = []
        for scope in self.config.mode.scopes:
            entries.extend(await self.run_scope(scope))
        return StageResult(stage=self.stage, entries=entries)

    async def run_scope(self, scope: str) -> list[StatusEntry]:
        report_dir = self.workspace.stage_reports_dir(Stage.GENERATE, scope)
        report_dir.mkdir(parents=True, exist_ok=True)
        try:
            tasks = self.resolve_tasks(scope)
        except ConfigurationError as exc:
            return [self._record_config_error(scope, report_dir / ERROR_LOG_NAME, str(exc))]
        return await self.run_tasks(tasks)

    def _record_config_error(self, scope: str, error_log: Path, message: str) -> StatusEntry:
        write_error_log(error_log, message)
        entry = self.ledger.append(
            StatusEntry(
                stage=Stage.GENERATE,
                scope=scope,
                target=CONFIG_TARGET,
                status=TaskStatus.FAIL,
                log_path=str(error_log),
            )
        )
        self.output.substep_finish(f"Generate {scope} {CONFIG_TARGET}", False)
        self.output.print_error(message)
        return entry
