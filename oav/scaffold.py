"""Workspace asset generation.

Renders the files the external tools consume into ``.oav``: one
openapi-generator config per supported generator and the compose file that
declares the ``build-*`` services used by the compile stage.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from oav.generators import GENERATORS, SCOPES, generators_for
from oav.rendering import TemplateRenderer
from oav.workspace import Workspace


class WorkspaceScaffolder:
    """Writes the bundled generator configs and ``docker-compose.yaml``."""

    def __init__(self, workspace: Workspace, renderer: Optional[TemplateRenderer] = None) -> None:
        self.workspace = workspace
        self.renderer = renderer or TemplateRenderer()

    def write_all(self) -> list[Path]:
        """Write every asset, overwriting previous copies.  Returns written paths."""
        written = self.write_generator_configs()
        written.append(self.write_compose_file())
        return written

    def write_generator_configs(self) -> list[Path]:
        written: list[Path] = []
        for scope in SCOPES:
            target_dir = self.workspace.generators_dir(scope)
            for generator in generators_for(scope):
                written.append(
                    self.renderer.render_to_file(
                        "generator.yaml.j2",
                        target_dir / f"{generator.name}.yaml",
                        {"generator": generator},
                    )
                )
        return written

    def write_compose_file(self) -> Path:
        return self.renderer.render_to_file(
            "docker-compose.yaml.j2",
            self.workspace.compose_path,
            {"generators": sorted(GENERATORS, key=lambda g: g.service)},
        )
