"""Docker command construction and availability checks.

The stages never talk to Docker directly; they build argv lists here and
hand them to :class:`oav.runner.ProcessRunner`.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from oav.errors import DockerUnavailableError
from oav.workspace import OAV_DIR, Workspace, to_posix_path


def ensure_available(docker_binary: str = "docker") -> None:
    """Check that ``docker version`` succeeds.

    Raises:
        DockerUnavailableError: If the binary is missing or the daemon does
            not respond.
    """
    try:
        result = subprocess.run(
            [docker_binary, "version"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except FileNotFoundError:
        raise DockerUnavailableError("Docker not found in PATH.") from None
    if result.returncode != 0:
        raise DockerUnavailableError(
            "Docker is installed but not responding. Is the daemon running?"
        )


def user_args() -> list[str]:
    """``--user uid:gid`` so generated files are owned by the caller (POSIX only)."""
    if hasattr(os, "geteuid") and hasattr(os, "getegid"):
        return ["--user", f"{os.geteuid()}:{os.getegid()}"]
    return []


def lint_command(workspace: Workspace, spec_path: Path, image: str) -> list[str]:
    """``docker run`` invocation of the Redocly linter against *spec_path*."""
    return [
        "docker", "run", "--rm",
        "-v", f"{workspace.root}:/work",
        "-w", f"/work/{OAV_DIR}",
        image,
        "lint", f"/work/{to_posix_path(spec_path)}",
    ]


def generate_command(
    workspace: Workspace, spec_path: Path, config_path: Path, image: str
) -> list[str]:
    """``docker run`` invocation of openapi-generator for one config file.

    Raises:
        ConfigurationError: If *config_path* is outside the repository and
            therefore not visible inside the container.
    """
    container_config = workspace.to_container_path(config_path)
    return [
        "docker", "run", "--rm",
        *user_args(),
        "-v", f"{workspace.root}:/work",
        "-w", f"/work/{OAV_DIR}",
        image,
        "generate",
        "-i", f"/work/{to_posix_path(spec_path)}",
        "-c", container_config,
    ]


def compose_run_command(workspace: Workspace, service: str) -> list[str]:
    """``docker compose run`` invocation of a declared build service."""
    return [
        "docker", "compose",
        "-f", str(workspace.compose_path),
        "--project-directory", str(workspace.oav_dir),
        "run", "--rm", service,
    ]
