"""Supported generators and the toolchains that build their output.

The compile stage only accepts names listed here, and the workspace
scaffolding renders one generator config and one compose ``build-*`` service
per entry.  Adding a generator is a change to :data:`GENERATORS` only.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

SERVER = "server"
CLIENT = "client"
SCOPES: tuple[str, ...] = (SERVER, CLIENT)

_DOTNET = "mcr.microsoft.com/dotnet/sdk:8.0"
_GO = "golang:1.22"
_MAVEN = "maven:3.9-eclipse-temurin-17"
_GRADLE = "gradle:8.7-jdk17"
_PYTHON = "python:3.12-slim"
_NODE = "node:20"


class GeneratorSpec(BaseModel):
    """An openapi-generator id together with the image that compiles its output."""

    name: str = Field(..., description="openapi-generator generator id")
    scope: str = Field(..., description="'server' or 'client'")
    build_image: str
    build_command: str = Field(..., description="Shell command run inside the build image")

    @property
    def service(self) -> str:
        """Compose service name of the build step."""
        return build_service_name(self.scope, self.name)

    @property
    def output_dir(self) -> str:
        """Generated sources, relative to the ``.oav`` directory."""
        return f"generated/{self.scope}/{self.name}"


GENERATORS: tuple[GeneratorSpec, ...] = (
    # Server stubs
    GeneratorSpec(name="aspnetcore", scope=SERVER, build_image=_DOTNET,
                  build_command="dotnet build"),
    GeneratorSpec(name="go-server", scope=SERVER, build_image=_GO,
                  build_command="go build ./..."),
    GeneratorSpec(name="kotlin-spring", scope=SERVER, build_image=_MAVEN,
                  build_command="mvn -q -B -DskipTests package"),
    GeneratorSpec(name="python-fastapi", scope=SERVER, build_image=_PYTHON,
                  build_command="pip install -q . && python -m compileall -q src"),
    GeneratorSpec(name="spring", scope=SERVER, build_image=_MAVEN,
                  build_command="mvn -q -B -DskipTests package"),
    GeneratorSpec(name="typescript-nestjs", scope=SERVER, build_image=_NODE,
                  build_command="npm install --silent && npx tsc --noEmit -p ."),
    # Clients
    GeneratorSpec(name="csharp", scope=CLIENT, build_image=_DOTNET,
                  build_command="dotnet build"),
    GeneratorSpec(name="go", scope=CLIENT, build_image=_GO,
                  build_command="go build ./..."),
    GeneratorSpec(name="java", scope=CLIENT, build_image=_MAVEN,
                  build_command="mvn -q -B -DskipTests package"),
    GeneratorSpec(name="kotlin", scope=CLIENT, build_image=_GRADLE,
                  build_command="gradle build -x test --no-daemon -q"),
    GeneratorSpec(name="python", scope=CLIENT, build_image=_PYTHON,
                  build_command="pip install -q . && python -m compileall -q ."),
    GeneratorSpec(name="typescript-axios", scope=CLIENT, build_image=_NODE,
                  build_command="npm install --silent && npm run build"),
    GeneratorSpec(name="typescript-fetch", scope=CLIENT, build_image=_NODE,
                  build_command="npm install --silent && npm run build"),
    GeneratorSpec(name="typescript-node", scope=CLIENT, build_image=_NODE,
                  build_command="npm install --silent && npm run build"),
)


def build_service_name(scope: str, name: str) -> str:
    """``build-<name>`` for server generators, ``build-client-<name>`` for clients."""
    if scope == CLIENT:
        return f"build-client-{name}"
    return f"build-{name}"


def generators_for(scope: str) -> list[GeneratorSpec]:
    """Generators of *scope*, sorted by name."""
    return sorted((g for g in GENERATORS if g.scope == scope), key=lambda g: g.name)


def supported_names(scope: str) -> list[str]:
    """Sorted generator ids accepted by the compile stage for *scope*."""
    return [g.name for g in generators_for(scope)]
