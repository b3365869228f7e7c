"""oav configuration.

The ``.oavc`` file at the repository root is a small YAML document mirrored
by the Pydantic v2 :class:`Config` model.  Values are validated when loaded,
and ``oav config get/set`` goes through :meth:`Config.get_value` and
:meth:`Config.set_value`.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from oav.errors import ConfigurationError

CONFIG_FILE = ".oavc"

DEFAULT_GENERATOR_IMAGE = "openapitools/openapi-generator-cli:v7.17.0"
DEFAULT_REDOCLY_IMAGE = "redocly/cli:1.25.5"

_TRUE_VALUES = {"true", "1", "yes", "y"}
_FALSE_VALUES = {"false", "0", "no", "n"}

# Accepted spellings on the command line -> model field.
_KEY_ALIASES: dict[str, str] = {
    "spec": "spec",
    "mode": "mode",
    "lint": "lint",
    "generate": "generate",
    "compile": "compile",
    "server_generators": "server_generators",
    "server-generators": "server_generators",
    "client_generators": "client_generators",
    "client-generators": "client_generators",
    "generator_overrides": "generator_overrides",
    "generator-overrides": "generator_overrides",
    "generator_image": "generator_image",
    "generator-image": "generator_image",
    "redocly_image": "redocly_image",
    "redocly-image": "redocly_image",
}


class Mode(str, Enum):
    """Which generator scopes a run covers."""

    SERVER = "server"
    CLIENT = "client"
    BOTH = "both"

    def includes(self, scope: str) -> bool:
        return self is Mode.BOTH or self.value == scope

    @property
    def scopes(self) -> list[str]:
        if self is Mode.BOTH:
            return [Mode.SERVER.value, Mode.CLIENT.value]
        return [self.value]


class Config(BaseModel):
    """Repository-level oav settings persisted in ``.oavc``."""

    spec: Optional[str] = Field(default=None, description="Spec path relative to the repository root")
    mode: Mode = Field(default=Mode.SERVER)
    lint: bool = Field(default=True)
    generate: bool = Field(default=True)
    compile: bool = Field(default=True)
    server_generators: list[str] = Field(default_factory=list)
    client_generators: list[str] = Field(default_factory=list)
    generator_overrides: dict[str, str] = Field(
        default_factory=dict,
        description="generator name -> config file used instead of the bundled one",
    )
    generator_image: str = Field(default=DEFAULT_GENERATOR_IMAGE)
    redocly_image: str = Field(default=DEFAULT_REDOCLY_IMAGE)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def requested_generators(self, scope: str) -> list[str]:
        """Generator names requested for *scope*, empty meaning "all"."""
        if scope == Mode.CLIENT.value:
            return list(self.client_generators)
        return list(self.server_generators)

    @property
    def any_stage_enabled(self) -> bool:
        return self.lint or self.generate or self.compile

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, root: Path) -> "Config":
        """Load ``<root>/.oavc``, returning defaults when it does not exist.

        Raises:
            ConfigurationError: If the file is not valid YAML or fails validation.
        """
        path = Path(root) / CONFIG_FILE
        if not path.exists():
            return cls()
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse {CONFIG_FILE}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Failed to parse {CONFIG_FILE}: expected a mapping")
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid {CONFIG_FILE}: {exc}") from exc

    def save(self, root: Path) -> Path:
        """Write the configuration to ``<root>/.oavc`` and return the path."""
        path = Path(root) / CONFIG_FILE
        path.write_text(self.to_yaml(), encoding="utf-8")
        return path

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.model_dump(mode="json"), sort_keys=False)

    def with_overrides(
        self,
        *,
        spec: Optional[str] = None,
        mode: Optional[str] = None,
        server_generators: Optional[list[str]] = None,
        client_generators: Optional[list[str]] = None,
        skip_lint: bool = False,
        skip_generate: bool = False,
        skip_compile: bool = False,
    ) -> "Config":
        """Return a copy with command-line flags applied on top."""
        updates: dict[str, Any] = {}
        if spec is not None:
            updates["spec"] = spec
        if mode is not None:
            updates["mode"] = parse_mode(mode)
        if server_generators is not None:
            updates["server_generators"] = server_generators
        if client_generators is not None:
            updates["client_generators"] = client_generators
        if skip_lint:
            updates["lint"] = False
        if skip_generate:
            updates["generate"] = False
        if skip_compile:
            updates["compile"] = False
        return self.model_copy(update=updates, deep=True)

    # ------------------------------------------------------------------
    # get / set by key
    # ------------------------------------------------------------------

    def get_value(self, key: str) -> str:
        """Render the value behind *key* the way ``oav config get`` prints it.

        ``generator_overrides.<name>`` reads a single override; an unknown
        override yields an empty string.
        """
        field, subkey = _resolve_key(key)
        value = getattr(self, field)
        if field == "generator_overrides" and subkey is not None:
            return self.generator_overrides.get(subkey, "")
        if value is None:
            return ""
        if isinstance(value, Mode):
            return value.value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (list, dict)):
            return yaml.safe_dump(value, default_flow_style=True).strip()
        return str(value)

    def set_value(self, key: str, value: str) -> None:
        """Update the field behind *key* from its string form.

        Raises:
            ConfigurationError: For unknown keys or unparsable values.
        """
        field, subkey = _resolve_key(key)
        if field in ("lint", "generate", "compile"):
            setattr(self, field, parse_bool(value))
        elif field == "mode":
            self.mode = parse_mode(value)
        elif field in ("server_generators", "client_generators"):
            setattr(self, field, _parse_yaml_list(value, field))
        elif field == "generator_overrides":
            if subkey is not None:
                if value:
                    self.generator_overrides[subkey] = value
                else:
                    self.generator_overrides.pop(subkey, None)
            else:
                self.generator_overrides = _parse_yaml_map(value)
        else:
            setattr(self, field, value)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _resolve_key(key: str) -> tuple[str, Optional[str]]:
    base, _, subkey = key.partition(".")
    field = _KEY_ALIASES.get(base)
    if field is None:
        raise ConfigurationError(f"Unknown config key: {key}")
    return field, (subkey or None)


def parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean: {raw} (expected true/false)")


def parse_mode(raw: str) -> Mode:
    try:
        return Mode(raw.strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Invalid mode: {raw} (expected server, client, or both)"
        ) from None


def parse_csv(raw: str) -> list[str]:
    """Split a ``--server-generators a,b`` style flag value."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def _parse_yaml_list(raw: str, field: str) -> list[str]:
    if not raw.strip():
        return []
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        value = None
    if not isinstance(value, list):
        raise ConfigurationError(
            f"Invalid YAML list for {field} (example: [spring, kotlin])"
        )
    return [str(item) for item in value]


def _parse_yaml_map(raw: str) -> dict[str, str]:
    if not raw.strip():
        return {}
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        value = None
    if not isinstance(value, dict):
        raise ConfigurationError(
            "Invalid YAML map for generator_overrides (example: {spring: ./path.yaml})"
        )
    return {str(k): str(v) for k, v in value.items()}
