"""Jinja2 template rendering.

Loads templates from ``oav/templates/`` for the HTML dashboard and for the
files written into the ``.oav`` workspace.  HTML templates are autoescaped,
so ledger fields and log text can never inject markup.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Renders ``.j2`` templates with a context dictionary."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir or _DEFAULT_TEMPLATE_DIR)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html.j2", "html"]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render *template_path* (relative to the template root)."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    def render_to_file(
        self, template_path: str, output_path: str | Path, context: dict[str, Any]
    ) -> Path:
        """Render a template into *output_path*, creating parent directories."""
        content = self.render(template_path, context)
        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(content, encoding="utf-8")
        return out
