"""Template renderer backed by jinja2 with a per-identifier compile cache."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound

from ..logging import get_logger
from .helpers import HELPERS

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class TemplateMissingError(RuntimeError):
    """Raised when a template identifier cannot be found on any search path."""


class TemplateRenderer:
    """Compiles templates once and renders them against plain mappings.

    Custom template directories shadow the bundled templates, so a project can
    override ``namespace.md.j2`` or a single partial without copying the rest.
    """

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self.logger = get_logger("rendering")
        self._env = self._create_env(templates_dir)
        self._cache: Dict[str, Template] = {}
        self._string_cache: Dict[str, Template] = {}

    @property
    def search_path(self) -> List[str]:
        loader = self._env.loader
        return list(loader.searchpath) if isinstance(loader, FileSystemLoader) else []

    def get(self, name: str) -> Template:
        """Return the compiled template for ``name``, compiling on first use."""
        template = self._cache.get(name)
        if template is not None:
            return template
        try:
            template = self._env.get_template(name)
        except TemplateNotFound as exc:
            raise TemplateMissingError(
                f"Template '{name}' not found in {', '.join(self.search_path)}"
            ) from exc
        self.logger.debug("Compiled template %s", name)
        self._cache[name] = template
        return template

    def render(self, name: str, context: Mapping[str, Any] | None = None) -> str:
        return self.get(name).render(**dict(context or {}))

    def render_string(self, source: str, context: Mapping[str, Any] | None = None) -> str:
        template = self._string_cache.get(source)
        if template is None:
            template = self._env.from_string(source)
            self._string_cache[source] = template
        return template.render(**dict(context or {}))

    def has_template(self, name: str) -> bool:
        try:
            self.get(name)
        except TemplateMissingError:
            return False
        return True

    @staticmethod
    def _create_env(templates_dir: Optional[Path]) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(DEFAULT_TEMPLATES_DIR))
        # ensure uniqueness preserving order
        seen: set[str] = set()
        ordered: list[str] = []
        for directory in directories:
            if directory not in seen:
                ordered.append(directory)
                seen.add(directory)
        env = Environment(
            loader=FileSystemLoader(ordered),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        env.filters.update(HELPERS)
        env.globals.update(HELPERS)
        return env


__all__ = ["DEFAULT_TEMPLATES_DIR", "TemplateMissingError", "TemplateRenderer"]
