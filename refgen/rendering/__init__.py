"""Template rendering for pages, prompts and reports."""

from .engine import TemplateMissingError, TemplateRenderer

__all__ = ["TemplateMissingError", "TemplateRenderer"]
