"""Post-processing applied to rendered Markdown."""

from .lint import MarkdownLinter

__all__ = ["MarkdownLinter"]
