"""Prompt construction for namespace article enrichment."""

from .builder import PromptBuilder, PromptMessage, PromptRequest

__all__ = ["PromptBuilder", "PromptMessage", "PromptRequest"]
