"""Builds chat prompts for namespace article enrichment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..models import StaticArticle
from ..rendering.engine import TemplateRenderer
from .constants import AI_FIELDS, SYSTEM_PROMPT_TEMPLATE, USER_PROMPT_TEMPLATE


@dataclass(frozen=True)
class PromptMessage:
    """Represents a single chat message for LLM prompting."""

    role: str
    content: str


@dataclass
class PromptRequest:
    """Encapsulates the prompt pair for one namespace."""

    namespace: str
    messages: List[PromptMessage]

    @property
    def system(self) -> Optional[str]:
        for message in self.messages:
            if message.role == "system":
                return message.content
        return None

    @property
    def user(self) -> str:
        for message in reversed(self.messages):
            if message.role == "user":
                return message.content
        return ""


class PromptBuilder:
    """Renders the system and user prompts through the shared template renderer.

    The user prompt is produced from the same static context that feeds the
    final article, so the model only ever sees the filtered, grouped tool list.
    """

    def __init__(
        self,
        renderer: TemplateRenderer,
        *,
        system_template: str = SYSTEM_PROMPT_TEMPLATE,
        user_template: str = USER_PROMPT_TEMPLATE,
    ) -> None:
        self.renderer = renderer
        self.system_template = system_template
        self.user_template = user_template

    def system_prompt(self) -> str:
        return self.renderer.render(self.system_template).strip()

    def user_prompt(self, article: StaticArticle) -> str:
        return self.renderer.render(self.user_template, self.prompt_context(article)).strip()

    def build(self, article: StaticArticle) -> PromptRequest:
        messages = [
            PromptMessage(role="system", content=self.system_prompt()),
            PromptMessage(role="user", content=self.user_prompt(article)),
        ]
        return PromptRequest(namespace=article.namespace.identifier, messages=messages)

    @staticmethod
    def prompt_context(article: StaticArticle) -> Dict[str, Any]:
        context = article.to_context()
        context["aiFields"] = list(AI_FIELDS)
        return context


__all__ = ["PromptBuilder", "PromptMessage", "PromptRequest"]
