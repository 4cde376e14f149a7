"""Shared constants for namespace article prompting."""

from __future__ import annotations

SYSTEM_PROMPT_TEMPLATE = "prompts/article_system.txt"
USER_PROMPT_TEMPLATE = "prompts/article_user.txt.j2"

# Top-level fields the model is asked to produce, in the order the article uses them.
AI_FIELDS: tuple[str, ...] = (
    "serviceShortDescription",
    "serviceOverview",
    "capabilities",
    "serviceSpecificPrerequisites",
    "tools",
    "scenarios",
    "aiSpecificScenarios",
    "requiredRoles",
    "authenticationNotes",
    "commonIssues",
    "bestPractices",
    "serviceDocLink",
    "additionalLinks",
)

# Per-tool fields the model may contribute; matched to static tools by command.
AI_TOOL_FIELDS: tuple[str, ...] = ("shortDescription",)

TOOL_MATCH_KEY = "command"


__all__ = [
    "AI_FIELDS",
    "AI_TOOL_FIELDS",
    "SYSTEM_PROMPT_TEMPLATE",
    "TOOL_MATCH_KEY",
    "USER_PROMPT_TEMPLATE",
]
