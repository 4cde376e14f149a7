"""Quality checks and auto-corrections for AI-generated article content."""

from __future__ import annotations

import copy
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..logging import get_logger
from .base import SEVERITY_CORRECTION, SEVERITY_WARNING, ProcessedContent, ValidationIssue

MIN_BEST_PRACTICES = 3
MIN_TOOL_DESCRIPTION_WORDS = 6

_BROKEN_SENTENCE = re.compile(r"\. ([a-z])")
_GENERIC_PHRASES = ("get details", "get information")
_TITLED_LISTS = (
    "bestPractices",
    "serviceSpecificPrerequisites",
    "scenarios",
    "aiSpecificScenarios",
    "commonIssues",
)
_PROSE_FIELDS = ("serviceShortDescription", "serviceOverview", "authenticationNotes")

# Shapes the article prompt asks for; anything else is dropped before merging.
_STRING_FIELDS = ("serviceShortDescription", "serviceOverview", "authenticationNotes", "serviceDocLink")
_LIST_FIELDS: Dict[str, type] = {
    "capabilities": str,
    "serviceSpecificPrerequisites": dict,
    "tools": dict,
    "scenarios": dict,
    "aiSpecificScenarios": dict,
    "requiredRoles": dict,
    "commonIssues": dict,
    "bestPractices": dict,
    "additionalLinks": dict,
}
_SCENARIO_FIELDS = ("scenarios", "aiSpecificScenarios")


class ArticleContentProcessor:
    """Corrects common formatting slips and flags thin or fabricated content.

    The input mapping is never modified; corrections are applied to a deep copy.
    """

    name = "article-content"

    def __init__(self) -> None:
        self.logger = get_logger("validators.content")

    def process(self, content: Mapping[str, Any], *, tool_count: int) -> ProcessedContent:
        result = ProcessedContent(content=copy.deepcopy(dict(content)))
        data = result.content
        self._drop_mistyped_fields(data, result.issues)
        self._strip_trailing_periods(data, result.issues)
        self._fix_broken_sentences(data, result.issues)
        self._fix_repeated_leading_word(data, result.issues)
        self._clean_links(data, result.issues)
        self._check_roles(data, result.issues)
        self._check_tool_descriptions(data, result.issues)
        self._check_best_practices(data, result.issues)
        self._check_capability_ratio(data, result.issues, tool_count)
        for issue in result.issues:
            if issue.severity == SEVERITY_CORRECTION:
                self.logger.info("Corrected: %s", issue.message)
            else:
                self.logger.warning("Content check: %s", issue.message)
        return result

    def _drop_mistyped_fields(self, data: Dict[str, Any], issues: List[ValidationIssue]) -> None:
        for field_name in list(data):
            value = data[field_name]
            if value is None:
                continue
            if field_name in _STRING_FIELDS:
                if not isinstance(value, str):
                    del data[field_name]
                    issues.append(
                        _correction(field_name, f"Dropped {field_name}: expected text, got {type(value).__name__}")
                    )
                continue
            item_type = _LIST_FIELDS.get(field_name)
            if item_type is None:
                continue
            if not isinstance(value, list):
                del data[field_name]
                issues.append(
                    _correction(field_name, f"Dropped {field_name}: expected a list, got {type(value).__name__}")
                )
                continue
            kept = [item for item in value if isinstance(item, item_type)]
            if len(kept) != len(value):
                data[field_name] = kept
                issues.append(
                    _correction(field_name, f"Dropped {len(value) - len(kept)} malformed item(s) from {field_name}")
                )

        for tool in _dict_items(data.get("tools")):
            description = tool.get("shortDescription")
            if description is not None and not isinstance(description, str):
                del tool["shortDescription"]
                issues.append(_correction("tools", f"Dropped non-text shortDescription for '{tool.get('command', '?')}'"))

        for field_name in _SCENARIO_FIELDS:
            for scenario in _dict_items(data.get(field_name)):
                examples = scenario.get("examples")
                if examples is None:
                    continue
                if not isinstance(examples, list):
                    del scenario["examples"]
                    issues.append(_correction(field_name, f"Dropped malformed examples from {field_name}"))
                elif not all(isinstance(example, str) for example in examples):
                    scenario["examples"] = [example for example in examples if isinstance(example, str)]
                    issues.append(_correction(field_name, f"Dropped malformed examples from {field_name}"))

    def _strip_trailing_periods(self, data: Dict[str, Any], issues: List[ValidationIssue]) -> None:
        short = data.get("serviceShortDescription")
        if isinstance(short, str):
            trimmed = _trim_period(short)
            if trimmed != short:
                data["serviceShortDescription"] = trimmed
                issues.append(_correction("serviceShortDescription", "Stripped trailing period from serviceShortDescription"))

        capabilities = data.get("capabilities")
        if isinstance(capabilities, list):
            for index, capability in enumerate(capabilities):
                if not isinstance(capability, str):
                    continue
                trimmed = _trim_period(capability)
                if trimmed != capability:
                    capabilities[index] = trimmed
                    issues.append(_correction("capabilities", f"Stripped trailing period from capability: '{trimmed}'"))

        for field_name in _TITLED_LISTS:
            for item in _dict_items(data.get(field_name)):
                title = item.get("title")
                if not isinstance(title, str):
                    continue
                trimmed = _trim_period(title)
                if trimmed != title:
                    item["title"] = trimmed
                    issues.append(
                        _correction(field_name, f"Stripped trailing period from {field_name} title: '{trimmed}'")
                    )

    def _fix_broken_sentences(self, data: Dict[str, Any], issues: List[ValidationIssue]) -> None:
        for field_name in _PROSE_FIELDS:
            value = data.get(field_name)
            if not isinstance(value, str):
                continue
            fixed = _BROKEN_SENTENCE.sub(r" \1", value)
            if fixed != value:
                data[field_name] = fixed
                issues.append(_correction(field_name, f"Fixed grammar in {field_name}"))

    def _fix_repeated_leading_word(self, data: Dict[str, Any], issues: List[ValidationIssue]) -> None:
        overview = data.get("serviceOverview")
        if not isinstance(overview, str):
            return
        words = overview.split()
        if len(words) >= 2 and words[0].casefold() == words[1].casefold():
            data["serviceOverview"] = " ".join(words[1:])
            issues.append(_correction("serviceOverview", f"Removed redundant word at start: '{words[0]}'"))

    def _clean_links(self, data: Dict[str, Any], issues: List[ValidationIssue]) -> None:
        links = data.get("additionalLinks")
        if not isinstance(links, list):
            return
        doc_link = _normalise_url(data.get("serviceDocLink"))
        kept: List[Any] = []
        seen: set[str] = set()
        for link in links:
            if not isinstance(link, dict):
                continue
            title = str(link.get("title") or "")
            url = _normalise_url(link.get("url"))
            if not url:
                issues.append(_correction("additionalLinks", f"Removed link with empty URL: '{title}'"))
                continue
            if url.lower().endswith("/docs"):
                issues.append(_correction("additionalLinks", f"Removed link with fabricated URL: '{title}' ({url})"))
                continue
            if doc_link and url.lower() == doc_link.lower():
                issues.append(_correction("additionalLinks", f"Removed link duplicating serviceDocLink: '{title}'"))
                continue
            if url.lower() in seen:
                issues.append(_correction("additionalLinks", f"Removed duplicate link: '{title}'"))
                continue
            seen.add(url.lower())
            kept.append(link)
        data["additionalLinks"] = kept

    def _check_roles(self, data: Dict[str, Any], issues: List[ValidationIssue]) -> None:
        for role in _dict_items(data.get("requiredRoles")):
            name = role.get("name")
            if isinstance(name, str) and name.rstrip().lower().endswith("administrator"):
                issues.append(_warning("requiredRoles", f"Suspicious role name '{name}': built-in roles do not end in 'Administrator'"))

    def _check_tool_descriptions(self, data: Dict[str, Any], issues: List[ValidationIssue]) -> None:
        for tool in _dict_items(data.get("tools")):
            description = tool.get("shortDescription")
            if not isinstance(description, str):
                continue
            command = tool.get("command", "?")
            word_count = len(description.split())
            if word_count < MIN_TOOL_DESCRIPTION_WORDS:
                issues.append(
                    _warning("tools", f"Tool '{command}' description too short: {word_count} words (target: 8-12)")
                )
            lowered = description.lower()
            if any(phrase in lowered for phrase in _GENERIC_PHRASES):
                issues.append(_warning("tools", f"Tool '{command}' has generic description: '{description}'"))

    def _check_best_practices(self, data: Dict[str, Any], issues: List[ValidationIssue]) -> None:
        practices = data.get("bestPractices")
        count = len(practices) if isinstance(practices, list) else 0
        if count < MIN_BEST_PRACTICES:
            issues.append(
                _warning("bestPractices", f"Only {count} best practices (minimum {MIN_BEST_PRACTICES} required)")
            )

    def _check_capability_ratio(
        self, data: Dict[str, Any], issues: List[ValidationIssue], tool_count: int
    ) -> None:
        capabilities = data.get("capabilities")
        if isinstance(capabilities, list) and tool_count and len(capabilities) > tool_count:
            issues.append(
                _warning(
                    "capabilities",
                    f"{len(capabilities)} capabilities listed for only {tool_count} tools",
                )
            )


def _trim_period(value: str) -> str:
    return value.rstrip(". ")


def _normalise_url(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    cleaned = value.strip().rstrip("/")
    return cleaned or None


def _dict_items(value: Any) -> Iterable[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _correction(field_name: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field_name, message=message, severity=SEVERITY_CORRECTION)


def _warning(field_name: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field_name, message=message, severity=SEVERITY_WARNING)


__all__ = ["ArticleContentProcessor", "MIN_BEST_PRACTICES", "MIN_TOOL_DESCRIPTION_WORDS"]
