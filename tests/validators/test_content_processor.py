"""Tests for ArticleContentProcessor."""

from __future__ import annotations

from refgen.validators.base import SEVERITY_CORRECTION, SEVERITY_WARNING
from refgen.validators.content import ArticleContentProcessor


def _practices(count: int) -> list[dict[str, str]]:
    return [{"title": f"Practice {n}", "description": "Do it."} for n in range(count)]


def test_processor_strips_trailing_periods_without_mutating_input() -> None:
    content = {
        "serviceShortDescription": "Manage storage accounts and blobs.",
        "capabilities": ["Create accounts.", "List containers"],
        "bestPractices": [{"title": "Use managed identity.", "description": "Avoid keys."}, *_practices(2)],
    }

    result = ArticleContentProcessor().process(content, tool_count=5)

    assert result.content["serviceShortDescription"] == "Manage storage accounts and blobs"
    assert result.content["capabilities"] == ["Create accounts", "List containers"]
    assert result.content["bestPractices"][0]["title"] == "Use managed identity"
    assert content["capabilities"][0] == "Create accounts."
    assert len(result.corrections) == 3
    assert result.warnings == []


def test_processor_fixes_grammar_and_repeated_words() -> None:
    content = {
        "serviceOverview": "The the storage tools manage blobs. and containers.",
        "bestPractices": _practices(3),
    }

    result = ArticleContentProcessor().process(content, tool_count=3)

    assert result.content["serviceOverview"] == "the storage tools manage blobs and containers."
    assert all(issue.severity == SEVERITY_CORRECTION for issue in result.issues)


def test_processor_cleans_links() -> None:
    content = {
        "serviceDocLink": "https://learn.microsoft.com/azure/storage/",
        "additionalLinks": [
            {"title": "Empty", "url": ""},
            {"title": "Guessed", "url": "https://example.com/docs"},
            {"title": "Doc again", "url": "https://learn.microsoft.com/azure/storage"},
            {"title": "Pricing", "url": "https://azure.microsoft.com/pricing/storage"},
            {"title": "Pricing copy", "url": "https://azure.microsoft.com/pricing/storage/"},
        ],
        "bestPractices": _practices(3),
    }

    result = ArticleContentProcessor().process(content, tool_count=3)

    assert [link["title"] for link in result.content["additionalLinks"]] == ["Pricing"]
    assert len(result.corrections) == 4


def test_processor_warns_about_thin_or_suspicious_content() -> None:
    content = {
        "capabilities": ["One", "Two", "Three"],
        "requiredRoles": [{"name": "Storage Administrator", "purpose": "Manage"}],
        "tools": [
            {"command": "storage account get", "shortDescription": "Get details"},
            {
                "command": "storage account list",
                "shortDescription": "List every storage account available in the current subscription",
            },
        ],
        "bestPractices": _practices(1),
    }

    result = ArticleContentProcessor().process(content, tool_count=2)

    fields = [issue.field for issue in result.issues if issue.severity == SEVERITY_WARNING]
    assert sorted(fields) == ["bestPractices", "capabilities", "requiredRoles", "tools", "tools"]
    assert any("too short" in message for message in result.warnings)
    assert any("generic description" in message for message in result.warnings)
    assert result.corrections == []


def test_processor_drops_fields_with_unexpected_shapes() -> None:
    content = {
        "serviceOverview": ["not", "text"],
        "capabilities": 5,
        "bestPractices": [*_practices(3), "Rotate keys"],
        "tools": [{"command": "storage account list", "shortDescription": 42}],
        "scenarios": [{"title": "Audit", "description": "Review accounts.", "examples": "list accounts"}],
        "serviceDocLink": None,
    }

    result = ArticleContentProcessor().process(content, tool_count=3)

    assert "serviceOverview" not in result.content
    assert "capabilities" not in result.content
    assert len(result.content["bestPractices"]) == 3
    assert result.content["tools"] == [{"command": "storage account list"}]
    assert "examples" not in result.content["scenarios"][0]
    assert result.content["serviceDocLink"] is None
    assert len(result.corrections) == 5
    assert content["capabilities"] == 5
