"""Tests for refgen.content."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from refgen.config import ReferenceData
from refgen.content import ContentOrchestrator, NamespaceGenerationError, merge_content, static_only
from refgen.grouping import group_tools
from refgen.llm.retry import RetryPolicy, RetryTrace
from refgen.llm.runner import LLMRequestError, LLMRunner, RateLimitError
from refgen.models import NamespaceDescriptor, Parameter, StaticArticle, ToolRecord
from refgen.naming import NameResolver
from refgen.prompting.builder import PromptBuilder
from refgen.rendering.engine import TemplateRenderer

AI_PAYLOAD = {
    "serviceShortDescription": "Manage storage accounts and blob containers",
    "serviceOverview": "Storage tools let you inspect accounts and containers.",
    "serviceIdentifier": "ai-should-not-win",
    "capabilities": ["Create accounts", "Inspect containers"],
    "tools": [
        {
            "command": "storage account create",
            "shortDescription": "Create a new storage account in a resource group",
            "description": "AI text must not replace the tool description",
        }
    ],
    "bestPractices": [{"title": f"Practice {n}", "description": "Do it."} for n in range(3)],
    "serviceDocLink": None,
}


class ScriptedTransport:
    """Transport double that raises or returns queued results in order."""

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _article(reference_data: ReferenceData) -> StaticArticle:
    namer = NameResolver(reference_data)
    tools = [
        ToolRecord(
            command="storage account create",
            description="Create a storage account.",
            parameters=(Parameter("account-name", required=True),),
        ),
        ToolRecord(command="storage blob container get", description="Show a container."),
    ]
    return StaticArticle(
        namespace=NamespaceDescriptor("storage", "Storage"),
        name=namer.resolve("storage"),
        groups=group_tools(tools, reference_data, namer),
        generated_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        version="1.0.0",
    )


def _orchestrator(transport: ScriptedTransport, tmp_path: Path, sleeps: list[float]) -> ContentOrchestrator:
    return ContentOrchestrator(
        LLMRunner(runner=transport),
        PromptBuilder(TemplateRenderer()),
        policy=RetryPolicy(),
        diagnostics_dir=tmp_path / "diagnostics",
        sleep=sleeps.append,
    )


def test_merge_keeps_static_fields() -> None:
    static = {"serviceIdentifier": "storage", "toolCount": 2, "namespaceDescription": ""}
    ai = {"serviceIdentifier": "other", "toolCount": 99, "serviceOverview": "text", "capabilities": None}

    merged = merge_content(static, ai)

    assert merged["serviceIdentifier"] == "storage"
    assert merged["toolCount"] == 2
    assert merged["namespaceDescription"] == ""
    assert merged["serviceOverview"] == "text"
    assert "capabilities" not in merged


def test_merge_fills_tool_fields_by_command(reference_data: ReferenceData) -> None:
    static = _article(reference_data).to_context()

    merged = merge_content(static, AI_PAYLOAD)

    tools = {tool["command"]: tool for tool in merged["tools"]}
    create = tools["storage account create"]
    assert create["shortDescription"] == "Create a new storage account in a resource group"
    assert create["description"] == "Create a storage account."
    assert "shortDescription" not in tools["storage blob container get"]
    operations = [op for group in merged["resourceGroups"] for op in group["operations"]]
    assert any(op.get("shortDescription") for op in operations)
    assert "serviceDocLink" not in merged
    assert "shortDescription" not in static["tools"][0]


def test_merge_without_ai_returns_static_copy() -> None:
    static = {"serviceIdentifier": "storage"}

    merged = merge_content(static, None)

    assert merged == static
    assert merged is not static


def test_enrich_retries_rate_limits_then_merges(tmp_path: Path, reference_data: ReferenceData) -> None:
    transport = ScriptedTransport(
        RateLimitError("429", status=429),
        RateLimitError("429", status=429),
        RateLimitError("429", status=429),
        "```json\n" + json.dumps(AI_PAYLOAD) + "\n```",
    )
    sleeps: list[float] = []
    trace = RetryTrace()

    merged = _orchestrator(transport, tmp_path, sleeps).enrich(_article(reference_data), trace=trace)

    assert merged.enriched is True
    assert trace.retries == 3
    assert sleeps == [1.0, 2.0, 4.0]
    assert len(transport.requests) == 4
    assert "storage account create" in transport.requests[0].prompt
    assert transport.requests[0].system
    assert merged.fields["serviceIdentifier"] == "storage"
    assert merged.fields["serviceOverview"] == "Storage tools let you inspect accounts and containers."


def test_enrich_fails_fast_on_non_retryable_error(tmp_path: Path, reference_data: ReferenceData) -> None:
    transport = ScriptedTransport(LLMRequestError("LLM HTTP runner failed with status 401: denied", status=401))
    sleeps: list[float] = []

    with pytest.raises(NamespaceGenerationError) as excinfo:
        _orchestrator(transport, tmp_path, sleeps).enrich(_article(reference_data))

    assert excinfo.value.namespace == "storage"
    assert "401" in excinfo.value.reason
    assert excinfo.value.trace.retries == 0
    assert sleeps == []


def test_enrich_wraps_transport_timeouts(tmp_path: Path, reference_data: ReferenceData) -> None:
    transport = ScriptedTransport(TimeoutError("The read operation timed out"))

    with pytest.raises(NamespaceGenerationError) as excinfo:
        _orchestrator(transport, tmp_path, []).enrich(_article(reference_data))

    assert excinfo.value.reason == "The read operation timed out"
    assert isinstance(excinfo.value.__cause__, TimeoutError)
    assert len(transport.requests) == 1


def test_enrich_gives_up_after_max_attempts(tmp_path: Path, reference_data: ReferenceData) -> None:
    transport = ScriptedTransport(*[RateLimitError("429", status=429) for _ in range(5)])
    sleeps: list[float] = []

    with pytest.raises(NamespaceGenerationError) as excinfo:
        _orchestrator(transport, tmp_path, sleeps).enrich(_article(reference_data))

    assert len(transport.requests) == 5
    assert excinfo.value.trace.retries == 4
    assert sum(sleeps) <= 31


def test_enrich_writes_diagnostic_on_parse_failure(tmp_path: Path, reference_data: ReferenceData) -> None:
    transport = ScriptedTransport("Sorry, I cannot help with that.")

    with pytest.raises(NamespaceGenerationError) as excinfo:
        _orchestrator(transport, tmp_path, []).enrich(_article(reference_data))

    path = excinfo.value.diagnostic_path
    assert path == tmp_path / "diagnostics" / "storage-ai-response.txt"
    text = path.read_text(encoding="utf-8")
    assert text.startswith("# error: Response is not valid JSON")
    assert text.endswith("Sorry, I cannot help with that.")


def test_static_only_is_not_enriched(reference_data: ReferenceData) -> None:
    merged = static_only(_article(reference_data))

    assert merged.enriched is False
    assert merged.fields["serviceBrandName"] == "Azure Storage"
    assert merged.fields["toolCount"] == 2
