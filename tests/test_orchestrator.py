"""Tests for refgen.orchestrator."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from refgen.config import LLMConfig, RetryConfig
from refgen.llm.runner import LLMRunner, RateLimitError
from refgen.loader import MissingInputFileError
from refgen.models import STATUS_ENRICHED, STATUS_FAILED, STATUS_STATIC
from refgen.orchestrator import Orchestrator, RunSettings
from refgen.validators.artifacts import REPORT_JSON, REPORT_MARKDOWN
from tests._fixtures.metadata_builder import MetadataBuilder, option

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class RecordingTransport:
    """Returns queued responses and records every request."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _write_inputs(builder: MetadataBuilder) -> tuple[Path, Path]:
    builder.tool(
        "storage account create",
        "Create a storage account.",
        options=[option("account-name", required=True, description="Account name."), option("subscription")],
        destructive=True,
        read_only=False,
    )
    builder.tool("storage account list", "List storage accounts.", options=[option("subscription")])
    builder.tool("storage blob container get", "Show container properties.")
    builder.tool("monitor metrics query", "Query metrics for a resource.")
    builder.namespace("storage", "Storage", "Storage account and blob tools")
    builder.namespace("monitor", "Monitor")
    return builder.write()


def _settings(tools_path: Path, namespaces_path: Path, output_dir: Path, **overrides) -> RunSettings:
    version_file = tools_path.parent / "version.txt"
    version_file.write_text("2.1.0\n", encoding="utf-8")
    values = {
        "tools_path": tools_path,
        "namespaces_path": namespaces_path,
        "output_dir": output_dir,
        "version_file": version_file,
    }
    values.update(overrides)
    return RunSettings(**values)


def test_skip_ai_run_writes_every_artifact(tmp_path: Path, metadata_builder: MetadataBuilder) -> None:
    tools_path, namespaces_path = _write_inputs(metadata_builder)
    output_dir = tmp_path / "generated"

    report = Orchestrator(clock=lambda: FIXED_NOW).run(
        _settings(tools_path, namespaces_path, output_dir, skip_ai=True)
    )

    tool_pages = sorted(path.name for path in (output_dir / "tools").glob("*.md"))
    assert tool_pages == [
        "azure-monitor-metrics-query.md",
        "azure-storage-account-create.md",
        "azure-storage-account-list.md",
        "azure-storage-blob-container-get.md",
    ]
    article = (output_dir / "namespaces" / "azure-storage.md").read_text(encoding="utf-8")
    assert article.startswith("---\nms.topic: reference\nms.date: 2025-06-01\ncli.version: 2.1.0\n")
    assert "generated: 2025-06-01 12:00:00 UTC\n---\n\n# Azure Storage tools\n" in article
    assert "### Container" in article
    assert "[Get container details](../tools/azure-storage-blob-container-get.md)" in article
    assert article.index("cli.version") < article.index("### Container")

    create_page = (output_dir / "tools" / "azure-storage-account-create.md").read_text(encoding="utf-8")
    assert "Account name" in create_page
    assert "Subscription" not in create_page

    assert not report.has_missing_artifacts
    assert [entry.status for entry in report.namespaces] == [STATUS_STATIC, STATUS_STATIC]
    assert (output_dir / REPORT_JSON).exists()
    assert (output_dir / REPORT_MARKDOWN).exists()


def test_unconfigured_endpoint_falls_back_to_static(tmp_path: Path, metadata_builder: MetadataBuilder) -> None:
    tools_path, namespaces_path = _write_inputs(metadata_builder)

    report = Orchestrator(clock=lambda: FIXED_NOW).run(
        _settings(tools_path, namespaces_path, tmp_path / "out", llm=LLMConfig(model="gpt-4o"))
    )

    assert {entry.status for entry in report.namespaces} == {STATUS_STATIC}


def test_enriched_run_continues_after_namespace_failure(
    tmp_path: Path, metadata_builder: MetadataBuilder
) -> None:
    tools_path, namespaces_path = _write_inputs(metadata_builder)
    output_dir = tmp_path / "generated"
    storage_payload = {
        "serviceShortDescription": "Manage storage accounts and blob containers.",
        "serviceOverview": "Use these tools to work with storage accounts.",
        "bestPractices": [{"title": f"Practice {n}", "description": "Do it."} for n in range(3)],
        "tools": [
            {
                "command": "storage account list",
                "shortDescription": "List every storage account in the selected subscription",
            }
        ],
    }
    transport = RecordingTransport(
        RateLimitError("429", status=429),
        "```json\n" + json.dumps(storage_payload) + "\n```",
        "this is not json",
    )
    sleeps: list[float] = []

    report = Orchestrator(
        runner=LLMRunner(runner=transport),
        clock=lambda: FIXED_NOW,
        sleep=sleeps.append,
    ).run(_settings(tools_path, namespaces_path, output_dir))

    storage = report.namespace("storage")
    monitor = report.namespace("monitor")
    assert storage is not None and monitor is not None
    assert storage.status == STATUS_ENRICHED
    assert storage.retries == 1
    assert sleeps == [1.0]
    assert monitor.status == STATUS_FAILED
    assert monitor.diagnostic_path == output_dir / "diagnostics" / "monitor-ai-response.txt"
    assert monitor.diagnostic_path.exists()

    storage_article = (output_dir / "namespaces" / "azure-storage.md").read_text(encoding="utf-8")
    assert "Manage storage accounts and blob containers." in storage_article
    assert "## Overview" in storage_article
    assert "List every storage account in the selected subscription" in storage_article
    assert (output_dir / "namespaces" / "azure-monitor.md").exists()
    assert not report.has_missing_artifacts

    payload = json.loads((output_dir / REPORT_JSON).read_text(encoding="utf-8"))
    assert [item["status"] for item in payload["namespaces"]] == [STATUS_ENRICHED, STATUS_FAILED]


def test_transport_timeout_is_isolated_to_one_namespace(
    tmp_path: Path, metadata_builder: MetadataBuilder
) -> None:
    tools_path, namespaces_path = _write_inputs(metadata_builder)
    output_dir = tmp_path / "generated"
    transport = RecordingTransport(
        TimeoutError("The read operation timed out"),
        json.dumps({"serviceOverview": "Query metrics and logs."}),
    )

    report = Orchestrator(runner=LLMRunner(runner=transport), sleep=lambda _: None).run(
        _settings(tools_path, namespaces_path, output_dir)
    )

    storage = report.namespace("storage")
    monitor = report.namespace("monitor")
    assert storage is not None and monitor is not None
    assert storage.status == STATUS_FAILED
    assert storage.reason == "The read operation timed out"
    assert monitor.status == STATUS_ENRICHED
    assert (output_dir / "namespaces" / "azure-storage.md").exists()
    assert (output_dir / REPORT_JSON).exists()


def test_mistyped_ai_fields_are_dropped_before_rendering(
    tmp_path: Path, metadata_builder: MetadataBuilder
) -> None:
    tools_path, namespaces_path = _write_inputs(metadata_builder)
    output_dir = tmp_path / "generated"
    transport = RecordingTransport(json.dumps({"capabilities": 5}), json.dumps({"capabilities": 5}))

    report = Orchestrator(runner=LLMRunner(runner=transport), sleep=lambda _: None).run(
        _settings(tools_path, namespaces_path, output_dir)
    )

    assert {entry.status for entry in report.namespaces} == {STATUS_ENRICHED}
    article = (output_dir / "namespaces" / "azure-storage.md").read_text(encoding="utf-8")
    assert "## Capabilities" not in article
    assert (output_dir / REPORT_JSON).exists()


def test_enriched_render_failure_falls_back_to_static(
    tmp_path: Path, metadata_builder: MetadataBuilder
) -> None:
    tools_path, namespaces_path = _write_inputs(metadata_builder)
    output_dir = tmp_path / "generated"
    templates_dir = tmp_path / "templates"
    templates_dir.mkdir()
    (templates_dir / "namespace.md.j2").write_text(
        "# {{ serviceBrandName }}\n{% if capabilities %}{{ capabilities | sum }}{% endif %}\n",
        encoding="utf-8",
    )
    payload = json.dumps({"capabilities": ["Create accounts", "Query metrics"]})
    transport = RecordingTransport(payload, payload)

    report = Orchestrator(runner=LLMRunner(runner=transport), sleep=lambda _: None).run(
        _settings(tools_path, namespaces_path, output_dir, templates_dir=templates_dir)
    )

    assert {entry.status for entry in report.namespaces} == {STATUS_FAILED}
    storage = report.namespace("storage")
    assert storage is not None and storage.reason is not None
    assert storage.reason.startswith("Enriched article could not be rendered")
    assert (output_dir / "namespaces" / "azure-storage.md").read_text(encoding="utf-8") == "# Azure Storage\n"
    assert (output_dir / REPORT_JSON).exists()


def test_retry_overrides_apply(tmp_path: Path, metadata_builder: MetadataBuilder) -> None:
    tools_path, namespaces_path = _write_inputs(metadata_builder)
    transport = RecordingTransport(*[RateLimitError("429", status=429) for _ in range(4)])

    report = Orchestrator(runner=LLMRunner(runner=transport), sleep=lambda _: None).run(
        _settings(
            tools_path,
            namespaces_path,
            tmp_path / "out",
            retry=RetryConfig(max_attempts=2),
        )
    )

    assert len(transport.requests) == 4
    assert [entry.retries for entry in report.namespaces] == [1, 1]
    assert {entry.status for entry in report.namespaces} == {STATUS_FAILED}


def test_namespace_filter_limits_run(tmp_path: Path, metadata_builder: MetadataBuilder) -> None:
    tools_path, namespaces_path = _write_inputs(metadata_builder)
    output_dir = tmp_path / "out"

    report = Orchestrator().run(
        _settings(tools_path, namespaces_path, output_dir, skip_ai=True, namespaces=["monitor", "absent"])
    )

    assert [entry.namespace for entry in report.namespaces] == ["monitor"]
    assert not (output_dir / "namespaces" / "azure-storage.md").exists()


def test_missing_tools_file_aborts_run(tmp_path: Path, metadata_builder: MetadataBuilder) -> None:
    _, namespaces_path = _write_inputs(metadata_builder)

    with pytest.raises(MissingInputFileError):
        Orchestrator().run(
            RunSettings(
                tools_path=tmp_path / "absent.json",
                namespaces_path=namespaces_path,
                output_dir=tmp_path / "out",
            )
        )
