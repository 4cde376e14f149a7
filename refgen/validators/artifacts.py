"""Cross-checks produced tool artifacts against the input tool list."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..loader import UNKNOWN_VERSION, group_by_namespace
from ..logging import get_logger
from ..models import NamespaceOutcome, ToolRecord
from ..naming import NameResolver
from ..postproc.lint import MarkdownLinter
from ..rendering.engine import TemplateRenderer

STATUS_NOT_RUN = "not-run"

REPORT_JSON = "generation-report.json"
REPORT_MARKDOWN = "generation-report.md"
REPORT_TEMPLATE = "report.md.j2"

_logger = get_logger("validators.artifacts")


@dataclass
class NamespaceReport:
    """Expected versus produced tool artifacts for one namespace."""

    namespace: str
    brand_name: str
    expected: List[str]
    produced: List[str]
    missing: List[str]
    status: str = STATUS_NOT_RUN
    reason: Optional[str] = None
    retries: int = 0
    diagnostic_path: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "brandName": self.brand_name,
            "status": self.status,
            "expected": len(self.expected),
            "produced": len(self.produced),
            "missing": list(self.missing),
            "reason": self.reason,
            "retries": self.retries,
            "diagnosticPath": str(self.diagnostic_path) if self.diagnostic_path else None,
        }


@dataclass
class GenerationReport:
    """Run-wide discrepancy report; built once and written once."""

    namespaces: List[NamespaceReport] = field(default_factory=list)
    unexpected: List[str] = field(default_factory=list)
    generated_at: Optional[datetime] = None
    version: str = UNKNOWN_VERSION

    @property
    def total_expected(self) -> int:
        return sum(len(item.expected) for item in self.namespaces)

    @property
    def total_produced(self) -> int:
        return sum(len(item.produced) for item in self.namespaces)

    @property
    def total_missing(self) -> int:
        return sum(len(item.missing) for item in self.namespaces)

    @property
    def has_missing_artifacts(self) -> bool:
        return self.total_missing > 0

    def namespace(self, identifier: str) -> Optional[NamespaceReport]:
        for item in self.namespaces:
            if item.namespace == identifier:
                return item
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": self.generated_at.isoformat() if self.generated_at else None,
            "version": self.version,
            "hasMissingArtifacts": self.has_missing_artifacts,
            "totals": {
                "expected": self.total_expected,
                "produced": self.total_produced,
                "missing": self.total_missing,
                "namespaces": len(self.namespaces),
            },
            "namespaces": [item.to_dict() for item in self.namespaces],
            "unexpectedArtifacts": list(self.unexpected),
        }


class ArtifactVerifier:
    """Compares the tool list with artifact identifiers found on disk."""

    def __init__(self, namer: NameResolver) -> None:
        self.namer = namer

    def verify(
        self,
        tools: Sequence[ToolRecord],
        produced_ids: Iterable[str],
        outcomes: Mapping[str, NamespaceOutcome] | None = None,
        *,
        generated_at: datetime | None = None,
        version: str = UNKNOWN_VERSION,
    ) -> GenerationReport:
        produced: Set[str] = set(produced_ids)
        outcomes = outcomes or {}
        matched: Set[str] = set()
        report = GenerationReport(generated_at=generated_at, version=version)

        for namespace, namespace_tools in group_by_namespace(tools).items():
            expected: List[str] = []
            present: List[str] = []
            missing: List[str] = []
            for tool in namespace_tools:
                artifact_id = self.namer.tool_file_base(tool.command)
                expected.append(tool.command)
                if artifact_id in produced:
                    present.append(tool.command)
                    matched.add(artifact_id)
                else:
                    missing.append(tool.command)

            outcome = outcomes.get(namespace)
            entry = NamespaceReport(
                namespace=namespace,
                brand_name=(
                    outcome.brand_name
                    if outcome is not None
                    else self.namer.resolve(namespace, log_fallback=False).brand_name
                ),
                expected=expected,
                produced=present,
                missing=missing,
            )
            if outcome is not None:
                entry.status = outcome.status
                entry.reason = outcome.reason
                entry.retries = outcome.retries
                entry.diagnostic_path = outcome.diagnostic_path
            if missing:
                _logger.warning(
                    "Namespace %s is missing %d of %d tool artifacts", namespace, len(missing), len(expected)
                )
            report.namespaces.append(entry)

        report.unexpected = sorted(produced - matched)
        return report


def scan_artifacts(directory: Path) -> Set[str]:
    """Return the identifiers (file stems) of the Markdown artifacts in ``directory``."""
    if not directory.is_dir():
        return set()
    return {path.stem for path in directory.glob("*.md") if path.is_file()}


def write_report(
    report: GenerationReport,
    output_dir: Path,
    renderer: TemplateRenderer,
    *,
    linter: MarkdownLinter | None = None,
) -> Tuple[Path, Path]:
    """Write the JSON and Markdown renditions of the report."""
    output_dir.mkdir(parents=True, exist_ok=True)
    payload = report.to_dict()
    json_path = output_dir / REPORT_JSON
    json_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")

    markdown = renderer.render(REPORT_TEMPLATE, payload)
    markdown_path = output_dir / REPORT_MARKDOWN
    markdown_path.write_text((linter or MarkdownLinter()).lint(markdown), encoding="utf-8")
    _logger.info("Wrote generation report to %s", json_path)
    return json_path, markdown_path


def summarize(report: GenerationReport) -> List[str]:
    """Console summary lines for the end of a run."""
    lines = [
        f"Tool artifacts: {report.total_produced}/{report.total_expected} produced, "
        f"{report.total_missing} missing",
    ]
    statuses: Dict[str, int] = {}
    for item in report.namespaces:
        statuses[item.status] = statuses.get(item.status, 0) + 1
    if statuses:
        lines.append(
            "Namespaces: " + ", ".join(f"{count} {status}" for status, count in sorted(statuses.items()))
        )
    for item in report.namespaces:
        if item.reason:
            detail = f"  {item.namespace}: {item.reason}"
            if item.diagnostic_path:
                detail += f" (see {item.diagnostic_path})"
            lines.append(detail)
        for command in item.missing:
            lines.append(f"  missing: {command}")
    if report.unexpected:
        lines.append(f"Unexpected artifacts: {', '.join(report.unexpected)}")
    return lines


__all__ = [
    "ArtifactVerifier",
    "GenerationReport",
    "NamespaceReport",
    "REPORT_JSON",
    "REPORT_MARKDOWN",
    "STATUS_NOT_RUN",
    "scan_artifacts",
    "summarize",
    "write_report",
]
