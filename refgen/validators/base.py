"""Core validation data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Protocol

SEVERITY_CORRECTION = "correction"
SEVERITY_WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """A single finding about generated content."""

    field: str
    message: str
    severity: str = SEVERITY_WARNING

    def __str__(self) -> str:
        return self.message


@dataclass
class ProcessedContent:
    """Corrected content plus the issues found while correcting it."""

    content: Dict[str, Any]
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def corrections(self) -> List[str]:
        return [issue.message for issue in self.issues if issue.severity == SEVERITY_CORRECTION]

    @property
    def warnings(self) -> List[str]:
        return [issue.message for issue in self.issues if issue.severity == SEVERITY_WARNING]


class ContentValidator(Protocol):
    """Protocol implemented by generated-content validators."""

    name: str

    def process(self, content: Mapping[str, Any], *, tool_count: int) -> ProcessedContent:
        """Return a corrected copy of ``content`` with any issues found."""


__all__ = [
    "ContentValidator",
    "ProcessedContent",
    "SEVERITY_CORRECTION",
    "SEVERITY_WARNING",
    "ValidationIssue",
]
