"""Validation of generated content and produced artifacts."""

from .artifacts import ArtifactVerifier, GenerationReport, NamespaceReport, scan_artifacts, summarize, write_report
from .base import ContentValidator, ProcessedContent, ValidationIssue
from .content import ArticleContentProcessor

__all__ = [
    "ArticleContentProcessor",
    "ArtifactVerifier",
    "ContentValidator",
    "GenerationReport",
    "NamespaceReport",
    "ProcessedContent",
    "ValidationIssue",
    "scan_artifacts",
    "summarize",
    "write_report",
]
