"""Core data models shared across refgen components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

STATUS_ENRICHED = "enriched"
STATUS_STATIC = "static"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class Parameter:
    """A single CLI option accepted by a tool."""

    name: str
    required: bool = False
    description: str = ""
    type: Optional[str] = None

    def to_context(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "required": self.required,
            "description": self.description,
            "type": self.type or "string",
        }


@dataclass(frozen=True)
class MetadataFlag:
    """Boolean safety hint plus the provenance reported by the extractor."""

    value: bool = False
    source: str = "default"


@dataclass(frozen=True)
class ToolRecord:
    """Metadata for one CLI command, immutable once loaded."""

    command: str
    description: str = ""
    parameters: Tuple[Parameter, ...] = ()
    destructive: MetadataFlag = MetadataFlag()
    read_only: MetadataFlag = MetadataFlag()
    secret: MetadataFlag = MetadataFlag()
    name: Optional[str] = None

    @property
    def tokens(self) -> Tuple[str, ...]:
        return tuple(self.command.split())

    @property
    def namespace(self) -> str:
        tokens = self.tokens
        return tokens[0] if tokens else ""

    def metadata_context(self) -> Dict[str, Dict[str, Any]]:
        return {
            "destructive": {"value": self.destructive.value, "source": self.destructive.source},
            "readOnly": {"value": self.read_only.value, "source": self.read_only.source},
            "secret": {"value": self.secret.value, "source": self.secret.source},
        }


@dataclass(frozen=True)
class NamespaceDescriptor:
    """A service area grouping related CLI commands."""

    identifier: str
    name: str
    description: str = ""


class ResolvedName(NamedTuple):
    """Display name and filesystem slug for a namespace."""

    brand_name: str
    slug: str
    tier: str


@dataclass(frozen=True)
class OperationEntry:
    """One operation of a resource group, backed by its source tool."""

    phrase: str
    tool: ToolRecord
    parameters: Tuple[Parameter, ...]
    artifact_id: str

    @property
    def parameter_count(self) -> int:
        return len(self.parameters)

    def to_context(self, resource_type: str) -> Dict[str, Any]:
        return {
            "command": self.tool.command,
            "name": self.tool.name or self.tool.command,
            "description": self.tool.description,
            "operation": self.phrase,
            "resourceType": resource_type,
            "artifactId": self.artifact_id,
            "parameterCount": self.parameter_count,
            "parameters": [param.to_context() for param in self.parameters],
            "metadata": self.tool.metadata_context(),
            "moreInfoLink": f"../tools/{self.artifact_id}.md",
        }


@dataclass(frozen=True)
class ResourceGroup:
    """Resource-type label with its alphabetically ordered operations."""

    resource_type: str
    operations: Tuple[OperationEntry, ...]

    @property
    def tool_count(self) -> int:
        return len(self.operations)


@dataclass
class StaticArticle:
    """Deterministic article data available before any AI generation."""

    namespace: NamespaceDescriptor
    name: ResolvedName
    groups: Tuple[ResourceGroup, ...]
    generated_at: datetime
    version: str
    tools_reference_link: str = ""

    @property
    def tool_count(self) -> int:
        return sum(group.tool_count for group in self.groups)

    def to_context(self) -> Dict[str, Any]:
        """Return the static fields as the plain mapping used by templates and merging."""
        groups: List[Dict[str, Any]] = []
        tools: List[Dict[str, Any]] = []
        for group in self.groups:
            operations = [entry.to_context(group.resource_type) for entry in group.operations]
            groups.append(
                {
                    "resourceType": group.resource_type,
                    "toolCount": group.tool_count,
                    "operations": operations,
                }
            )
            tools.extend(operations)
        return {
            "serviceIdentifier": self.namespace.identifier,
            "serviceBrandName": self.name.brand_name,
            "serviceSlug": self.name.slug,
            "namespaceName": self.namespace.name,
            "namespaceDescription": self.namespace.description,
            "generatedAt": self.generated_at,
            "version": self.version,
            "toolsReferenceLink": self.tools_reference_link,
            "toolCount": self.tool_count,
            "resourceGroups": groups,
            "tools": tools,
        }


@dataclass
class MergedArticle:
    """Union of static article fields and accepted AI content."""

    namespace: str
    fields: Dict[str, Any]
    enriched: bool
    corrections: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class NamespaceOutcome:
    """What happened to one namespace during a run."""

    namespace: str
    brand_name: str
    status: str
    reason: Optional[str] = None
    retries: int = 0
    diagnostic_path: Optional[Path] = None
    article_path: Optional[Path] = None
