"""Loads the extractor's tool list and namespace list into typed records."""

from __future__ import annotations

import json
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .logging import get_logger
from .models import MetadataFlag, NamespaceDescriptor, Parameter, ToolRecord

UNKNOWN_VERSION = "unknown"

_PARAMETER_KEYS = ("option", "options", "parameters")

_logger = get_logger("loader")


class MissingInputFileError(FileNotFoundError):
    """Raised when a required input document does not exist."""


class MalformedInputError(RuntimeError):
    """Raised when an input document is not valid JSON or lacks required fields."""


def load_tools(path: Path) -> Tuple[ToolRecord, ...]:
    """Parse the tool-list document; command strings must be unique."""
    entries = _read_entries(path, label="tool list")
    tools: List[ToolRecord] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise MalformedInputError(f"{path.name}: tool entry {index} is not an object")
        tool = _parse_tool(entry, index=index, source=path)
        if tool.command in seen:
            raise MalformedInputError(f"{path.name}: duplicate tool command '{tool.command}'")
        seen.add(tool.command)
        tools.append(tool)
    _logger.info("Loaded %d tools from %s", len(tools), path)
    return tuple(tools)


def load_namespaces(path: Path) -> Tuple[NamespaceDescriptor, ...]:
    """Parse the namespace document; identifiers must be unique."""
    entries = _read_entries(path, label="namespace list")
    namespaces: List[NamespaceDescriptor] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise MalformedInputError(f"{path.name}: namespace entry {index} is not an object")
        identifier = _clean_text(entry.get("command"))
        if not identifier:
            raise MalformedInputError(f"{path.name}: namespace entry {index} is missing 'command'")
        if identifier in seen:
            raise MalformedInputError(f"{path.name}: duplicate namespace '{identifier}'")
        seen.add(identifier)
        namespaces.append(
            NamespaceDescriptor(
                identifier=identifier,
                name=_clean_text(entry.get("name")) or identifier,
                description=_clean_text(entry.get("description")),
            )
        )
    _logger.info("Loaded %d namespaces from %s", len(namespaces), path)
    return tuple(namespaces)


def read_cli_version(path: Optional[Path]) -> str:
    """Return the extractor version string, or ``unknown`` when unavailable."""
    if path is None:
        return UNKNOWN_VERSION
    if not path.exists():
        _logger.warning("CLI version file not found at %s", path)
        return UNKNOWN_VERSION
    try:
        content = path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        _logger.warning("Could not read CLI version from %s: %s", path, exc)
        return UNKNOWN_VERSION
    if not content.startswith("{"):
        return content or UNKNOWN_VERSION
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        _logger.warning("Could not parse CLI version from %s: %s", path, exc)
        return UNKNOWN_VERSION
    if not isinstance(payload, dict):
        return UNKNOWN_VERSION
    for key in ("version", "Version"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return UNKNOWN_VERSION


def group_by_namespace(tools: Iterable[ToolRecord]) -> "OrderedDict[str, List[ToolRecord]]":
    """Bucket tools by the first token of their command, keeping input order."""
    grouped: "OrderedDict[str, List[ToolRecord]]" = OrderedDict()
    for tool in tools:
        grouped.setdefault(tool.namespace, []).append(tool)
    return grouped


def _read_entries(path: Path, *, label: str) -> Sequence[Any]:
    if not path.exists():
        raise MissingInputFileError(f"Required {label} not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MalformedInputError(f"{path.name} is not valid JSON: {exc}") from exc
    if isinstance(payload, dict):
        # Extractor envelope: {"status": ..., "results": [...]}
        payload = payload.get("results")
    if not isinstance(payload, list):
        raise MalformedInputError(f"{path.name} must contain an array of {label} entries")
    return payload


def _parse_tool(entry: Mapping[str, Any], *, index: int, source: Path) -> ToolRecord:
    command = " ".join(_clean_text(entry.get("command")).split())
    if not command:
        raise MalformedInputError(f"{source.name}: tool entry {index} is missing 'command'")
    metadata = entry.get("metadata") if isinstance(entry.get("metadata"), dict) else {}
    return ToolRecord(
        command=command,
        description=_clean_text(entry.get("description")),
        parameters=tuple(_parse_parameters(entry, command=command, source=source)),
        destructive=_parse_flag(metadata.get("destructive", entry.get("destructive"))),
        read_only=_parse_flag(metadata.get("readOnly", entry.get("readOnly"))),
        secret=_parse_flag(metadata.get("secret", entry.get("secret"))),
        name=_clean_text(entry.get("name")) or None,
    )


def _parse_parameters(entry: Mapping[str, Any], *, command: str, source: Path) -> List[Parameter]:
    for key in _PARAMETER_KEYS:
        raw = entry.get(key)
        if isinstance(raw, list):
            return [_parse_parameter(item, command=command, source=source) for item in raw]
    schema = entry.get("inputSchema")
    if isinstance(schema, dict):
        return _parse_schema_parameters(schema)
    return []


def _parse_parameter(item: Any, *, command: str, source: Path) -> Parameter:
    if not isinstance(item, dict):
        raise MalformedInputError(f"{source.name}: '{command}' has a parameter that is not an object")
    name = _normalise_name(item.get("name"))
    if not name:
        raise MalformedInputError(f"{source.name}: '{command}' has a parameter without a name")
    return Parameter(
        name=name,
        required=item.get("required") is True,
        description=_clean_text(item.get("description")),
        type=_clean_text(item.get("type")) or None,
    )


def _parse_schema_parameters(schema: Mapping[str, Any]) -> List[Parameter]:
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return []
    required_raw = schema.get("required")
    required = {str(name) for name in required_raw} if isinstance(required_raw, list) else set()
    parameters: List[Parameter] = []
    for raw_name, spec in properties.items():
        spec_map: Dict[str, Any] = spec if isinstance(spec, dict) else {}
        parameters.append(
            Parameter(
                name=_normalise_name(raw_name),
                required=raw_name in required,
                description=_clean_text(spec_map.get("description")),
                type=_clean_text(spec_map.get("type")) or None,
            )
        )
    return parameters


def _parse_flag(value: Any) -> MetadataFlag:
    if isinstance(value, bool):
        return MetadataFlag(value=value, source="extractor")
    if isinstance(value, dict):
        flag = value.get("value")
        return MetadataFlag(
            value=flag is True,
            source=_clean_text(value.get("description")) or _clean_text(value.get("source")) or "extractor",
        )
    return MetadataFlag()


def _normalise_name(value: Any) -> str:
    return _clean_text(value).lstrip("-")


def _clean_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


__all__ = [
    "MalformedInputError",
    "MissingInputFileError",
    "UNKNOWN_VERSION",
    "group_by_namespace",
    "load_namespaces",
    "load_tools",
    "read_cli_version",
]
