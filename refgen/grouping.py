"""Groups a namespace's tools into resource types and operations."""

from __future__ import annotations

from collections import OrderedDict
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import ReferenceData, ResourceOverride
from .logging import get_logger
from .models import OperationEntry, Parameter, ResourceGroup, ToolRecord
from .naming import NameResolver

GENERAL_RESOURCE_TYPE = "General"

_logger = get_logger("grouping")


def split_command(
    tool: ToolRecord, overrides: Mapping[str, ResourceOverride] | None = None
) -> Tuple[str, str]:
    """Return ``(resource_type, operation_phrase)`` for a tool's command.

    Commands with fewer than three tokens land in the shared
    :data:`GENERAL_RESOURCE_TYPE` group. A resource override whose prefix
    matches the command replaces the derived label; the longest prefix wins.
    """
    tokens = tool.tokens
    if len(tokens) <= 1:
        return GENERAL_RESOURCE_TYPE, _title_words(tokens[0] if tokens else "")
    if len(tokens) == 2:
        return GENERAL_RESOURCE_TYPE, _title_words(tokens[1])

    match = _match_override(tokens, overrides or {})
    if match is not None:
        prefix_length, override = match
        remainder = tokens[prefix_length:]
        if remainder:
            verb = " ".join(remainder).lower()
            phrase = override.operations.get(verb) or _natural_phrase(remainder)
        else:
            phrase = _natural_phrase(tokens[-1:])
        return override.resource_type, phrase

    return _title_words(tokens[1]), _natural_phrase(tokens[2:])


def filter_parameters(
    parameters: Iterable[Parameter], reference_data: ReferenceData
) -> Tuple[Parameter, ...]:
    """Drop optional parameters that appear in the common-parameter set."""
    return tuple(
        param
        for param in parameters
        if param.required or not reference_data.is_common_parameter(param.name)
    )


def group_tools(
    tools: Sequence[ToolRecord], reference_data: ReferenceData, namer: NameResolver
) -> Tuple[ResourceGroup, ...]:
    """Group tools by resource type, ordering groups and operations case-insensitively."""
    buckets: "OrderedDict[str, List[OperationEntry]]" = OrderedDict()
    labels: dict[str, str] = {}
    for tool in tools:
        resource_type, phrase = split_command(tool, reference_data.resource_overrides)
        key = resource_type.casefold()
        labels.setdefault(key, resource_type)
        buckets.setdefault(key, []).append(
            OperationEntry(
                phrase=phrase,
                tool=tool,
                parameters=filter_parameters(tool.parameters, reference_data),
                artifact_id=namer.tool_file_base(tool.command),
            )
        )

    groups = [
        ResourceGroup(
            resource_type=labels[key],
            operations=tuple(
                sorted(entries, key=lambda entry: (entry.phrase.casefold(), entry.tool.command))
            ),
        )
        for key, entries in buckets.items()
    ]
    groups.sort(key=lambda group: group.resource_type.casefold())
    _logger.debug(
        "Grouped %d tools into %d resource groups", len(tools), len(groups)
    )
    return tuple(groups)


def _match_override(
    tokens: Sequence[str], overrides: Mapping[str, ResourceOverride]
) -> Optional[Tuple[int, ResourceOverride]]:
    lowered = [token.lower() for token in tokens]
    for length in range(len(lowered), 1, -1):
        override = overrides.get(" ".join(lowered[:length]))
        if override is not None:
            return length, override
    return None


def _title_words(token: str) -> str:
    words = [word for word in token.replace("_", "-").split("-") if word]
    return " ".join(word[0].upper() + word[1:].lower() for word in words)


def _natural_phrase(tokens: Sequence[str]) -> str:
    words: List[str] = []
    for token in tokens:
        words.extend(word for word in token.replace("_", "-").split("-") if word)
    if not words:
        return ""
    first, rest = words[0], words[1:]
    return " ".join([first[0].upper() + first[1:].lower(), *(word.lower() for word in rest)])


__all__ = ["GENERAL_RESOURCE_TYPE", "filter_parameters", "group_tools", "split_command"]
