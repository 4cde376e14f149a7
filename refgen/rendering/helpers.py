"""Pure helper functions exposed to templates as filters and globals."""

from __future__ import annotations

import re
import unicodedata
from collections import OrderedDict
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

TRUE_ICON = "✅"
FALSE_ICON = "❌"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_ACRONYMS: Dict[str, str] = {
    "id": "ID",
    "ids": "IDs",
    "uri": "URI",
    "url": "URL",
    "urls": "URLs",
    "ai": "AI",
    "api": "API",
    "apis": "APIs",
    "cpu": "CPU",
    "gpu": "GPU",
    "ip": "IP",
    "sql": "SQL",
    "vm": "VM",
    "vms": "VMs",
    "dns": "DNS",
    "sku": "SKU",
    "skus": "SKUs",
    "tls": "TLS",
    "ssl": "SSL",
    "http": "HTTP",
    "https": "HTTPS",
    "json": "JSON",
    "xml": "XML",
    "yaml": "YAML",
    "oauth": "OAuth",
    "cdn": "CDN",
}

_LEADING_PHRASES: Dict[str, str] = {
    "rg": "Resource group",
}


def format_date(value: Any) -> str:
    """Format a timestamp as ``YYYY-MM-DD HH:MM:SS UTC``."""
    moment = _coerce_datetime(value)
    if moment is None:
        return "" if value is None else str(value)
    return moment.strftime("%Y-%m-%d %H:%M:%S UTC")


def format_date_short(value: Any) -> str:
    """Format a timestamp as ``MM/DD/YYYY``."""
    moment = _coerce_datetime(value)
    if moment is None:
        return "" if value is None else str(value)
    return moment.strftime("%m/%d/%Y")


def format_date_iso(value: Any) -> str:
    """Format a timestamp as ``YYYY-MM-DD``."""
    moment = _coerce_datetime(value)
    if moment is None:
        return "" if value is None else str(value)
    return moment.strftime("%Y-%m-%d")


def kebab_case(value: Any) -> str:
    if value is None:
        return ""
    folded = unicodedata.normalize("NFKD", str(value)).encode("ascii", "ignore").decode("ascii")
    return _NON_ALNUM.sub("-", folded.lower()).strip("-")


slugify = kebab_case


def eq_ignore_case(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    return str(left).casefold() == str(right).casefold()


def natural_language(value: Any) -> str:
    """Turn an option name like ``--resource-group-id`` into ``Resource group ID``."""
    if value is None:
        return ""
    words = [word for word in re.split(r"[-_\s]+", str(value).strip().lstrip("-")) if word]
    if not words:
        return ""
    rendered: List[str] = []
    for index, word in enumerate(words):
        lowered = word.lower()
        if index == 0 and lowered in _LEADING_PHRASES:
            rendered.append(_LEADING_PHRASES[lowered])
        elif lowered in _ACRONYMS:
            rendered.append(_ACRONYMS[lowered])
        elif index == 0:
            rendered.append(lowered[0].upper() + lowered[1:])
        else:
            rendered.append(lowered)
    return " ".join(rendered)


def count_by(items: Iterable[Any], key: str) -> "OrderedDict[Any, int]":
    """Count items by the value stored under ``key``, in first-seen order."""
    counts: "OrderedDict[Any, int]" = OrderedDict()
    for item in items or ():
        bucket = _lookup(item, key)
        counts[bucket] = counts.get(bucket, 0) + 1
    return counts


def group_by(items: Iterable[Any], key: str) -> List[Dict[str, Any]]:
    """Group items by ``key`` as ``[{"key": ..., "items": [...]}]`` in first-seen order."""
    groups: "OrderedDict[Any, List[Any]]" = OrderedDict()
    for item in items or ():
        groups.setdefault(_lookup(item, key), []).append(item)
    return [{"key": bucket, "items": members} for bucket, members in groups.items()]


def add(left: Any, right: Any) -> float | int:
    return _number(left) + _number(right)


def divide(left: Any, right: Any) -> float:
    denominator = _number(right)
    if denominator == 0:
        return 0
    return _number(left) / denominator


def round_to(value: Any, precision: int = 0) -> float | int:
    rounded = round(_number(value), int(precision))
    return int(rounded) if int(precision) == 0 else rounded


def bool_icon(value: Any) -> str:
    return TRUE_ICON if _truthy(value) else FALSE_ICON


def required_icon(value: Any) -> str:
    return bool_icon(value)


HELPERS: Mapping[str, Callable[..., Any]] = {
    "format_date": format_date,
    "format_date_short": format_date_short,
    "format_date_iso": format_date_iso,
    "kebab_case": kebab_case,
    "slugify": slugify,
    "eq_ignore_case": eq_ignore_case,
    "natural_language": natural_language,
    "count_by": count_by,
    "group_by": group_by,
    "add": add,
    "divide": divide,
    "round_to": round_to,
    "bool_icon": bool_icon,
    "required_icon": required_icon,
}


def _coerce_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _lookup(item: Any, key: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(key)
    return getattr(item, key, None)


def _number(value: Any) -> float | int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    try:
        return float(str(value))
    except (TypeError, ValueError):
        return 0


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


__all__ = [
    "FALSE_ICON",
    "HELPERS",
    "TRUE_ICON",
    "add",
    "bool_icon",
    "count_by",
    "divide",
    "eq_ignore_case",
    "format_date",
    "format_date_short",
    "format_date_iso",
    "group_by",
    "kebab_case",
    "natural_language",
    "required_icon",
    "round_to",
    "slugify",
]
