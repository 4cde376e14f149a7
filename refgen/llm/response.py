"""Extracts the JSON payload from a generative response."""

from __future__ import annotations

import json
import re
from typing import Any, Dict

_FENCE = "```"
# Fences only count at the start of a line; JSON strings cannot contain raw newlines.
_FENCE_LINE = re.compile(r"^[ \t]*```", re.MULTILINE)
_LANGUAGE_TAG = re.compile(r"[A-Za-z0-9_+.-]*[ \t]*\r?\n?")


class MalformedResponseError(RuntimeError):
    """Raised when a response does not contain a JSON object."""

    def __init__(self, message: str, *, raw: str) -> None:
        super().__init__(message)
        self.raw = raw


def strip_code_fence(text: str) -> str:
    """Return the content of the first markdown code fence, or the trimmed text.

    Prose before the opening fence is discarded. An opening fence without a
    closing fence yields everything after the opening line. Backticks inside
    a line, such as a fenced example quoted in a JSON string, are not fences.
    """
    stripped = text.strip()
    opening = _FENCE_LINE.search(stripped)
    if opening is None:
        return stripped
    body = stripped[opening.end():]
    tag = _LANGUAGE_TAG.match(body)
    if tag is not None:
        body = body[tag.end():]
    closings = list(_FENCE_LINE.finditer(body))
    if closings:
        body = body[: closings[-1].start()]
    elif body.rstrip().endswith(_FENCE):
        body = body.rstrip()[: -len(_FENCE)]
    return body.strip()


def parse_json_payload(text: str) -> Dict[str, Any]:
    """Parse the (possibly fenced) response text into a JSON object."""
    candidate = strip_code_fence(text or "")
    if not candidate:
        raise MalformedResponseError("Response was empty", raw=text or "")
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Response is not valid JSON: {exc}", raw=text) from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError(
            f"Response JSON must be an object, got {type(payload).__name__}", raw=text
        )
    return payload


__all__ = ["MalformedResponseError", "parse_json_payload", "strip_code_fence"]
