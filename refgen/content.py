"""AI enrichment of namespace articles: prompt, call, parse, check and merge."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from .llm.response import MalformedResponseError, parse_json_payload
from .llm.retry import RetryPolicy, RetryTrace, call_with_retry
from .llm.runner import LLMRunner
from .logging import get_logger
from .models import MergedArticle, StaticArticle
from .prompting.builder import PromptBuilder
from .prompting.constants import AI_TOOL_FIELDS, TOOL_MATCH_KEY
from .validators.base import ContentValidator
from .validators.content import ArticleContentProcessor

DIAGNOSTIC_SUFFIX = "-ai-response.txt"


class NamespaceGenerationError(RuntimeError):
    """Raised when AI enrichment fails for a single namespace."""

    def __init__(
        self,
        namespace: str,
        reason: str,
        *,
        trace: RetryTrace | None = None,
        diagnostic_path: Path | None = None,
    ) -> None:
        super().__init__(f"{namespace}: {reason}")
        self.namespace = namespace
        self.reason = reason
        self.trace = trace or RetryTrace()
        self.diagnostic_path = diagnostic_path


def merge_content(static: Mapping[str, Any], ai: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Union of static and AI fields where static data always wins.

    AI values that are missing or ``None`` are never copied. Per-tool AI entries
    are matched to static tools by command and may only add fields the static
    tool does not already define.
    """
    merged: Dict[str, Any] = dict(static)
    if not ai:
        return merged

    ai_tools = _index_ai_tools(ai.get("tools"))
    for key, value in ai.items():
        if key == "tools" or value is None:
            continue
        if merged.get(key) is None:
            merged[key] = value

    if "tools" in merged and isinstance(merged["tools"], list):
        enriched = {tool["command"]: _merge_tool(tool, ai_tools) for tool in merged["tools"]}
        merged["tools"] = [enriched[tool["command"]] for tool in merged["tools"]]
        groups = merged.get("resourceGroups")
        if isinstance(groups, list):
            merged["resourceGroups"] = [
                {
                    **group,
                    "operations": [enriched.get(op["command"], op) for op in group.get("operations", [])],
                }
                for group in groups
            ]
    return merged


class ContentOrchestrator:
    """Drives one generative call per namespace and merges the result."""

    def __init__(
        self,
        runner: LLMRunner,
        prompt_builder: PromptBuilder,
        *,
        policy: RetryPolicy | None = None,
        processor: ContentValidator | None = None,
        diagnostics_dir: Path,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.runner = runner
        self.prompt_builder = prompt_builder
        self.policy = policy or RetryPolicy()
        self.processor = processor or ArticleContentProcessor()
        self.diagnostics_dir = diagnostics_dir
        self.sleep = sleep
        self.logger = get_logger("content")

    def enrich(self, article: StaticArticle, *, trace: RetryTrace | None = None) -> MergedArticle:
        namespace = article.namespace.identifier
        trace = trace if trace is not None else RetryTrace()
        request = self.prompt_builder.build(article)
        self.logger.debug("System prompt for %s:\n%s", namespace, request.system)
        self.logger.debug("User prompt for %s:\n%s", namespace, request.user)

        try:
            response = call_with_retry(
                lambda: self.runner.run(request.user, system=request.system),
                self.policy,
                sleep=self.sleep,
                trace=trace,
                label=f"namespace '{namespace}'",
            )
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            raise NamespaceGenerationError(namespace, reason, trace=trace) from exc
        self.logger.debug("Raw response for %s:\n%s", namespace, response)

        try:
            payload = parse_json_payload(response)
        except MalformedResponseError as exc:
            path = self.write_diagnostic(namespace, response, exc)
            raise NamespaceGenerationError(
                namespace, str(exc), trace=trace, diagnostic_path=path
            ) from exc

        processed = self.processor.process(payload, tool_count=article.tool_count)
        return MergedArticle(
            namespace=namespace,
            fields=merge_content(article.to_context(), processed.content),
            enriched=True,
            corrections=processed.corrections,
            warnings=processed.warnings,
        )

    def write_diagnostic(self, namespace: str, response: str, error: Exception) -> Path:
        """Persist the raw response next to the parse error for later inspection."""
        self.diagnostics_dir.mkdir(parents=True, exist_ok=True)
        path = self.diagnostics_dir / f"{namespace}{DIAGNOSTIC_SUFFIX}"
        path.write_text(f"# error: {error}\n\n{response}", encoding="utf-8")
        return path


def static_only(article: StaticArticle) -> MergedArticle:
    """Article fields when AI enrichment is skipped or failed."""
    return MergedArticle(
        namespace=article.namespace.identifier,
        fields=merge_content(article.to_context(), None),
        enriched=False,
    )


def _index_ai_tools(value: Any) -> Dict[str, Dict[str, Any]]:
    indexed: Dict[str, Dict[str, Any]] = {}
    if not isinstance(value, list):
        return indexed
    for item in value:
        if isinstance(item, dict) and isinstance(item.get(TOOL_MATCH_KEY), str):
            indexed.setdefault(" ".join(item[TOOL_MATCH_KEY].split()), item)
    return indexed


def _merge_tool(tool: Mapping[str, Any], ai_tools: Mapping[str, Mapping[str, Any]]) -> Dict[str, Any]:
    merged = dict(tool)
    ai_tool = ai_tools.get(tool["command"])
    if ai_tool is None:
        return merged
    for key in AI_TOOL_FIELDS:
        value = ai_tool.get(key)
        if value is not None and merged.get(key) is None:
            merged[key] = value
    return merged


__all__ = [
    "ContentOrchestrator",
    "DIAGNOSTIC_SUFFIX",
    "NamespaceGenerationError",
    "merge_content",
    "static_only",
]
