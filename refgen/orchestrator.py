"""Pipeline orchestration for a generation run."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .config import LLMConfig, RetryConfig, load_reference_data
from .content import ContentOrchestrator, NamespaceGenerationError, static_only
from .grouping import group_tools
from .llm.retry import RetryPolicy, RetryTrace
from .llm.runner import LLMRunner
from .loader import group_by_namespace, load_namespaces, load_tools, read_cli_version
from .logging import get_logger
from .models import (
    STATUS_ENRICHED,
    STATUS_FAILED,
    STATUS_STATIC,
    MergedArticle,
    NamespaceDescriptor,
    NamespaceOutcome,
    StaticArticle,
    ToolRecord,
)
from .naming import NameResolver
from .postproc.lint import MarkdownLinter
from .prompting.builder import PromptBuilder
from .rendering.engine import TemplateRenderer
from .validators.artifacts import ArtifactVerifier, GenerationReport, scan_artifacts, write_report

TOOLS_SUBDIR = "tools"
NAMESPACES_SUBDIR = "namespaces"
DIAGNOSTICS_SUBDIR = "diagnostics"

TOOL_TEMPLATE = "tool.md.j2"
NAMESPACE_TEMPLATE = "namespace.md.j2"
TOOLS_REFERENCE_LINK = f"../{TOOLS_SUBDIR}/"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunSettings:
    """Effective inputs and switches for one ``refgen generate`` run."""

    tools_path: Path
    namespaces_path: Path
    output_dir: Path
    version_file: Optional[Path] = None
    data_dir: Optional[Path] = None
    templates_dir: Optional[Path] = None
    skip_ai: bool = False
    namespaces: Sequence[str] = ()
    llm: Optional[LLMConfig] = None
    retry: RetryConfig = field(default_factory=RetryConfig)


class Orchestrator:
    """Runs loading, grouping, rendering, enrichment and verification in order.

    Namespaces are processed one at a time. Only input and configuration
    errors abort a run; enrichment failures are recorded per namespace.
    """

    def __init__(
        self,
        *,
        runner: LLMRunner | None = None,
        clock: Callable[[], datetime] = _utc_now,
        sleep: Callable[[float], None] = time.sleep,
        linter: MarkdownLinter | None = None,
    ) -> None:
        self.logger = get_logger("orchestrator")
        self._runner = runner
        self.clock = clock
        self.sleep = sleep
        self.linter = linter or MarkdownLinter()

    def run(self, settings: RunSettings) -> GenerationReport:
        """Generate every artifact for the selected namespaces and return the report."""
        version = read_cli_version(settings.version_file)
        tools = load_tools(settings.tools_path)
        descriptors = {item.identifier: item for item in load_namespaces(settings.namespaces_path)}
        reference_data = load_reference_data(settings.data_dir)

        namer = NameResolver(reference_data)
        renderer = TemplateRenderer(settings.templates_dir)
        generated_at = self.clock()

        selected = self._select_namespaces(group_by_namespace(tools), settings.namespaces)
        content = self._build_content_orchestrator(settings, renderer)
        if content is None:
            self.logger.info("AI enrichment disabled; namespace articles use static data only")

        tools_dir = settings.output_dir / TOOLS_SUBDIR
        namespaces_dir = settings.output_dir / NAMESPACES_SUBDIR
        tools_dir.mkdir(parents=True, exist_ok=True)
        namespaces_dir.mkdir(parents=True, exist_ok=True)

        outcomes: Dict[str, NamespaceOutcome] = {}
        selected_tools: List[ToolRecord] = []
        for index, (namespace, namespace_tools) in enumerate(selected.items(), start=1):
            self.logger.info("[%d/%d] Generating namespace %s", index, len(selected), namespace)
            selected_tools.extend(namespace_tools)
            descriptor = descriptors.get(namespace)
            if descriptor is None:
                self.logger.warning("Namespace %s has tools but no entry in the namespace list", namespace)
                descriptor = NamespaceDescriptor(identifier=namespace, name=namespace)
            article = StaticArticle(
                namespace=descriptor,
                name=namer.resolve(namespace),
                groups=group_tools(namespace_tools, reference_data, namer),
                generated_at=generated_at,
                version=version,
                tools_reference_link=TOOLS_REFERENCE_LINK,
            )
            self._write_tool_pages(article, renderer, tools_dir)
            outcomes[namespace] = self._write_namespace_article(article, content, renderer, namespaces_dir)

        verifier = ArtifactVerifier(namer)
        report = verifier.verify(
            selected_tools,
            scan_artifacts(tools_dir),
            outcomes,
            generated_at=generated_at,
            version=version,
        )
        write_report(report, settings.output_dir, renderer, linter=self.linter)
        return report

    def _select_namespaces(
        self, grouped: Mapping[str, List[ToolRecord]], requested: Sequence[str]
    ) -> Dict[str, List[ToolRecord]]:
        if not requested:
            return dict(grouped)
        wanted = list(dict.fromkeys(requested))
        for identifier in wanted:
            if identifier not in grouped:
                self.logger.warning("Requested namespace %s has no tools in the tool list", identifier)
        return {identifier: grouped[identifier] for identifier in wanted if identifier in grouped}

    def _build_content_orchestrator(
        self, settings: RunSettings, renderer: TemplateRenderer
    ) -> Optional[ContentOrchestrator]:
        if settings.skip_ai:
            return None
        runner = self._runner or self._build_runner(settings.llm)
        if runner is None or not runner.is_configured:
            return None
        policy = RetryPolicy().with_overrides(
            max_attempts=settings.retry.max_attempts,
            base_delay=settings.retry.base_delay,
            multiplier=settings.retry.multiplier,
            max_delay=settings.retry.max_delay,
        )
        return ContentOrchestrator(
            runner,
            PromptBuilder(renderer),
            policy=policy,
            diagnostics_dir=settings.output_dir / DIAGNOSTICS_SUBDIR,
            sleep=self.sleep,
        )

    @staticmethod
    def _build_runner(llm_cfg: LLMConfig | None) -> LLMRunner:
        kwargs: Dict[str, object] = {}
        if llm_cfg is not None:
            if llm_cfg.model:
                kwargs["model"] = llm_cfg.model
            if llm_cfg.base_url is not None:
                kwargs["base_url"] = llm_cfg.base_url
            if llm_cfg.api_key is not None:
                kwargs["api_key"] = llm_cfg.api_key
            if llm_cfg.api_version is not None:
                kwargs["api_version"] = llm_cfg.api_version
            if llm_cfg.temperature is not None:
                kwargs["temperature"] = llm_cfg.temperature
            if llm_cfg.max_tokens is not None:
                kwargs["max_tokens"] = llm_cfg.max_tokens
            if llm_cfg.request_timeout is not None:
                kwargs["request_timeout"] = llm_cfg.request_timeout
        return LLMRunner(**kwargs)  # type: ignore[arg-type]

    def _write_tool_pages(self, article: StaticArticle, renderer: TemplateRenderer, tools_dir: Path) -> None:
        written: Dict[str, str] = {}
        for group in article.groups:
            for entry in group.operations:
                previous = written.get(entry.artifact_id)
                if previous is not None:
                    self.logger.warning(
                        "Commands '%s' and '%s' share artifact %s; keeping the first",
                        previous,
                        entry.tool.command,
                        entry.artifact_id,
                    )
                    continue
                context = {
                    "tool": entry.to_context(group.resource_type),
                    "serviceBrandName": article.name.brand_name,
                    "serviceIdentifier": article.namespace.identifier,
                    "generatedAt": article.generated_at,
                    "version": article.version,
                }
                markdown = self.linter.lint(renderer.render(TOOL_TEMPLATE, context))
                (tools_dir / f"{entry.artifact_id}.md").write_text(markdown, encoding="utf-8")
                written[entry.artifact_id] = entry.tool.command
        self.logger.debug("Wrote %d tool pages for %s", len(written), article.namespace.identifier)

    def _write_namespace_article(
        self,
        article: StaticArticle,
        content: ContentOrchestrator | None,
        renderer: TemplateRenderer,
        namespaces_dir: Path,
    ) -> NamespaceOutcome:
        namespace = article.namespace.identifier
        outcome = NamespaceOutcome(namespace=namespace, brand_name=article.name.brand_name, status=STATUS_STATIC)
        merged: MergedArticle
        if content is None:
            merged = static_only(article)
        else:
            trace = RetryTrace()
            try:
                merged = content.enrich(article, trace=trace)
                outcome.status = STATUS_ENRICHED
            except NamespaceGenerationError as exc:
                self.logger.warning(
                    "AI enrichment failed for %s: %s%s",
                    namespace,
                    exc.reason,
                    f" (raw response: {exc.diagnostic_path})" if exc.diagnostic_path else "",
                )
                merged = static_only(article)
                outcome.status = STATUS_FAILED
                outcome.reason = exc.reason
                outcome.diagnostic_path = exc.diagnostic_path
            outcome.retries = trace.retries

        try:
            markdown = renderer.render(NAMESPACE_TEMPLATE, merged.fields)
        except Exception as exc:
            if not merged.enriched:
                raise
            self.logger.warning(
                "Rendering the enriched article for %s failed: %s; using static data", namespace, exc
            )
            markdown = renderer.render(NAMESPACE_TEMPLATE, static_only(article).fields)
            outcome.status = STATUS_FAILED
            outcome.reason = f"Enriched article could not be rendered: {exc}"

        markdown = self.linter.lint(markdown)
        path = namespaces_dir / f"{article.name.slug}.md"
        path.write_text(markdown, encoding="utf-8")
        outcome.article_path = path
        return outcome


__all__ = ["Orchestrator", "RunSettings"]
