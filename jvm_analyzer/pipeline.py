from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Callable, Dict, Mapping, Tuple

from jvm_analyzer.adapters.llm_base import LLMAdapter
from jvm_analyzer.adapters.registry import AdapterFactory, Provider, build_adapter
from jvm_analyzer.config import Settings, load_settings
from jvm_analyzer.errors import (
    AnalyzerError,
    BackendError,
    ConfigurationError,
    UnsupportedArtifactType,
)
from jvm_analyzer.extraction.conformance import conformance_issues
from jvm_analyzer.extraction.normalize import has_ranked_entries, normalize_summary
from jvm_analyzer.extraction.parsers import extract_json, snippet
from jvm_analyzer.fallback import HistogramFallbackChain
from jvm_analyzer.models import (
    ARTIFACT_ORDER,
    AnalysisRequest,
    AnalysisResult,
    ArtifactType,
    BundleResult,
    Summary,
)
from jvm_analyzer.prompts import PromptPair, build_prompts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineState:
    request: AnalysisRequest
    provider: Provider | None = None
    model: str | None = None
    prompts: PromptPair | None = None
    summary: Summary | None = None
    analysis_text: str | None = None
    warnings: Tuple[str, ...] = ()


class AnalysisPipeline:
    """prepare -> summarize -> analyze, one artifact per run.

    Adapters are built lazily per provider and reused for the lifetime of the
    pipeline. Nothing else is shared between runs.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        adapter_factory: AdapterFactory | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.adapter_factory = adapter_factory or build_adapter
        self._adapters: Dict[Provider, LLMAdapter] = {}

    def analyze_file(
        self,
        artifact: object,
        raw_text: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> AnalysisResult:
        request = AnalysisRequest(
            artifact=ArtifactType.parse(artifact),
            raw_text=raw_text,
            provider=provider,
            model_override=model,
        )
        return self.run(request)

    def run(self, request: AnalysisRequest) -> AnalysisResult:
        state = PipelineState(request=request)
        stages: Tuple[Tuple[str, Callable[[PipelineState], PipelineState]], ...] = (
            ("prepare", self._prepare),
            ("summarize", self._summarize),
            ("analyze", self._analyze),
        )
        for name, stage in stages:
            logger.info("[pipeline] artifact=%s stage=%s", request.artifact.value, name)
            state = stage(state)
        return AnalysisResult(
            artifact=request.artifact,
            summary=state.summary,
            analysis_text=state.analysis_text or "",
            warnings=list(state.warnings),
        )

    def run_bundle(
        self,
        artifacts: Mapping[object, str],
        provider: str | None = None,
        model: str | None = None,
    ) -> BundleResult:
        bundle = BundleResult()
        requested: Dict[ArtifactType, str] = {}
        for key, text in artifacts.items():
            try:
                artifact = ArtifactType.parse(key)
            except UnsupportedArtifactType as exc:
                logger.error("[pipeline] skipping bundle entry %r: %s", key, exc)
                bundle.errors[str(key)] = exc
                continue
            if artifact in requested:
                raise ConfigurationError(
                    f"Artifact type {artifact.value} was supplied more than once.",
                    hint="Send at most one file per artifact type.",
                )
            requested[artifact] = text

        for artifact in ARTIFACT_ORDER:
            if artifact not in requested:
                continue
            try:
                bundle.results[artifact] = self.analyze_file(
                    artifact, requested[artifact], provider=provider, model=model
                )
            except AnalyzerError as exc:
                logger.error("[pipeline] artifact=%s failed: %s", artifact.value, exc)
                bundle.errors[artifact] = exc
        return bundle

    def _adapter(self, provider: Provider) -> LLMAdapter:
        if provider not in self._adapters:
            self._adapters[provider] = self.adapter_factory(provider, self.settings)
        return self._adapters[provider]

    def _call(self, adapter: LLMAdapter, prompt: str, model: str) -> str:
        response = adapter.complete(prompt, model)
        logger.debug(
            "[pipeline] backend=%s model=%s response_chars=%s",
            response.backend,
            response.model,
            len(response.raw_text),
        )
        return response.raw_text

    def _prepare(self, state: PipelineState) -> PipelineState:
        request = state.request
        provider = Provider.parse(request.provider or self.settings.provider)
        adapter = self._adapter(provider)
        model = request.model_override or adapter.default_model()
        prompts = build_prompts(request.artifact, request.raw_text)
        return replace(state, provider=provider, model=model, prompts=prompts)

    def _summarize(self, state: PipelineState) -> PipelineState:
        artifact = state.request.artifact
        adapter = self._adapter(state.provider)
        warnings = list(state.warnings)

        if artifact is ArtifactType.HEAP_HISTOGRAM:
            try:
                raw = self._call(adapter, state.prompts.summary, state.model)
            except BackendError as exc:
                logger.warning("[pipeline] heap summary call failed, falling back: %s", exc)
                warnings.append(f"summary: backend error: {exc.message}")
                raw = ""
        else:
            raw = self._call(adapter, state.prompts.summary, state.model)

        payload = extract_json(raw)
        if payload is None:
            if raw:
                warnings.append(f"summary: response was not a JSON object: {snippet(raw)}")
        else:
            for issue in conformance_issues(artifact, payload):
                logger.debug("[pipeline] artifact=%s non-conformant payload: %s", artifact.value, issue)
                warnings.append(f"summary: {issue}")
        summary = normalize_summary(artifact, payload)

        if artifact is ArtifactType.HEAP_HISTOGRAM and not has_ranked_entries(summary):
            chain = HistogramFallbackChain(lambda prompt: self._call(adapter, prompt, state.model))
            outcome = chain.run(state.request.raw_text)
            logger.info("[pipeline] heap summary recovered by fallback step=%s", outcome.step)
            warnings.extend(outcome.notes)
            summary = outcome.summary

        return replace(state, summary=summary, warnings=tuple(warnings))

    def _analyze(self, state: PipelineState) -> PipelineState:
        adapter = self._adapter(state.provider)
        text = self._call(adapter, state.prompts.analysis, state.model)
        return replace(state, analysis_text=text)


@lru_cache(maxsize=1)
def default_pipeline() -> AnalysisPipeline:
    return AnalysisPipeline()


def analyze_file(
    artifact: object,
    raw_text: str,
    provider: str | None = None,
    model: str | None = None,
) -> AnalysisResult:
    return default_pipeline().analyze_file(artifact, raw_text, provider=provider, model=model)
