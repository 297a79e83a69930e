from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from jvm_analyzer.errors import BackendError
from jvm_analyzer.extraction.histogram import aggregate_rows, extract_histogram_rows
from jvm_analyzer.extraction.normalize import has_ranked_entries, normalize_summary
from jvm_analyzer.extraction.parsers import extract_json, snippet
from jvm_analyzer.models import ArtifactType, HeapHistogramSummary
from jvm_analyzer.prompts import build_refine_prompt, build_rows_prompt

logger = logging.getLogger(__name__)


@dataclass
class FallbackOutcome:
    summary: HeapHistogramSummary
    step: str
    notes: List[str] = field(default_factory=list)


class HistogramFallbackChain:
    """Recovers a heap histogram summary when the first extraction came back empty.

    Steps run in order until one yields ranked entries: a stricter reprompt over
    the full text, a reprompt over locally extracted rows, and finally local
    aggregation of those rows without any model call.
    """

    def __init__(self, call_model: Callable[[str], str]) -> None:
        self.call_model = call_model

    def run(self, raw_text: str) -> FallbackOutcome:
        notes: List[str] = []

        summary = self._attempt("refine", build_refine_prompt(raw_text), notes)
        if has_ranked_entries(summary):
            return FallbackOutcome(summary=summary, step="refine", notes=notes)

        rows = extract_histogram_rows(raw_text)
        logger.info("[fallback] extracted %s histogram rows locally", len(rows))
        if rows:
            summary = self._attempt("rows", build_rows_prompt(rows), notes)
            if has_ranked_entries(summary):
                return FallbackOutcome(summary=summary, step="rows", notes=notes)

        notes.append(f"fallback: aggregated {len(rows)} histogram rows locally")
        return FallbackOutcome(summary=aggregate_rows(rows), step="local", notes=notes)

    def _attempt(self, step: str, prompt: str, notes: List[str]) -> Optional[HeapHistogramSummary]:
        try:
            raw = self.call_model(prompt)
        except BackendError as exc:
            logger.warning("[fallback] step=%s backend error absorbed: %s", step, exc)
            notes.append(f"fallback: {step} step backend error: {exc.message}")
            return None

        summary = normalize_summary(ArtifactType.HEAP_HISTOGRAM, extract_json(raw))
        if not has_ranked_entries(summary):
            logger.info("[fallback] step=%s produced no entries; response=%s", step, snippet(raw))
            notes.append(f"fallback: {step} step produced no entries")
        return summary
