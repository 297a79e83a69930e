from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Mapping, Optional

from jvm_analyzer.models import (
    TOP_N,
    ArtifactType,
    FlameGraphSummary,
    FunctionSample,
    HeapEntry,
    HeapHistogramSummary,
    Summary,
    ThreadDumpSummary,
)


def parse_number(value: object) -> Optional[float]:
    """Read ints, floats and numeric strings ("12,345", " 7 "); None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = value.replace(",", "").strip()
        if not cleaned:
            return None
        try:
            return int(cleaned)
        except ValueError:
            pass
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def to_count(value: object) -> int:
    number = parse_number(value)
    if number is None or number <= 0:
        return 0
    return int(number)


def normalize_summary(artifact: ArtifactType, payload: Optional[Mapping[str, Any]]) -> Optional[Summary]:
    if not isinstance(payload, Mapping):
        return None
    normalizer = _NORMALIZERS[ArtifactType.parse(artifact)]
    return normalizer(payload)


def has_ranked_entries(summary: Optional[Summary]) -> bool:
    if isinstance(summary, HeapHistogramSummary):
        return bool(summary.top_by_bytes)
    if isinstance(summary, FlameGraphSummary):
        return bool(summary.top_functions)
    return summary is not None


def _normalize_thread_dump(payload: Mapping[str, Any]) -> ThreadDumpSummary:
    by_state = payload.get("byState")
    states: Dict[str, int] = {}
    if isinstance(by_state, Mapping):
        states = {str(state): to_count(count) for state, count in by_state.items()}
    return ThreadDumpSummary(
        total_threads=to_count(payload.get("totalThreads")),
        by_state=states,
        blocked_by_monitor=to_count(payload.get("blockedByMonitor")),
    )


def _normalize_heap_histogram(payload: Mapping[str, Any]) -> HeapHistogramSummary:
    entries = [
        HeapEntry(
            class_name=_text(item.get("className")),
            bytes=to_count(item.get("bytes")),
            instances=to_count(item.get("instances")),
        )
        for item in _object_items(payload.get("topByBytes"))
    ]
    entries.sort(key=lambda entry: entry.bytes, reverse=True)
    entries = entries[:TOP_N]

    total_raw = payload.get("totalBytes")
    if parse_number(total_raw) is None and entries:
        total_bytes = sum(entry.bytes for entry in entries)
    else:
        total_bytes = to_count(total_raw)
    return HeapHistogramSummary(total_bytes=total_bytes, top_by_bytes=entries)


def _normalize_flame_graph(payload: Mapping[str, Any]) -> FlameGraphSummary:
    functions = [
        FunctionSample(name=_text(item.get("name")), samples=to_count(item.get("samples")))
        for item in _object_items(payload.get("topFunctions"))
    ]
    functions.sort(key=lambda item: item.samples, reverse=True)
    return FlameGraphSummary(
        total_samples=to_count(payload.get("totalSamples")),
        top_functions=functions[:TOP_N],
    )


def _object_items(value: object) -> List[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


_NORMALIZERS: Dict[ArtifactType, Callable[[Mapping[str, Any]], Summary]] = {
    ArtifactType.THREAD_DUMP: _normalize_thread_dump,
    ArtifactType.HEAP_HISTOGRAM: _normalize_heap_histogram,
    ArtifactType.FLAME_GRAPH: _normalize_flame_graph,
}
