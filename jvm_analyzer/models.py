from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Union

from jvm_analyzer.errors import AnalyzerError, UnsupportedArtifactType

TOP_N = 10


class ArtifactType(str, Enum):
    THREAD_DUMP = "thread-dump"
    HEAP_HISTOGRAM = "heap-histogram"
    FLAME_GRAPH = "flame-graph"

    @property
    def wire_name(self) -> str:
        return _WIRE_NAMES[self]

    @classmethod
    def parse(cls, value: object) -> "ArtifactType":
        if isinstance(value, ArtifactType):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace("_", "-")
            for member in cls:
                if key in (member.value, member.wire_name):
                    return member
        raise UnsupportedArtifactType(value)


_WIRE_NAMES = {
    ArtifactType.THREAD_DUMP: "jstack",
    ArtifactType.HEAP_HISTOGRAM: "jmap",
    ArtifactType.FLAME_GRAPH: "flame",
}

def entry_name(key: Union[ArtifactType, str]) -> str:
    return key.wire_name if isinstance(key, ArtifactType) else str(key)


# Bundle processing and the combined text view follow this order.
ARTIFACT_ORDER = (
    ArtifactType.THREAD_DUMP,
    ArtifactType.HEAP_HISTOGRAM,
    ArtifactType.FLAME_GRAPH,
)


@dataclass(frozen=True)
class AnalysisRequest:
    artifact: ArtifactType
    raw_text: str
    provider: str | None = None
    model_override: str | None = None


@dataclass(frozen=True)
class ThreadDumpSummary:
    total_threads: int = 0
    by_state: Dict[str, int] = field(default_factory=dict)
    blocked_by_monitor: int = 0

    artifact = ArtifactType.THREAD_DUMP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.artifact.wire_name,
            "totalThreads": self.total_threads,
            "byState": dict(self.by_state),
            "blockedByMonitor": self.blocked_by_monitor,
        }


@dataclass(frozen=True)
class HeapEntry:
    class_name: str
    bytes: int
    instances: int

    def to_dict(self) -> Dict[str, Any]:
        return {"className": self.class_name, "bytes": self.bytes, "instances": self.instances}


@dataclass(frozen=True)
class HeapHistogramSummary:
    total_bytes: int = 0
    top_by_bytes: List[HeapEntry] = field(default_factory=list)

    artifact = ArtifactType.HEAP_HISTOGRAM

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.artifact.wire_name,
            "totalBytes": self.total_bytes,
            "topByBytes": [entry.to_dict() for entry in self.top_by_bytes],
        }


@dataclass(frozen=True)
class FunctionSample:
    name: str
    samples: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "samples": self.samples}


@dataclass(frozen=True)
class FlameGraphSummary:
    total_samples: int = 0
    top_functions: List[FunctionSample] = field(default_factory=list)

    artifact = ArtifactType.FLAME_GRAPH

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.artifact.wire_name,
            "totalSamples": self.total_samples,
            "topFunctions": [item.to_dict() for item in self.top_functions],
        }


Summary = Union[ThreadDumpSummary, HeapHistogramSummary, FlameGraphSummary]


@dataclass(frozen=True)
class HistogramRow:
    instances: str
    bytes: str
    class_name: str


@dataclass
class AnalysisResult:
    artifact: ArtifactType
    summary: Summary | None
    analysis_text: str
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict() if self.summary is not None else None,
            "analysis": self.analysis_text,
            "warnings": list(self.warnings),
        }


@dataclass
class BundleResult:
    results: Dict[ArtifactType, AnalysisResult] = field(default_factory=dict)
    # keyed by ArtifactType, or by the raw key when it named no known type
    errors: Dict[Union[ArtifactType, str], AnalyzerError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def combined_text(self) -> str:
        sections: List[str] = []
        for artifact in ARTIFACT_ORDER:
            result = self.results.get(artifact)
            if result is None:
                continue
            sections.append(f"--- {artifact.wire_name.upper()} ---\n{result.analysis_text}")
        return "\n\n".join(sections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": {
                artifact.wire_name: result.to_dict() for artifact, result in self.results.items()
            },
            "errors": {
                entry_name(key): error.to_dict() for key, error in self.errors.items()
            },
            "analysis": self.combined_text(),
        }
