from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable

from jvm_analyzer.models import ArtifactType, HistogramRow
from jvm_analyzer.utils.io import read_text

PROMPTS_DIR = Path(__file__).resolve().parent / "configs" / "prompts"


@dataclass(frozen=True)
class PromptPair:
    analysis: str
    summary: str


def _artifact_configs() -> Dict[ArtifactType, Dict[str, str]]:
    return {
        ArtifactType.THREAD_DUMP: {
            "analysis_prompt": "thread_dump_analysis",
            "summary_prompt": "thread_dump_summary",
            "data_label": "Dump",
        },
        ArtifactType.HEAP_HISTOGRAM: {
            "analysis_prompt": "heap_histogram_analysis",
            "summary_prompt": "heap_histogram_summary",
            "data_label": "Data",
        },
        ArtifactType.FLAME_GRAPH: {
            "analysis_prompt": "flame_graph_analysis",
            "summary_prompt": "flame_graph_summary",
            "data_label": "Data",
        },
    }


def build_prompts(artifact: object, raw_text: str) -> PromptPair:
    artifact_type = ArtifactType.parse(artifact)
    config = _artifact_configs()[artifact_type]
    analysis = f"{_template(config['analysis_prompt'])}\n\n{raw_text}"
    summary = f"{_template(config['summary_prompt'])}\n\n{config['data_label']}:\n{raw_text}"
    return PromptPair(analysis=analysis, summary=summary)


def build_refine_prompt(raw_text: str) -> str:
    return f"{_template('heap_histogram_refine')}\n\nData:\n{raw_text}"


def build_rows_prompt(rows: Iterable[HistogramRow]) -> str:
    listing = "\n".join(
        f"{_strip_commas(row.instances)} {_strip_commas(row.bytes)} {row.class_name}" for row in rows
    )
    return f"{_template('heap_histogram_rows')}\n\nRows:\n{listing}"


def _template(name: str) -> str:
    return read_text(PROMPTS_DIR / f"{name}.md").strip()


def _strip_commas(value: str) -> str:
    return str(value).replace(",", "")
