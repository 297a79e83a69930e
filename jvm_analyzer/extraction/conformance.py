from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping

from jsonschema import Draft7Validator

from jvm_analyzer.models import ArtifactType
from jvm_analyzer.utils.io import read_text

SCHEMAS_DIR = Path(__file__).resolve().parent.parent / "schemas"

_SCHEMA_FILES = {
    ArtifactType.THREAD_DUMP: "thread_dump_summary.schema.json",
    ArtifactType.HEAP_HISTOGRAM: "heap_histogram_summary.schema.json",
    ArtifactType.FLAME_GRAPH: "flame_graph_summary.schema.json",
}


@lru_cache(maxsize=None)
def load_schema(artifact: ArtifactType) -> Dict[str, Any]:
    return json.loads(read_text(SCHEMAS_DIR / _SCHEMA_FILES[artifact]))


def conformance_issues(artifact: ArtifactType, payload: Mapping[str, Any]) -> List[str]:
    """List the ways a parsed model payload deviates from the requested shape."""
    validator = Draft7Validator(load_schema(ArtifactType.parse(artifact)))
    errors = sorted(
        validator.iter_errors(payload),
        key=lambda error: [str(part) for part in error.absolute_path],
    )
    issues: List[str] = []
    for error in errors:
        location = "/".join(str(part) for part in error.absolute_path) or "<root>"
        issues.append(f"{location}: {error.message}")
    return issues
