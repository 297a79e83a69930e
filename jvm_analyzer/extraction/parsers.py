from __future__ import annotations

import json
from typing import Any, Dict, Optional


def _try_parse(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, TypeError, RecursionError):
        return None


def _as_object(parsed: Any) -> Optional[Dict[str, Any]]:
    return parsed if isinstance(parsed, dict) else None


def extract_json(raw_text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Recover a JSON object from model output.

    Tries the whole text first, then the span from the first ``{`` to the last
    ``}``, which covers markdown fences and chatty preambles. Returns ``None``
    when neither parses to an object.
    """
    if not raw_text:
        return None

    parsed = _as_object(_try_parse(raw_text))
    if parsed is not None:
        return parsed

    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end < start:
        return None
    return _as_object(_try_parse(raw_text[start : end + 1]))


def snippet(raw_text: str, limit: int = 200) -> str:
    flattened = (raw_text or "").strip().replace("\n", " ")
    return (flattened[:limit] + "...") if len(flattened) > limit else flattened
