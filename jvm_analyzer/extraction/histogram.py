from __future__ import annotations

import re
from typing import Iterable, List

from jvm_analyzer.extraction.normalize import to_count
from jvm_analyzer.models import TOP_N, HeapEntry, HeapHistogramSummary, HistogramRow

# "<rank>: <instances> <bytes> <class name> [(module)]"
_ROW = re.compile(r"^\s*\d+:\s+([\d,]+)\s+([\d,]+)\s+(.+?)\s*(?:\([^)]*\)\s*)?$")
_HEADER = re.compile(r"^num\b", flags=re.IGNORECASE)
_FOOTER = re.compile(r"^total\b", flags=re.IGNORECASE)


def extract_histogram_rows(text: str) -> List[HistogramRow]:
    rows: List[HistogramRow] = []
    for line in str(text or "").splitlines():
        match = _ROW.match(line)
        if match is None:
            continue
        instances, size, class_name = match.groups()
        class_name = class_name.strip()
        if _HEADER.match(line.strip()) or _FOOTER.match(class_name):
            continue
        rows.append(HistogramRow(instances=instances, bytes=size, class_name=class_name))
    return rows


def aggregate_rows(rows: Iterable[HistogramRow]) -> HeapHistogramSummary:
    entries = [
        HeapEntry(
            class_name=row.class_name,
            bytes=to_count(row.bytes),
            instances=to_count(row.instances),
        )
        for row in rows
    ]
    entries.sort(key=lambda entry: entry.bytes, reverse=True)
    top = entries[:TOP_N]
    return HeapHistogramSummary(
        total_bytes=sum(entry.bytes for entry in top),
        top_by_bytes=top,
    )
