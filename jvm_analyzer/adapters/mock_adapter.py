from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, List

from .llm_base import LLMAdapter

MOCK_MODEL = "mock-model"


@dataclass
class MockAdapter(LLMAdapter):
    """Offline stand-in for a backend.

    ``scenario="default"`` answers summary prompts with well-formed JSON;
    ``scenario="garbage"`` answers them with prose so the fallback chain runs.
    """

    scenario: str = "default"
    name: str = "mock"
    calls: List[str] = field(default_factory=list)

    def default_model(self) -> str:
        return MOCK_MODEL

    def generate(self, prompt: str, model: str | None = None) -> str:
        self.calls.append(prompt)
        if not self._is_extraction_prompt(prompt):
            return self._analysis_text(prompt)
        if self.scenario == "garbage":
            return "I could not find any structured data in this input, sorry."
        return json.dumps(self._build_payload(prompt))

    def _is_extraction_prompt(self, prompt: str) -> bool:
        return "Output ONLY JSON" in prompt or "precise data extractor" in prompt

    def _build_payload(self, prompt: str) -> Dict:
        if '"type": "jstack"' in prompt:
            return {
                "type": "jstack",
                "totalThreads": 42,
                "byState": {"RUNNABLE": 12, "BLOCKED": 3, "WAITING": 20, "TIMED_WAITING": 7},
                "blockedByMonitor": 3,
            }
        if '"type": "flame"' in prompt:
            return {
                "type": "flame",
                "totalSamples": 1500,
                "topFunctions": [
                    {"name": "java.util.HashMap.resize", "samples": 420},
                    {"name": "com.example.OrderService.price", "samples": 310},
                    {"name": "java.lang.String.format", "samples": 95},
                ],
            }
        return {
            "type": "jmap",
            "totalBytes": 3_400_000,
            "topByBytes": [
                {"className": "[B", "bytes": 2_000_000, "instances": 15_000},
                {"className": "java.lang.String", "bytes": 900_000, "instances": 37_500},
                {"className": "java.util.HashMap$Node", "bytes": 500_000, "instances": 15_625},
            ],
        }

    def _analysis_text(self, prompt: str) -> str:
        if "thread dump" in prompt:
            return "Mock analysis: 3 threads are BLOCKED on a shared monitor; no deadlock detected."
        if "heap histogram" in prompt:
            return "Mock analysis: byte arrays dominate the heap; review buffer pooling."
        if "flame graph" in prompt:
            return "Mock analysis: HashMap.resize is the hottest frame; presize the map."
        return "Mock analysis: nothing notable."
