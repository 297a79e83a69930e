from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass
class LLMResponse:
    raw_text: str
    backend: str
    model: str


class LLMAdapter(Protocol):
    name: str

    def default_model(self) -> str:
        raise NotImplementedError

    def generate(self, prompt: str, model: str | None = None) -> str:
        raise NotImplementedError

    def complete(self, prompt: str, model: str | None = None) -> LLMResponse:
        chosen = model or self.default_model()
        return LLMResponse(raw_text=self.generate(prompt, chosen), backend=self.name, model=chosen)
