from __future__ import annotations

from enum import Enum
from typing import Callable, Dict

from jvm_analyzer.config import Settings
from jvm_analyzer.errors import ConfigurationError

from .gemini_adapter import GeminiAdapter
from .llm_base import LLMAdapter
from .ollama_adapter import OllamaAdapter


class Provider(str, Enum):
    GEMINI = "gemini"
    OLLAMA = "ollama"

    @classmethod
    def parse(cls, value: object) -> "Provider":
        if isinstance(value, Provider):
            return value
        key = str(value or "").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        choices = ", ".join(member.value for member in cls)
        raise ConfigurationError(
            f"Unknown LLM provider: {value!r}",
            hint=f"Use one of: {choices} (or set LLM_PROVIDER).",
        )


AdapterFactory = Callable[[Provider, Settings], LLMAdapter]

_ADAPTERS: Dict[Provider, Callable[[Settings], LLMAdapter]] = {
    Provider.GEMINI: GeminiAdapter,
    Provider.OLLAMA: OllamaAdapter,
}


def build_adapter(provider: Provider, settings: Settings) -> LLMAdapter:
    return _ADAPTERS[provider](settings)
