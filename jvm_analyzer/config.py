from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from jvm_analyzer.errors import ConfigurationError

DEFAULT_PROVIDER = "gemini"
DEFAULT_GEMINI_MODEL = "gemini-flash-latest"
DEFAULT_OLLAMA_MODEL = "llama3"
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_TIMEOUT_SECONDS = 120.0


@dataclass(frozen=True)
class Settings:
    provider: str = DEFAULT_PROVIDER
    gemini_api_key: str | None = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    ollama_model: str = DEFAULT_OLLAMA_MODEL
    ollama_host: str = DEFAULT_OLLAMA_HOST
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            provider=(os.getenv("LLM_PROVIDER") or DEFAULT_PROVIDER).strip().lower(),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
            ollama_model=os.getenv("OLLAMA_MODEL") or DEFAULT_OLLAMA_MODEL,
            ollama_host=os.getenv("OLLAMA_HOST") or DEFAULT_OLLAMA_HOST,
            timeout_seconds=_env_seconds("LLM_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        )


def load_settings(env_file: Path | None = None) -> Settings:
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()
    return Settings.from_env()


def _env_seconds(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be a number of seconds, got {raw!r}.",
            hint=f"Unset {name} or set it to a positive number.",
        ) from exc
    if value <= 0:
        raise ConfigurationError(
            f"{name} must be positive, got {raw!r}.",
            hint=f"Unset {name} or set it to a positive number.",
        )
    return value
