from __future__ import annotations

import logging
from typing import Any

import httpx
import ollama
from ollama import ResponseError

from jvm_analyzer.config import Settings
from jvm_analyzer.errors import BackendUnavailable, ModelInvocationError

from .llm_base import LLMAdapter

logger = logging.getLogger(__name__)


class OllamaAdapter(LLMAdapter):
    """Local Ollama runtime. The client is created once and reused across calls."""

    name = "ollama"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._client: ollama.Client | None = None

    def default_model(self) -> str:
        return self.settings.ollama_model

    def _get_client(self) -> ollama.Client:
        if self._client is None:
            self._client = ollama.Client(
                host=self.settings.ollama_host,
                timeout=self.settings.timeout_seconds,
            )
        return self._client

    def _hint(self, model: str) -> str:
        return (
            f"Ensure Ollama is running at {self.settings.ollama_host} (or set OLLAMA_HOST) "
            f"and the model is pulled: `ollama pull {model}`."
        )

    def generate(self, prompt: str, model: str | None = None) -> str:
        chosen = model or self.default_model()
        client = self._get_client()
        logger.debug("[ollama] model=%s host=%s prompt_chars=%s", chosen, self.settings.ollama_host, len(prompt))
        try:
            response = client.generate(model=chosen, prompt=prompt)
        except ResponseError as exc:
            status = getattr(exc, "status_code", -1)
            detail = f"HTTP {status}: {getattr(exc, 'error', None) or exc}"
            if status >= 500:
                raise BackendUnavailable("Ollama", chosen, detail, self._hint(chosen)) from exc
            raise ModelInvocationError("Ollama", chosen, detail, self._hint(chosen)) from exc
        except httpx.TimeoutException as exc:
            raise BackendUnavailable(
                "Ollama",
                chosen,
                f"timed out after {self.settings.timeout_seconds:g}s: {exc}",
                self._hint(chosen),
            ) from exc
        except (httpx.HTTPError, ConnectionError) as exc:
            raise BackendUnavailable("Ollama", chosen, str(exc), self._hint(chosen)) from exc

        text = self._extract_text(response)
        if not text:
            raise ModelInvocationError("Ollama", chosen, "Ollama returned empty content.", self._hint(chosen))
        logger.debug("[ollama] model=%s response_chars=%s", chosen, len(text))
        return text

    @staticmethod
    def _extract_text(response: Any) -> str:
        text = getattr(response, "response", None)
        if text is None and isinstance(response, dict):
            text = response.get("response")
        return str(text or "")
