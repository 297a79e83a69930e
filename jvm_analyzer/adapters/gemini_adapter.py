from __future__ import annotations

import logging

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from jvm_analyzer.config import Settings
from jvm_analyzer.errors import (
    BackendError,
    BackendUnavailable,
    MissingCredential,
    ModelInvocationError,
)

from .llm_base import LLMAdapter

logger = logging.getLogger(__name__)

CREDENTIAL_HINT = "Set GEMINI_API_KEY in the environment or .env file."
MODEL_HINT = "Set GEMINI_MODEL or pass a model like 'gemini-1.5-pro' or 'gemini-1.5-flash'."
SERVICE_HINT = "The Gemini service is unavailable or rate limited; try again later."


class GeminiAdapter(LLMAdapter):
    name = "gemini"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._client: genai.Client | None = None

    def default_model(self) -> str:
        return self.settings.gemini_model

    def _client_for(self, model: str) -> genai.Client:
        if self._client is None:
            if not self.settings.gemini_api_key:
                raise MissingCredential(
                    "Gemini", model, "GEMINI_API_KEY is not set.", CREDENTIAL_HINT
                )
            timeout_ms = int(self.settings.timeout_seconds * 1000)
            self._client = genai.Client(
                api_key=self.settings.gemini_api_key,
                http_options=types.HttpOptions(timeout=timeout_ms),
            )
        return self._client

    def _classify(self, err: genai_errors.APIError, model: str) -> BackendError:
        code = getattr(err, "code", None) or 0
        detail = str(err)
        if code in (401, 403):
            return BackendUnavailable("Gemini", model, detail, CREDENTIAL_HINT)
        if code == 429 or code >= 500:
            return BackendUnavailable("Gemini", model, detail, SERVICE_HINT)
        return ModelInvocationError("Gemini", model, detail, MODEL_HINT)

    def generate(self, prompt: str, model: str | None = None) -> str:
        chosen = model or self.default_model()
        client = self._client_for(chosen)
        logger.debug("[gemini] model=%s prompt_chars=%s", chosen, len(prompt))
        try:
            response = client.models.generate_content(model=chosen, contents=prompt)
        except genai_errors.APIError as exc:
            raise self._classify(exc, chosen) from exc
        except httpx.TimeoutException as exc:
            raise BackendUnavailable(
                "Gemini",
                chosen,
                f"timed out after {self.settings.timeout_seconds:g}s: {exc}",
                SERVICE_HINT,
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendUnavailable("Gemini", chosen, str(exc), SERVICE_HINT) from exc

        text = getattr(response, "text", None)
        if not text:
            raise ModelInvocationError("Gemini", chosen, "Gemini returned empty content.", MODEL_HINT)
        logger.debug("[gemini] model=%s response_chars=%s", chosen, len(text))
        return text
