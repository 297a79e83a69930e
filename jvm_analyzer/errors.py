from __future__ import annotations

from typing import Dict


class AnalyzerError(RuntimeError):
    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def to_dict(self) -> Dict[str, str]:
        return {
            "error": self.message,
            "hint": self.hint,
            "kind": type(self).__name__,
        }


class UnsupportedArtifactType(AnalyzerError, ValueError):
    def __init__(self, artifact: object) -> None:
        super().__init__(
            f"Unsupported artifact type: {artifact!r}",
            hint="Use one of: thread-dump (jstack), heap-histogram (jmap), flame-graph (flame).",
        )
        self.artifact = artifact


class ConfigurationError(AnalyzerError):
    pass


class BackendError(AnalyzerError):
    """Base for failures raised by a model backend call."""

    def __init__(self, backend: str, model: str, detail: str, hint: str) -> None:
        super().__init__(
            f"{backend} call failed (model={model}). {hint} Original error: {detail}",
            hint=hint,
        )
        self.backend = backend
        self.model = model
        self.detail = detail


class BackendUnavailable(BackendError):
    pass


class MissingCredential(BackendUnavailable):
    pass


class ModelInvocationError(BackendError):
    pass
