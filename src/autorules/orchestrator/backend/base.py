"""Backend interface for completion calls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from autorules.orchestrator.model_options import ProviderOptions


class BackendRunError(RuntimeError):
    """Completion call failure with retryability hint."""

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


@dataclass(slots=True)
class CompletionRequest:
    """Inputs required for one completion call."""

    prompt: str
    model: str
    provider: ProviderOptions | None = None


@dataclass(slots=True)
class CompletionResult:
    """Completion text plus whatever accounting the provider reported."""

    text: str
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    cost: float | None = None
    raw_usage: dict[str, Any] | None = None


class LlmBackend(Protocol):
    """Protocol implemented by completion backends."""

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Run one completion and return the response text and usage."""
