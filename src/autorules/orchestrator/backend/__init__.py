"""Completion backend implementations."""

from autorules.orchestrator.backend.base import (
    BackendRunError,
    CompletionRequest,
    CompletionResult,
    LlmBackend,
)
from autorules.orchestrator.backend.openrouter import OpenRouterBackend

__all__ = [
    "BackendRunError",
    "CompletionRequest",
    "CompletionResult",
    "LlmBackend",
    "OpenRouterBackend",
]
