"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from autorules.orchestrator.backend.base import CompletionRequest, CompletionResult
from autorules.orchestrator.prompts import PASS_SENTINEL

SUMMARY_MARKER = "You are reviewing the results of an automated code quality check."

Responder = Callable[[CompletionRequest], "str | Exception"]


def default_responder(request: CompletionRequest) -> str:
    if request.prompt.startswith(SUMMARY_MARKER):
        return "## Findings\n\nAll good."
    return PASS_SENTINEL


class ScriptedBackend:
    """In-memory completion backend that records calls and in-flight concurrency."""

    def __init__(
        self,
        responder: Responder | None = None,
        *,
        delay: float | Callable[[CompletionRequest], float] = 0.0,
        tokens: int | None = 10,
        cost: float | None = 0.001,
    ) -> None:
        self.responder = responder or default_responder
        self.delay = delay
        self.tokens = tokens
        self.cost = cost
        self.requests: list[CompletionRequest] = []
        self.active = 0
        self.peak = 0

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        self.requests.append(request)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            delay = self.delay(request) if callable(self.delay) else self.delay
            await asyncio.sleep(delay)
            outcome = self.responder(request)
            if isinstance(outcome, Exception):
                raise outcome
            return CompletionResult(text=outcome, total_tokens=self.tokens, cost=self.cost)
        finally:
            self.active -= 1

    @property
    def summary_requests(self) -> list[CompletionRequest]:
        return [request for request in self.requests if request.prompt.startswith(SUMMARY_MARKER)]

    @property
    def check_requests(self) -> list[CompletionRequest]:
        return [
            request for request in self.requests if not request.prompt.startswith(SUMMARY_MARKER)
        ]


@pytest.fixture()
def scripted_backend() -> type[ScriptedBackend]:
    return ScriptedBackend


@pytest.fixture()
def make_project(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write ``{relative_path: content}`` below a fresh project root and return the root."""

    def _make(files: dict[str, str]) -> Path:
        root = tmp_path / "project"
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, "utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root

    return _make


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in (
        "OPENROUTER_API_KEY",
        "AUTORULES_MODEL",
        "AUTORULES_WORKERS",
        "AUTORULES_LLM_PRICING",
        "AUTORULES_PROVIDER",
        "AUTORULES_PROVIDER_SORT",
        "AUTORULES_ROOT_DIR",
        "AUTORULES_DISPLAY",
        "AUTORULES_LOG_LEVEL",
        "AUTORULES_OUTPUT",
        "AUTORULES_REPORT",
        "AUTORULES_BASE_URL",
        "AUTORULES_REQUEST_TIMEOUT_SECONDS",
        "AUTORULES_MAX_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    package_logger = logging.getLogger("autorules")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    yield
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            package_logger.removeHandler(handler)
    package_logger.setLevel(level)
