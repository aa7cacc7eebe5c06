"""OpenRouter chat-completions backend over an async HTTP client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from autorules.orchestrator.backend.base import (
    BackendRunError,
    CompletionRequest,
    CompletionResult,
)
from autorules.orchestrator.pricing import estimate_cost_usd
from autorules.orchestrator.usage import extract_usage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_APP_TITLE = "AutoRules"

_TRANSIENT_STATUS_CODES = frozenset({408, 409, 425, 429, 500, 502, 503, 504})


class OpenRouterBackend:
    """Send one user message per call and return the assistant text with usage."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        app_title: str = DEFAULT_APP_TITLE,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(timeout_seconds, connect=10.0)
        headers = {
            "Authorization": f"Bearer {api_key}",
            "X-Title": app_title,
        }
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=self._timeout,
            headers=headers,
            transport=transport or httpx.AsyncHTTPTransport(retries=max_retries),
        )

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Run one chat completion."""

        body: dict[str, Any] = {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "usage": {"include": True},
        }
        if request.provider is not None:
            provider_payload = request.provider.to_payload()
            if provider_payload:
                body["provider"] = provider_payload

        try:
            response = await self._client.post("/chat/completions", json=body)
        except httpx.TimeoutException as error:
            logger.warning("Timeout calling completion API for model=%s", request.model)
            raise BackendRunError("Completion request timed out", transient=True) from error
        except httpx.HTTPError as error:
            logger.warning("HTTP error calling completion API: %s", error)
            raise BackendRunError(f"Completion request failed: {error}", transient=True) from error

        if not response.is_success:
            raise BackendRunError(
                f"Completion API returned HTTP {response.status_code}: "
                f"{_error_message(response)}",
                transient=response.status_code in _TRANSIENT_STATUS_CODES,
            )

        try:
            payload = response.json()
        except ValueError as error:
            raise BackendRunError(
                "Completion API returned invalid JSON",
                transient=False,
            ) from error

        text = _message_text(payload)
        usage = extract_usage(payload)
        cost = usage.cost
        if cost is None:
            cost = estimate_cost_usd(
                model=request.model,
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens,
            )
        logger.debug(
            "Completion done: model=%s usage_status=%s total_tokens=%s cost=%s",
            request.model,
            usage.usage_status,
            usage.total_tokens,
            cost,
        )
        return CompletionResult(
            text=text,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
            cost=cost,
            raw_usage=payload.get("usage") if isinstance(payload.get("usage"), dict) else None,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> OpenRouterBackend:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()


def _message_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise BackendRunError("Completion API returned a non-object payload", transient=False)
    if isinstance(payload.get("error"), dict):
        message = payload["error"].get("message") or "unknown error"
        raise BackendRunError(f"Completion API error: {message}", transient=True)

    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        raise BackendRunError("Completion API returned no choices", transient=False)
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if content is None:
        return ""
    if isinstance(content, list):
        return "".join(
            part.get("text", "") for part in content if isinstance(part, dict)
        )
    return str(content)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip()[:240] or response.reason_phrase
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return str(payload["error"].get("message") or response.reason_phrase)
    return response.reason_phrase
