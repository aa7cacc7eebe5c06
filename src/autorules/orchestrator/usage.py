"""Usage extraction helpers for completion API responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

USAGE_PARSER_VERSION = "v1"


@dataclass(slots=True)
class UsageExtraction:
    """Best-effort token usage extraction result."""

    prompt_tokens: int | None
    completion_tokens: int | None
    total_tokens: int | None
    cost: float | None
    usage_status: str
    parser_version: str
    reason: str | None = None


def extract_usage(payload: dict[str, Any]) -> UsageExtraction:
    """Extract token counts and reported cost from a chat-completions payload."""

    usage = payload.get("usage")
    if not isinstance(usage, dict):
        return UsageExtraction(
            prompt_tokens=None,
            completion_tokens=None,
            total_tokens=None,
            cost=None,
            usage_status="unknown",
            parser_version=USAGE_PARSER_VERSION,
            reason="no_usage_block",
        )

    prompt = _extract_int(usage, "prompt_tokens")
    completion = _extract_int(usage, "completion_tokens")
    total = _extract_int(usage, "total_tokens")
    total_was_reported = total is not None
    if total is None:
        known = [value for value in (prompt, completion) if value is not None]
        total = sum(known) if known else None

    if prompt is None and completion is None and total is None:
        status = "unknown"
    else:
        status = "reported" if total_was_reported else "estimated"

    return UsageExtraction(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=total,
        cost=_extract_float(usage, "cost"),
        usage_status=status,
        parser_version=USAGE_PARSER_VERSION,
        reason="no_token_counts" if status == "unknown" else None,
    )


def _extract_int(usage: dict[str, Any], key: str) -> int | None:
    value = usage.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _extract_float(usage: dict[str, Any], key: str) -> float | None:
    value = usage.get(key)
    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed >= 0 else None
