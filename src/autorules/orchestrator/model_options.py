"""Provider routing options forwarded with every completion request."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

VALID_PROVIDER_SORTS = ("price", "throughput")


@dataclass(frozen=True, slots=True)
class ProviderOptions:
    """Optional provider preferences for the completion API."""

    only: tuple[str, ...] = ()
    sort: str | None = None

    def to_payload(self) -> dict[str, object]:
        """Serialize as the `provider` block of a chat-completions request."""

        payload: dict[str, object] = {}
        if self.only:
            payload["only"] = list(self.only)
        if self.sort:
            payload["sort"] = self.sort
        return payload


def normalize_provider_sort(value: str | None) -> str | None:
    """Return a supported sort value, or None with a warning for unknown values."""

    if value is None or not value.strip():
        return None
    normalized = value.strip().lower()
    if normalized in VALID_PROVIDER_SORTS:
        return normalized
    logger.warning(
        'Invalid provider sort "%s". Valid options: %s.',
        value,
        ", ".join(VALID_PROVIDER_SORTS),
    )
    return None


def build_provider_options(
    provider_only: str | None,
    provider_sort: str | None,
) -> ProviderOptions | None:
    """Build provider options; None when neither filter nor sort is set."""

    only = (provider_only.strip(),) if provider_only and provider_only.strip() else ()
    sort = normalize_provider_sort(provider_sort)
    if not only and sort is None:
        return None
    return ProviderOptions(only=only, sort=sort)
