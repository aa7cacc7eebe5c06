"""Token cost estimation for providers that do not report cost."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

PRICING_ENV = "AUTORULES_LLM_PRICING"
WILDCARD_MODEL = "*"


@dataclass(frozen=True, slots=True)
class ModelPrice:
    """USD per one million input and output tokens."""

    input_per_1m: float
    output_per_1m: float

    def cost(
        self,
        *,
        prompt_tokens: int | None,
        completion_tokens: int | None,
        total_tokens: int | None,
    ) -> float | None:
        if prompt_tokens is not None and completion_tokens is not None:
            return (
                prompt_tokens * self.input_per_1m + completion_tokens * self.output_per_1m
            ) / 1_000_000
        if total_tokens is not None:
            # split unknown, bill at the mean rate
            return total_tokens * (self.input_per_1m + self.output_per_1m) / 2 / 1_000_000
        return None


@dataclass(slots=True)
class PricingTable:
    """Prices keyed by model id, with an optional catch-all entry."""

    prices: dict[str, ModelPrice] = field(default_factory=dict)

    @classmethod
    def parse(cls, raw: str) -> PricingTable:
        """Parse ``model:input_per_1m:output_per_1m`` entries separated by commas.

        Model ids may themselves contain ``:``, so the last two fields are the
        prices.  Entries that do not parse or carry negative prices are skipped.
        """

        table = cls()
        for entry in filter(None, (chunk.strip() for chunk in raw.split(","))):
            if entry.count(":") < 2:
                logger.debug("Pricing entry %r ignored: expected model:input:output", entry)
                continue
            model, input_raw, output_raw = (part.strip() for part in entry.rsplit(":", 2))
            try:
                price = ModelPrice(float(input_raw), float(output_raw))
            except ValueError:
                logger.debug("Pricing entry %r ignored: prices are not numbers", entry)
                continue
            if not model or price.input_per_1m < 0 or price.output_per_1m < 0:
                logger.debug("Pricing entry %r ignored", entry)
                continue
            table.prices[model] = price
        return table

    @classmethod
    def from_env(cls) -> PricingTable:
        return cls.parse(os.getenv(PRICING_ENV, ""))

    def lookup(self, model: str) -> ModelPrice | None:
        return self.prices.get(model.strip()) or self.prices.get(WILDCARD_MODEL)


def estimate_cost_usd(
    *,
    model: str,
    prompt_tokens: int | None,
    completion_tokens: int | None,
    total_tokens: int | None,
) -> float | None:
    """Estimate call cost in USD from token usage and `AUTORULES_LLM_PRICING`."""

    price = PricingTable.from_env().lookup(model)
    if price is None:
        return None
    return price.cost(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=total_tokens,
    )
