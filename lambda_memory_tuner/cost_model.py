"""
Cost model for Lambda invocations billed by memory x duration.
"""

import logging
from dataclasses import dataclass

from .utils import round_up

logger = logging.getLogger(__name__)

# Public on-demand pricing per GB-second, by architecture.
GB_SECOND_PRICES = {
    "x86_64": 0.0000166667,
    "arm64": 0.0000133334,
}
REQUEST_PRICE = 0.0000002  # $0.20 per 1M requests


@dataclass(frozen=True)
class LambdaPricing:
    """Price constants used by the cost model."""

    price_per_gb_second: float = GB_SECOND_PRICES["x86_64"]
    price_per_request: float = REQUEST_PRICE
    billing_increment_ms: float = 1.0

    def __post_init__(self):
        if self.price_per_gb_second < 0 or self.price_per_request < 0:
            raise ValueError("Prices must be non-negative")
        if self.billing_increment_ms <= 0:
            raise ValueError("billing_increment_ms must be positive")

    @classmethod
    def for_architecture(cls, architecture: str, **overrides) -> "LambdaPricing":
        if architecture not in GB_SECOND_PRICES:
            raise ValueError(
                f"Unknown architecture: {architecture}. "
                f"Must be one of {sorted(GB_SECOND_PRICES)}"
            )
        params = {"price_per_gb_second": GB_SECOND_PRICES[architecture]}
        params.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**params)


class CostModel:
    """
    Converts memory size and billed duration into dollars.

    The model is linear and free-tier agnostic:

        cost = memory_gb * billed_seconds * price_per_gb_second + price_per_request

    with the billed duration rounded up to the billing increment. It holds no
    state beyond its prices, so identical inputs always give identical costs.
    """

    def __init__(self, pricing: LambdaPricing = None):
        self.pricing = pricing or LambdaPricing()

    def billed_duration(self, duration_ms: float) -> float:
        """Round a duration up to the billing increment."""
        if duration_ms < 0:
            raise ValueError("Duration must be non-negative")
        return round_up(duration_ms, self.pricing.billing_increment_ms)

    def estimate_cost(self, memory_size: int, billed_duration_ms: float) -> float:
        """Estimated cost of one invocation in USD."""
        if memory_size <= 0:
            raise ValueError("Memory size must be positive")
        gb_seconds = (memory_size / 1024) * (self.billed_duration(billed_duration_ms) / 1000)
        return gb_seconds * self.pricing.price_per_gb_second + self.pricing.price_per_request

    def estimate_monthly_cost(
        self, memory_size: int, billed_duration_ms: float, invocations_per_month: int
    ) -> float:
        """Estimated cost of a month of invocations in USD."""
        if invocations_per_month < 0:
            raise ValueError("invocations_per_month must be non-negative")
        return self.estimate_cost(memory_size, billed_duration_ms) * invocations_per_month

    def cost_per_million(self, memory_size: int, billed_duration_ms: float) -> float:
        """Estimated cost of one million invocations in USD."""
        return self.estimate_monthly_cost(memory_size, billed_duration_ms, 1_000_000)

    def request_floor(self, invocations_per_month: int) -> float:
        """The lowest possible monthly cost: request charges alone."""
        return self.pricing.price_per_request * invocations_per_month
