"""
Pricing calculations and rate management.

Converts token counts into a cost estimate using a fixed per-model rate
table. Costs are kept as Decimal and never rounded here; formatting is
left to the display layer.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List

DEFAULT_MODEL = "gpt-3.5-turbo"

_THOUSAND = Decimal("1000")


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model."""
    prompt_cost_per_1k: Decimal  # USD per 1K prompt tokens
    completion_cost_per_1k: Decimal  # USD per 1K completion tokens

    @property
    def prompt_cost_per_token(self) -> Decimal:
        return self.prompt_cost_per_1k / _THOUSAND

    @property
    def completion_cost_per_token(self) -> Decimal:
        return self.completion_cost_per_1k / _THOUSAND


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for supported models."""
    prices: Dict[str, ModelPricing]

    def get_pricing(self, model: str) -> ModelPricing:
        """Get pricing for a specific model.

        Args:
            model: Model identifier

        Returns:
            ModelPricing for the model

        Raises:
            ValueError: If model is not supported
        """
        if model not in self.prices:
            raise ValueError(f"Unsupported model: {model}")
        return self.prices[model]

    def supports(self, model: str) -> bool:
        return model in self.prices

    def models(self) -> List[str]:
        return sorted(self.prices)


# Fixed pricing table - no dynamic fetching
PRICING_TABLE = PricingTable({
    "gpt-3.5-turbo": ModelPricing(
        prompt_cost_per_1k=Decimal("0.0015"),
        completion_cost_per_1k=Decimal("0.002")
    ),
    "gpt-4": ModelPricing(
        prompt_cost_per_1k=Decimal("0.03"),
        completion_cost_per_1k=Decimal("0.06")
    ),
    "gpt-4-turbo": ModelPricing(
        prompt_cost_per_1k=Decimal("0.01"),
        completion_cost_per_1k=Decimal("0.03")
    ),
    "gpt-4o": ModelPricing(
        prompt_cost_per_1k=Decimal("0.0025"),
        completion_cost_per_1k=Decimal("0.01")
    ),
    "gpt-4o-mini": ModelPricing(
        prompt_cost_per_1k=Decimal("0.00015"),
        completion_cost_per_1k=Decimal("0.0006")
    ),
})


@dataclass(frozen=True)
class QueryCost:
    """Priced token counts for a single query."""
    input_tokens: int
    output_tokens: int
    input_cost: Decimal
    output_cost: Decimal

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def total_cost(self) -> Decimal:
        return self.input_cost + self.output_cost


def price(input_tokens: int, output_tokens: int, model: str = DEFAULT_MODEL) -> QueryCost:
    """Price a query from its token counts.

    Args:
        input_tokens: Prompt tokens sent to the model
        output_tokens: Completion tokens generated
        model: Model identifier used to look up rates

    Returns:
        QueryCost with unrounded input, output and total cost

    Raises:
        ValueError: If a token count is negative or the model is not supported
    """
    if input_tokens < 0 or output_tokens < 0:
        raise ValueError(
            f"token counts must be >= 0 (got input={input_tokens}, output={output_tokens})"
        )
    pricing = PRICING_TABLE.get_pricing(model)

    return QueryCost(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        input_cost=Decimal(input_tokens) * pricing.prompt_cost_per_token,
        output_cost=Decimal(output_tokens) * pricing.completion_cost_per_token,
    )
