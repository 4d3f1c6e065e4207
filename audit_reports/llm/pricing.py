import logging
from typing import Mapping, Optional

from pydantic import BaseModel, ValidationError

from audit_reports.config import settings
from audit_reports.llm.schemas import TokenUsage

logger = logging.getLogger(__name__)

PER_TOKENS = 1_000_000


class ModelPricing(BaseModel):
    """USD per 1M tokens. Above ``threshold`` the *_high prices apply."""
    input_price: float = 0.0
    output_price: float = 0.0
    threshold: Optional[int] = None
    input_price_high: Optional[float] = None
    output_price_high: Optional[float] = None


def pricing_for(model_name: str, table: Optional[Mapping[str, dict]] = None) -> Optional[ModelPricing]:
    """Exact entry first, else the longest prefix entry, else None."""
    table = settings.LLM_PRICING if table is None else table
    key = model_name if model_name in table else None
    if key is None:
        matches = [prefix for prefix in table if model_name.startswith(prefix)]
        if not matches:
            return None
        key = max(matches, key=len)
    try:
        return ModelPricing.model_validate(table[key])
    except ValidationError as e:
        logger.warning(f"Invalid pricing entry for {key}: {e}")
        return None


def _tiered(tokens: int, price: float, high_price: Optional[float], threshold: Optional[int]) -> float:
    if not threshold or high_price is None or tokens <= threshold:
        return tokens / PER_TOKENS * price
    return threshold / PER_TOKENS * price + (tokens - threshold) / PER_TOKENS * high_price


def calculate_cost(model_name: str, usage: TokenUsage, table: Optional[Mapping[str, dict]] = None) -> float:
    """
    Cost of one call in USD. Models without a pricing entry cost 0.

    The threshold is applied to prompt and completion tokens separately.
    The tiered rates are only used when ``input_price_high`` is set.
    """
    pricing = pricing_for(model_name, table)
    if pricing is None:
        return 0.0

    if pricing.threshold and pricing.input_price_high is not None:
        output_high = pricing.output_price_high if pricing.output_price_high is not None else pricing.output_price
        input_cost = _tiered(usage.prompt_tokens, pricing.input_price, pricing.input_price_high, pricing.threshold)
        output_cost = _tiered(usage.completion_tokens, pricing.output_price, output_high, pricing.threshold)
    else:
        input_cost = _tiered(usage.prompt_tokens, pricing.input_price, None, None)
        output_cost = _tiered(usage.completion_tokens, pricing.output_price, None, None)
    return input_cost + output_cost


def with_cost(model_name: str, usage: TokenUsage, table: Optional[Mapping[str, dict]] = None) -> TokenUsage:
    return usage.model_copy(update={"cost_usd": calculate_cost(model_name, usage, table)})
