from typing import Dict
from pydantic import BaseModel


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0


class GenerationResult(BaseModel):
    text: str
    usage: TokenUsage
    model_used: str


class ModelUsageTotals(BaseModel):
    calls: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0


class UsageSummaryResponse(BaseModel):
    models: Dict[str, ModelUsageTotals]
    total_cost_usd: float = 0.0
