import logging
from typing import Awaitable, Callable

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from audit_reports.llm.models import AIUsageLog
from audit_reports.llm.pricing import calculate_cost
from audit_reports.llm.schemas import ModelUsageTotals, TokenUsage, UsageSummaryResponse

logger = logging.getLogger(__name__)

UsageRecorder = Callable[[str, str, TokenUsage], Awaitable[None]]


class AIUsageService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(self, model: str, operation: str, usage: TokenUsage, source: str = "backend") -> None:
        """
        Store one usage row. A usage without a cost is priced from the
        configured table. Accounting must never break a generation, so
        failures are logged only.
        """
        try:
            cost_usd = usage.cost_usd or calculate_cost(model, usage)
            self.db.add(
                AIUsageLog(
                    model=model,
                    operation=operation,
                    source=source,
                    prompt_tokens=usage.prompt_tokens,
                    completion_tokens=usage.completion_tokens,
                    total_tokens=usage.total_tokens,
                    cost_usd=cost_usd,
                )
            )
            await self.db.commit()
        except Exception as e:
            logger.warning(f"Failed to record AI usage for {model}/{operation}: {e}")
            await self.db.rollback()

    async def summarize(self) -> UsageSummaryResponse:
        result = await self.db.execute(
            select(
                AIUsageLog.model,
                func.count(AIUsageLog.id),
                func.coalesce(func.sum(AIUsageLog.prompt_tokens), 0),
                func.coalesce(func.sum(AIUsageLog.completion_tokens), 0),
                func.coalesce(func.sum(AIUsageLog.total_tokens), 0),
                func.coalesce(func.sum(AIUsageLog.cost_usd), 0.0),
            ).group_by(AIUsageLog.model)
        )
        models = {
            model: ModelUsageTotals(
                calls=calls,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=total_tokens,
                cost_usd=cost_usd,
            )
            for model, calls, prompt_tokens, completion_tokens, total_tokens, cost_usd in result.all()
        }
        return UsageSummaryResponse(
            models=models,
            total_cost_usd=sum(totals.cost_usd for totals in models.values()),
        )


def session_usage_recorder(session_factory) -> UsageRecorder:
    """Recorder that writes each usage row in its own short-lived session."""

    async def _record(model: str, operation: str, usage: TokenUsage) -> None:
        async with session_factory() as db:
            await AIUsageService(db).record(model, operation, usage)

    return _record
