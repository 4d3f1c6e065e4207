import pytest
from sqlalchemy import select

from audit_reports.config import settings
from audit_reports.llm.models import AIUsageLog
from audit_reports.llm.pricing import calculate_cost, pricing_for, with_cost
from audit_reports.llm.schemas import TokenUsage
from audit_reports.llm.service import AIUsageService

TABLE = {
    "gpt-4o": {"input_price": 2.5, "output_price": 10.0},
    "gpt-4o-mini": {"input_price": 0.15, "output_price": 0.6},
    "tiered": {
        "input_price": 1.0,
        "output_price": 2.0,
        "threshold": 1000,
        "input_price_high": 3.0,
        "output_price_high": 5.0,
    },
}


def usage(prompt_tokens, completion_tokens):
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
    )


def test_flat_price_per_million_tokens():
    assert calculate_cost("gpt-4o", usage(1_000_000, 500_000), TABLE) == pytest.approx(2.5 + 5.0)


def test_below_threshold_uses_base_prices():
    cost = calculate_cost("tiered", usage(1000, 500), TABLE)
    assert cost == pytest.approx(1000 / 1e6 * 1.0 + 500 / 1e6 * 2.0)


def test_tokens_above_threshold_use_high_prices():
    cost = calculate_cost("tiered", usage(3000, 1500), TABLE)
    expected_input = 1000 / 1e6 * 1.0 + 2000 / 1e6 * 3.0
    expected_output = 1000 / 1e6 * 2.0 + 500 / 1e6 * 5.0
    assert cost == pytest.approx(expected_input + expected_output)


def test_threshold_without_high_input_price_is_flat():
    table = {"m": {"input_price": 1.0, "output_price": 2.0, "threshold": 10}}
    assert calculate_cost("m", usage(1_000_000, 1_000_000), table) == pytest.approx(3.0)


def test_missing_high_output_price_keeps_base_output_price():
    table = {"m": {"input_price": 1.0, "output_price": 2.0, "threshold": 1000, "input_price_high": 4.0}}
    cost = calculate_cost("m", usage(2000, 2000), table)
    assert cost == pytest.approx((1000 * 1.0 + 1000 * 4.0 + 2000 * 2.0) / 1e6)


def test_unknown_model_costs_nothing():
    assert calculate_cost("llama3.1", usage(5000, 5000), TABLE) == 0.0
    assert pricing_for("llama3.1", TABLE) is None


def test_longest_prefix_entry_wins():
    assert pricing_for("gpt-4o-mini-2024-07-18", TABLE).input_price == 0.15
    assert pricing_for("gpt-4o-2024-08-06", TABLE).input_price == 2.5


def test_with_cost_keeps_token_counts():
    priced = with_cost("gpt-4o", usage(100, 50), TABLE)
    assert (priced.prompt_tokens, priced.completion_tokens, priced.total_tokens) == (100, 50, 150)
    assert priced.cost_usd == pytest.approx((100 * 2.5 + 50 * 10.0) / 1e6)


@pytest.mark.asyncio
async def test_recorded_usage_is_priced_from_settings(db_session, monkeypatch):
    monkeypatch.setattr(settings, "LLM_PRICING", {"gpt-4o": {"input_price": 2.5, "output_price": 10.0}})
    await AIUsageService(db_session).record("gpt-4o", "report-generation", usage(1_000_000, 100_000))

    row = (await db_session.execute(select(AIUsageLog))).scalar_one()
    assert row.cost_usd == pytest.approx(3.5)
    summary = await AIUsageService(db_session).summarize()
    assert summary.total_cost_usd == pytest.approx(3.5)
