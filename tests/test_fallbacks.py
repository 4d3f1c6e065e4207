from audit_reports.llm.fallbacks import MODEL_FALLBACKS, candidate_models, fallbacks_for


def test_known_family_lists_requested_model_first():
    assert candidate_models("gpt-4.1") == ["gpt-4.1", "gpt-4.1-mini", "gpt-4o", "gpt-4o-mini"]


def test_family_matches_by_prefix():
    assert fallbacks_for("gpt-4o-2024-08-06") == MODEL_FALLBACKS["gpt-4o"]
    assert candidate_models("claude-sonnet-4-5")[0] == "claude-sonnet-4-5"


def test_requested_model_is_not_repeated():
    # gpt-4.1-mini is also a fallback of its own family
    candidates = candidate_models("gpt-4.1-mini")
    assert candidates == ["gpt-4.1-mini", "gpt-4o", "gpt-4o-mini"]
    assert len(candidates) == len(set(candidates))


def test_unknown_model_is_single_candidate():
    assert fallbacks_for("llama3.1:8b") == []
    assert candidate_models("llama3.1:8b") == ["llama3.1:8b"]


def test_fallbacks_for_returns_a_copy():
    fallbacks_for("gpt-4o").append("mutated")
    assert "mutated" not in MODEL_FALLBACKS["gpt-4o"]
