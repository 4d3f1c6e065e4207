from typing import Dict, List

# Model-name prefix -> alternates tried, in order, when the requested model is overloaded.
MODEL_FALLBACKS: Dict[str, List[str]] = {
    "gpt-4.1": ["gpt-4.1-mini", "gpt-4o", "gpt-4o-mini"],
    "gpt-4o": ["gpt-4o-mini", "gpt-4.1-mini"],
    "claude": ["claude-3-5-haiku-latest", "claude-3-haiku-20240307"],
}


def fallbacks_for(model_name: str) -> List[str]:
    """Alternates for the longest known family prefix of ``model_name``, or []."""
    matches = [prefix for prefix in MODEL_FALLBACKS if model_name.startswith(prefix)]
    if not matches:
        return []
    return list(MODEL_FALLBACKS[max(matches, key=len)])


def candidate_models(model_name: str) -> List[str]:
    """Requested model first, then its fallbacks, without duplicates."""
    candidates: List[str] = []
    for name in [model_name, *fallbacks_for(model_name)]:
        if name not in candidates:
            candidates.append(name)
    return candidates
