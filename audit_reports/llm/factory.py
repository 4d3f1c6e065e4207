from __future__ import annotations

from typing import TYPE_CHECKING

from audit_reports.config import settings

if TYPE_CHECKING:
    from langchain_core.language_models.chat_models import BaseChatModel

# Valid provider identifiers
VALID_PROVIDERS = ("ollama", "openai", "azure_openai", "anthropic", "azure_foundry")

# Module-level cache keyed by model name, cleared when settings change
_llm_cache: dict[str, BaseChatModel] = {}


def clear_llm_cache() -> None:
    """Drop all cached chat model instances so they're recreated on next call."""
    _llm_cache.clear()


def provider_for_model(model_name: str) -> str:
    """Pick the provider that serves a model, from its name."""
    name = model_name.lower()
    if name.startswith("claude"):
        return settings.LLM_ANTHROPIC_PROVIDER
    if name.startswith(("gpt", "o1", "o3", "o4")):
        return settings.LLM_OPENAI_PROVIDER
    return "ollama"


# ---------------------------------------------------------------------------
# Internal constructor (lazy imports to avoid hard dep on unused packages)
# ---------------------------------------------------------------------------

def _create_chat_model(provider: str, model_name: str, *, temperature: float) -> BaseChatModel:
    if provider == "ollama":
        from langchain_ollama import ChatOllama

        return ChatOllama(
            base_url=settings.OLLAMA_BASE_URL,
            model=model_name,
            temperature=temperature,
        )

    if provider == "openai":
        from langchain_openai import ChatOpenAI

        if not settings.OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY is required when using the openai provider")
        # Retries are handled by the candidate loop, not the SDK.
        return ChatOpenAI(
            model=model_name,
            temperature=temperature,
            api_key=settings.OPENAI_API_KEY,
            max_retries=0,
        )

    if provider == "azure_openai":
        from langchain_openai import AzureChatOpenAI

        if not settings.AZURE_OPENAI_API_KEY:
            raise ValueError("AZURE_OPENAI_API_KEY is required when using the azure_openai provider")
        if not settings.AZURE_OPENAI_ENDPOINT:
            raise ValueError("AZURE_OPENAI_ENDPOINT is required when using the azure_openai provider")
        return AzureChatOpenAI(
            azure_deployment=model_name,
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
            api_key=settings.AZURE_OPENAI_API_KEY,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            temperature=temperature,
            max_retries=0,
        )

    if provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        if not settings.ANTHROPIC_API_KEY:
            raise ValueError("ANTHROPIC_API_KEY is required when using the anthropic provider")
        return ChatAnthropic(
            model=model_name,
            temperature=temperature,
            api_key=settings.ANTHROPIC_API_KEY,
            max_retries=0,
        )

    if provider == "azure_foundry":
        from langchain_anthropic import ChatAnthropic as _ChatAnthropic

        if not settings.AZURE_FOUNDRY_API_KEY:
            raise ValueError("AZURE_FOUNDRY_API_KEY is required when using the azure_foundry provider")
        if not settings.AZURE_FOUNDRY_ENDPOINT:
            raise ValueError("AZURE_FOUNDRY_ENDPOINT is required when using the azure_foundry provider")
        return _ChatAnthropic(
            model=model_name,
            temperature=temperature,
            anthropic_api_key=settings.AZURE_FOUNDRY_API_KEY,
            anthropic_api_url=settings.AZURE_FOUNDRY_ENDPOINT,
            max_retries=0,
        )

    raise ValueError(f"Unknown provider: {provider!r}. Valid: {VALID_PROVIDERS}")


# ---------------------------------------------------------------------------
# Public factory
# ---------------------------------------------------------------------------

def get_chat_model(model_name: str) -> BaseChatModel:
    """Chat model serving ``model_name``. Used for: report generation, text rewrites."""
    if model_name not in _llm_cache:
        _llm_cache[model_name] = _create_chat_model(
            provider_for_model(model_name),
            model_name,
            temperature=settings.LLM_TEMPERATURE,
        )
    return _llm_cache[model_name]
