from typing import Dict, List, Optional
from pydantic import PostgresDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Audit Reports Backend"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/v1"
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "audit_reports"
    POSTGRES_PORT: int = 5432
    # Full URL override, e.g. sqlite+aiosqlite:///./audit_reports.db
    DATABASE_URL: Optional[str] = None

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return str(PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        ))

    # LLM providers
    # Which provider serves gpt-* models: "openai" | "azure_openai"
    LLM_OPENAI_PROVIDER: str = "openai"
    # Which provider serves claude-* models: "anthropic" | "azure_foundry"
    LLM_ANTHROPIC_PROVIDER: str = "anthropic"

    OPENAI_API_KEY: Optional[str] = None
    AZURE_OPENAI_API_KEY: Optional[str] = None
    AZURE_OPENAI_ENDPOINT: Optional[str] = None
    AZURE_OPENAI_API_VERSION: str = "2024-10-21"
    ANTHROPIC_API_KEY: Optional[str] = None
    AZURE_FOUNDRY_API_KEY: Optional[str] = None
    AZURE_FOUNDRY_ENDPOINT: Optional[str] = None
    OLLAMA_BASE_URL: str = "http://localhost:11434"

    LLM_MODEL_REPORT: str = "gpt-4.1"
    LLM_MODEL_TEXT: str = "gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.2
    LLM_TIMEOUT_SECONDS: float = 120.0

    # USD per 1M tokens, keyed by model name or name prefix. With a threshold,
    # tokens above it are billed at the *_high prices.
    LLM_PRICING: Dict[str, Dict[str, float]] = {
        "gpt-4.1": {"input_price": 2.0, "output_price": 8.0},
        "gpt-4.1-mini": {"input_price": 0.4, "output_price": 1.6},
        "gpt-4o": {"input_price": 2.5, "output_price": 10.0},
        "gpt-4o-mini": {"input_price": 0.15, "output_price": 0.6},
        "claude-3-5-haiku": {"input_price": 0.8, "output_price": 4.0},
        "claude-3-haiku": {"input_price": 0.25, "output_price": 1.25},
        "claude-sonnet-4": {
            "input_price": 3.0,
            "output_price": 15.0,
            "threshold": 200_000,
            "input_price_high": 6.0,
            "output_price_high": 22.5,
        },
    }

    # Known-unavailable backend signature: error code + host substring.
    # Matches a self-hosted Ollama that is not running.
    LLM_UNAVAILABLE_ERROR_CODE: str = "ECONNREFUSED"
    LLM_UNAVAILABLE_HOST: str = "localhost:11434"

    # Report jobs
    REPORT_STUCK_TIMEOUT_MINUTES: int = 5
    REPORT_SCHEDULER_ENABLED: bool = True
    REPORT_SCHEDULER_POLL_SECONDS: float = 10.0
    # False reproduces the plain PENDING -> GENERATING write; True claims
    # with a conditional UPDATE so only one session can win.
    REPORT_CONDITIONAL_CLAIM: bool = False

    # Report content
    REPORT_USE_AI: bool = True
    REPORT_SUMMARY_TITLE: str = "Audit summary"
    REPORT_TEXT_NO_NON_COMPLIANCES: str = "The audit found the premise in excellent hygienic condition."
    REPORT_TEXT_WITH_NON_COMPLIANCES: str = (
        "The audit was carried out and non-compliances were found that require attention and correction."
    )
    REPORT_PROMPT_TEMPLATE: str = (
        "You are a food safety (HACCP) auditor. Write the audit report for the "
        "following {{count}} non-compliances:\n\n{{non_compliances}}"
    )

    # Non-compliance text helpers; {x} and {{x}} placeholders are both accepted
    REWRITE_FINDING_PROMPT: str = (
        "Rewrite the following description of an audit non-compliance with correct spelling "
        "and in a formal style, as a description of a defect. Context: Section: {sectionTitle}, "
        "Item: {itemTitle} ({itemDescription}). Text to rewrite: {finding}"
    )
    GENERATE_RECOMMENDATION_PROMPT: str = (
        "Based on the description of the non-compliance, propose a corrective action. Context: "
        "Section: {sectionTitle}, Item: {itemTitle} ({itemDescription}). Non-compliance: {finding}. "
        "Make the recommendation concrete and actionable."
    )

    # Editor layout defaults for flattened non-compliance entries
    EDITOR_DEFAULT_COLUMNS: int = 1
    EDITOR_DEFAULT_ALIGNMENT: str = "left"
    EDITOR_DEFAULT_WIDTH_RATIO: float = 1.0
    EDITOR_STAMP_ALIGNMENT: str = "right"
    EDITOR_STAMP_WIDTH_RATIO: float = 0.3

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")

settings = Settings()
