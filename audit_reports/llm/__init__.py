from audit_reports.llm.factory import (
    get_chat_model,
    clear_llm_cache,
)
from audit_reports.llm.client import GenerativeClient
from audit_reports.llm.errors import (
    GenerationError,
    GenerationInterruptedError,
    ServiceOverloadedError,
    ServiceUnavailableError,
    GenerationFailedError,
)
