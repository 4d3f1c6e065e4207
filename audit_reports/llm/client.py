"""
Generative call client.

Sends one prompt to the text-generation service with a per-attempt timeout
and walks the candidate model list when the service reports overload:

    kind            candidates left     last candidate
    TIMEOUT         abort (interrupted) abort (interrupted)
    RATE_LIMITED    next candidate      ServiceOverloadedError
    UNAVAILABLE     abort (unavailable) abort (unavailable)
    OTHER           abort (failed)      abort (failed)

There is no delay between candidates and no retry of the same candidate.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from audit_reports.config import settings
from audit_reports.llm.errors import (
    ErrorKind,
    GenerationFailedError,
    GenerationInterruptedError,
    ServiceOverloadedError,
    ServiceUnavailableError,
    classify_error,
    provider_error_code,
)
from audit_reports.llm.factory import get_chat_model
from audit_reports.llm.fallbacks import candidate_models
from audit_reports.llm.pricing import with_cost
from audit_reports.llm.schemas import GenerationResult, TokenUsage
from audit_reports.llm.service import UsageRecorder

logger = logging.getLogger(__name__)

OVERLOADED_MESSAGE = (
    "The text generation service is overloaded. Please try again in 20-60 seconds."
)
UNAVAILABLE_MESSAGE = "The text generation service is unavailable. Please try again later."


def response_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Anthropic-style content blocks
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content)


def response_usage(response: Any) -> TokenUsage:
    metadata = getattr(response, "usage_metadata", None)
    if metadata:
        return TokenUsage(
            prompt_tokens=metadata.get("input_tokens", 0) or 0,
            completion_tokens=metadata.get("output_tokens", 0) or 0,
            total_tokens=metadata.get("total_tokens", 0) or 0,
        )
    token_usage = (getattr(response, "response_metadata", None) or {}).get("token_usage") or {}
    return TokenUsage(
        prompt_tokens=token_usage.get("prompt_tokens", 0) or 0,
        completion_tokens=token_usage.get("completion_tokens", 0) or 0,
        total_tokens=token_usage.get("total_tokens", 0) or 0,
    )


class GenerativeClient:
    def __init__(
        self,
        model_factory: Callable[[str], Any] = get_chat_model,
        usage_recorder: Optional[UsageRecorder] = None,
        timeout: Optional[float] = None,
        pricing: Optional[Dict[str, dict]] = None,
    ):
        self.model_factory = model_factory
        self.usage_recorder = usage_recorder
        self.pricing = pricing
        self.timeout = timeout if timeout is not None else settings.LLM_TIMEOUT_SECONDS

    async def generate(
        self,
        model_name: str,
        prompt: Any,
        timeout: Optional[float] = None,
        *,
        operation: str = "text-generation",
    ) -> GenerationResult:
        timeout = timeout if timeout is not None else self.timeout
        candidates = candidate_models(model_name)

        for index, candidate in enumerate(candidates):
            is_last = index == len(candidates) - 1
            try:
                model = self.model_factory(candidate)
                # wait_for cancels the pending call and its timer on every exit path
                response = await asyncio.wait_for(model.ainvoke(prompt), timeout=timeout)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                kind = classify_error(exc)

                if kind is ErrorKind.TIMEOUT:
                    logger.error(f"Generation with {candidate} interrupted after {timeout}s: {exc}")
                    raise GenerationInterruptedError(
                        "The request was interrupted (timeout or abort). Try a shorter prompt "
                        f"or a different model. Original error: {str(exc) or type(exc).__name__}",
                        model_name=candidate,
                    ) from exc

                if kind is ErrorKind.RATE_LIMITED:
                    if not is_last:
                        logger.warning(
                            f"Model {candidate} is overloaded, falling back to {candidates[index + 1]}"
                        )
                        continue
                    logger.error(f"All candidate models overloaded: {candidates}")
                    raise ServiceOverloadedError(
                        OVERLOADED_MESSAGE, model_name=candidate, code=provider_error_code(exc)
                    ) from exc

                if kind is ErrorKind.UNAVAILABLE:
                    logger.error(f"Generation backend unavailable for {candidate}: {exc}")
                    raise ServiceUnavailableError(
                        UNAVAILABLE_MESSAGE, model_name=candidate, code=provider_error_code(exc)
                    ) from exc

                code = provider_error_code(exc)
                logger.exception(f"Generation with {candidate} failed")
                raise GenerationFailedError(
                    f"Generation with model {candidate} failed: {str(exc) or type(exc).__name__}. "
                    f"Code: {code or 'N/A'}",
                    model_name=candidate,
                    code=code,
                ) from exc

            usage = with_cost(candidate, response_usage(response), self.pricing)
            if candidate != model_name:
                logger.info(f"Request for {model_name} served by fallback model {candidate}")
            if self.usage_recorder is not None:
                await self.usage_recorder(candidate, operation, usage)
            return GenerationResult(text=response_text(response), usage=usage, model_used=candidate)

        # candidate_models() always yields at least the requested model
        raise GenerationFailedError(f"No candidate models for {model_name}", model_name=model_name)
