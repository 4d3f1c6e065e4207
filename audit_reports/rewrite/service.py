import logging
from typing import Optional

from audit_reports.config import settings
from audit_reports.llm.client import GenerativeClient
from audit_reports.rewrite.prompts import fill_prompt
from audit_reports.rewrite.schemas import FindingContext, RewriteResponse

logger = logging.getLogger(__name__)


class RewriteService:
    """Single-shot text helpers for the non-compliance form."""

    def __init__(self, client: Optional[GenerativeClient] = None, model_name: Optional[str] = None):
        self.client = client or GenerativeClient()
        self.model_name = model_name or settings.LLM_MODEL_TEXT

    async def rewrite_finding(self, finding: str, context: FindingContext) -> RewriteResponse:
        prompt = fill_prompt(settings.REWRITE_FINDING_PROMPT, context, finding)
        result = await self.client.generate(self.model_name, prompt, operation="text-generation")
        text = result.text.strip()
        if not text:
            logger.info("Rewrite returned no text, keeping the original finding")
            return RewriteResponse(text=finding, model_used=result.model_used)
        return RewriteResponse(text=text, model_used=result.model_used)

    async def generate_recommendation(self, finding: str, context: FindingContext) -> RewriteResponse:
        prompt = fill_prompt(settings.GENERATE_RECOMMENDATION_PROMPT, context, finding)
        result = await self.client.generate(self.model_name, prompt, operation="text-generation")
        return RewriteResponse(text=result.text.strip(), model_used=result.model_used)
