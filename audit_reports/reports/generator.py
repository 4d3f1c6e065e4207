import json
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

from audit_reports.config import settings
from audit_reports.llm.client import GenerativeClient
from audit_reports.reports.schemas import GeneratorOutput

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"

OUTPUT_FORMAT_INSTRUCTIONS = """

### Required output format
Return ONLY a valid JSON object, with no other text and no markdown fences.
The JSON object must have this structure:
{
  "summary": {
    "title": "...",
    "evaluation_text": "...",
    "key_findings": ["..."],
    "key_recommendations": ["..."]
  },
  "sections": [
    {
      "section_title": "...",
      "evaluation": "...",
      "non_compliances": [
        {"item_title": "...", "location": "...", "finding": "...", "recommendation": "..."}
      ]
    }
  ]
}"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class ReportGenerator(Protocol):
    async def generate_report(
        self, inspection: Dict[str, Any], inspection_type: Dict[str, Any]
    ) -> GeneratorOutput:
        ...


def collect_non_compliances(answers: Dict[str, Any], structure: Dict[str, Any]) -> List[Dict[str, str]]:
    """Non-compliances of active items in active sections, in template order."""
    collected = []
    for section in structure.get("audit_sections") or []:
        if not section.get("active", True):
            continue
        for item in section.get("items") or []:
            answer = answers.get(item.get("id"))
            if not item.get("active", True) or not answer:
                continue
            if answer.get("compliant"):
                continue
            for nc in answer.get("nonComplianceData") or []:
                collected.append({
                    "section_title": section.get("title", ""),
                    "item_title": item.get("title", ""),
                    "location": nc.get("location") or NOT_SPECIFIED,
                    "finding": nc.get("finding") or NOT_SPECIFIED,
                    "recommendation": nc.get("recommendation") or NOT_SPECIFIED,
                })
    return collected


def _compliant_evaluation(section_title: str) -> str:
    return (
        "All checked items in this section comply with legislative requirements. "
        f"The premise maintains a high hygiene standard in the area of {section_title.lower()}."
    )


def build_sections(structure: Dict[str, Any], non_compliances: List[Dict[str, str]]) -> List[Dict[str, Any]]:
    sections = []
    for section in structure.get("audit_sections") or []:
        if not section.get("active", True):
            continue
        title = section.get("title", "")
        found = [nc for nc in non_compliances if nc["section_title"] == title]
        sections.append({
            "section_title": title,
            "evaluation": "" if found else _compliant_evaluation(title),
            "non_compliances": [
                {
                    "item_title": nc["item_title"],
                    "location": nc["location"],
                    "finding": nc["finding"],
                    "recommendation": nc["recommendation"],
                }
                for nc in found
            ],
        })
    return sections


def build_report_prompt(non_compliances: List[Dict[str, str]], template: str) -> str:
    formatted = "\n\n".join(
        f"Section: {nc['section_title']}\n"
        f"Item: {nc['item_title']}\n"
        f"- Location: {nc['location']}\n"
        f"- Finding: {nc['finding']}\n"
        f"- Recommendation: {nc['recommendation']}"
        for nc in non_compliances
    )
    prompt = template.replace("{{non_compliances}}", formatted).replace("{{count}}", str(len(non_compliances)))
    return prompt + OUTPUT_FORMAT_INSTRUCTIONS


def parse_report_json(text: str) -> Dict[str, Any]:
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ValueError("Failed to parse the generated report: no JSON object in the response")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse the generated report: {e}") from e


class DefaultReportGenerator:
    """
    Static report when nothing is non-compliant, static summary when AI is switched
    off, otherwise a report written by the text-generation service.
    """

    def __init__(
        self,
        client: Optional[GenerativeClient] = None,
        model_name: Optional[str] = None,
        use_ai: Optional[bool] = None,
    ):
        self.client = client or GenerativeClient()
        self.model_name = model_name or settings.LLM_MODEL_REPORT
        self.use_ai = settings.REPORT_USE_AI if use_ai is None else use_ai

    async def generate_report(
        self, inspection: Dict[str, Any], inspection_type: Dict[str, Any]
    ) -> GeneratorOutput:
        structure = inspection_type.get("structure") or {}
        non_compliances = collect_non_compliances(inspection.get("answers") or {}, structure)
        sections = build_sections(structure, non_compliances)

        if not non_compliances:
            return GeneratorOutput(
                result={
                    "summary": {
                        "title": settings.REPORT_SUMMARY_TITLE,
                        "evaluation_text": inspection_type.get("report_text_no_non_compliances")
                        or settings.REPORT_TEXT_NO_NON_COMPLIANCES,
                        "key_findings": [],
                        "key_recommendations": [],
                    },
                    "sections": sections,
                },
            )

        if not self.use_ai:
            return GeneratorOutput(
                result={
                    "summary": {
                        "title": settings.REPORT_SUMMARY_TITLE,
                        "evaluation_text": inspection_type.get("report_text_with_non_compliances")
                        or settings.REPORT_TEXT_WITH_NON_COMPLIANCES,
                        "key_findings": [nc["item_title"] for nc in non_compliances[:5]],
                        "key_recommendations": ["Correct the identified non-compliances"],
                    },
                    "sections": sections,
                },
            )

        prompt = build_report_prompt(non_compliances, settings.REPORT_PROMPT_TEMPLATE)
        generation = await self.client.generate(self.model_name, prompt, operation="report-generation")
        logger.info(
            f"Report for inspection {inspection.get('id')} written by {generation.model_used} "
            f"({generation.usage.total_tokens} tokens)"
        )
        return GeneratorOutput(
            result=parse_report_json(generation.text),
            usage=generation.usage,
            model_used=generation.model_used,
        )
