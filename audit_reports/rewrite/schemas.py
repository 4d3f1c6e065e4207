from typing import Optional

from pydantic import BaseModel, Field


class FindingContext(BaseModel):
    section_title: str = ""
    item_title: str = ""
    item_description: str = ""


class RewriteRequest(BaseModel):
    finding: str = Field(..., description="Non-compliance text as written by the auditor")
    context: FindingContext = Field(default_factory=FindingContext)


class RewriteResponse(BaseModel):
    text: str
    model_used: Optional[str] = None
