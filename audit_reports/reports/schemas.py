from typing import List, Optional, Any, Dict
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from audit_reports.llm.schemas import TokenUsage
from audit_reports.reports.models import ReportStatus


class EntryLayout(BaseModel):
    columns: int = 1
    alignment: str = "left"
    width_ratio: float = 1.0


class EditorPhoto(BaseModel):
    id: str
    # Remote storage reference and inline base64 fallback; either may be missing.
    url: Optional[str] = None
    inline_data: Optional[str] = None
    mime_type: Optional[str] = None
    analysis: Optional[str] = None


class EditorEntry(BaseModel):
    id: str
    question_id: str
    section_title: str
    item_title: str
    location: str = ""
    finding: str = ""
    recommendation: str = ""
    photos: List[EditorPhoto] = Field(default_factory=list)
    layout: EntryLayout = Field(default_factory=EntryLayout)


class StampOverlay(BaseModel):
    url: str
    alignment: str = "right"
    width_ratio: float = 0.3


class EditorState(BaseModel):
    entries: List[EditorEntry] = Field(default_factory=list)
    stamp: Optional[StampOverlay] = None


class AuditorSnapshot(BaseModel):
    name: str = ""
    phone: str = ""
    email: str = ""
    web: str = ""


class GeneratorOutput(BaseModel):
    """What the report generator hands back: opaque content plus accounting."""
    result: Dict[str, Any]
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model_used: Optional[str] = None


class ReportResponse(BaseModel):
    id: UUID
    inspection_id: UUID
    version_number: int
    is_latest: bool
    status: ReportStatus
    created_at: datetime
    generated_at: Optional[datetime] = None
    error: Optional[str] = None
    created_by_name: Optional[str] = None
    report_data: Optional[Dict[str, Any]] = None
    usage: Optional[Dict[str, Any]] = None
    header_values_snapshot: Optional[Dict[str, Any]] = None
    auditor_snapshot: Optional[Dict[str, Any]] = None
    answers_snapshot: Optional[Dict[str, Any]] = None
    editor_state: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)


class ReportSummaryResponse(BaseModel):
    id: UUID
    inspection_id: UUID
    version_number: int
    is_latest: bool
    status: ReportStatus
    created_at: datetime
    generated_at: Optional[datetime] = None
    error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RegenerateRequest(BaseModel):
    created_by_name: Optional[str] = None


class CancelRequest(BaseModel):
    reason: str = "Generation was cancelled by the user"
