from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from audit_reports.reports.models import ReportStatus


class CompleteInspectionRequest(BaseModel):
    created_by_name: Optional[str] = None


class CompleteInspectionResponse(BaseModel):
    inspection_id: UUID
    report_id: UUID
    report_status: ReportStatus = ReportStatus.PENDING
