from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from audit_reports.core.websockets.manager import manager
from audit_reports.database import get_db
from audit_reports.inspections.schemas import CompleteInspectionRequest, CompleteInspectionResponse
from audit_reports.inspections.service import InspectionService
from audit_reports.reports.dependencies import get_report_scheduler, wake_scheduler
from audit_reports.reports.models import ReportStatus
from audit_reports.reports.scheduler import ReportJobScheduler

router = APIRouter(prefix="/inspections", tags=["inspections"])


@router.post(
    "/{inspection_id}/complete",
    response_model=CompleteInspectionResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def complete_inspection(
    inspection_id: UUID,
    request: CompleteInspectionRequest,
    db: AsyncSession = Depends(get_db),
    scheduler: Optional[ReportJobScheduler] = Depends(get_report_scheduler),
):
    service = InspectionService(db)
    try:
        report_id = await service.complete_inspection(inspection_id, request.created_by_name)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    await manager.notify_report(report_id, inspection_id, ReportStatus.PENDING.value)
    wake_scheduler(scheduler)
    return CompleteInspectionResponse(inspection_id=inspection_id, report_id=report_id)
