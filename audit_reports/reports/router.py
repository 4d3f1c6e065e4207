import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from audit_reports.core.websockets.manager import manager
from audit_reports.database import get_db
from audit_reports.inspections.service import InspectionService
from audit_reports.reports.dependencies import get_report_scheduler, wake_scheduler
from audit_reports.reports.models import ReportStatus
from audit_reports.reports.scheduler import ReportJobScheduler
from audit_reports.reports.schemas import (
    CancelRequest,
    RegenerateRequest,
    ReportResponse,
    ReportSummaryResponse,
)
from audit_reports.reports.store import ReportVersionStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])

IN_FLIGHT = (ReportStatus.PENDING, ReportStatus.GENERATING)


@router.get("/inspections/{inspection_id}/reports", response_model=List[ReportSummaryResponse])
async def list_reports(inspection_id: UUID, db: AsyncSession = Depends(get_db)):
    return await ReportVersionStore(db).list_versions(inspection_id)


@router.get("/inspections/{inspection_id}/reports/latest", response_model=ReportResponse)
async def get_latest_report(inspection_id: UUID, db: AsyncSession = Depends(get_db)):
    report = await ReportVersionStore(db).get_latest(inspection_id)
    if not report:
        raise HTTPException(status_code=404, detail="No report for this inspection")
    return report


@router.get("/reports/{report_id}", response_model=ReportResponse)
async def get_report(report_id: UUID, db: AsyncSession = Depends(get_db)):
    report = await ReportVersionStore(db).get(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.post(
    "/inspections/{inspection_id}/reports/regenerate",
    response_model=ReportResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def regenerate_report(
    inspection_id: UUID,
    request: RegenerateRequest,
    db: AsyncSession = Depends(get_db),
    scheduler: Optional[ReportJobScheduler] = Depends(get_report_scheduler),
):
    """Queue a new PENDING version; earlier versions stay untouched."""
    if not await InspectionService(db).get_inspection(inspection_id):
        raise HTTPException(status_code=404, detail="Inspection not found")

    store = ReportVersionStore(db)
    try:
        report_id = await store.create_version(inspection_id, created_by_name=request.created_by_name)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Another report version was created at the same time, retry")
    await manager.notify_report(report_id, inspection_id, ReportStatus.PENDING.value)
    wake_scheduler(scheduler)
    return await store.get(report_id)


@router.post("/reports/{report_id}/cancel", response_model=ReportResponse)
async def cancel_report(
    report_id: UUID,
    request: CancelRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Flip an in-flight report to ERROR. A running generation notices at its
    next status re-check and discards its result.
    """
    store = ReportVersionStore(db)
    report = await store.get(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    if report.status not in IN_FLIGHT:
        raise HTTPException(status_code=409, detail=f"Report is already {report.status.value}")

    await store.mark_error(report_id, request.reason)
    await manager.notify_report(report_id, report.inspection_id, ReportStatus.ERROR.value, request.reason)
    logger.info(f"Report {report_id} cancelled: {request.reason}")
    return await store.get(report_id)
