import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from audit_reports.inspections.models import (
    AuditorProfile,
    Inspection,
    InspectionStatus,
    InspectionType,
    Operator,
    Premise,
)
from audit_reports.reports.store import ReportVersionStore
from audit_reports.shared.models import utcnow

logger = logging.getLogger(__name__)


class InspectionService:
    """Read access to inspection records plus the completion hand-off to report generation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_inspection(self, inspection_id: UUID) -> Optional[Inspection]:
        result = await self.db.execute(
            select(Inspection)
            .where(Inspection.id == inspection_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_inspection_type(self, inspection_type_id: Optional[UUID]) -> Optional[InspectionType]:
        if inspection_type_id is None:
            return None
        return await self.db.get(InspectionType, inspection_type_id)

    async def get_premise(self, premise_id: UUID) -> Optional[Premise]:
        result = await self.db.execute(
            select(Premise)
            .where(Premise.id == premise_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_operator(self, operator_id: UUID) -> Optional[Operator]:
        result = await self.db.execute(
            select(Operator)
            .where(Operator.id == operator_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_auditor_profile(self) -> Optional[AuditorProfile]:
        result = await self.db.execute(
            select(AuditorProfile)
            .order_by(AuditorProfile.created_at)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def existing_ids(self, inspection_ids) -> set:
        ids = list(set(inspection_ids))
        if not ids:
            return set()
        result = await self.db.execute(select(Inspection.id).where(Inspection.id.in_(ids)))
        return set(result.scalars().all())

    async def complete_inspection(self, inspection_id: UUID, created_by_name: Optional[str] = None) -> UUID:
        """
        Lock the inspection as completed and queue a new report version
        in PENDING for the scheduler to pick up. Returns the report id.
        """
        inspection = await self.get_inspection(inspection_id)
        if not inspection:
            raise ValueError(f"Inspection {inspection_id} not found")

        inspection.status = InspectionStatus.COMPLETED
        inspection.completed_at = utcnow()
        await self.db.flush()

        store = ReportVersionStore(self.db)
        report_id = await store.create_version(inspection_id, created_by_name=created_by_name)
        logger.info(f"Inspection {inspection_id} completed, report {report_id} queued")
        return report_id
