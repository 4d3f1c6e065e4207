import logging
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select, update, delete, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from audit_reports.inspections.models import Inspection
from audit_reports.reports.models import Report, ReportStatus
from audit_reports.shared.models import utcnow

logger = logging.getLogger(__name__)


class ReportVersionStore:
    """Persistence for report versions. Every write commits immediately."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_version(self, inspection_id: UUID, **fields: Any) -> UUID:
        """
        Insert a new version for an inspection as the only latest one.
        Version number is max(existing) + 1, or 1 for the first report.
        """
        existing = await self.list_versions(inspection_id)
        max_version = max((r.version_number or 0 for r in existing), default=0)

        for report in existing:
            report.is_latest = False

        fields.setdefault("status", ReportStatus.PENDING)
        report = Report(
            inspection_id=inspection_id,
            version_number=max_version + 1,
            is_latest=True,
            **fields,
        )
        self.db.add(report)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another writer took the same number between our read and insert
            await self.db.rollback()
            logger.warning(f"Version {max_version + 1} of inspection {inspection_id} already exists")
            raise

        logger.info(f"Created report {report.id} v{report.version_number} for inspection {inspection_id}")
        return report.id

    async def get(self, report_id: UUID) -> Optional[Report]:
        result = await self.db.execute(
            select(Report)
            .where(Report.id == report_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_status(self, report_id: UUID) -> Optional[ReportStatus]:
        """Current status straight from the database, bypassing the identity map."""
        result = await self.db.execute(select(Report.status).where(Report.id == report_id))
        return result.scalar_one_or_none()

    async def list_versions(self, inspection_id: UUID) -> List[Report]:
        result = await self.db.execute(
            select(Report)
            .where(Report.inspection_id == inspection_id)
            .order_by(desc(Report.version_number))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_latest(self, inspection_id: UUID) -> Optional[Report]:
        result = await self.db.execute(
            select(Report)
            .where(Report.inspection_id == inspection_id, Report.is_latest == True)
            .order_by(desc(Report.version_number))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_in_flight(self) -> List[Report]:
        """
        PENDING and GENERATING reports, newest inspection first.
        Reports whose inspection no longer exists sort last.
        """
        result = await self.db.execute(
            select(Report)
            .outerjoin(Inspection, Inspection.id == Report.inspection_id)
            .where(Report.status.in_([ReportStatus.PENDING, ReportStatus.GENERATING]))
            .order_by(
                Inspection.created_at.is_(None),
                desc(Inspection.created_at),
                Report.created_at,
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def update_status(self, report_id: UUID, status: ReportStatus, **fields: Any) -> bool:
        """Returns False when the report no longer exists."""
        result = await self.db.execute(
            update(Report).where(Report.id == report_id).values(status=status, **fields)
        )
        await self.db.commit()
        return result.rowcount == 1

    async def mark_error(self, report_id: UUID, message: str) -> bool:
        return await self.update_status(report_id, ReportStatus.ERROR, error=message)

    async def claim(self, report_id: UUID, conditional: bool = False) -> bool:
        """
        Move a report from PENDING to GENERATING.

        The plain form is an unconditional write: two sessions that both saw
        the report as PENDING will both "win". The conditional form only
        succeeds while the stored status is still PENDING.
        """
        stmt = update(Report).where(Report.id == report_id)
        if conditional:
            stmt = stmt.where(Report.status == ReportStatus.PENDING)
        result = await self.db.execute(stmt.values(status=ReportStatus.GENERATING, error=None))
        await self.db.commit()
        return result.rowcount == 1

    async def commit(
        self,
        report_id: UUID,
        *,
        report_data: dict,
        usage: Optional[dict],
        header_values_snapshot: dict,
        auditor_snapshot: Optional[dict],
        answers_snapshot: dict,
        editor_state: dict,
    ) -> bool:
        """
        Store the generated content and its snapshots and mark the report DONE.

        The write skips a report that is already ERROR or gone; False means
        nothing was stored.
        """
        result = await self.db.execute(
            update(Report)
            .where(Report.id == report_id, Report.status != ReportStatus.ERROR)
            .values(
                status=ReportStatus.DONE,
                report_data=report_data,
                usage=usage,
                header_values_snapshot=header_values_snapshot,
                auditor_snapshot=auditor_snapshot,
                answers_snapshot=answers_snapshot,
                editor_state=editor_state,
                generated_at=utcnow(),
                error=None,
            )
        )
        await self.db.commit()
        return result.rowcount == 1

    async def delete_for_inspection(self, inspection_id: UUID) -> int:
        result = await self.db.execute(delete(Report).where(Report.inspection_id == inspection_id))
        await self.db.commit()
        return result.rowcount
