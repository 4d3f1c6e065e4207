"""
Report job scheduler.

Turns PENDING reports into DONE or ERROR. Every tick runs three steps:

1. stuck-job sweep: GENERATING reports created longer ago than the
   threshold become ERROR. The age is measured from ``created_at``, not from
   a heartbeat, so a job that started late and then hangs is only caught
   once its creation time passes the threshold.
2. orphan detection: GENERATING reports whose inspection is gone become ERROR.
3. claim-and-run: if this scheduler is not already generating, the first
   PENDING report of the loaded list (newest inspection first, not oldest
   report first) is generated in a background task.

The ``_is_generating`` guard only serialises generations inside this
process. With ``REPORT_CONDITIONAL_CLAIM`` off, PENDING -> GENERATING is a
plain write, so two processes that observe the same PENDING report can both
generate it and the last commit wins.
"""
import asyncio
import copy
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from audit_reports.config import settings
from audit_reports.core.websockets.manager import manager
from audit_reports.inspections.models import Inspection, InspectionType
from audit_reports.inspections.service import InspectionService
from audit_reports.llm.errors import GenerationError
from audit_reports.llm.service import session_usage_recorder
from audit_reports.llm.client import GenerativeClient
from audit_reports.reports.generator import DefaultReportGenerator, ReportGenerator
from audit_reports.reports.models import Report, ReportStatus
from audit_reports.reports.snapshot import SnapshotBuilder
from audit_reports.reports.store import ReportVersionStore
from audit_reports.shared.models import utcnow

logger = logging.getLogger(__name__)

ORPHAN_ERROR_MESSAGE = "The owning inspection was deleted"


def stuck_error_message(minutes: int) -> str:
    return f"Generation exceeded the time limit of {minutes} minutes"


@dataclass
class TickResult:
    swept: List[UUID] = field(default_factory=list)
    orphaned: List[UUID] = field(default_factory=list)
    claimed: Optional[UUID] = None


def inspection_payload(inspection: Inspection, header_values: Dict[str, str]) -> Dict[str, Any]:
    """Inspection as handed to the generator, with the snapshot header values."""
    return {
        "id": str(inspection.id),
        "premise_id": str(inspection.premise_id),
        "inspection_type_id": str(inspection.inspection_type_id) if inspection.inspection_type_id else None,
        "header_values": dict(header_values),
        "answers": copy.deepcopy(inspection.answers or {}),
        "completed_at": inspection.completed_at.isoformat() if inspection.completed_at else None,
    }


def inspection_type_payload(inspection_type: InspectionType) -> Dict[str, Any]:
    return {
        "id": str(inspection_type.id),
        "name": inspection_type.name,
        "structure": copy.deepcopy(inspection_type.structure or {}),
        "report_text_no_non_compliances": inspection_type.report_text_no_non_compliances,
        "report_text_with_non_compliances": inspection_type.report_text_with_non_compliances,
    }


class ReportJobScheduler:
    def __init__(
        self,
        session_factory,
        generator: Optional[ReportGenerator] = None,
        *,
        stuck_timeout_minutes: Optional[int] = None,
        poll_interval: Optional[float] = None,
        conditional_claim: Optional[bool] = None,
        notifier=manager,
        clock: Callable = utcnow,
    ):
        self.session_factory = session_factory
        self.generator = generator or DefaultReportGenerator(
            client=GenerativeClient(usage_recorder=session_usage_recorder(session_factory))
        )
        self.stuck_timeout_minutes = (
            settings.REPORT_STUCK_TIMEOUT_MINUTES if stuck_timeout_minutes is None else stuck_timeout_minutes
        )
        self.poll_interval = settings.REPORT_SCHEDULER_POLL_SECONDS if poll_interval is None else poll_interval
        self.conditional_claim = (
            settings.REPORT_CONDITIONAL_CLAIM if conditional_claim is None else conditional_claim
        )
        self.notifier = notifier
        self.clock = clock

        self._is_generating = False
        self._current: Optional[asyncio.Task] = None
        self._wakeup = asyncio.Event()
        self._stopping = False

    @property
    def is_generating(self) -> bool:
        return self._is_generating

    @property
    def stuck_message(self) -> str:
        return stuck_error_message(self.stuck_timeout_minutes)

    def notify_change(self) -> None:
        """Wake the loop: reports or inspections changed."""
        self._wakeup.set()

    async def _notify(
        self, report_id: UUID, inspection_id: UUID, status: ReportStatus, error: Optional[str] = None
    ) -> None:
        await self.notifier.notify_report(report_id, inspection_id, status.value, error)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def tick(self) -> TickResult:
        result = TickResult()
        async with self.session_factory() as db:
            store = ReportVersionStore(db)
            reports = await store.list_in_flight()
            result.swept = await self._sweep_stuck(store, reports)
            result.orphaned = await self._flag_orphans(db, store, reports, skip=set(result.swept))

        if not self._is_generating:
            pending = next((r for r in reports if r.status == ReportStatus.PENDING), None)
            if pending is not None:
                result.claimed = pending.id
                self._is_generating = True
                self._current = asyncio.create_task(self._run_guarded(pending.id))
        return result

    async def _sweep_stuck(self, store: ReportVersionStore, reports: List[Report]) -> List[UUID]:
        cutoff = self.clock() - timedelta(minutes=self.stuck_timeout_minutes)
        swept = []
        for report in reports:
            if report.status != ReportStatus.GENERATING or report.created_at >= cutoff:
                continue
            logger.warning(f"Report {report.id} stuck in GENERATING since {report.created_at}, marking as ERROR")
            await store.mark_error(report.id, self.stuck_message)
            await self._notify(report.id, report.inspection_id, ReportStatus.ERROR, self.stuck_message)
            swept.append(report.id)
        return swept

    async def _flag_orphans(self, db, store: ReportVersionStore, reports: List[Report], skip: set) -> List[UUID]:
        generating = [r for r in reports if r.status == ReportStatus.GENERATING and r.id not in skip]
        if not generating:
            return []
        existing = await InspectionService(db).existing_ids(r.inspection_id for r in generating)
        orphaned = []
        for report in generating:
            if report.inspection_id in existing:
                continue
            logger.warning(f"Report {report.id} is generating for deleted inspection {report.inspection_id}")
            await store.mark_error(report.id, ORPHAN_ERROR_MESSAGE)
            await self._notify(report.id, report.inspection_id, ReportStatus.ERROR, ORPHAN_ERROR_MESSAGE)
            orphaned.append(report.id)
        return orphaned

    async def _run_guarded(self, report_id: UUID) -> None:
        try:
            await self.run_generation(report_id)
        except Exception:
            logger.exception(f"Unexpected failure while generating report {report_id}")
        finally:
            self._is_generating = False
            self._current = None
            # Pick up the next PENDING report without waiting for the poll interval
            self.notify_change()

    # ------------------------------------------------------------------
    # Generation procedure
    # ------------------------------------------------------------------

    def _abandoned(self, report_id: UUID, status: Optional[ReportStatus], stage: str) -> bool:
        if status is None:
            logger.info(f"Report {report_id} was deleted {stage}, abandoning generation")
            return True
        if status == ReportStatus.ERROR:
            logger.info(f"Report {report_id} was marked as ERROR {stage}, abandoning generation")
            return True
        return False

    async def _fail(
        self, db, store: ReportVersionStore, report_id: UUID, inspection_id: UUID, message: str
    ) -> Optional[ReportStatus]:
        # Rollback expires loaded objects, so only ids are used past this point
        await db.rollback()
        if not await store.mark_error(report_id, message):
            logger.info(f"Report {report_id} was deleted before its failure could be stored")
            return None
        await self._notify(report_id, inspection_id, ReportStatus.ERROR, message)
        return ReportStatus.ERROR

    async def run_generation(self, report_id: UUID) -> Optional[ReportStatus]:
        """
        Generate one report from its inspection and freeze the snapshot onto it.
        Returns the resulting status, or None when the report was not ours to run.
        """
        async with self.session_factory() as db:
            store = ReportVersionStore(db)
            report = await store.get(report_id)
            if report is None:
                logger.warning(f"Report {report_id} disappeared before generation")
                return None
            if report.status == ReportStatus.ERROR:
                logger.info(f"Report {report_id} was cancelled before generation started")
                return ReportStatus.ERROR
            inspection_id = report.inspection_id
            version_number = report.version_number

            inspections = InspectionService(db)
            try:
                inspection = await inspections.get_inspection(inspection_id)
                if inspection is None:
                    return await self._fail(db, store, report_id, inspection_id, ORPHAN_ERROR_MESSAGE)
                inspection_type = await inspections.get_inspection_type(inspection.inspection_type_id)
                if inspection_type is None:
                    return await self._fail(
                        db, store, report_id, inspection_id,
                        f"Inspection type for inspection {inspection_id} not found",
                    )
            except Exception as e:
                logger.exception(f"Could not load inspection for report {report_id}")
                return await self._fail(db, store, report_id, inspection_id, str(e) or type(e).__name__)

            if not await store.claim(report_id, conditional=self.conditional_claim):
                logger.info(f"Report {report_id} was claimed by another session")
                return None
            await self._notify(report_id, inspection_id, ReportStatus.GENERATING)
            logger.info(f"Generating report {report_id} (v{version_number}) for inspection {inspection_id}")

            try:
                builder = SnapshotBuilder(db)
                header_values = await builder.build_header_values(inspection, inspection_type)
                output = await self.generator.generate_report(
                    inspection_payload(inspection, header_values),
                    inspection_type_payload(inspection_type),
                )

                status = await store.get_status(report_id)
                if self._abandoned(report_id, status, "during generation"):
                    return status

                # Header values stay the ones the generator saw
                snapshot = await builder.build(inspection, inspection_type, header_values=header_values)

                status = await store.get_status(report_id)
                if self._abandoned(report_id, status, "before commit"):
                    return status

                stored = await store.commit(
                    report_id,
                    report_data=output.result,
                    usage={**output.usage.model_dump(), "model": output.model_used},
                    header_values_snapshot=snapshot.header_values,
                    auditor_snapshot=snapshot.auditor,
                    answers_snapshot=snapshot.answers,
                    editor_state=snapshot.editor_state,
                )
                if not stored:
                    status = await store.get_status(report_id)
                    self._abandoned(report_id, status, "while committing")
                    return status
            except Exception as e:
                logger.exception(f"Report {report_id} generation failed")
                message = e.message if isinstance(e, GenerationError) else (str(e) or type(e).__name__)
                return await self._fail(db, store, report_id, inspection_id, message)

            logger.info(f"Report {report_id} generated")
            await self._notify(report_id, inspection_id, ReportStatus.DONE)
            return ReportStatus.DONE

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run_forever(self) -> None:
        logger.info(
            f"Report scheduler started (poll {self.poll_interval}s, stuck after {self.stuck_timeout_minutes} min)"
        )
        while not self._stopping:
            try:
                await self.tick()
            except Exception:
                logger.exception("Report scheduler tick failed")
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()
        logger.info("Report scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait for the generation started by the last tick, if any."""
        if self._current is not None:
            await asyncio.gather(self._current, return_exceptions=True)

    async def stop(self) -> None:
        """
        Stop the loop and cancel an in-flight generation. The cancelled report
        stays GENERATING until the stuck-job sweep turns it into ERROR.
        """
        self._stopping = True
        self._wakeup.set()
        if self._current is not None:
            self._current.cancel()
            await asyncio.gather(self._current, return_exceptions=True)
