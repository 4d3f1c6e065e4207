from typing import Optional

from fastapi import Request

from audit_reports.reports.scheduler import ReportJobScheduler


def get_report_scheduler(request: Request) -> Optional[ReportJobScheduler]:
    """Scheduler started by the app lifespan, or None when it is disabled."""
    return getattr(request.app.state, "report_scheduler", None)


def wake_scheduler(scheduler: Optional[ReportJobScheduler]) -> None:
    if scheduler is not None:
        scheduler.notify_change()
