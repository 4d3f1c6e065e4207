"""
Run the report job scheduler as a standalone worker, for deployments that
start the API with REPORT_SCHEDULER_ENABLED=false.

Usage:
    uv run python -m scripts.run_report_worker
"""

import asyncio
import logging
import signal

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from audit_reports.config import settings
from audit_reports.reports.scheduler import ReportJobScheduler

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def run_worker():
    engine = create_async_engine(str(settings.SQLALCHEMY_DATABASE_URI))
    async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    scheduler = ReportJobScheduler(async_session)
    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_requested.set)

    task = asyncio.create_task(scheduler.run_forever())
    await stop_requested.wait()

    logger.info("Stopping report worker")
    await scheduler.stop()
    await asyncio.gather(task, return_exceptions=True)
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(run_worker())
