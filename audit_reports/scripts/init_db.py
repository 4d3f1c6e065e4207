import asyncio
from audit_reports.database import engine, Base

# Import all models to ensure they are registered in Base.metadata
from audit_reports.inspections.models import AuditorProfile, Inspection, InspectionType, Operator, Premise
from audit_reports.reports.models import Report
from audit_reports.llm.models import AIUsageLog

async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Database tables created.")

if __name__ == "__main__":
    asyncio.run(init_models())
