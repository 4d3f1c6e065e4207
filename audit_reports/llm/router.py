from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from audit_reports.database import get_db
from audit_reports.llm.schemas import UsageSummaryResponse
from audit_reports.llm.service import AIUsageService

router = APIRouter(prefix="/usage", tags=["usage"])


@router.get("", response_model=UsageSummaryResponse)
async def get_usage_summary(db: AsyncSession = Depends(get_db)):
    return await AIUsageService(db).summarize()
