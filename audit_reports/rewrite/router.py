from fastapi import APIRouter, Depends, HTTPException

from audit_reports.database import AsyncSessionLocal
from audit_reports.llm.client import GenerativeClient
from audit_reports.llm.errors import GenerationError
from audit_reports.llm.service import session_usage_recorder
from audit_reports.rewrite.schemas import RewriteRequest, RewriteResponse
from audit_reports.rewrite.service import RewriteService

router = APIRouter(prefix="/rewrite", tags=["rewrite"])


def get_rewrite_service() -> RewriteService:
    return RewriteService(GenerativeClient(usage_recorder=session_usage_recorder(AsyncSessionLocal)))


@router.post("/finding", response_model=RewriteResponse)
async def rewrite_finding(request: RewriteRequest, service: RewriteService = Depends(get_rewrite_service)):
    try:
        return await service.rewrite_finding(request.finding, request.context)
    except GenerationError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.post("/recommendation", response_model=RewriteResponse)
async def generate_recommendation(
    request: RewriteRequest, service: RewriteService = Depends(get_rewrite_service)
):
    try:
        return await service.generate_recommendation(request.finding, request.context)
    except GenerationError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)
