from fastapi import APIRouter

from audit_reports.inspections.router import router as inspections_router
from audit_reports.reports.router import router as reports_router
from audit_reports.rewrite.router import router as rewrite_router
from audit_reports.llm.router import router as usage_router

api_router = APIRouter()


from audit_reports.routes.v1.websockets import router as ws_router

api_router.include_router(inspections_router)
api_router.include_router(reports_router)
api_router.include_router(rewrite_router)
api_router.include_router(usage_router)
api_router.include_router(ws_router, prefix="/ws")
