from sqlalchemy import Column, Float, String, Integer

from audit_reports.database import Base
from audit_reports.shared.models import AuditMixin


class AIUsageLog(Base, AuditMixin):
    __tablename__ = "ai_usage_logs"

    model = Column(String, nullable=False, index=True)
    operation = Column(String, nullable=False)  # "report-generation" | "rewrite-finding" | ...
    source = Column(String, nullable=False, default="backend")

    prompt_tokens = Column(Integer, nullable=False, default=0)
    completion_tokens = Column(Integer, nullable=False, default=0)
    total_tokens = Column(Integer, nullable=False, default=0)
    cost_usd = Column(Float, nullable=False, default=0.0)
