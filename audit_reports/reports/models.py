from enum import Enum
from sqlalchemy import Column, String, Integer, Boolean, DateTime, UniqueConstraint, Uuid, Enum as SAEnum
from audit_reports.database import Base
from audit_reports.shared.models import AuditMixin, JSONType


class ReportStatus(str, Enum):
    PENDING = "PENDING"
    GENERATING = "GENERATING"
    DONE = "DONE"
    ERROR = "ERROR"


class Report(Base, AuditMixin):
    __tablename__ = "reports"
    __table_args__ = (
        UniqueConstraint("inspection_id", "version_number", name="uq_reports_inspection_version"),
    )

    # No FK: a report outlives a deleted inspection until the scheduler flags it.
    inspection_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    is_latest = Column(Boolean, default=True, nullable=False)
    created_by_name = Column(String, nullable=True)

    status = Column(SAEnum(ReportStatus), default=ReportStatus.PENDING, nullable=False, index=True)
    generated_at = Column(DateTime, nullable=True)
    error = Column(String, nullable=True)

    # Generator output
    report_data = Column(JSONType, nullable=True)
    usage = Column(JSONType, nullable=True)

    # Frozen at DONE, never recomputed
    header_values_snapshot = Column(JSONType, nullable=True)
    auditor_snapshot = Column(JSONType, nullable=True)
    answers_snapshot = Column(JSONType, nullable=True)
    editor_state = Column(JSONType, nullable=True)
