from enum import Enum
from sqlalchemy import Column, String, ForeignKey, DateTime, Boolean, Enum as SAEnum
from sqlalchemy.orm import relationship
from audit_reports.database import Base
from audit_reports.shared.models import AuditMixin, JSONType


class InspectionStatus(str, Enum):
    DRAFT = "DRAFT"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REVISED = "REVISED"


class Operator(Base, AuditMixin):
    __tablename__ = "operators"

    operator_name = Column(String, nullable=False)
    operator_address = Column(String, nullable=True)
    operator_ico = Column(String, nullable=True)  # company registration number
    operator_statutory_body = Column(String, nullable=True)
    operator_phone = Column(String, nullable=True)
    operator_email = Column(String, nullable=True)

    premises = relationship("Premise", back_populates="operator")


class Premise(Base, AuditMixin):
    __tablename__ = "premises"

    operator_id = Column(ForeignKey("operators.id"), nullable=False, index=True)
    premise_name = Column(String, nullable=False)
    premise_address = Column(String, nullable=True)
    premise_responsible_person = Column(String, nullable=True)
    premise_phone = Column(String, nullable=True)
    premise_email = Column(String, nullable=True)

    operator = relationship("Operator", back_populates="premises")


class InspectionType(Base, AuditMixin):
    __tablename__ = "inspection_types"

    name = Column(String, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    # {"audit_title": ..., "header_data": {...}, "audit_sections": [{"id", "title", "active", "items": [...]}]}
    structure = Column(JSONType, nullable=False)
    report_text_no_non_compliances = Column(String, nullable=True)
    report_text_with_non_compliances = Column(String, nullable=True)


class Inspection(Base, AuditMixin):
    __tablename__ = "inspections"

    premise_id = Column(ForeignKey("premises.id"), nullable=False, index=True)
    inspection_type_id = Column(ForeignKey("inspection_types.id"), nullable=True)
    status = Column(SAEnum(InspectionStatus), default=InspectionStatus.DRAFT, nullable=False)
    # field id -> string value
    header_values = Column(JSONType, nullable=False, default=dict)
    # question id -> {"compliant": bool, "nonComplianceData": [...]}
    answers = Column(JSONType, nullable=False, default=dict)
    completed_at = Column(DateTime, nullable=True)

    premise = relationship("Premise")
    inspection_type = relationship("InspectionType")


class AuditorProfile(Base, AuditMixin):
    """Identity of the auditor printed on reports (single row)."""
    __tablename__ = "auditor_profiles"

    name = Column(String, nullable=False, default="")
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    web = Column(String, nullable=True)
    stamp_url = Column(String, nullable=True)
