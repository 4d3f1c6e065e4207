import copy
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from audit_reports.config import settings
from audit_reports.inspections.models import AuditorProfile, Inspection, InspectionType
from audit_reports.inspections.service import InspectionService
from audit_reports.reports.schemas import (
    AuditorSnapshot,
    EditorEntry,
    EditorPhoto,
    EditorState,
    EntryLayout,
    StampOverlay,
)

logger = logging.getLogger(__name__)

PREMISE_FIELDS = (
    "premise_name",
    "premise_address",
    "premise_responsible_person",
    "premise_phone",
    "premise_email",
)
OPERATOR_FIELDS = (
    "operator_name",
    "operator_address",
    "operator_ico",
    "operator_statutory_body",
    "operator_phone",
    "operator_email",
)
AUDITOR_FIELDS = {
    "auditor_name": "name",
    "auditor_phone": "phone",
    "auditor_email": "email",
    "auditor_web": "web",
}


class ReportSnapshot(BaseModel):
    """The four fields frozen onto a DONE report."""
    header_values: Dict[str, Any]
    auditor: Optional[Dict[str, str]]
    answers: Dict[str, Any]
    editor_state: Dict[str, Any]


def _new_id() -> str:
    return uuid.uuid4().hex


def displayed_header_fields(structure: Optional[dict]) -> List[str]:
    """Field ids shown in the report header, in template order."""
    header_data = (structure or {}).get("header_data") or {}
    field_ids: List[str] = []
    for section in header_data.values():
        if not isinstance(section, dict):
            continue
        for field in section.get("fields") or []:
            field_id = field.get("id") if isinstance(field, dict) else None
            if field_id and field_id not in field_ids:
                field_ids.append(field_id)
    return field_ids


def find_item_titles(structure: Optional[dict], question_id: str) -> Tuple[str, str]:
    """(section title, item title) owning a question id, or empty strings."""
    for section in (structure or {}).get("audit_sections") or []:
        for item in section.get("items") or []:
            if item.get("id") == question_id:
                return section.get("title", ""), item.get("title", "")
    return "", ""


def normalize_photo(photo: Any) -> EditorPhoto:
    """Keep both the remote reference and the inline fallback, whichever exist."""
    if isinstance(photo, str):
        if photo.startswith("data:"):
            return EditorPhoto(id=_new_id(), inline_data=photo)
        return EditorPhoto(id=_new_id(), url=photo)

    photo = photo or {}
    return EditorPhoto(
        id=photo.get("id") or _new_id(),
        url=photo.get("url") or photo.get("storageUrl") or photo.get("downloadURL"),
        inline_data=photo.get("inline_data") or photo.get("base64"),
        mime_type=photo.get("mime_type") or photo.get("mimeType"),
        analysis=photo.get("analysis"),
    )


def build_editor_state(
    answers: Dict[str, Any],
    structure: Optional[dict],
    stamp_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Flatten every non-compliance entry of every non-compliant answer."""
    layout = EntryLayout(
        columns=settings.EDITOR_DEFAULT_COLUMNS,
        alignment=settings.EDITOR_DEFAULT_ALIGNMENT,
        width_ratio=settings.EDITOR_DEFAULT_WIDTH_RATIO,
    )
    entries: List[EditorEntry] = []
    for question_id, answer in (answers or {}).items():
        if not isinstance(answer, dict) or answer.get("compliant"):
            continue
        section_title, item_title = find_item_titles(structure, question_id)
        for nc in answer.get("nonComplianceData") or []:
            entries.append(
                EditorEntry(
                    id=nc.get("id") or _new_id(),
                    question_id=question_id,
                    section_title=section_title,
                    item_title=item_title,
                    location=nc.get("location") or "",
                    finding=nc.get("finding") or "",
                    recommendation=nc.get("recommendation") or "",
                    photos=[normalize_photo(p) for p in nc.get("photos") or []],
                    layout=layout.model_copy(),
                )
            )

    stamp = None
    if stamp_url:
        stamp = StampOverlay(
            url=stamp_url,
            alignment=settings.EDITOR_STAMP_ALIGNMENT,
            width_ratio=settings.EDITOR_STAMP_WIDTH_RATIO,
        )
    return EditorState(entries=entries, stamp=stamp).model_dump(exclude_none=True)


class SnapshotBuilder:
    """
    Assembles the data frozen onto a report when it is generated.
    Reads only; running it again from scratch has no side effects.
    """

    def __init__(self, db: AsyncSession):
        self.inspections = InspectionService(db)

    async def _fresh_header_values(self, inspection: Inspection) -> Dict[str, str]:
        values: Dict[str, str] = {}
        premise = await self.inspections.get_premise(inspection.premise_id)
        if premise:
            for field in PREMISE_FIELDS:
                values[field] = getattr(premise, field) or ""
            operator = await self.inspections.get_operator(premise.operator_id)
            if operator:
                for field in OPERATOR_FIELDS:
                    values[field] = getattr(operator, field) or ""
        auditor = await self.inspections.get_auditor_profile()
        if auditor:
            for field, attr in AUDITOR_FIELDS.items():
                values[field] = getattr(auditor, attr) or ""
        return values

    async def build_header_values(
        self, inspection: Inspection, inspection_type: Optional[InspectionType]
    ) -> Dict[str, str]:
        stored = dict(inspection.header_values or {})
        try:
            fresh = await self._fresh_header_values(inspection)
        except Exception as e:
            logger.warning(f"Header lookup failed for inspection {inspection.id}, keeping stored values: {e}")
            return stored

        field_ids = displayed_header_fields(inspection_type.structure if inspection_type else None)
        if not field_ids:
            field_ids = list(dict.fromkeys([*stored, *fresh]))

        values = dict(stored)
        for field_id in field_ids:
            values[field_id] = fresh.get(field_id) or stored.get(field_id) or ""
        return values

    async def fetch_auditor(self) -> Optional[AuditorProfile]:
        try:
            return await self.inspections.get_auditor_profile()
        except Exception as e:
            logger.warning(f"Auditor lookup failed, report will have no auditor snapshot: {e}")
            return None

    @staticmethod
    def auditor_snapshot(profile: Optional[AuditorProfile]) -> Optional[Dict[str, str]]:
        if profile is None:
            return None
        return AuditorSnapshot(
            name=profile.name or "",
            phone=profile.phone or "",
            email=profile.email or "",
            web=profile.web or "",
        ).model_dump()

    @staticmethod
    def snapshot_answers(inspection: Inspection) -> Dict[str, Any]:
        return copy.deepcopy(inspection.answers or {})

    async def build(
        self,
        inspection: Inspection,
        inspection_type: Optional[InspectionType],
        header_values: Optional[Dict[str, str]] = None,
    ) -> ReportSnapshot:
        """
        Assemble all four snapshot fields. Pass ``header_values`` to reuse
        values already resolved for this generation instead of fetching again.
        """
        if header_values is None:
            header_values = await self.build_header_values(inspection, inspection_type)
        profile = await self.fetch_auditor()
        answers = self.snapshot_answers(inspection)
        editor_state = build_editor_state(
            answers,
            inspection_type.structure if inspection_type else None,
            profile.stamp_url if profile else None,
        )
        return ReportSnapshot(
            header_values=header_values,
            auditor=self.auditor_snapshot(profile),
            answers=answers,
            editor_state=editor_state,
        )
