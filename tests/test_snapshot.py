from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import update

from audit_reports.inspections.models import Premise
from audit_reports.inspections.service import InspectionService
from audit_reports.reports.snapshot import (
    SnapshotBuilder,
    build_editor_state,
    displayed_header_fields,
    find_item_titles,
    normalize_photo,
)


def test_displayed_header_fields_in_template_order(sample_structure):
    assert displayed_header_fields(sample_structure) == [
        "premise_name",
        "premise_address",
        "operator_name",
        "auditor_name",
    ]
    assert displayed_header_fields(None) == []


def test_find_item_titles(sample_structure):
    assert find_item_titles(sample_structure, "q-plan") == ("Cleaning", "Cleaning plan")
    assert find_item_titles(sample_structure, "missing") == ("", "")


def test_normalize_photo_keeps_url_and_inline_data():
    photo = normalize_photo({"id": "p1", "storageUrl": "https://s/p.jpg", "base64": "data:image/png;base64,AA"})
    assert photo.id == "p1"
    assert photo.url == "https://s/p.jpg"
    assert photo.inline_data == "data:image/png;base64,AA"

    assert normalize_photo("https://s/q.jpg").url == "https://s/q.jpg"
    inline_only = normalize_photo("data:image/png;base64,BB")
    assert inline_only.url is None
    assert inline_only.inline_data == "data:image/png;base64,BB"


def test_editor_state_flattens_every_non_compliance(sample_answers, sample_structure):
    state = build_editor_state(sample_answers, sample_structure, "https://storage.example/stamp.png")

    entries = state["entries"]
    assert len(entries) == 3
    assert [e["question_id"] for e in entries] == ["q-temp", "q-temp", "q-labels"]
    assert entries[0]["section_title"] == "Storage"
    assert entries[0]["item_title"] == "Cold storage temperature"
    assert entries[1]["finding"] == "No thermometer"
    assert entries[2]["item_title"] == "Labelling"
    assert entries[0]["photos"][0]["url"] == "https://storage.example/p1.jpg"
    assert entries[0]["photos"][0]["inline_data"].startswith("data:image/jpeg")
    assert entries[0]["layout"] == {"columns": 1, "alignment": "left", "width_ratio": 1.0}
    assert len({e["id"] for e in entries}) == 3
    assert state["stamp"]["url"] == "https://storage.example/stamp.png"


def test_editor_state_without_stamp_or_non_compliances():
    state = build_editor_state({"q": {"compliant": True}}, None)
    assert state == {"entries": []}


@pytest.mark.asyncio
async def test_header_values_prefer_fresh_values(db_session, seed):
    builder = SnapshotBuilder(db_session)
    inspections = InspectionService(db_session)
    inspection = await inspections.get_inspection(seed.inspection_id)
    inspection_type = await inspections.get_inspection_type(seed.inspection_type_id)

    values = await builder.build_header_values(inspection, inspection_type)

    assert values["premise_name"] == "Fresh Foods Bistro"
    assert values["premise_address"] == "2 Market Street"
    assert values["operator_name"] == "Fresh Foods Ltd."
    assert values["auditor_name"] == "John Doe"


@pytest.mark.asyncio
async def test_header_values_fall_back_to_stored_then_empty(db_session, make_inspection):
    seeded = await make_inspection(header_values={"premise_address": "Stored address"}, with_auditor=False)
    await db_session.execute(
        update(Premise).where(Premise.id == seeded.premise_id).values(premise_address=None)
    )
    await db_session.commit()

    inspections = InspectionService(db_session)
    inspection = await inspections.get_inspection(seeded.inspection_id)
    inspection_type = await inspections.get_inspection_type(seeded.inspection_type_id)
    values = await SnapshotBuilder(db_session).build_header_values(inspection, inspection_type)

    assert values["premise_address"] == "Stored address"
    assert values["auditor_name"] == ""


@pytest.mark.asyncio
async def test_header_lookup_failure_keeps_stored_values(db_session, seed):
    inspections = InspectionService(db_session)
    inspection = await inspections.get_inspection(seed.inspection_id)
    inspection_type = await inspections.get_inspection_type(seed.inspection_type_id)

    with patch.object(InspectionService, "get_premise", AsyncMock(side_effect=RuntimeError("db down"))):
        values = await SnapshotBuilder(db_session).build_header_values(inspection, inspection_type)

    assert values == {"premise_name": "Old name"}


@pytest.mark.asyncio
async def test_auditor_failure_is_tolerated(db_session):
    with patch.object(InspectionService, "get_auditor_profile", AsyncMock(side_effect=RuntimeError("db down"))):
        assert await SnapshotBuilder(db_session).fetch_auditor() is None
    assert SnapshotBuilder.auditor_snapshot(None) is None


def test_answer_snapshot_is_independent_copy(sample_answers):
    inspection = SimpleNamespace(answers=sample_answers)
    snapshot = SnapshotBuilder.snapshot_answers(inspection)

    sample_answers["q-temp"]["nonComplianceData"][0]["finding"] = "edited later"
    sample_answers["q-new"] = {"compliant": False}

    assert snapshot["q-temp"]["nonComplianceData"][0]["finding"] == "Temperature 9 C"
    assert "q-new" not in snapshot


@pytest.mark.asyncio
async def test_build_assembles_all_parts(db_session, seed):
    inspections = InspectionService(db_session)
    inspection = await inspections.get_inspection(seed.inspection_id)
    inspection_type = await inspections.get_inspection_type(seed.inspection_type_id)

    snapshot = await SnapshotBuilder(db_session).build(inspection, inspection_type)

    assert snapshot.auditor == {
        "name": "John Doe",
        "phone": "+420 700 000 000",
        "email": "auditor@example.com",
        "web": "https://auditor.example.com",
    }
    assert len(snapshot.editor_state["entries"]) == 3
    assert snapshot.editor_state["stamp"]["url"] == "https://storage.example/stamp.png"
    assert snapshot.answers == inspection.answers


def test_answer_without_compliant_flag_counts_as_non_compliant():
    answers = {
        "q-temp": {"nonComplianceData": [{"id": "nc-1", "finding": "Warm fridge"}]},
        "q-plan": {"compliant": True, "nonComplianceData": [{"finding": "ignored"}]},
    }
    state = build_editor_state(answers, None)
    assert [e["finding"] for e in state["entries"]] == ["Warm fridge"]
