import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from audit_reports.inspections.models import Inspection, InspectionStatus
from audit_reports.inspections.service import InspectionService
from audit_reports.reports.models import ReportStatus
from audit_reports.reports.store import ReportVersionStore
from audit_reports.shared.models import utcnow


@pytest.mark.asyncio
async def test_first_version_is_pending_and_latest(db_session, seed):
    store = ReportVersionStore(db_session)
    report_id = await store.create_version(seed.inspection_id, created_by_name="Jane")

    report = await store.get(report_id)
    assert report.version_number == 1
    assert report.is_latest is True
    assert report.status == ReportStatus.PENDING
    assert report.created_by_name == "Jane"
    assert report.report_data is None


@pytest.mark.asyncio
async def test_versions_increase_and_only_newest_is_latest(db_session, seed):
    store = ReportVersionStore(db_session)
    first = await store.create_version(seed.inspection_id)
    await store.commit(
        first,
        report_data={"summary": {"title": "v1"}},
        usage=None,
        header_values_snapshot={"premise_name": "A"},
        auditor_snapshot=None,
        answers_snapshot={},
        editor_state={"entries": []},
    )
    second = await store.create_version(seed.inspection_id)
    third = await store.create_version(seed.inspection_id)

    versions = await store.list_versions(seed.inspection_id)
    assert [v.version_number for v in versions] == [3, 2, 1]
    assert [v.id for v in versions if v.is_latest] == [third]

    # Older versions keep their content
    v1 = await store.get(first)
    assert v1.status == ReportStatus.DONE
    assert v1.report_data == {"summary": {"title": "v1"}}
    assert (await store.get_latest(seed.inspection_id)).id == third
    assert (await store.get(second)).status == ReportStatus.PENDING


@pytest.mark.asyncio
async def test_version_is_max_plus_one_after_a_delete(db_session, seed):
    store = ReportVersionStore(db_session)
    await store.create_version(seed.inspection_id)
    await store.create_version(seed.inspection_id)
    await store.create_version(seed.inspection_id)

    versions = await store.list_versions(seed.inspection_id)
    await db_session.delete(versions[1])
    await db_session.commit()

    new_id = await store.create_version(seed.inspection_id)
    assert (await store.get(new_id)).version_number == 4


@pytest.mark.asyncio
async def test_versions_are_per_inspection(db_session, seed, make_inspection):
    other = await make_inspection()
    store = ReportVersionStore(db_session)
    await store.create_version(seed.inspection_id)
    await store.create_version(seed.inspection_id)
    other_id = await store.create_version(other.inspection_id)

    assert (await store.get(other_id)).version_number == 1
    assert (await store.get_latest(seed.inspection_id)).version_number == 2


@pytest.mark.asyncio
async def test_commit_sets_done_and_clears_error(db_session, seed):
    store = ReportVersionStore(db_session)
    report_id = await store.create_version(seed.inspection_id)
    await store.update_status(report_id, ReportStatus.GENERATING, error="stale")

    await store.commit(
        report_id,
        report_data={"sections": []},
        usage={"total_tokens": 3},
        header_values_snapshot={},
        auditor_snapshot={"name": "John"},
        answers_snapshot={"q": {"compliant": True}},
        editor_state={"entries": []},
    )

    report = await store.get(report_id)
    assert report.status == ReportStatus.DONE
    assert report.error is None
    assert report.generated_at is not None
    assert report.auditor_snapshot == {"name": "John"}


@pytest.mark.asyncio
async def test_plain_claim_lets_two_sessions_win(session_factory, seed):
    async with session_factory() as db:
        report_id = await ReportVersionStore(db).create_version(seed.inspection_id)

    async with session_factory() as first, session_factory() as second:
        assert await ReportVersionStore(first).claim(report_id) is True
        assert await ReportVersionStore(second).claim(report_id) is True


@pytest.mark.asyncio
async def test_conditional_claim_rejects_second_claimer(session_factory, seed):
    async with session_factory() as db:
        report_id = await ReportVersionStore(db).create_version(seed.inspection_id)

    async with session_factory() as first, session_factory() as second:
        assert await ReportVersionStore(first).claim(report_id, conditional=True) is True
        assert await ReportVersionStore(second).claim(report_id, conditional=True) is False
        assert await ReportVersionStore(second).get_status(report_id) == ReportStatus.GENERATING


@pytest.mark.asyncio
async def test_list_in_flight_orders_newest_inspection_first(db_session, make_inspection):
    older = await make_inspection()
    newer = await make_inspection()
    await db_session.execute(
        update(Inspection)
        .where(Inspection.id == older.inspection_id)
        .values(created_at=utcnow() - timedelta(days=365))
    )
    await db_session.commit()

    store = ReportVersionStore(db_session)
    older_report = await store.create_version(older.inspection_id)
    newer_report = await store.create_version(newer.inspection_id)
    orphan_report = await store.create_version(uuid.uuid4())
    done_report = await store.create_version(newer.inspection_id)
    await store.update_status(done_report, ReportStatus.DONE)

    in_flight = [r.id for r in await store.list_in_flight()]
    assert in_flight == [newer_report, older_report, orphan_report]


@pytest.mark.asyncio
async def test_complete_inspection_queues_a_report(db_session, seed):
    service = InspectionService(db_session)
    report_id = await service.complete_inspection(seed.inspection_id, created_by_name="Jane")

    inspection = await service.get_inspection(seed.inspection_id)
    assert inspection.status == InspectionStatus.COMPLETED
    assert inspection.completed_at is not None

    report = await ReportVersionStore(db_session).get(report_id)
    assert report.status == ReportStatus.PENDING
    assert report.inspection_id == seed.inspection_id


@pytest.mark.asyncio
async def test_complete_unknown_inspection(db_session):
    with pytest.raises(ValueError):
        await InspectionService(db_session).complete_inspection(uuid.uuid4())


@pytest.mark.asyncio
async def test_delete_for_inspection_leaves_other_inspections(db_session, seed, make_inspection):
    other = await make_inspection()
    store = ReportVersionStore(db_session)
    await store.create_version(seed.inspection_id)
    await store.create_version(seed.inspection_id)
    kept = await store.create_version(other.inspection_id)

    assert await store.delete_for_inspection(seed.inspection_id) == 2
    assert await store.list_versions(seed.inspection_id) == []
    assert (await store.get(kept)).is_latest is True


@pytest.mark.asyncio
async def test_concurrent_writer_cannot_reuse_a_version_number(db_session, seed):
    store = ReportVersionStore(db_session)
    first = await store.create_version(seed.inspection_id)

    # A second writer that read the versions before the first insert landed
    with patch.object(ReportVersionStore, "list_versions", AsyncMock(return_value=[])):
        with pytest.raises(IntegrityError):
            await store.create_version(seed.inspection_id)

    versions = await store.list_versions(seed.inspection_id)
    assert [(v.id, v.version_number, v.is_latest) for v in versions] == [(first, 1, True)]


@pytest.mark.asyncio
async def test_commit_skips_errored_and_deleted_reports(db_session, seed):
    store = ReportVersionStore(db_session)
    payload = dict(
        report_data={"sections": []},
        usage=None,
        header_values_snapshot={},
        auditor_snapshot=None,
        answers_snapshot={},
        editor_state={"entries": []},
    )
    errored = await store.create_version(seed.inspection_id)
    await store.mark_error(errored, "Cancelled by user")

    assert await store.commit(errored, **payload) is False
    report = await store.get(errored)
    assert report.status == ReportStatus.ERROR
    assert report.report_data is None

    assert await store.commit(uuid.uuid4(), **payload) is False
    assert await store.mark_error(uuid.uuid4(), "gone") is False
