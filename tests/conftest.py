import pytest
import pytest_asyncio
from dataclasses import dataclass
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from typing import AsyncGenerator, Any, Dict, Optional
from unittest.mock import AsyncMock
import copy
import uuid
from audit_reports.main import app
from audit_reports.database import get_db, Base

# Register every table on Base.metadata
from audit_reports.inspections.models import (
    AuditorProfile,
    Inspection,
    InspectionStatus,
    InspectionType,
    Operator,
    Premise,
)
from audit_reports.reports.models import Report
from audit_reports.llm.models import AIUsageLog

# File-backed SQLite so that the scheduler, the API and the test itself can
# each hold their own session against the same data.


STRUCTURE = {
    "audit_title": "Hygiene audit",
    "header_data": {
        "premise": {
            "title": "Premise",
            "fields": [
                {"id": "premise_name", "label": "Name"},
                {"id": "premise_address", "label": "Address"},
            ],
        },
        "operator": {
            "title": "Operator",
            "fields": [{"id": "operator_name", "label": "Name"}],
        },
        "auditor": {
            "title": "Auditor",
            "fields": [{"id": "auditor_name", "label": "Name"}],
        },
    },
    "audit_sections": [
        {
            "id": "storage",
            "title": "Storage",
            "active": True,
            "items": [
                {"id": "q-temp", "title": "Cold storage temperature", "active": True},
                {"id": "q-labels", "title": "Labelling", "active": True},
            ],
        },
        {
            "id": "cleaning",
            "title": "Cleaning",
            "active": True,
            "items": [{"id": "q-plan", "title": "Cleaning plan", "active": True}],
        },
    ],
}

# Two non-compliance entries on one question and one on another
ANSWERS = {
    "q-temp": {
        "compliant": False,
        "nonComplianceData": [
            {
                "location": "Walk-in fridge",
                "finding": "Temperature 9 C",
                "recommendation": "Service the unit",
                "photos": [{"url": "https://storage.example/p1.jpg", "base64": "data:image/jpeg;base64,AAAA"}],
            },
            {
                "location": "Display fridge",
                "finding": "No thermometer",
                "recommendation": "Install a thermometer",
                "photos": [],
            },
        ],
    },
    "q-labels": {
        "compliant": False,
        "nonComplianceData": [
            {"location": "Dry store", "finding": "Unlabelled containers", "recommendation": "Label all containers"},
        ],
    },
    "q-plan": {"compliant": True},
}


@dataclass
class Seed:
    operator_id: uuid.UUID
    premise_id: uuid.UUID
    inspection_type_id: uuid.UUID
    inspection_id: uuid.UUID


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[sessionmaker, None]:
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    TestingSessionLocal = sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    yield TestingSessionLocal

    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


async def create_inspection(
    session_factory,
    answers: Optional[Dict[str, Any]] = None,
    header_values: Optional[Dict[str, Any]] = None,
    with_auditor: bool = True,
) -> Seed:
    async with session_factory() as session:
        operator = Operator(id=uuid.uuid4(), operator_name="Fresh Foods Ltd.")
        premise = Premise(
            id=uuid.uuid4(),
            operator_id=operator.id,
            premise_name="Fresh Foods Bistro",
            premise_address="2 Market Street",
        )
        inspection_type = InspectionType(id=uuid.uuid4(), name="HACCP", structure=STRUCTURE)
        inspection = Inspection(
            id=uuid.uuid4(),
            premise_id=premise.id,
            inspection_type_id=inspection_type.id,
            status=InspectionStatus.IN_PROGRESS,
            header_values=header_values if header_values is not None else {"premise_name": "Old name"},
            answers=copy.deepcopy(answers if answers is not None else ANSWERS),
        )
        session.add_all([operator, premise, inspection_type, inspection])
        if with_auditor:
            session.add(AuditorProfile(
                name="John Doe",
                phone="+420 700 000 000",
                email="auditor@example.com",
                web="https://auditor.example.com",
                stamp_url="https://storage.example/stamp.png",
            ))
        await session.commit()
        return Seed(operator.id, premise.id, inspection_type.id, inspection.id)


@pytest_asyncio.fixture(scope="function")
async def seed(session_factory) -> Seed:
    return await create_inspection(session_factory)


@pytest.fixture
def sample_answers():
    return copy.deepcopy(ANSWERS)


@pytest.fixture
def sample_structure():
    return copy.deepcopy(STRUCTURE)


@pytest.fixture
def notifier():
    mock = AsyncMock()
    mock.notify_report = AsyncMock()
    return mock


@pytest_asyncio.fixture(scope="function")
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Client for testing API endpoints."""
    # Override the get_db dependency to use the test database
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_inspection(session_factory):
    """Factory for extra inspections: await make_inspection(answers=...)."""
    async def _make(**kwargs) -> Seed:
        return await create_inspection(session_factory, **kwargs)
    return _make
