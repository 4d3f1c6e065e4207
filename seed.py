import asyncio
import uuid
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from audit_reports.inspections.models import (
    AuditorProfile,
    Inspection,
    InspectionStatus,
    InspectionType,
    Operator,
    Premise,
)
from audit_reports.config import settings

engine = create_async_engine(str(settings.SQLALCHEMY_DATABASE_URI), echo=True)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

from sqlalchemy import select

DEMO_INSPECTION_ID = uuid.UUID('123e4567-e89b-12d3-a456-426614174000')

HACCP_STRUCTURE = {
    "audit_title": "Hygiene audit",
    "header_data": {
        "premise": {
            "title": "Premise",
            "fields": [
                {"id": "premise_name", "label": "Name"},
                {"id": "premise_address", "label": "Address"},
                {"id": "premise_responsible_person", "label": "Responsible person"},
            ],
        },
        "operator": {
            "title": "Operator",
            "fields": [
                {"id": "operator_name", "label": "Name"},
                {"id": "operator_ico", "label": "Company ID"},
            ],
        },
        "auditor": {
            "title": "Auditor",
            "fields": [
                {"id": "auditor_name", "label": "Name"},
                {"id": "auditor_phone", "label": "Phone"},
            ],
        },
    },
    "audit_sections": [
        {
            "id": "storage",
            "title": "Storage",
            "active": True,
            "items": [
                {"id": "storage-temp", "title": "Cold storage temperature", "active": True},
                {"id": "storage-labels", "title": "Labelling of stored food", "active": True},
            ],
        },
        {
            "id": "cleaning",
            "title": "Cleaning and disinfection",
            "active": True,
            "items": [
                {"id": "cleaning-plan", "title": "Cleaning plan", "active": True},
            ],
        },
    ],
}


async def seed_data():
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(Inspection).where(Inspection.id == DEMO_INSPECTION_ID))
        if result.scalars().first():
            print("Demo data already present.")
            return

        operator = Operator(
            id=uuid.uuid4(),
            operator_name="Fresh Foods Ltd.",
            operator_address="1 Market Street",
            operator_ico="12345678",
            operator_phone="+420 600 000 000",
            operator_email="office@freshfoods.example",
        )
        session.add(operator)

        premise = Premise(
            id=uuid.uuid4(),
            operator_id=operator.id,
            premise_name="Fresh Foods Bistro",
            premise_address="2 Market Street",
            premise_responsible_person="Jane Smith",
        )
        session.add(premise)

        inspection_type = InspectionType(
            id=uuid.uuid4(),
            name="HACCP hygiene audit",
            structure=HACCP_STRUCTURE,
        )
        session.add(inspection_type)

        session.add(AuditorProfile(
            name="John Doe",
            phone="+420 700 000 000",
            email="auditor@example.com",
            web="https://auditor.example.com",
        ))

        session.add(Inspection(
            id=DEMO_INSPECTION_ID,
            premise_id=premise.id,
            inspection_type_id=inspection_type.id,
            status=InspectionStatus.IN_PROGRESS,
            header_values={"premise_name": "Fresh Foods Bistro"},
            answers={
                "storage-temp": {
                    "compliant": False,
                    "nonComplianceData": [
                        {
                            "location": "Walk-in fridge",
                            "finding": "Temperature 9 C, above the 5 C limit",
                            "recommendation": "Service the cooling unit and log temperatures daily",
                            "photos": [],
                        }
                    ],
                },
                "storage-labels": {"compliant": True},
                "cleaning-plan": {"compliant": True},
            },
        ))

        await session.commit()
        print(f"Seeded demo inspection {DEMO_INSPECTION_ID}.")

if __name__ == "__main__":
    asyncio.run(seed_data())
