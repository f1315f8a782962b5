"""
Shared pytest fixtures.

The appointment service is exercised against in-memory stand-ins for the
repository and the pet registry; the SQL repository has its own tests on an
in-memory SQLite database.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from appointment_service.db.repository import APPOINTMENT_COLUMNS, IMMUTABLE_FIELDS
from appointment_service.db.schema import create_schema
from appointment_service.services.appointment import AppointmentService
from appointment_service.services.pets import PetRegistry, PetRegistryError

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

KNOWN_PET_IDS = ("pet-1", "pet-2", "pet-3")


class InMemoryAppointmentRepository:
    """Dictionary-backed stand-in for AppointmentRepository."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)

    async def create_appointment(self, record: Dict[str, Any]) -> Dict[str, Any]:
        stored = {field: None for field in APPOINTMENT_COLUMNS}
        stored.update(record)
        stored["id"] = f"appt-{next(self._ids)}"
        self.records[stored["id"]] = stored
        return dict(stored)

    async def get_appointment_by_id(self, appointment_id: str) -> Optional[Dict[str, Any]]:
        record = self.records.get(appointment_id)
        return dict(record) if record else None

    async def list_appointments(
        self,
        status: Optional[str] = None,
        pet_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        records = [
            dict(r) for r in self.records.values()
            if (not status or r["status"] == status) and (not pet_id or r["pet_id"] == pet_id)
        ]
        return sorted(records, key=lambda r: r["created_at"], reverse=True)

    async def count_appointments(self) -> int:
        return len(self.records)

    async def update_appointment(
        self,
        appointment_id: str,
        fields: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        record = self.records.get(appointment_id)
        if record is None:
            return None
        record.update({k: v for k, v in fields.items() if k not in IMMUTABLE_FIELDS})
        return dict(record)

    async def delete_appointment(self, appointment_id: str) -> bool:
        return self.records.pop(appointment_id, None) is not None


class InMemoryPetRegistry(PetRegistry):
    def __init__(self, pet_ids=KNOWN_PET_IDS):
        self.pet_ids = list(pet_ids)
        self.available = True
        self.lookups: List[str] = []

    async def pet_exists(self, pet_id: str) -> bool:
        self.lookups.append(pet_id)
        if not self.available:
            raise PetRegistryError("Pet registry unavailable: connection refused")
        return pet_id in self.pet_ids

    async def list_pet_ids(self, limit: int) -> List[str]:
        return self.pet_ids[:limit]


class SteppingClock:
    """Returns a later time on every call so timestamps are distinguishable."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        moment = self.current
        self.current += self.step
        return moment


@pytest.fixture
def clock():
    return SteppingClock(datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def repository():
    return InMemoryAppointmentRepository()


@pytest.fixture
def pet_registry():
    return InMemoryPetRegistry()


@pytest.fixture
def service(repository, pet_registry, clock):
    return AppointmentService(repository, pet_registry, clock=clock)


@pytest.fixture
def client(service):
    from appointment_service.api import get_appointment_service
    from appointment_service.main import app

    app.dependency_overrides[get_appointment_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def new_schema_payload():
    return {
        "owner": "Jane",
        "petName": "Rex",
        "service": "Grooming",
        "date": "2024-01-10",
        "time": "10:00",
    }


@pytest.fixture
def legacy_payload():
    return {
        "petId": "pet-1",
        "vetName": "Dr. Sarah Miller",
        "reason": "Annual checkup",
        "scheduledAt": "2024-01-12T09:30:00.000Z",
    }


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    await create_schema(engine)
    async with engine.begin() as conn:
        await conn.execute(text("CREATE TABLE pets (id TEXT PRIMARY KEY, name TEXT)"))
        await conn.execute(
            text("INSERT INTO pets (id, name) VALUES ('pet-1', 'Rex'), ('pet-2', 'Milo')")
        )

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()
