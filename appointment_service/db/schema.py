"""
Appointments table definition.

Both client schemas share one table: every field is a nullable text column
and a row simply leaves the other variant's columns empty. Timestamps are
stored as ISO-8601 strings so text ordering is chronological.
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


CREATE_APPOINTMENTS_TABLE = """
    CREATE TABLE IF NOT EXISTS appointments (
        id TEXT PRIMARY KEY,
        owner TEXT,
        phone TEXT,
        pet_name TEXT,
        pet_type TEXT,
        service TEXT,
        appointment_date TEXT,
        appointment_time TEXT,
        vet TEXT,
        pet_id TEXT,
        vet_name TEXT,
        reason TEXT,
        scheduled_at TEXT,
        status TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
"""

CREATE_INDEXES = (
    "CREATE INDEX IF NOT EXISTS ix_appointments_created_at ON appointments (created_at)",
    "CREATE INDEX IF NOT EXISTS ix_appointments_status ON appointments (status)",
    "CREATE INDEX IF NOT EXISTS ix_appointments_pet_id ON appointments (pet_id)",
)


async def create_schema(engine: AsyncEngine) -> None:
    """Create the appointments table and its indexes if they do not exist."""
    async with engine.begin() as conn:
        await conn.execute(text(CREATE_APPOINTMENTS_TABLE))
        for statement in CREATE_INDEXES:
            await conn.execute(text(statement))
    logger.info("Appointments table ready")
