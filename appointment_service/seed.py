"""
Sample data seeding.

Run explicitly, never from server startup:

    SEED_SAMPLE_DATA=true python -m appointment_service.seed

Seeding is idempotent: nothing is inserted once any appointment exists.
"""

import asyncio
import logging
import sys
from datetime import datetime, timedelta
from typing import Optional

from appointment_service.config import settings
from appointment_service.db.repository import AppointmentRepository
from appointment_service.db.schema import create_schema
from appointment_service.db.session import close_database_connection, get_db_context, get_engine
from appointment_service.services.normalizer import format_timestamp, utc_now
from appointment_service.services.pets import PetRegistry, build_pet_registry

logger = logging.getLogger(__name__)

# vet, reason, scheduled (days from now), status, created (days), updated (days)
SAMPLE_APPOINTMENTS = (
    ("Dr. Sarah Miller", "Annual checkup and vaccinations", 2, "scheduled", -7, -7),
    ("Dr. Michael Chen", "Dental cleaning", 5, "confirmed", -5, -2),
    ("Dr. Jennifer Lopez", "Follow-up examination", -1, "completed", -10, -1),
    ("Dr. Robert Kim", "Emergency visit - stomach upset", -3, "completed", -4, -3),
    ("Dr. Amanda Taylor", "Spay surgery consultation", 7, "scheduled", -3, -3),
    ("Dr. David Wilson", "Routine wellness exam", 0, "in-progress", -1, 0),
)


async def seed_sample_appointments(
    repository: AppointmentRepository,
    pet_registry: PetRegistry,
    now: Optional[datetime] = None,
) -> int:
    """
    Insert the sample appointments into an empty collection.

    Returns:
        Number of appointments inserted (0 when skipped)
    """
    if await repository.count_appointments() > 0:
        logger.info("Sample appointment data already exists, skipping")
        return 0

    pet_ids = await pet_registry.list_pet_ids(len(SAMPLE_APPOINTMENTS))
    if not pet_ids:
        logger.info("No pets found, skipping appointment seeding")
        return 0

    now = now or utc_now()
    for index, (vet_name, reason, scheduled, status, created, updated) in enumerate(SAMPLE_APPOINTMENTS):
        pet_id = pet_ids[index] if index < len(pet_ids) else f"temp-pet-{index + 1}"
        await repository.create_appointment({
            "pet_id": pet_id,
            "vet_name": vet_name,
            "reason": reason,
            "scheduled_at": format_timestamp(now + timedelta(days=scheduled)),
            "status": status,
            "created_at": format_timestamp(now + timedelta(days=created)),
            "updated_at": format_timestamp(now + timedelta(days=updated)),
        })

    logger.info(f"Added {len(SAMPLE_APPOINTMENTS)} sample appointments")
    return len(SAMPLE_APPOINTMENTS)


async def run_seed() -> int:
    await create_schema(get_engine())
    try:
        async with get_db_context() as db:
            return await seed_sample_appointments(
                AppointmentRepository(db),
                build_pet_registry(db, settings),
            )
    finally:
        await close_database_connection()


def main() -> int:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if not settings.seed_sample_data:
        logger.error("SEED_SAMPLE_DATA is not enabled, refusing to seed")
        return 1

    asyncio.run(run_seed())
    return 0


if __name__ == "__main__":
    sys.exit(main())
