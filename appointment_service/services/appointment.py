"""
Appointment Service

Business logic for the appointment lifecycle: creation from either client
schema, lookups, partial updates, status changes, deletion and statistics.
Orchestrates the normalizer, the pet reference check and the repository.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from appointment_service.db.repository import AppointmentRepository
from appointment_service.models.schemas import (
    DEFAULT_LEGACY_STATUS,
    Appointment,
    AppointmentStats,
    AppointmentUpdate,
    StatusUpdate,
)
from appointment_service.services.errors import AppointmentNotFoundError, AppointmentValidationError
from appointment_service.services.normalizer import (
    describe_validation_error,
    format_timestamp,
    normalize_appointment,
    utc_now,
)
from appointment_service.services.pets import PetReferenceValidator, PetRegistry

logger = logging.getLogger(__name__)


class AppointmentService:
    """
    Service for managing appointment business logic.

    Collaborators are passed in, so tests can substitute in-memory fakes for
    the repository and the pet registry.
    """

    def __init__(
        self,
        repository: AppointmentRepository,
        pet_registry: PetRegistry,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize AppointmentService.

        Args:
            repository: Appointment storage
            pet_registry: Pet existence lookup
            clock: Source of the current time for timestamps
        """
        self.repository = repository
        self.references = PetReferenceValidator(pet_registry)
        self.clock = clock

    def _timestamp(self) -> str:
        return format_timestamp(self.clock())

    async def create_appointment(self, payload: Dict[str, Any]) -> Appointment:
        """
        Create an appointment from a new-schema or legacy-schema payload.

        Legacy payloads reference a pet by id, which must exist in the
        registry; new-schema payloads are never checked against it.

        Raises:
            AppointmentValidationError: If neither schema's required fields are present
            InvalidPetReferenceError: If ``petId`` names no pet
        """
        record = normalize_appointment(payload, now=self.clock())

        if record.get("pet_id"):
            await self.references.validate(record["pet_id"])

        created = await self.repository.create_appointment(record)
        return Appointment.model_validate(created)

    async def get_appointment(self, appointment_id: str) -> Appointment:
        record = await self.repository.get_appointment_by_id(appointment_id)
        if record is None:
            raise AppointmentNotFoundError()
        return Appointment.model_validate(record)

    async def list_appointments(
        self,
        status: Optional[str] = None,
        pet_id: Optional[str] = None,
    ) -> List[Appointment]:
        """List appointments newest first, filtered by exact status and/or pet id."""
        records = await self.repository.list_appointments(status=status, pet_id=pet_id)
        return [Appointment.model_validate(record) for record in records]

    async def update_appointment(
        self,
        appointment_id: str,
        payload: Dict[str, Any],
    ) -> Appointment:
        """
        Merge the given fields into an appointment.

        Fields absent from ``payload`` are left untouched. ``id``,
        ``createdAt`` and ``updatedAt`` cannot be set by clients.

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
            InvalidPetReferenceError: If a new ``petId`` names no pet
            AppointmentValidationError: If a field has the wrong type
        """
        if await self.repository.get_appointment_by_id(appointment_id) is None:
            raise AppointmentNotFoundError()

        try:
            update = AppointmentUpdate.model_validate(payload)
        except ValidationError as e:
            raise AppointmentValidationError(describe_validation_error(e)) from e

        fields = update.model_dump(exclude_unset=True)
        if fields.get("pet_id"):
            await self.references.validate(fields["pet_id"])

        fields["updated_at"] = self._timestamp()

        # Deleted between the lookup and the write
        updated = await self.repository.update_appointment(appointment_id, fields)
        if updated is None:
            raise AppointmentNotFoundError()
        return Appointment.model_validate(updated)

    async def update_status(self, appointment_id: str, payload: Dict[str, Any]) -> Appointment:
        """
        Change only the status of an appointment.

        Any non-empty string is accepted and any transition is allowed.

        Raises:
            AppointmentValidationError: If ``status`` is missing or empty
            AppointmentNotFoundError: If the appointment does not exist
        """
        try:
            status = StatusUpdate.model_validate(payload).status
        except ValidationError as e:
            raise AppointmentValidationError(describe_validation_error(e)) from e

        if not status:
            raise AppointmentValidationError("status is required")

        updated = await self.repository.update_appointment(
            appointment_id,
            {"status": status, "updated_at": self._timestamp()},
        )
        if updated is None:
            raise AppointmentNotFoundError()

        logger.info(f"Appointment {appointment_id} status set to {status}")
        return Appointment.model_validate(updated)

    async def delete_appointment(self, appointment_id: str) -> None:
        if not await self.repository.delete_appointment(appointment_id):
            raise AppointmentNotFoundError()

    async def get_stats(self) -> AppointmentStats:
        """
        Count every appointment by lower-cased status.

        Appointments without a status count as ``scheduled``. This scans the
        whole collection on each call.
        """
        records = await self.repository.list_appointments()
        counts = Counter(
            (record.get("status") or DEFAULT_LEGACY_STATUS).lower() for record in records
        )
        return AppointmentStats(total=len(records), by_status=dict(counts))
