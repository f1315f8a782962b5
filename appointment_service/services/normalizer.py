"""
Schema Normalizer

Turns either accepted creation payload into one canonical appointment
record. Old clients still send the legacy shape, so both are accepted.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from appointment_service.models.schemas import (
    DEFAULT_LEGACY_STATUS,
    DEFAULT_NEW_STATUS,
    DEFAULT_VET,
    LegacyAppointmentRequest,
    NewAppointmentRequest,
    appointment_create_adapter,
)
from appointment_service.services.errors import AppointmentValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Required fields missing"

_MISSING_ERROR_TYPES = {"missing", "string_too_short"}
_SCHEMA_TAGS = {"new", "legacy"}


def format_timestamp(moment: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with milliseconds, e.g. ``2024-01-10T10:00:00.000Z``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def describe_validation_error(error: ValidationError) -> str:
    """Collapse a pydantic error into the single message returned to clients."""
    details = error.errors()
    if any(detail["type"] in _MISSING_ERROR_TYPES for detail in details):
        return REQUIRED_FIELDS_MESSAGE

    detail = details[0]
    # The location may start with the union tag ("new"/"legacy")
    field = next(
        (part for part in reversed(detail["loc"]) if isinstance(part, str) and part not in _SCHEMA_TAGS),
        "body",
    )
    return f"Invalid value for {field}: {detail['msg']}"


def parse_appointment_request(payload: Dict[str, Any]) -> NewAppointmentRequest | LegacyAppointmentRequest:
    """
    Validate a creation payload against the schema it was detected as.

    Raises:
        AppointmentValidationError: If the chosen schema's fields are missing or malformed
    """
    try:
        return appointment_create_adapter.validate_python(payload)
    except ValidationError as e:
        message = describe_validation_error(e)
        logger.debug(f"Rejected appointment payload: {message}")
        raise AppointmentValidationError(message) from e


def normalize_appointment(
    payload: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Build the canonical record for a creation payload.

    Args:
        payload: Raw JSON object from the client
        now: Creation time, defaults to the current UTC time

    Returns:
        Canonical fields (snake_case, no ``id``) with ``created_at == updated_at``

    Example:
        >>> normalize_appointment({"owner": "Jane", "petName": "Rex",
        ...     "service": "Grooming", "date": "2024-01-10", "time": "10:00"})["vet"]
        'Any Available Vet'
    """
    request = parse_appointment_request(payload)
    stamp = format_timestamp(now or utc_now())

    if isinstance(request, NewAppointmentRequest):
        record = {
            "owner": request.owner,
            "phone": request.phone or "",
            "pet_name": request.pet_name,
            "pet_type": request.pet_type or "",
            "service": request.service,
            "date": request.date,
            "time": request.time,
            "vet": request.vet or DEFAULT_VET,
            "status": request.status or DEFAULT_NEW_STATUS,
        }
    else:
        record = {
            "pet_id": request.pet_id,
            "vet_name": request.vet_name,
            "reason": request.reason or None,
            "scheduled_at": request.scheduled_at,
            "status": request.status or DEFAULT_LEGACY_STATUS,
        }

    record["created_at"] = stamp
    record["updated_at"] = stamp
    return record
