"""
Pydantic Schemas

Request and response models for the appointment API. Wire names are
camelCase; Python attributes are snake_case.
"""

from typing import Annotated, Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter
from pydantic.alias_generators import to_camel

# Keys that must all be present and non-empty for the current client schema
NEW_SCHEMA_KEYS = ("owner", "petName", "service", "date", "time")

DEFAULT_VET = "Any Available Vet"
DEFAULT_NEW_STATUS = "pending"
DEFAULT_LEGACY_STATUS = "scheduled"


class CamelModel(BaseModel):
    """Client payloads: only camelCase keys are read."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        extra="ignore",
    )


class CamelRecordModel(CamelModel):
    """Server-built models, populated from snake_case repository rows."""

    model_config = ConfigDict(populate_by_name=True)


class NewAppointmentRequest(CamelModel):
    """Current client schema: free-text owner and pet details."""

    owner: str = Field(min_length=1)
    phone: Optional[str] = None
    pet_name: str = Field(min_length=1)
    pet_type: Optional[str] = None
    service: str = Field(min_length=1)
    date: str = Field(min_length=1)
    time: str = Field(min_length=1)
    vet: Optional[str] = None
    status: Optional[str] = None


class LegacyAppointmentRequest(CamelModel):
    """Older client schema: references a pet in the registry by id."""

    pet_id: str = Field(min_length=1)
    vet_name: str = Field(min_length=1)
    reason: Optional[str] = None
    scheduled_at: str = Field(min_length=1)
    status: Optional[str] = None


def detect_schema(payload: Any) -> str:
    """Pick the creation schema: ``new`` only when every new-schema key is filled."""
    if isinstance(payload, NewAppointmentRequest):
        return "new"
    if isinstance(payload, LegacyAppointmentRequest):
        return "legacy"
    if isinstance(payload, dict) and all(payload.get(key) for key in NEW_SCHEMA_KEYS):
        return "new"
    return "legacy"


AppointmentCreate = Annotated[
    Union[
        Annotated[NewAppointmentRequest, Tag("new")],
        Annotated[LegacyAppointmentRequest, Tag("legacy")],
    ],
    Discriminator(detect_schema),
]

appointment_create_adapter = TypeAdapter(AppointmentCreate)


class AppointmentUpdate(CamelModel):
    """Partial update; only the keys the client sent are applied."""

    owner: Optional[str] = None
    phone: Optional[str] = None
    pet_name: Optional[str] = None
    pet_type: Optional[str] = None
    service: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    vet: Optional[str] = None
    pet_id: Optional[str] = None
    vet_name: Optional[str] = None
    reason: Optional[str] = None
    scheduled_at: Optional[str] = None
    status: Optional[str] = None


class StatusUpdate(CamelModel):
    status: Optional[str] = None


class Appointment(CamelRecordModel):
    """Canonical appointment record as stored and returned."""

    id: str
    owner: Optional[str] = None
    phone: Optional[str] = None
    pet_name: Optional[str] = None
    pet_type: Optional[str] = None
    service: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    vet: Optional[str] = None
    pet_id: Optional[str] = None
    vet_name: Optional[str] = None
    reason: Optional[str] = None
    scheduled_at: Optional[str] = None
    status: Optional[str] = None
    created_at: str
    updated_at: str


class AppointmentStats(CamelRecordModel):
    total: int
    by_status: Dict[str, int]


class ErrorResponse(BaseModel):
    error: str
