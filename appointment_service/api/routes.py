"""
Appointment HTTP routes.

Thin layer over ``AppointmentService``: parses request bodies, wires the
per-request collaborators and maps results to status codes. Errors are
turned into JSON bodies by the handlers registered in ``main``.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from appointment_service.config import settings
from appointment_service.db.repository import AppointmentRepository
from appointment_service.db.session import get_db_session
from appointment_service.models.schemas import Appointment, AppointmentStats, ErrorResponse
from appointment_service.services.appointment import AppointmentService
from appointment_service.services.errors import AppointmentValidationError
from appointment_service.services.pets import PetRegistry, build_pet_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])

ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_appointment_repository(
    db: AsyncSession = Depends(get_db_session),
) -> AppointmentRepository:
    return AppointmentRepository(db)


def get_pet_registry(db: AsyncSession = Depends(get_db_session)) -> PetRegistry:
    return build_pet_registry(db, settings)


def get_appointment_service(
    repository: AppointmentRepository = Depends(get_appointment_repository),
    pet_registry: PetRegistry = Depends(get_pet_registry),
) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(repository, pet_registry)


async def read_json_object(request: Request) -> Dict[str, Any]:
    """
    Parse the request body as a JSON object.

    An empty body or a JSON value that is not an object reads as ``{}``.

    Raises:
        AppointmentValidationError: If the body is not valid JSON
    """
    if not (await request.body()).strip():
        return {}

    try:
        data = await request.json()
    except ValueError as e:
        logger.warning(f"Failed to parse request body: {e}")
        raise AppointmentValidationError("Invalid JSON body") from e

    return data if isinstance(data, dict) else {}


@router.post("", status_code=201, response_model=Appointment, responses=ERROR_RESPONSES)
async def create_appointment(
    request: Request,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Create an appointment from either the current or the legacy client schema."""
    payload = await read_json_object(request)
    return await service.create_appointment(payload)


@router.get("", response_model=List[Appointment], responses=ERROR_RESPONSES)
async def list_appointments(
    status: Optional[str] = Query(None, description="Exact, case-sensitive status"),
    pet_id: Optional[str] = Query(None, alias="petId"),
    service: AppointmentService = Depends(get_appointment_service),
):
    """List appointments, newest first."""
    return await service.list_appointments(status=status, pet_id=pet_id)


# Registered before /{appointment_id} so "stats" is never read as an id
@router.get("/stats", response_model=AppointmentStats, responses=ERROR_RESPONSES)
async def appointment_stats(
    service: AppointmentService = Depends(get_appointment_service),
):
    """Count appointments by lower-cased status."""
    return await service.get_stats()


@router.get("/{appointment_id}", response_model=Appointment, responses=ERROR_RESPONSES)
async def get_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.get_appointment(appointment_id)


@router.put("/{appointment_id}", response_model=Appointment, responses=ERROR_RESPONSES)
async def update_appointment(
    appointment_id: str,
    request: Request,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Merge the given fields into the appointment."""
    payload = await read_json_object(request)
    return await service.update_appointment(appointment_id, payload)


@router.patch("/{appointment_id}/status", response_model=Appointment, responses=ERROR_RESPONSES)
async def update_appointment_status(
    appointment_id: str,
    request: Request,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Change only the status; body is ``{"status": "..."}``."""
    payload = await read_json_object(request)
    return await service.update_status(appointment_id, payload)


@router.delete("/{appointment_id}", status_code=204, response_class=Response, responses=ERROR_RESPONSES)
async def delete_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    await service.delete_appointment(appointment_id)
    return Response(status_code=204)
