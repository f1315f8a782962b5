"""
API Module Initialization

Exports the appointment routes and their dependencies for use across the
application and in tests.
"""

from appointment_service.api.routes import (
    router as appointments_router,
    get_appointment_service,
    get_appointment_repository,
    get_pet_registry,
)

__all__ = [
    "appointments_router",
    "get_appointment_service",
    "get_appointment_repository",
    "get_pet_registry",
]
