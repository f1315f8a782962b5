"""
Appointment service errors.

Each error knows the HTTP status it is reported with; the handlers in
``appointment_service.main`` turn them into ``{"error": message}`` bodies.
"""


class AppointmentServiceError(Exception):
    """Custom exception for appointment service errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AppointmentValidationError(AppointmentServiceError):
    """Required input is missing or malformed."""


class InvalidPetReferenceError(AppointmentServiceError):
    """A petId does not resolve to a pet in the registry."""


class AppointmentNotFoundError(AppointmentServiceError):
    status_code = 404

    def __init__(self, message: str = "Appointment not found"):
        super().__init__(message)
