from typing import Optional


class PharmacyPlusError(Exception):
    """Base class for every error raised by the client core."""


class ApiError(PharmacyPlusError):
    """The backend rejected a request, or it never reached the backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_network_error(self) -> bool:
        return self.status_code is None


class CartValidationError(PharmacyPlusError):
    pass


class InvalidTransitionError(PharmacyPlusError):
    """A status change or delivery assignment the current role may not make."""
