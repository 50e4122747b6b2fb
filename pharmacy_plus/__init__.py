from pharmacy_plus.core.errors import ApiError, InvalidTransitionError, PharmacyPlusError
from pharmacy_plus.main import PharmacyPlusSession

__all__ = ["ApiError", "InvalidTransitionError", "PharmacyPlusError", "PharmacyPlusSession"]
