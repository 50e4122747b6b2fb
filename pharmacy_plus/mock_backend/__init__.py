from pharmacy_plus.mock_backend.main import create_app
from pharmacy_plus.mock_backend.store import MockStore

__all__ = ["MockStore", "create_app"]
