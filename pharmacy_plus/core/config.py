# pharmacy_plus/core/config.py
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

CART_STORAGE_KEY = "@pharmacy_plus_cart"
ORDERS_STORAGE_KEY = "@pharmacy_plus_orders"
AUTH_STORAGE_KEY = "@pharmacy_plus_auth"
TOKEN_STORAGE_KEY = "@pharmacy_plus_jwt_token"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings:
    APP_NAME: str = os.getenv("PHARMACY_PLUS_APP_NAME", "Pharmacy Plus")
    API_BASE_URL: str = os.getenv("PHARMACY_PLUS_API_BASE_URL", "http://localhost:5000/api")
    STORAGE_PATH: str = os.getenv(
        "PHARMACY_PLUS_STORAGE_PATH",
        str(Path.home() / ".pharmacy_plus" / "storage.json"),
    )
    REQUEST_TIMEOUT: float = float(os.getenv("PHARMACY_PLUS_REQUEST_TIMEOUT", "30"))
    LOG_LEVEL: str = os.getenv("PHARMACY_PLUS_LOG_LEVEL", "INFO")
    # only read by the development backend
    SECRET_KEY: str = os.getenv("PHARMACY_PLUS_SECRET_KEY", "changeme")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("PHARMACY_PLUS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))

    def __init__(self, **overrides):
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)


settings = Settings()


def configure_logging(level=None):
    """Sets up root logging once at startup and quiets the HTTP stack."""
    level = level or settings.LOG_LEVEL
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
