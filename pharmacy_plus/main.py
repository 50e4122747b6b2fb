import logging
from datetime import date
from typing import Optional

import httpx

from pharmacy_plus.api.client import ApiClient
from pharmacy_plus.core.config import Settings, settings as default_settings
from pharmacy_plus.db.storage import JsonFileStorage, KeyValueStorage
from pharmacy_plus.models.schemas import Order
from pharmacy_plus.services.auth_service import AuthService
from pharmacy_plus.services.cart_service import CartService
from pharmacy_plus.services.catalog_service import CatalogService
from pharmacy_plus.services.coupons_service import CouponService
from pharmacy_plus.services.orders_service import OrderService
from pharmacy_plus.services import payments_service
from pharmacy_plus.services.payments_service import CardDetails, PaymentMethod

logger = logging.getLogger(__name__)


class PharmacyPlusSession:
    """
    One app run: builds every service around a shared API client and storage.

    Use as `async with PharmacyPlusSession() as session:`; entering loads the
    cached auth, cart and orders, leaving closes the HTTP client.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[KeyValueStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or default_settings
        self.storage = storage if storage is not None else JsonFileStorage(self.settings.STORAGE_PATH)
        self.api = ApiClient(
            self.settings.API_BASE_URL,
            timeout=self.settings.REQUEST_TIMEOUT,
            transport=transport,
        )
        self.auth = AuthService(self.api, self.storage)
        self.cart = CartService(self.api, self.storage)
        self.orders = OrderService(self.api, self.storage, self.auth)
        self.catalog = CatalogService(self.api)
        self.coupons = CouponService(self.api)

    def start(self) -> None:
        self.auth.load()
        self.cart.load()
        self.orders.load()
        logger.info(
            f"{self.settings.APP_NAME} session started "
            f"({len(self.cart.items)} cart items, {len(self.orders.orders)} cached orders)"
        )

    async def aclose(self) -> None:
        await self.api.aclose()

    async def __aenter__(self) -> "PharmacyPlusSession":
        try:
            self.start()
        except Exception:
            await self.aclose()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def place_order(self, delivery_address: str) -> Optional[Order]:
        return await self.orders.place_order(self.cart, delivery_address)

    async def checkout(
        self,
        delivery_address: Optional[str] = None,
        method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
        card: Optional[CardDetails] = None,
        today: Optional[date] = None,
    ) -> Optional[Order]:
        # falls back to the address saved on the profile
        if not delivery_address and self.auth.current_user:
            delivery_address = self.auth.current_user.address
        return await payments_service.checkout(self.cart, self.orders, delivery_address or "", method, card, today)
