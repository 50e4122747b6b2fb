import logging
from typing import List, Optional

from pydantic import ValidationError

from pharmacy_plus.api.client import ApiClient
from pharmacy_plus.core.errors import ApiError
from pharmacy_plus.models.schemas import Medicine, Pharmacy, User, UserRole

logger = logging.getLogger(__name__)


class CatalogService:
    """Read side of pharmacies, medicines and users. Failures come back as empty lists."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def _list(self, model, path: str, params: Optional[dict] = None) -> list:
        try:
            data = await self.api.get(path, params=params)
            return [model.model_validate(item) for item in data or []]
        except (ApiError, ValidationError) as e:
            logger.error(f"GET {path} failed: {e}")
            return []

    async def list_pharmacies(self, owner_id: Optional[str] = None) -> List[Pharmacy]:
        params = {"ownerId": owner_id} if owner_id else None
        return await self._list(Pharmacy, "/pharmacies", params)

    async def list_medicines(self) -> List[Medicine]:
        return await self._list(Medicine, "/medicines")

    async def list_pharmacy_medicines(self, pharmacy_id: str) -> List[Medicine]:
        return await self._list(Medicine, f"/medicines/pharmacy/{pharmacy_id}")

    async def list_owned_medicines(self, owner_id: str) -> List[Medicine]:
        medicines = []
        for pharmacy in await self.list_pharmacies(owner_id):
            medicines.extend(await self.list_pharmacy_medicines(pharmacy.id))
        return medicines

    async def delete_medicine(self, medicine_id: str) -> bool:
        try:
            await self.api.delete(f"/medicines/{medicine_id}")
            return True
        except ApiError as e:
            logger.error(f"Delete medicine {medicine_id} failed: {e}")
            return False

    async def list_users(self) -> List[User]:
        return await self._list(User, "/users")

    async def list_delivery_persons(self) -> List[User]:
        return [user for user in await self.list_users() if user.role == UserRole.DELIVERY_PERSON]
