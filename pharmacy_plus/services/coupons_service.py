import logging
from typing import List, Optional

from pydantic import ValidationError

from pharmacy_plus.api.client import ApiClient
from pharmacy_plus.core.errors import ApiError
from pharmacy_plus.models.schemas import Coupon, CouponIn

logger = logging.getLogger(__name__)


def _coupon_body(min_amount, discount_amount, usage_limit, code=None) -> Optional[CouponIn]:
    # the admin form refuses zero or blank amounts before any request goes out
    if not min_amount or not discount_amount or not usage_limit:
        return None
    return CouponIn(
        code=code.strip().upper() if code else None,
        min_amount=float(min_amount),
        discount_amount=float(discount_amount),
        usage_limit=int(usage_limit),
    )


class CouponService:
    """Admin management of offer codes."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.coupons: List[Coupon] = []

    async def list_coupons(self) -> List[Coupon]:
        try:
            data = await self.api.get("/coupons")
            self.coupons = [Coupon.model_validate(item) for item in data or []]
        except (ApiError, ValidationError) as e:
            logger.error(f"Loading coupons failed: {e}")
        return self.coupons

    async def create_coupon(self, min_amount, discount_amount, usage_limit, code: Optional[str] = None) -> Optional[Coupon]:
        body = _coupon_body(min_amount, discount_amount, usage_limit, code)
        if body is None:
            logger.warning("Coupon form incomplete, nothing sent")
            return None
        try:
            created = Coupon.model_validate(await self.api.post("/coupons", body.to_wire()))
        except (ApiError, ValidationError) as e:
            logger.error(f"Create coupon failed: {e}")
            return None
        self.coupons = [created] + self.coupons
        return created

    async def update_coupon(self, coupon_id: str, min_amount, discount_amount, usage_limit) -> Optional[Coupon]:
        body = _coupon_body(min_amount, discount_amount, usage_limit)
        if body is None:
            logger.warning("Coupon form incomplete, nothing sent")
            return None
        try:
            updated = Coupon.model_validate(await self.api.put(f"/coupons/{coupon_id}", body.to_wire()))
        except (ApiError, ValidationError) as e:
            logger.error(f"Update coupon {coupon_id} failed: {e}")
            return None
        self.coupons = [updated if c.id == coupon_id else c for c in self.coupons]
        return updated

    async def delete_coupon(self, coupon_id: str) -> bool:
        try:
            await self.api.delete(f"/coupons/{coupon_id}")
        except ApiError as e:
            logger.error(f"Delete coupon {coupon_id} failed: {e}")
            return False
        self.coupons = [c for c in self.coupons if c.id != coupon_id]
        return True
