import logging
from decimal import Decimal
from typing import List, Optional

from pydantic import ValidationError

from pharmacy_plus.api.client import ApiClient
from pharmacy_plus.core.config import CART_STORAGE_KEY
from pharmacy_plus.core.errors import ApiError
from pharmacy_plus.db.storage import KeyValueStorage
from pharmacy_plus.models.schemas import (
    ActionResult,
    AppliedCoupon,
    CartItem,
    CouponValidateRequest,
    CouponValidation,
    Medicine,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class CartService:
    """
    The customer's cart and the coupon applied to it.

    Items are persisted on every mutation once the initial load has run.
    The applied coupon lives in memory only.
    """

    def __init__(self, api: ApiClient, storage: KeyValueStorage):
        self.api = api
        self.storage = storage
        self.items: List[CartItem] = []
        self.applied_coupon: Optional[AppliedCoupon] = None
        self.is_loading = True

    # --- persistence ---

    def load(self) -> None:
        try:
            data = self.storage.get_json(CART_STORAGE_KEY) or []
            self.items = [CartItem.model_validate(item) for item in data]
        except (TypeError, ValueError, ValidationError) as e:
            logger.error(f"Failed to load cart data: {e}")
        finally:
            self.is_loading = False

    def _persist(self) -> None:
        if self.is_loading:
            return
        try:
            self.storage.set_json(CART_STORAGE_KEY, [item.to_wire() for item in self.items])
        except OSError as e:
            logger.error(f"Failed to save cart data: {e}")

    # --- items ---

    def _find(self, medicine_id: str) -> Optional[CartItem]:
        medicine_id = str(medicine_id)
        for item in self.items:
            if item.medicine.id == medicine_id:
                return item
        return None

    def add_to_cart(self, medicine: Medicine, quantity: int = 1) -> None:
        if quantity < 1:
            logger.warning(f"Ignoring add of {medicine.id} with quantity {quantity}")
            return
        existing = self._find(medicine.id)
        if existing:
            existing.quantity += quantity
        else:
            self.items.append(CartItem(medicine=medicine, quantity=quantity))
        self._persist()

    def update_quantity(self, medicine_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_from_cart(medicine_id)
            return
        item = self._find(medicine_id)
        if item is None:
            return
        item.quantity = quantity
        self._persist()

    def remove_from_cart(self, medicine_id: str) -> None:
        medicine_id = str(medicine_id)
        remaining = [item for item in self.items if item.medicine.id != medicine_id]
        if len(remaining) != len(self.items):
            self.items = remaining
            self._persist()

    def clear_cart(self) -> None:
        self.items = []
        self.applied_coupon = None
        self._persist()

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def pharmacy_ids(self) -> List[str]:
        seen = []
        for item in self.items:
            if item.medicine.pharmacy_id not in seen:
                seen.append(item.medicine.pharmacy_id)
        return seen

    def single_pharmacy_id(self) -> Optional[str]:
        """The pharmacy every item comes from, or None for an empty or mixed cart."""
        ids = self.pharmacy_ids()
        return ids[0] if len(ids) == 1 else None

    # --- totals ---

    def get_cart_total(self) -> Decimal:
        return sum((item.medicine.price * item.quantity for item in self.items), ZERO)

    def get_discount_amount(self) -> Decimal:
        # flat amount fixed at apply time, capped by the live subtotal
        if not self.applied_coupon:
            return ZERO
        return max(ZERO, min(self.applied_coupon.discount_amount, self.get_cart_total()))

    def get_final_total(self) -> Decimal:
        return max(ZERO, self.get_cart_total() - self.get_discount_amount())

    # --- coupons ---

    async def apply_coupon(self, code: str) -> ActionResult:
        code = (code or "").strip().upper()
        if not code:
            return ActionResult(success=False, message="Enter a coupon code")
        request = CouponValidateRequest(code=code, order_total=float(self.get_cart_total()))
        try:
            data = await self.api.post("/coupons/validate", request.to_wire())
            result = CouponValidation.model_validate(data)
        except ApiError as e:
            logger.warning(f"Coupon {code} rejected: {e.message}")
            if e.is_network_error:
                return ActionResult(success=False, message="Invalid coupon")
            return ActionResult(success=False, message=e.message or "Invalid coupon")
        except ValidationError as e:
            logger.error(f"Unexpected coupon validation response: {e}")
            return ActionResult(success=False, message="Invalid coupon")

        if not result.valid:
            return ActionResult(success=False, message=result.message or "Invalid coupon")

        self.applied_coupon = AppliedCoupon(code=result.code or code, discount_amount=result.discount_amount)
        return ActionResult(success=True, message=f"-${result.discount_amount:.2f} discount applied")

    def remove_coupon(self) -> None:
        self.applied_coupon = None
