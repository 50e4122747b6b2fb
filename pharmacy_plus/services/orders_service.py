import logging
from typing import Iterable, List, Optional

from pydantic import ValidationError

from pharmacy_plus.api.client import ApiClient
from pharmacy_plus.core.config import ORDERS_STORAGE_KEY
from pharmacy_plus.core.errors import ApiError, CartValidationError, InvalidTransitionError
from pharmacy_plus.db.storage import KeyValueStorage
from pharmacy_plus.models.schemas import (
    AssignDelivery,
    DeliveryInstruction,
    InstructionsUpdate,
    Order,
    OrderCreate,
    OrderItemIn,
    OrderStatus,
    Pharmacy,
    StatusUpdate,
    UserRole,
)
from pharmacy_plus.permissions import check_assignment, check_status_transition
from pharmacy_plus.services.auth_service import AuthService
from pharmacy_plus.services.cart_service import CartService

logger = logging.getLogger(__name__)


def build_order_request(cart: CartService, delivery_address: str) -> OrderCreate:
    """Raises CartValidationError for carts that cannot become an order."""
    if cart.is_empty:
        raise CartValidationError("Your cart is empty")
    if not (delivery_address or "").strip():
        raise CartValidationError("Please enter a delivery address")
    pharmacy_id = cart.single_pharmacy_id()
    if pharmacy_id is None:
        raise CartValidationError("All items must come from the same pharmacy")
    return OrderCreate(
        pharmacy_id=pharmacy_id,
        items=[OrderItemIn(medicine_id=item.medicine.id, quantity=item.quantity) for item in cart.items],
        delivery_address=delivery_address.strip(),
        coupon_code=cart.applied_coupon.code if cart.applied_coupon else None,
    )


class OrderService:
    """
    Order placement and the order cache.

    Status changes, delivery assignment and instruction updates are single
    requests whose response replaces the cached copy; nothing is applied
    locally before the backend answers.
    """

    def __init__(self, api: ApiClient, storage: KeyValueStorage, auth: AuthService):
        self.api = api
        self.storage = storage
        self.auth = auth
        self.orders: List[Order] = []
        self.is_loading = True

    # --- persistence ---

    def load(self) -> None:
        try:
            data = self.storage.get_json(ORDERS_STORAGE_KEY) or []
            self.orders = [Order.model_validate(item) for item in data]
        except (TypeError, ValueError, ValidationError) as e:
            logger.error(f"Failed to load order data: {e}")
        finally:
            self.is_loading = False

    def _persist(self) -> None:
        if self.is_loading:
            return
        try:
            self.storage.set_json(ORDERS_STORAGE_KEY, [order.to_wire() for order in self.orders])
        except OSError as e:
            logger.error(f"Failed to save order data: {e}")

    def _set_orders(self, orders: Iterable[Order]) -> None:
        self.orders = list(orders)
        self._persist()

    def _replace(self, updated: Order) -> Order:
        self._set_orders(updated if order.id == updated.id else order for order in self.orders)
        return updated

    # --- placement ---

    async def place_order(self, cart: CartService, delivery_address: str) -> Optional[Order]:
        if not self.auth.current_user:
            logger.warning("Place order attempted without a signed-in user")
            return None
        try:
            payload = build_order_request(cart, delivery_address)
        except CartValidationError as e:
            logger.warning(f"Order not placed: {e}")
            return None

        try:
            data = await self.api.post("/orders", payload.to_wire())
            created = Order.model_validate(data)
        except (ApiError, ValidationError) as e:
            logger.error(f"Place order failed: {e}")
            return None

        self._set_orders([created] + self.orders)
        cart.clear_cart()
        logger.info(f"Order {created.id} placed with pharmacy {created.pharmacy_id}")
        return created

    # --- status machine ---

    def _actor(self):
        user = self.auth.current_user
        if user is None:
            raise InvalidTransitionError("Sign in to update orders")
        return user

    async def update_order_status_or_raise(self, order_id: str, status: OrderStatus) -> Order:
        """Raises InvalidTransitionError locally, or ApiError with the backend's message."""
        user = self._actor()
        check_status_transition(user.role, status, self.get_order_by_id(order_id), user.id)
        data = await self.api.put(f"/orders/{order_id}/status", StatusUpdate(status=status).to_wire())
        return self._replace(Order.model_validate(data))

    async def update_order_status(self, order_id: str, status: OrderStatus) -> Optional[Order]:
        try:
            return await self.update_order_status_or_raise(order_id, status)
        except InvalidTransitionError as e:
            logger.warning(f"Status update refused: {e}")
        except (ApiError, ValidationError) as e:
            logger.error(f"Update order status failed: {e}")
        return None

    async def assign_delivery_person_or_raise(self, order_id: str, delivery_person_id: str) -> Order:
        user = self._actor()
        check_assignment(user.role, self.get_order_by_id(order_id))
        payload = AssignDelivery(delivery_person_id=delivery_person_id).to_wire()
        data = await self.api.put(f"/orders/{order_id}/assign-delivery", payload)
        return self._replace(Order.model_validate(data))

    async def assign_delivery_person(self, order_id: str, delivery_person_id: str) -> Optional[Order]:
        try:
            return await self.assign_delivery_person_or_raise(order_id, delivery_person_id)
        except InvalidTransitionError as e:
            logger.warning(f"Delivery assignment refused: {e}")
        except (ApiError, ValidationError) as e:
            logger.error(f"Assign delivery failed: {e}")
        return None

    async def dispatch_order(self, order_id: str, delivery_person_id: str) -> Optional[Order]:
        """
        Assigns a delivery person, then moves the order to on_the_way.

        Returns None when the assignment fails. When only the status step
        fails, the assigned order comes back with its status unchanged.
        """
        assigned = await self.assign_delivery_person(order_id, delivery_person_id)
        if assigned is None:
            return None
        dispatched = await self.update_order_status(order_id, OrderStatus.ON_THE_WAY)
        if dispatched is None:
            logger.warning(
                f"Order {order_id} assigned to {delivery_person_id} but still {assigned.status.value}: "
                f"status update failed"
            )
            return assigned
        return dispatched

    async def set_instructions(self, order_id: str, instructions: List[DeliveryInstruction]) -> Optional[Order]:
        user = self.auth.current_user
        if user is None or user.role not in (UserRole.PHARMACY_OWNER, UserRole.ADMIN):
            logger.warning("Only pharmacies can attach delivery instructions")
            return None
        try:
            payload = InstructionsUpdate(instructions=instructions).to_wire()
            data = await self.api.post(f"/orders/instructions/{order_id}", payload)
            return self._replace(Order.model_validate(data))
        except (ApiError, ValidationError) as e:
            logger.error(f"Update instructions failed: {e}")
            return None

    # --- listings ---

    async def _fetch(self, path: str) -> List[Order]:
        data = await self.api.get(path)
        return [Order.model_validate(item) for item in data or []]

    async def _fetch_into_cache(self, path: str) -> List[Order]:
        try:
            orders = await self._fetch(path)
        except (ApiError, ValidationError) as e:
            logger.error(f"GET {path} failed: {e}")
            return []
        self._set_orders(orders)
        return orders

    async def fetch_my_orders(self) -> List[Order]:
        return await self._fetch_into_cache("/orders/myorders")

    async def fetch_my_deliveries(self) -> List[Order]:
        return await self._fetch_into_cache("/orders/mydeliveries")

    async def fetch_pharmacy_orders(self, pharmacy_id: str) -> List[Order]:
        return await self._fetch_into_cache(f"/orders/pharmacy/{pharmacy_id}")

    async def fetch_all_orders(self) -> List[Order]:
        return await self._fetch_into_cache("/orders")

    async def fetch_owned_pharmacy_orders(self) -> List[Order]:
        user = self.auth.current_user
        if user is None:
            return []
        try:
            pharmacies = await self.api.get("/pharmacies", params={"ownerId": user.id})
            orders = []
            for pharmacy in pharmacies or []:
                orders.extend(await self._fetch(f"/orders/pharmacy/{Pharmacy.model_validate(pharmacy).id}"))
        except (ApiError, ValidationError) as e:
            logger.error(f"Fetching pharmacy orders failed: {e}")
            return []
        orders.sort(key=lambda o: o.created_at.timestamp() if o.created_at else 0, reverse=True)
        self._set_orders(orders)
        return orders

    async def fetch_orders_for_role(self) -> List[Order]:
        user = self.auth.current_user
        if user is None:
            return []
        if user.role == UserRole.ADMIN:
            return await self.fetch_all_orders()
        if user.role == UserRole.PHARMACY_OWNER:
            return await self.fetch_owned_pharmacy_orders()
        if user.role == UserRole.DELIVERY_PERSON:
            return await self.fetch_my_deliveries()
        return await self.fetch_my_orders()

    # --- local lookups ---

    def get_order_by_id(self, order_id: str) -> Optional[Order]:
        for order in self.orders:
            if order.id == str(order_id):
                return order
        return None

    def get_orders_by_customer(self, customer_id: str) -> List[Order]:
        return [order for order in self.orders if order.customer_id == str(customer_id)]

    def get_orders_by_pharmacy(self, pharmacy_id: str) -> List[Order]:
        return [order for order in self.orders if order.pharmacy_id == str(pharmacy_id)]

    def get_orders_by_delivery_person(self, delivery_person_id: str) -> List[Order]:
        return [order for order in self.orders if order.delivery_person_id == str(delivery_person_id)]

    def get_orders_by_status(self, status: OrderStatus) -> List[Order]:
        return [order for order in self.orders if order.status == OrderStatus(status)]
