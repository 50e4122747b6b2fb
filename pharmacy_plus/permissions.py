from typing import Optional

from pharmacy_plus.core.errors import InvalidTransitionError
from pharmacy_plus.models.schemas import Order, OrderStatus, UserRole

PERMISSIONS = {
    "admin": ["all"],
    "pharmacy_owner": [
        "set_status:packing",
        "set_status:on_the_way",
        "assign_delivery",
        "manage_instructions",
        "manage_medicines",
    ],
    "delivery_person": [
        "set_status:delivered",
    ],
    "customer": [
        "place_order",
        "request_role",
    ],
}

STATUS_FLOW = [OrderStatus.PACKING, OrderStatus.ON_THE_WAY, OrderStatus.DELIVERED]

STATUS_LABELS = {
    OrderStatus.PACKING: "Packing",
    OrderStatus.ON_THE_WAY: "On the Way",
    OrderStatus.DELIVERED: "Delivered",
}


def _role_value(role) -> Optional[str]:
    if isinstance(role, UserRole):
        return role.value
    return role


def has_permission(role, permission: str) -> bool:
    perms = PERMISSIONS.get(_role_value(role), [])
    return "all" in perms or permission in perms


def status_label(status: OrderStatus) -> str:
    return STATUS_LABELS.get(OrderStatus(status), str(status))


def next_status(status: OrderStatus) -> Optional[OrderStatus]:
    index = STATUS_FLOW.index(OrderStatus(status))
    if index + 1 < len(STATUS_FLOW):
        return STATUS_FLOW[index + 1]
    return None


def is_backward(current: OrderStatus, target: OrderStatus) -> bool:
    return STATUS_FLOW.index(OrderStatus(target)) < STATUS_FLOW.index(OrderStatus(current))


def check_status_transition(role, target: OrderStatus, order: Optional[Order] = None, user_id: Optional[str] = None) -> None:
    """
    Raises InvalidTransitionError unless `role` may move `order` to `target`.

    Without a cached order only the role gate applies; direction and
    assignment checks need the current state. Setting the current status
    again is allowed.
    """
    target = OrderStatus(target)
    if not has_permission(role, f"set_status:{target.value}"):
        raise InvalidTransitionError(f"Role {_role_value(role)!r} cannot set status {target.value!r}")
    if order is None:
        return
    if is_backward(order.status, target):
        raise InvalidTransitionError(
            f"Order {order.id} cannot move back from {order.status.value!r} to {target.value!r}"
        )
    if _role_value(role) == UserRole.DELIVERY_PERSON.value:
        if order.delivery_person_id != user_id:
            raise InvalidTransitionError(f"Order {order.id} is not assigned to you")
        if order.status != target and order.status != OrderStatus.ON_THE_WAY:
            raise InvalidTransitionError(f"Order {order.id} is not on the way yet")


def check_assignment(role, order: Optional[Order] = None) -> None:
    if not has_permission(role, "assign_delivery"):
        raise InvalidTransitionError(f"Role {_role_value(role)!r} cannot assign delivery")
    if order is not None and order.status == OrderStatus.DELIVERED:
        raise InvalidTransitionError(f"Order {order.id} is already delivered")
