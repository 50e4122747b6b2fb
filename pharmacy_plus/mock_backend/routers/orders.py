from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, status

from pharmacy_plus.mock_backend.deps import get_admin_user, get_current_user, get_store, require_roles
from pharmacy_plus.mock_backend.routers.coupons import check_coupon
from pharmacy_plus.mock_backend.store import MockStore
from pharmacy_plus.models.schemas import AssignDelivery, InstructionsUpdate, OrderCreate, StatusUpdate

router = APIRouter(prefix="/orders", tags=["orders"])

STAFF_STATUSES = {"packing", "on_the_way"}


def _get_order(store: MockStore, order_id: str) -> dict:
    order = store.orders.get(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _ensure_owner(store: MockStore, user: dict, pharmacy_id: str) -> None:
    if user["role"] == "admin":
        return
    pharmacy = store.pharmacies.get(pharmacy_id)
    if user["role"] != "pharmacy_owner" or not pharmacy or pharmacy.get("ownerId") != user["id"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your pharmacy")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(payload: OrderCreate, user: dict = Depends(require_roles("customer")), store: MockStore = Depends(get_store)):
    if payload.pharmacy_id not in store.pharmacies:
        raise HTTPException(status_code=404, detail="Pharmacy not found")

    subtotal = Decimal("0")
    lines = []
    for item in payload.items:
        medicine = store.medicines.get(item.medicine_id)
        if medicine is None:
            raise HTTPException(status_code=404, detail=f"Medicine {item.medicine_id} not found")
        if medicine["pharmacyId"] != payload.pharmacy_id:
            raise HTTPException(status_code=400, detail="All items must be from the same pharmacy")
        if medicine["stock"] < item.quantity:
            raise HTTPException(status_code=400, detail=f"Insufficient stock for {medicine['name']}")
        price = Decimal(str(medicine["price"]))
        subtotal += price * item.quantity
        lines.append((medicine, item.quantity, price))

    coupon = None
    discount = Decimal("0")
    if payload.coupon_code:
        coupon = check_coupon(store, payload.coupon_code, subtotal)
        discount = min(Decimal(str(coupon["discountAmount"])), subtotal)

    for medicine, quantity, _ in lines:
        medicine["stock"] -= quantity
    if coupon:
        coupon["usedCount"] += 1

    order = store.add_order(
        customerId=user["id"],
        pharmacyId=payload.pharmacy_id,
        items=[
            {"medicineId": m["id"], "quantity": q, "price": float(p), "name": m["name"]}
            for m, q, p in lines
        ],
        totalAmount=float(subtotal - discount),
        deliveryAddress=payload.delivery_address,
        couponCode=coupon["code"] if coupon else None,
        discount=float(discount) if coupon else None,
    )
    return order


@router.get("/myorders")
def my_orders(user: dict = Depends(get_current_user), store: MockStore = Depends(get_store)):
    mine = [o for o in store.orders.values() if o["customerId"] == user["id"]]
    return [store.expand_order(o) for o in store.sorted_orders(mine)]


@router.get("/mydeliveries")
def my_deliveries(user: dict = Depends(require_roles("delivery_person")), store: MockStore = Depends(get_store)):
    mine = [o for o in store.orders.values() if o.get("deliveryPersonId") == user["id"]]
    return [store.expand_order(o) for o in store.sorted_orders(mine)]


@router.get("/pharmacy/{pharmacy_id}")
def pharmacy_orders(pharmacy_id: str, user: dict = Depends(get_current_user), store: MockStore = Depends(get_store)):
    _ensure_owner(store, user, pharmacy_id)
    orders = [o for o in store.orders.values() if o["pharmacyId"] == pharmacy_id]
    return [store.expand_order(o) for o in store.sorted_orders(orders)]


@router.get("")
def all_orders(admin: dict = Depends(get_admin_user), store: MockStore = Depends(get_store)):
    return [store.expand_order(o) for o in store.sorted_orders(store.orders.values())]


@router.put("/{order_id}/status")
def update_status(order_id: str, payload: StatusUpdate, user: dict = Depends(get_current_user), store: MockStore = Depends(get_store)):
    order = _get_order(store, order_id)
    target = payload.status.value
    role = user["role"]
    if role == "delivery_person":
        if order.get("deliveryPersonId") != user["id"]:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This order is not assigned to you")
        if target != "delivered":
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Delivery persons can only mark orders delivered")
    elif role == "pharmacy_owner":
        _ensure_owner(store, user, order["pharmacyId"])
        if target not in STAFF_STATUSES:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Pharmacies cannot mark orders delivered")
    elif role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to update orders")
    order["status"] = target
    return store.expand_order(order)


@router.put("/{order_id}/assign-delivery")
def assign_delivery(order_id: str, payload: AssignDelivery, user: dict = Depends(require_roles("admin", "pharmacy_owner")), store: MockStore = Depends(get_store)):
    order = _get_order(store, order_id)
    _ensure_owner(store, user, order["pharmacyId"])
    courier = store.users.get(payload.delivery_person_id)
    if courier is None or courier["role"] != "delivery_person":
        raise HTTPException(status_code=400, detail="Selected user is not a delivery person")
    order["deliveryPersonId"] = courier["id"]
    return store.expand_order(order)


@router.post("/instructions/{order_id}")
def set_instructions(order_id: str, payload: InstructionsUpdate, user: dict = Depends(require_roles("admin", "pharmacy_owner")), store: MockStore = Depends(get_store)):
    order = _get_order(store, order_id)
    _ensure_owner(store, user, order["pharmacyId"])
    order["instructions"] = [i.to_wire() for i in payload.instructions]
    return store.expand_order(order)
