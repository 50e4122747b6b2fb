from decimal import Decimal

import pytest

from conftest import CUSTOMER, medicine
from pharmacy_plus.core.config import ORDERS_STORAGE_KEY
from pharmacy_plus.models.schemas import OrderStatus

pytestmark = pytest.mark.anyio

ADDRESS = "123 Main St, New York, NY 10001"


async def test_place_order_success_prepends_and_clears_cart(session, store):
    await session.auth.login(*CUSTOMER)
    await session.orders.fetch_my_orders()
    cached_before = len(session.orders.orders)
    session.cart.add_to_cart(medicine("m1", price="5.99", pharmacy_id="p1"), 2)
    session.cart.add_to_cart(medicine("m2", price="8.99", pharmacy_id="p1"), 1)

    order = await session.place_order(ADDRESS)

    assert order is not None
    assert session.orders.orders[0].id == order.id
    assert len(session.orders.orders) == cached_before + 1
    assert session.cart.items == []
    assert session.cart.applied_coupon is None
    assert order.status == OrderStatus.PACKING
    assert order.customer_id == "2"
    assert order.pharmacy_id == "p1"
    assert order.total_amount == Decimal("20.97")
    assert [(i.medicine_id, i.quantity) for i in order.items] == [("m1", 2), ("m2", 1)]
    assert store.medicines["m1"]["stock"] == 98


async def test_place_order_sends_applied_coupon(session, store):
    await session.auth.login(*CUSTOMER)
    session.cart.add_to_cart(medicine("m8", price="18.99", pharmacy_id="p2"), 2)
    await session.cart.apply_coupon("save10")

    order = await session.place_order(ADDRESS)

    assert order.coupon_code == "SAVE10"
    assert order.discount == Decimal("10")
    assert order.total_amount == Decimal("27.98")
    assert store.coupons["c1"]["usedCount"] == 1
    assert session.cart.applied_coupon is None


async def test_mixed_pharmacy_cart_is_rejected_without_request(session, requests_seen):
    await session.auth.login(*CUSTOMER)
    session.cart.add_to_cart(medicine("m1", pharmacy_id="p1"))
    session.cart.add_to_cart(medicine("m3", pharmacy_id="p2"))
    requests_seen.clear()

    order = await session.place_order(ADDRESS)

    assert order is None
    assert requests_seen == []
    assert len(session.cart.items) == 2


@pytest.mark.parametrize(
    "pharmacies,accepted",
    [(["p1"], True), (["p1", "p1"], True), (["p1", "p2"], False), (["p2", "p3", "p2"], False)],
)
async def test_placement_depends_only_on_pharmacy_spread(session, pharmacies, accepted):
    await session.auth.login(*CUSTOMER)
    stock_by_pharmacy = {"p1": ["m1", "m2", "m7"], "p2": ["m3", "m4", "m8"], "p3": ["m5", "m6"]}
    for index, pharmacy_id in enumerate(pharmacies):
        med_id = stock_by_pharmacy[pharmacy_id][index % len(stock_by_pharmacy[pharmacy_id])]
        session.cart.add_to_cart(medicine(med_id, pharmacy_id=pharmacy_id))

    order = await session.place_order(ADDRESS)

    assert (order is not None) is accepted


async def test_failed_order_leaves_cart_and_coupon_untouched(session, store):
    await session.auth.login(*CUSTOMER)
    session.cart.add_to_cart(medicine("m8", price="18.99", pharmacy_id="p2"), 2)
    await session.cart.apply_coupon("SAVE10")
    store.medicines["m8"]["stock"] = 1
    orders_before = list(session.orders.orders)

    order = await session.place_order(ADDRESS)

    assert order is None
    assert [(i.medicine.id, i.quantity) for i in session.cart.items] == [("m8", 2)]
    assert session.cart.applied_coupon.code == "SAVE10"
    assert session.orders.orders == orders_before
    assert store.coupons["c1"]["usedCount"] == 0


async def test_place_order_requires_signed_in_user(session, requests_seen):
    session.cart.add_to_cart(medicine("m1"))

    assert await session.place_order(ADDRESS) is None
    assert requests_seen == []
    assert len(session.cart.items) == 1


async def test_place_order_requires_items_and_address(session, requests_seen):
    await session.auth.login(*CUSTOMER)
    requests_seen.clear()

    assert await session.place_order(ADDRESS) is None
    session.cart.add_to_cart(medicine("m1"))
    assert await session.place_order("   ") is None
    assert requests_seen == []


async def test_orders_are_cached_for_next_session(make_session, storage):
    first = make_session()
    await first.auth.login(*CUSTOMER)
    first.cart.add_to_cart(medicine("m1", pharmacy_id="p1"))
    order = await first.place_order(ADDRESS)
    await first.aclose()

    second = make_session(storage)
    try:
        assert second.orders.get_order_by_id(order.id) is not None
        assert second.auth.current_user.email == "john@example.com"
        assert second.cart.items == []
        assert storage.get_json(ORDERS_STORAGE_KEY)[0]["id"] == order.id
    finally:
        await second.aclose()


async def test_my_orders_normalizes_expanded_references(session):
    await session.auth.login(*CUSTOMER)

    orders = await session.orders.fetch_my_orders()

    assert {o.id for o in orders} == {"o1", "o3"}
    o1 = session.orders.get_order_by_id("o1")
    assert o1.pharmacy_id == "p1"
    assert o1.pharmacy.name == "HealthCare Pharmacy"
    assert o1.customer_id == "2"
    assert session.orders.get_orders_by_customer("2") == orders
    assert [o.id for o in session.orders.get_orders_by_pharmacy("p3")] == ["o3"]
    assert [o.id for o in session.orders.get_orders_by_delivery_person("4")] == ["o3"]
    assert [o.id for o in session.orders.get_orders_by_status("delivered")] == ["o3"]


async def test_listing_failure_keeps_cache(session):
    await session.auth.login(*CUSTOMER)
    await session.orders.fetch_my_orders()
    before = list(session.orders.orders)

    # customers may not list every order
    assert await session.orders.fetch_all_orders() == []
    assert session.orders.orders == before
