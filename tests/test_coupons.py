from decimal import Decimal

import pytest

from conftest import ADMIN, CUSTOMER, medicine

pytestmark = pytest.mark.anyio


async def test_apply_coupon_stores_discount(session):
    await session.auth.login(*CUSTOMER)
    session.cart.add_to_cart(medicine("m8", price="18.99", pharmacy_id="p2"), 2)

    result = await session.cart.apply_coupon("  save10 ")

    assert result.success is True
    assert result.message == "-$10.00 discount applied"
    assert session.cart.applied_coupon.code == "SAVE10"
    assert session.cart.get_discount_amount() == Decimal("10")
    assert session.cart.get_final_total() == Decimal("27.98")


async def test_apply_coupon_proxies_backend_message(session):
    await session.auth.login(*CUSTOMER)
    session.cart.add_to_cart(medicine("m1", price="5.99"), 1)

    result = await session.cart.apply_coupon("SAVE10")

    assert result.success is False
    assert result.message == "Minimum order amount of $20.00 required"
    assert session.cart.applied_coupon is None


async def test_unknown_coupon_fails(session):
    await session.auth.login(*CUSTOMER)
    session.cart.add_to_cart(medicine("m1", price="50"), 1)

    result = await session.cart.apply_coupon("NOPE")

    assert result.success is False
    assert result.message == "Invalid coupon code"


async def test_exhausted_coupon_fails(session, store):
    store.coupons["c2"]["usedCount"] = store.coupons["c2"]["usageLimit"]
    await session.auth.login(*CUSTOMER)
    session.cart.add_to_cart(medicine("m1", price="50"), 1)

    result = await session.cart.apply_coupon("FIRST15")

    assert result.success is False
    assert result.message == "Coupon usage limit reached"


async def test_blank_code_is_rejected_locally(session, requests_seen):
    result = await session.cart.apply_coupon("   ")

    assert result.success is False
    assert requests_seen == []


async def test_remove_coupon(session):
    await session.auth.login(*CUSTOMER)
    session.cart.add_to_cart(medicine("m8", price="18.99", pharmacy_id="p2"), 2)
    await session.cart.apply_coupon("SAVE10")

    session.cart.remove_coupon()

    assert session.cart.applied_coupon is None
    assert session.cart.get_final_total() == session.cart.get_cart_total()


async def test_admin_coupon_crud(session, store):
    await session.auth.login(*ADMIN)

    coupons = await session.coupons.list_coupons()
    assert {c.code for c in coupons} == {"SAVE10", "FIRST15", "HEALTH20"}

    created = await session.coupons.create_coupon(25, 5, 10, code="spring5")
    assert created.code == "SPRING5"
    assert created.discount_amount == Decimal("5")
    assert session.coupons.coupons[0].id == created.id

    updated = await session.coupons.update_coupon(created.id, 40, 8, 3)
    assert updated.min_amount == Decimal("40")
    assert store.coupons[created.id]["usageLimit"] == 3

    assert await session.coupons.delete_coupon(created.id) is True
    assert created.id not in store.coupons
    assert all(c.id != created.id for c in session.coupons.coupons)


async def test_incomplete_coupon_form_sends_nothing(session, requests_seen):
    await session.auth.login(*ADMIN)
    requests_seen.clear()

    assert await session.coupons.create_coupon(0, 5, 10) is None
    assert requests_seen == []


async def test_customers_cannot_manage_coupons(session):
    await session.auth.login(*CUSTOMER)

    assert await session.coupons.create_coupon(10, 2, 5) is None
    assert await session.coupons.delete_coupon("c1") is False
