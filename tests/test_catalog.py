import pytest

from conftest import ADMIN, CUSTOMER, PHARMACY_OWNER

pytestmark = pytest.mark.anyio


async def test_browse_catalog(session):
    pharmacies = await session.catalog.list_pharmacies()
    medicines = await session.catalog.list_medicines()

    assert [p.id for p in pharmacies] == ["p1", "p2", "p3"]
    assert len(medicines) == 8
    assert {m.pharmacy_id for m in medicines} == {"p1", "p2", "p3"}
    assert [m.id for m in await session.catalog.list_pharmacy_medicines("p2")] == ["m3", "m4", "m8"]


async def test_catalog_items_go_straight_into_cart(session):
    await session.auth.login(*CUSTOMER)
    for med in await session.catalog.list_pharmacy_medicines("p1"):
        session.cart.add_to_cart(med)

    order = await session.place_order("1 Road")

    assert order.pharmacy_id == "p1"
    assert len(order.items) == 3


async def test_owner_manages_medicines(session, store):
    await session.auth.login(*PHARMACY_OWNER)

    owned = await session.catalog.list_owned_medicines("3")
    assert len(owned) == 8

    assert await session.catalog.delete_medicine("m7") is True
    assert "m7" not in store.medicines
    assert await session.catalog.delete_medicine("m7") is False


async def test_users_listing_is_admin_only(session):
    await session.auth.login(*CUSTOMER)
    assert await session.catalog.list_users() == []

    await session.auth.logout()
    await session.auth.login(*ADMIN)
    couriers = await session.catalog.list_delivery_persons()

    assert [u.name for u in couriers] == ["Mike Delivery"]
    assert len(await session.catalog.list_users()) == 5
