import pytest

from conftest import ADMIN, CUSTOMER, OTHER_CUSTOMER
from pharmacy_plus.core.config import AUTH_STORAGE_KEY, TOKEN_STORAGE_KEY
from pharmacy_plus.models.schemas import UserRole

pytestmark = pytest.mark.anyio


async def test_login_persists_user_and_token(session, storage):
    user = await session.auth.login(*CUSTOMER)

    assert user.id == "2"
    assert user.role == UserRole.CUSTOMER
    assert session.auth.is_authenticated
    assert session.auth.has_role(UserRole.CUSTOMER)
    assert not session.auth.has_role("admin")
    assert session.api.token == session.auth.token
    assert storage.get_json(AUTH_STORAGE_KEY)["email"] == "john@example.com"
    assert storage.get_item(TOKEN_STORAGE_KEY) == session.auth.token
    assert session.auth.is_token_expired() is False


async def test_wrong_password_returns_none(session, storage):
    assert await session.auth.login("john@example.com", "nope") is None
    assert session.auth.current_user is None
    assert storage.get_item(TOKEN_STORAGE_KEY) is None


async def test_register_then_use_api(session):
    user = await session.auth.register("Ada Lovelace", "ada@pharmacyplus.io", "secret123", "+1555")

    assert user.name == "Ada Lovelace"
    assert user.role == UserRole.CUSTOMER
    assert (await session.orders.fetch_my_orders()) == []


async def test_register_duplicate_email(session):
    assert await session.auth.register("John", "john@example.com", "customer123", "") is None


async def test_logout_clears_state_and_revokes_token(session, storage, store):
    await session.auth.login(*CUSTOMER)
    token = session.auth.token

    await session.auth.logout()

    assert session.auth.current_user is None
    assert session.api.token is None
    assert storage.get_item(AUTH_STORAGE_KEY) is None
    assert storage.get_item(TOKEN_STORAGE_KEY) is None
    assert token in store.revoked_tokens


async def test_update_profile(session, store):
    await session.auth.login(*CUSTOMER)

    user = await session.auth.update_profile(address="1 New Rd")

    assert user.address == "1 New Rd"
    assert session.auth.current_user.address == "1 New Rd"
    assert store.users["2"]["address"] == "1 New Rd"


async def test_role_request_approval(make_session, store):
    customer = make_session()
    admin = make_session(shared_storage=type(customer.storage)())
    try:
        await customer.auth.login(*CUSTOMER)
        # seeded data already holds a pending request for John
        assert await customer.auth.request_role_change(UserRole.PHARMACY_OWNER) is None

        await admin.auth.login(*ADMIN)
        pending = await admin.auth.get_pending_role_requests()
        assert {r.id for r in pending} == {"r1", "r2"}

        assert await admin.auth.approve_role_request("r2") is True
        assert await admin.auth.reject_role_request("r1") is True
        assert store.users["2"]["role"] == "delivery_person"
        assert store.users["5"]["role"] == "customer"
        assert await admin.auth.get_pending_role_requests() == []
        assert await admin.auth.approve_role_request("r2") is False
    finally:
        await customer.aclose()
        await admin.aclose()


async def test_new_customer_requests_role(session):
    await session.auth.register("Nia Courier", "nia@pharmacyplus.io", "secret123", "+1666")

    request = await session.auth.request_role_change(UserRole.DELIVERY_PERSON)

    assert request.user_id == session.auth.current_user.id
    assert request.requested_role == UserRole.DELIVERY_PERSON
    assert request.status.value == "pending"


async def test_non_admin_cannot_resolve_requests(session):
    await session.auth.login(*OTHER_CUSTOMER)

    assert await session.auth.reject_role_request("r1") is False
    assert await session.auth.get_pending_role_requests() == []
