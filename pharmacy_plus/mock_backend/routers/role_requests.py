from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from pharmacy_plus.mock_backend.deps import get_admin_user, get_store, require_roles
from pharmacy_plus.mock_backend.store import MockStore
from pharmacy_plus.models.schemas import RoleRequestIn, UserRole

router = APIRouter(prefix="/role-requests", tags=["role requests"])

REQUESTABLE_ROLES = {UserRole.PHARMACY_OWNER, UserRole.DELIVERY_PERSON}


def _pending(store: MockStore, request_id: str) -> dict:
    request = store.role_requests.get(request_id)
    if request is None:
        raise HTTPException(status_code=404, detail="Request not found")
    if request["status"] != "pending":
        raise HTTPException(status_code=400, detail="Request already resolved")
    return request


@router.post("", status_code=status.HTTP_201_CREATED)
def create_request(payload: RoleRequestIn, user: dict = Depends(require_roles("customer")), store: MockStore = Depends(get_store)):
    if payload.requested_role not in REQUESTABLE_ROLES:
        raise HTTPException(status_code=400, detail="That role cannot be requested")
    for existing in store.role_requests.values():
        if existing["userId"] == user["id"] and existing["status"] == "pending":
            raise HTTPException(status_code=400, detail="You already have a pending request")
    request = {
        "id": store.new_id("r"),
        "userId": user["id"],
        "requestedRole": payload.requested_role.value,
        "status": "pending",
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }
    store.role_requests[request["id"]] = request
    return request


@router.get("/pending")
def pending_requests(admin: dict = Depends(get_admin_user), store: MockStore = Depends(get_store)):
    return [r for r in store.role_requests.values() if r["status"] == "pending"]


@router.put("/{request_id}/approve")
def approve(request_id: str, admin: dict = Depends(get_admin_user), store: MockStore = Depends(get_store)):
    request = _pending(store, request_id)
    request["status"] = "approved"
    user = store.users.get(request["userId"])
    if user:
        user["role"] = request["requestedRole"]
    return request


@router.put("/{request_id}/reject")
def reject(request_id: str, admin: dict = Depends(get_admin_user), store: MockStore = Depends(get_store)):
    request = _pending(store, request_id)
    request["status"] = "rejected"
    return request
