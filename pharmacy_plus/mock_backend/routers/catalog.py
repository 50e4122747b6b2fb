from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from pharmacy_plus.mock_backend.deps import get_admin_user, get_store, require_roles
from pharmacy_plus.mock_backend.store import MockStore

router = APIRouter(tags=["catalog"])


@router.get("/pharmacies")
def list_pharmacies(ownerId: Optional[str] = None, store: MockStore = Depends(get_store)):
    if ownerId:
        return store.pharmacies_owned_by(ownerId)
    return list(store.pharmacies.values())


@router.get("/medicines")
def list_medicines(store: MockStore = Depends(get_store)):
    return list(store.medicines.values())


@router.get("/medicines/pharmacy/{pharmacy_id}")
def pharmacy_medicines(pharmacy_id: str, store: MockStore = Depends(get_store)):
    return [m for m in store.medicines.values() if m["pharmacyId"] == pharmacy_id]


@router.delete("/medicines/{medicine_id}")
def delete_medicine(medicine_id: str, user: dict = Depends(require_roles("admin", "pharmacy_owner")), store: MockStore = Depends(get_store)):
    medicine = store.medicines.get(medicine_id)
    if medicine is None:
        raise HTTPException(status_code=404, detail="Medicine not found")
    pharmacy = store.pharmacies.get(medicine["pharmacyId"], {})
    if user["role"] != "admin" and pharmacy.get("ownerId") != user["id"]:
        raise HTTPException(status_code=403, detail="Not your pharmacy")
    del store.medicines[medicine_id]
    return {"message": "Medicine removed"}


@router.get("/users")
def list_users(admin: dict = Depends(get_admin_user), store: MockStore = Depends(get_store)):
    return [store.public_user(u) for u in store.users.values()]
