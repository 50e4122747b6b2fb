import secrets
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, status

from pharmacy_plus.mock_backend.deps import get_admin_user, get_current_user, get_store
from pharmacy_plus.mock_backend.store import MockStore
from pharmacy_plus.models.schemas import CouponIn, CouponValidateRequest

router = APIRouter(prefix="/coupons", tags=["coupons"])


def check_coupon(store: MockStore, code: str, order_total: Decimal) -> dict:
    """Returns the coupon if it can be used on `order_total`, else raises 400."""
    coupon = store.find_coupon(code)
    if not coupon or not coupon["isActive"]:
        raise HTTPException(status_code=400, detail="Invalid coupon code")
    if coupon["usedCount"] >= coupon["usageLimit"]:
        raise HTTPException(status_code=400, detail="Coupon usage limit reached")
    minimum = Decimal(str(coupon["minAmount"]))
    if order_total < minimum:
        raise HTTPException(status_code=400, detail=f"Minimum order amount of ${minimum:.2f} required")
    return coupon


@router.post("/validate")
def validate_coupon(payload: CouponValidateRequest, user: dict = Depends(get_current_user), store: MockStore = Depends(get_store)):
    coupon = check_coupon(store, payload.code, Decimal(str(payload.order_total)))
    return {"valid": True, "code": coupon["code"], "discountAmount": coupon["discountAmount"]}


@router.get("")
def list_coupons(admin: dict = Depends(get_admin_user), store: MockStore = Depends(get_store)):
    return list(store.coupons.values())


@router.post("", status_code=status.HTTP_201_CREATED)
def create_coupon(payload: CouponIn, admin: dict = Depends(get_admin_user), store: MockStore = Depends(get_store)):
    code = payload.code or secrets.token_hex(4).upper()
    if store.find_coupon(code):
        raise HTTPException(status_code=400, detail="Coupon code already exists")
    return store.add_coupon(code, payload.min_amount, payload.discount_amount, payload.usage_limit)


@router.put("/{coupon_id}")
def update_coupon(coupon_id: str, payload: CouponIn, admin: dict = Depends(get_admin_user), store: MockStore = Depends(get_store)):
    coupon = store.coupons.get(coupon_id)
    if coupon is None:
        raise HTTPException(status_code=404, detail="Coupon not found")
    coupon.update({
        "minAmount": payload.min_amount,
        "discountAmount": payload.discount_amount,
        "usageLimit": payload.usage_limit,
    })
    if payload.is_active is not None:
        coupon["isActive"] = payload.is_active
    return coupon


@router.delete("/{coupon_id}")
def delete_coupon(coupon_id: str, admin: dict = Depends(get_admin_user), store: MockStore = Depends(get_store)):
    if store.coupons.pop(coupon_id, None) is None:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return {"message": "Coupon removed"}
