from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class UserRole(str, Enum):
    CUSTOMER = "customer"
    PHARMACY_OWNER = "pharmacy_owner"
    DELIVERY_PERSON = "delivery_person"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    PACKING = "packing"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"


class RoleRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InstructionPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


def reference_id(value: Any) -> Optional[str]:
    """Returns the id of a reference that may be a bare id or an expanded document."""
    if value is None:
        return None
    if isinstance(value, dict):
        ref = value.get("id") or value.get("_id")
        return str(ref) if ref is not None else None
    if isinstance(value, BaseModel):
        return reference_id(getattr(value, "id", None))
    return str(value)


def _split_reference(data: dict, key: str, expanded_key: str) -> None:
    # backend populates some foreign keys with the whole document
    value = data.get(key)
    if isinstance(value, dict):
        data.setdefault(expanded_key, value)
        data[key] = reference_id(value)


def _to_decimal(value):
    if isinstance(value, float):
        return Decimal(str(value))
    return value


class CamelModel(BaseModel):
    """Wire models: camelCase on the wire, `_id` accepted for `id`."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def normalize_id(cls, data):
        if isinstance(data, dict) and "id" not in data and "_id" in data:
            data = {**data, "id": data["_id"]}
        return data

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Users ---

class User(CamelModel):
    id: str
    name: str
    email: str = ""
    phone: str = ""
    role: UserRole = UserRole.CUSTOMER
    address: Optional[str] = None


class RoleRequest(CamelModel):
    id: str
    user_id: str
    requested_role: UserRole
    status: RoleRequestStatus = RoleRequestStatus.PENDING
    created_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def expand_user(cls, data):
        if isinstance(data, dict) and isinstance(data.get("userId"), dict):
            data = dict(data)
            data["userId"] = reference_id(data["userId"])
        return data


# --- Catalog ---

class Pharmacy(CamelModel):
    id: str
    name: str
    owner_id: Optional[str] = None
    address: str = ""
    phone: str = ""
    image: str = ""
    rating: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def expand_owner(cls, data):
        if isinstance(data, dict) and isinstance(data.get("ownerId"), dict):
            data = dict(data)
            data["ownerId"] = reference_id(data["ownerId"])
        return data


class Medicine(CamelModel):
    id: str
    name: str
    description: str = ""
    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    image: str = ""
    pharmacy_id: str
    pharmacy: Optional[Pharmacy] = None
    category: str = ""

    parse_money = field_validator("price", mode="before")(_to_decimal)

    @model_validator(mode="before")
    @classmethod
    def expand_pharmacy(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            _split_reference(data, "pharmacyId", "pharmacy")
        return data


# --- Cart & coupons ---

class CartItem(CamelModel):
    medicine: Medicine
    quantity: int = Field(1, ge=1)


class AppliedCoupon(CamelModel):
    code: str
    discount_amount: Decimal

    parse_money = field_validator("discount_amount", mode="before")(_to_decimal)


class Coupon(CamelModel):
    id: Optional[str] = None
    code: str
    min_amount: Decimal = Decimal(0)
    discount_amount: Decimal = Decimal(0)
    usage_limit: int = 0
    used_count: int = 0
    is_active: bool = True

    parse_money = field_validator("min_amount", "discount_amount", mode="before")(_to_decimal)


class CouponIn(CamelModel):
    code: Optional[str] = None
    min_amount: float
    discount_amount: float
    usage_limit: int
    is_active: Optional[bool] = None


class CouponValidateRequest(CamelModel):
    code: str
    order_total: float


class CouponValidation(CamelModel):
    valid: bool
    code: Optional[str] = None
    discount_amount: Decimal = Decimal(0)
    message: Optional[str] = None

    parse_money = field_validator("discount_amount", mode="before")(_to_decimal)


# --- Orders ---

class OrderItem(CamelModel):
    medicine_id: str
    quantity: int
    price: Decimal
    name: str = ""

    parse_money = field_validator("price", mode="before")(_to_decimal)


class DeliveryInstruction(CamelModel):
    text: str = Field(..., min_length=1)
    icon: str = "info"
    priority: InstructionPriority = InstructionPriority.NORMAL


class Order(CamelModel):
    id: str
    customer_id: str
    customer: Optional[User] = None
    pharmacy_id: str
    pharmacy: Optional[Pharmacy] = None
    items: List[OrderItem] = []
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PACKING
    delivery_address: str
    delivery_person_id: Optional[str] = None
    delivery_person: Optional[User] = None
    coupon_code: Optional[str] = None
    discount: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    instructions: List[DeliveryInstruction] = []

    parse_money = field_validator("total_amount", "discount", mode="before")(_to_decimal)

    @model_validator(mode="before")
    @classmethod
    def expand_references(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            _split_reference(data, "customerId", "customer")
            _split_reference(data, "pharmacyId", "pharmacy")
            _split_reference(data, "deliveryPersonId", "deliveryPerson")
        return data


class OrderItemIn(CamelModel):
    medicine_id: str
    quantity: int = Field(..., ge=1)


class OrderCreate(CamelModel):
    pharmacy_id: str
    items: List[OrderItemIn] = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    coupon_code: Optional[str] = None


class StatusUpdate(CamelModel):
    status: OrderStatus


class AssignDelivery(CamelModel):
    delivery_person_id: str


class InstructionsUpdate(CamelModel):
    instructions: List[DeliveryInstruction]


class RoleRequestIn(CamelModel):
    requested_role: UserRole


# --- Service results ---

class ActionResult(BaseModel):
    success: bool
    message: str
