# pharmacy_plus/mock_backend/store.py
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from pharmacy_plus.core.security import hash_password


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MockStore:
    """In-memory collections standing in for the marketplace database."""

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.pharmacies: Dict[str, dict] = {}
        self.medicines: Dict[str, dict] = {}
        self.orders: Dict[str, dict] = {}
        self.coupons: Dict[str, dict] = {}
        self.role_requests: Dict[str, dict] = {}
        self.revoked_tokens: set = set()

    @staticmethod
    def new_id(prefix: str) -> str:
        return f"{prefix}{secrets.token_hex(6)}"

    # --- users ---

    def add_user(self, name, email, password, phone="", role="customer", address=None, user_id=None) -> dict:
        user = {
            "id": user_id or self.new_id("u"),
            "name": name,
            "email": email.lower(),
            "password": hash_password(password),
            "phone": phone,
            "role": role,
            "address": address,
        }
        self.users[user["id"]] = user
        return user

    def find_user_by_email(self, email: str) -> Optional[dict]:
        email = email.lower()
        return next((u for u in self.users.values() if u["email"] == email), None)

    @staticmethod
    def public_user(user: dict) -> dict:
        return {k: v for k, v in user.items() if k != "password"}

    # --- catalog ---

    def add_pharmacy(self, **fields) -> dict:
        fields.setdefault("id", self.new_id("p"))
        self.pharmacies[fields["id"]] = fields
        return fields

    def add_medicine(self, **fields) -> dict:
        fields.setdefault("id", self.new_id("m"))
        self.medicines[fields["id"]] = fields
        return fields

    def pharmacies_owned_by(self, owner_id: str) -> List[dict]:
        return [p for p in self.pharmacies.values() if p.get("ownerId") == owner_id]

    # --- coupons ---

    def add_coupon(self, code, min_amount, discount_amount, usage_limit=100, used_count=0, is_active=True, coupon_id=None) -> dict:
        coupon = {
            "id": coupon_id or self.new_id("c"),
            "code": code.upper(),
            "minAmount": min_amount,
            "discountAmount": discount_amount,
            "usageLimit": usage_limit,
            "usedCount": used_count,
            "isActive": is_active,
        }
        self.coupons[coupon["id"]] = coupon
        return coupon

    def find_coupon(self, code: str) -> Optional[dict]:
        code = code.strip().upper()
        return next((c for c in self.coupons.values() if c["code"] == code), None)

    # --- orders ---

    def add_order(self, **fields) -> dict:
        fields.setdefault("id", self.new_id("o"))
        fields.setdefault("status", "packing")
        fields.setdefault("createdAt", _now().isoformat())
        fields.setdefault("instructions", [])
        self.orders[fields["id"]] = fields
        return fields

    def expand_order(self, order: dict) -> dict:
        """Order with pharmacy and customer populated, like the real API's listings."""
        expanded = dict(order)
        pharmacy = self.pharmacies.get(order["pharmacyId"])
        if pharmacy:
            expanded["pharmacyId"] = dict(pharmacy)
        customer = self.users.get(order["customerId"])
        if customer:
            expanded["customerId"] = self.public_user(customer)
        return expanded

    def sorted_orders(self, orders) -> List[dict]:
        return sorted(orders, key=lambda o: o["createdAt"], reverse=True)

    @classmethod
    def seeded(cls) -> "MockStore":
        store = cls()
        store.add_user("Admin User", "admin@pharmacy.com", "admin123", "+1234567890", "admin", user_id="1")
        store.add_user("John Doe", "john@example.com", "customer123", "+1234567891", "customer",
                       "123 Main St, New York, NY 10001", user_id="2")
        store.add_user("Sarah Pharmacy", "sarah@pharmacy.com", "pharmacy123", "+1234567892", "pharmacy_owner", user_id="3")
        store.add_user("Mike Delivery", "mike@delivery.com", "delivery123", "+1234567893", "delivery_person", user_id="4")
        store.add_user("Jane Customer", "jane@example.com", "customer123", "+1234567894", "customer",
                       "456 Oak Ave, Brooklyn, NY 11201", user_id="5")

        store.add_pharmacy(id="p1", name="HealthCare Pharmacy", ownerId="3", address="789 Health St, Manhattan, NY 10002",
                           phone="+1234567895", image="https://images.unsplash.com/photo-1576602976047-174e57a47881?w=400",
                           rating=4.8)
        store.add_pharmacy(id="p2", name="MediPlus Store", ownerId="3", address="321 Wellness Blvd, Queens, NY 11354",
                           phone="+1234567896", image="https://images.unsplash.com/photo-1587854692152-cbe660dbde88?w=400",
                           rating=4.6)
        store.add_pharmacy(id="p3", name="QuickMeds Pharmacy", ownerId="3", address="555 Care Lane, Bronx, NY 10451",
                           phone="+1234567897", image="https://images.unsplash.com/photo-1631549916768-4119b2e5f926?w=400",
                           rating=4.9)

        for med_id, name, price, stock, pharmacy_id, category in [
            ("m1", "Paracetamol 500mg", 5.99, 100, "p1", "Pain Relief"),
            ("m2", "Ibuprofen 400mg", 8.99, 75, "p1", "Pain Relief"),
            ("m3", "Vitamin C 1000mg", 12.99, 150, "p2", "Vitamins"),
            ("m4", "Amoxicillin 250mg", 15.99, 50, "p2", "Antibiotics"),
            ("m5", "Cetirizine 10mg", 9.99, 80, "p3", "Allergy"),
            ("m6", "Omeprazole 20mg", 11.99, 60, "p3", "Digestive"),
            ("m7", "Aspirin 75mg", 6.99, 120, "p1", "Cardiovascular"),
            ("m8", "Multivitamin Complex", 18.99, 90, "p2", "Vitamins"),
        ]:
            store.add_medicine(id=med_id, name=name, description="", price=price, stock=stock,
                               image="", pharmacyId=pharmacy_id, category=category)

        now = _now()
        store.add_order(id="o1", customerId="2", pharmacyId="p1",
                        items=[{"medicineId": "m1", "quantity": 2, "price": 5.99, "name": "Paracetamol 500mg"},
                               {"medicineId": "m2", "quantity": 1, "price": 8.99, "name": "Ibuprofen 400mg"}],
                        totalAmount=20.97, status="packing", deliveryAddress="123 Main St, New York, NY 10001",
                        createdAt=now.isoformat())
        store.add_order(id="o2", customerId="5", pharmacyId="p2",
                        items=[{"medicineId": "m3", "quantity": 1, "price": 12.99, "name": "Vitamin C 1000mg"}],
                        totalAmount=12.99, status="on_the_way", deliveryAddress="456 Oak Ave, Brooklyn, NY 11201",
                        deliveryPersonId="4", createdAt=(now - timedelta(days=1)).isoformat())
        store.add_order(id="o3", customerId="2", pharmacyId="p3",
                        items=[{"medicineId": "m5", "quantity": 1, "price": 9.99, "name": "Cetirizine 10mg"}],
                        totalAmount=8.99, status="delivered", deliveryAddress="123 Main St, New York, NY 10001",
                        deliveryPersonId="4", couponCode="SAVE10", discount=1.0,
                        createdAt=(now - timedelta(days=2)).isoformat())

        store.add_coupon("SAVE10", 20, 10, usage_limit=100, coupon_id="c1")
        store.add_coupon("FIRST15", 30, 15, usage_limit=1, coupon_id="c2")
        store.add_coupon("HEALTH20", 50, 20, usage_limit=50, coupon_id="c3")

        store.role_requests["r1"] = {"id": "r1", "userId": "5", "requestedRole": "pharmacy_owner",
                                     "status": "pending", "createdAt": now.isoformat()}
        store.role_requests["r2"] = {"id": "r2", "userId": "2", "requestedRole": "delivery_person",
                                     "status": "pending", "createdAt": (now - timedelta(hours=1)).isoformat()}
        return store
