# pharmacy_plus/services/payments_service.py
# Card payments are simulated. Whatever the card check says, the order goes
# through as cash on delivery; nothing here talks to a payment provider.
import logging
import re
from datetime import date
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel

from pharmacy_plus.models.schemas import Order
from pharmacy_plus.services.cart_service import CartService
from pharmacy_plus.services.orders_service import OrderService

logger = logging.getLogger(__name__)

EXPIRY_PATTERN = re.compile(r"^(\d{2})/(\d{2})$")
CVC_PATTERN = re.compile(r"^\d{3,4}$")

# Stripe's documented test numbers
TEST_CARD_OUTCOMES = {
    "4242424242424242": (True, None),
    "5555555555554444": (True, None),
    "4000000000000002": (False, "Your card was declined."),
    "4000000000009995": (False, "Insufficient funds."),
    "4000000000000069": (False, "Expired card."),
    "4000002500003155": (True, "3D Secure challenge simulated and approved."),
}


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "cod"
    CARD = "card"


class CardDetails(BaseModel):
    name: str = ""
    number: str = ""
    expiry: str = ""
    cvc: str = ""


class ChargeResult(BaseModel):
    ok: bool
    message: Optional[str] = None


def luhn_check(number: str) -> bool:
    digits = [int(d) for d in re.sub(r"\D", "", number)][::-1]
    if not digits:
        return False
    total = digits[0]
    for i, digit in enumerate(digits[1:]):
        if i % 2 == 0:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def parse_expiry(mm_yy: str, today: Optional[date] = None) -> Tuple[bool, bool]:
    """Returns (valid, expired) for an MM/YY string. A card runs to the end of its month."""
    match = EXPIRY_PATTERN.match(mm_yy or "")
    if not match:
        return False, False
    month, year = int(match.group(1)), 2000 + int(match.group(2))
    if month < 1 or month > 12:
        return False, False
    today = today or date.today()
    return True, (year, month) < (today.year, today.month)


def validate_card(card: CardDetails, today: Optional[date] = None) -> ChargeResult:
    number = re.sub(r"\s+", "", card.number)
    if not card.name.strip():
        return ChargeResult(ok=False, message="Name on card required")
    if len(number) < 13:
        return ChargeResult(ok=False, message="Enter a valid card number")
    if not luhn_check(number):
        return ChargeResult(ok=False, message="Invalid card number")
    valid, expired = parse_expiry(card.expiry.strip(), today)
    if not valid:
        return ChargeResult(ok=False, message="Use MM/YY format for expiry")
    if expired:
        return ChargeResult(ok=False, message="Card is expired")
    if not CVC_PATTERN.match(card.cvc):
        return ChargeResult(ok=False, message="Invalid CVC")
    return ChargeResult(ok=True)


def simulate_charge(card: CardDetails, today: Optional[date] = None) -> ChargeResult:
    checked = validate_card(card, today)
    if not checked.ok:
        return checked
    number = re.sub(r"\s+", "", card.number)
    if number in TEST_CARD_OUTCOMES:
        ok, message = TEST_CARD_OUTCOMES[number]
        return ChargeResult(ok=ok, message=message)
    return ChargeResult(ok=True)


async def checkout(
    cart: CartService,
    orders: OrderService,
    delivery_address: str,
    method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
    card: Optional[CardDetails] = None,
    today: Optional[date] = None,
) -> Optional[Order]:
    if PaymentMethod(method) == PaymentMethod.CARD:
        outcome = simulate_charge(card or CardDetails(), today)
        if outcome.ok:
            logger.info(f"Simulated card charge approved{': ' + outcome.message if outcome.message else ''}")
        else:
            logger.warning(f"Simulated card charge failed: {outcome.message}")
        logger.info("Card payments are simulated, placing order as cash on delivery")
    return await orders.place_order(cart, delivery_address)
