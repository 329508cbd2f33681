"""Pricing and contact rules shared by the storefront checkout and the backend."""

import re
import secrets
import string
import time
from decimal import ROUND_HALF_UP, Decimal

ORDER_NUMBER_PREFIX = "FF"
ORDER_NUMBER_SUFFIX_LENGTH = 9
_ORDER_NUMBER_ALPHABET = string.digits + string.ascii_uppercase

DEFAULT_SHIPPING_COST = 1500
DEFAULT_TAX_RATE = Decimal("0.075")

SHIPPING_RATES: dict[str, int] = {
    "Lagos": 1000,
    "Abuja": 1200,
    "Kano": 1500,
    "Rivers": 1300,
    "Kaduna": 1400,
    "Oyo": 1100,
    "Imo": 1400,
    "Borno": 1800,
    "Anambra": 1300,
    "Sokoto": 1700,
}

TAX_RATES: dict[str, Decimal] = {
    "Lagos": Decimal("0.075"),
    "Abuja": Decimal("0.06"),
    "Kano": Decimal("0.08"),
    "Rivers": Decimal("0.07"),
    "Kaduna": Decimal("0.075"),
    "Oyo": Decimal("0.065"),
    "Imo": Decimal("0.07"),
    "Borno": Decimal("0.08"),
    "Anambra": Decimal("0.07"),
    "Sokoto": Decimal("0.075"),
}

# Digits only; the +234 / 234 / 0 prefixes are all accepted
_NIGERIAN_PHONE_PATTERNS = (
    re.compile(r"^234[789][01]\d{8}$"),
    re.compile(r"^0[789][01]\d{8}$"),
    re.compile(r"^[789][01]\d{8}$"),
)
_NON_DIGITS = re.compile(r"\D")


def round_amount(value: float | int | Decimal | str) -> int:
    """Round a monetary amount to a whole number, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_shipping(state: str | None) -> int:
    """Flat shipping cost for a destination state."""
    return SHIPPING_RATES.get(state or "", DEFAULT_SHIPPING_COST)


def calculate_tax(subtotal: float | int, state: str | None) -> int:
    """Tax on a subtotal at the destination state's rate."""
    rate = TAX_RATES.get(state or "", DEFAULT_TAX_RATE)
    return round_amount(Decimal(str(subtotal)) * rate)


def _digits(phone: str) -> str:
    return _NON_DIGITS.sub("", phone)


def validate_nigerian_phone(phone: str | None) -> bool:
    """Check whether a phone number is a Nigerian mobile number."""
    if not phone:
        return False
    digits = _digits(phone)
    return any(pattern.match(digits) for pattern in _NIGERIAN_PHONE_PATTERNS)


def format_phone_number(phone: str | None) -> str | None:
    """Format a Nigerian mobile number as ``+234 XXX XXX XXXX``.

    Numbers that do not reduce to ten national digits are returned unchanged.
    """
    if not phone:
        return phone

    national = _digits(phone)
    if national.startswith("234"):
        national = national[3:]
    if national.startswith("0"):
        national = national[1:]

    if len(national) == 10:
        return f"+234 {national[:3]} {national[3:6]} {national[6:]}"
    return phone


def generate_order_number() -> str:
    """Generate a customer-facing order number such as ``FF-1718000000000-K3J9QZ0AB``."""
    timestamp_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(ORDER_NUMBER_SUFFIX_LENGTH))
    return f"{ORDER_NUMBER_PREFIX}-{timestamp_ms}-{suffix}"
