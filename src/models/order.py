"""Order model type definitions for database operations."""

from datetime import datetime
from typing import Any, Literal, TypedDict


# Lifecycle values owned by the payment flow. Fulfilment states are set elsewhere.
OrderStatus = Literal["pending", "confirmed"]
PaymentStatus = Literal["pending", "paid"]

ORDER_STATUS_PENDING: OrderStatus = "pending"
ORDER_STATUS_CONFIRMED: OrderStatus = "confirmed"
PAYMENT_STATUS_PENDING: PaymentStatus = "pending"
PAYMENT_STATUS_PAID: PaymentStatus = "paid"

# payment_method until the provider reports the actual channel
INITIAL_PAYMENT_METHOD = "paystack"
DEFAULT_PAYMENT_CHANNEL = "card"


class Order(TypedDict):
    """Order table row representation.

    Monetary fields are integers in whole currency units and are
    fixed once the row is inserted.
    """

    id: str
    order_number: str
    user_id: str | None
    guest_email: str | None
    guest_phone: str | None
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: str | None
    payment_intent_id: str | None
    subtotal: int
    shipping_cost: int
    tax_amount: int
    discount_amount: int
    total_amount: int
    currency: str
    shipping_address: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class OrderCreate(TypedDict, total=False):
    """Data required to create a new order."""

    order_number: str
    user_id: str | None
    guest_email: str | None
    guest_phone: str | None
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: str
    subtotal: int
    shipping_cost: int
    tax_amount: int
    discount_amount: int
    total_amount: int
    currency: str
    shipping_address: dict[str, Any]


class OrderItemCreate(TypedDict):
    """One order_items row.

    Product details are copied at purchase time so the line survives
    catalog edits. product_id is informational and may be null.
    """

    order_id: str
    product_id: str | None
    product_name: str
    product_slug: str | None
    product_image_url: str | None
    color_name: str | None
    color_hex: str | None
    size: str | None
    unit_price: int
    quantity: int
    total_price: int


class PaymentUpdate(TypedDict):
    """Field-set written by every payment confirmation path."""

    payment_status: PaymentStatus
    status: OrderStatus
    payment_method: str
    payment_intent_id: str | None


def build_payment_update(reference: str | None, channel: str | None) -> PaymentUpdate:
    """Build the confirmed/paid field-set for a successful charge."""
    return {
        "payment_status": PAYMENT_STATUS_PAID,
        "status": ORDER_STATUS_CONFIRMED,
        "payment_method": channel or DEFAULT_PAYMENT_CHANNEL,
        "payment_intent_id": reference,
    }
