"""Database model type definitions."""

from src.models.order import Order, OrderCreate, OrderItemCreate, PaymentUpdate

__all__ = [
    "Order",
    "OrderCreate",
    "OrderItemCreate",
    "PaymentUpdate",
]
