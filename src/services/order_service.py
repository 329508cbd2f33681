"""Order persistence in Supabase."""

import logging
from dataclasses import dataclass
from typing import Any

from supabase import Client

from src.core.supabase import get_supabase_client
from src.models.order import OrderCreate, OrderItemCreate, build_payment_update
from src.schemas.checkout import CartItem
from src.schemas.paystack import PaystackTransaction
from src.services.checkout_rules import round_amount
from src.services.order_matching import DEFAULT_MATCHERS, OrderMatcher, match_criteria

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT_NAME = "Product"


class OrderPersistenceError(Exception):
    """Raised when an order write fails in the database."""


@dataclass
class PaymentApplyResult:
    """Outcome of applying a successful charge to the orders table."""

    updated: bool
    matched_by: str | None = None
    order_id: str | None = None


def build_order_items(order_id: str, items: list[CartItem]) -> list[OrderItemCreate]:
    """Denormalize cart lines into order_items rows."""
    rows: list[OrderItemCreate] = []
    for item in items:
        product = item.product
        color = item.selected_color
        price = product.price if product else 0
        rows.append(
            {
                "order_id": order_id,
                "product_id": str(product.id) if product and product.id is not None else None,
                "product_name": (product.name if product else None) or DEFAULT_PRODUCT_NAME,
                "product_slug": product.slug if product else None,
                "product_image_url": color.front_image if color else None,
                "color_name": color.name if color else None,
                "color_hex": color.hex if color else None,
                "size": item.selected_size,
                "unit_price": round_amount(price),
                "quantity": round_amount(item.quantity),
                "total_price": round_amount(price * item.quantity),
            }
        )
    return rows


class OrderService:
    """Reads and writes orders and their line items."""

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    async def create_order(self, order_data: OrderCreate) -> dict[str, Any]:
        """Insert an order row.

        Args:
            order_data: Column values for the new order.

        Returns:
            dict: The inserted row, including database-generated fields.

        Raises:
            OrderPersistenceError: If the insert fails or returns no row.
        """
        try:
            response = self.client.table("orders").insert(order_data).execute()
        except Exception as e:
            logger.error("Order insert error: %s", str(e))
            raise OrderPersistenceError("Failed to create order") from e

        if not response.data:
            logger.error("Order insert returned no rows")
            raise OrderPersistenceError("Failed to create order")

        return response.data[0]

    async def get_order(self, order_id: str) -> dict[str, Any] | None:
        """Get an order by ID.

        Args:
            order_id: The order's ID.

        Returns:
            dict | None: The order data or None if not found.
        """
        response = (
            self.client.table("orders")
            .select("*")
            .eq("id", str(order_id))
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None

    async def get_order_by_reference(self, reference: str) -> dict[str, Any] | None:
        """Get the order a Paystack reference was attached to.

        Args:
            reference: Paystack transaction reference.

        Returns:
            dict | None: The order data or None if not found.
        """
        response = (
            self.client.table("orders")
            .select("*")
            .eq("payment_intent_id", reference)
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None

    async def create_order_items(self, order_id: str, items: list[CartItem]) -> bool:
        """Insert line items for an order.

        Failure is logged and reported through the return value only; the
        order itself stays in place and needs manual reconciliation.

        Returns:
            bool: True if the items were stored.
        """
        rows = build_order_items(order_id, items)
        try:
            self.client.table("order_items").insert(rows).execute()
        except Exception as e:
            logger.error(
                "Order items insert error for order %s (%d items): %s",
                order_id,
                len(rows),
                str(e),
            )
            return False
        return True

    async def attach_reference(self, order_id: str, reference: str) -> bool:
        """Store the Paystack reference on an order for later correlation.

        Returns:
            bool: True if the reference was stored.
        """
        try:
            self.client.table("orders").update(
                {"payment_intent_id": reference}
            ).eq("id", order_id).execute()
        except Exception as e:
            logger.error("Failed to store reference %s on order %s: %s", reference, order_id, str(e))
            return False
        return True

    async def apply_payment(
        self,
        transaction: PaystackTransaction,
        matchers: tuple[OrderMatcher, ...] = DEFAULT_MATCHERS,
    ) -> PaymentApplyResult:
        """Mark the matching order confirmed and paid.

        Each matcher's criterion is tried in precedence order until one
        updates a row. The write is a blind overwrite of the same
        field-set, so repeating it is harmless.

        Args:
            transaction: Successful Paystack transaction.
            matchers: Matchers in precedence order.

        Returns:
            PaymentApplyResult: Whether an order was updated, and how it matched.

        Raises:
            OrderPersistenceError: If the database rejects the update.
        """
        criteria = match_criteria(transaction, matchers)
        if not criteria:
            logger.warning("Transaction %s carries no order identifier", transaction.reference)
            return PaymentApplyResult(updated=False)

        update_fields = build_payment_update(transaction.reference, transaction.channel)

        for criterion in criteria:
            try:
                response = (
                    self.client.table("orders")
                    .update(update_fields)
                    .eq(criterion.column, criterion.value)
                    .execute()
                )
            except Exception as e:
                logger.error(
                    "Order update error matching %s=%s: %s",
                    criterion.column,
                    criterion.value,
                    str(e),
                )
                raise OrderPersistenceError("Failed to update order payment status") from e

            if response.data:
                order_id = str(response.data[0].get("id"))
                logger.info(
                    "Order %s marked paid via %s (reference %s)",
                    order_id,
                    criterion.matcher,
                    transaction.reference,
                )
                return PaymentApplyResult(updated=True, matched_by=criterion.matcher, order_id=order_id)

            logger.debug("No order matched %s=%s", criterion.column, criterion.value)

        return PaymentApplyResult(updated=False)
