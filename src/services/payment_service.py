"""Paystack checkout, verification and webhook business logic."""

import json
import logging
from typing import Any

from pydantic import ValidationError

from src.api.middleware.error_handler import (
    AuthenticationError,
    BadRequestError,
    ConfigurationError,
    OrderCreationError,
    PaymentGatewayError,
)
from src.core.config import Settings, get_settings
from src.core.paystack import PaystackClient, PaystackError, to_minor_units, verify_signature
from src.models.order import (
    INITIAL_PAYMENT_METHOD,
    ORDER_STATUS_PENDING,
    PAYMENT_STATUS_PENDING,
    OrderCreate,
)
from src.schemas.checkout import CheckoutTotals, PaystackInitRequest, PaystackInitResponse
from src.schemas.paystack import PaystackTransaction, PaystackWebhookEvent, WebhookAck
from src.services.checkout_rules import generate_order_number, round_amount
from src.services.order_matching import match_criteria
from src.services.order_service import OrderPersistenceError, OrderService

logger = logging.getLogger(__name__)


def compute_order_amounts(totals: CheckoutTotals) -> dict[str, int]:
    """Round the storefront totals into the order's monetary columns.

    When the storefront does not send a grand total it is derived from
    the rounded components.

    Raises:
        BadRequestError: If the discount exceeds the rest of the order.
    """
    subtotal = round_amount(totals.subtotal)
    shipping_cost = round_amount(totals.shipping)
    tax_amount = round_amount(totals.tax)
    discount_amount = round_amount(totals.discount)

    if totals.total is not None:
        total_amount = round_amount(totals.total)
    else:
        total_amount = subtotal + shipping_cost + tax_amount - discount_amount
        if total_amount < 0:
            raise BadRequestError("Discount exceeds order total")

    return {
        "subtotal": subtotal,
        "shipping_cost": shipping_cost,
        "tax_amount": tax_amount,
        "discount_amount": discount_amount,
        "total_amount": total_amount,
    }


class PaymentService:
    """Drives an order from creation to confirmed/paid through Paystack.

    The three entry points (initiation, client verification and the
    provider webhook) converge on the same idempotent order update.
    """

    def __init__(
        self,
        paystack: PaystackClient,
        orders: OrderService | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize payment service with clients."""
        self.paystack = paystack
        self.orders = orders or OrderService()
        self.settings = settings or get_settings()

    def _require_secret(self) -> None:
        if not self.paystack.is_configured:
            logger.error("Missing PAYSTACK_SECRET_KEY")
            raise ConfigurationError("Server misconfiguration: PAYSTACK_SECRET_KEY missing")

    def callback_url(self, request_base_url: str) -> str:
        """Build the URL Paystack sends the shopper back to.

        Args:
            request_base_url: scheme://host derived from the incoming request.

        Returns:
            str: Callback URL, using the configured base URL if one is set.
        """
        base_url = self.settings.paystack_callback_url_base or request_base_url
        return f"{base_url.rstrip('/')}{self.settings.paystack_callback_path}"

    async def initiate_checkout(
        self,
        data: PaystackInitRequest,
        request_base_url: str,
    ) -> PaystackInitResponse:
        """Create a pending order and initialize its Paystack transaction.

        Args:
            data: Validated checkout request.
            request_base_url: scheme://host of the incoming request.

        Returns:
            PaystackInitResponse: Redirect URL, reference and order identifiers.

        Raises:
            ConfigurationError: If the Paystack secret is not configured.
            BadRequestError: If the totals come to less than zero.
            OrderCreationError: If the order row could not be inserted.
            PaymentGatewayError: If Paystack rejected the initialization.
        """
        self._require_secret()

        currency = data.currency or self.settings.default_currency.upper()
        amounts = compute_order_amounts(data.totals)
        email = str(data.email)

        order_data: OrderCreate = {
            "order_number": generate_order_number(),
            "user_id": data.user_id or None,
            "guest_email": None if data.user_id else email,
            "guest_phone": None if data.user_id else data.phone,
            "status": ORDER_STATUS_PENDING,
            "payment_status": PAYMENT_STATUS_PENDING,
            "payment_method": INITIAL_PAYMENT_METHOD,
            "currency": currency,
            "shipping_address": data.shipping_address,
            **amounts,
        }

        try:
            order = await self.orders.create_order(order_data)
        except OrderPersistenceError as e:
            raise OrderCreationError() from e

        order_id = str(order["id"])
        order_number = order.get("order_number") or order_data["order_number"]

        await self.orders.create_order_items(order_id, data.items)

        try:
            result = await self.paystack.initialize_transaction(
                email=email,
                amount=to_minor_units(amounts["total_amount"]),
                currency=currency,
                callback_url=self.callback_url(request_base_url),
                metadata={
                    "order_id": order_id,
                    "order_number": order_number,
                    "customer_email": email,
                },
            )
        except PaystackError as e:
            logger.error("Paystack init failed for order %s: %s", order_id, e.message)
            raise PaymentGatewayError("Failed to initialize Paystack", provider_response=e.payload) from e

        transaction = result.get("data") or {}
        authorization_url = transaction.get("authorization_url")
        reference = transaction.get("reference")
        if not authorization_url or not reference:
            logger.error("Paystack init for order %s returned no authorization_url/reference", order_id)
            raise PaymentGatewayError("Failed to initialize Paystack", provider_response=result)

        await self.orders.attach_reference(order_id, reference)

        logger.info("Initialized Paystack transaction %s for order %s", reference, order_id)
        return PaystackInitResponse(
            authorization_url=authorization_url,
            reference=reference,
            order_id=order_id,
            order_number=order_number,
        )

    async def verify_payment(self, reference: str) -> dict[str, Any]:
        """Verify a transaction and mark its order paid when it succeeded.

        The local update is a safety net for missed webhooks, so any
        failure there is logged and the provider payload is still returned.

        Args:
            reference: Paystack transaction reference.

        Returns:
            dict: Raw Paystack verification payload.

        Raises:
            BadRequestError: If the reference is blank.
            ConfigurationError: If the Paystack secret is not configured.
            PaymentGatewayError: If Paystack could not be reached.
        """
        if not reference or not reference.strip():
            raise BadRequestError("Missing reference")
        self._require_secret()

        try:
            result = await self.paystack.verify_transaction(reference)
        except PaystackError as e:
            raise PaymentGatewayError("Failed to verify Paystack transaction", provider_response=e.payload) from e

        data = result.get("data")
        if not isinstance(data, dict):
            return result

        try:
            transaction = PaystackTransaction.model_validate(data)
        except ValidationError as e:
            logger.error("Malformed verify data for %s: %d errors", reference, e.error_count())
            return result

        if not transaction.is_successful:
            return result

        # The reference the shopper returned with is authoritative here
        transaction.reference = reference
        try:
            outcome = await self.orders.apply_payment(transaction)
        except OrderPersistenceError as e:
            logger.error("Order update on verify failed for %s: %s", reference, str(e))
            return result

        if not outcome.updated:
            logger.error("Verified payment %s matched no order", reference)
        return result

    async def handle_webhook(self, raw_body: bytes, signature: str | None) -> WebhookAck:
        """Authenticate and process a Paystack webhook delivery.

        Only authentication problems are reported as errors. Once the
        signature checks out every outcome is acknowledged so Paystack
        does not keep redelivering; failed updates are logged for manual
        reconciliation.

        Args:
            raw_body: Request body exactly as received.
            signature: Value of the x-paystack-signature header.

        Returns:
            WebhookAck: Acknowledgement for Paystack.

        Raises:
            ConfigurationError: If the Paystack secret is not configured.
            BadRequestError: If the signature header is missing.
            AuthenticationError: If the signature does not match.
        """
        self._require_secret()

        if not signature:
            raise BadRequestError("Missing signature")

        if not verify_signature(raw_body, signature, self.paystack.secret_key):
            logger.warning("Rejected Paystack webhook with invalid signature (%d bytes)", len(raw_body))
            raise AuthenticationError("Invalid signature")

        try:
            event = PaystackWebhookEvent.model_validate(json.loads(raw_body))
        except (ValueError, ValidationError) as e:
            logger.error("Unparseable Paystack webhook payload: %s", type(e).__name__)
            return WebhookAck()

        if not event.is_charge_success:
            logger.info("Acknowledged Paystack event %s", event.event)
            return WebhookAck()

        try:
            transaction = PaystackTransaction.model_validate(event.data)
        except ValidationError as e:
            logger.error("Malformed charge.success data: %d errors", e.error_count())
            return WebhookAck(updated=False)

        if not match_criteria(transaction):
            logger.warning("charge.success carries no reference or order identifier")
            return WebhookAck()

        try:
            outcome = await self.orders.apply_payment(transaction)
        except OrderPersistenceError as e:
            logger.error("Order update for charge %s failed: %s", transaction.reference, str(e))
            return WebhookAck(updated=False)

        if not outcome.updated:
            logger.error(
                "charge.success %s matched no order; needs manual reconciliation",
                transaction.reference,
            )
        return WebhookAck(updated=outcome.updated)
