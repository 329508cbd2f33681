"""Unit tests for PaymentService."""

import json
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.api.middleware.error_handler import (
    AuthenticationError,
    BadRequestError,
    ConfigurationError,
    OrderCreationError,
    PaymentGatewayError,
)
from src.core.paystack import PaystackClient
from src.schemas.checkout import CheckoutTotals, PaystackInitRequest
from src.services.order_service import OrderService, PaymentApplyResult
from src.services.payment_service import PaymentService, compute_order_amounts


@pytest.fixture
def mock_settings() -> MagicMock:
    """Create mock settings."""
    settings = MagicMock()
    settings.paystack_callback_url_base = ""
    settings.paystack_callback_path = "/checkout/callback"
    settings.default_currency = "ngn"
    return settings


@pytest.fixture
def payment_service(paystack_client: PaystackClient, fake_db: Any, mock_settings: MagicMock) -> PaymentService:
    """PaymentService with the scripted Paystack API and in-memory database."""
    return PaymentService(paystack=paystack_client, orders=OrderService(client=fake_db), settings=mock_settings)


@pytest.fixture
def init_request() -> PaystackInitRequest:
    return PaystackInitRequest.model_validate(
        {
            "email": "a@b.com",
            "items": [{"product": {"id": 1, "price": 5000}, "quantity": 2}],
            "totals": {"subtotal": 10000, "shipping": 500, "tax": 0, "discount": 0, "total": 10500},
        }
    )


class TestComputeOrderAmounts:
    """Tests for compute_order_amounts."""

    def test_uses_explicit_total(self) -> None:
        amounts = compute_order_amounts(CheckoutTotals(subtotal=100, shipping=10, total=999.5))

        assert amounts["total_amount"] == 1000

    def test_derives_total_from_rounded_parts(self) -> None:
        amounts = compute_order_amounts(CheckoutTotals(subtotal=100.5, shipping=10.4, tax=7.5, discount=20.5))

        assert amounts == {
            "subtotal": 101,
            "shipping_cost": 10,
            "tax_amount": 8,
            "discount_amount": 21,
            "total_amount": 101 + 10 + 8 - 21,
        }

    def test_rejects_discount_larger_than_order(self) -> None:
        with pytest.raises(BadRequestError, match="Discount exceeds order total"):
            compute_order_amounts(CheckoutTotals(subtotal=10, discount=50))

    def test_allows_zero_derived_total(self) -> None:
        amounts = compute_order_amounts(CheckoutTotals(subtotal=50, discount=50))

        assert amounts["total_amount"] == 0


class TestCallbackUrl:
    def test_derives_from_request(self, payment_service: PaymentService) -> None:
        assert payment_service.callback_url("https://shop.ng") == "https://shop.ng/checkout/callback"

    def test_prefers_configured_base(self, payment_service: PaymentService, mock_settings: MagicMock) -> None:
        mock_settings.paystack_callback_url_base = "https://buy.example.ng/"

        assert payment_service.callback_url("http://internal:8080") == "https://buy.example.ng/checkout/callback"


class TestInitiateCheckout:
    """Tests for initiate_checkout."""

    @pytest.mark.asyncio
    async def test_creates_order_then_initializes(
        self,
        payment_service: PaymentService,
        init_request: PaystackInitRequest,
        fake_db: Any,
        fake_paystack: Any,
    ) -> None:
        result = await payment_service.initiate_checkout(init_request, "https://shop.ng")

        assert result.reference == "ref_abc123"
        order = fake_db.row("orders", result.order_id)
        assert order["currency"] == "NGN"
        assert order["payment_method"] == "paystack"
        assert order["order_number"].startswith("FF-")
        sent = json.loads(fake_paystack.calls_to("/transaction/initialize")[0].content)
        assert sent["amount"] == 1050000
        assert sent["callback_url"] == "https://shop.ng/checkout/callback"
        assert sent["metadata"] == {
            "order_id": result.order_id,
            "order_number": result.order_number,
            "customer_email": "a@b.com",
        }

    @pytest.mark.asyncio
    async def test_prefers_database_order_number(
        self,
        paystack_client: PaystackClient,
        mock_settings: MagicMock,
        init_request: PaystackInitRequest,
    ) -> None:
        orders = MagicMock(spec=OrderService)
        orders.create_order = AsyncMock(return_value={"id": 17, "order_number": "ORD-0017"})
        orders.create_order_items = AsyncMock(return_value=True)
        orders.attach_reference = AsyncMock(return_value=True)
        service = PaymentService(paystack=paystack_client, orders=orders, settings=mock_settings)

        result = await service.initiate_checkout(init_request, "https://shop.ng")

        assert result.order_id == "17"
        assert result.order_number == "ORD-0017"
        orders.attach_reference.assert_awaited_once_with("17", "ref_abc123")

    @pytest.mark.asyncio
    async def test_raises_when_order_insert_fails(
        self,
        payment_service: PaymentService,
        init_request: PaystackInitRequest,
        fake_db: Any,
        fake_paystack: Any,
    ) -> None:
        fake_db.failures.add(("orders", "insert"))

        with pytest.raises(OrderCreationError):
            await payment_service.initiate_checkout(init_request, "https://shop.ng")

        assert fake_paystack.requests == []

    @pytest.mark.asyncio
    async def test_raises_gateway_error_with_provider_payload(
        self,
        payment_service: PaymentService,
        init_request: PaystackInitRequest,
        fake_paystack: Any,
    ) -> None:
        fake_paystack.init_response = (400, {"status": False, "message": "Currency not supported"})

        with pytest.raises(PaymentGatewayError) as exc_info:
            await payment_service.initiate_checkout(init_request, "https://shop.ng")

        assert exc_info.value.status_code == 502
        assert exc_info.value.provider_response == {"status": False, "message": "Currency not supported"}

    @pytest.mark.asyncio
    async def test_raises_when_provider_omits_reference(
        self,
        payment_service: PaymentService,
        init_request: PaystackInitRequest,
        fake_paystack: Any,
    ) -> None:
        fake_paystack.init_response = (200, {"status": True, "data": {}})

        with pytest.raises(PaymentGatewayError):
            await payment_service.initiate_checkout(init_request, "https://shop.ng")

    @pytest.mark.asyncio
    async def test_requires_secret(
        self, fake_db: Any, mock_settings: MagicMock, init_request: PaystackInitRequest
    ) -> None:
        service = PaymentService(
            paystack=PaystackClient(secret_key=""), orders=OrderService(client=fake_db), settings=mock_settings
        )

        with pytest.raises(ConfigurationError):
            await service.initiate_checkout(init_request, "https://shop.ng")

        assert fake_db.writes == []


class TestVerifyPayment:
    """Tests for verify_payment."""

    @pytest.mark.asyncio
    async def test_rejects_blank_reference(self, payment_service: PaymentService) -> None:
        with pytest.raises(BadRequestError):
            await payment_service.verify_payment("   ")

    @pytest.mark.asyncio
    async def test_uses_requested_reference_for_update(
        self, payment_service: PaymentService, fake_db: Any, fake_paystack: Any
    ) -> None:
        fake_db.seed("orders", {"id": "order-1", "payment_intent_id": "ref_requested"})
        fake_paystack.verify_response[1]["data"]["reference"] = "ref_other"

        await payment_service.verify_payment("ref_requested")

        assert fake_db.row("orders", "order-1")["payment_status"] == "paid"

    @pytest.mark.asyncio
    async def test_swallows_update_failures(
        self, payment_service: PaymentService, fake_db: Any, fake_paystack: Any
    ) -> None:
        fake_db.failures.add(("orders", "update"))

        result = await payment_service.verify_payment("ref_abc123")

        assert result == fake_paystack.verify_response[1]

    @pytest.mark.asyncio
    async def test_skips_update_for_unsuccessful_transaction(
        self, payment_service: PaymentService, fake_paystack: Any
    ) -> None:
        payment_service.orders = MagicMock(spec=OrderService)
        fake_paystack.verify_response[1]["data"]["status"] = "abandoned"

        result = await payment_service.verify_payment("ref_abc123")

        assert result["data"]["status"] == "abandoned"
        payment_service.orders.apply_payment.assert_not_called()

    @pytest.mark.asyncio
    async def test_numeric_order_number_reaches_update(
        self, payment_service: PaymentService, fake_db: Any, fake_paystack: Any
    ) -> None:
        fake_db.seed("orders", {"id": "order-1", "order_number": "1001", "payment_status": "pending"})
        fake_paystack.verify_response[1]["data"]["metadata"] = {"order_number": 1001}

        await payment_service.verify_payment("ref_unknown")

        assert fake_db.row("orders", "order-1")["payment_status"] == "paid"


class TestHandleWebhook:
    """Tests for handle_webhook."""

    @pytest.mark.asyncio
    async def test_rejects_missing_signature(self, payment_service: PaymentService) -> None:
        with pytest.raises(BadRequestError):
            await payment_service.handle_webhook(b"{}", None)

    @pytest.mark.asyncio
    async def test_rejects_bad_signature_before_parsing(self, payment_service: PaymentService) -> None:
        payment_service.orders = MagicMock(spec=OrderService)

        with pytest.raises(AuthenticationError):
            await payment_service.handle_webhook(b"{not json", "00" * 64)

        payment_service.orders.apply_payment.assert_not_called()

    @pytest.mark.asyncio
    async def test_applies_charge_success(
        self,
        payment_service: PaymentService,
        sign_payload: Callable[[bytes], str],
    ) -> None:
        orders = MagicMock(spec=OrderService)
        orders.apply_payment = AsyncMock(return_value=PaymentApplyResult(updated=True, matched_by="order_id"))
        payment_service.orders = orders
        body = json.dumps(
            {"event": "charge.success", "data": {"reference": "ref_1", "metadata": {"order_id": "order-1"}}}
        ).encode()

        ack = await payment_service.handle_webhook(body, sign_payload(body))

        assert ack.received is True
        assert ack.updated is True
        transaction = orders.apply_payment.await_args.args[0]
        assert transaction.reference == "ref_1"
        assert transaction.metadata.order_id == "order-1"

    @pytest.mark.asyncio
    async def test_acknowledges_envelope_without_event(
        self,
        payment_service: PaymentService,
        sign_payload: Callable[[bytes], str],
        fake_db: Any,
    ) -> None:
        body = json.dumps({"data": {"reference": "ref_1"}}).encode()

        ack = await payment_service.handle_webhook(body, sign_payload(body))

        assert ack.updated is None
        assert fake_db.writes == []

    @pytest.mark.asyncio
    async def test_acknowledges_charge_without_identifiers(
        self,
        payment_service: PaymentService,
        sign_payload: Callable[[bytes], str],
    ) -> None:
        payment_service.orders = MagicMock(spec=OrderService)
        body = json.dumps({"event": "charge.success", "data": {"status": "success", "metadata": ""}}).encode()

        ack = await payment_service.handle_webhook(body, sign_payload(body))

        assert ack.updated is None
        payment_service.orders.apply_payment.assert_not_called()
