"""Checkout API routes for the Paystack payment flow."""

from typing import Any

from fastapi import APIRouter, Query, status

from src.api.deps import PaymentServiceDep, RequestBaseUrl
from src.schemas.checkout import CheckoutQuoteResponse, PaystackInitRequest, PaystackInitResponse
from src.services.checkout_rules import calculate_shipping, calculate_tax

router = APIRouter(tags=["checkout"])


@router.post(
    "/paystack-init",
    response_model=PaystackInitResponse,
    status_code=status.HTTP_200_OK,
    summary="Start a Paystack checkout",
    description="Creates a pending order and initializes a Paystack transaction for it.",
    responses={
        400: {"description": "Missing or invalid fields"},
        500: {"description": "Server misconfiguration or order creation failure"},
        502: {"description": "Paystack rejected the initialization"},
    },
)
async def paystack_init(
    data: PaystackInitRequest,
    service: PaymentServiceDep,
    base_url: RequestBaseUrl,
) -> PaystackInitResponse:
    """Create an order and return the Paystack hosted page to redirect to.

    Args:
        data: Cart, contact details and totals from the storefront.
        service: Payment service.
        base_url: scheme://host of this request, used for the callback URL.

    Returns:
        PaystackInitResponse: authorization_url, reference, order_id, order_number.
    """
    return await service.initiate_checkout(data, base_url)


@router.get(
    "/paystack-verify",
    status_code=status.HTTP_200_OK,
    summary="Verify a Paystack transaction",
    description=(
        "Looks up a transaction by reference and marks the order paid if it "
        "succeeded. Returns the Paystack payload unchanged."
    ),
    responses={
        400: {"description": "Missing reference"},
        500: {"description": "Server misconfiguration"},
        502: {"description": "Paystack unreachable"},
    },
)
async def paystack_verify(
    service: PaymentServiceDep,
    reference: str = Query(..., description="Paystack transaction reference"),
) -> dict[str, Any]:
    """Verify a payment when the shopper returns from Paystack."""
    return await service.verify_payment(reference)


@router.get(
    "/checkout/quote",
    response_model=CheckoutQuoteResponse,
    summary="Shipping and tax quote",
    description="Returns the shipping cost and tax for a destination state and subtotal.",
)
async def checkout_quote(
    subtotal: float = Query(..., ge=0, description="Cart subtotal"),
    state: str | None = Query(default=None, description="Destination state"),
) -> CheckoutQuoteResponse:
    """Quote shipping and tax so the storefront shows the backend's figures."""
    return CheckoutQuoteResponse(
        state=state,
        shipping=calculate_shipping(state),
        tax=calculate_tax(subtotal, state),
    )
