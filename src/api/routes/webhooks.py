"""Webhook API routes for external service integrations."""

import logging

from fastapi import APIRouter, Header, Request, status

from src.api.deps import PaymentServiceDep
from src.schemas.paystack import WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post(
    "/paystack-webhook",
    response_model=WebhookAck,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Handle Paystack webhooks",
    description="Receives Paystack events. Requires a valid x-paystack-signature.",
    responses={
        400: {"description": "Missing signature"},
        401: {"description": "Invalid signature"},
    },
)
async def paystack_webhook(
    request: Request,
    service: PaymentServiceDep,
    x_paystack_signature: str | None = Header(default=None),
) -> WebhookAck:
    """Handle Paystack webhook events.

    The signature is checked against the raw body before anything is
    parsed. Handles charge.success by marking the matching order
    confirmed and paid; other events are acknowledged and ignored.

    Args:
        request: FastAPI request object for reading the raw body.
        service: Payment service.
        x_paystack_signature: HMAC-SHA512 of the body, hex encoded.

    Returns:
        WebhookAck: received, plus updated for charge.success events.
    """
    payload = await request.body()
    logger.debug("Received Paystack webhook (%d bytes)", len(payload))
    return await service.handle_webhook(payload, x_paystack_signature)
