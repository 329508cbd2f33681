"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Request

from src.core.config import Settings, get_settings
from src.core.paystack import PaystackClient, get_paystack_client
from src.services.order_service import OrderService
from src.services.payment_service import PaymentService


def get_order_service() -> OrderService:
    """Order service bound to the shared Supabase client."""
    return OrderService()


def get_payment_service(
    paystack: Annotated[PaystackClient, Depends(get_paystack_client)],
    orders: Annotated[OrderService, Depends(get_order_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> PaymentService:
    """Payment service wired to the process-wide Paystack client."""
    return PaymentService(paystack=paystack, orders=orders, settings=settings)


def get_request_base_url(request: Request) -> str:
    """Derive scheme://host for the incoming request.

    Honours X-Forwarded-Proto from the proxy in front of the app and the
    Host header the shopper's browser used.
    """
    forwarded_proto = request.headers.get("x-forwarded-proto", "")
    scheme = forwarded_proto.split(",")[0].strip() or request.url.scheme
    host = request.headers.get("host") or request.url.netloc
    return f"{scheme}://{host}"


PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
RequestBaseUrl = Annotated[str, Depends(get_request_base_url)]
