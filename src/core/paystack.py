"""Paystack API client and webhook signature helpers."""

import hashlib
import hmac
import logging
from typing import Any
from urllib.parse import quote

import httpx

from src.core.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.paystack.co"

# Paystack amounts are expressed in the currency's subunit (kobo, pesewas, cents)
MINOR_UNITS_PER_MAJOR = 100


class PaystackError(Exception):
    """Raised when Paystack rejects a request or cannot be reached.

    Carries the provider payload (when one was returned) so callers can
    echo it back for debugging.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)


def to_minor_units(amount: int) -> int:
    """Convert a whole-unit amount to Paystack's minor unit."""
    return int(amount) * MINOR_UNITS_PER_MAJOR


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Compute the hex HMAC-SHA512 Paystack sends in x-paystack-signature."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


def verify_signature(raw_body: bytes, signature: str, secret: str) -> bool:
    """Check a webhook signature against the raw request body.

    The comparison runs over the decoded digest bytes in constant time.
    A signature that is not valid hex, or has the wrong length, never
    matches.

    Args:
        raw_body: Request body exactly as received.
        signature: Value of the x-paystack-signature header.
        secret: Paystack secret key.

    Returns:
        bool: True if the signature is authentic.
    """
    try:
        provided = bytes.fromhex(signature.strip())
    except ValueError:
        return False

    expected = bytes.fromhex(compute_signature(raw_body, secret))
    if len(provided) != len(expected):
        return False
    return hmac.compare_digest(provided, expected)


class PaystackClient:
    """Thin async client for the Paystack transaction API.

    One instance is created at application startup and shared across
    requests via dependency injection. Pass ``transport`` to route calls
    through a custom httpx transport (used by tests).
    """

    def __init__(
        self,
        secret_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.secret_key = secret_key
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {secret_key}",
                "Content-Type": "application/json",
            },
        )

    @property
    def is_configured(self) -> bool:
        """Whether a secret key is available for API calls and signatures."""
        return bool(self.secret_key)

    async def initialize_transaction(
        self,
        email: str,
        amount: int,
        currency: str,
        callback_url: str,
        metadata: dict[str, Any],
    ) -> dict[str, Any]:
        """Initialize a transaction and obtain a hosted payment page.

        Args:
            email: Customer email.
            amount: Amount in the currency's minor unit.
            currency: ISO currency code.
            callback_url: Where Paystack redirects the shopper afterwards.
            metadata: Correlation data echoed back on verify and webhook.

        Returns:
            dict: Provider response; ``data`` holds authorization_url and reference.

        Raises:
            PaystackError: If Paystack rejects the request or is unreachable.
        """
        body = {
            "email": email,
            "amount": amount,
            "currency": currency,
            "callback_url": callback_url,
            "metadata": metadata,
        }
        response = await self._request("POST", "/transaction/initialize", json=body)
        payload = self._parse(response)

        if not response.is_success or not payload.get("status"):
            logger.error(
                "Paystack initialize rejected (status=%d): %s",
                response.status_code,
                payload.get("message"),
            )
            raise PaystackError(
                "Failed to initialize Paystack",
                status_code=response.status_code,
                payload=payload,
            )

        return payload

    async def verify_transaction(self, reference: str) -> dict[str, Any]:
        """Look up a transaction by reference.

        The provider response is returned as-is, including failed or
        abandoned transactions and 4xx bodies such as "Transaction
        reference not found".

        Raises:
            PaystackError: If Paystack is unreachable or returns a non-JSON body.
        """
        path = f"/transaction/verify/{quote(reference, safe='')}"
        response = await self._request("GET", path)
        return self._parse(response)

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Paystack request %s %s failed: %s", method, path, str(e))
            raise PaystackError(f"Paystack request failed: {e}") from e

    @staticmethod
    def _parse(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise PaystackError(
                "Paystack returned a non-JSON response",
                status_code=response.status_code,
            ) from e
        if not isinstance(payload, dict):
            raise PaystackError(
                "Paystack returned an unexpected response",
                status_code=response.status_code,
            )
        return payload


# Process-wide client, created at startup
_paystack_client: PaystackClient | None = None


def get_paystack_client() -> PaystackClient:
    """Get or create the global Paystack client instance."""
    global _paystack_client
    if _paystack_client is None:
        settings = get_settings()
        if not settings.paystack_secret_key:
            logger.warning("Paystack secret key not configured. Payment features will not work.")
        _paystack_client = PaystackClient(
            secret_key=settings.paystack_secret_key,
            base_url=settings.paystack_base_url,
            timeout=settings.paystack_timeout_seconds,
        )
    return _paystack_client


async def init_paystack_client() -> PaystackClient:
    """Create the Paystack client. Call at app startup."""
    return get_paystack_client()


async def shutdown_paystack_client() -> None:
    """Close the Paystack client. Call at app shutdown."""
    global _paystack_client
    if _paystack_client:
        await _paystack_client.aclose()
        _paystack_client = None
