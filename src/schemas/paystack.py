"""Pydantic schemas for payloads received from Paystack."""

import json
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

CHARGE_SUCCESS = "charge.success"
TRANSACTION_SUCCESS = "success"


class PaystackMetadata(BaseModel):
    """Correlation metadata attached at initialization and echoed back.

    Accepts both snake_case and camelCase keys since older storefront
    builds sent camelCase.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    order_id: str | int | None = Field(
        default=None,
        validation_alias=AliasChoices("order_id", "orderId"),
    )
    order_number: str | int | None = Field(
        default=None,
        validation_alias=AliasChoices("order_number", "orderNumber"),
    )
    customer_email: str | None = None


class PaystackTransaction(BaseModel):
    """Transaction object found in verify responses and webhook data."""

    model_config = ConfigDict(extra="allow")

    reference: str | None = None
    status: str | None = None
    channel: str | None = None
    amount: int | None = None
    currency: str | None = None
    metadata: PaystackMetadata = Field(default_factory=PaystackMetadata)

    @field_validator("metadata", mode="before")
    @classmethod
    def coerce_metadata(cls, value: Any) -> Any:
        """Paystack sends "" or a JSON string when metadata is absent or flat."""
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return {}
        if not isinstance(value, dict):
            return {}
        return value

    @property
    def is_successful(self) -> bool:
        return self.status == TRANSACTION_SUCCESS


class PaystackWebhookEvent(BaseModel):
    """Envelope of a Paystack webhook delivery."""

    model_config = ConfigDict(extra="allow")

    event: str = Field(min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_charge_success(self) -> bool:
        return self.event == CHARGE_SUCCESS


class WebhookAck(BaseModel):
    """Acknowledgement returned to Paystack for every authenticated delivery."""

    received: bool = True
    updated: bool | None = None
