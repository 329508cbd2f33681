"""Checkout Pydantic schemas for API request/response models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from src.services.checkout_rules import format_phone_number, validate_nigerian_phone


class CartColor(BaseModel):
    """Colour variant selected for a cart line."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    name: str | None = Field(default=None, description="Colour name")
    hex: str | None = Field(default=None, description="Colour hex code")
    images: dict[str, str | None] | None = Field(default=None, description="Variant images keyed by view")

    @property
    def front_image(self) -> str | None:
        """Front view image URL if the variant has one."""
        return (self.images or {}).get("front")


class CartProduct(BaseModel):
    """Product snapshot as held in the storefront cart."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str | int | None = Field(default=None, description="Product identifier")
    name: str | None = Field(default=None, description="Product name")
    slug: str | None = Field(default=None, description="Product slug")
    price: float = Field(default=0, ge=0, description="Unit price in whole currency units")


class CartItem(BaseModel):
    """One line of the shopper's cart."""

    model_config = ConfigDict(from_attributes=True, extra="ignore", populate_by_name=True)

    product: CartProduct | None = Field(default=None, description="Product snapshot")
    quantity: float = Field(default=1, gt=0, description="Quantity ordered")
    selected_color: CartColor | None = Field(default=None, alias="selectedColor", description="Chosen colour")
    selected_size: str | None = Field(default=None, alias="selectedSize", description="Chosen size")


class CheckoutTotals(BaseModel):
    """Order totals computed by the storefront, in whole currency units."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    subtotal: float = Field(default=0, ge=0, description="Sum of line totals")
    shipping: float = Field(default=0, ge=0, description="Shipping cost")
    tax: float = Field(default=0, ge=0, description="Tax amount")
    discount: float = Field(default=0, ge=0, description="Discount amount")
    total: float | None = Field(default=None, ge=0, description="Grand total; derived when omitted")


class PaystackInitRequest(BaseModel):
    """Schema for starting a Paystack checkout via POST /paystack-init."""

    model_config = ConfigDict(from_attributes=True)

    email: EmailStr = Field(description="Customer email")
    phone: str | None = Field(default=None, description="Guest phone number")
    shipping_address: dict[str, Any] = Field(default_factory=dict, description="Shipping address")
    items: list[CartItem] = Field(min_length=1, description="Cart lines")
    totals: CheckoutTotals = Field(description="Order totals")
    user_id: str | None = Field(default=None, description="Authenticated user ID, if any")
    currency: str | None = Field(default=None, description="ISO currency code")

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, value: str | None) -> str | None:
        """Format Nigerian mobile numbers; store any other number as given."""
        if not value:
            return None
        if validate_nigerian_phone(value):
            return format_phone_number(value)
        return value

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip().upper() or None


class PaystackInitResponse(BaseModel):
    """Schema for checkout initiation response."""

    model_config = ConfigDict(from_attributes=True)

    authorization_url: str = Field(description="Paystack hosted page to redirect to")
    reference: str = Field(description="Paystack transaction reference")
    order_id: str = Field(description="Created order ID")
    order_number: str | None = Field(default=None, description="Customer-facing order number")


class CheckoutQuoteResponse(BaseModel):
    """Shipping and tax for a destination state."""

    model_config = ConfigDict(from_attributes=True)

    state: str | None = Field(default=None, description="Destination state")
    shipping: int = Field(description="Shipping cost")
    tax: int = Field(description="Tax amount")
