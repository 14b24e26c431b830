"""Wire schemas for storefront webhooks.

Parsing happens in two phases: ``WebhookEnvelope`` is validated before the
site is known, and the endpoint payload models only after the request has
been authenticated.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

from orderhub.core.money import parse_money


class WebhookEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Missing values fall through to the authenticator, which rejects them
    # as missing fields; wrong types fail validation here.
    site_api_key: StrictStr = ""
    nonce: StrictStr = ""
    timestamp: StrictInt = 0
    signature: StrictStr = ""


def _plain_json(value):
    # Bodies are decoded with Decimal floats; free-form JSON columns need
    # plain numbers.
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {key: _plain_json(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain_json(item) for item in value]
    return value


def _coerce_identifier(value):
    if isinstance(value, bool):
        raise ValueError("identifier must be a string or number")
    if isinstance(value, (int, Decimal)):
        return str(value)
    return value


class OrderItemPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    product_id: Optional[str] = None
    sku: Optional[str] = None
    name: str = ""
    qty: int = Field(default=1, validation_alias=AliasChoices("qty", "quantity"))
    price: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    @field_validator("product_id", "sku", mode="before")
    @classmethod
    def _identifier(cls, value):
        return _coerce_identifier(value)

    @field_validator("qty", mode="before")
    @classmethod
    def _quantity(cls, value):
        if value is None:
            return 1
        quantity = parse_money(value, field="qty")
        if quantity != quantity.to_integral_value():
            raise ValueError("qty must be a whole number")
        return int(quantity)

    @field_validator("price", "subtotal", "total", mode="before")
    @classmethod
    def _money(cls, value, info):
        return parse_money(value, field=info.field_name)


class OrderPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    external_order_id: str = Field(
        min_length=1,
        max_length=128,
        validation_alias=AliasChoices("wc_order_id", "external_order_id"),
    )
    status: str = "pending"
    currency: str = "USD"
    order_total: Decimal
    subtotal: Decimal = Decimal("0")
    discount_total: Decimal = Decimal("0")
    shipping_total: Decimal = Decimal("0")
    tax_total: Decimal = Decimal("0")
    payment_gateway_code: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    shipping_address: Optional[dict[str, Any]] = None
    billing_address: Optional[dict[str, Any]] = None
    placed_at: Optional[datetime] = None

    @field_validator("external_order_id", mode="before")
    @classmethod
    def _identifier(cls, value):
        return _coerce_identifier(value)

    @field_validator("order_total", mode="before")
    @classmethod
    def _required_money(cls, value):
        return parse_money(value, field="order_total", default=None)

    @field_validator("subtotal", "discount_total", "shipping_total", "tax_total", mode="before")
    @classmethod
    def _money(cls, value, info):
        return parse_money(value, field=info.field_name)

    @field_validator("status", "currency", mode="before")
    @classmethod
    def _text(cls, value, info):
        if value is None or (isinstance(value, str) and not value.strip()):
            return "pending" if info.field_name == "status" else "USD"
        return str(value).strip()

    @field_validator("shipping_address", "billing_address", mode="before")
    @classmethod
    def _address(cls, value):
        # Storefronts send an empty list when no address is set.
        if value in ([], ""):
            return None
        return _plain_json(value)


class OrderSyncPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    order: OrderPayload
    items: list[OrderItemPayload] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, value):
        return [] if value is None else value


class ShippingUpdatePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    external_order_id: str = Field(
        min_length=1,
        max_length=128,
        validation_alias=AliasChoices("wc_order_id", "external_order_id"),
    )
    status: str = Field(min_length=1, max_length=64)
    provider: Optional[str] = None
    tracking_number: Optional[str] = None
    payload: Any = None
    occurred_at: Optional[datetime] = None

    @field_validator("external_order_id", "tracking_number", mode="before")
    @classmethod
    def _identifier(cls, value):
        return _coerce_identifier(value)

    @field_validator("provider", "tracking_number", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("payload", mode="before")
    @classmethod
    def _payload(cls, value):
        return _plain_json(value)


class OrderSyncResponse(BaseModel):
    ok: bool = True
    order_id: int
    warnings: Optional[list[dict[str, str]]] = None


class ShippingUpdateResponse(BaseModel):
    ok: bool = True
    shipping_update_id: int
