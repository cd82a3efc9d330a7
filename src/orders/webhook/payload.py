"""Storefront webhook payloads as pydantic models.

Only the upstream order id is required. Every other field falls back to a
default, so a sparse delivery still parses. A body that is not a JSON object,
or that fails validation, raises ``MalformedPayload``.
"""

from datetime import UTC, datetime
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from orders.catalogue.product import normalize_sku, normalize_variant_id


class MalformedPayload(ValueError):
    pass


def _identifier(value):
    if value is None:
        return value
    text = str(value).strip()
    if not text:
        raise ValueError("must not be blank")
    return text


def _optional_text(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)


class ShopMoney(_Payload):
    amount: float | None = None
    currency_code: str | None = None


class PriceSet(_Payload):
    shop_money: ShopMoney | None = None


class Customer(_Payload):
    email: str | None = None


class LineItem(_Payload):
    title: str = ""
    sku: str = ""
    quantity: int = 0
    price: float | None = None
    price_set: PriceSet | None = None
    variant_id: str = ""
    product_id: str = ""

    @field_validator("title", "sku", "product_id", mode="before")
    @classmethod
    def as_text(cls, value):
        return _optional_text(value) or ""

    @field_validator("variant_id", mode="before")
    @classmethod
    def numeric_variant(cls, value):
        return normalize_variant_id(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def missing_quantity(cls, value):
        return 0 if value is None or value == "" else value

    @field_validator("quantity")
    @classmethod
    def not_negative(cls, value):
        return max(value, 0)

    @property
    def unit_price(self) -> float:
        """``price``, else ``price_set.shop_money.amount``, else zero."""
        price = self.price
        if price is None and self.price_set and self.price_set.shop_money:
            price = self.price_set.shop_money.amount
        return max(price or 0.0, 0.0)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    @property
    def normalized_sku(self) -> str:
        return normalize_sku(self.sku)

    def as_dict(self) -> dict:
        return {
            "title": self.title,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "variant_id": self.variant_id,
            "product_id": self.product_id,
        }


class _WithLineItems(_Payload):
    line_items: list[LineItem] = Field(default_factory=list)

    @field_validator("line_items", mode="before")
    @classmethod
    def missing_line_items(cls, value):
        return [] if value is None else value


class ShopifyOrder(_WithLineItems):
    """An ``orders/create`` body."""

    id: str
    name: str | None = None
    order_number: str | None = None
    created_at: datetime | None = None
    currency: str | None = None
    total_price_set: PriceSet | None = None
    financial_status: str = "pending"
    email: str | None = None
    contact_email: str | None = None
    customer: Customer | None = None

    @field_validator("id", mode="before")
    @classmethod
    def upstream_id(cls, value):
        return _identifier(value)

    @field_validator("name", "order_number", "currency", "email", "contact_email", mode="before")
    @classmethod
    def blank_is_missing(cls, value):
        return _optional_text(value)

    @field_validator("financial_status", mode="before")
    @classmethod
    def pending_by_default(cls, value):
        return _optional_text(value) or "pending"

    @field_validator("created_at", mode="wrap")
    @classmethod
    def unreadable_instant_is_missing(cls, value, handler):
        if not value:
            return None
        try:
            return handler(value)
        except ValidationError:
            return None

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def fill_fallbacks(self):
        if not self.currency and self.total_price_set and self.total_price_set.shop_money:
            self.currency = _optional_text(self.total_price_set.shop_money.currency_code)
        if self.currency:
            self.currency = self.currency.upper()
        if not self.email:
            self.email = self.contact_email or (self.customer.email if self.customer else None)
        return self

    @property
    def upstream_order_id(self) -> str:
        return self.id

    @property
    def display_number(self) -> str:
        return self.name or self.order_number or self.id

    @property
    def customer_email(self) -> str | None:
        return self.email

    def placed_at(self, now: datetime) -> datetime:
        return self.created_at or now

    def currency_or(self, default: str) -> str:
        return (self.currency or default).upper()


class ShopifyOrderUpdate(_Payload):
    """An ``orders/updated`` body. Only status fields are read."""

    id: str
    financial_status: str | None = None
    closed_at: str | None = None
    cancelled_at: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def upstream_id(cls, value):
        return _identifier(value)

    @field_validator("financial_status", "closed_at", "cancelled_at", mode="before")
    @classmethod
    def blank_is_missing(cls, value):
        return _optional_text(value)

    @property
    def upstream_order_id(self) -> str:
        return self.id

    @property
    def order_status(self) -> str:
        if self.closed_at:
            return "closed"
        if self.cancelled_at:
            return "cancelled"
        return "open"


class ShopifyFulfillment(_WithLineItems):
    """A ``fulfillments/create`` or ``fulfillments/update`` body."""

    order_id: str
    tracking_company: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    status: str | None = None
    delivery_status: str | None = None

    @field_validator("order_id", mode="before")
    @classmethod
    def upstream_id(cls, value):
        return _identifier(value)

    @field_validator(
        "tracking_company", "tracking_number", "tracking_url", "status", "delivery_status", mode="before"
    )
    @classmethod
    def blank_is_missing(cls, value):
        return _optional_text(value)

    @property
    def upstream_order_id(self) -> str:
        return self.order_id


P = TypeVar("P", bound=BaseModel)


def parse_payload(model: type[P], raw_body: bytes | str) -> P:
    try:
        return model.model_validate_json(raw_body)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(part) for part in first["loc"]) or "body"
        raise MalformedPayload(f"Invalid payload at {where}: {first['msg']}") from exc


def parse_order(raw_body: bytes | str) -> ShopifyOrder:
    return parse_payload(ShopifyOrder, raw_body)


def parse_status_update(raw_body: bytes | str) -> ShopifyOrderUpdate:
    return parse_payload(ShopifyOrderUpdate, raw_body)


def parse_fulfillment(raw_body: bytes | str) -> ShopifyFulfillment:
    return parse_payload(ShopifyFulfillment, raw_body)
