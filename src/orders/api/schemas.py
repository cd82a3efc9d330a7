"""Pydantic API schemas for the Orders domain.

These are the external API contracts. Routes translate them to and from
domain commands and aggregates.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class AssignPickupRequest(BaseModel):
    window: str | None = None
    address: str | None = None
    notes: str | None = None
    partner_name: str | None = None
    partner_phone: str | None = None
    eta_text: str | None = None
    tracking_url: str | None = None


class RecordInvoiceRequest(BaseModel):
    status: str
    url: str | None = None


class RegisterCatalogProductRequest(BaseModel):
    merchant_id: str
    title: str | None = None
    sku: str | None = None
    variant_ids: list[str] = Field(default_factory=list)
    status: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class WebhookResponse(BaseModel):
    outcome: str
    detail: str = ""
    merchant_order_ids: list[str] = Field(default_factory=list)


class StatusResponse(BaseModel):
    status: str
    order_id: str | None = None


class CountdownResponse(BaseModel):
    label: str
    ms: int
    display: str


class OrderLineResponse(BaseModel):
    title: str | None = None
    sku: str | None = None
    quantity: int = 0
    unit_price: float = 0.0
    line_total: float = 0.0
    variant_id: str | None = None
    product_id: str | None = None


class PickupPlanResponse(BaseModel):
    window: str | None = None
    address: str | None = None
    notes: str | None = None


class DeliveryPartnerResponse(BaseModel):
    name: str | None = None
    phone: str | None = None
    eta_text: str | None = None
    tracking_url: str | None = None


class InvoiceResponse(BaseModel):
    status: str | None = None
    url: str | None = None
    generated_at: datetime | None = None


class TimelineEntryResponse(BaseModel):
    kind: str
    note: str | None = None
    at: datetime


class ShipmentResponse(BaseModel):
    tracking_company: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    status: str | None = None
    items: list[dict] = Field(default_factory=list)
    recorded_at: datetime


class OrderResponse(BaseModel):
    id: str
    upstream_order_id: str
    order_number: str | None = None
    merchant_id: str
    created_at: datetime
    currency: str | None = None
    financial_status: str | None = None
    order_status: str | None = None
    fulfillment_status: str | None = None
    customer_email: str | None = None
    subtotal: float
    lines: list[OrderLineResponse] = Field(default_factory=list)
    workflow_status: str
    phase: str
    countdown: CountdownResponse | None = None
    vendor_accept_by: datetime | None = None
    vendor_accepted_at: datetime | None = None
    admin_planned_at: datetime | None = None
    dispatched_at: datetime | None = None
    pickup_plan: PickupPlanResponse | None = None
    delivery_partner: DeliveryPartnerResponse | None = None
    invoice: InvoiceResponse | None = None
    timeline: list[TimelineEntryResponse] = Field(default_factory=list)
    shipments: list[ShipmentResponse] = Field(default_factory=list)


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]


class BoardResponse(BaseModel):
    counts: dict[str, int]
    orders: list[OrderResponse]


class MerchantStatsResponse(BaseModel):
    merchant_id: str
    orders_count: int
    revenue: float
