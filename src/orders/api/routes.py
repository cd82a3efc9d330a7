"""FastAPI routes for the Orders domain."""

import json
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from orders.access.admin import AdminPolicy
from orders.access.port import Caller
from orders.api.dependencies import current_caller, get_admin_policy, get_ingestor, require_admin
from orders.api.schemas import (
    AssignPickupRequest,
    BoardResponse,
    CountdownResponse,
    DeliveryPartnerResponse,
    InvoiceResponse,
    MerchantStatsResponse,
    OrderLineResponse,
    OrderListResponse,
    OrderResponse,
    PickupPlanResponse,
    RecordInvoiceRequest,
    RegisterCatalogProductRequest,
    ShipmentResponse,
    StatusResponse,
    TimelineEntryResponse,
    WebhookResponse,
)
from orders.catalogue.registration import RegisterCatalogProduct
from orders.merchant.sales import merchant_stats
from orders.order.acceptance import AcceptOrder
from orders.order.board import ALL, filter_board, list_orders, phase_counts
from orders.order.dispatch import MarkDispatched
from orders.order.invoice import RecordInvoice
from orders.order.order import MerchantOrder, load_merchant_order
from orders.order.pickup import AssignPickup
from orders.order.shipments import FULFILLMENTS_CREATE, FULFILLMENTS_UPDATE
from orders.order.workflow import active_countdown, derive_phase, persisted_status
from orders.webhook.ingestor import IngestionOutcome, IngestionResult, ShopifyWebhookIngestor

_OUTCOME_STATUS = {
    IngestionOutcome.ACCEPTED: 200,
    IngestionOutcome.IGNORED: 200,
    IngestionOutcome.ALREADY_PROCESSED: 200,
    IngestionOutcome.UNAUTHORIZED: 401,
    IngestionOutcome.BAD_REQUEST: 400,
}


def _webhook_response(result: IngestionResult) -> JSONResponse:
    body = WebhookResponse(
        outcome=result.outcome.value,
        detail=result.detail,
        merchant_order_ids=list(result.merchant_order_ids),
    )
    return JSONResponse(status_code=_OUTCOME_STATUS[result.outcome], content=body.model_dump())


def order_response(order: MerchantOrder, now: datetime) -> OrderResponse:
    countdown = active_countdown(order, now)
    return OrderResponse(
        id=str(order.id),
        upstream_order_id=order.upstream_order_id,
        order_number=order.order_number,
        merchant_id=str(order.merchant_id),
        created_at=order.created_at,
        currency=order.currency,
        financial_status=order.financial_status,
        order_status=order.order_status,
        fulfillment_status=order.fulfillment_status,
        customer_email=order.customer_email,
        subtotal=order.subtotal or 0.0,
        lines=[
            OrderLineResponse(
                title=line.title,
                sku=line.sku,
                quantity=line.quantity or 0,
                unit_price=line.unit_price or 0.0,
                line_total=line.line_total or 0.0,
                variant_id=line.variant_id,
                product_id=line.product_id,
            )
            for line in order.lines or []
        ],
        workflow_status=persisted_status(order).value,
        phase=derive_phase(order, now).value,
        countdown=(
            CountdownResponse(label=countdown.label, ms=countdown.ms, display=countdown.display)
            if countdown is not None
            else None
        ),
        vendor_accept_by=order.vendor_accept_by,
        vendor_accepted_at=order.vendor_accepted_at,
        admin_planned_at=order.admin_planned_at,
        dispatched_at=order.dispatched_at,
        pickup_plan=(
            PickupPlanResponse(
                window=order.pickup_plan.window,
                address=order.pickup_plan.address,
                notes=order.pickup_plan.notes,
            )
            if order.pickup_plan
            else None
        ),
        delivery_partner=(
            DeliveryPartnerResponse(
                name=order.delivery_partner.name,
                phone=order.delivery_partner.phone,
                eta_text=order.delivery_partner.eta_text,
                tracking_url=order.delivery_partner.tracking_url,
            )
            if order.delivery_partner
            else None
        ),
        invoice=(
            InvoiceResponse(
                status=order.invoice.status,
                url=order.invoice.url,
                generated_at=order.invoice.generated_at,
            )
            if order.invoice
            else None
        ),
        timeline=[
            TimelineEntryResponse(kind=entry.kind, note=entry.note, at=entry.at)
            for entry in sorted(order.timeline or [], key=lambda e: e.at)
        ],
        shipments=[
            ShipmentResponse(
                tracking_company=shipment.tracking_company,
                tracking_number=shipment.tracking_number,
                tracking_url=shipment.tracking_url,
                status=shipment.status,
                items=json.loads(shipment.items) if shipment.items else [],
                recorded_at=shipment.recorded_at,
            )
            for shipment in sorted(order.shipments or [], key=lambda s: s.recorded_at)
        ],
    )


# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks/shopify", tags=["webhooks"])


@webhook_router.post("/orders-create")
async def orders_create(
    request: Request,
    x_shopify_hmac_sha256: str | None = Header(default=None),
    x_shopify_topic: str = Header(default=""),
    x_shopify_webhook_id: str = Header(default=""),
    ingestor: ShopifyWebhookIngestor = Depends(get_ingestor),
) -> JSONResponse:
    """Record a newly placed storefront order, split per seller."""
    raw_body = await request.body()
    result = ingestor.ingest_order_event(raw_body, x_shopify_hmac_sha256, x_shopify_topic, x_shopify_webhook_id)
    return _webhook_response(result)


@webhook_router.post("/orders-updated")
async def orders_updated(
    request: Request,
    x_shopify_hmac_sha256: str | None = Header(default=None),
    x_shopify_topic: str = Header(default=""),
    x_shopify_webhook_id: str = Header(default=""),
    ingestor: ShopifyWebhookIngestor = Depends(get_ingestor),
) -> JSONResponse:
    raw_body = await request.body()
    result = ingestor.ingest_status_update(raw_body, x_shopify_hmac_sha256, x_shopify_topic, x_shopify_webhook_id)
    return _webhook_response(result)


@webhook_router.post("/fulfillments-create")
async def fulfillments_create(
    request: Request,
    x_shopify_hmac_sha256: str | None = Header(default=None),
    x_shopify_topic: str = Header(default=""),
    x_shopify_webhook_id: str = Header(default=""),
    ingestor: ShopifyWebhookIngestor = Depends(get_ingestor),
) -> JSONResponse:
    raw_body = await request.body()
    result = ingestor.ingest_fulfillment(
        raw_body, x_shopify_hmac_sha256, x_shopify_topic, x_shopify_webhook_id, expected_topic=FULFILLMENTS_CREATE
    )
    return _webhook_response(result)


@webhook_router.post("/fulfillments-update")
async def fulfillments_update(
    request: Request,
    x_shopify_hmac_sha256: str | None = Header(default=None),
    x_shopify_topic: str = Header(default=""),
    x_shopify_webhook_id: str = Header(default=""),
    ingestor: ShopifyWebhookIngestor = Depends(get_ingestor),
) -> JSONResponse:
    raw_body = await request.body()
    result = ingestor.ingest_fulfillment(
        raw_body, x_shopify_hmac_sha256, x_shopify_topic, x_shopify_webhook_id, expected_topic=FULFILLMENTS_UPDATE
    )
    return _webhook_response(result)


# ---------------------------------------------------------------------------
# Seller Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=OrderListResponse)
async def list_my_orders(caller: Caller = Depends(current_caller)) -> OrderListResponse:
    """The caller's own orders with their current phase and countdown."""
    now = datetime.now(UTC)
    return OrderListResponse(orders=[order_response(order, now) for order in list_orders(merchant_id=caller.uid)])


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    caller: Caller = Depends(current_caller),
    policy: AdminPolicy = Depends(get_admin_policy),
) -> OrderResponse:
    order = load_merchant_order(order_id)
    if not policy.is_admin(caller):
        order.assert_owned_by(caller.uid)
    return order_response(order, datetime.now(UTC))


@order_router.post("/{order_id}/accept", response_model=StatusResponse)
async def accept_order(order_id: str, caller: Caller = Depends(current_caller)) -> StatusResponse:
    current_domain.process(AcceptOrder(order_id=order_id, merchant_id=caller.uid), asynchronous=False)
    return StatusResponse(status="accepted", order_id=order_id)


@order_router.post("/{order_id}/dispatch", response_model=StatusResponse)
async def dispatch_order(
    order_id: str,
    caller: Caller = Depends(current_caller),
    policy: AdminPolicy = Depends(get_admin_policy),
) -> StatusResponse:
    command = MarkDispatched(order_id=order_id, caller_id=caller.uid, caller_is_admin=policy.is_admin(caller))
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="dispatched", order_id=order_id)


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@admin_router.get("/orders", response_model=BoardResponse)
async def order_board(phase_filter: str = Query(default=ALL, alias="filter"), q: str | None = None) -> BoardResponse:
    """All orders with per-phase counts, narrowed by column and search text."""
    now = datetime.now(UTC)
    orders = list_orders()
    try:
        selected = filter_board(orders, now, phase_filter=phase_filter, query=q)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Unknown filter: {phase_filter}") from exc
    return BoardResponse(
        counts=phase_counts(orders, now),
        orders=[order_response(order, now) for order in selected],
    )


@admin_router.post("/orders/{order_id}/assign-pickup", response_model=StatusResponse)
async def assign_pickup(
    order_id: str,
    body: AssignPickupRequest,
    caller: Caller = Depends(require_admin),
) -> StatusResponse:
    command = AssignPickup(order_id=order_id, admin_id=caller.uid, **body.model_dump())
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="pickup_assigned", order_id=order_id)


@admin_router.put("/orders/{order_id}/invoice", response_model=StatusResponse)
async def record_invoice(order_id: str, body: RecordInvoiceRequest) -> StatusResponse:
    current_domain.process(RecordInvoice(order_id=order_id, status=body.status, url=body.url), asynchronous=False)
    return StatusResponse(status=body.status, order_id=order_id)


@admin_router.put("/catalogue/products/{product_id}", response_model=StatusResponse)
async def register_catalogue_product(product_id: str, body: RegisterCatalogProductRequest) -> StatusResponse:
    command = RegisterCatalogProduct(
        product_id=product_id,
        merchant_id=body.merchant_id,
        title=body.title,
        sku=body.sku,
        variant_ids=json.dumps(body.variant_ids),
        status=body.status,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="registered")


@admin_router.get("/merchants/{merchant_id}/stats", response_model=MerchantStatsResponse)
async def get_merchant_stats(merchant_id: str) -> MerchantStatsResponse:
    stats = merchant_stats(merchant_id)
    return MerchantStatsResponse(
        merchant_id=stats.merchant_id,
        orders_count=stats.orders_count,
        revenue=stats.revenue,
    )
