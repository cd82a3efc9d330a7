"""Shipment sync — command and handler for ``fulfillments/*`` deliveries.

Fulfilment lines are resolved to sellers the same way purchased lines are at
ingestion. Each affected seller's order gets one shipment entry listing only
its own items.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from orders.config import get_settings
from orders.domain import orders
from orders.order.order import MerchantOrder, merchant_order_id
from orders.webhook.ledger import DeliveryOutcome, WebhookEvent, already_processed
from orders.webhook.ownership import resolve_sellers
from orders.webhook.payload import ShopifyFulfillment, parse_fulfillment

logger = structlog.get_logger(__name__)

FULFILLMENTS_CREATE = "fulfillments/create"
FULFILLMENTS_UPDATE = "fulfillments/update"


@orders.command(part_of="MerchantOrder")
class RecordShipment:
    event_key = String(required=True, max_length=255)
    topic = String(required=True, max_length=100)
    raw_body = Text(required=True)  # JSON body as delivered
    received_at = DateTime()


def shipment_statuses(topic: str, fulfillment: ShopifyFulfillment) -> tuple[str | None, str | None]:
    """Return ``(shipment_status, fulfillment_status)`` for a delivery.

    A creation reports ``fulfilled`` when the storefront says ``success`` and
    ``in_progress`` otherwise. An update only ever promotes to ``fulfilled``,
    once the parcel is delivered.
    """
    if topic == FULFILLMENTS_CREATE:
        fulfillment_status = "fulfilled" if fulfillment.status == "success" else "in_progress"
        return fulfillment.delivery_status or fulfillment_status, fulfillment_status
    if fulfillment.delivery_status == "delivered":
        return fulfillment.delivery_status, "fulfilled"
    return fulfillment.delivery_status, None


@orders.command_handler(part_of=MerchantOrder)
class ShipmentHandler:
    @handle(RecordShipment)
    def record_shipment(self, command):
        if already_processed(command.event_key):
            return DeliveryOutcome(already_processed=True)

        now = command.received_at or datetime.now(UTC)
        fulfillment = parse_fulfillment(command.raw_body)
        shipment_status, fulfillment_status = shipment_statuses(command.topic, fulfillment)
        buckets = resolve_sellers(fulfillment.line_items, get_settings().catalog_query_chunk_size)

        repo = current_domain.repository_for(MerchantOrder)
        touched = []
        for merchant_id, bucket in buckets.items():
            order_id = merchant_order_id(fulfillment.upstream_order_id, merchant_id)
            try:
                order = repo.get(order_id)
            except ObjectNotFoundError:
                logger.warning("Shipment for unknown merchant order", order_id=order_id)
                continue

            order.record_shipment(
                items=[{"sku": line.sku, "quantity": line.quantity, "title": line.title} for line in bucket.lines],
                now=now,
                tracking_company=fulfillment.tracking_company,
                tracking_number=fulfillment.tracking_number,
                tracking_url=fulfillment.tracking_url,
                status=shipment_status,
                fulfillment_status=fulfillment_status,
                source=command.topic,
            )
            repo.add(order)
            touched.append(order_id)

        current_domain.repository_for(WebhookEvent).add(
            WebhookEvent.record(
                key=command.event_key,
                topic=command.topic,
                upstream_order_id=fulfillment.upstream_order_id,
                received_at=now,
                merchant_order_ids=touched,
                note=None if touched else "no merchant orders",
            )
        )
        logger.info(
            "Shipment recorded",
            upstream_order_id=fulfillment.upstream_order_id,
            tracking_number=fulfillment.tracking_number,
            merchant_orders=len(touched),
        )
        return DeliveryOutcome(already_processed=False, merchant_order_ids=tuple(touched))
