"""Upstream status sync — command and handler for ``orders/updated``.

Mirrors payment status and open/closed/cancelled onto every seller's share of
the upstream order. Workflow fields are never touched.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.order import MerchantOrder
from orders.webhook.ledger import DeliveryOutcome, WebhookEvent, already_processed
from orders.webhook.payload import parse_status_update

logger = structlog.get_logger(__name__)


@orders.command(part_of="MerchantOrder")
class SyncOrderStatus:
    event_key = String(required=True, max_length=255)
    topic = String(required=True, max_length=100)
    raw_body = Text(required=True)  # JSON body as delivered
    received_at = DateTime()


def orders_for_upstream(upstream_order_id: str) -> list[MerchantOrder]:
    repo = current_domain.repository_for(MerchantOrder)
    return repo._dao.query.filter(upstream_order_id=str(upstream_order_id)).all().items


@orders.command_handler(part_of=MerchantOrder)
class StatusSyncHandler:
    @handle(SyncOrderStatus)
    def sync_status(self, command):
        if already_processed(command.event_key):
            return DeliveryOutcome(already_processed=True)

        now = command.received_at or datetime.now(UTC)
        update = parse_status_update(command.raw_body)

        repo = current_domain.repository_for(MerchantOrder)
        touched = []
        for order in orders_for_upstream(update.upstream_order_id):
            order.sync_upstream_status(
                order_status=update.order_status,
                financial_status=update.financial_status,
                now=now,
            )
            repo.add(order)
            touched.append(str(order.id))

        current_domain.repository_for(WebhookEvent).add(
            WebhookEvent.record(
                key=command.event_key,
                topic=command.topic,
                upstream_order_id=update.upstream_order_id,
                received_at=now,
                merchant_order_ids=touched,
                note=None if touched else "no merchant orders",
            )
        )
        logger.info(
            "Upstream status synced",
            upstream_order_id=update.upstream_order_id,
            order_status=update.order_status,
            merchant_orders=len(touched),
        )
        return DeliveryOutcome(already_processed=False, merchant_order_ids=tuple(touched))
