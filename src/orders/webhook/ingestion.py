"""Order ingestion — command and handler for ``orders/create`` deliveries.

The ledger check, the ledger write, every seller's MerchantOrder and every
seller's sales row are written inside the handler's single unit of work. Any
exception rolls all of them back, so a retried delivery is processed afresh.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from orders.config import get_settings
from orders.domain import orders
from orders.merchant.sales import MerchantSale
from orders.order.order import MerchantOrder, merchant_order_id
from orders.webhook.ledger import DeliveryOutcome, WebhookEvent, already_processed
from orders.webhook.ownership import resolve_sellers
from orders.webhook.payload import parse_order

logger = structlog.get_logger(__name__)

NO_MATCHING_ITEMS = "no matching items"


@orders.command(part_of="WebhookEvent")
class RecordShopifyOrder:
    event_key = String(required=True, max_length=255)
    topic = String(required=True, max_length=100)
    raw_body = Text(required=True)  # JSON body as delivered
    received_at = DateTime()


@orders.command_handler(part_of=WebhookEvent)
class OrderIngestionHandler:
    @handle(RecordShopifyOrder)
    def record_order(self, command):
        if already_processed(command.event_key):
            logger.info("Webhook already processed", event_key=command.event_key)
            return DeliveryOutcome(already_processed=True)

        settings = get_settings()
        hours = settings.business_hours()
        now = command.received_at or datetime.now(UTC)
        parsed = parse_order(command.raw_body)
        created_at = parsed.placed_at(now)
        currency = parsed.currency_or(settings.default_currency)

        buckets = resolve_sellers(parsed.line_items, settings.catalog_query_chunk_size)

        order_repo = current_domain.repository_for(MerchantOrder)
        sale_repo = current_domain.repository_for(MerchantSale)
        merchant_order_ids = []
        for merchant_id, bucket in buckets.items():
            order_id = merchant_order_id(parsed.upstream_order_id, merchant_id)
            if _exists(order_repo, order_id):
                logger.warning("Merchant order already recorded under another delivery", order_id=order_id)
                continue

            order = MerchantOrder.receive(
                upstream_order_id=parsed.upstream_order_id,
                merchant_id=merchant_id,
                created_at=created_at,
                lines_data=[line.as_dict() for line in bucket.lines],
                accept_by=hours.add_business_duration(created_at, settings.vendor_accept_window),
                received_at=now,
                order_number=parsed.display_number,
                currency=currency,
                financial_status=parsed.financial_status,
                customer_email=parsed.customer_email,
            )
            order_repo.add(order)
            sale_repo.add(
                MerchantSale(
                    merchant_order_id=str(order.id),
                    merchant_id=merchant_id,
                    amount=order.subtotal,
                    currency=currency,
                    recorded_at=now,
                )
            )
            merchant_order_ids.append(str(order.id))

        current_domain.repository_for(WebhookEvent).add(
            WebhookEvent.record(
                key=command.event_key,
                topic=command.topic,
                upstream_order_id=parsed.upstream_order_id,
                received_at=now,
                merchant_order_ids=merchant_order_ids,
                note=None if buckets else NO_MATCHING_ITEMS,
            )
        )

        logger.info(
            "Upstream order ingested",
            upstream_order_id=parsed.upstream_order_id,
            merchant_orders=len(merchant_order_ids),
            lines=len(parsed.line_items),
        )
        return DeliveryOutcome(already_processed=False, merchant_order_ids=tuple(merchant_order_ids))


def _exists(repo, identifier: str) -> bool:
    try:
        repo.get(identifier)
    except ObjectNotFoundError:
        return False
    return True
