"""WebhookEvent — the processed-deliveries ledger.

Keyed by the delivery id the storefront sends, or a synthesized
``{topic}_{upstream_order_id}`` key when it sends none. An entry is written in
the same unit of work as the orders it produced, so a retry after a failed
ingestion finds no entry and processes again.
"""

import json
from dataclasses import dataclass
from datetime import datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from orders.domain import orders


def event_key(topic: str, upstream_order_id: str, webhook_id: str = "") -> str:
    if webhook_id:
        return webhook_id
    return f"{topic.replace('/', '_')}_{upstream_order_id}"


@orders.aggregate
class WebhookEvent:
    topic = String(required=True, max_length=100)
    upstream_order_id = String(max_length=50)
    received_at = DateTime(required=True)
    note = String(max_length=255)
    merchant_order_ids = Text()  # JSON list

    @classmethod
    def record(cls, key: str, topic: str, upstream_order_id: str, received_at: datetime, merchant_order_ids=None, note=None):
        return cls(
            id=key,
            topic=topic,
            upstream_order_id=upstream_order_id,
            received_at=received_at,
            note=note,
            merchant_order_ids=json.dumps(list(merchant_order_ids or [])),
        )

    def get_merchant_order_ids(self) -> list[str]:
        return json.loads(self.merchant_order_ids) if self.merchant_order_ids else []


def already_processed(key: str) -> bool:
    try:
        current_domain.repository_for(WebhookEvent).get(key)
    except ObjectNotFoundError:
        return False
    return True


@dataclass(frozen=True)
class DeliveryOutcome:
    """What a webhook command handler did with one delivery."""

    already_processed: bool
    merchant_order_ids: tuple[str, ...] = ()
