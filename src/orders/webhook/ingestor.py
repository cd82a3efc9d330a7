"""ShopifyWebhookIngestor — the entry point for signed storefront deliveries.

Checks the signature, routes on topic, parses the body with the topic's
payload model to build a ledger key, then hands the delivery to its command
handler. Outcomes are reported as values rather than exceptions so the HTTP
layer can map them to status codes. Only a missing secret raises.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.utils.globals import current_domain

from orders.config import get_settings
from orders.exceptions import WebhookNotConfigured
from orders.order.shipments import FULFILLMENTS_CREATE, FULFILLMENTS_UPDATE, RecordShipment
from orders.order.status_sync import SyncOrderStatus
from orders.utils.logging import add_context, clear_context
from orders.webhook.ingestion import RecordShopifyOrder
from orders.webhook.ledger import event_key
from orders.webhook.payload import MalformedPayload, parse_fulfillment, parse_order, parse_status_update
from orders.webhook.signature import SignatureCheck, check_signature

logger = structlog.get_logger(__name__)

ORDERS_CREATE = "orders/create"
ORDERS_UPDATED = "orders/updated"


class IngestionOutcome(Enum):
    ACCEPTED = "accepted"
    IGNORED = "ignored"
    UNAUTHORIZED = "unauthorized"
    ALREADY_PROCESSED = "already_processed"
    BAD_REQUEST = "bad_request"


@dataclass(frozen=True)
class IngestionResult:
    outcome: IngestionOutcome
    detail: str = ""
    merchant_order_ids: tuple[str, ...] = ()


class ShopifyWebhookIngestor:
    def __init__(self, secret: str | None = None) -> None:
        self._secret = secret

    @property
    def secret(self) -> str:
        secret = self._secret if self._secret is not None else get_settings().shopify_webhook_secret
        if not secret:
            raise WebhookNotConfigured("Webhook secret not configured")
        return secret

    def ingest_order_event(self, raw_payload: bytes, signature: str | None, topic: str, webhook_id: str = "") -> IngestionResult:
        return self._ingest(raw_payload, signature, topic, webhook_id, {ORDERS_CREATE}, RecordShopifyOrder, parse_order)

    def ingest_status_update(self, raw_payload: bytes, signature: str | None, topic: str, webhook_id: str = "") -> IngestionResult:
        return self._ingest(raw_payload, signature, topic, webhook_id, {ORDERS_UPDATED}, SyncOrderStatus, parse_status_update)

    def ingest_fulfillment(
        self,
        raw_payload: bytes,
        signature: str | None,
        topic: str,
        webhook_id: str = "",
        expected_topic: str = FULFILLMENTS_CREATE,
    ) -> IngestionResult:
        if expected_topic not in (FULFILLMENTS_CREATE, FULFILLMENTS_UPDATE):
            raise ValueError(f"Not a fulfilment topic: {expected_topic}")
        return self._ingest(raw_payload, signature, topic, webhook_id, {expected_topic}, RecordShipment, parse_fulfillment)

    def _ingest(self, raw_payload, signature, topic, webhook_id, expected_topics, command_cls, parse) -> IngestionResult:
        check = check_signature(raw_payload, signature, self.secret)
        if check is SignatureCheck.MALFORMED:
            logger.warning("Webhook signature header is not base64", topic=topic)
            return IngestionResult(IngestionOutcome.BAD_REQUEST, "Malformed signature header")
        if check is not SignatureCheck.VALID:
            logger.warning("Webhook signature rejected", topic=topic, reason=check.value)
            return IngestionResult(IngestionOutcome.UNAUTHORIZED, "HMAC mismatch")

        if topic not in expected_topics:
            logger.info("Webhook topic ignored", topic=topic, expected=sorted(expected_topics))
            return IngestionResult(IngestionOutcome.IGNORED, "Ignored topic")

        try:
            parsed = parse(raw_payload)
            raw_body = raw_payload.decode("utf-8")
        except (MalformedPayload, UnicodeDecodeError) as exc:
            logger.warning("Webhook payload rejected", topic=topic, reason=str(exc))
            return IngestionResult(IngestionOutcome.BAD_REQUEST, str(exc))

        key = event_key(topic, parsed.upstream_order_id, webhook_id)
        command = command_cls(
            event_key=key,
            topic=topic,
            raw_body=raw_body,
            received_at=datetime.now(UTC),
        )
        add_context(event_key=key, topic=topic)
        try:
            outcome = current_domain.process(command, asynchronous=False)
        finally:
            clear_context()

        if outcome.already_processed:
            return IngestionResult(IngestionOutcome.ALREADY_PROCESSED, "Already processed")
        return IngestionResult(IngestionOutcome.ACCEPTED, "ok", outcome.merchant_order_ids)
