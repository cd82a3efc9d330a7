"""Order ingestion through the webhook ingestor and RecordShopifyOrder."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from orders.catalogue.registration import RegisterCatalogProduct
from orders.exceptions import WebhookNotConfigured
from orders.merchant.sales import MerchantSale, merchant_stats
from orders.order.order import MerchantOrder
from orders.webhook import ingestion
from orders.webhook.ingestion import NO_MATCHING_ITEMS
from orders.webhook.ingestor import IngestionOutcome, ShopifyWebhookIngestor
from orders.webhook.ledger import WebhookEvent
from orders.webhook.signature import compute_signature
from protean import current_domain
from protean.exceptions import ObjectNotFoundError

SECRET = "test-secret"
IST = timezone(timedelta(hours=5, minutes=30))


def register(product_id, merchant_id, sku=None, variant_ids=()):
    current_domain.process(
        RegisterCatalogProduct(
            product_id=product_id,
            merchant_id=merchant_id,
            title=product_id,
            sku=sku,
            variant_ids=json.dumps(list(variant_ids)),
        ),
        asynchronous=False,
    )


def payload(order_id=5001, line_items=None, **extra):
    body = {
        "id": order_id,
        "name": f"#{order_id}",
        "created_at": "2025-03-10T18:00:00+05:30",
        "currency": "INR",
        "financial_status": "paid",
        "email": "buyer@example.com",
        "line_items": line_items if line_items is not None else [],
    }
    body.update(extra)
    return json.dumps(body).encode()


def line(sku, quantity=1, price="100.00", variant_id=None, title="Item"):
    return {"sku": sku, "quantity": quantity, "price": price, "variant_id": variant_id, "title": title}


def deliver(raw, webhook_id="wh-1", topic="orders/create", signature=None, ingestor=None):
    ingestor = ingestor or ShopifyWebhookIngestor(secret=SECRET)
    signature = compute_signature(raw, SECRET) if signature is None else signature
    return ingestor.ingest_order_event(raw, signature, topic, webhook_id)


def stored_orders():
    return current_domain.repository_for(MerchantOrder)._dao.query.all().items


@pytest.fixture()
def catalogue():
    register("p-diya", "m-1", sku="DIYA-01", variant_ids=["111"])
    register("p-lamp", "m-1", sku="LAMP-02")
    register("p-runner", "m-2", sku="RUN-07", variant_ids=["222"])


class TestAcceptedDelivery:
    def test_splits_order_per_seller(self, catalogue):
        raw = payload(
            line_items=[
                line("DIYA-01", quantity=2, price="149.50"),
                line("RUN-07", price="499.00"),
                line("LAMP-02", price="250.00"),
            ]
        )
        result = deliver(raw)

        assert result.outcome is IngestionOutcome.ACCEPTED
        assert sorted(result.merchant_order_ids) == ["5001_m-1", "5001_m-2"]

        repo = current_domain.repository_for(MerchantOrder)
        first = repo.get("5001_m-1")
        second = repo.get("5001_m-2")
        assert sorted(line.sku for line in first.lines) == ["DIYA-01", "LAMP-02"]
        assert first.subtotal == 549.0
        assert second.subtotal == 499.0
        assert first.currency == "INR"
        assert first.customer_email == "buyer@example.com"
        assert first.workflow_status == "vendor_pending"

    def test_evening_order_deadline_rolls_to_next_business_day(self, catalogue):
        deliver(payload(line_items=[line("DIYA-01")]))
        order = current_domain.repository_for(MerchantOrder).get("5001_m-1")
        assert order.vendor_accept_by == datetime(2025, 3, 11, 13, 0, tzinfo=IST)

    def test_writes_ledger_entry(self, catalogue):
        deliver(payload(line_items=[line("DIYA-01")]), webhook_id="wh-42")
        event = current_domain.repository_for(WebhookEvent).get("wh-42")
        assert event.topic == "orders/create"
        assert event.upstream_order_id == "5001"
        assert event.get_merchant_order_ids() == ["5001_m-1"]
        assert event.note is None

    def test_records_one_sale_per_merchant_order(self, catalogue):
        deliver(payload(line_items=[line("DIYA-01", quantity=2, price="149.50"), line("RUN-07", price="499.00")]))
        stats = merchant_stats("m-1")
        assert stats.orders_count == 1
        assert stats.revenue == 299.0

    def test_sku_is_matched_after_normalization(self, catalogue):
        deliver(payload(line_items=[line(" diya 01 ")]))
        assert current_domain.repository_for(MerchantOrder).get("5001_m-1")


class TestOwnershipResolution:
    def test_unmatched_lines_are_dropped(self, catalogue):
        deliver(payload(line_items=[line("DIYA-01", price="100.00"), line("NOT-OURS", price="999.00")]))
        order = current_domain.repository_for(MerchantOrder).get("5001_m-1")
        assert len(order.lines) == 1
        assert order.subtotal == 100.0

    def test_variant_id_is_the_fallback(self, catalogue):
        deliver(payload(line_items=[line("", variant_id=222)]))
        assert current_domain.repository_for(MerchantOrder).get("5001_m-2")

    def test_sku_match_wins_over_variant_match(self, catalogue):
        # SKU belongs to m-1, variant 222 belongs to m-2
        result = deliver(payload(line_items=[line("DIYA-01", variant_id=222)]))
        assert list(result.merchant_order_ids) == ["5001_m-1"]

    def test_unknown_sku_falls_back_to_variant(self, catalogue):
        result = deliver(payload(line_items=[line("RENAMED-SKU", variant_id=111)]))
        assert list(result.merchant_order_ids) == ["5001_m-1"]

    def test_lookups_run_in_chunks(self):
        for i in range(25):
            register(f"p-{i}", f"m-{i % 3}", sku=f"SKU-{i:02d}")
        result = deliver(payload(line_items=[line(f"SKU-{i:02d}", price="10.00") for i in range(25)]))
        assert len(result.merchant_order_ids) == 3
        assert sum(len(order.lines) for order in stored_orders()) == 25


class TestNoMatchingItems:
    def test_ledger_is_still_written(self, catalogue):
        result = deliver(payload(line_items=[line("NOT-OURS")]), webhook_id="wh-empty")
        assert result.outcome is IngestionOutcome.ACCEPTED
        assert result.merchant_order_ids == ()
        assert stored_orders() == []
        assert current_domain.repository_for(WebhookEvent).get("wh-empty").note == NO_MATCHING_ITEMS

    def test_order_without_line_items(self, catalogue):
        result = deliver(payload(line_items=None), webhook_id="wh-none")
        assert result.outcome is IngestionOutcome.ACCEPTED
        assert stored_orders() == []


class TestIdempotency:
    def test_redelivery_is_already_processed(self, catalogue):
        raw = payload(line_items=[line("DIYA-01")])
        deliver(raw, webhook_id="wh-1")
        result = deliver(raw, webhook_id="wh-1")

        assert result.outcome is IngestionOutcome.ALREADY_PROCESSED
        assert len(stored_orders()) == 1
        assert merchant_stats("m-1").orders_count == 1

    def test_missing_webhook_id_uses_topic_and_order_key(self, catalogue):
        raw = payload(line_items=[line("DIYA-01")])
        deliver(raw, webhook_id="")
        assert current_domain.repository_for(WebhookEvent).get("orders_create_5001")
        assert deliver(raw, webhook_id="").outcome is IngestionOutcome.ALREADY_PROCESSED

    def test_failed_ingestion_leaves_no_trace(self, catalogue, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(ingestion.WebhookEvent, "record", explode)
        with pytest.raises(RuntimeError):
            deliver(payload(line_items=[line("DIYA-01"), line("RUN-07")]))

        assert stored_orders() == []
        assert current_domain.repository_for(MerchantSale)._dao.query.all().items == []

    def test_retry_after_failure_is_processed(self, catalogue, monkeypatch):
        raw = payload(line_items=[line("DIYA-01")])
        with monkeypatch.context() as patch:
            patch.setattr(ingestion, "resolve_sellers", lambda *a, **k: (_ for _ in ()).throw(RuntimeError("boom")))
            with pytest.raises(RuntimeError):
                deliver(raw)

        with pytest.raises(ObjectNotFoundError):
            current_domain.repository_for(WebhookEvent).get("wh-1")
        assert deliver(raw).outcome is IngestionOutcome.ACCEPTED


class TestRejections:
    def test_bad_signature_is_unauthorized(self, catalogue):
        raw = payload(line_items=[line("DIYA-01")])
        result = deliver(raw, signature=compute_signature(raw, "wrong-secret"))
        assert result.outcome is IngestionOutcome.UNAUTHORIZED
        assert stored_orders() == []

    def test_missing_signature_is_unauthorized(self, catalogue):
        raw = payload(line_items=[line("DIYA-01")])
        assert deliver(raw, signature="").outcome is IngestionOutcome.UNAUTHORIZED

    def test_malformed_signature_header_is_bad_request(self, catalogue):
        raw = payload(line_items=[line("DIYA-01")])
        assert deliver(raw, signature="%%%").outcome is IngestionOutcome.BAD_REQUEST

    def test_other_topic_is_ignored(self, catalogue):
        result = deliver(payload(line_items=[line("DIYA-01")]), topic="orders/paid")
        assert result.outcome is IngestionOutcome.IGNORED
        assert stored_orders() == []
        with pytest.raises(ObjectNotFoundError):
            current_domain.repository_for(WebhookEvent).get("wh-1")

    def test_missing_order_id_is_bad_request(self):
        raw = json.dumps({"line_items": []}).encode()
        assert deliver(raw).outcome is IngestionOutcome.BAD_REQUEST

    def test_non_json_body_is_bad_request(self):
        assert deliver(b"<xml/>").outcome is IngestionOutcome.BAD_REQUEST

    def test_utf16_body_is_bad_request(self, catalogue):
        raw = json.dumps({"id": 5001, "line_items": [line("DIYA-01")]}).encode("utf-16")
        assert deliver(raw).outcome is IngestionOutcome.BAD_REQUEST
        assert stored_orders() == []

    def test_infinite_quantity_is_bad_request(self, catalogue):
        raw = b'{"id": 5001, "line_items": [{"sku": "DIYA-01", "quantity": Infinity, "price": "10.00"}]}'
        assert deliver(raw).outcome is IngestionOutcome.BAD_REQUEST
        assert stored_orders() == []

    def test_blank_order_id_is_bad_request(self):
        raw = json.dumps({"id": "  ", "line_items": []}).encode()
        assert deliver(raw).outcome is IngestionOutcome.BAD_REQUEST

    def test_unconfigured_secret_raises(self):
        with pytest.raises(WebhookNotConfigured):
            ShopifyWebhookIngestor(secret="").ingest_order_event(b"{}", "sig", "orders/create")

    def test_secret_is_read_from_settings(self, catalogue):
        raw = payload(line_items=[line("DIYA-01")])
        result = ShopifyWebhookIngestor().ingest_order_event(raw, compute_signature(raw, SECRET), "orders/create", "wh-9")
        assert result.outcome is IngestionOutcome.ACCEPTED
