from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from orders.access.static_adapter import StaticTokenVerifier
from orders.api import admin_router, order_router, register_error_handlers, webhook_router
from orders.api.dependencies import get_identity_verifier
from orders.order.order import MerchantOrder
from orders.webhook.signature import compute_signature
from protean import current_domain
from protean.integrations.fastapi import register_exception_handlers

SECRET = "test-secret"


@pytest.fixture()
def client(tokens):
    app = FastAPI()
    app.dependency_overrides[get_identity_verifier] = lambda: tokens
    register_exception_handlers(app)
    register_error_handlers(app)
    app.include_router(webhook_router)
    app.include_router(order_router)
    app.include_router(admin_router)
    return TestClient(app)


@pytest.fixture()
def tokens():
    verifier = StaticTokenVerifier()
    verifier.register("seller-1", "m-1", email="one@example.com")
    verifier.register("seller-2", "m-2", email="two@example.com")
    verifier.register("admin", "admin-allow-listed")
    verifier.register("claims-admin", "ops-7", isAdmin=True)
    return verifier


def _signed_headers(body: bytes, topic: str, webhook_id: str = "wh-1", secret: str = SECRET) -> dict:
    return {
        "X-Shopify-Hmac-Sha256": compute_signature(body, secret),
        "X-Shopify-Topic": topic,
        "X-Shopify-Webhook-Id": webhook_id,
        "Content-Type": "application/json",
    }


def _seed_order(order_id="5001_m-1", merchant_id="m-1", accept_in=timedelta(hours=1), accepted=False):
    """Store an order directly, relative to the real clock."""
    now = datetime.now(UTC)
    order = MerchantOrder.receive(
        upstream_order_id=order_id.split("_", 1)[0],
        merchant_id=merchant_id,
        created_at=now - timedelta(hours=1),
        lines_data=[{"title": "Brass Diya", "sku": "DIYA-01", "quantity": 2, "unit_price": 150.0}],
        accept_by=now + accept_in,
        received_at=now - timedelta(hours=1),
        currency="INR",
    )
    if accepted:
        order.accept(merchant_id, now - timedelta(hours=1))
    current_domain.repository_for(MerchantOrder).add(order)
    return order


@pytest.fixture()
def signed_headers():
    return _signed_headers


@pytest.fixture()
def seed():
    return _seed_order
