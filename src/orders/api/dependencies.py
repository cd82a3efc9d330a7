"""FastAPI dependencies: caller identity, admin gate and the webhook ingestor."""

from fastapi import Depends, Header, Request

from orders.access.admin import AdminPolicy
from orders.access.port import Caller, IdentityVerifier
from orders.config import get_settings
from orders.exceptions import Forbidden, Unauthenticated
from orders.webhook.ingestor import ShopifyWebhookIngestor


def get_ingestor() -> ShopifyWebhookIngestor:
    return ShopifyWebhookIngestor()


def get_admin_policy() -> AdminPolicy:
    return AdminPolicy(get_settings().admin_uid_set)


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


def current_caller(
    authorization: str | None = Header(default=None),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> Caller:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthenticated("Missing bearer token")
    token = authorization[len("bearer ") :].strip()
    return verifier.verify(token)


def require_admin(
    caller: Caller = Depends(current_caller),
    policy: AdminPolicy = Depends(get_admin_policy),
) -> Caller:
    if not policy.is_admin(caller):
        raise Forbidden("Admin access required")
    return caller
