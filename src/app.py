"""Marketplace back-office FastAPI application.

Receives signed storefront webhooks and serves the seller and admin order
workflow. Every request runs inside the Orders domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from orders/domain.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from orders.access import build_identity_verifier
from orders.access.port import IdentityVerifier
from orders.config import get_settings
from orders.domain import orders  # noqa: E402
from protean.integrations.fastapi import register_exception_handlers

orders.init()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
def create_app(identity_verifier: IdentityVerifier | None = None) -> FastAPI:
    app = FastAPI(
        title="Marketplace Back Office API",
        description="Seller order ingestion and fulfilment workflow",
    )
    if identity_verifier is None:
        identity_verifier = build_identity_verifier(get_settings().identity_adapter)
    app.state.identity_verifier = identity_verifier

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the Orders domain context for each request."""
        with orders.domain_context():
            response = await call_next(request)
        return response

    from orders.api import admin_router, order_router, register_error_handlers, webhook_router

    register_exception_handlers(app)
    register_error_handlers(app)

    app.include_router(webhook_router)
    app.include_router(order_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": orders.name})

    return app


app = create_app()
