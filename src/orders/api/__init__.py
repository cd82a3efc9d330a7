"""Orders domain API package."""

from orders.api.errors import register_error_handlers
from orders.api.routes import admin_router, order_router, webhook_router

__all__ = ["admin_router", "order_router", "webhook_router", "register_error_handlers"]
