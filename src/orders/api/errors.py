"""Map Orders domain errors to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from orders.exceptions import Forbidden, OrderNotFound, PhaseConflict, Unauthenticated, WebhookNotConfigured


def _error(status_code: int, exc: Exception, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), **extra})


async def unauthenticated_handler(request: Request, exc: Unauthenticated) -> JSONResponse:
    return _error(401, exc)


async def forbidden_handler(request: Request, exc: Forbidden) -> JSONResponse:
    return _error(403, exc)


async def not_found_handler(request: Request, exc: OrderNotFound) -> JSONResponse:
    return _error(404, exc)


async def phase_conflict_handler(request: Request, exc: PhaseConflict) -> JSONResponse:
    return _error(409, exc, phase=exc.phase)


async def webhook_not_configured_handler(request: Request, exc: WebhookNotConfigured) -> JSONResponse:
    return _error(500, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Unauthenticated, unauthenticated_handler)
    app.add_exception_handler(Forbidden, forbidden_handler)
    app.add_exception_handler(OrderNotFound, not_found_handler)
    app.add_exception_handler(PhaseConflict, phase_conflict_handler)
    app.add_exception_handler(WebhookNotConfigured, webhook_not_configured_handler)
