"""Errors raised by the Orders domain.

The API layer maps each of these to an HTTP status in ``orders.api.errors``.
"""


class OrdersError(Exception):
    """Base class for Orders domain errors."""


class Unauthenticated(OrdersError):
    """Missing or invalid caller credential."""


class Forbidden(OrdersError):
    """Caller is authenticated but not allowed to perform this operation."""


class NotOrderOwner(Forbidden):
    def __init__(self, order_id: str, caller_id: str) -> None:
        super().__init__(f"Order {order_id} does not belong to {caller_id}")
        self.order_id = order_id
        self.caller_id = caller_id


class OrderNotFound(OrdersError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class PhaseConflict(OrdersError):
    """An action was attempted from a workflow phase that does not permit it."""

    def __init__(self, action: str, phase) -> None:
        self.action = action
        self.phase = getattr(phase, "value", phase)
        super().__init__(f"Cannot {action} an order in phase {self.phase}")


class WebhookNotConfigured(OrdersError):
    """The shared webhook secret has not been configured."""
