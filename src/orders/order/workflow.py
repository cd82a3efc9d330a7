"""Workflow phase derivation for seller orders.

Only four states are ever persisted. Two more exist purely as a function of
elapsed time and are derived on every read:

    vendor_pending  ──(accept deadline passes)──▶ vendor_expired
    vendor_accepted ──(plan deadline passes)────▶ admin_overdue

Expiry never blocks an action: a seller may still accept a ``vendor_expired``
order and an admin may still plan an ``admin_overdue`` one. The derived phase
only colours urgency. Nothing in this module mutates the order.

The seller allowance runs on business hours; the admin allowance is plain
wall-clock time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from shared.business_hours import BusinessHours, format_countdown

from orders.config import get_settings


class WorkflowStatus(Enum):
    VENDOR_PENDING = "vendor_pending"
    VENDOR_ACCEPTED = "vendor_accepted"
    PICKUP_ASSIGNED = "pickup_assigned"
    DISPATCHED = "dispatched"


class OrderPhase(Enum):
    VENDOR_PENDING = "vendor_pending"
    VENDOR_EXPIRED = "vendor_expired"
    VENDOR_ACCEPTED = "vendor_accepted"
    ADMIN_OVERDUE = "admin_overdue"
    PICKUP_ASSIGNED = "pickup_assigned"
    DISPATCHED = "dispatched"


ACCEPTABLE_PHASES = frozenset({OrderPhase.VENDOR_PENDING, OrderPhase.VENDOR_EXPIRED})
PLANNABLE_PHASES = frozenset({OrderPhase.VENDOR_ACCEPTED, OrderPhase.ADMIN_OVERDUE})
DISPATCHABLE_PHASES = frozenset({OrderPhase.PICKUP_ASSIGNED})

ACCEPT_LABEL = "accept by"
PLAN_LABEL = "plan by"


@dataclass(frozen=True)
class Countdown:
    label: str
    ms: int

    @property
    def is_overdue(self) -> bool:
        return self.ms <= 0

    @property
    def display(self) -> str:
        return format_countdown(timedelta(milliseconds=self.ms))


def persisted_status(order) -> WorkflowStatus:
    """Stored workflow status, with a missing value read as ``vendor_pending``.

    Orders written before the workflow existed carry no status. Any other
    unrecognised value raises ``ValueError`` instead of being guessed at.
    """
    raw = getattr(order, "workflow_status", None)
    if not raw:
        return WorkflowStatus.VENDOR_PENDING
    return WorkflowStatus(raw)


def accept_deadline(order, hours: BusinessHours | None = None, window: timedelta | None = None) -> datetime:
    if order.vendor_accept_by is not None:
        return order.vendor_accept_by
    settings = get_settings()
    hours = hours or settings.business_hours()
    window = window or settings.vendor_accept_window
    return hours.add_business_duration(order.created_at, window)


def plan_deadline(order, now: datetime, window: timedelta | None = None) -> datetime:
    if order.admin_plan_by is not None:
        return order.admin_plan_by
    window = window or get_settings().admin_plan_window
    return (order.vendor_accepted_at or now) + window


def derive_phase(order, now: datetime, hours: BusinessHours | None = None) -> OrderPhase:
    status = persisted_status(order)

    if status is WorkflowStatus.PICKUP_ASSIGNED:
        return OrderPhase.PICKUP_ASSIGNED
    if status is WorkflowStatus.DISPATCHED:
        return OrderPhase.DISPATCHED

    if status is WorkflowStatus.VENDOR_ACCEPTED:
        if now > plan_deadline(order, now):
            return OrderPhase.ADMIN_OVERDUE
        return OrderPhase.VENDOR_ACCEPTED

    if now > accept_deadline(order, hours):
        return OrderPhase.VENDOR_EXPIRED
    return OrderPhase.VENDOR_PENDING


def active_countdown(order, now: datetime, hours: BusinessHours | None = None) -> Countdown | None:
    """The deadline currently ticking for the order, or None once handed off."""
    phase = derive_phase(order, now, hours)

    if phase in ACCEPTABLE_PHASES:
        return Countdown(label=ACCEPT_LABEL, ms=_ms(accept_deadline(order, hours) - now))
    if phase in PLANNABLE_PHASES:
        return Countdown(label=PLAN_LABEL, ms=_ms(plan_deadline(order, now) - now))
    return None


def _ms(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)
