"""MerchantOrder aggregate (CQRS) — one seller's share of an upstream order.

An upstream storefront order is split per owning seller at ingestion. Each
share is a MerchantOrder keyed ``"{upstream_order_id}_{merchant_id}"`` that
carries its own acceptance workflow:

State Machine (persisted):
    vendor_pending → vendor_accepted → pickup_assigned → dispatched

The derived ``vendor_expired`` / ``admin_overdue`` phases live in
``orders.order.workflow``; every transition below re-derives the phase at
``now`` and refuses to run from a phase that does not permit it.
"""

import json
from datetime import datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.exceptions import NotOrderOwner, OrderNotFound, PhaseConflict
from orders.order.events import (
    InvoiceRecorded,
    MerchantOrderReceived,
    OrderAccepted,
    OrderDispatched,
    PickupAssigned,
    ShipmentRecorded,
    UpstreamStatusSynced,
)
from orders.order.workflow import (
    ACCEPTABLE_PHASES,
    DISPATCHABLE_PHASES,
    PLANNABLE_PHASES,
    OrderPhase,
    WorkflowStatus,
    accept_deadline,
    derive_phase,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class UpstreamOrderStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class InvoiceStatus(Enum):
    NONE = "none"
    GENERATING = "generating"
    READY = "ready"


def merchant_order_id(upstream_order_id: str, merchant_id: str) -> str:
    return f"{upstream_order_id}_{merchant_id}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@orders.value_object(part_of="MerchantOrder")
class PickupPlan:
    """Where and when the delivery partner collects the parcel."""

    window = String(max_length=255)
    address = String(max_length=1000)
    notes = String(max_length=2000)


@orders.value_object(part_of="MerchantOrder")
class DeliveryPartner:
    name = String(max_length=255)
    phone = String(max_length=50)
    eta_text = String(max_length=255)
    tracking_url = String(max_length=1000)


@orders.value_object(part_of="MerchantOrder")
class Invoice:
    status = String(max_length=20, choices=InvoiceStatus, default=InvoiceStatus.NONE.value)
    url = String(max_length=1000)
    generated_at = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@orders.entity(part_of="MerchantOrder")
class OrderLine:
    """A purchased line captured at ingestion. Never changed afterwards."""

    title = String(max_length=500)
    sku = String(max_length=100)
    quantity = Integer(min_value=0, default=0)
    unit_price = Float(min_value=0.0, default=0.0)
    line_total = Float(min_value=0.0, default=0.0)
    variant_id = String(max_length=50)
    product_id = String(max_length=50)


@orders.entity(part_of="MerchantOrder")
class TimelineEntry:
    kind = String(required=True, max_length=50)
    note = String(max_length=500)
    at = DateTime(required=True)


@orders.entity(part_of="MerchantOrder")
class Shipment:
    tracking_company = String(max_length=255)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1000)
    status = String(max_length=50)
    items = Text()  # JSON list of {sku, quantity, title}
    recorded_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@orders.aggregate
class MerchantOrder:
    upstream_order_id = String(required=True, max_length=50)
    order_number = String(max_length=50)
    merchant_id = Identifier(required=True)
    created_at = DateTime(required=True)
    currency = String(max_length=3)
    financial_status = String(max_length=50)
    order_status = String(
        max_length=20,
        choices=UpstreamOrderStatus,
        default=UpstreamOrderStatus.OPEN.value,
    )
    fulfillment_status = String(max_length=50)
    customer_email = String(max_length=255)
    lines = HasMany(OrderLine)
    subtotal = Float(default=0.0)

    workflow_status = String(max_length=30, choices=WorkflowStatus)
    vendor_accept_by = DateTime()
    vendor_accepted_at = DateTime()
    admin_plan_by = DateTime()
    admin_planned_at = DateTime()
    pickup_plan = ValueObject(PickupPlan)
    delivery_partner = ValueObject(DeliveryPartner)
    dispatched_at = DateTime()
    invoice = ValueObject(Invoice)

    timeline = HasMany(TimelineEntry)
    shipments = HasMany(Shipment)

    @invariant.post
    def subtotal_matches_lines(self):
        expected = round(sum(line.line_total or 0.0 for line in self.lines or []), 2)
        if abs((self.subtotal or 0.0) - expected) > 0.005:
            raise ValidationError({"subtotal": [f"Subtotal {self.subtotal} does not match line totals {expected}"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def receive(
        cls,
        upstream_order_id: str,
        merchant_id: str,
        created_at: datetime,
        lines_data: list[dict],
        accept_by: datetime,
        received_at: datetime,
        order_number: str | None = None,
        currency: str | None = None,
        financial_status: str | None = None,
        customer_email: str | None = None,
    ):
        """Record one seller's share of a newly observed upstream order."""
        order = cls(
            id=merchant_order_id(upstream_order_id, merchant_id),
            upstream_order_id=upstream_order_id,
            order_number=order_number or upstream_order_id,
            merchant_id=merchant_id,
            created_at=created_at,
            currency=currency,
            financial_status=financial_status,
            customer_email=customer_email,
            workflow_status=WorkflowStatus.VENDOR_PENDING.value,
            vendor_accept_by=accept_by,
        )
        with atomic_change(order):
            subtotal = 0.0
            for data in lines_data:
                quantity = int(data.get("quantity") or 0)
                unit_price = float(data.get("unit_price") or 0.0)
                line_total = unit_price * quantity
                subtotal += line_total
                order.add_lines(
                    OrderLine(
                        title=data.get("title"),
                        sku=data.get("sku"),
                        quantity=quantity,
                        unit_price=unit_price,
                        line_total=line_total,
                        variant_id=data.get("variant_id"),
                        product_id=data.get("product_id"),
                    )
                )
            order.subtotal = round(subtotal, 2)

        order.add_timeline(TimelineEntry(kind="received", note="Order received", at=received_at))
        order.raise_(
            MerchantOrderReceived(
                order_id=str(order.id),
                upstream_order_id=upstream_order_id,
                merchant_id=merchant_id,
                subtotal=order.subtotal,
                currency=currency,
                line_count=len(lines_data),
                vendor_accept_by=accept_by,
                received_at=received_at,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Workflow
    # -------------------------------------------------------------------
    def phase(self, now: datetime) -> OrderPhase:
        return derive_phase(self, now)

    def _require_phase(self, action: str, allowed: frozenset, now: datetime) -> OrderPhase:
        current = self.phase(now)
        if current not in allowed:
            raise PhaseConflict(action, current)
        return current

    def assert_owned_by(self, merchant_id: str) -> None:
        if str(self.merchant_id) != str(merchant_id):
            raise NotOrderOwner(str(self.id), merchant_id)

    def accept(self, merchant_id: str, now: datetime) -> None:
        """Seller accepts the order. Allowed past the deadline."""
        self.assert_owned_by(merchant_id)
        current = self._require_phase("accept", ACCEPTABLE_PHASES, now)

        self.workflow_status = WorkflowStatus.VENDOR_ACCEPTED.value
        if self.vendor_accepted_at is None:
            self.vendor_accepted_at = now
        self.raise_(
            OrderAccepted(
                order_id=str(self.id),
                merchant_id=str(self.merchant_id),
                late=current is OrderPhase.VENDOR_EXPIRED,
                accepted_at=self.vendor_accepted_at,
            )
        )

    def assign_pickup(
        self,
        admin_id: str,
        pickup_plan: PickupPlan,
        delivery_partner: DeliveryPartner,
        now: datetime,
    ) -> None:
        """Admin plans pickup for an accepted order."""
        self._require_phase("assign pickup for", PLANNABLE_PHASES, now)

        self.workflow_status = WorkflowStatus.PICKUP_ASSIGNED.value
        if self.admin_planned_at is None:
            self.admin_planned_at = now
        self.pickup_plan = pickup_plan
        self.delivery_partner = delivery_partner
        self.raise_(
            PickupAssigned(
                order_id=str(self.id),
                admin_id=admin_id,
                pickup_window=pickup_plan.window if pickup_plan else None,
                partner_name=delivery_partner.name if delivery_partner else None,
                planned_at=self.admin_planned_at,
            )
        )

    def mark_dispatched(self, caller_id: str, now: datetime) -> None:
        self._require_phase("dispatch", DISPATCHABLE_PHASES, now)

        self.workflow_status = WorkflowStatus.DISPATCHED.value
        if self.dispatched_at is None:
            self.dispatched_at = now
        self.raise_(
            OrderDispatched(
                order_id=str(self.id),
                dispatched_by=caller_id,
                dispatched_at=self.dispatched_at,
            )
        )

    def accept_deadline(self) -> datetime:
        return accept_deadline(self)

    # -------------------------------------------------------------------
    # Upstream mirroring
    # -------------------------------------------------------------------
    def sync_upstream_status(self, order_status: str, financial_status: str | None, now: datetime) -> None:
        """Refresh payment and open/closed status from the storefront."""
        if financial_status:
            self.financial_status = financial_status
        self.order_status = UpstreamOrderStatus(order_status).value
        self.add_timeline(
            TimelineEntry(
                kind="orders/updated",
                note=f"status={order_status} financial_status={financial_status or '-'}",
                at=now,
            )
        )
        self.raise_(
            UpstreamStatusSynced(
                order_id=str(self.id),
                financial_status=financial_status,
                order_status=self.order_status,
                synced_at=now,
            )
        )

    def record_shipment(
        self,
        items: list[dict],
        now: datetime,
        tracking_company: str | None = None,
        tracking_number: str | None = None,
        tracking_url: str | None = None,
        status: str | None = None,
        fulfillment_status: str | None = None,
        source: str = "fulfillments/create",
    ) -> None:
        items_json = json.dumps(items)
        self.add_shipments(
            Shipment(
                tracking_company=tracking_company,
                tracking_number=tracking_number,
                tracking_url=tracking_url,
                status=status,
                items=items_json,
                recorded_at=now,
            )
        )
        if fulfillment_status:
            self.fulfillment_status = fulfillment_status
        self.add_timeline(TimelineEntry(kind=source, note=f"tracking={tracking_number or '-'}", at=now))
        self.raise_(
            ShipmentRecorded(
                order_id=str(self.id),
                tracking_number=tracking_number,
                status=status,
                items=items_json,
                recorded_at=now,
            )
        )

    def record_invoice(self, status: str, url: str | None, now: datetime) -> None:
        invoice_status = InvoiceStatus(status)
        self.invoice = Invoice(
            status=invoice_status.value,
            url=url,
            generated_at=now if invoice_status is InvoiceStatus.READY else None,
        )
        self.raise_(
            InvoiceRecorded(
                order_id=str(self.id),
                status=invoice_status.value,
                url=url,
                recorded_at=now,
            )
        )


def load_merchant_order(order_id: str) -> MerchantOrder:
    """Fetch an order, surfacing a missing one as ``OrderNotFound``."""
    try:
        return current_domain.repository_for(MerchantOrder).get(order_id)
    except ObjectNotFoundError:
        raise OrderNotFound(order_id) from None
