"""MerchantOrder domain events — immutable facts about seller order changes."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from orders.domain import orders


@orders.event(part_of="MerchantOrder")
class MerchantOrderReceived:
    """An upstream order was split out to one seller."""

    __version__ = 1

    order_id = Identifier(required=True)
    upstream_order_id = String(required=True)
    merchant_id = Identifier(required=True)
    subtotal = Float(required=True)
    currency = String(max_length=3)
    line_count = Integer(required=True)
    vendor_accept_by = DateTime(required=True)
    received_at = DateTime(required=True)


@orders.event(part_of="MerchantOrder")
class OrderAccepted:
    """The seller accepted the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    late = Boolean(default=False)
    accepted_at = DateTime(required=True)


@orders.event(part_of="MerchantOrder")
class PickupAssigned:
    """An admin planned pickup and a delivery partner for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    admin_id = Identifier(required=True)
    pickup_window = String()
    partner_name = String()
    planned_at = DateTime(required=True)


@orders.event(part_of="MerchantOrder")
class OrderDispatched:
    """The order physically left the seller."""

    __version__ = 1

    order_id = Identifier(required=True)
    dispatched_by = Identifier(required=True)
    dispatched_at = DateTime(required=True)


@orders.event(part_of="MerchantOrder")
class UpstreamStatusSynced:
    """Payment or order status was refreshed from the storefront."""

    __version__ = 1

    order_id = Identifier(required=True)
    financial_status = String()
    order_status = String(required=True)
    synced_at = DateTime(required=True)


@orders.event(part_of="MerchantOrder")
class ShipmentRecorded:
    """The storefront reported a fulfilment covering this seller's items."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String()
    status = String()
    items = Text()  # JSON list of {sku, quantity, title}
    recorded_at = DateTime(required=True)


@orders.event(part_of="MerchantOrder")
class InvoiceRecorded:
    __version__ = 1

    order_id = Identifier(required=True)
    status = String(required=True)
    url = String()
    recorded_at = DateTime(required=True)
