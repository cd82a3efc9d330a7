"""Pickup planning — command and handler.

An admin records where and when the parcel is collected and which delivery
partner carries it. Planning an overdue order is allowed.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.order import DeliveryPartner, MerchantOrder, PickupPlan, load_merchant_order

logger = structlog.get_logger(__name__)


@orders.command(part_of="MerchantOrder")
class AssignPickup:
    order_id = Identifier(required=True)
    admin_id = Identifier(required=True)
    window = String(max_length=255)
    address = String(max_length=1000)
    notes = String(max_length=2000)
    partner_name = String(max_length=255)
    partner_phone = String(max_length=50)
    eta_text = String(max_length=255)
    tracking_url = String(max_length=1000)


@orders.command_handler(part_of=MerchantOrder)
class PickupHandler:
    @handle(AssignPickup)
    def assign_pickup(self, command):
        order = load_merchant_order(command.order_id)
        order.assign_pickup(
            admin_id=command.admin_id,
            pickup_plan=PickupPlan(
                window=command.window,
                address=command.address,
                notes=command.notes,
            ),
            delivery_partner=DeliveryPartner(
                name=command.partner_name,
                phone=command.partner_phone,
                eta_text=command.eta_text,
                tracking_url=command.tracking_url,
            ),
            now=datetime.now(UTC),
        )
        current_domain.repository_for(MerchantOrder).add(order)

        logger.info("Pickup assigned", order_id=command.order_id, admin_id=command.admin_id)
        return command.order_id
