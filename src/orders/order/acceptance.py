"""Seller acceptance — command and handler."""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.order import MerchantOrder, load_merchant_order

logger = structlog.get_logger(__name__)


@orders.command(part_of="MerchantOrder")
class AcceptOrder:
    """The owning seller accepts their share of an order."""

    order_id = Identifier(required=True)
    merchant_id = Identifier(required=True)


@orders.command_handler(part_of=MerchantOrder)
class AcceptanceHandler:
    @handle(AcceptOrder)
    def accept_order(self, command):
        order = load_merchant_order(command.order_id)
        order.accept(merchant_id=command.merchant_id, now=datetime.now(UTC))
        current_domain.repository_for(MerchantOrder).add(order)

        logger.info(
            "Order accepted",
            order_id=command.order_id,
            merchant_id=command.merchant_id,
        )
        return command.order_id
