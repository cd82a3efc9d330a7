"""Dispatch — command and handler.

Either the owning seller or an admin may mark a planned order as dispatched.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.order import MerchantOrder, load_merchant_order

logger = structlog.get_logger(__name__)


@orders.command(part_of="MerchantOrder")
class MarkDispatched:
    order_id = Identifier(required=True)
    caller_id = Identifier(required=True)
    caller_is_admin = Boolean(default=False)


@orders.command_handler(part_of=MerchantOrder)
class DispatchHandler:
    @handle(MarkDispatched)
    def mark_dispatched(self, command):
        order = load_merchant_order(command.order_id)
        if not command.caller_is_admin:
            order.assert_owned_by(command.caller_id)
        order.mark_dispatched(caller_id=command.caller_id, now=datetime.now(UTC))
        current_domain.repository_for(MerchantOrder).add(order)

        logger.info("Order dispatched", order_id=command.order_id, caller_id=command.caller_id)
        return command.order_id
