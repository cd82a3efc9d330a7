"""Invoice tracking — command and handler."""

from datetime import UTC, datetime

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders
from orders.order.order import InvoiceStatus, MerchantOrder, load_merchant_order


@orders.command(part_of="MerchantOrder")
class RecordInvoice:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20, choices=InvoiceStatus)
    url = String(max_length=1000)


@orders.command_handler(part_of=MerchantOrder)
class InvoiceHandler:
    @handle(RecordInvoice)
    def record_invoice(self, command):
        order = load_merchant_order(command.order_id)
        order.record_invoice(status=command.status, url=command.url, now=datetime.now(UTC))
        current_domain.repository_for(MerchantOrder).add(order)
        return command.order_id
