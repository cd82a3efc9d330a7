"""Seller sales counters.

One ``MerchantSale`` row is inserted per merchant order at ingestion, in the
same unit of work as the order itself. Rows are never updated, so concurrent
ingestions for the same seller cannot lose an increment. The counters are the
aggregate over a seller's rows.
"""

from dataclasses import dataclass

from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from orders.domain import orders


@orders.projection
class MerchantSale:
    merchant_order_id = Identifier(identifier=True, required=True)
    merchant_id = Identifier(required=True)
    amount = Float(default=0.0)
    currency = String(max_length=3)
    recorded_at = DateTime()


@dataclass(frozen=True)
class MerchantStats:
    merchant_id: str
    orders_count: int
    revenue: float


def merchant_stats(merchant_id: str) -> MerchantStats:
    rows = current_domain.repository_for(MerchantSale)._dao.query.filter(merchant_id=str(merchant_id)).all().items
    return MerchantStats(
        merchant_id=str(merchant_id),
        orders_count=len(rows),
        revenue=round(sum(row.amount or 0.0 for row in rows), 2),
    )
