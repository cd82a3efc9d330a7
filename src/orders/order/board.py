"""Order board — phase counts, filtering and search for the admin monitor.

Phases are derived at read time, so the same stored orders land in different
columns as the clock moves.
"""

from collections import Counter
from collections.abc import Iterable
from datetime import datetime

from protean.utils.globals import current_domain

from orders.order.order import MerchantOrder
from orders.order.workflow import PLANNABLE_PHASES, OrderPhase, derive_phase

NEEDS_PLANNING = "needs_planning"
ALL = "all"


def list_orders(merchant_id: str | None = None) -> list[MerchantOrder]:
    """Stored orders, newest first, optionally for a single seller."""
    query = current_domain.repository_for(MerchantOrder)._dao.query
    if merchant_id is not None:
        query = query.filter(merchant_id=str(merchant_id))
    orders = query.all().items
    return sorted(orders, key=lambda o: o.created_at, reverse=True)


def phase_counts(orders: Iterable[MerchantOrder], now: datetime) -> dict[str, int]:
    counts = Counter(derive_phase(order, now).value for order in orders)
    return {phase.value: counts.get(phase.value, 0) for phase in OrderPhase}


def _matches(order: MerchantOrder, needle: str) -> bool:
    haystack = [
        order.order_number,
        order.upstream_order_id,
        order.merchant_id,
        order.customer_email,
        *(line.title for line in order.lines or []),
    ]
    return any(needle in str(value).lower() for value in haystack if value)


def filter_board(
    orders: Iterable[MerchantOrder],
    now: datetime,
    phase_filter: str = ALL,
    query: str | None = None,
) -> list[MerchantOrder]:
    """Orders in the requested column whose text fields contain ``query``.

    ``phase_filter`` is ``all``, ``needs_planning`` (accepted but not yet
    planned, overdue or not) or any single phase name. An unknown phase name
    raises ``ValueError``.
    """
    if phase_filter in (None, "", ALL):
        wanted = None
    elif phase_filter == NEEDS_PLANNING:
        wanted = PLANNABLE_PHASES
    else:
        wanted = frozenset({OrderPhase(phase_filter)})

    needle = (query or "").strip().lower()
    selected = []
    for order in orders:
        if wanted is not None and derive_phase(order, now) not in wanted:
            continue
        if needle and not _matches(order, needle):
            continue
        selected.append(order)
    return selected
