"""Orders bounded context — seller order workflow for the marketplace back office.

Mirrors upstream storefront orders into one aggregate per owning seller,
tracks the seller-acceptance and pickup-planning deadlines, and gates the
accept / assign-pickup / dispatch actions on the derived workflow phase.
"""

from protean.domain import Domain

from orders.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
orders = Domain(name="orders")
