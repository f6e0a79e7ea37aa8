"""Domain initialization and configuration.

Carts, coupons, orders and payments share one domain so that checkout,
cancellation and refunds commit inside a single unit of work.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
