"""Storefront bounded context: catalogue, stock reservation, orders and delivery zones.

Products, orders and zones live in one domain so that a checkout can reserve
stock on several products and create the order inside a single Unit of Work.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

storefront = Domain(name="storefront")
