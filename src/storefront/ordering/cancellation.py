"""Order cancellation and stock release: commands and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.reservation import release_stock
from storefront.ordering.order import CancellationActor, Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500, default="Cancelled by customer")
    cancelled_by = String(max_length=50, default=CancellationActor.CUSTOMER.value)


@storefront.command(part_of="Order")
class ReleaseOrderStock:
    order_id = Identifier(required=True)


def release_order_stock(order) -> int:
    """Credit a cancelled order's reserved units back, at most once.

    Returns the number of units credited; 0 when the stock was already
    released earlier.
    """
    if not order.mark_stock_released():
        logger.info("Stock already released", order_id=str(order.id))
        return 0
    return release_stock(order.stock_reservations)


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(
            reason=command.reason,
            cancelled_by=command.cancelled_by,
        )
        units = release_order_stock(order)
        repo.add(order)

        logger.info("Order cancelled", order_id=str(order.id), cancelled_by=command.cancelled_by, units=units)
        return units

    @handle(ReleaseOrderStock)
    def release_stock_for_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        units = release_order_stock(order)
        repo.add(order)
        return units
