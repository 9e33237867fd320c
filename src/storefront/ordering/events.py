"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """Stock was reserved and a new order was persisted at checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    delivery_mode = String(required=True)
    zone_id = Identifier()
    item_count = Integer(required=True)
    total = Float(required=True)
    pay_method = String(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaid:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = String(required=True)
    pay_method = String(required=True)
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    """A pending order was cancelled by the customer, an admin or a failed payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStockReleased:
    """Reserved units of a cancelled order were credited back to the catalogue."""

    __version__ = 1

    order_id = Identifier(required=True)
    units = Integer(required=True)
    released_at = DateTime(required=True)
