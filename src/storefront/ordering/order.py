"""Order aggregate: the priced snapshot of a checkout and its payment lifecycle.

State Machine:
    PENDING → PAID
    PENDING → CANCELLED (stock is released exactly once afterwards)

Every other transition raises ``ConflictError`` and leaves the order as it was.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from storefront.domain import storefront
from storefront.errors import ConflictError
from storefront.ordering.events import OrderCancelled, OrderPaid, OrderPlaced, OrderStockReleased
from storefront.ordering.pricing import special_line_total


class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class PayMethod(Enum):
    WALLET = "wallet"
    STRIPE = "stripe"


class CancellationActor(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Where the order is delivered, as captured at checkout."""

    recipient = String(max_length=255)
    phone = String(max_length=30)
    street = String(required=True, max_length=255)
    city = String(max_length=100)
    state = String(max_length=100)
    zip_code = String(required=True, max_length=20)
    lat = Float()
    lng = Float()


@storefront.value_object(part_of="Order")
class OrderPricing:
    """Amounts charged for an order, locked at checkout."""

    subtotal = Float(default=0.0)
    shipping_fee = Float(default=0.0)
    platform_fee = Float(default=0.0)
    tax_amount = Float(default=0.0)
    bottle_deposit = Float(default=0.0)
    tip = Float(default=0.0)
    total = Float(default=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A purchased line, snapshotted so later catalogue edits never change it."""

    product_id = Identifier(required=True)
    variant_key = String(required=True, max_length=50)
    name = String(required=True, max_length=255)
    image = String(max_length=512)
    quantity = Integer(required=True, min_value=1)
    unit_count = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    deposit_each = Float(default=0.0)
    line_total = Float(required=True)


@storefront.entity(part_of="Order")
class StockReservation:
    """Base units taken from a product's stock for this order."""

    product_id = Identifier(required=True)
    variant_key = String(required=True, max_length=50)
    unit_count = Integer(required=True, min_value=1)
    quantity = Integer(required=True, min_value=1)
    need_units = Integer(required=True, min_value=1)
    unit_price = Float(required=True)
    backordered_units = Integer(default=0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    customer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    stock_reservations = HasMany(StockReservation)
    shipping_address = ValueObject(ShippingAddress)
    pricing = ValueObject(OrderPricing)
    delivery_mode = String(max_length=20)
    zone_id = Identifier()
    stock_released = Boolean(default=False)
    checkout_key = String(max_length=255)
    pay_method = String(choices=PayMethod, default=PayMethod.STRIPE.value)
    payment_id = String(max_length=255)
    amount_paid = Float(default=0.0)
    paid_at = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(choices=CancellationActor)
    cancelled_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        reserved_lines,
        totals,
        shipping_address,
        pay_method=PayMethod.STRIPE.value,
        zone_id=None,
        checkout_key=None,
    ):
        """Create a pending order from reserved lines and their computed totals.

        Args:
            customer_id: The customer placing the order.
            reserved_lines: ``ReservedLine`` records returned by stock reservation.
            totals: ``Totals`` computed for the same lines.
            shipping_address: Dict with street, zip_code and optional
                recipient, phone, city, state, lat, lng.
        """
        now = datetime.now(UTC)

        order = cls(
            customer_id=customer_id,
            shipping_address=ShippingAddress(
                recipient=shipping_address.get("recipient"),
                phone=shipping_address.get("phone"),
                street=shipping_address.get("street"),
                city=shipping_address.get("city"),
                state=shipping_address.get("state"),
                zip_code=shipping_address.get("zip_code"),
                lat=shipping_address.get("lat"),
                lng=shipping_address.get("lng"),
            ),
            pricing=OrderPricing(**totals.to_dict()),
            delivery_mode=totals.delivery_mode.value,
            zone_id=zone_id,
            checkout_key=checkout_key,
            pay_method=pay_method,
            created_at=now,
            updated_at=now,
        )

        for line in reserved_lines:
            order.add_items(
                OrderItem(
                    product_id=line.product_id,
                    variant_key=line.variant_key,
                    name=line.name,
                    image=line.image,
                    quantity=line.quantity,
                    unit_count=line.unit_count,
                    unit_price=line.unit_price,
                    deposit_each=line.deposit_each,
                    line_total=float(
                        special_line_total(line.quantity, line.unit_price, line.special_qty, line.special_total_price)
                    ),
                )
            )
            order.add_stock_reservations(
                StockReservation(
                    product_id=line.product_id,
                    variant_key=line.variant_key,
                    unit_count=line.unit_count,
                    quantity=line.quantity,
                    need_units=line.need_units,
                    unit_price=line.unit_price,
                    backordered_units=line.backordered_units,
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                delivery_mode=order.delivery_mode,
                zone_id=str(zone_id) if zone_id else None,
                item_count=len(reserved_lines),
                total=order.pricing.total,
                pay_method=pay_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ConflictError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    @property
    def amount_due(self) -> float:
        if OrderStatus(self.status) == OrderStatus.PAID:
            return 0.0
        return self.pricing.total if self.pricing else 0.0

    @property
    def releasable_units(self) -> int:
        return sum(r.need_units - (r.backordered_units or 0) for r in self.stock_reservations)

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def mark_paid(self, payment_id, amount, pay_method=None):
        self._assert_can_transition(OrderStatus.PAID)

        now = datetime.now(UTC)
        self.status = OrderStatus.PAID.value
        self.payment_id = payment_id
        if pay_method:
            self.pay_method = pay_method
        self.amount_paid = amount
        self.paid_at = now
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                payment_id=payment_id,
                pay_method=self.pay_method,
                amount=amount,
                paid_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, reason, cancelled_by=CancellationActor.CUSTOMER.value):
        self._assert_can_transition(OrderStatus.CANCELLED)

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.cancelled_at = now
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reason=reason,
                cancelled_by=cancelled_by,
                cancelled_at=now,
            )
        )

    def mark_stock_released(self) -> bool:
        """Flag the reserved stock as returned.

        Returns False when it was already released, in which case nothing
        changes and the caller must not credit stock again.
        """
        if OrderStatus(self.status) != OrderStatus.CANCELLED:
            raise ConflictError({"status": [f"Stock can only be released for cancelled orders, order is {self.status}"]})
        if self.stock_released:
            return False

        now = datetime.now(UTC)
        self.stock_released = True
        self.updated_at = now

        self.raise_(
            OrderStockReleased(
                order_id=str(self.id),
                units=self.releasable_units,
                released_at=now,
            )
        )
        return True
