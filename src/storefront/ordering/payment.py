"""Payment results for pending orders: commands and handler.

Card payments are confirmed after checkout by the gateway. A confirmation
marks the order paid; a failure cancels it and returns its stock.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.ordering.cancellation import release_order_stock
from storefront.ordering.order import CancellationActor, Order, PayMethod
from storefront.ordering.pricing import round2

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class RecordPayment:
    order_id = Identifier(required=True)
    payment_id = String(required=True, max_length=255)
    amount = Float()  # Optional, defaults to the order total
    pay_method = String(max_length=20, default=PayMethod.STRIPE.value)


@storefront.command(part_of="Order")
class RecordPaymentFailure:
    order_id = Identifier(required=True)
    reason = String(max_length=500, default="Payment failed")


@storefront.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        amount = order.pricing.total if command.amount is None else command.amount
        if round2(amount) < round2(order.pricing.total):
            raise ValidationError(
                {"amount": [f"Payment of {round2(amount)} does not cover order total {round2(order.pricing.total)}"]}
            )

        order.mark_paid(payment_id=command.payment_id, amount=amount, pay_method=command.pay_method)
        repo.add(order)

        logger.info("Payment recorded", order_id=str(order.id), payment_id=command.payment_id, amount=amount)

    @handle(RecordPaymentFailure)
    def record_payment_failure(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(reason=command.reason, cancelled_by=CancellationActor.SYSTEM.value)
        units = release_order_stock(order)
        repo.add(order)

        logger.warning("Payment failed, order cancelled", order_id=str(order.id), reason=command.reason, units=units)
        return units
