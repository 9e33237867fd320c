"""Checkout: command and handler.

Placing an order reserves stock for every line, prices the cart, persists
the order and, for wallet payments, marks it paid. All of it happens in the
handler's Unit of Work, so any error leaves stock and orders untouched.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.reservation import CartLine, reserve_stock
from storefront.ordering.order import Order, OrderStatus, PayMethod
from storefront.ordering.pricing import DeliveryMode, PricingConfig, compute_totals, get_pricing_config, round2
from storefront.zones.zone import find_zone_for_point, find_zone_for_zip

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, variant_key, quantity}
    shipping_address = Text(required=True)  # JSON: address dict
    delivery_mode = String(max_length=20)
    pay_method = String(max_length=20, default=PayMethod.STRIPE.value)
    wallet_amount = Float(default=0.0)
    tip_amount = Float(default=0.0)
    checkout_key = String(max_length=255)


def _load_json(value, field):
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        raise ValidationError({field: ["Malformed JSON"]}) from None


def _parse_quantity(item):
    raw = item.get("quantity")
    error = ValidationError({"quantity": [f"Quantity for product {item.get('product_id')} must be a whole number"]})
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise error
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        raise error from None


def parse_cart_lines(items) -> list[CartLine]:
    if not isinstance(items, list) or not items:
        raise ValidationError({"items": ["Cart is empty"]})

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError({"items": ["Each line item must be an object"]})
        lines.append(
            CartLine(
                product_id=item.get("product_id"),
                quantity=_parse_quantity(item),
                variant_key=item.get("variant_key"),
            )
        )
    return lines


def _parse_pay_method(value) -> PayMethod:
    try:
        return PayMethod(value or PayMethod.STRIPE.value)
    except ValueError:
        raise ValidationError({"pay_method": [f"Unknown payment method '{value}'"]}) from None


def _zone_for_address(address):
    zone = find_zone_for_zip(address.get("zip_code"))
    if zone is None:
        zone = find_zone_for_point(address.get("lat"), address.get("lng"))
    return zone


def checkout_result(order, reused=False) -> dict:
    return {
        "order_id": str(order.id),
        "paid": OrderStatus(order.status) == OrderStatus.PAID,
        "remaining": order.amount_due,
        "reused": reused,
    }


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    # Pricing used for every checkout. None falls back to the configured default.
    pricing_config: PricingConfig | None = None

    @handle(PlaceOrder)
    def place_order(self, command):
        repo = current_domain.repository_for(Order)
        pricing_config = self.pricing_config or get_pricing_config()

        checkout_key = (command.checkout_key or "").strip() or None
        if checkout_key:
            existing = repo._dao.query.filter(customer_id=str(command.customer_id), checkout_key=checkout_key).all()
            if existing.items:
                order = existing.items[0]
                logger.info("Checkout key reused", order_id=str(order.id), checkout_key=checkout_key)
                return checkout_result(order, reused=True)

        pay_method = _parse_pay_method(command.pay_method)
        address = _load_json(command.shipping_address, "shipping_address")
        if not isinstance(address, dict) or not address.get("street") or not address.get("zip_code"):
            raise ValidationError({"shipping_address": ["Street address and ZIP code are required"]})
        lines = parse_cart_lines(_load_json(command.items, "items"))

        zone = _zone_for_address(address)
        totals = None

        def price_cart(reserved):
            nonlocal totals
            totals = compute_totals(
                reserved,
                delivery_mode=command.delivery_mode,
                tip=command.tip_amount,
                config=pricing_config,
            )

            if totals.delivery_mode == DeliveryMode.AREA_GROUP and zone is None:
                raise ValidationError(
                    {"delivery_mode": [f"Area group delivery is not available for ZIP {address.get('zip_code')}"]}
                )
            if pay_method == PayMethod.WALLET and round2(command.wallet_amount or 0) < totals.total:
                raise ValidationError(
                    {"wallet_amount": [f"Wallet amount {command.wallet_amount or 0:.2f} does not cover total {totals.total}"]}
                )

        reserved = reserve_stock(lines, before_write=price_cart)

        order = Order.place(
            customer_id=command.customer_id,
            reserved_lines=reserved,
            totals=totals,
            shipping_address=address,
            pay_method=pay_method.value,
            zone_id=str(zone.id) if zone else None,
            checkout_key=checkout_key,
        )
        if pay_method == PayMethod.WALLET:
            order.mark_paid(
                payment_id=f"wallet-{order.id}",
                amount=float(totals.total),
                pay_method=PayMethod.WALLET.value,
            )
        repo.add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            customer_id=str(command.customer_id),
            delivery_mode=order.delivery_mode,
            total=order.pricing.total,
            paid=order.status == OrderStatus.PAID.value,
        )
        return checkout_result(order)
