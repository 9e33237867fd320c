"""Order total computation.

``compute_totals`` is a pure function of the priced lines, the delivery mode,
the tip and a ``PricingConfig``. Money is handled as ``Decimal`` and rounded
half-up to cents at every accumulation step, so ``20.00 * 8.875%`` is 1.78
and not the 1.77 a binary float would give.

Provides get_pricing_config() / set_pricing_config() to swap the active
configuration:
- the default is read from ``STOREFRONT_*`` environment variables
- tests install their own ``PricingConfig`` and reset afterwards
"""

import os
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from protean.exceptions import ValidationError

CENT = Decimal("0.01")


def round2(value) -> Decimal:
    """Round a money amount to cents, half-up."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class DeliveryMode(Enum):
    DEALS_DAY = "deals_day"
    NEXT_DAY = "next_day"
    AREA_GROUP = "area_group"


@dataclass(frozen=True)
class PricingConfig:
    platform_fee_fixed: Decimal = Decimal("0.50")
    platform_fee_rate: Decimal = Decimal("0.02")
    tax_rate: Decimal = Decimal("0.08875")
    next_day_fee: Decimal = Decimal("4.99")
    area_group_min_spend: Decimal = Decimal("49.99")

    @classmethod
    def from_env(cls) -> "PricingConfig":
        defaults = cls()
        return cls(
            platform_fee_fixed=Decimal(os.getenv("STOREFRONT_PLATFORM_FEE_FIXED", str(defaults.platform_fee_fixed))),
            platform_fee_rate=Decimal(os.getenv("STOREFRONT_PLATFORM_FEE_RATE", str(defaults.platform_fee_rate))),
            tax_rate=Decimal(os.getenv("STOREFRONT_TAX_RATE", str(defaults.tax_rate))),
            next_day_fee=Decimal(os.getenv("STOREFRONT_NEXT_DAY_FEE", str(defaults.next_day_fee))),
            area_group_min_spend=Decimal(
                os.getenv("STOREFRONT_AREA_GROUP_MIN_SPEND", str(defaults.area_group_min_spend))
            ),
        )


_current_config: PricingConfig | None = None


def get_pricing_config() -> PricingConfig:
    """Return the active pricing configuration. Defaults to the environment."""
    global _current_config
    if _current_config is None:
        _current_config = PricingConfig.from_env()
    return _current_config


def set_pricing_config(config: PricingConfig) -> None:
    """Override the active pricing configuration (useful for tests)."""
    global _current_config
    _current_config = config


def reset_pricing_config() -> None:
    """Reset to the environment-derived configuration."""
    global _current_config
    _current_config = None


@dataclass(frozen=True)
class PriceLine:
    """The priced part of a line item. Reserved lines carry the same attributes."""

    quantity: int
    unit_price: float
    deposit_each: float = 0.0
    is_flash_sale: bool = False
    special_qty: int = 0
    special_total_price: float = 0.0


def special_line_total(quantity, unit_price, special_qty=0, special_total_price=0.0) -> Decimal:
    """Line subtotal under an "N for $X" offer.

    With ``special_qty == 1`` every item sells at ``special_total_price``.
    With ``special_qty >= 2`` the group price applies to each full group of N
    and the remainder is charged at ``unit_price``. Without an offer, or below
    N items, the line is ``quantity * unit_price``.
    """
    quantity = int(quantity or 0)
    if quantity <= 0:
        return Decimal("0.00")

    base_price = round2(unit_price)
    special_qty = int(special_qty or 0)
    group_price = round2(special_total_price or 0)

    if special_qty == 1 and group_price > 0:
        return round2(quantity * group_price)
    if special_qty >= 2 and group_price > 0 and quantity >= special_qty:
        groups, remainder = divmod(quantity, special_qty)
        return round2(groups * group_price + remainder * base_price)
    return round2(quantity * base_price)


@dataclass(frozen=True)
class Totals:
    delivery_mode: DeliveryMode
    subtotal: Decimal
    shipping_fee: Decimal
    platform_fee: Decimal
    tax_amount: Decimal
    bottle_deposit: Decimal
    tip: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "shipping_fee": float(self.shipping_fee),
            "platform_fee": float(self.platform_fee),
            "tax_amount": float(self.tax_amount),
            "bottle_deposit": float(self.bottle_deposit),
            "tip": float(self.tip),
            "total": float(self.total),
        }


def resolve_delivery_mode(lines, requested=None) -> DeliveryMode:
    """Pick the delivery mode for a cart.

    A cart made only of flash-sale items always ships on the deals day.
    """
    if lines and all(line.is_flash_sale for line in lines):
        return DeliveryMode.DEALS_DAY

    if requested is None or requested == "":
        return DeliveryMode.NEXT_DAY

    try:
        mode = requested if isinstance(requested, DeliveryMode) else DeliveryMode(requested)
    except ValueError:
        raise ValidationError({"delivery_mode": [f"Unknown delivery mode '{requested}'"]}) from None

    if mode == DeliveryMode.DEALS_DAY:
        raise ValidationError({"delivery_mode": ["Deals day delivery is only available for flash-sale items"]})
    return mode


def shipping_fee_for(mode: DeliveryMode, subtotal, config: PricingConfig) -> Decimal:
    if mode == DeliveryMode.DEALS_DAY:
        return Decimal("0.00")
    if mode == DeliveryMode.AREA_GROUP and round2(subtotal) >= config.area_group_min_spend:
        return Decimal("0.00")
    return round2(config.next_day_fee)


def compute_totals(lines, delivery_mode=None, tip=0, config: PricingConfig | None = None) -> Totals:
    """Compute every amount charged for an order."""
    config = config or get_pricing_config()

    tip_amount = round2(tip or 0)
    if tip_amount < 0:
        raise ValidationError({"tip_amount": ["Tip cannot be negative"]})

    mode = resolve_delivery_mode(lines, delivery_mode)

    subtotal = Decimal("0.00")
    bottle_deposit = Decimal("0.00")
    for line in lines:
        subtotal += special_line_total(line.quantity, line.unit_price, line.special_qty, line.special_total_price)
        bottle_deposit += round2(Decimal(line.quantity) * Decimal(str(line.deposit_each or 0)))
    subtotal = round2(subtotal)
    bottle_deposit = round2(bottle_deposit)

    shipping_fee = shipping_fee_for(mode, subtotal, config)
    platform_fee = round2(config.platform_fee_fixed + subtotal * config.platform_fee_rate)
    tax_amount = round2(subtotal * config.tax_rate)
    total = round2(subtotal + shipping_fee + platform_fee + tax_amount + bottle_deposit + tip_amount)

    return Totals(
        delivery_mode=mode,
        subtotal=subtotal,
        shipping_fee=shipping_fee,
        platform_fee=platform_fee,
        tax_amount=tax_amount,
        bottle_deposit=bottle_deposit,
        tip=tip_amount,
        total=total,
    )
