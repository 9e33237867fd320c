"""Stock reservation and rollback over the Product repository.

Both operations are called from command handlers, so they run inside the
handler's Unit of Work: every product touched by a checkout (or a release)
is committed together or not at all.

Reservation loads each product once, applies every line to the in-memory
aggregate and only then writes the products back. A line that fails raises
before any repository write, so a rejected cart never leaves a partial stock
deduction behind, whatever the underlying provider's transaction support.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.errors import NotFoundError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartLine:
    """A line item as requested by the customer."""

    product_id: str | None
    quantity: int
    variant_key: str | None = None


@dataclass(frozen=True)
class ReservedLine:
    """What was taken from stock for one cart line, priced at reservation time."""

    product_id: str
    variant_key: str
    unit_count: int
    quantity: int
    need_units: int
    unit_price: float
    name: str
    deposit_each: float = 0.0
    is_flash_sale: bool = False
    image: str | None = None
    backordered_units: int = 0
    special_qty: int = 0
    special_total_price: float = 0.0

    @property
    def releasable_units(self) -> int:
        return self.need_units - self.backordered_units


def _load_product(repo, product_id):
    try:
        return repo.get(product_id)
    except ObjectNotFoundError:
        raise NotFoundError({"product_id": [f"Product {product_id} not found"]}) from None


def reserve_stock(lines, before_write=None) -> list[ReservedLine]:
    """Decrement stock for every line of a cart, all or nothing.

    ``before_write``, when given, is called with the reserved lines after every
    line has been checked and before any product is written. Raising from it
    aborts the reservation with stock untouched.
    """
    if not lines:
        raise ValidationError({"items": ["Cart is empty"]})

    repo = current_domain.repository_for(Product)
    products = {}
    reserved = []

    for line in lines:
        product_id = str(line.product_id or "").strip()
        if not product_id:
            raise ValidationError({"product_id": ["Every line item needs a product id"]})
        if line.quantity is None or line.quantity <= 0:
            raise ValidationError({"quantity": [f"Quantity for product {product_id} must be positive"]})

        product = products.get(product_id)
        if product is None:
            product = _load_product(repo, product_id)
            if not product.is_active:
                raise ValidationError({"product_id": [f"{product.name} is no longer available"]})
            products[product_id] = product

        pack_size = product.resolve_pack_size(line.variant_key)
        need_units = line.quantity * pack_size.unit_count
        backordered = product.take_stock(need_units)
        special_qty, special_total_price = product.special_offer_for(pack_size)

        reserved.append(
            ReservedLine(
                product_id=product_id,
                variant_key=pack_size.key,
                unit_count=pack_size.unit_count,
                quantity=line.quantity,
                need_units=need_units,
                unit_price=product.unit_price_for(pack_size),
                name=product.name,
                deposit_each=product.deposit_for(pack_size),
                is_flash_sale=bool(product.is_flash_sale),
                image=product.image,
                backordered_units=backordered,
                special_qty=special_qty,
                special_total_price=special_total_price,
            )
        )

    if before_write is not None:
        before_write(reserved)

    for product in products.values():
        repo.add(product)

    logger.info(
        "Stock reserved",
        products=len(products),
        lines=len(reserved),
        units=sum(r.need_units for r in reserved),
    )
    return reserved


def release_stock(reservations) -> int:
    """Credit reserved units back to their products.

    ``reservations`` are any records exposing ``product_id``, ``need_units``
    and ``backordered_units``. Backordered units were never taken from stock
    and are not returned. Returns the number of units credited.
    """
    units_by_product = {}
    for record in reservations:
        units = (record.need_units or 0) - (record.backordered_units or 0)
        if units > 0:
            product_id = str(record.product_id)
            units_by_product[product_id] = units_by_product.get(product_id, 0) + units

    repo = current_domain.repository_for(Product)
    credited = 0
    for product_id, units in units_by_product.items():
        try:
            product = repo.get(product_id)
        except ObjectNotFoundError:
            logger.warning("Cannot return stock to missing product", product_id=product_id, units=units)
            continue
        product.return_stock(units)
        repo.add(product)
        credited += units

    logger.info("Stock released", products=len(units_by_product), units=credited)
    return credited
