"""Domain events for the Product aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductAdded:
    """A new product was added to the catalogue."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    sku = String()
    price = Float(required=True)
    stock = Integer(required=True)
    is_flash_sale = Boolean(default=False)
    added_at = DateTime(required=True)


@storefront.event(part_of="Product")
class VariantAdded:
    """A pack-size variant was added to a product."""

    __version__ = 1

    product_id = Identifier(required=True)
    variant_key = String(required=True)
    label = String()
    unit_count = Integer(required=True)
    price = Float()


@storefront.event(part_of="Product")
class VariantDisabled:
    __version__ = 1

    product_id = Identifier(required=True)
    variant_key = String(required=True)


@storefront.event(part_of="Product")
class StockAdjusted:
    """Stock was changed outside of checkout (restock or count correction)."""

    __version__ = 1

    product_id = Identifier(required=True)
    delta = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reason = String()
    adjusted_at = DateTime(required=True)
