"""Catalogue management: commands and handler for products, variants and stock."""

import structlog
from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Product")
class AddProduct:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    sku = String(max_length=50)
    allow_zero_stock = Boolean(default=False)
    deposit_per_unit = Float(default=0.0)
    is_flash_sale = Boolean(default=False)
    image = String(max_length=512)
    special_qty = Integer(default=0, min_value=0)
    special_total_price = Float(default=0.0, min_value=0.0)


@storefront.command(part_of="Product")
class AddVariant:
    product_id = Identifier(required=True)
    variant_key = String(required=True, max_length=50)
    unit_count = Integer(required=True, min_value=1)
    label = String(max_length=100)
    price = Float(min_value=0.0)
    special_qty = Integer(min_value=0)
    special_total_price = Float(min_value=0.0)


@storefront.command(part_of="Product")
class DisableVariant:
    product_id = Identifier(required=True)
    variant_key = String(required=True, max_length=50)


@storefront.command(part_of="Product")
class AdjustStock:
    product_id = Identifier(required=True)
    delta = Integer(required=True)
    reason = String(max_length=255)


@storefront.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(AddProduct)
    def add_product(self, command):
        product = Product.create(
            name=command.name,
            price=command.price,
            stock=command.stock or 0,
            sku=command.sku,
            allow_zero_stock=bool(command.allow_zero_stock),
            deposit_per_unit=command.deposit_per_unit or 0.0,
            is_flash_sale=bool(command.is_flash_sale),
            image=command.image,
            special_qty=command.special_qty or 0,
            special_total_price=command.special_total_price or 0.0,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(AddVariant)
    def add_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.add_variant(
            variant_key=command.variant_key,
            unit_count=command.unit_count,
            label=command.label,
            price=command.price,
            special_qty=command.special_qty,
            special_total_price=command.special_total_price,
        )
        repo.add(product)

    @handle(DisableVariant)
    def disable_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.disable_variant(command.variant_key)
        repo.add(product)

    @handle(AdjustStock)
    def adjust_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.adjust_stock(command.delta, reason=command.reason)
        repo.add(product)

        logger.info(
            "Stock adjusted",
            product_id=str(product.id),
            delta=command.delta,
            new_stock=product.stock,
            reason=command.reason,
        )
        return product.stock
