"""Product aggregate with its pack-size Variant entities.

Stock is held on the product in base units and is shared by every variant:
selling one "box of 12" consumes 12 units of the same ``stock`` counter that
single-item sales draw from.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String

from storefront.catalogue.events import ProductAdded, StockAdjusted, VariantAdded, VariantDisabled
from storefront.catalogue.pack_size import PackSize, Single, pack_size_for
from storefront.domain import storefront
from storefront.errors import InsufficientStockError


@storefront.entity(part_of="Product")
class ProductVariant:
    """A purchasable pack size of a product, e.g. a single can or a case of 24."""

    variant_key = String(required=True, max_length=50)
    label = String(max_length=100)
    unit_count = Integer(required=True, min_value=1, default=1)
    price = Float(min_value=0.0)  # Overrides the product price when set
    special_qty = Integer(min_value=0)  # Overrides the product offer when set
    special_total_price = Float(min_value=0.0)
    enabled = Boolean(default=True)


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    allow_zero_stock = Boolean(default=False)
    deposit_per_unit = Float(default=0.0, min_value=0.0)
    special_qty = Integer(default=0, min_value=0)  # "N for $X": N
    special_total_price = Float(default=0.0, min_value=0.0)  # "N for $X": X
    is_flash_sale = Boolean(default=False)
    is_active = Boolean(default=True)
    image = String(max_length=512)
    variants = HasMany(ProductVariant)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_must_not_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": [f"Stock for {self.name} cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        name,
        price,
        stock=0,
        sku=None,
        allow_zero_stock=False,
        deposit_per_unit=0.0,
        is_flash_sale=False,
        image=None,
        special_qty=0,
        special_total_price=0.0,
    ):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            sku=sku,
            price=price,
            stock=stock,
            allow_zero_stock=allow_zero_stock,
            deposit_per_unit=deposit_per_unit or 0.0,
            is_flash_sale=is_flash_sale,
            image=image,
            special_qty=special_qty or 0,
            special_total_price=special_total_price or 0.0,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductAdded(
                product_id=str(product.id),
                name=name,
                sku=sku,
                price=price,
                stock=stock,
                is_flash_sale=is_flash_sale,
                added_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Variants
    # -------------------------------------------------------------------
    def add_variant(
        self,
        variant_key,
        unit_count,
        label=None,
        price=None,
        special_qty=None,
        special_total_price=None,
    ):
        variant_key = (variant_key or "").strip()
        if not variant_key:
            raise ValidationError({"variant_key": ["Variant key is required"]})
        if unit_count is None or unit_count < 1:
            raise ValidationError({"unit_count": ["Unit count must be at least 1"]})
        if any(v.variant_key == variant_key for v in self.variants):
            raise ValidationError({"variant_key": [f"Variant '{variant_key}' already exists on {self.name}"]})

        self.add_variants(
            ProductVariant(
                variant_key=variant_key,
                label=label,
                unit_count=unit_count,
                price=price,
                special_qty=special_qty,
                special_total_price=special_total_price,
            )
        )
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantAdded(
                product_id=str(self.id),
                variant_key=variant_key,
                label=label,
                unit_count=unit_count,
                price=price,
            )
        )

    def disable_variant(self, variant_key):
        variant = next((v for v in self.variants if v.variant_key == variant_key), None)
        if variant is None:
            raise ValidationError({"variant_key": [f"Variant '{variant_key}' not found on {self.name}"]})

        variant.enabled = False
        self.updated_at = datetime.now(UTC)
        self.raise_(VariantDisabled(product_id=str(self.id), variant_key=variant_key))

    def resolve_pack_size(self, variant_key) -> PackSize:
        """Return the pack size sold under ``variant_key``.

        Unknown, disabled or empty keys fall back to a plain single unit.
        """
        key = (variant_key or "").strip()
        variant = next(
            (v for v in (self.variants or []) if v.variant_key == key and v.enabled),
            None,
        )
        if variant is None:
            return Single()
        return pack_size_for(variant.variant_key, variant.unit_count, variant.label, variant.price)

    def unit_price_for(self, pack_size: PackSize) -> float:
        if pack_size.price is not None:
            return pack_size.price
        return self.price

    def deposit_for(self, pack_size: PackSize) -> float:
        """Bottle deposit charged per purchased item of this pack size."""
        return (self.deposit_per_unit or 0.0) * pack_size.unit_count

    def special_offer_for(self, pack_size: PackSize) -> tuple[int, float]:
        """Return ``(special_qty, special_total_price)`` for a pack size.

        A variant's own offer overrides the product-level one.
        """
        special_qty = self.special_qty or 0
        special_total_price = self.special_total_price or 0.0

        variant = next((v for v in (self.variants or []) if v.variant_key == pack_size.key and v.enabled), None)
        if variant is not None:
            if variant.special_qty is not None:
                special_qty = variant.special_qty
            if variant.special_total_price is not None:
                special_total_price = variant.special_total_price
        return special_qty, special_total_price

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    def take_stock(self, need_units) -> int:
        """Remove ``need_units`` base units from stock.

        Returns the number of units that could not be covered by stock on
        hand. That is always 0 unless the product allows selling at zero
        stock, in which case stock bottoms out at 0 and the shortfall is
        returned as backordered units.
        """
        if need_units <= 0:
            raise ValidationError({"quantity": [f"Quantity for {self.name} must be positive"]})

        on_hand = self.stock or 0
        if on_hand < need_units:
            if not self.allow_zero_stock:
                raise InsufficientStockError(
                    {"stock": [f"Insufficient stock for {self.name}: {on_hand} available, {need_units} needed"]}
                )
            self.stock = 0
            self.updated_at = datetime.now(UTC)
            return need_units - on_hand

        self.stock = on_hand - need_units
        self.updated_at = datetime.now(UTC)
        return 0

    def return_stock(self, units):
        if units <= 0:
            return
        self.stock = (self.stock or 0) + units
        self.updated_at = datetime.now(UTC)

    def adjust_stock(self, delta, reason=None):
        """Apply a manual stock correction. The result may not go below zero."""
        if not delta:
            raise ValidationError({"delta": ["Stock adjustment cannot be zero"]})

        previous = self.stock or 0
        new_stock = previous + delta
        if new_stock < 0:
            raise ValidationError(
                {"delta": [f"Adjustment of {delta} would leave {self.name} with negative stock ({previous} on hand)"]}
            )

        now = datetime.now(UTC)
        self.stock = new_stock
        self.updated_at = now

        self.raise_(
            StockAdjusted(
                product_id=str(self.id),
                delta=delta,
                previous_stock=previous,
                new_stock=new_stock,
                reason=reason,
                adjusted_at=now,
            )
        )

