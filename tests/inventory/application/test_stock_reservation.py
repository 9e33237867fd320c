"""Tests for stock reservation and rollback over the Product repository."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from storefront.catalogue.product import Product
from storefront.errors import InsufficientStockError, NotFoundError
from storefront.inventory.reservation import CartLine, release_stock, reserve_stock


def _add_product(name="Oat Milk", price=4.0, stock=10, variants=(), **kwargs):
    product = Product.create(name=name, price=price, stock=stock, **kwargs)
    for key, unit_count, variant_price in variants:
        product.add_variant(key, unit_count, price=variant_price)
    current_domain.repository_for(Product).add(product)
    return str(product.id)


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


class TestReserveStock:
    def test_single_line_decrements_stock(self):
        product_id = _add_product(stock=10)
        reserved = reserve_stock([CartLine(product_id=product_id, quantity=3)])

        assert _stock(product_id) == 7
        assert len(reserved) == 1
        line = reserved[0]
        assert line.variant_key == "single"
        assert line.unit_count == 1
        assert line.need_units == 3
        assert line.unit_price == 4.0
        assert line.backordered_units == 0

    def test_total_units_taken_match_need_units(self):
        milk = _add_product(name="Milk", stock=20, variants=[("case6", 6, 20.0)])
        eggs = _add_product(name="Eggs", stock=50, variants=[("tray30", 30, 9.0)])
        before = _stock(milk) + _stock(eggs)

        reserved = reserve_stock(
            [
                CartLine(product_id=milk, quantity=2, variant_key="case6"),
                CartLine(product_id=eggs, quantity=1, variant_key="tray30"),
                CartLine(product_id=eggs, quantity=4),
            ]
        )

        after = _stock(milk) + _stock(eggs)
        assert before - after == sum(r.need_units for r in reserved) == 12 + 30 + 4

    def test_pack_variant_uses_its_price_and_unit_count(self):
        product_id = _add_product(stock=24, variants=[("case12", 12, 30.0)])
        [line] = reserve_stock([CartLine(product_id=product_id, quantity=2, variant_key="case12")])

        assert line.unit_count == 12
        assert line.need_units == 24
        assert line.unit_price == 30.0
        assert _stock(product_id) == 0

    def test_deposit_and_snapshot_fields(self):
        product_id = _add_product(name="Sparkling Water", deposit_per_unit=0.05, image="water.png", is_flash_sale=True)
        [line] = reserve_stock([CartLine(product_id=product_id, quantity=1)])

        assert line.name == "Sparkling Water"
        assert line.image == "water.png"
        assert line.deposit_each == pytest.approx(0.05)
        assert line.is_flash_sale is True

    def test_same_product_on_two_lines_accumulates(self):
        product_id = _add_product(stock=5)
        with pytest.raises(InsufficientStockError):
            reserve_stock(
                [
                    CartLine(product_id=product_id, quantity=3),
                    CartLine(product_id=product_id, quantity=3),
                ]
            )
        assert _stock(product_id) == 5

    def test_insufficient_stock_names_the_product(self):
        product_id = _add_product(name="Tofu", stock=5)
        with pytest.raises(InsufficientStockError) as exc_info:
            reserve_stock([CartLine(product_id=product_id, quantity=6)])

        assert "Tofu" in exc_info.value.messages["stock"][0]
        assert _stock(product_id) == 5

    def test_failure_on_later_line_leaves_earlier_products_untouched(self):
        plenty = _add_product(name="Bread", stock=10)
        scarce = _add_product(name="Butter", stock=1)

        with pytest.raises(InsufficientStockError):
            reserve_stock(
                [
                    CartLine(product_id=plenty, quantity=4),
                    CartLine(product_id=scarce, quantity=2),
                ]
            )

        assert _stock(plenty) == 10
        assert _stock(scarce) == 1

    def test_missing_product_id(self):
        with pytest.raises(ValidationError) as exc_info:
            reserve_stock([CartLine(product_id=None, quantity=1)])
        assert "product_id" in exc_info.value.messages

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity(self, quantity):
        product_id = _add_product()
        with pytest.raises(ValidationError) as exc_info:
            reserve_stock([CartLine(product_id=product_id, quantity=quantity)])
        assert "quantity" in exc_info.value.messages
        assert _stock(product_id) == 10

    def test_unknown_product(self):
        product_id = _add_product()
        with pytest.raises(NotFoundError) as exc_info:
            reserve_stock(
                [
                    CartLine(product_id=product_id, quantity=1),
                    CartLine(product_id="no-such-product", quantity=1),
                ]
            )
        assert isinstance(exc_info.value, ObjectNotFoundError)
        assert _stock(product_id) == 10

    def test_empty_cart(self):
        with pytest.raises(ValidationError):
            reserve_stock([])

    def test_inactive_product_is_rejected(self):
        product = Product.create(name="Old Stock", price=1.0, stock=5)
        product.is_active = False
        current_domain.repository_for(Product).add(product)

        with pytest.raises(ValidationError):
            reserve_stock([CartLine(product_id=str(product.id), quantity=1)])

    def test_allow_zero_stock_records_backorder(self):
        product_id = _add_product(stock=2, allow_zero_stock=True)
        [line] = reserve_stock([CartLine(product_id=product_id, quantity=5)])

        assert line.backordered_units == 3
        assert line.releasable_units == 2
        assert _stock(product_id) == 0

    def test_before_write_failure_leaves_stock_untouched(self):
        product_id = _add_product(stock=10)

        def reject(reserved):
            assert reserved[0].need_units == 4
            raise ValidationError({"wallet_amount": ["Not enough"]})

        with pytest.raises(ValidationError):
            reserve_stock([CartLine(product_id=product_id, quantity=4)], before_write=reject)

        assert _stock(product_id) == 10


class TestReleaseStock:
    def test_release_credits_reserved_units(self):
        product_id = _add_product(stock=10, variants=[("pair", 2, 7.0)])
        reserved = reserve_stock([CartLine(product_id=product_id, quantity=3, variant_key="pair")])
        assert _stock(product_id) == 4

        credited = release_stock(reserved)

        assert credited == 6
        assert _stock(product_id) == 10

    def test_backordered_units_are_not_credited(self):
        product_id = _add_product(stock=2, allow_zero_stock=True)
        reserved = reserve_stock([CartLine(product_id=product_id, quantity=5)])

        release_stock(reserved)

        assert _stock(product_id) == 2

