"""Shared fixtures for the ordering tests: catalogue products and zones to check out against."""

import json

import pytest
from protean import current_domain
from storefront.catalogue.management import AddProduct, AddVariant
from storefront.catalogue.product import Product
from storefront.ordering.checkout import PlaceOrder
from storefront.zones.management import CreateZone


@pytest.fixture
def add_product():
    def _add(name="Napa Cabbage", price=10.0, stock=10, variants=(), **kwargs):
        product_id = current_domain.process(
            AddProduct(name=name, price=price, stock=stock, **kwargs),
            asynchronous=False,
        )
        for key, unit_count, variant_price in variants:
            current_domain.process(
                AddVariant(product_id=product_id, variant_key=key, unit_count=unit_count, price=variant_price),
                asynchronous=False,
            )
        return product_id

    return _add


@pytest.fixture
def stock_of():
    def _stock(product_id):
        return current_domain.repository_for(Product).get(product_id).stock

    return _stock


@pytest.fixture
def add_zone():
    def _add(name="Flushing", zips=("11354", "11355"), polygon=None):
        return current_domain.process(
            CreateZone(name=name, zips=list(zips), polygon=json.dumps(polygon) if polygon else None),
            asynchronous=False,
        )

    return _add


@pytest.fixture
def checkout():
    def _checkout(items, zip_code="11354", **kwargs):
        address = {"street": "1 Main St", "city": "Flushing", "state": "NY", "zip_code": zip_code}
        address.update(kwargs.pop("address", {}))
        fields = {
            "customer_id": "cust-001",
            "items": json.dumps(items),
            "shipping_address": json.dumps(address),
            "delivery_mode": "next_day",
        }
        fields.update(kwargs)
        return current_domain.process(PlaceOrder(**fields), asynchronous=False)

    return _checkout
