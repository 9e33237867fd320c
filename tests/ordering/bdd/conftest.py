"""Shared BDD fixtures and step definitions for checkout scenarios."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from storefront.ordering.order import Order
from storefront.ordering.payment import RecordPayment


@pytest.fixture
def catalogue():
    """Product ids by name."""
    return {}


@pytest.fixture
def outcome():
    """The result or error of the last When step."""
    return {}


def _order(outcome):
    return current_domain.repository_for(Order).get(outcome["order_id"])


@given(parsers.cfparse('a product "{name}" priced {price:f} with {stock:d} in stock'))
def _(catalogue, add_product, name, price, stock):
    catalogue[name] = add_product(name=name, price=price, stock=stock)


@given(parsers.cfparse('the customer checked out {quantity:d} "{name}"'))
def _(catalogue, checkout, outcome, quantity, name):
    result = checkout([{"product_id": catalogue[name], "quantity": quantity}])
    outcome["order_id"] = result["order_id"]


@given("the order is paid")
def _(outcome):
    current_domain.process(RecordPayment(order_id=outcome["order_id"], payment_id="pi_bdd"), asynchronous=False)


@then(parsers.cfparse("the order is {status}"))
def _(outcome, status):
    assert _order(outcome).status == status


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def _(catalogue, stock_of, name, stock):
    assert stock_of(catalogue[name]) == stock
