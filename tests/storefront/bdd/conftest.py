"""Shared BDD fixtures and step definitions for the storefront."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then, when
from storefront.cart.lookup import get_cart
from storefront.errors import ConflictError
from storefront.stock.product import Product


@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def products():
    """Products created by Given steps, keyed by name."""
    return {}


@pytest.fixture()
def error():
    """Container for captured conflicts."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:f} with {stock:d} in stock'))
def product_in_stock(make_product, products, name, price, stock):
    products[name] = make_product(name=name, price=price, stock=stock)


# ---------------------------------------------------------------------------
# Cart steps (usable as Given or When)
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the customer adds {quantity:d} "{name}" to the cart'))
@when(parsers.cfparse('the customer adds {quantity:d} "{name}" to the cart'))
def customer_adds(add_to_cart, products, customer_id, error, quantity, name):
    try:
        add_to_cart(customer_id, products[name], quantity)
    except ConflictError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the request is rejected as "{reason}"'))
def rejected_as(error, reason):
    assert error["exc"] is not None
    assert error["exc"].reason == reason


@then(parsers.cfparse("the cart total price is {amount:f}"))
def cart_total_price(customer_id, amount):
    assert get_cart(customer_id).summary.total_price == pytest.approx(amount)


@then(parsers.cfparse("the cart grand total is {amount:f}"))
def cart_grand_total(customer_id, amount):
    assert get_cart(customer_id).summary.grand_total == pytest.approx(amount)


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def product_stock(products, name, stock):
    product = current_domain.repository_for(Product).get(str(products[name].id))
    assert product.stock_quantity == stock
