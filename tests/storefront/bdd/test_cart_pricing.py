"""BDD tests for cart pricing, coupons and stock limits."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when
from storefront.cart.coupons import ApplyCouponToCart
from storefront.cart.lookup import get_cart
from storefront.cart.preferences import SelectShippingFee
from storefront.errors import ConflictError

scenarios("features/cart_pricing.feature")


@pytest.fixture()
def shipping_options():
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a {discount_type} coupon "{code}" worth {value:f} with minimum purchase {minimum:f}'))
def coupon_exists(make_coupon, discount_type, code, value, minimum):
    make_coupon(code, discount_type=discount_type, discount_value=value, minimum_purchase=minimum)


@given(parsers.cfparse('a shipping option "{name}" costing {fee:f} free above {threshold:f}'))
def shipping_option(make_shipping_fee, shipping_options, name, fee, threshold):
    shipping_options[name] = make_shipping_fee(name=name, fee=fee, free_shipping_threshold=threshold)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer applies coupon "{code}"'))
def apply_coupon(customer_id, error, code):
    try:
        current_domain.process(ApplyCouponToCart(customer_id=customer_id, coupon_code=code), asynchronous=False)
    except ConflictError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the customer selects shipping "{name}"'))
def select_shipping(customer_id, shipping_options, name):
    current_domain.process(
        SelectShippingFee(customer_id=customer_id, shipping_fee_id=str(shipping_options[name].id)),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart discount is {amount:f}"))
def cart_discount(customer_id, error, amount):
    assert error["exc"] is None
    assert get_cart(customer_id).summary.total_discount == pytest.approx(amount)


@then(parsers.cfparse("the rejection reports at most {quantity:d} can be added"))
def max_can_add(error, quantity):
    assert error["exc"].details["max_can_add"] == quantity


@then(parsers.cfparse("the cart holds {count:d} line"))
def cart_lines(customer_id, count):
    assert len(get_cart(customer_id).items) == count
