"""Application tests for checkout."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from storefront.cart.coupons import ApplyCouponToCart
from storefront.cart.lookup import get_cart
from storefront.cart.preferences import SelectShippingFee
from storefront.coupon.coupon import Coupon
from storefront.errors import CouponRejected, InsufficientStock
from storefront.order.order import Order, OrderStatus
from storefront.payment.payment import Payment
from storefront.payment.reconciliation import PaymentStatus
from storefront.stock.product import Product


def _stock_of(product):
    return current_domain.repository_for(Product).get(str(product.id)).stock_quantity


def _apply_coupon(customer_id, code):
    current_domain.process(ApplyCouponToCart(customer_id=customer_id, coupon_code=code), asynchronous=False)


class TestCheckout:
    def test_places_order_with_frozen_totals(self, make_product, make_shipping_fee, add_to_cart, checkout):
        product = make_product(name="Sneaker", price=100.0, stock=5, sku="SNK-1")
        fee = make_shipping_fee(name="Standard", fee=7.5)
        add_to_cart("cust-001", product, 2)
        current_domain.process(
            SelectShippingFee(customer_id="cust-001", shipping_fee_id=str(fee.id)), asynchronous=False
        )

        order_id = checkout("cust-001", notes="Leave at door")

        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == "pending"
        assert order.totals.subtotal == 200.0
        assert order.totals.shipping == 7.5
        assert order.totals.total == 207.5
        assert order.shipping_method == "Standard"
        assert order.customer_notes == "Leave at door"
        assert order.items[0].sku == "SNK-1"
        assert order.items[0].subtotal == 200.0

    def test_withdraws_stock(self, make_product, add_to_cart, checkout):
        product = make_product(stock=5)
        add_to_cart("cust-001", product, 2)
        checkout("cust-001")
        assert _stock_of(product) == 3

    def test_creates_pending_payment_for_total(self, make_product, add_to_cart, checkout):
        add_to_cart("cust-001", make_product(price=40.0, stock=5), 2)
        order = current_domain.repository_for(Order).get(checkout("cust-001"))

        payment = current_domain.repository_for(Payment).get(str(order.payment_id))
        assert payment.amount == 80.0
        assert payment.status == PaymentStatus.PENDING.value
        assert str(payment.order_id) == str(order.id)

    def test_clears_cart(self, make_product, add_to_cart, checkout):
        add_to_cart("cust-001", make_product())
        checkout("cust-001")
        assert get_cart("cust-001").is_empty

    def test_later_price_changes_do_not_touch_order(self, make_product, add_to_cart, checkout):
        product = make_product(price=10.0, stock=5)
        add_to_cart("cust-001", product)
        order_id = checkout("cust-001")

        stored = current_domain.repository_for(Product).get(str(product.id))
        stored.price = 99.0
        current_domain.repository_for(Product).add(stored)

        assert current_domain.repository_for(Order).get(order_id).items[0].price == 10.0

    def test_billing_defaults_to_shipping(self, make_product, add_to_cart, checkout):
        add_to_cart("cust-001", make_product())
        order = current_domain.repository_for(Order).get(checkout("cust-001"))
        assert order.billing_address.street == order.shipping_address.street

    def test_package_withdraws_components(self, make_product, make_package, add_to_cart, checkout):
        shirt = make_product(name="Shirt", price=20.0, stock=10)
        socks = make_product(name="Socks", price=5.0, stock=10)
        package = make_package([(shirt, 1), (socks, 2)], price=25.0)
        add_to_cart("cust-001", package, 2)

        checkout("cust-001")

        assert _stock_of(shirt) == 8
        assert _stock_of(socks) == 6


class TestCheckoutRejections:
    def test_no_cart(self, checkout):
        with pytest.raises(ObjectNotFoundError):
            checkout("nobody")

    def test_empty_cart(self, make_product, add_to_cart, checkout):
        add_to_cart("cust-001", make_product())
        checkout("cust-001")
        with pytest.raises(ValidationError):
            checkout("cust-001")

    def test_combined_package_demand_rejected(self, make_product, make_package, add_to_cart, checkout):
        socks = make_product(name="Socks", stock=3)
        package = make_package([(socks, 2)], price=8.0)
        add_to_cart("cust-001", package, 1)
        add_to_cart("cust-001", socks, 2)

        with pytest.raises(InsufficientStock) as exc:
            checkout("cust-001")

        assert len(exc.value.details["items"]) == 2
        assert _stock_of(socks) == 3
        assert current_domain.repository_for(Order)._dao.query.all().items == []

    def test_sold_out_line_rejected(self, make_product, add_to_cart, checkout):
        product = make_product(stock=2)
        add_to_cart("cust-001", product, 2)
        stored = current_domain.repository_for(Product).get(str(product.id))
        stored.withdraw(2)
        current_domain.repository_for(Product).add(stored)

        with pytest.raises(InsufficientStock):
            checkout("cust-001")


class TestCheckoutCoupons:
    def test_coupon_redeemed_and_recorded(self, make_product, make_coupon, add_to_cart, checkout):
        coupon = make_coupon("WELCOME10", minimum_purchase=50.0)
        add_to_cart("cust-001", make_product(price=100.0, stock=5), 2)
        _apply_coupon("cust-001", "WELCOME10")

        order = current_domain.repository_for(Order).get(checkout("cust-001"))

        assert order.totals.discount == 20.0
        assert order.totals.total == 180.0
        assert order.coupon.code == "WELCOME10"
        stored = current_domain.repository_for(Coupon).get(str(coupon.id))
        assert stored.usage_count == 1
        assert stored.uses_by("cust-001") == 1

    def test_coupon_exhausted_before_checkout(self, make_product, make_coupon, add_to_cart, checkout):
        coupon = make_coupon("LAST10", usage_limit_total=1)
        product = make_product(price=100.0, stock=5)
        add_to_cart("cust-001", product, 1)
        _apply_coupon("cust-001", "LAST10")

        stored = current_domain.repository_for(Coupon).get(str(coupon.id))
        stored.redeem("cust-002")
        current_domain.repository_for(Coupon).add(stored)

        with pytest.raises(CouponRejected) as exc:
            checkout("cust-001")

        assert exc.value.reason == "depleted"
        assert _stock_of(product) == 5
