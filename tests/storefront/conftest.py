"""Shared fixtures for storefront tests.

Builders persist their aggregates so application and API tests can start
from a populated store; domain tests use the returned objects directly.
"""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield

        from storefront.payment.gateway import reset_gateway

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()
        reset_gateway()


@pytest.fixture
def make_product():
    from storefront.stock.product import Product

    def _make(name="Widget", price=10.0, stock=10, category="general", **overrides):
        product = Product.create(name=name, price=price, stock_quantity=stock, category=category, **overrides)
        current_domain.repository_for(Product).add(product)
        return current_domain.repository_for(Product).get(str(product.id))

    return _make


@pytest.fixture
def make_package():
    from storefront.stock.product import Product

    def _make(components, price, name="Bundle", category="bundles"):
        """``components`` is a list of (product, quantity) pairs."""
        product = Product.create(
            name=name,
            price=price,
            category=category,
            components=[{"component_id": str(p.id), "quantity": qty} for p, qty in components],
        )
        product.refresh_package_details({str(p.id): p for p, _ in components})
        current_domain.repository_for(Product).add(product)
        return current_domain.repository_for(Product).get(str(product.id))

    return _make


@pytest.fixture
def make_coupon():
    from storefront.coupon.coupon import Coupon

    def _make(code="SAVE10", discount_type="percentage", discount_value=10.0, **overrides):
        now = datetime.now(UTC)
        defaults = {
            "name": f"{code} promotion",
            "start_date": now - timedelta(days=1),
            "end_date": now + timedelta(days=30),
        }
        defaults.update(overrides)
        coupon = Coupon.create(code=code, discount_type=discount_type, discount_value=discount_value, **defaults)
        current_domain.repository_for(Coupon).add(coupon)
        return current_domain.repository_for(Coupon).get(str(coupon.id))

    return _make


@pytest.fixture
def make_shipping_fee():
    from storefront.shipping.shipping_fee import ShippingFee

    def _make(name="Standard", fee=5.0, free_shipping_threshold=None, is_active=True):
        shipping_fee = ShippingFee.create(
            name=name,
            fee=fee,
            free_shipping_threshold=free_shipping_threshold,
            is_active=is_active,
        )
        current_domain.repository_for(ShippingFee).add(shipping_fee)
        return shipping_fee

    return _make


@pytest.fixture
def add_to_cart():
    from storefront.cart.items import AddToCart

    def _add(customer_id, product, quantity=1):
        return current_domain.process(
            AddToCart(customer_id=customer_id, product_id=str(product.id), quantity=quantity),
            asynchronous=False,
        )

    return _add


@pytest.fixture
def checkout():
    from storefront.order.checkout import Checkout

    def _checkout(customer_id, **overrides):
        defaults = {
            "customer_id": customer_id,
            "email": "jane@example.com",
            "first_name": "Jane",
            "last_name": "Doe",
            "street": "123 Main St",
            "city": "Springfield",
            "state": "IL",
            "zip_code": "62701",
            "country": "US",
            "payment_method": "card",
        }
        defaults.update(overrides)
        return current_domain.process(Checkout(**defaults), asynchronous=False)

    return _checkout


@pytest.fixture
def capture():
    from storefront.payment.capture import CapturePayment

    def _capture(payment_id, succeeded=True, gateway_reference="ch_001"):
        return current_domain.process(
            CapturePayment(payment_id=str(payment_id), succeeded=succeeded, gateway_reference=gateway_reference),
            asynchronous=False,
        )

    return _capture
