"""Application tests for payment capture and refunds."""

import pytest
from protean import current_domain
from storefront.errors import ConflictError, RefundExceedsCeiling
from storefront.order.lifecycle import CancelOrder
from storefront.order.order import Order, OrderStatus
from storefront.payment.capture import RecordTransactionOutcome, RetryPayment
from storefront.payment.gateway import get_gateway
from storefront.payment.payment import Payment
from storefront.payment.reconciliation import PaymentStatus
from storefront.payment.refunds import RefundPayment
from storefront.stock.product import Product


def _refund(payment_id, amount=None, **kwargs):
    return current_domain.process(
        RefundPayment(payment_id=str(payment_id), amount=amount, **kwargs),
        asynchronous=False,
    )


@pytest.fixture
def order(make_product, add_to_cart, checkout):
    """A 100.00 order placed from one unit of stock."""
    product = make_product(name="Jacket", price=100.0, stock=4)
    add_to_cart("cust-001", product, 1)
    order_id = checkout("cust-001")
    return current_domain.repository_for(Order).get(order_id)


def _reload(order):
    stored = current_domain.repository_for(Order).get(str(order.id))
    payment = current_domain.repository_for(Payment).get(str(stored.payment_id))
    return stored, payment


class TestCapture:
    def test_successful_capture_marks_order_paid(self, order, capture):
        capture(order.payment_id)
        stored, payment = _reload(order)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert stored.payment_status == "paid"

    def test_failed_capture_then_retry(self, order, capture):
        capture(order.payment_id, succeeded=False)
        stored, payment = _reload(order)
        assert stored.payment_status == "failed"

        current_domain.process(RetryPayment(payment_id=str(payment.id)), asynchronous=False)
        capture(order.payment_id)

        stored, payment = _reload(order)
        assert stored.payment_status == "paid"

    def test_webhook_outcome(self, order):
        _, payment = _reload(order)
        payment.capture(succeeded=False)
        current_domain.repository_for(Payment).add(payment)
        current_domain.process(RetryPayment(payment_id=str(payment.id)), asynchronous=False)

        _, payment = _reload(order)
        current_domain.process(
            RecordTransactionOutcome(
                payment_id=str(payment.id),
                transaction_id=str(payment.transactions[0].id),
                status="success",
                gateway_reference="ch_late",
            ),
            asynchronous=False,
        )

        stored, payment = _reload(order)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert stored.payment_status == "paid"

    def test_voided_payment_ignores_late_outcomes(self, order, capture):
        capture(order.payment_id, succeeded=False)
        current_domain.process(CancelOrder(order_id=str(order.id), customer_id="cust-001"), asynchronous=False)
        _, payment = _reload(order)
        sale_id = str(payment.transactions[0].id)

        for status in ("pending", "success"):
            with pytest.raises(ConflictError) as exc:
                current_domain.process(
                    RecordTransactionOutcome(payment_id=str(payment.id), transaction_id=sale_id, status=status),
                    asynchronous=False,
                )
            assert exc.value.reason == "invalid_transition"

        with pytest.raises(ConflictError):
            current_domain.process(RetryPayment(payment_id=str(payment.id)), asynchronous=False)

        stored, payment = _reload(order)
        assert stored.status == OrderStatus.CANCELLED.value
        assert payment.status == PaymentStatus.CANCELLED.value
        assert payment.captured_amount == 0
        product_id = str(stored.items[0].product_id)
        assert current_domain.repository_for(Product).get(product_id).stock_quantity == 4


class TestRefunds:
    def test_refund_over_ceiling_rejected(self, order, capture):
        capture(order.payment_id)
        with pytest.raises(RefundExceedsCeiling):
            _refund(order.payment_id, 150.0)
        assert get_gateway().requests == []

    def test_partial_refund(self, order, capture):
        capture(order.payment_id)

        _refund(order.payment_id, 40.0, reason="Scratched")
        assert get_gateway().requests[0].reason == "Scratched"

        stored, payment = _reload(order)
        assert payment.status == PaymentStatus.PARTIALLY_REFUNDED.value
        assert payment.refundable_amount == 60.0
        assert stored.payment_status == "partially_refunded"
        assert stored.refund.refund_type == "partial"
        assert stored.status == OrderStatus.PENDING.value

    def test_full_refund_returns_and_restocks(self, order, capture):
        capture(order.payment_id)
        _refund(order.payment_id, 40.0)
        _refund(order.payment_id)

        stored, payment = _reload(order)
        assert payment.status == PaymentStatus.REFUNDED.value
        assert stored.status == OrderStatus.RETURNED.value
        assert stored.refund.refund_type == "full"
        assert stored.inventory_restored
        product_id = str(stored.items[0].product_id)
        assert current_domain.repository_for(Product).get(product_id).stock_quantity == 4

    def test_refund_of_unpaid_payment(self, order):
        with pytest.raises(ConflictError) as exc:
            _refund(order.payment_id, 10.0)
        assert exc.value.reason == "not_captured"

    def test_gateway_decline(self, order, capture):
        capture(order.payment_id)
        get_gateway().decline()

        with pytest.raises(ConflictError) as exc:
            _refund(order.payment_id, 10.0)

        assert exc.value.reason == "refund_declined"
        _, payment = _reload(order)
        assert payment.refunded_amount == 0.0
