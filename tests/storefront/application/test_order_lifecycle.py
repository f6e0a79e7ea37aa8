"""Application tests for order status changes, cancellation and deletion."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError
from storefront.errors import ConflictError, InvalidTransition
from storefront.order.lifecycle import AddOrderNote, CancelOrder, DeleteOrder, UpdateOrderStatus
from storefront.order.order import Order, OrderStatus
from storefront.payment.gateway import get_gateway
from storefront.payment.payment import Payment
from storefront.payment.reconciliation import PaymentStatus
from storefront.stock.product import Product


def _stock_of(product):
    return current_domain.repository_for(Product).get(str(product.id)).stock_quantity


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _payment_of(order_id):
    return current_domain.repository_for(Payment).get(str(_order(order_id).payment_id))


def _set_status(order_id, status, **kwargs):
    current_domain.process(UpdateOrderStatus(order_id=order_id, status=status, **kwargs), asynchronous=False)


@pytest.fixture
def placed(make_product, add_to_cart, checkout):
    """An order for two units of a 100.00 product, with 3 left on the shelf."""
    product = make_product(name="Sneaker", price=100.0, stock=5)
    add_to_cart("cust-001", product, 2)
    return checkout("cust-001"), product


class TestUpdateStatus:
    def test_forward_progress(self, placed):
        order_id, _ = placed
        _set_status(order_id, "confirmed", changed_by="admin")
        _set_status(order_id, "shipped", tracking_number="TRK-9")
        order = _order(order_id)
        assert order.status == OrderStatus.SHIPPED.value
        assert order.tracking_number == "TRK-9"

    def test_invalid_transition_rejected(self, placed):
        order_id, _ = placed
        with pytest.raises(InvalidTransition):
            _set_status(order_id, "delivered")
        assert _order(order_id).status == OrderStatus.PENDING.value


class TestCancellation:
    def test_cancel_unpaid_order_restocks_and_voids(self, placed):
        order_id, product = placed
        assert _stock_of(product) == 3

        _set_status(order_id, "cancelled", changed_by="admin", reason="Customer called")

        order = _order(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.inventory_restored
        assert order.cancellation.reason == "Customer called"
        assert _stock_of(product) == 5
        assert _payment_of(order_id).status == PaymentStatus.CANCELLED.value
        assert get_gateway().requests == []

    def test_cancel_paid_order_refunds_total(self, placed, capture):
        order_id, product = placed
        capture(_order(order_id).payment_id)
        assert _order(order_id).payment_status == "paid"

        _set_status(order_id, "cancelled", changed_by="admin")

        payment = _payment_of(order_id)
        assert payment.status == PaymentStatus.REFUNDED.value
        assert payment.refunded_amount == 200.0
        order = _order(order_id)
        assert order.payment_status == "refunded"
        assert order.refund.refund_type == "full"
        assert _stock_of(product) == 5
        assert get_gateway().requests[0].amount == 200.0

    def test_return_after_delivery(self, placed, capture):
        order_id, product = placed
        capture(_order(order_id).payment_id)
        for status in ("processing", "shipped", "delivered"):
            _set_status(order_id, status)

        _set_status(order_id, "returned", reason="Wrong size")

        assert _order(order_id).status == OrderStatus.RETURNED.value
        assert _order(order_id).returned_at is not None
        assert _stock_of(product) == 5
        assert _payment_of(order_id).status == PaymentStatus.REFUNDED.value

    def test_gateway_decline_rolls_back_cancellation(self, placed, capture):
        order_id, product = placed
        capture(_order(order_id).payment_id)
        get_gateway().decline("Processor down")

        with pytest.raises(ConflictError) as exc:
            _set_status(order_id, "cancelled")

        assert exc.value.reason == "refund_declined"
        assert _order(order_id).status == OrderStatus.PENDING.value
        assert _stock_of(product) == 3

    def test_closed_order_cannot_be_reopened(self, placed):
        order_id, product = placed
        _set_status(order_id, "cancelled")
        with pytest.raises(InvalidTransition):
            _set_status(order_id, "returned")
        assert _stock_of(product) == 5


class TestCustomerCancel:
    def test_customer_cancels_pending_order(self, placed):
        order_id, product = placed
        current_domain.process(CancelOrder(order_id=order_id, customer_id="cust-001"), asynchronous=False)
        assert _order(order_id).status == OrderStatus.CANCELLED.value
        assert _order(order_id).cancellation.cancelled_by == "customer"
        assert _stock_of(product) == 5

    def test_customer_cannot_cancel_shipped_order(self, placed):
        order_id, _ = placed
        _set_status(order_id, "processing")
        _set_status(order_id, "shipped")
        with pytest.raises(ConflictError) as exc:
            current_domain.process(CancelOrder(order_id=order_id, customer_id="cust-001"), asynchronous=False)
        assert exc.value.reason == "invalid_transition"

    def test_other_customer_sees_not_found(self, placed):
        order_id, _ = placed
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(CancelOrder(order_id=order_id, customer_id="cust-999"), asynchronous=False)


class TestDeleteOrder:
    def test_delete_pending_order_cancels_first(self, placed):
        order_id, product = placed
        current_domain.process(DeleteOrder(order_id=order_id, deleted_by="admin"), asynchronous=False)

        order = _order(order_id)
        assert order.is_deleted
        assert order.status == OrderStatus.CANCELLED.value
        assert _stock_of(product) == 5

    def test_deleted_order_reads_as_missing(self, placed):
        order_id, _ = placed
        current_domain.process(DeleteOrder(order_id=order_id), asynchronous=False)
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                AddOrderNote(order_id=order_id, content="Hello"),
                asynchronous=False,
            )

    def test_shipped_order_cannot_be_deleted(self, placed):
        order_id, _ = placed
        _set_status(order_id, "processing")
        _set_status(order_id, "shipped")
        with pytest.raises(ConflictError) as exc:
            current_domain.process(DeleteOrder(order_id=order_id), asynchronous=False)
        assert exc.value.reason == "not_deletable"


class TestOrderNotes:
    def test_add_note(self, placed):
        order_id, _ = placed
        current_domain.process(
            AddOrderNote(order_id=order_id, content="Gift wrap", is_private=True, created_by="admin"),
            asynchronous=False,
        )
        note = _order(order_id).notes[0]
        assert note.content == "Gift wrap"
        assert note.is_private
