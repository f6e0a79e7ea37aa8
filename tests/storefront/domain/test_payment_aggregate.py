"""Tests for the Payment aggregate: captures, retries, refunds and voids."""

import pytest
from protean.exceptions import ValidationError
from storefront.errors import ConflictError, InvalidTransition, RefundExceedsCeiling
from storefront.payment.events import PaymentCreated, PaymentStatusChanged
from storefront.payment.payment import Payment
from storefront.payment.reconciliation import PaymentStatus


def _payment(amount=100.0):
    return Payment.create(order_id="ord-001", customer_id="cust-001", amount=amount, payment_method="card")


def _captured(amount=100.0):
    payment = _payment(amount)
    payment.capture(succeeded=True, gateway_reference="ch_001")
    payment._events.clear()
    return payment


class TestCapture:
    def test_new_payment_is_pending(self):
        payment = _payment()
        assert payment.status == PaymentStatus.PENDING.value
        assert isinstance(payment._events[0], PaymentCreated)

    def test_successful_capture(self):
        payment = _payment()
        transaction = payment.capture(succeeded=True, gateway_reference="ch_001")
        assert transaction.transaction_type == "sale"
        assert transaction.status == "success"
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.captured_amount == 100.0
        assert payment.sale_reference == "ch_001"
        assert any(isinstance(e, PaymentStatusChanged) for e in payment._events)

    def test_failed_capture(self):
        payment = _payment()
        payment.capture(succeeded=False, failure_reason="Card declined")
        assert payment.status == PaymentStatus.FAILED.value
        assert payment.failure_reason == "Card declined"

    def test_capture_twice_rejected(self):
        payment = _captured()
        with pytest.raises(ConflictError):
            payment.capture(succeeded=True)

    def test_retry_reopens_failed_sale(self):
        payment = _payment()
        payment.capture(succeeded=False)
        payment.retry()
        assert payment.status == PaymentStatus.PENDING.value

        payment.capture(succeeded=True)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert len(payment.transactions) == 1

    def test_retry_requires_failure(self):
        with pytest.raises(ConflictError):
            _payment().retry()

    def test_transaction_outcome_cannot_leave_terminal_state(self):
        payment = _captured()
        with pytest.raises(InvalidTransition):
            payment.record_transaction_outcome(payment.transactions[0].id, "failed")

    def test_transaction_outcome_for_unknown_transaction(self):
        with pytest.raises(ValidationError):
            _payment().record_transaction_outcome("missing", "success")


class TestRefund:
    def test_over_ceiling_rejected(self):
        payment = _captured()
        with pytest.raises(RefundExceedsCeiling) as exc:
            payment.refund(150.0)
        assert exc.value.reason == "exceeds_refundable"
        assert exc.value.details["refundable"] == 100.0
        assert payment.status == PaymentStatus.COMPLETED.value

    def test_partial_refund(self):
        payment = _captured()
        payment.refund(40.0, reason="Damaged")
        assert payment.status == PaymentStatus.PARTIALLY_REFUNDED.value
        assert payment.refunded_amount == 40.0
        assert payment.refundable_amount == 60.0

    def test_refunds_accumulate_to_full(self):
        payment = _captured()
        payment.refund(40.0)
        payment.refund(60.0)
        assert payment.status == PaymentStatus.REFUNDED.value
        assert payment.refundable_amount == 0.0

    def test_default_amount_is_everything_refundable(self):
        payment = _captured()
        payment.refund(30.0)
        transaction = payment.refund()
        assert transaction.amount == 70.0
        assert payment.status == PaymentStatus.REFUNDED.value

    def test_zero_amount_rejected(self):
        with pytest.raises(ValidationError):
            _captured().refund(0.0)

    def test_uncaptured_payment_cannot_be_refunded(self):
        with pytest.raises(ConflictError) as exc:
            _payment().refund(10.0)
        assert exc.value.reason == "not_captured"

    @pytest.mark.parametrize("amounts", [[10.0, 20.0, 30.0, 40.0], [99.99, 0.01], [33.33, 33.33, 33.34]])
    def test_refunds_never_exceed_captures(self, amounts):
        payment = _captured()
        for amount in amounts:
            payment.refund(amount)
        with pytest.raises(ConflictError):
            payment.refund(0.01)
        assert payment.refunded_amount <= payment.captured_amount


class TestVoid:
    def test_void_pending_payment(self):
        payment = _payment()
        payment.void()
        assert payment.status == PaymentStatus.CANCELLED.value

    def test_void_failed_payment(self):
        payment = _payment()
        payment.capture(succeeded=False)
        payment.void()
        assert payment.status == PaymentStatus.CANCELLED.value

    def test_captured_payment_cannot_be_voided(self):
        with pytest.raises(ConflictError):
            _captured().void()

    def test_voided_payment_rejects_late_confirmation(self):
        payment = _payment()
        sale = payment.capture(succeeded=False)
        payment.void()

        with pytest.raises(ConflictError) as exc:
            payment.record_transaction_outcome(sale.id, "pending")
        assert exc.value.reason == "invalid_transition"
        with pytest.raises(ConflictError):
            payment.retry()
        assert payment.captured_amount == 0
