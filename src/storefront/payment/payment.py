"""Payment aggregate: the money side of one order.

Every capture attempt and refund is a Transaction appended to the payment.
Transactions move through their own small state machine:

    pending → success | failed | cancelled
    failed → pending (retry)

and the payment status is re-derived from the history after every change
(see ``payment.reconciliation``). Refunds are capped at what was captured
minus what was already refunded.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, String

from storefront.domain import storefront
from storefront.errors import ConflictError, InvalidTransition, RefundExceedsCeiling
from storefront.payment import reconciliation
from storefront.payment.events import PaymentCreated, PaymentStatusChanged, TransactionRecorded
from storefront.payment.reconciliation import PaymentStatus, TransactionStatus, TransactionType
from storefront.shared.money import DEFAULT_CURRENCY, to_cents


@storefront.entity(part_of="Payment")
class Transaction:
    """One money movement against the payment. Rows are never removed."""

    transaction_type = String(required=True, choices=TransactionType)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    status = String(choices=TransactionStatus, default=TransactionStatus.PENDING.value)
    gateway_reference = String(max_length=255)
    reason = String(max_length=500)
    processed_at = DateTime()
    created_at = DateTime()


@storefront.aggregate
class Payment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    payment_method = String(max_length=50)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    refunded_amount = Float(default=0.0)
    transactions = HasMany(Transaction)
    failure_reason = String(max_length=500)
    payment_date = DateTime()
    refund_date = DateTime()
    voided_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, order_id, customer_id, amount, payment_method=None, currency=DEFAULT_CURRENCY):
        now = datetime.now(UTC)
        payment = cls(
            order_id=order_id,
            customer_id=customer_id,
            payment_method=payment_method,
            amount=to_cents(amount),
            currency=currency,
            status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        payment.raise_(
            PaymentCreated(
                payment_id=str(payment.id),
                order_id=str(order_id),
                amount=payment.amount,
                currency=currency,
            )
        )
        return payment

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _sales(self, status: TransactionStatus | None = None) -> list:
        return [
            t
            for t in self.transactions
            if t.transaction_type == TransactionType.SALE.value and (status is None or t.status == status.value)
        ]

    def _transaction(self, transaction_id):
        return next((t for t in self.transactions if str(t.id) == str(transaction_id)), None)

    def _append(self, transaction_type: TransactionType, amount: float, **fields) -> Transaction:
        transaction = Transaction(
            transaction_type=transaction_type.value,
            amount=to_cents(amount),
            currency=self.currency,
            created_at=datetime.now(UTC),
            **fields,
        )
        self.add_transactions(transaction)
        return transaction

    def _move(self, transaction, target: TransactionStatus, gateway_reference=None, reason=None) -> None:
        if not reconciliation.can_transition(transaction.status, target.value):
            raise InvalidTransition(transaction.status, target.value)

        now = datetime.now(UTC)
        transaction.status = target.value
        if gateway_reference:
            transaction.gateway_reference = gateway_reference
        if reason:
            transaction.reason = reason
        if target != TransactionStatus.PENDING:
            transaction.processed_at = now

        self.raise_(
            TransactionRecorded(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                transaction_id=str(transaction.id),
                transaction_type=transaction.transaction_type,
                amount=transaction.amount,
                status=target.value,
                recorded_at=now,
            )
        )

    def _sync_status(self) -> None:
        previous = self.status
        self.status = reconciliation.derive_payment_status(self.transactions, voided=self.voided_at is not None)
        self.refunded_amount = reconciliation.refunded_amount(self.transactions)
        self.updated_at = datetime.now(UTC)
        if previous != self.status:
            self.raise_(
                PaymentStatusChanged(
                    payment_id=str(self.id),
                    order_id=str(self.order_id),
                    previous_status=previous,
                    new_status=self.status,
                    refunded_amount=self.refunded_amount,
                )
            )

    def _ensure_not_voided(self) -> None:
        if self.voided_at is not None:
            raise ConflictError(
                "invalid_transition",
                "Payment was voided and can no longer change",
                field="status",
                current=self.status,
            )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def captured_amount(self) -> float:
        return reconciliation.captured_amount(self.transactions)

    @property
    def refundable_amount(self) -> float:
        return reconciliation.refundable_amount(self.transactions)

    @property
    def sale_reference(self) -> str | None:
        captured = self._sales(TransactionStatus.SUCCESS)
        return captured[-1].gateway_reference if captured else None

    # -------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------
    def capture(self, succeeded: bool, gateway_reference=None, failure_reason=None) -> Transaction:
        """Record the processor's verdict on the charge."""
        if self.status != PaymentStatus.PENDING.value:
            raise ConflictError(
                "invalid_transition",
                f"Payment is already {self.status}",
                field="status",
                current=self.status,
            )

        pending = self._sales(TransactionStatus.PENDING)
        sale = pending[-1] if pending else self._append(TransactionType.SALE, self.amount)

        if succeeded:
            self._move(sale, TransactionStatus.SUCCESS, gateway_reference=gateway_reference)
            self.payment_date = datetime.now(UTC)
            self.failure_reason = None
        else:
            self._move(sale, TransactionStatus.FAILED, gateway_reference=gateway_reference, reason=failure_reason)
            self.failure_reason = failure_reason or "Payment failed"

        self._sync_status()
        return sale

    def retry(self) -> Transaction:
        """Re-open the last failed charge so it can be captured again."""
        self._ensure_not_voided()
        if self.status != PaymentStatus.FAILED.value:
            raise ConflictError(
                "invalid_transition",
                f"Cannot retry payment with status '{self.status}'",
                field="status",
                current=self.status,
            )

        sale = self._sales(TransactionStatus.FAILED)[-1]
        self._move(sale, TransactionStatus.PENDING)
        self.failure_reason = None
        self._sync_status()
        return sale

    def record_transaction_outcome(self, transaction_id, status: str, gateway_reference=None, reason=None):
        """Apply a processor confirmation to a single transaction."""
        self._ensure_not_voided()
        transaction = self._transaction(transaction_id)
        if transaction is None:
            raise ValidationError({"transaction_id": ["Transaction not found"]})

        self._move(transaction, TransactionStatus(status), gateway_reference=gateway_reference, reason=reason)
        if transaction.transaction_type == TransactionType.SALE.value and status == TransactionStatus.SUCCESS.value:
            self.payment_date = datetime.now(UTC)
        self._sync_status()
        return transaction

    # -------------------------------------------------------------------
    # Refunds and voids
    # -------------------------------------------------------------------
    def check_refund(self, amount: float | None) -> float:
        """Resolve and validate a refund amount without changing anything.

        ``None`` means everything still refundable.
        """
        if self.captured_amount <= 0:
            raise ConflictError(
                "not_captured",
                "Only captured payments can be refunded",
                field="status",
                current=self.status,
            )

        refundable = self.refundable_amount
        if amount is None:
            amount = refundable
        amount = to_cents(amount)
        if amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be greater than zero"]})
        if amount > refundable:
            raise RefundExceedsCeiling(requested=amount, refundable=refundable)
        return amount

    def refund(self, amount: float | None = None, reason=None, gateway_reference=None) -> Transaction:
        amount = self.check_refund(amount)

        now = datetime.now(UTC)
        transaction = self._append(TransactionType.REFUND, amount, reason=reason)
        self._move(transaction, TransactionStatus.SUCCESS, gateway_reference=gateway_reference)
        self.refund_date = now
        self._sync_status()
        return transaction

    def void(self) -> None:
        """Call off a payment that never captured anything."""
        if self.captured_amount > 0:
            raise ConflictError("already_captured", "Captured payments must be refunded, not voided", field="status")

        for sale in self._sales(TransactionStatus.PENDING):
            self._move(sale, TransactionStatus.CANCELLED)
        self.voided_at = datetime.now(UTC)
        self._sync_status()

    def read_model(self) -> dict:
        return {
            "id": str(self.id),
            "order_id": str(self.order_id),
            "customer_id": str(self.customer_id),
            "payment_method": self.payment_method,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "refunded_amount": self.refunded_amount,
            "refundable_amount": self.refundable_amount,
            "failure_reason": self.failure_reason,
            "transactions": [
                {
                    "id": str(t.id),
                    "type": t.transaction_type,
                    "amount": t.amount,
                    "currency": t.currency,
                    "status": t.status,
                    "gateway_reference": t.gateway_reference,
                    "reason": t.reason,
                    "processed_at": t.processed_at.isoformat() if t.processed_at else None,
                }
                for t in self.transactions
            ],
        }
