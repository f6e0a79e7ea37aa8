"""Payment status derivation.

A payment's status is never set by hand: it is read off its transaction
history by ``derive_payment_status``, and the order's payment status is read
off the payment by ``order_payment_status``. Keeping both in one place stops
the two records from drifting apart.
"""

from collections.abc import Iterable
from enum import Enum

from storefront.shared.money import to_cents


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class TransactionType(Enum):
    SALE = "sale"
    REFUND = "refund"


class TransactionStatus(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


_TRANSACTION_TRANSITIONS = {
    TransactionStatus.PENDING: {TransactionStatus.SUCCESS, TransactionStatus.FAILED, TransactionStatus.CANCELLED},
    TransactionStatus.FAILED: {TransactionStatus.PENDING},  # retry
    TransactionStatus.SUCCESS: set(),  # Terminal
    TransactionStatus.CANCELLED: set(),  # Terminal
}

_ORDER_PAYMENT_STATUS = {
    PaymentStatus.PENDING: "pending",
    PaymentStatus.COMPLETED: "paid",
    PaymentStatus.FAILED: "failed",
    PaymentStatus.CANCELLED: "pending",
    PaymentStatus.REFUNDED: "refunded",
    PaymentStatus.PARTIALLY_REFUNDED: "partially_refunded",
}


def can_transition(current: str, target: str) -> bool:
    return TransactionStatus(target) in _TRANSACTION_TRANSITIONS[TransactionStatus(current)]


def _settled(transactions: Iterable, transaction_type: TransactionType) -> float:
    return to_cents(
        sum(
            t.amount
            for t in transactions
            if t.transaction_type == transaction_type.value and t.status == TransactionStatus.SUCCESS.value
        )
    )


def captured_amount(transactions: Iterable) -> float:
    return _settled(transactions, TransactionType.SALE)


def refunded_amount(transactions: Iterable) -> float:
    return _settled(transactions, TransactionType.REFUND)


def refundable_amount(transactions: Iterable) -> float:
    transactions = list(transactions)
    return max(0.0, to_cents(captured_amount(transactions) - refunded_amount(transactions)))


def derive_payment_status(transactions: Iterable, voided: bool = False) -> str:
    """Status implied by the transaction history.

    Args:
        transactions: objects with transaction_type, amount and status, in
            creation order.
        voided: the payment was called off before any capture.
    """
    transactions = list(transactions)
    captured = captured_amount(transactions)
    refunded = refunded_amount(transactions)

    if captured > 0:
        if refunded >= captured:
            return PaymentStatus.REFUNDED.value
        if refunded > 0:
            return PaymentStatus.PARTIALLY_REFUNDED.value
        return PaymentStatus.COMPLETED.value
    if voided:
        return PaymentStatus.CANCELLED.value

    sales = [t for t in transactions if t.transaction_type == TransactionType.SALE.value]
    if sales and sales[-1].status == TransactionStatus.FAILED.value:
        return PaymentStatus.FAILED.value
    return PaymentStatus.PENDING.value


def order_payment_status(payment_status: str) -> str:
    return _ORDER_PAYMENT_STATUS[PaymentStatus(payment_status)]
