"""Refund issuing and order/payment synchronisation.

Shared by the refund command and by order cancellation/return, which both
have to move money and then mirror the result onto the order.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.errors import ConflictError
from storefront.payment.gateway import RefundRequest, get_gateway
from storefront.payment.payment import Payment, Transaction
from storefront.payment.reconciliation import order_payment_status

logger = structlog.get_logger(__name__)


def payment_for(order) -> Payment | None:
    if not order.payment_id:
        return None
    try:
        return current_domain.repository_for(Payment).get(str(order.payment_id))
    except ObjectNotFoundError:
        logger.warning("Order references a missing payment", order_id=str(order.id), payment_id=str(order.payment_id))
        return None


def issue_refund(payment: Payment, amount: float | None = None, reason=None) -> Transaction:
    """Refund through the gateway, then record it on the payment.

    Raises:
        RefundExceedsCeiling: ``amount`` is above what is still refundable.
        ConflictError: the payment never captured, or the gateway declined.
    """
    amount = payment.check_refund(amount)

    outcome = get_gateway().refund(
        RefundRequest(
            payment_id=str(payment.id),
            sale_reference=payment.sale_reference,
            amount=amount,
            currency=payment.currency,
            reason=reason,
        )
    )
    if not outcome.approved:
        logger.warning(
            "Refund declined by gateway",
            payment_id=str(payment.id),
            amount=amount,
            decline_reason=outcome.decline_reason,
        )
        raise ConflictError(
            "refund_declined",
            outcome.decline_reason or "Refund declined",
            field="amount",
            amount=amount,
        )

    transaction = payment.refund(amount, reason=reason, gateway_reference=outcome.reference)
    logger.info(
        "Refund issued",
        payment_id=str(payment.id),
        order_id=str(payment.order_id),
        amount=amount,
        payment_status=payment.status,
    )
    return transaction


def sync_order(order, payment: Payment) -> None:
    order.mirror_payment_status(order_payment_status(payment.status))
