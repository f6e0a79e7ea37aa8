"""Payment capture: commands and handler.

The processor reports whether a charge went through; the payment records it
as a sale transaction and the order's payment status follows.
"""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order
from storefront.payment.ledger import sync_order
from storefront.payment.payment import Payment
from storefront.payment.reconciliation import TransactionStatus

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Payment")
class CapturePayment:
    payment_id = Identifier(required=True)
    succeeded = Boolean(required=True)
    gateway_reference = String(max_length=255)
    failure_reason = String(max_length=500)


@storefront.command(part_of="Payment")
class RetryPayment:
    payment_id = Identifier(required=True)


@storefront.command(part_of="Payment")
class RecordTransactionOutcome:
    """Processor webhook confirming a single transaction."""

    payment_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    status = String(required=True, choices=TransactionStatus)
    gateway_reference = String(max_length=255)
    reason = String(max_length=500)


@storefront.command_handler(part_of=Payment)
class PaymentCaptureHandler:
    def _save(self, payment):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(str(payment.order_id))
        sync_order(order, payment)
        current_domain.repository_for(Payment).add(payment)
        order_repo.add(order)

    @handle(CapturePayment)
    def capture_payment(self, command):
        payment = current_domain.repository_for(Payment).get(command.payment_id)
        transaction = payment.capture(
            succeeded=command.succeeded,
            gateway_reference=command.gateway_reference,
            failure_reason=command.failure_reason,
        )
        self._save(payment)

        logger.info(
            "Payment capture recorded",
            payment_id=str(payment.id),
            order_id=str(payment.order_id),
            succeeded=command.succeeded,
            status=payment.status,
        )
        return str(transaction.id)

    @handle(RetryPayment)
    def retry_payment(self, command):
        payment = current_domain.repository_for(Payment).get(command.payment_id)
        payment.retry()
        self._save(payment)

    @handle(RecordTransactionOutcome)
    def record_transaction_outcome(self, command):
        payment = current_domain.repository_for(Payment).get(command.payment_id)
        payment.record_transaction_outcome(
            transaction_id=command.transaction_id,
            status=command.status,
            gateway_reference=command.gateway_reference,
            reason=command.reason,
        )
        self._save(payment)
