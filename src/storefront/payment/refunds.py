"""Payment refunds: command and handler.

A refund that brings the payment to fully refunded also returns the order
(restocking it) unless the order is already closed.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.lifecycle import restore_inventory
from storefront.order.order import Order, OrderStatus
from storefront.payment.ledger import issue_refund, sync_order
from storefront.payment.payment import Payment
from storefront.payment.reconciliation import PaymentStatus


@storefront.command(part_of="Payment")
class RefundPayment:
    payment_id = Identifier(required=True)
    amount = Float()  # None refunds everything still refundable
    reason = String(max_length=500)
    processed_by = String(max_length=100)


@storefront.command_handler(part_of=Payment)
class RefundHandler:
    @handle(RefundPayment)
    def refund_payment(self, command):
        payment_repo = current_domain.repository_for(Payment)
        order_repo = current_domain.repository_for(Order)

        payment = payment_repo.get(command.payment_id)
        order = order_repo.get(str(payment.order_id))

        transaction = issue_refund(payment, amount=command.amount, reason=command.reason)
        sync_order(order, payment)
        order.record_refund(
            transaction.amount,
            payment.refunded_amount,
            reason=command.reason,
            processed_by=command.processed_by,
        )

        if payment.status == PaymentStatus.REFUNDED.value:
            if not order.is_terminal:
                order.transition_to(OrderStatus.RETURNED, changed_by=command.processed_by, reason=command.reason)
            restore_inventory(order)

        payment_repo.add(payment)
        order_repo.add(order)
        return str(transaction.id)
