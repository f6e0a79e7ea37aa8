"""Order lifecycle: status changes, cancellation, deletion and notes.

Entering ``cancelled`` or ``returned`` settles the order in the same unit of
work: a paid order is refunded in full, an unpaid one has its payment
voided, and the goods go back on the shelf exactly once.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import ConflictError
from storefront.order.order import RESTOCKING_STATUSES, Order, OrderStatus
from storefront.payment import ledger as payment_ledger
from storefront.payment.payment import Payment
from storefront.payment.reconciliation import PaymentStatus
from storefront.stock import ledger as stock_ledger

logger = structlog.get_logger(__name__)

_CUSTOMER_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.CONFIRMED}


def restore_inventory(order: Order) -> None:
    """Put the order's units back, once per order."""
    if order.inventory_restored:
        return
    stock_ledger.restore(order.stock_lines(), reference=order.order_number)
    order.mark_inventory_restored()


def settle_closed_order(order: Order, closed_by=None, reason=None) -> None:
    """Refund or void the payment of a cancelled/returned order and restock it."""
    payment = payment_ledger.payment_for(order)
    if payment is not None:
        if payment.refundable_amount > 0:
            transaction = payment_ledger.issue_refund(payment, reason=reason or f"Order {order.status}")
            payment_ledger.sync_order(order, payment)
            order.record_refund(
                transaction.amount,
                payment.refunded_amount,
                reason=reason,
                processed_by=closed_by,
            )
        elif payment.status in (PaymentStatus.PENDING.value, PaymentStatus.FAILED.value):
            payment.void()
            payment_ledger.sync_order(order, payment)
        current_domain.repository_for(Payment).add(payment)

    restore_inventory(order)


def close_order(order: Order, target: OrderStatus, closed_by=None, reason=None) -> None:
    order.transition_to(target, changed_by=closed_by, reason=reason)
    settle_closed_order(order, closed_by=closed_by, reason=reason)
    logger.info(
        "Order closed",
        order_id=str(order.id),
        status=order.status,
        payment_status=order.payment_status,
        closed_by=closed_by,
    )


def load_order(order_id, customer_id=None) -> Order:
    order = current_domain.repository_for(Order).get(order_id)
    if order.is_deleted or (customer_id is not None and str(order.customer_id) != str(customer_id)):
        raise ObjectNotFoundError(f"Order `{order_id}` does not exist")
    return order


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    """Operator status change; any move the state machine allows."""

    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    changed_by = String(max_length=100)
    reason = String(max_length=500)
    tracking_number = String(max_length=255)


@storefront.command(part_of="Order")
class CancelOrder:
    """Customer cancellation, allowed before the order is being worked on."""

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String(max_length=500)


@storefront.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)
    deleted_by = String(max_length=100)


@storefront.command(part_of="Order")
class AddOrderNote:
    order_id = Identifier(required=True)
    content = Text(required=True)
    is_private = Boolean(default=False)
    created_by = String(max_length=100)


@storefront.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = load_order(command.order_id)
        target = OrderStatus(command.status)

        if target in RESTOCKING_STATUSES:
            close_order(order, target, closed_by=command.changed_by, reason=command.reason)
        else:
            order.transition_to(
                target,
                changed_by=command.changed_by,
                reason=command.reason,
                tracking_number=command.tracking_number,
            )
        repo.add(order)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = load_order(command.order_id, customer_id=command.customer_id)

        if OrderStatus(order.status) not in _CUSTOMER_CANCELLABLE:
            raise ConflictError(
                "invalid_transition",
                f"Order cannot be cancelled in {order.status} status. Please contact support.",
                field="status",
                current=order.status,
                target=OrderStatus.CANCELLED.value,
            )

        close_order(order, OrderStatus.CANCELLED, closed_by="customer", reason=command.reason)
        repo.add(order)

    @handle(DeleteOrder)
    def delete_order(self, command):
        repo = current_domain.repository_for(Order)
        order = load_order(command.order_id)
        order.assert_deletable()

        if OrderStatus(order.status) == OrderStatus.PENDING:
            close_order(order, OrderStatus.CANCELLED, closed_by=command.deleted_by, reason="Order deleted")
        order.mark_deleted()
        repo.add(order)

    @handle(AddOrderNote)
    def add_order_note(self, command):
        repo = current_domain.repository_for(Order)
        order = load_order(command.order_id)
        order.add_note(command.content, is_private=command.is_private, created_by=command.created_by)
        repo.add(order)
