"""Order aggregate: the frozen result of a checkout.

Lines, prices, totals and addresses are copied from the cart at checkout and
never change afterwards. What moves is the fulfilment status, the mirrored
payment status, and append-only records (notes, refund, cancellation).

State Machine:
    pending → confirmed → processing → shipped → delivered → completed
    pending/confirmed can skip ahead (pending → processing, confirmed → shipped)
    any non-terminal state → returned
    pending/confirmed/processing/shipped → cancelled
    cancelled and returned are terminal
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.domain import storefront
from storefront.errors import ConflictError, InvalidTransition
from storefront.order.events import (
    OrderCancelled,
    OrderDeleted,
    OrderInventoryRestored,
    OrderPlaced,
    OrderRefundRecorded,
    OrderStatusChanged,
)
from storefront.shared.address import Address
from storefront.shared.money import DEFAULT_CURRENCY, to_cents
from storefront.shared.package_info import PackageInfo


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class OrderPaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class RefundType(Enum):
    FULL = "full"
    PARTIAL = "partial"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
        OrderStatus.RETURNED,
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.CANCELLED,
        OrderStatus.RETURNED,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.RETURNED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED, OrderStatus.RETURNED},
    OrderStatus.COMPLETED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

# Statuses that put the goods back on the shelf
RESTOCKING_STATUSES = {OrderStatus.CANCELLED, OrderStatus.RETURNED}

_DELETABLE_STATUSES = {OrderStatus.PENDING, OrderStatus.CANCELLED}

_STATUS_TIMESTAMPS = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.PROCESSING: "processing_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.RETURNED: "returned_at",
}


def generate_order_number(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return f"ORD-{now:%Y%m%d}-{uuid4().hex[:6].upper()}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class CustomerSnapshot:
    email = String(max_length=254)
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    phone = String(max_length=30)


@storefront.value_object(part_of="Order")
class OrderTotals:
    """Money summary locked at checkout."""

    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)


@storefront.value_object(part_of="Order")
class OrderCoupon:
    code = String(required=True, max_length=20)
    discount = Float(default=0.0)
    discount_type = String(max_length=20)


@storefront.value_object(part_of="Order")
class RefundRecord:
    amount = Float(required=True)
    reason = String(max_length=500)
    refund_type = String(choices=RefundType, required=True)
    processed_at = DateTime()
    processed_by = String(max_length=100)


@storefront.value_object(part_of="Order")
class CancellationRecord:
    reason = String(max_length=500)
    cancelled_at = DateTime(required=True)
    cancelled_by = String(max_length=100)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A line frozen at checkout; later catalog edits do not reach it."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    category = String(max_length=100)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    subtotal = Float(required=True, min_value=0.0)
    image = String(max_length=500)
    product_type = String(max_length=20, default="single")
    package_info = ValueObject(PackageInfo)


@storefront.entity(part_of="Order")
class OrderNote:
    content = Text(required=True)
    is_private = Boolean(default=False)
    created_by = String(max_length=100)
    created_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    customer = ValueObject(CustomerSnapshot)
    items = HasMany(OrderItem)
    totals = ValueObject(OrderTotals)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=OrderPaymentStatus, default=OrderPaymentStatus.PENDING.value)
    payment_id = Identifier()
    payment_method = String(max_length=50)
    shipping_method = String(max_length=100)
    tracking_number = String(max_length=255)
    coupon = ValueObject(OrderCoupon)
    notes = HasMany(OrderNote)
    customer_notes = String(max_length=500)
    refund = ValueObject(RefundRecord)
    cancellation = ValueObject(CancellationRecord)
    inventory_restored = Boolean(default=False)
    confirmed_at = DateTime()
    processing_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    completed_at = DateTime()
    returned_at = DateTime()
    deleted_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        items,
        totals,
        shipping_address,
        billing_address=None,
        customer=None,
        payment_method=None,
        shipping_method=None,
        coupon=None,
        customer_notes=None,
    ):
        """Create a pending order.

        Args:
            items: list of dicts with the OrderItem fields (package_info as a dict).
            totals: dict with subtotal, tax, shipping, discount, total, currency.
            shipping_address: dict with the Address fields.
            coupon: dict with code, discount and discount_type, or None.
        """
        if not items:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=generate_order_number(now),
            customer_id=customer_id,
            customer=CustomerSnapshot(**customer) if customer else None,
            items=[
                OrderItem(
                    **{k: v for k, v in item.items() if k != "package_info"},
                    package_info=PackageInfo(**item["package_info"]) if item.get("package_info") else None,
                )
                for item in items
            ],
            totals=OrderTotals(**totals),
            shipping_address=Address(**shipping_address),
            billing_address=Address(**(billing_address or shipping_address)),
            status=OrderStatus.PENDING.value,
            payment_status=OrderPaymentStatus.PENDING.value,
            payment_method=payment_method,
            shipping_method=shipping_method,
            coupon=OrderCoupon(**coupon) if coupon else None,
            customer_notes=customer_notes,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                item_count=sum(item.quantity for item in order.items),
                total=order.totals.total,
                currency=order.totals.currency,
                coupon_code=order.coupon.code if order.coupon else None,
                placed_at=now,
            )
        )
        return order

    def link_payment(self, payment_id) -> None:
        self.payment_id = payment_id

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[OrderStatus(self.status)]

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in _VALID_TRANSITIONS.get(OrderStatus(self.status), set())

    def _assert_can_transition(self, target: OrderStatus) -> None:
        if not self.can_transition_to(target):
            raise InvalidTransition(self.status, target.value)

    def transition_to(self, target: OrderStatus, changed_by=None, reason=None, tracking_number=None) -> None:
        """Move to ``target`` and stamp the matching timestamp.

        Restocking and refunds for cancelled/returned orders are run by the
        caller, see ``order.lifecycle``.
        """
        self._assert_can_transition(target)

        previous = self.status
        now = datetime.now(UTC)
        self.status = target.value
        if target in _STATUS_TIMESTAMPS:
            setattr(self, _STATUS_TIMESTAMPS[target], now)
        if tracking_number:
            self.tracking_number = tracking_number
        if target == OrderStatus.CANCELLED:
            self.cancellation = CancellationRecord(reason=reason, cancelled_at=now, cancelled_by=changed_by)
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                changed_by=changed_by,
                changed_at=now,
            )
        )
        if target == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    customer_id=str(self.customer_id),
                    reason=reason,
                    cancelled_by=changed_by,
                    cancelled_at=now,
                )
            )

    # -------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------
    def stock_lines(self) -> list[tuple]:
        """Units to put back on the shelf, packages expanded from the snapshot."""
        lines = []
        for item in self.items:
            components = item.package_info.components if item.package_info else []
            if components:
                lines.extend((c["product_id"], c["quantity"] * item.quantity) for c in components)
            else:
                lines.append((str(item.product_id), item.quantity))
        return lines

    def mark_inventory_restored(self) -> None:
        if self.inventory_restored:
            raise ConflictError("already_restored", "Inventory for this order was already restored")

        now = datetime.now(UTC)
        self.inventory_restored = True
        self.updated_at = now
        self.raise_(OrderInventoryRestored(order_id=str(self.id), restored_at=now))

    # -------------------------------------------------------------------
    # Payment mirror
    # -------------------------------------------------------------------
    def mirror_payment_status(self, payment_status: str) -> None:
        self.payment_status = OrderPaymentStatus(payment_status).value
        self.updated_at = datetime.now(UTC)

    def record_refund(self, amount: float, refunded_total: float, reason=None, processed_by=None) -> None:
        """Keep the cumulative refund on the order."""
        total = self.totals.total if self.totals else 0.0
        refund_type = RefundType.FULL if to_cents(refunded_total) >= to_cents(total) else RefundType.PARTIAL
        now = datetime.now(UTC)
        self.refund = RefundRecord(
            amount=to_cents(refunded_total),
            reason=reason,
            refund_type=refund_type.value,
            processed_at=now,
            processed_by=processed_by,
        )
        self.updated_at = now

        self.raise_(
            OrderRefundRecorded(
                order_id=str(self.id),
                amount=to_cents(amount),
                refund_type=refund_type.value,
                payment_status=self.payment_status,
            )
        )

    # -------------------------------------------------------------------
    # Notes and deletion
    # -------------------------------------------------------------------
    def add_note(self, content: str, is_private: bool = False, created_by=None) -> None:
        if not content or not content.strip():
            raise ValidationError({"content": ["Note content cannot be empty"]})
        self.add_notes(
            OrderNote(
                content=content.strip(),
                is_private=is_private,
                created_by=created_by,
                created_at=datetime.now(UTC),
            )
        )
        self.updated_at = datetime.now(UTC)

    def assert_deletable(self) -> None:
        if self.is_deleted:
            raise ConflictError("already_deleted", "Order was already deleted")
        if OrderStatus(self.status) not in _DELETABLE_STATUSES:
            raise ConflictError(
                "not_deletable",
                f"Cannot delete order with status '{self.status}'. Only pending or cancelled orders can be deleted",
                field="status",
            )

    def mark_deleted(self) -> None:
        """Soft delete; the row stays for audit."""
        if OrderStatus(self.status) != OrderStatus.CANCELLED:
            raise ConflictError("not_deletable", "Order must be cancelled before it is deleted", field="status")
        now = datetime.now(UTC)
        self.deleted_at = now
        self.updated_at = now
        self.raise_(OrderDeleted(order_id=str(self.id), deleted_at=now))

    # -------------------------------------------------------------------
    # Read model
    # -------------------------------------------------------------------
    def read_model(self, include_private_notes: bool = False) -> dict:
        totals = self.totals or OrderTotals()
        return {
            "id": str(self.id),
            "order_number": self.order_number,
            "customer_id": str(self.customer_id),
            "customer": self.customer.to_dict() if self.customer else None,
            "items": [
                {
                    "product_id": str(item.product_id),
                    "name": item.name,
                    "sku": item.sku,
                    "price": item.price,
                    "quantity": item.quantity,
                    "subtotal": item.subtotal,
                    "image": item.image,
                    "product_type": item.product_type,
                    "package_info": item.package_info.read_model() if item.package_info else None,
                }
                for item in self.items
            ],
            "totals": {
                "subtotal": totals.subtotal,
                "tax": totals.tax,
                "shipping": totals.shipping,
                "discount": totals.discount,
                "total": totals.total,
                "currency": totals.currency,
            },
            "shipping_address": self.shipping_address.to_dict() if self.shipping_address else None,
            "billing_address": self.billing_address.to_dict() if self.billing_address else None,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_id": str(self.payment_id) if self.payment_id else None,
            "payment_method": self.payment_method,
            "shipping_method": self.shipping_method,
            "tracking_number": self.tracking_number,
            "coupon": self.coupon.to_dict() if self.coupon else None,
            "notes": [
                {
                    "content": note.content,
                    "is_private": note.is_private,
                    "created_by": note.created_by,
                    "created_at": note.created_at.isoformat() if note.created_at else None,
                }
                for note in self.notes
                if include_private_notes or not note.is_private
            ],
            "refund": self.refund.to_dict() if self.refund else None,
            "cancellation": self.cancellation.to_dict() if self.cancellation else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }

