"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A cart was checked out into a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    item_count = Integer(required=True)
    total = Float(required=True)
    currency = String(max_length=3, default="USD")
    coupon_code = String(max_length=20)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    new_status = String(required=True, max_length=20)
    changed_by = String(max_length=100)
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(max_length=100)
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderInventoryRestored:
    __version__ = 1

    order_id = Identifier(required=True)
    restored_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderRefundRecorded:
    __version__ = 1

    order_id = Identifier(required=True)
    amount = Float(required=True)
    refund_type = String(required=True, max_length=10)
    payment_status = String(required=True, max_length=30)


@storefront.event(part_of="Order")
class OrderDeleted:
    __version__ = 1

    order_id = Identifier(required=True)
    deleted_at = DateTime(required=True)
