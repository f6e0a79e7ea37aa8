"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Payment")
class PaymentCreated:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(max_length=3, default="USD")


@storefront.event(part_of="Payment")
class TransactionRecorded:
    """A sale or refund transaction was appended or changed status."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    transaction_type = String(required=True, max_length=10)
    amount = Float(required=True)
    status = String(required=True, max_length=20)
    recorded_at = DateTime(required=True)


@storefront.event(part_of="Payment")
class PaymentStatusChanged:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=30)
    new_status = String(required=True, max_length=30)
    refunded_amount = Float(default=0.0)
