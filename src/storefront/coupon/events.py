"""Domain events for the Coupon aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Coupon")
class CouponCreated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True, max_length=20)
    discount_type = String(required=True, max_length=20)


@storefront.event(part_of="Coupon")
class CouponRedeemed:
    """A checkout consumed one use of the coupon."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True, max_length=20)
    customer_id = Identifier(required=True)
    usage_count = Integer(required=True)
    redeemed_at = DateTime(required=True)


@storefront.event(part_of="Coupon")
class CouponStatusChanged:
    __version__ = 1

    coupon_id = Identifier(required=True)
    is_active = Boolean(required=True)
