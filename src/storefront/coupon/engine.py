"""Coupon validation: decides whether a code applies to a cart and for how much.

Checks run in a fixed order and the first failure wins, so a caller always
gets the most fundamental reason a coupon was refused.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon
from storefront.coupon.discounts import Restrictions, applicable_subtotal, discount_for, grants_free_shipping
from storefront.errors import CouponRejected

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DiscountInfo:
    discount: float
    free_shipping: bool
    coupon_id: str
    restrictions: Restrictions = field(default_factory=Restrictions)


def find_coupon(code: str) -> Coupon | None:
    if not code:
        return None
    matches = current_domain.repository_for(Coupon)._dao.query.filter(code=code.strip().upper()).all().items
    return matches[0] if matches else None


def _prior_orders(customer_id) -> list:
    from storefront.order.order import Order

    return current_domain.repository_for(Order)._dao.query.filter(customer_id=str(customer_id)).all().items


def _check_customer_eligibility(coupon: Coupon, customer_id) -> None:
    if not (coupon.new_customers_only or coupon.first_order_only):
        return

    orders = _prior_orders(customer_id)
    if coupon.new_customers_only and orders:
        raise CouponRejected("not_eligible", "This coupon is for new customers only", code=coupon.code)
    if coupon.first_order_only and any(o.payment_status == "paid" for o in orders):
        raise CouponRejected("not_eligible", "This coupon is valid on your first order only", code=coupon.code)


def evaluate(coupon: Coupon, customer_id, cart_subtotal: float, cart_items: Iterable, now: datetime) -> DiscountInfo:
    """Run every rule against an already loaded coupon."""
    cart_items = list(cart_items)

    if not coupon.is_live_at(now):
        raise CouponRejected("not_found", "Invalid or expired coupon code", code=coupon.code)
    if coupon.is_depleted:
        raise CouponRejected("depleted", "Coupon usage limit has been reached", code=coupon.code)
    if coupon.uses_by(customer_id) >= coupon.usage_limit_per_customer:
        raise CouponRejected(
            "per_customer_limit",
            "You have already used this coupon the maximum number of times",
            code=coupon.code,
        )
    _check_customer_eligibility(coupon, customer_id)

    if cart_subtotal < (coupon.minimum_purchase or 0.0):
        raise CouponRejected(
            "minimum_not_met",
            f"Minimum purchase of {coupon.minimum_purchase:.2f} required",
            code=coupon.code,
            minimum_purchase=coupon.minimum_purchase,
            subtotal=cart_subtotal,
        )
    items_count = sum(item.quantity for item in cart_items)
    if items_count < (coupon.minimum_items or 0):
        raise CouponRejected(
            "minimum_items_not_met",
            f"At least {coupon.minimum_items} items required",
            code=coupon.code,
            minimum_items=coupon.minimum_items,
            items_count=items_count,
        )

    restrictions = coupon.restriction_set
    applicable = applicable_subtotal(cart_items, restrictions)
    if restrictions.is_restricted and applicable <= 0:
        raise CouponRejected("no_eligible_items", "No items in your cart are eligible for this coupon", code=coupon.code)

    rule = coupon.rule
    return DiscountInfo(
        discount=discount_for(rule, applicable),
        free_shipping=grants_free_shipping(rule),
        coupon_id=str(coupon.id),
        restrictions=restrictions,
    )


def validate(code: str, customer_id, cart_subtotal: float, cart_items: Iterable, now: datetime | None = None) -> DiscountInfo:
    """Validate ``code`` for a customer's cart.

    Args:
        cart_items: objects with product_id, category, price and quantity.

    Raises:
        CouponRejected: with one of not_found, depleted, per_customer_limit,
            not_eligible, minimum_not_met, minimum_items_not_met or
            no_eligible_items as its reason.
    """
    now = now or datetime.now(UTC)
    coupon = find_coupon(code)
    if coupon is None:
        raise CouponRejected("not_found", "Invalid or expired coupon code", code=(code or "").upper())

    info = evaluate(coupon, customer_id, cart_subtotal, cart_items, now)
    logger.debug("Coupon validated", code=coupon.code, customer_id=str(customer_id), discount=info.discount)
    return info
