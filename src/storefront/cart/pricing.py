"""Cart pricing: derives the cart summary from its lines and selections.

``recompute`` is pure. It reads the cart's items, coupon snapshot, selected
shipping option and carried tax amount, and returns fresh totals without
touching the cart, so running it twice gives the same answer.
"""

from dataclasses import dataclass

from storefront.coupon.discounts import Restrictions, applicable_subtotal, build_rule, discount_for
from storefront.shared.money import clamp_non_negative, to_cents


@dataclass(frozen=True)
class PriceBreakdown:
    items_count: int
    total_price: float
    total_discount: float
    shipping_fee: float
    tax_amount: float
    grand_total: float

    def to_dict(self) -> dict:
        return {
            "items_count": self.items_count,
            "total_price": self.total_price,
            "total_discount": self.total_discount,
            "shipping_fee": self.shipping_fee,
            "tax_amount": self.tax_amount,
            "grand_total": self.grand_total,
        }


def _minimum_met(coupon, total_price: float) -> bool:
    return total_price >= (coupon.minimum_purchase or 0.0)


def coupon_discount(coupon, items, total_price: float) -> float:
    """Discount granted by a coupon snapshot against the current lines.

    A snapshot whose minimum purchase is no longer met grants nothing.
    """
    if coupon is None or not _minimum_met(coupon, total_price):
        return 0.0
    rule = build_rule(coupon.discount_type, coupon.discount_value or 0.0, coupon.max_discount_amount)
    applicable = applicable_subtotal(items, Restrictions.from_json(coupon.restrictions))
    return discount_for(rule, applicable)


def coupon_grants_free_shipping(coupon, total_price: float) -> bool:
    return bool(coupon and coupon.free_shipping and _minimum_met(coupon, total_price))


def shipping_fee_for(selected_shipping, total_price: float, free_shipping: bool) -> float:
    """Either a threshold reached or a free-shipping coupon zeroes the fee."""
    if selected_shipping is None or free_shipping:
        return 0.0
    threshold = selected_shipping.free_shipping_threshold
    if threshold is not None and total_price >= threshold:
        return 0.0
    return to_cents(selected_shipping.amount)


def recompute(cart) -> PriceBreakdown:
    items = list(cart.items or [])
    items_count = sum(item.quantity for item in items)
    total_price = to_cents(sum(item.price * item.quantity for item in items))

    coupon = cart.coupon
    total_discount = coupon_discount(coupon, items, total_price)
    free_shipping = coupon_grants_free_shipping(coupon, total_price)
    shipping_fee = shipping_fee_for(cart.selected_shipping, total_price, free_shipping)
    tax_amount = to_cents(cart.summary.tax_amount) if cart.summary else 0.0

    return PriceBreakdown(
        items_count=items_count,
        total_price=total_price,
        total_discount=total_discount,
        shipping_fee=shipping_fee,
        tax_amount=tax_amount,
        grand_total=clamp_non_negative(total_price - total_discount + shipping_fee + tax_amount),
    )
