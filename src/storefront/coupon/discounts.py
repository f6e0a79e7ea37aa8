"""Discount rules and restriction matching.

Pure functions over plain values, shared by coupon validation and cart
pricing so both compute the same discount for the same items.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from storefront.shared.money import to_cents


# ---------------------------------------------------------------------------
# Rule variants
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Percentage:
    value: float
    cap: float | None = None


@dataclass(frozen=True)
class Fixed:
    value: float


@dataclass(frozen=True)
class FreeShipping:
    pass


DiscountRule = Percentage | Fixed | FreeShipping


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"


def build_rule(discount_type: str, value: float, cap: float | None = None) -> DiscountRule:
    match discount_type:
        case DiscountType.PERCENTAGE.value:
            return Percentage(value=value, cap=cap)
        case DiscountType.FIXED.value:
            return Fixed(value=value)
        case DiscountType.FREE_SHIPPING.value:
            return FreeShipping()
        case _:
            raise ValueError(f"Unknown discount type: {discount_type}")


def discount_for(rule: DiscountRule, applicable_subtotal: float) -> float:
    """Money off ``applicable_subtotal``; never more than the subtotal itself."""
    applicable_subtotal = max(0.0, applicable_subtotal)
    match rule:
        case Percentage(value=value, cap=cap):
            amount = applicable_subtotal * value / 100
            if cap is not None and amount > cap:
                amount = cap
        case Fixed(value=value):
            amount = min(value, applicable_subtotal)
        case FreeShipping():
            amount = 0.0
    return to_cents(amount)


def grants_free_shipping(rule: DiscountRule) -> bool:
    return isinstance(rule, FreeShipping)


# ---------------------------------------------------------------------------
# Restrictions
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Restrictions:
    categories: frozenset = field(default_factory=frozenset)
    product_ids: frozenset = field(default_factory=frozenset)
    excluded_categories: frozenset = field(default_factory=frozenset)
    excluded_product_ids: frozenset = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data: dict | None) -> "Restrictions":
        data = data or {}
        return cls(
            categories=frozenset(data.get("categories") or ()),
            product_ids=frozenset(str(p) for p in data.get("product_ids") or ()),
            excluded_categories=frozenset(data.get("excluded_categories") or ()),
            excluded_product_ids=frozenset(str(p) for p in data.get("excluded_product_ids") or ()),
        )

    @classmethod
    def from_json(cls, raw: str | None) -> "Restrictions":
        return cls.from_dict(json.loads(raw) if raw else None)

    def to_dict(self) -> dict:
        return {
            "categories": sorted(self.categories),
            "product_ids": sorted(self.product_ids),
            "excluded_categories": sorted(self.excluded_categories),
            "excluded_product_ids": sorted(self.excluded_product_ids),
        }

    @property
    def is_restricted(self) -> bool:
        return bool(self.categories or self.product_ids or self.excluded_categories or self.excluded_product_ids)

    def applies_to(self, product_id, category) -> bool:
        product_id = str(product_id)
        if product_id in self.excluded_product_ids or category in self.excluded_categories:
            return False
        if not (self.categories or self.product_ids):
            return True
        return product_id in self.product_ids or category in self.categories


def applicable_subtotal(items: Iterable, restrictions: Restrictions) -> float:
    """Sum of ``price * quantity`` over the items the restrictions admit.

    Items are anything with product_id, category, price and quantity.
    """
    return to_cents(
        sum(
            item.price * item.quantity
            for item in items
            if restrictions.applies_to(item.product_id, item.category)
        )
    )
