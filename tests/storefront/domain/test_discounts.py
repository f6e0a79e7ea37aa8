"""Tests for discount rules and coupon restrictions."""

from types import SimpleNamespace

import pytest
from storefront.coupon.discounts import (
    Fixed,
    FreeShipping,
    Percentage,
    Restrictions,
    applicable_subtotal,
    build_rule,
    discount_for,
    grants_free_shipping,
)


def _item(product_id="p1", category="shoes", price=10.0, quantity=1):
    return SimpleNamespace(product_id=product_id, category=category, price=price, quantity=quantity)


class TestBuildRule:
    def test_percentage(self):
        assert build_rule("percentage", 10.0, 5.0) == Percentage(value=10.0, cap=5.0)

    def test_cap_passed_through_unchanged(self):
        assert build_rule("percentage", 10.0, None) == Percentage(value=10.0, cap=None)
        assert build_rule("percentage", 10.0, 0.0) == Percentage(value=10.0, cap=0.0)

    def test_fixed(self):
        assert build_rule("fixed", 20.0) == Fixed(value=20.0)

    def test_free_shipping(self):
        assert build_rule("free_shipping", 0.0) == FreeShipping()

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            build_rule("bogus", 1.0)


class TestDiscountFor:
    def test_percentage_of_subtotal(self):
        assert discount_for(Percentage(value=10.0), 200.0) == 20.0

    def test_percentage_capped(self):
        assert discount_for(Percentage(value=50.0, cap=30.0), 200.0) == 30.0

    def test_percentage_rounds_to_cents(self):
        assert discount_for(Percentage(value=10.0), 19.99) == 2.0

    def test_fixed_amount(self):
        assert discount_for(Fixed(value=20.0), 150.0) == 20.0

    def test_fixed_never_exceeds_subtotal(self):
        assert discount_for(Fixed(value=50.0), 30.0) == 30.0

    def test_free_shipping_grants_no_money_off(self):
        assert discount_for(FreeShipping(), 100.0) == 0.0
        assert grants_free_shipping(FreeShipping())
        assert not grants_free_shipping(Fixed(value=5.0))

    @pytest.mark.parametrize(
        "rule",
        [Percentage(value=100.0), Percentage(value=37.5, cap=12.0), Fixed(value=999.0), Fixed(value=0.01)],
    )
    @pytest.mark.parametrize("subtotal", [0.0, 0.99, 19.99, 250.0])
    def test_discount_never_exceeds_applicable_subtotal(self, rule, subtotal):
        amount = discount_for(rule, subtotal)
        assert 0.0 <= amount <= subtotal
        if isinstance(rule, Percentage) and rule.cap is not None:
            assert amount <= rule.cap


class TestRestrictions:
    def test_unrestricted_admits_everything(self):
        restrictions = Restrictions()
        assert not restrictions.is_restricted
        assert restrictions.applies_to("any", "any")

    def test_category_inclusion(self):
        restrictions = Restrictions.from_dict({"categories": ["shoes"]})
        assert restrictions.applies_to("p1", "shoes")
        assert not restrictions.applies_to("p2", "hats")

    def test_product_and_category_axes_are_unioned(self):
        restrictions = Restrictions.from_dict({"categories": ["shoes"], "product_ids": ["p9"]})
        assert restrictions.applies_to("p9", "hats")
        assert restrictions.applies_to("p1", "shoes")
        assert not restrictions.applies_to("p2", "hats")

    def test_exclusions_win_over_inclusions(self):
        restrictions = Restrictions.from_dict({"categories": ["shoes"], "excluded_product_ids": ["p1"]})
        assert not restrictions.applies_to("p1", "shoes")

    def test_excluded_category(self):
        restrictions = Restrictions.from_dict({"excluded_categories": ["sale"]})
        assert restrictions.is_restricted
        assert not restrictions.applies_to("p1", "sale")
        assert restrictions.applies_to("p1", "shoes")

    def test_json_round_trip_of_empty_value(self):
        assert Restrictions.from_json(None) == Restrictions()
        assert Restrictions.from_json("") == Restrictions()


class TestApplicableSubtotal:
    def test_sums_only_admitted_lines(self):
        items = [_item("p1", "shoes", 50.0, 2), _item("p2", "hats", 20.0, 1)]
        restrictions = Restrictions.from_dict({"categories": ["shoes"]})
        assert applicable_subtotal(items, restrictions) == 100.0

    def test_no_admitted_lines(self):
        items = [_item("p2", "hats", 20.0, 1)]
        restrictions = Restrictions.from_dict({"categories": ["shoes"]})
        assert applicable_subtotal(items, restrictions) == 0.0
