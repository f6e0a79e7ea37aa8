"""Coupon aggregate: promotional codes with usage limits and item restrictions."""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.coupon.discounts import DiscountRule, DiscountType, Restrictions, build_rule
from storefront.coupon.events import CouponCreated, CouponRedeemed, CouponStatusChanged
from storefront.domain import storefront
from storefront.errors import CouponRejected


class CouponStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    DEPLETED = "depleted"


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Stored datetimes may come back naive; compare everything as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


@storefront.entity(part_of="Coupon")
class CouponRedemption:
    """Per-customer usage tally."""

    customer_id = Identifier(required=True)
    usage_count = Integer(default=0, min_value=0)
    last_used_at = DateTime()


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=20)
    name = String(required=True, max_length=100)
    description = String(max_length=500)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(default=0.0, min_value=0.0)
    max_discount_amount = Float()
    minimum_purchase = Float(default=0.0, min_value=0.0)
    minimum_items = Integer(default=0, min_value=0)
    usage_limit_total = Integer()  # None means unlimited
    usage_limit_per_customer = Integer(default=1, min_value=1)
    usage_count = Integer(default=0, min_value=0)
    redemptions = HasMany(CouponRedemption)
    restrictions = Text()  # JSON object, see discounts.Restrictions
    new_customers_only = Boolean(default=False)
    first_order_only = Boolean(default=False)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def code_must_be_uppercase_and_sized(self):
        if self.code != self.code.upper() or not 3 <= len(self.code) <= 20:
            raise ValidationError({"code": ["Coupon code must be 3 to 20 uppercase characters"]})

    @invariant.post
    def percentage_must_not_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and not 0 < self.discount_value <= 100:
            raise ValidationError({"discount_value": ["Percentage must be between 0 and 100"]})

    @invariant.post
    def fixed_discount_must_be_positive(self):
        if self.discount_type == DiscountType.FIXED.value and self.discount_value <= 0:
            raise ValidationError({"discount_value": ["Fixed discount must be positive"]})

    @invariant.post
    def discount_cap_must_be_positive(self):
        if self.max_discount_amount is not None and self.max_discount_amount <= 0:
            raise ValidationError({"max_discount_amount": ["Discount cap must be positive when set"]})

    @invariant.post
    def validity_window_must_be_ordered(self):
        if as_naive_utc(self.end_date) <= as_naive_utc(self.start_date):
            raise ValidationError({"end_date": ["End date must be after start date"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        name,
        discount_type,
        discount_value,
        start_date,
        end_date,
        description=None,
        max_discount_amount=None,
        minimum_purchase=0.0,
        minimum_items=0,
        usage_limit_total=None,
        usage_limit_per_customer=1,
        restrictions=None,
        new_customers_only=False,
        first_order_only=False,
        is_active=True,
    ):
        now = datetime.now(UTC)
        coupon = cls(
            code=code.strip().upper(),
            name=name,
            description=description,
            discount_type=discount_type,
            discount_value=discount_value if discount_type != DiscountType.FREE_SHIPPING.value else 0.0,
            max_discount_amount=max_discount_amount,
            minimum_purchase=minimum_purchase,
            minimum_items=minimum_items,
            usage_limit_total=usage_limit_total,
            usage_limit_per_customer=usage_limit_per_customer,
            restrictions=json.dumps(Restrictions.from_dict(restrictions).to_dict()),
            new_customers_only=new_customers_only,
            first_order_only=first_order_only,
            start_date=start_date,
            end_date=end_date,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                discount_type=discount_type,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def status_at(self, now: datetime | None = None) -> str:
        now = as_naive_utc(now or datetime.now(UTC))
        if now > as_naive_utc(self.end_date):
            return CouponStatus.EXPIRED.value
        if self.is_depleted:
            return CouponStatus.DEPLETED.value
        return CouponStatus.ACTIVE.value if self.is_active else CouponStatus.INACTIVE.value

    @property
    def status(self) -> str:
        return self.status_at()

    def is_live_at(self, now: datetime) -> bool:
        now = as_naive_utc(now)
        return bool(self.is_active) and as_naive_utc(self.start_date) <= now <= as_naive_utc(self.end_date)

    @property
    def is_depleted(self) -> bool:
        return self.usage_limit_total is not None and self.usage_count >= self.usage_limit_total

    def uses_by(self, customer_id) -> int:
        redemption = self._redemption_for(customer_id)
        return redemption.usage_count if redemption else 0

    def _redemption_for(self, customer_id):
        return next((r for r in self.redemptions if str(r.customer_id) == str(customer_id)), None)

    @property
    def rule(self) -> DiscountRule:
        return build_rule(self.discount_type, self.discount_value, self.max_discount_amount)

    @property
    def restriction_set(self) -> Restrictions:
        return Restrictions.from_json(self.restrictions)

    # -------------------------------------------------------------------
    # Usage
    # -------------------------------------------------------------------
    def redeem(self, customer_id, now: datetime | None = None) -> None:
        """Consume one use, refusing once the total or per-customer limit is reached."""
        if self.is_depleted:
            raise CouponRejected("depleted", "Coupon usage limit has been reached", code=self.code)
        if self.uses_by(customer_id) >= self.usage_limit_per_customer:
            raise CouponRejected(
                "per_customer_limit",
                "You have already used this coupon the maximum number of times",
                code=self.code,
            )

        now = now or datetime.now(UTC)
        redemption = self._redemption_for(customer_id)
        if redemption is None:
            self.add_redemptions(CouponRedemption(customer_id=customer_id, usage_count=1, last_used_at=now))
        else:
            redemption.usage_count += 1
            redemption.last_used_at = now
        self.usage_count += 1
        self.updated_at = now

        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                customer_id=str(customer_id),
                usage_count=self.usage_count,
                redeemed_at=now,
            )
        )

    def set_active(self, is_active: bool) -> None:
        if bool(self.is_active) == bool(is_active):
            return
        self.is_active = is_active
        self.updated_at = datetime.now(UTC)
        self.raise_(CouponStatusChanged(coupon_id=str(self.id), is_active=is_active))
