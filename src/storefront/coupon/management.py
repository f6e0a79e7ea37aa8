"""Coupon management: commands and handler."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon
from storefront.coupon.engine import find_coupon
from storefront.domain import storefront


@storefront.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=20)
    name = String(required=True, max_length=100)
    description = String(max_length=500)
    discount_type = String(required=True, max_length=20)
    discount_value = Float(default=0.0)
    max_discount_amount = Float()
    minimum_purchase = Float(default=0.0)
    minimum_items = Integer(default=0)
    usage_limit_total = Integer()
    usage_limit_per_customer = Integer(default=1)
    restrictions = Text()  # JSON object
    new_customers_only = Boolean(default=False)
    first_order_only = Boolean(default=False)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    is_active = Boolean(default=True)


@storefront.command(part_of="Coupon")
class ToggleCouponStatus:
    coupon_id = Identifier(required=True)
    is_active = Boolean(required=True)


@storefront.command_handler(part_of=Coupon)
class CouponManagementHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        if find_coupon(command.code) is not None:
            raise ValidationError({"code": ["Coupon code already exists"]})

        coupon = Coupon.create(
            code=command.code,
            name=command.name,
            description=command.description,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            max_discount_amount=command.max_discount_amount,
            minimum_purchase=command.minimum_purchase,
            minimum_items=command.minimum_items,
            usage_limit_total=command.usage_limit_total,
            usage_limit_per_customer=command.usage_limit_per_customer,
            restrictions=json.loads(command.restrictions) if command.restrictions else None,
            new_customers_only=command.new_customers_only,
            first_order_only=command.first_order_only,
            start_date=command.start_date,
            end_date=command.end_date,
            is_active=command.is_active,
        )
        current_domain.repository_for(Coupon).add(coupon)
        return str(coupon.id)

    @handle(ToggleCouponStatus)
    def toggle_coupon_status(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.set_active(command.is_active)
        repo.add(coupon)
