"""Shipping fee management: command and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.shipping.shipping_fee import ShippingFee


@storefront.command(part_of="ShippingFee")
class CreateShippingFee:
    name = String(required=True, max_length=100)
    fee = Float(required=True, min_value=0.0)
    free_shipping_threshold = Float()
    is_active = Boolean(default=True)


@storefront.command_handler(part_of=ShippingFee)
class ShippingFeeHandler:
    @handle(CreateShippingFee)
    def create_shipping_fee(self, command):
        repo = current_domain.repository_for(ShippingFee)
        if repo._dao.query.filter(name=command.name.strip()).all().items:
            raise ValidationError({"name": ["A shipping fee with this name already exists"]})

        shipping_fee = ShippingFee.create(
            name=command.name,
            fee=command.fee,
            free_shipping_threshold=command.free_shipping_threshold,
            is_active=command.is_active,
        )
        repo.add(shipping_fee)
        return str(shipping_fee.id)
