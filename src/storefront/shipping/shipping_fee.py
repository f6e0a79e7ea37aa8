"""ShippingFee aggregate: a flat, location-based delivery charge."""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, String

from storefront.domain import storefront


@storefront.aggregate
class ShippingFee:
    name = String(required=True, max_length=100)
    fee = Float(required=True, min_value=0.0)
    free_shipping_threshold = Float()  # None disables free shipping by amount
    is_active = Boolean(default=True)
    updated_at = DateTime()

    @invariant.post
    def threshold_must_be_positive(self):
        if self.free_shipping_threshold is not None and self.free_shipping_threshold <= 0:
            raise ValidationError({"free_shipping_threshold": ["Threshold must be greater than zero"]})

    @classmethod
    def create(cls, name, fee, free_shipping_threshold=None, is_active=True):
        return cls(
            name=name.strip(),
            fee=fee,
            free_shipping_threshold=free_shipping_threshold,
            is_active=is_active,
            updated_at=datetime.now(UTC),
        )
