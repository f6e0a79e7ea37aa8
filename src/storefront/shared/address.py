"""Postal address value object, shared by carts and orders."""

from protean.fields import String

from storefront.domain import storefront


@storefront.value_object
class Address:
    """A delivery or billing address.

    Once recorded on an Order the address is a snapshot: later edits on the
    cart or the customer profile do not reach it.
    """

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
