"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Float, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart, or its line grew."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartItemQuantityUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.event(part_of="ShoppingCart")
class CartCleared:
    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@storefront.event(part_of="ShoppingCart")
class CartCouponApplied:
    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=20)
    discount = Float(required=True)


@storefront.event(part_of="ShoppingCart")
class CartCouponRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=20)


@storefront.event(part_of="ShoppingCart")
class CartShippingSelected:
    __version__ = 1

    cart_id = Identifier(required=True)
    shipping_fee_id = Identifier(required=True)
    amount = Float(required=True)


@storefront.event(part_of="ShoppingCart")
class CartAvailabilityChanged:
    """Live stock changed under one or more cart lines."""

    __version__ = 1

    cart_id = Identifier(required=True)
    changes = Text(required=True)  # JSON array of {product_id, quantity, max_quantity, is_available}
