"""Cart coupon handling: commands and handler.

The coupon is validated against the refreshed cart before anything is
stored, so a rejected code leaves the cart exactly as it was.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.lookup import get_cart, refresh
from storefront.coupon import engine
from storefront.domain import storefront


@storefront.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    customer_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=20)


@storefront.command(part_of="ShoppingCart")
class RemoveCouponFromCart:
    customer_id = Identifier(required=True)


@storefront.command_handler(part_of=ShoppingCart)
class CartCouponHandler:
    @handle(ApplyCouponToCart)
    def apply_coupon_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = get_cart(command.customer_id)
        refresh(cart)

        discount_info = engine.validate(
            code=command.coupon_code,
            customer_id=command.customer_id,
            cart_subtotal=cart.summary.total_price,
            cart_items=cart.items,
        )
        cart.apply_coupon(engine.find_coupon(command.coupon_code), discount_info)
        repo.add(cart)
        return discount_info.discount

    @handle(RemoveCouponFromCart)
    def remove_coupon_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = get_cart(command.customer_id)
        refresh(cart)
        cart.remove_coupon()
        repo.add(cart)
