"""Checkout preferences kept on the cart: commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.lookup import get_cart, get_or_create_cart, refresh
from storefront.domain import storefront
from storefront.shipping.shipping_fee import ShippingFee


@storefront.command(part_of="ShoppingCart")
class SelectShippingFee:
    customer_id = Identifier(required=True)
    shipping_fee_id = Identifier(required=True)


@storefront.command(part_of="ShoppingCart")
class UpdateShippingAddress:
    customer_id = Identifier(required=True)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@storefront.command(part_of="ShoppingCart")
class UpdateCartNotes:
    customer_id = Identifier(required=True)
    notes = String(max_length=500)


@storefront.command_handler(part_of=ShoppingCart)
class CartPreferencesHandler:
    @handle(SelectShippingFee)
    def select_shipping_fee(self, command):
        shipping_fee = current_domain.repository_for(ShippingFee).get(command.shipping_fee_id)

        repo = current_domain.repository_for(ShoppingCart)
        cart = get_cart(command.customer_id)
        refresh(cart)
        cart.select_shipping(shipping_fee)
        repo.add(cart)

    @handle(UpdateShippingAddress)
    def update_shipping_address(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = get_or_create_cart(command.customer_id)
        refresh(cart)
        cart.update_shipping_address(
            street=command.street,
            city=command.city,
            state=command.state,
            zip_code=command.zip_code,
            country=command.country,
        )
        repo.add(cart)

    @handle(UpdateCartNotes)
    def update_cart_notes(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = get_or_create_cart(command.customer_id)
        refresh(cart)
        cart.update_notes(command.notes)
        repo.add(cart)
