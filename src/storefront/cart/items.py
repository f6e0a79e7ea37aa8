"""Cart item management: commands and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.lookup import get_cart, get_or_create_cart, refresh
from storefront.domain import storefront
from storefront.stock import ledger

logger = structlog.get_logger(__name__)


@storefront.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="ShoppingCart")
class UpdateCartItemQuantity:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier(required=True)


@storefront.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = ledger.load_product(command.product_id)
        if product is None or not product.is_active:
            raise ObjectNotFoundError(f"Product `{command.product_id}` is not available")

        repo = current_domain.repository_for(ShoppingCart)
        cart = get_or_create_cart(command.customer_id)
        refresh(cart)
        cart.add_item(
            product=product,
            quantity=command.quantity,
            available_quantity=ledger.available(product.id).available_quantity,
        )
        repo.add(cart)

        logger.info(
            "Item added to cart",
            customer_id=str(command.customer_id),
            product_id=str(command.product_id),
            quantity=command.quantity,
        )
        return str(cart.id)

    @handle(UpdateCartItemQuantity)
    def update_cart_item_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = get_cart(command.customer_id)
        refresh(cart)
        cart.update_item_quantity(
            product_id=command.product_id,
            quantity=command.quantity,
            available_quantity=ledger.available(command.product_id).available_quantity,
        )
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = get_cart(command.customer_id)
        refresh(cart)
        cart.remove_item(product_id=command.product_id)
        repo.add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = get_cart(command.customer_id)
        if not cart.items and cart.coupon is None:
            raise ValidationError({"cart": ["Cart is already empty"]})
        cart.clear()
        repo.add(cart)
