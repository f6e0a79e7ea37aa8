"""Cart refresh and reorder: commands and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.lookup import get_cart, get_or_create_cart, refresh
from storefront.domain import storefront
from storefront.errors import InsufficientStock
from storefront.stock import ledger

logger = structlog.get_logger(__name__)


@storefront.command(part_of="ShoppingCart")
class RefreshCart:
    """Re-check the cart against live stock; runs on every cart read."""

    customer_id = Identifier(required=True)


@storefront.command(part_of="ShoppingCart")
class Reorder:
    """Copy the still-sellable lines of a past order back into the cart."""

    customer_id = Identifier(required=True)
    order_id = Identifier(required=True)


@storefront.command_handler(part_of=ShoppingCart)
class CartMaintenanceHandler:
    @handle(RefreshCart)
    def refresh_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = get_cart(command.customer_id)
        changes = refresh(cart)
        repo.add(cart)
        if changes:
            logger.info("Cart lines adjusted to live stock", customer_id=str(command.customer_id), changes=changes)
        return changes

    @handle(Reorder)
    def reorder(self, command):
        """Returns the product ids that could not be added back."""
        from storefront.order.order import Order

        order = current_domain.repository_for(Order).get(command.order_id)
        if str(order.customer_id) != str(command.customer_id):
            # Someone else's order reads as missing
            raise ObjectNotFoundError(f"Order `{command.order_id}` does not exist")

        repo = current_domain.repository_for(ShoppingCart)
        cart = get_or_create_cart(command.customer_id)
        refresh(cart)

        skipped = []
        for item in order.items:
            product = ledger.load_product(item.product_id)
            if product is None or not product.is_active:
                skipped.append(str(item.product_id))
                continue
            try:
                cart.add_item(
                    product=product,
                    quantity=item.quantity,
                    available_quantity=ledger.available(product.id).available_quantity,
                )
            except InsufficientStock as exc:
                logger.warning("Reorder line skipped", product_id=str(item.product_id), details=exc.details)
                skipped.append(str(item.product_id))

        repo.add(cart)
        logger.info("Order items added back to cart", order_id=str(order.id), skipped=skipped)
        return skipped
