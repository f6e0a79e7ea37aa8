"""Cart retrieval by customer account, and the live-stock refresh every read runs."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.stock import ledger


def find_cart(customer_id) -> ShoppingCart | None:
    carts = current_domain.repository_for(ShoppingCart)._dao.query.filter(customer_id=str(customer_id)).all().items
    return carts[0] if carts else None


def get_cart(customer_id) -> ShoppingCart:
    cart = find_cart(customer_id)
    if cart is None:
        raise ObjectNotFoundError(f"Cart for customer `{customer_id}` does not exist")
    return cart


def get_or_create_cart(customer_id) -> ShoppingCart:
    """Carts come into existence on the first write for an account."""
    return find_cart(customer_id) or ShoppingCart.create(customer_id=str(customer_id))


def refresh(cart: ShoppingCart) -> list[dict]:
    """Re-check every line against live stock and recompute the summary."""
    availabilities = {
        str(item.product_id): ledger.available(item.product_id).available_quantity for item in cart.items
    }
    return cart.refresh_availability(availabilities)
