"""Stock ledger: availability queries and stock movement for cart and order lines.

Lines are ``(product_id, quantity)`` pairs. A package line is expanded into
its components before anything is compared with stock, so a product ordered
on its own and inside a package is checked against its combined demand.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.errors import InsufficientStock
from storefront.stock.product import Product

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Availability:
    ok: bool
    available_quantity: int


def load_product(product_id) -> Product | None:
    """Fetch a product row, or None when it no longer exists."""
    try:
        return current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError:
        return None


def _shelf_quantity(product: Product | None) -> int:
    if product is None or not product.is_active:
        return 0
    return product.stock_quantity


def _sellable_quantity(product: Product | None, products: dict) -> int:
    """How many units of ``product`` could be sold right now."""
    if product is None or not product.is_active:
        return 0
    if not product.is_package:
        return product.stock_quantity
    return min(
        _shelf_quantity(products.get(str(component.component_id))) // component.quantity
        for component in product.components
    )


def _components_of(product: Product) -> dict:
    return {str(c.component_id): load_product(c.component_id) for c in product.components}


def available(product_id, quantity: int = 1) -> Availability:
    """Can ``quantity`` units of the product be sold? Never raises."""
    product = load_product(product_id)
    components = _components_of(product) if product is not None and product.is_package else {}
    sellable = _sellable_quantity(product, components)
    return Availability(ok=sellable >= quantity, available_quantity=sellable)


def _expand(product: Product, quantity: int) -> dict:
    if not product.is_package:
        return {str(product.id): quantity}
    return {str(c.component_id): c.quantity * quantity for c in product.components}


def demand(lines: Iterable[tuple]) -> dict:
    """Total units needed per stock-holding product across all lines."""
    needed = defaultdict(int)
    for product_id, quantity in lines:
        product = load_product(product_id)
        if product is None:
            continue
        for stock_id, units in _expand(product, quantity).items():
            needed[stock_id] += units
    return dict(needed)


def shortages(lines: Iterable[tuple]) -> list[dict]:
    """Lines that cannot be served from current stock, given combined demand.

    Returns one entry per offending line with the units requested and the
    units the line could get on its own.
    """
    lines = list(lines)
    needed = demand(lines)
    stock_rows = {stock_id: load_product(stock_id) for stock_id in needed}
    short = {stock_id for stock_id, units in needed.items() if units > _shelf_quantity(stock_rows[stock_id])}

    rejected = []
    for product_id, quantity in lines:
        product = load_product(product_id)
        if product is None or not product.is_active:
            rejected.append({"product_id": str(product_id), "requested": quantity, "available": 0})
            continue
        if short & set(_expand(product, quantity)):
            components = {sid: stock_rows.get(sid) for sid in _expand(product, 1)}
            rejected.append(
                {
                    "product_id": str(product_id),
                    "name": product.name,
                    "requested": quantity,
                    "available": _sellable_quantity(product, components),
                }
            )
    return rejected


def withdraw(lines: Iterable[tuple], reference: str | None = None) -> None:
    """Take the combined demand of ``lines`` off the shelf.

    Each product is decremented once; a product without enough stock raises
    ``InsufficientStock`` and leaves the caller's unit of work to roll back.
    """
    repo = current_domain.repository_for(Product)
    for stock_id, units in demand(lines).items():
        product = load_product(stock_id)
        if product is None:
            raise InsufficientStock(
                f"Product {stock_id} is no longer available",
                product_id=stock_id,
                available=0,
                requested=units,
            )
        product.withdraw(units, reference=reference)
        repo.add(product)

    logger.info("Stock withdrawn", reference=reference)


def restore(lines: Iterable[tuple], reference: str | None = None) -> None:
    """Put the combined demand of ``lines`` back on the shelf."""
    repo = current_domain.repository_for(Product)
    for stock_id, units in demand(lines).items():
        product = load_product(stock_id)
        if product is None:
            logger.warning("Cannot restock missing product", product_id=stock_id, quantity=units)
            continue
        product.restock(units, reference=reference)
        repo.add(product)

    logger.info("Stock restored", reference=reference)
