"""Domain events for the Product aggregate's stock."""

from protean.fields import Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class StockWithdrawn:
    """Units left the shelf for an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining = Integer(required=True)
    reference = String(max_length=255)


@storefront.event(part_of="Product")
class StockRestored:
    """Units came back to the shelf (cancellation, return, replenishment)."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining = Integer(required=True)
    reference = String(max_length=255)
