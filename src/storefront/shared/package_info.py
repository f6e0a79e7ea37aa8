"""Package breakdown copied onto cart and order lines."""

import json

from protean.fields import Float, Integer, Text

from storefront.domain import storefront


@storefront.value_object
class PackageInfo:
    total_items_count = Integer(default=0)
    original_total_price = Float(default=0.0)
    savings = Float(default=0.0)
    savings_percentage = Float(default=0.0)
    items = Text()  # JSON array of {product_id, name, quantity, price, image}

    @property
    def components(self) -> list[dict]:
        return json.loads(self.items) if self.items else []

    def read_model(self) -> dict:
        return {
            "total_items_count": self.total_items_count,
            "original_total_price": self.original_total_price,
            "savings": self.savings,
            "savings_percentage": self.savings_percentage,
            "items": self.components,
        }
