"""Product aggregate, seen from the stock side.

Catalog content is owned elsewhere; the storefront reads product rows for
pricing and availability and may only move their stock. A package is a
product whose components reference other products by id. Packages hold no
stock of their own: withdrawing or restoring a package moves its
components.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from storefront.domain import storefront
from storefront.errors import InsufficientStock
from storefront.shared.money import to_cents
from storefront.stock.events import StockRestored, StockWithdrawn


class ProductStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


class ProductType(Enum):
    SINGLE = "single"
    PACKAGE = "package"


@storefront.entity(part_of="Product")
class PackageComponent:
    """A non-owning reference to a constituent product of a package."""

    component_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    name = String(max_length=255)
    price = Float(default=0.0)
    image = String(max_length=500)


@storefront.value_object(part_of="Product")
class PackageDetails:
    total_items_count = Integer(default=0)
    original_total_price = Float(default=0.0)
    savings = Float(default=0.0)
    savings_percentage = Float(default=0.0)


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    category = String(max_length=100)
    price = Float(required=True, min_value=0.0)
    stock_quantity = Integer(default=0, min_value=0)
    image = String(max_length=500)
    status = String(choices=ProductStatus, default=ProductStatus.ACTIVE.value)
    product_type = String(choices=ProductType, default=ProductType.SINGLE.value)
    components = HasMany(PackageComponent)
    package_details = ValueObject(PackageDetails)
    updated_at = DateTime()

    @invariant.post
    def package_must_list_components(self):
        if self.product_type == ProductType.PACKAGE.value and not self.components:
            raise ValidationError({"components": ["A package must contain at least one product"]})

    @classmethod
    def create(
        cls,
        name,
        price,
        stock_quantity=0,
        sku=None,
        category=None,
        image=None,
        status=ProductStatus.ACTIVE.value,
        components=None,
    ):
        """Register a product row. ``components`` turns it into a package.

        Args:
            components: list of dicts with component_id, quantity and
                optionally name, price, image.
        """
        components = components or []
        return cls(
            name=name,
            price=price,
            stock_quantity=stock_quantity,
            sku=sku,
            category=category,
            image=image,
            status=status,
            product_type=ProductType.PACKAGE.value if components else ProductType.SINGLE.value,
            components=[PackageComponent(**component) for component in components],
            updated_at=datetime.now(UTC),
        )

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE.value

    @property
    def is_package(self) -> bool:
        return self.product_type == ProductType.PACKAGE.value

    # -------------------------------------------------------------------
    # Stock movement
    # -------------------------------------------------------------------
    def withdraw(self, quantity: int, reference: str | None = None) -> None:
        """Decrement stock, refusing to go below zero."""
        if self.is_package:
            raise ValidationError({"product_type": ["Package stock is held by its components"]})
        if quantity > self.stock_quantity:
            raise InsufficientStock(
                f"Insufficient stock for {self.name}: {self.stock_quantity} available, {quantity} requested",
                product_id=str(self.id),
                name=self.name,
                available=self.stock_quantity,
                requested=quantity,
            )

        self.stock_quantity -= quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockWithdrawn(
                product_id=str(self.id),
                quantity=quantity,
                remaining=self.stock_quantity,
                reference=reference,
            )
        )

    def restock(self, quantity: int, reference: str | None = None) -> None:
        if quantity <= 0:
            raise ValidationError({"quantity": ["Restock quantity must be positive"]})
        if self.is_package:
            raise ValidationError({"product_type": ["Package stock is held by its components"]})

        self.stock_quantity += quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockRestored(
                product_id=str(self.id),
                quantity=quantity,
                remaining=self.stock_quantity,
                reference=reference,
            )
        )

    # -------------------------------------------------------------------
    # Package breakdown
    # -------------------------------------------------------------------
    def refresh_package_details(self, component_products: dict) -> None:
        """Recompute savings from the live prices of the component products.

        Components whose product row is gone keep their last snapshot but do
        not count toward the original total.
        """
        if not self.is_package:
            return

        original_total = 0.0
        items_count = 0
        for component in self.components:
            product = component_products.get(str(component.component_id))
            if product is None:
                continue
            component.name = product.name
            component.price = product.price
            component.image = product.image
            original_total += product.price * component.quantity
            items_count += component.quantity

        savings = original_total - self.price
        self.package_details = PackageDetails(
            total_items_count=items_count,
            original_total_price=to_cents(original_total),
            savings=to_cents(savings),
            savings_percentage=round(savings / original_total * 100) if original_total > 0 else 0,
        )

    def package_info(self) -> dict | None:
        """Breakdown copied onto cart and order lines."""
        if not self.is_package:
            return None
        details = self.package_details
        return {
            "total_items_count": details.total_items_count if details else 0,
            "original_total_price": details.original_total_price if details else 0.0,
            "savings": details.savings if details else 0.0,
            "savings_percentage": details.savings_percentage if details else 0.0,
            "items": json.dumps(
                [
                    {
                        "product_id": str(component.component_id),
                        "name": component.name,
                        "quantity": component.quantity,
                        "price": component.price,
                        "image": component.image,
                    }
                    for component in self.components
                ]
            ),
        }
