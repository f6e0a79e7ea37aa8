"""Product registration and replenishment: commands and handler."""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.stock.ledger import load_product
from storefront.stock.product import Product, ProductStatus


@storefront.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock_quantity = Integer(default=0, min_value=0)
    sku = String(max_length=50)
    category = String(max_length=100)
    image = String(max_length=500)
    status = String(choices=ProductStatus, default=ProductStatus.ACTIVE.value)
    components = Text()  # JSON array of {component_id, quantity}


@storefront.command(part_of="Product")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command_handler(part_of=Product)
class ProductStockHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        components = json.loads(command.components) if command.components else []
        product = Product.create(
            name=command.name,
            price=command.price,
            stock_quantity=command.stock_quantity,
            sku=command.sku,
            category=command.category,
            image=command.image,
            status=command.status,
            components=components,
        )
        if product.is_package:
            product.refresh_package_details({str(c["component_id"]): load_product(c["component_id"]) for c in components})
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(RestockProduct)
    def restock_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.restock(command.quantity, reference="replenishment")
        repo.add(product)
