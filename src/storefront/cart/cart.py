"""Shopping Cart aggregate: one mutable cart per customer account.

Lines are validated against live stock on the way in and re-checked on every
read and mutation, so a line's quantity never exceeds what can currently be
sold. Every mutation ends by recomputing the summary.
"""

import json
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.cart import pricing
from storefront.cart.events import (
    CartAvailabilityChanged,
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartShippingSelected,
)
from storefront.domain import storefront
from storefront.errors import InsufficientStock
from storefront.shared.address import Address
from storefront.shared.money import DEFAULT_CURRENCY
from storefront.shared.package_info import PackageInfo


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="ShoppingCart")
class CartSummary:
    items_count = Integer(default=0)
    total_price = Float(default=0.0)
    total_discount = Float(default=0.0)
    shipping_fee = Float(default=0.0)
    tax_amount = Float(default=0.0)
    grand_total = Float(default=0.0)


@storefront.value_object(part_of="ShoppingCart")
class AppliedCoupon:
    """Snapshot of the coupon terms taken when the coupon was applied."""

    coupon_id = Identifier(required=True)
    code = String(required=True, max_length=20)
    discount_type = String(required=True, max_length=20)
    discount_value = Float(default=0.0)
    max_discount_amount = Float()
    minimum_purchase = Float(default=0.0)
    free_shipping = Boolean(default=False)
    calculated_discount = Float(default=0.0)
    restrictions = Text()  # JSON object


@storefront.value_object(part_of="ShoppingCart")
class SelectedShippingFee:
    shipping_fee_id = Identifier(required=True)
    name = String(max_length=100)
    amount = Float(default=0.0)
    free_shipping_threshold = Float()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    name = String(max_length=255)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=0)  # 0 only while unavailable
    image = String(max_length=500)
    category = String(max_length=100)
    product_type = String(max_length=20, default="single")
    package_info = ValueObject(PackageInfo)
    is_available = Boolean(default=True)
    max_quantity = Integer(default=0, min_value=0)
    added_at = DateTime()

    @property
    def subtotal(self) -> float:
        return round(self.price * self.quantity, 2)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    summary = ValueObject(CartSummary)
    coupon = ValueObject(AppliedCoupon)
    selected_shipping = ValueObject(SelectedShippingFee)
    shipping_address = ValueObject(Address)
    notes = String(max_length=500)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def quantities_must_fit_live_stock(self):
        for item in self.items:
            if item.quantity > item.max_quantity:
                raise ValidationError(
                    {"quantity": [f"Quantity {item.quantity} exceeds available stock {item.max_quantity}"]}
                )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            summary=CartSummary(),
            created_at=now,
            updated_at=now,
        )

    def _find(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def _touch(self):
        self.updated_at = datetime.now(UTC)

    @property
    def is_empty(self) -> bool:
        return not any(item.quantity > 0 for item in self.items)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product, quantity: int, available_quantity: int) -> None:
        """Add ``quantity`` of ``product``, merging with an existing line.

        The merged quantity is what gets checked against stock; on refusal
        the error tells the caller how many more units fit.
        """
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = self._find(product.id)
        in_cart = existing.quantity if existing else 0

        if in_cart + quantity > available_quantity:
            if existing:
                message = (
                    f"Cannot add {quantity} more. Only {available_quantity} available "
                    f"and {in_cart} already in cart"
                )
            else:
                message = f"Only {available_quantity} items available"
            raise InsufficientStock(
                message,
                product_id=str(product.id),
                available=available_quantity,
                in_cart=in_cart,
                requested=quantity,
                max_can_add=max(0, available_quantity - in_cart),
            )

        package_info = product.package_info()
        now = datetime.now(UTC)
        if existing:
            with atomic_change(self):
                existing.max_quantity = available_quantity
                existing.is_available = True
                existing.quantity = in_cart + quantity
        else:
            self.add_items(
                CartItem(
                    product_id=str(product.id),
                    name=product.name,
                    price=product.price,
                    quantity=quantity,
                    image=product.image,
                    category=product.category,
                    product_type=product.product_type,
                    package_info=PackageInfo(**package_info) if package_info else None,
                    is_available=True,
                    max_quantity=available_quantity,
                    added_at=now,
                )
            )

        self._touch()
        self.recompute()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(product.id),
                quantity=quantity,
                line_quantity=in_cart + quantity,
            )
        )

    def update_item_quantity(self, product_id, quantity: int, available_quantity: int) -> None:
        item = self._find(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Item not found in cart"]})
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if quantity > available_quantity:
            raise InsufficientStock(
                f"Only {available_quantity} items available",
                product_id=str(product_id),
                available=available_quantity,
                in_cart=item.quantity,
                requested=quantity,
                max_can_add=max(0, available_quantity - item.quantity),
            )

        previous_quantity = item.quantity
        with atomic_change(self):
            item.max_quantity = available_quantity
            item.is_available = available_quantity > 0
            item.quantity = quantity

        self._touch()
        self.recompute()

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id) -> None:
        item = self._find(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Item not found in cart"]})

        self.remove_items(item)
        if not self.items:
            self.coupon = None
        self._touch()
        self.recompute()

        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))

    def clear(self) -> None:
        """Drop every line and any applied coupon."""
        for item in list(self.items):
            self.remove_items(item)
        self.coupon = None
        self._touch()
        self.recompute()

        self.raise_(CartCleared(cart_id=str(self.id), customer_id=str(self.customer_id)))

    # -------------------------------------------------------------------
    # Coupon
    # -------------------------------------------------------------------
    def apply_coupon(self, coupon, discount_info) -> None:
        """Store a snapshot of an already validated coupon."""
        if self.is_empty:
            raise ValidationError({"cart": ["Cannot apply a coupon to an empty cart"]})

        self.coupon = AppliedCoupon(
            coupon_id=str(coupon.id),
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            max_discount_amount=coupon.max_discount_amount,
            minimum_purchase=coupon.minimum_purchase,
            free_shipping=discount_info.free_shipping,
            calculated_discount=discount_info.discount,
            restrictions=json.dumps(discount_info.restrictions.to_dict()),
        )
        self._touch()
        self.recompute()

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=coupon.code,
                discount=self.summary.total_discount,
            )
        )

    def remove_coupon(self) -> None:
        if self.coupon is None:
            raise ValidationError({"coupon": ["No coupon applied to this cart"]})

        code = self.coupon.code
        self.coupon = None
        self._touch()
        self.recompute()

        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=code))

    # -------------------------------------------------------------------
    # Checkout preferences
    # -------------------------------------------------------------------
    def select_shipping(self, shipping_fee) -> None:
        if not shipping_fee.is_active:
            raise ValidationError({"shipping_fee_id": ["Shipping option is not available"]})

        self.selected_shipping = SelectedShippingFee(
            shipping_fee_id=str(shipping_fee.id),
            name=shipping_fee.name,
            amount=shipping_fee.fee,
            free_shipping_threshold=shipping_fee.free_shipping_threshold,
        )
        self._touch()
        self.recompute()

        self.raise_(
            CartShippingSelected(
                cart_id=str(self.id),
                shipping_fee_id=str(shipping_fee.id),
                amount=self.summary.shipping_fee,
            )
        )

    def update_shipping_address(self, **address) -> None:
        self.shipping_address = Address(**address)
        self._touch()

    def update_notes(self, notes: str | None) -> None:
        self.notes = notes
        self._touch()

    # -------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------
    def refresh_availability(self, availabilities: dict) -> list[dict]:
        """Align every line with live stock.

        Args:
            availabilities: product id to sellable units; a missing key or
                ``None`` means the product is gone or inactive.

        Returns the lines that changed.
        """
        changes = []
        with atomic_change(self):
            for item in self.items:
                available_quantity = availabilities.get(str(item.product_id)) or 0
                quantity = min(item.quantity, available_quantity)
                is_available = available_quantity > 0
                if (item.quantity, item.max_quantity, item.is_available) == (
                    quantity,
                    available_quantity,
                    is_available,
                ):
                    continue
                item.quantity = quantity
                item.max_quantity = available_quantity
                item.is_available = is_available
                changes.append(
                    {
                        "product_id": str(item.product_id),
                        "quantity": quantity,
                        "max_quantity": available_quantity,
                        "is_available": is_available,
                    }
                )

        self.recompute()
        if changes:
            self._touch()
            self.raise_(CartAvailabilityChanged(cart_id=str(self.id), changes=json.dumps(changes)))
        return changes

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def recompute(self) -> None:
        breakdown = pricing.recompute(self)
        self.summary = CartSummary(**breakdown.to_dict())
        if self.coupon is not None and self.coupon.calculated_discount != breakdown.total_discount:
            self.coupon = AppliedCoupon(**{**self.coupon.to_dict(), "calculated_discount": breakdown.total_discount})

    def read_model(self) -> dict:
        """Read model handed to the outer layers."""
        summary = self.summary or CartSummary()
        return {
            "id": str(self.id),
            "customer_id": str(self.customer_id),
            "items": [
                {
                    "product_id": str(item.product_id),
                    "name": item.name,
                    "price": item.price,
                    "quantity": item.quantity,
                    "subtotal": item.subtotal,
                    "image": item.image,
                    "category": item.category,
                    "product_type": item.product_type,
                    "package_info": item.package_info.read_model() if item.package_info else None,
                    "is_available": item.is_available,
                    "max_quantity": item.max_quantity,
                }
                for item in self.items
            ],
            "summary": {
                "items_count": summary.items_count,
                "total_price": summary.total_price,
                "total_discount": summary.total_discount,
                "shipping_fee": summary.shipping_fee,
                "tax_amount": summary.tax_amount,
                "grand_total": summary.grand_total,
            },
            "coupon": (
                {
                    "code": self.coupon.code,
                    "discount_type": self.coupon.discount_type,
                    "discount_value": self.coupon.discount_value,
                    "calculated_discount": self.coupon.calculated_discount,
                    "free_shipping": self.coupon.free_shipping,
                }
                if self.coupon
                else None
            ),
            "selected_shipping_fee": (
                {
                    "id": str(self.selected_shipping.shipping_fee_id),
                    "name": self.selected_shipping.name,
                    "amount": self.selected_shipping.amount,
                    "free_shipping_threshold": self.selected_shipping.free_shipping_threshold,
                }
                if self.selected_shipping
                else None
            ),
            "shipping_address": self.shipping_address.to_dict() if self.shipping_address else None,
            "notes": self.notes,
            "currency": self.currency,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
