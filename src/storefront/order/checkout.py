"""Checkout: turns a customer's cart into an order and a pending payment.

Every step runs inside the command handler's unit of work. Stock shortfalls
are collected for the whole cart before anything moves, and any failure
after that rolls back the coupon redemption, stock withdrawals, order and
payment together.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.lookup import find_cart, refresh
from storefront.coupon import engine as coupon_engine
from storefront.coupon.coupon import Coupon
from storefront.domain import storefront
from storefront.errors import InsufficientStock, InternalError
from storefront.order.order import Order
from storefront.payment.payment import Payment
from storefront.stock import ledger

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class Checkout:
    customer_id = Identifier(required=True)
    email = String(max_length=254)
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    phone = String(max_length=30)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    billing_street = String(max_length=255)
    billing_city = String(max_length=100)
    billing_state = String(max_length=100)
    billing_zip_code = String(max_length=20)
    billing_country = String(max_length=100)
    payment_method = String(required=True, max_length=50)
    shipping_method = String(max_length=100)
    notes = String(max_length=500)


def _shipping_address(command) -> dict:
    return {
        "street": command.street,
        "city": command.city,
        "state": command.state,
        "zip_code": command.zip_code,
        "country": command.country,
    }


def _billing_address(command) -> dict | None:
    if not command.billing_street:
        return None
    return {
        "street": command.billing_street,
        "city": command.billing_city,
        "state": command.billing_state,
        "zip_code": command.billing_zip_code,
        "country": command.billing_country,
    }


def _sku_of(product_id) -> str | None:
    product = ledger.load_product(product_id)
    return product.sku if product else None


def _order_lines(cart: ShoppingCart) -> list[dict]:
    return [
        {
            "product_id": str(item.product_id),
            "name": item.name,
            "sku": _sku_of(item.product_id),
            "category": item.category,
            "price": item.price,
            "quantity": item.quantity,
            "subtotal": item.subtotal,
            "image": item.image,
            "product_type": item.product_type,
            "package_info": item.package_info.to_dict() if item.package_info else None,
        }
        for item in cart.items
    ]


def _redeem_coupon(cart: ShoppingCart, customer_id, now) -> dict | None:
    """Re-validate the applied coupon against the final cart and consume one use."""
    if cart.coupon is None:
        return None

    coupon = current_domain.repository_for(Coupon).get(str(cart.coupon.coupon_id))
    coupon_engine.evaluate(coupon, customer_id, cart.summary.total_price, cart.items, now)
    coupon.redeem(customer_id, now=now)
    current_domain.repository_for(Coupon).add(coupon)

    return {
        "code": coupon.code,
        "discount": cart.summary.total_discount,
        "discount_type": coupon.discount_type,
    }


@storefront.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(Checkout)
    def checkout(self, command):
        customer_id = str(command.customer_id)
        cart = find_cart(customer_id)
        if cart is None:
            raise ObjectNotFoundError(f"Cart for customer `{customer_id}` does not exist")

        refresh(cart)
        if not cart.items:
            raise ValidationError({"cart": ["Cart is empty"]})

        unavailable = [
            {"product_id": str(item.product_id), "name": item.name, "requested": item.quantity, "available": 0}
            for item in cart.items
            if not item.is_available or item.quantity == 0
        ]
        lines = [(str(item.product_id), item.quantity) for item in cart.items if item.quantity > 0]
        out_of_stock = unavailable + ledger.shortages(lines)
        if out_of_stock:
            logger.info("Checkout rejected: insufficient stock", customer_id=customer_id, items=out_of_stock)
            raise InsufficientStock("Some items in your cart are out of stock", items=out_of_stock)

        try:
            return self._place_order(cart, command, lines)
        except (ValidationError, ObjectNotFoundError):
            raise
        except Exception as exc:
            logger.exception("Checkout failed", customer_id=customer_id)
            raise InternalError("checkout", exc) from exc

    def _place_order(self, cart, command, lines):
        customer_id = str(command.customer_id)
        now = datetime.now(UTC)

        coupon = _redeem_coupon(cart, customer_id, now)
        summary = cart.summary

        order = Order.place(
            customer_id=customer_id,
            customer={
                "email": command.email,
                "first_name": command.first_name,
                "last_name": command.last_name,
                "phone": command.phone,
            },
            items=_order_lines(cart),
            totals={
                "subtotal": summary.total_price,
                "tax": summary.tax_amount,
                "shipping": summary.shipping_fee,
                "discount": summary.total_discount,
                "total": summary.grand_total,
                "currency": cart.currency,
            },
            shipping_address=_shipping_address(command),
            billing_address=_billing_address(command),
            payment_method=command.payment_method,
            shipping_method=command.shipping_method
            or (cart.selected_shipping.name if cart.selected_shipping else None),
            coupon=coupon,
            customer_notes=command.notes or cart.notes,
        )

        ledger.withdraw(lines, reference=order.order_number)

        payment = Payment.create(
            order_id=str(order.id),
            customer_id=customer_id,
            amount=order.totals.total,
            payment_method=command.payment_method,
            currency=cart.currency,
        )
        order.link_payment(str(payment.id))

        cart.clear()

        current_domain.repository_for(Order).add(order)
        current_domain.repository_for(Payment).add(payment)
        current_domain.repository_for(ShoppingCart).add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=customer_id,
            total=order.totals.total,
            coupon=coupon["code"] if coupon else None,
        )
        return str(order.id)

