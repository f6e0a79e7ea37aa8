"""FastAPI routes for the storefront: carts, orders, payments and coupons."""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddressSchema,
    AddToCartRequest,
    ApplyCouponRequest,
    AvailabilityResponse,
    CancelOrderRequest,
    CapturePaymentRequest,
    CartNotesRequest,
    CartResponse,
    CheckoutRequest,
    CouponIdResponse,
    CouponStatusRequest,
    CreateCouponRequest,
    CreateShippingFeeRequest,
    DiscountResponse,
    OrderIdResponse,
    OrderNoteRequest,
    OrderResponse,
    PaymentResponse,
    ProductIdResponse,
    RefundRequest,
    RegisterProductRequest,
    ReorderResponse,
    RestockRequest,
    SelectShippingRequest,
    ShippingFeeIdResponse,
    StatusResponse,
    TransactionIdResponse,
    TransactionOutcomeRequest,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    ValidateCouponRequest,
)
from storefront.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from storefront.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartItemQuantity
from storefront.cart.lookup import get_cart
from storefront.cart.management import RefreshCart, Reorder
from storefront.cart.preferences import SelectShippingFee, UpdateCartNotes, UpdateShippingAddress
from storefront.coupon import engine as coupon_engine
from storefront.coupon.management import CreateCoupon, ToggleCouponStatus
from storefront.order.checkout import Checkout
from storefront.order.lifecycle import AddOrderNote, CancelOrder, DeleteOrder, UpdateOrderStatus, load_order
from storefront.order.order import Order
from storefront.payment.capture import CapturePayment, RecordTransactionOutcome, RetryPayment
from storefront.payment.payment import Payment
from storefront.payment.refunds import RefundPayment
from storefront.shipping.management import CreateShippingFee
from storefront.stock import ledger
from storefront.stock.management import RegisterProduct, RestockProduct


def _cart_response(customer_id: str, adjusted_items=None) -> CartResponse:
    cart = get_cart(customer_id)
    return CartResponse(cart=cart.read_model(), adjusted_items=adjusted_items or [])


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(
        name=body.name,
        price=body.price,
        stock_quantity=body.stock_quantity,
        sku=body.sku,
        category=body.category,
        image=body.image,
        status=body.status,
        components=json.dumps([c.model_dump() for c in body.components]) if body.components else None,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.post("/{product_id}/restock", response_model=StatusResponse)
async def restock_product(product_id: str, body: RestockRequest) -> StatusResponse:
    command = RestockProduct(product_id=product_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@product_router.get("/{product_id}/availability", response_model=AvailabilityResponse)
async def product_availability(product_id: str, quantity: int = 1) -> AvailabilityResponse:
    result = ledger.available(product_id, quantity)
    return AvailabilityResponse(ok=result.ok, available_quantity=result.available_quantity)


# ---------------------------------------------------------------------------
# Shipping Fee Router
# ---------------------------------------------------------------------------
shipping_fee_router = APIRouter(prefix="/shipping-fees", tags=["shipping"])


@shipping_fee_router.post("", status_code=201, response_model=ShippingFeeIdResponse)
async def create_shipping_fee(body: CreateShippingFeeRequest) -> ShippingFeeIdResponse:
    command = CreateShippingFee(
        name=body.name,
        fee=body.fee,
        free_shipping_threshold=body.free_shipping_threshold,
        is_active=body.is_active,
    )
    result = current_domain.process(command, asynchronous=False)
    return ShippingFeeIdResponse(shipping_fee_id=result)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{customer_id}", response_model=CartResponse)
async def get_customer_cart(customer_id: str) -> CartResponse:
    changes = current_domain.process(RefreshCart(customer_id=customer_id), asynchronous=False)
    return _cart_response(customer_id, changes)


@cart_router.post("/{customer_id}/items", response_model=CartResponse)
async def add_cart_item(customer_id: str, body: AddToCartRequest) -> CartResponse:
    command = AddToCart(
        customer_id=customer_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return _cart_response(customer_id)


@cart_router.put("/{customer_id}/items/{product_id}", response_model=CartResponse)
async def update_cart_item(customer_id: str, product_id: str, body: UpdateCartItemRequest) -> CartResponse:
    command = UpdateCartItemQuantity(
        customer_id=customer_id,
        product_id=product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return _cart_response(customer_id)


@cart_router.delete("/{customer_id}/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(customer_id: str, product_id: str) -> CartResponse:
    command = RemoveFromCart(customer_id=customer_id, product_id=product_id)
    current_domain.process(command, asynchronous=False)
    return _cart_response(customer_id)


@cart_router.delete("/{customer_id}", response_model=CartResponse)
async def clear_cart(customer_id: str) -> CartResponse:
    current_domain.process(ClearCart(customer_id=customer_id), asynchronous=False)
    return _cart_response(customer_id)


@cart_router.post("/{customer_id}/coupon", response_model=CartResponse)
async def apply_cart_coupon(customer_id: str, body: ApplyCouponRequest) -> CartResponse:
    command = ApplyCouponToCart(customer_id=customer_id, coupon_code=body.coupon_code)
    current_domain.process(command, asynchronous=False)
    return _cart_response(customer_id)


@cart_router.delete("/{customer_id}/coupon", response_model=CartResponse)
async def remove_cart_coupon(customer_id: str) -> CartResponse:
    current_domain.process(RemoveCouponFromCart(customer_id=customer_id), asynchronous=False)
    return _cart_response(customer_id)


@cart_router.put("/{customer_id}/shipping", response_model=CartResponse)
async def select_cart_shipping(customer_id: str, body: SelectShippingRequest) -> CartResponse:
    command = SelectShippingFee(customer_id=customer_id, shipping_fee_id=body.shipping_fee_id)
    current_domain.process(command, asynchronous=False)
    return _cart_response(customer_id)


@cart_router.put("/{customer_id}/address", response_model=CartResponse)
async def update_cart_address(customer_id: str, body: AddressSchema) -> CartResponse:
    command = UpdateShippingAddress(customer_id=customer_id, **body.model_dump())
    current_domain.process(command, asynchronous=False)
    return _cart_response(customer_id)


@cart_router.put("/{customer_id}/notes", response_model=CartResponse)
async def update_cart_notes(customer_id: str, body: CartNotesRequest) -> CartResponse:
    command = UpdateCartNotes(customer_id=customer_id, notes=body.notes)
    current_domain.process(command, asynchronous=False)
    return _cart_response(customer_id)


@cart_router.post("/{customer_id}/checkout", status_code=201, response_model=OrderIdResponse)
async def checkout(customer_id: str, body: CheckoutRequest) -> OrderIdResponse:
    billing = body.billing_address
    command = Checkout(
        customer_id=customer_id,
        email=body.customer.email,
        first_name=body.customer.first_name,
        last_name=body.customer.last_name,
        phone=body.customer.phone,
        street=body.shipping_address.street,
        city=body.shipping_address.city,
        state=body.shipping_address.state,
        zip_code=body.shipping_address.zip_code,
        country=body.shipping_address.country,
        billing_street=billing.street if billing else None,
        billing_city=billing.city if billing else None,
        billing_state=billing.state if billing else None,
        billing_zip_code=billing.zip_code if billing else None,
        billing_country=billing.country if billing else None,
        payment_method=body.payment_method,
        shipping_method=body.shipping_method,
        notes=body.notes,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@cart_router.post("/{customer_id}/reorder/{order_id}", response_model=ReorderResponse)
async def reorder(customer_id: str, order_id: str) -> ReorderResponse:
    command = Reorder(customer_id=customer_id, order_id=order_id)
    skipped = current_domain.process(command, asynchronous=False)
    cart = get_cart(customer_id)
    return ReorderResponse(cart=cart.read_model(), skipped_product_ids=skipped or [])


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, customer_id: str | None = None) -> OrderResponse:
    order = load_order(order_id, customer_id=customer_id)
    return OrderResponse(order=order.read_model(include_private_notes=customer_id is None))


@order_router.get("", response_model=list[OrderResponse])
async def list_customer_orders(customer_id: str) -> list[OrderResponse]:
    orders = current_domain.repository_for(Order)._dao.query.filter(customer_id=customer_id).all().items
    return [OrderResponse(order=order.read_model()) for order in orders if not order.is_deleted]


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> StatusResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        changed_by=body.changed_by,
        reason=body.reason,
        tracking_number=body.tracking_number,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.post("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(order_id=order_id, customer_id=body.customer_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.delete("/{order_id}", response_model=StatusResponse)
async def delete_order(order_id: str, deleted_by: str | None = None) -> StatusResponse:
    current_domain.process(DeleteOrder(order_id=order_id, deleted_by=deleted_by), asynchronous=False)
    return StatusResponse()


@order_router.post("/{order_id}/notes", status_code=201, response_model=StatusResponse)
async def add_order_note(order_id: str, body: OrderNoteRequest) -> StatusResponse:
    command = AddOrderNote(
        order_id=order_id,
        content=body.content,
        is_private=body.is_private,
        created_by=body.created_by,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: str) -> PaymentResponse:
    payment = current_domain.repository_for(Payment).get(payment_id)
    return PaymentResponse(payment=payment.read_model())


@payment_router.post("/{payment_id}/capture", response_model=TransactionIdResponse)
async def capture_payment(payment_id: str, body: CapturePaymentRequest) -> TransactionIdResponse:
    command = CapturePayment(
        payment_id=payment_id,
        succeeded=body.succeeded,
        gateway_reference=body.gateway_reference,
        failure_reason=body.failure_reason,
    )
    result = current_domain.process(command, asynchronous=False)
    return TransactionIdResponse(transaction_id=result)


@payment_router.post("/{payment_id}/retry", response_model=StatusResponse)
async def retry_payment(payment_id: str) -> StatusResponse:
    current_domain.process(RetryPayment(payment_id=payment_id), asynchronous=False)
    return StatusResponse()


@payment_router.post("/{payment_id}/refunds", status_code=201, response_model=TransactionIdResponse)
async def refund_payment(payment_id: str, body: RefundRequest) -> TransactionIdResponse:
    command = RefundPayment(
        payment_id=payment_id,
        amount=body.amount,
        reason=body.reason,
        processed_by=body.processed_by,
    )
    result = current_domain.process(command, asynchronous=False)
    return TransactionIdResponse(transaction_id=result)


@payment_router.put("/{payment_id}/transactions/{transaction_id}", response_model=StatusResponse)
async def record_transaction_outcome(
    payment_id: str, transaction_id: str, body: TransactionOutcomeRequest
) -> StatusResponse:
    command = RecordTransactionOutcome(
        payment_id=payment_id,
        transaction_id=transaction_id,
        status=body.status,
        gateway_reference=body.gateway_reference,
        reason=body.reason,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponIdResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponIdResponse:
    command = CreateCoupon(
        code=body.code,
        name=body.name,
        description=body.description,
        discount_type=body.discount_type,
        discount_value=body.discount_value,
        max_discount_amount=body.max_discount_amount,
        minimum_purchase=body.minimum_purchase,
        minimum_items=body.minimum_items,
        usage_limit_total=body.usage_limit_total,
        usage_limit_per_customer=body.usage_limit_per_customer,
        restrictions=json.dumps(body.restrictions.model_dump()),
        new_customers_only=body.new_customers_only,
        first_order_only=body.first_order_only,
        start_date=body.start_date,
        end_date=body.end_date,
        is_active=body.is_active,
    )
    result = current_domain.process(command, asynchronous=False)
    return CouponIdResponse(coupon_id=result)


@coupon_router.post("/validate", response_model=DiscountResponse)
async def validate_coupon(body: ValidateCouponRequest) -> DiscountResponse:
    """Preview a coupon against the customer's current cart without applying it."""
    cart = get_cart(body.customer_id)
    info = coupon_engine.validate(body.code, body.customer_id, cart.summary.total_price, cart.items)
    return DiscountResponse(code=body.code.strip().upper(), discount=info.discount, free_shipping=info.free_shipping)


@coupon_router.put("/{coupon_id}/status", response_model=StatusResponse)
async def toggle_coupon_status(coupon_id: str, body: CouponStatusRequest) -> StatusResponse:
    current_domain.process(ToggleCouponStatus(coupon_id=coupon_id, is_active=body.is_active), asynchronous=False)
    return StatusResponse()
