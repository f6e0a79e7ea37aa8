"""Pydantic request/response schemas for the storefront API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str
    city: str
    state: str | None = None
    zip_code: str
    country: str


class CustomerSchema(BaseModel):
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
class PackageComponentSchema(BaseModel):
    component_id: str
    quantity: int = Field(ge=1, default=1)


class RegisterProductRequest(BaseModel):
    name: str
    price: float = Field(ge=0)
    stock_quantity: int = Field(ge=0, default=0)
    sku: str | None = None
    category: str | None = None
    image: str | None = None
    status: str = "active"
    components: list[PackageComponentSchema] = Field(default_factory=list)


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)


class ProductIdResponse(BaseModel):
    product_id: str


class AvailabilityResponse(BaseModel):
    ok: bool
    available_quantity: int


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "quantity": 2,
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=1)


class ApplyCouponRequest(BaseModel):
    coupon_code: str = Field(min_length=1, max_length=20)


class SelectShippingRequest(BaseModel):
    shipping_fee_id: str


class CartNotesRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=500)


class CheckoutRequest(BaseModel):
    customer: CustomerSchema = Field(default_factory=CustomerSchema)
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment_method: str
    shipping_method: str | None = None
    notes: str | None = Field(default=None, max_length=500)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer": {"email": "jane@example.com", "first_name": "Jane", "last_name": "Doe"},
                    "shipping_address": {
                        "street": "123 Main St",
                        "city": "Springfield",
                        "state": "IL",
                        "zip_code": "62701",
                        "country": "US",
                    },
                    "payment_method": "card",
                }
            ]
        }
    }


class CartResponse(BaseModel):
    cart: dict[str, Any]
    adjusted_items: list[dict[str, Any]] = Field(default_factory=list)


class ReorderResponse(BaseModel):
    cart: dict[str, Any]
    skipped_product_ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str
    changed_by: str | None = None
    reason: str | None = None
    tracking_number: str | None = None


class CancelOrderRequest(BaseModel):
    customer_id: str
    reason: str | None = None


class OrderNoteRequest(BaseModel):
    content: str = Field(min_length=1)
    is_private: bool = False
    created_by: str | None = None


class OrderIdResponse(BaseModel):
    order_id: str


class OrderResponse(BaseModel):
    order: dict[str, Any]


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class CapturePaymentRequest(BaseModel):
    succeeded: bool
    gateway_reference: str | None = None
    failure_reason: str | None = None


class RefundRequest(BaseModel):
    amount: float | None = Field(default=None, gt=0)
    reason: str | None = None
    processed_by: str | None = None


class TransactionOutcomeRequest(BaseModel):
    status: str
    gateway_reference: str | None = None
    reason: str | None = None


class TransactionIdResponse(BaseModel):
    transaction_id: str


class PaymentResponse(BaseModel):
    payment: dict[str, Any]


# ---------------------------------------------------------------------------
# Coupons and shipping
# ---------------------------------------------------------------------------
class CouponRestrictionsSchema(BaseModel):
    categories: list[str] = Field(default_factory=list)
    product_ids: list[str] = Field(default_factory=list)
    excluded_categories: list[str] = Field(default_factory=list)
    excluded_product_ids: list[str] = Field(default_factory=list)


class CreateCouponRequest(BaseModel):
    code: str = Field(min_length=3, max_length=20)
    name: str
    description: str | None = None
    discount_type: str
    discount_value: float = Field(ge=0, default=0.0)
    max_discount_amount: float | None = None
    minimum_purchase: float = Field(ge=0, default=0.0)
    minimum_items: int = Field(ge=0, default=0)
    usage_limit_total: int | None = Field(default=None, ge=1)
    usage_limit_per_customer: int = Field(ge=1, default=1)
    restrictions: CouponRestrictionsSchema = Field(default_factory=CouponRestrictionsSchema)
    new_customers_only: bool = False
    first_order_only: bool = False
    start_date: datetime
    end_date: datetime
    is_active: bool = True


class CouponStatusRequest(BaseModel):
    is_active: bool


class ValidateCouponRequest(BaseModel):
    code: str
    customer_id: str


class CouponIdResponse(BaseModel):
    coupon_id: str


class DiscountResponse(BaseModel):
    code: str
    discount: float
    free_shipping: bool


class CreateShippingFeeRequest(BaseModel):
    name: str
    fee: float = Field(ge=0)
    free_shipping_threshold: float | None = Field(default=None, gt=0)
    is_active: bool = True


class ShippingFeeIdResponse(BaseModel):
    shipping_fee_id: str


class StatusResponse(BaseModel):
    status: str = "ok"
