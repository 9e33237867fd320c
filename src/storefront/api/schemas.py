"""Pydantic request/response schemas for the storefront API.

These are external contracts, kept separate from the internal Protean
commands they are translated into.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    recipient: str | None = None
    phone: str | None = None
    street: str
    city: str | None = None
    state: str | None = None
    zip_code: str
    lat: float | None = None
    lng: float | None = None


class CartLineSchema(BaseModel):
    product_id: str | None = None
    variant_key: str | None = None
    quantity: int


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Order schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    customer_id: str
    items: list[CartLineSchema]
    shipping_address: AddressSchema
    delivery_mode: str | None = None
    pay_method: str = "stripe"
    wallet_amount: float = 0.0
    tip_amount: float = 0.0
    checkout_key: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [{"product_id": "prod-001", "variant_key": "single", "quantity": 2}],
                    "shipping_address": {"street": "1 Main St", "city": "Flushing", "state": "NY", "zip_code": "11354"},
                    "delivery_mode": "next_day",
                    "pay_method": "stripe",
                    "tip_amount": 0.0,
                    "checkout_key": "cart-7f3a",
                }
            ]
        }
    }


class CheckoutResponse(BaseModel):
    order_id: str
    paid: bool
    remaining: float
    reused: bool = False


class RecordPaymentRequest(BaseModel):
    payment_id: str
    amount: float | None = None
    pay_method: str = "stripe"


class RecordPaymentFailureRequest(BaseModel):
    reason: str = "Payment failed"


class CancelOrderRequest(BaseModel):
    reason: str = "Cancelled by customer"
    cancelled_by: str = "customer"


class ReleaseStockResponse(BaseModel):
    units_released: int


class OrderItemResponse(BaseModel):
    product_id: str
    variant_key: str
    name: str
    image: str | None = None
    quantity: int
    unit_count: int
    unit_price: float
    deposit_each: float
    line_total: float


class PricingResponse(BaseModel):
    subtotal: float
    shipping_fee: float
    platform_fee: float
    tax_amount: float
    bottle_deposit: float
    tip: float
    total: float


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    status: str
    delivery_mode: str | None = None
    zone_id: str | None = None
    pay_method: str | None = None
    payment_id: str | None = None
    amount_paid: float = 0.0
    remaining: float
    stock_released: bool
    items: list[OrderItemResponse]
    pricing: PricingResponse


# ---------------------------------------------------------------------------
# Product schemas
# ---------------------------------------------------------------------------
class AddProductRequest(BaseModel):
    name: str
    price: float = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    sku: str | None = None
    allow_zero_stock: bool = False
    deposit_per_unit: float = Field(default=0.0, ge=0)
    is_flash_sale: bool = False
    image: str | None = None
    special_qty: int = Field(default=0, ge=0)
    special_total_price: float = Field(default=0.0, ge=0)


class ProductIdResponse(BaseModel):
    product_id: str


class AddVariantRequest(BaseModel):
    variant_key: str
    unit_count: int = Field(ge=1)
    label: str | None = None
    price: float | None = Field(default=None, ge=0)
    special_qty: int | None = Field(default=None, ge=0)
    special_total_price: float | None = Field(default=None, ge=0)


class AdjustStockRequest(BaseModel):
    delta: int
    reason: str | None = None


class StockResponse(BaseModel):
    product_id: str
    stock: int


# ---------------------------------------------------------------------------
# Zone schemas
# ---------------------------------------------------------------------------
class CreateZoneRequest(BaseModel):
    name: str
    zips: list[str] = []
    polygon: list[list[float]] | None = None
    note: str | None = None


class ZoneIdResponse(BaseModel):
    zone_id: str


class UpdateZoneZipsRequest(BaseModel):
    zips: list[str]


class ZoneCheckResponse(BaseModel):
    zip_code: str
    deliverable: bool
    zone_id: str | None = None
    zone_name: str | None = None


# ---------------------------------------------------------------------------
# Admin schemas
# ---------------------------------------------------------------------------
class PicklistRow(BaseModel):
    product_id: str
    variant_key: str
    name: str
    quantity: int
    units: int
    orders: int


class DispatchStop(BaseModel):
    order_id: str
    customer_id: str
    zip_code: str | None = None
    item_count: int
    total: float


class DispatchBatch(BaseModel):
    zone_id: str
    zone_name: str | None = None
    order_count: int
    orders: list[DispatchStop]
