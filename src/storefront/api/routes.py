"""FastAPI routes for the storefront: orders, products, zones and admin views."""

import json

from fastapi import APIRouter, Query
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddProductRequest,
    AddVariantRequest,
    AdjustStockRequest,
    CancelOrderRequest,
    CheckoutRequest,
    CheckoutResponse,
    CreateZoneRequest,
    DispatchBatch,
    OrderItemResponse,
    OrderResponse,
    PicklistRow,
    PricingResponse,
    ProductIdResponse,
    RecordPaymentFailureRequest,
    RecordPaymentRequest,
    ReleaseStockResponse,
    StatusResponse,
    StockResponse,
    UpdateZoneZipsRequest,
    ZoneCheckResponse,
    ZoneIdResponse,
)
from storefront.catalogue.management import AddProduct, AddVariant, AdjustStock, DisableVariant
from storefront.ordering.cancellation import CancelOrder, ReleaseOrderStock
from storefront.ordering.checkout import PlaceOrder
from storefront.ordering.dispatch import build_dispatch_batches, build_picklist
from storefront.ordering.order import Order
from storefront.ordering.payment import RecordPayment, RecordPaymentFailure
from storefront.zones.management import CreateZone, DisableZone, UpdateZoneZips
from storefront.zones.zone import find_zone_for_zip, normalize_zip

order_router = APIRouter(prefix="/api/orders", tags=["orders"])
product_router = APIRouter(prefix="/api/products", tags=["products"])
zone_router = APIRouter(prefix="/api/zones", tags=["zones"])
admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@order_router.post("/checkout", status_code=201, response_model=CheckoutResponse)
async def checkout(body: CheckoutRequest) -> CheckoutResponse:
    command = PlaceOrder(
        customer_id=body.customer_id,
        items=json.dumps([line.model_dump() for line in body.items]),
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        delivery_mode=body.delivery_mode,
        pay_method=body.pay_method,
        wallet_amount=body.wallet_amount,
        tip_amount=body.tip_amount,
        checkout_key=body.checkout_key,
    )
    result = current_domain.process(command, asynchronous=False)
    return CheckoutResponse(**result)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        status=order.status,
        delivery_mode=order.delivery_mode,
        zone_id=str(order.zone_id) if order.zone_id else None,
        pay_method=order.pay_method,
        payment_id=order.payment_id,
        amount_paid=order.amount_paid or 0.0,
        remaining=order.amount_due,
        stock_released=bool(order.stock_released),
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                variant_key=item.variant_key,
                name=item.name,
                image=item.image,
                quantity=item.quantity,
                unit_count=item.unit_count,
                unit_price=item.unit_price,
                deposit_each=item.deposit_each or 0.0,
                line_total=item.line_total,
            )
            for item in order.items
        ],
        pricing=PricingResponse(
            subtotal=order.pricing.subtotal,
            shipping_fee=order.pricing.shipping_fee,
            platform_fee=order.pricing.platform_fee,
            tax_amount=order.pricing.tax_amount,
            bottle_deposit=order.pricing.bottle_deposit,
            tip=order.pricing.tip,
            total=order.pricing.total,
        ),
    )


@order_router.post("/{order_id}/payment", response_model=StatusResponse)
async def record_payment(order_id: str, body: RecordPaymentRequest) -> StatusResponse:
    command = RecordPayment(
        order_id=order_id,
        payment_id=body.payment_id,
        amount=body.amount,
        pay_method=body.pay_method,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.post("/{order_id}/payment-failure", response_model=ReleaseStockResponse)
async def record_payment_failure(order_id: str, body: RecordPaymentFailureRequest) -> ReleaseStockResponse:
    command = RecordPaymentFailure(order_id=order_id, reason=body.reason)
    units = current_domain.process(command, asynchronous=False)
    return ReleaseStockResponse(units_released=units or 0)


@order_router.post("/{order_id}/cancel", response_model=ReleaseStockResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> ReleaseStockResponse:
    command = CancelOrder(order_id=order_id, reason=body.reason, cancelled_by=body.cancelled_by)
    units = current_domain.process(command, asynchronous=False)
    return ReleaseStockResponse(units_released=units or 0)


@order_router.post("/{order_id}/release-stock", response_model=ReleaseStockResponse)
async def release_order_stock(order_id: str) -> ReleaseStockResponse:
    units = current_domain.process(ReleaseOrderStock(order_id=order_id), asynchronous=False)
    return ReleaseStockResponse(units_released=units or 0)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def add_product(body: AddProductRequest) -> ProductIdResponse:
    command = AddProduct(
        name=body.name,
        price=body.price,
        stock=body.stock,
        sku=body.sku,
        allow_zero_stock=body.allow_zero_stock,
        deposit_per_unit=body.deposit_per_unit,
        is_flash_sale=body.is_flash_sale,
        image=body.image,
        special_qty=body.special_qty,
        special_total_price=body.special_total_price,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.post("/{product_id}/variants", status_code=201, response_model=StatusResponse)
async def add_variant(product_id: str, body: AddVariantRequest) -> StatusResponse:
    command = AddVariant(
        product_id=product_id,
        variant_key=body.variant_key,
        unit_count=body.unit_count,
        label=body.label,
        price=body.price,
        special_qty=body.special_qty,
        special_total_price=body.special_total_price,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@product_router.put("/{product_id}/variants/{variant_key}/disable", response_model=StatusResponse)
async def disable_variant(product_id: str, variant_key: str) -> StatusResponse:
    current_domain.process(DisableVariant(product_id=product_id, variant_key=variant_key), asynchronous=False)
    return StatusResponse()


@product_router.put("/{product_id}/stock", response_model=StockResponse)
async def adjust_stock(product_id: str, body: AdjustStockRequest) -> StockResponse:
    command = AdjustStock(product_id=product_id, delta=body.delta, reason=body.reason)
    stock = current_domain.process(command, asynchronous=False)
    return StockResponse(product_id=product_id, stock=stock)


# ---------------------------------------------------------------------------
# Zones
# ---------------------------------------------------------------------------
@zone_router.post("", status_code=201, response_model=ZoneIdResponse)
async def create_zone(body: CreateZoneRequest) -> ZoneIdResponse:
    command = CreateZone(
        name=body.name,
        zips=body.zips,
        polygon=json.dumps(body.polygon) if body.polygon else None,
        note=body.note,
    )
    result = current_domain.process(command, asynchronous=False)
    return ZoneIdResponse(zone_id=result)


@zone_router.put("/{zone_id}/zips", response_model=StatusResponse)
async def update_zone_zips(zone_id: str, body: UpdateZoneZipsRequest) -> StatusResponse:
    current_domain.process(UpdateZoneZips(zone_id=zone_id, zips=body.zips), asynchronous=False)
    return StatusResponse()


@zone_router.put("/{zone_id}/disable", response_model=StatusResponse)
async def disable_zone(zone_id: str) -> StatusResponse:
    current_domain.process(DisableZone(zone_id=zone_id), asynchronous=False)
    return StatusResponse()


@zone_router.get("/check", response_model=ZoneCheckResponse)
async def check_zip(zip_code: str = Query(alias="zip")) -> ZoneCheckResponse:
    zip_code = normalize_zip(zip_code)
    zone = find_zone_for_zip(zip_code)
    return ZoneCheckResponse(
        zip_code=zip_code,
        deliverable=zone is not None,
        zone_id=str(zone.id) if zone else None,
        zone_name=zone.name if zone else None,
    )


# ---------------------------------------------------------------------------
# Admin views
# ---------------------------------------------------------------------------
@admin_router.get("/picklist", response_model=list[PicklistRow])
async def picklist(zone_id: str | None = None) -> list[PicklistRow]:
    return [PicklistRow(**row) for row in build_picklist(zone_id)]


@admin_router.get("/dispatch", response_model=list[DispatchBatch])
async def dispatch() -> list[DispatchBatch]:
    return [DispatchBatch(**batch) for batch in build_dispatch_batches()]
