"""Warehouse picklist and dispatch batches over paid orders."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.ordering.order import Order, OrderStatus
from storefront.zones.zone import Zone

UNASSIGNED = "unassigned"

_PAGE_SIZE = 100


def _paid_orders(zone_id=None):
    repo = current_domain.repository_for(Order)
    filters = {"status": OrderStatus.PAID.value}
    if zone_id:
        filters["zone_id"] = zone_id

    offset = 0
    while True:
        page = repo._dao.query.filter(**filters).order_by("created_at").offset(offset).limit(_PAGE_SIZE).all()
        yield from page.items
        if len(page.items) < _PAGE_SIZE:
            return
        offset += _PAGE_SIZE


def build_picklist(zone_id=None) -> list[dict]:
    """Sum what has to be picked per product and pack size.

    ``quantity`` counts packs as sold; ``units`` counts base units.
    """
    rows = {}
    for order in _paid_orders(zone_id):
        for item in order.items:
            key = (str(item.product_id), item.variant_key)
            row = rows.setdefault(
                key,
                {
                    "product_id": key[0],
                    "variant_key": item.variant_key,
                    "name": item.name,
                    "quantity": 0,
                    "units": 0,
                    "orders": 0,
                },
            )
            row["quantity"] += item.quantity
            row["units"] += item.quantity * item.unit_count
            row["orders"] += 1

    return sorted(rows.values(), key=lambda r: (r["name"].lower(), r["variant_key"]))


def _route_key(order):
    address = order.shipping_address
    lng = address.lng if address and address.lng is not None else 0.0
    lat = address.lat if address and address.lat is not None else 0.0
    return (lng, lat)


def _zone_name(zone_id):
    if zone_id == UNASSIGNED:
        return None
    try:
        return current_domain.repository_for(Zone).get(zone_id).name
    except ObjectNotFoundError:
        return None


def build_dispatch_batches() -> list[dict]:
    """Group paid orders by delivery zone, each batch in drop-off order.

    Orders without a zone land in the ``unassigned`` batch. Stops are sorted
    west to east, then south to north.
    """
    grouped = {}
    for order in _paid_orders():
        grouped.setdefault(str(order.zone_id) if order.zone_id else UNASSIGNED, []).append(order)

    batches = []
    for zone_id in sorted(grouped, key=lambda z: (z == UNASSIGNED, z)):
        orders = sorted(grouped[zone_id], key=_route_key)
        batches.append(
            {
                "zone_id": zone_id,
                "zone_name": _zone_name(zone_id),
                "order_count": len(orders),
                "orders": [
                    {
                        "order_id": str(order.id),
                        "customer_id": str(order.customer_id),
                        "zip_code": order.shipping_address.zip_code if order.shipping_address else None,
                        "item_count": len(order.items),
                        "total": order.pricing.total,
                    }
                    for order in orders
                ],
            }
        )
    return batches
