"""Storefront HTTP API package."""

from storefront.api.routes import admin_router, order_router, product_router, zone_router

__all__ = ["order_router", "product_router", "zone_router", "admin_router"]
