"""Grocery delivery storefront built on Protean."""
