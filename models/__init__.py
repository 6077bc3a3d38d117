"""
Data models for SupplyOrderDesk.

This module contains dataclasses for:
- ProductBrief / CatalogSnapshot: Point-in-time product catalog
- CartLine / Cart: Immutable order cart
- OrderDraft: In-memory order being built
- OrderSummary / OrderDetail / Doctor / CurrentUser: Order API read models
- OrderArrivalSnapshot / OrderArrival: New-order detection state

Snapshots and carts are frozen for thread safety; OrderDraft carries its
own lock.
"""

from .money import ZERO, parse_decimal, to_decimal, format_money
from .catalog import ProductBrief, CatalogSnapshot
from .cart import Cart, CartLine
from .order import (
    OrderStatus,
    STATUS_CODE_MAP,
    status_filter_code,
    Doctor,
    CurrentUser,
    OrderSummary,
    OrderDetail,
    OrderDraft,
    orders_from_api_data,
)
from .arrival import OrderArrival, OrderArrivalSnapshot

__all__ = [
    # Money helpers
    "ZERO",
    "parse_decimal",
    "to_decimal",
    "format_money",
    # Catalog models
    "ProductBrief",
    "CatalogSnapshot",
    # Cart models
    "Cart",
    "CartLine",
    # Order models
    "OrderStatus",
    "STATUS_CODE_MAP",
    "status_filter_code",
    "Doctor",
    "CurrentUser",
    "OrderSummary",
    "OrderDetail",
    "OrderDraft",
    "orders_from_api_data",
    # Arrival models
    "OrderArrival",
    "OrderArrivalSnapshot",
]
