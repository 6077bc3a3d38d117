"""
Order list and detail routes.

Handles:
- /orders       - Order list with filters (date defaults to today)
- /orders/<id>  - One order with its lines and recomputed totals
"""

from datetime import date

from flask import Blueprint, request

from core.exceptions import ValidationError
from models.order import OrderDetail, orders_from_api_data, status_filter_code
from modules.invoice import compute_totals
from .common import api_client
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

orders_bp = Blueprint("orders", __name__)

ID_FILTERS = ("doctor_id", "user_id", "product_id")


def _order_filters() -> dict:
    """
    Order list filters from the query string.

    ``date`` defaults to today; pass ``date=`` to list all dates.
    """
    args = request.args
    filters = {}

    for name in ID_FILTERS:
        value = args.get(name, "").strip()
        if not value:
            continue
        if not value.isdigit():
            raise ValidationError(f"{name} must be a number", code="invalid_filter", field=name)
        filters[name] = int(value)

    status = args.get("status", "").strip()
    if status:
        code = status_filter_code(status)
        if code is None:
            raise ValidationError(f"unsupported status filter: {status}", code="invalid_filter", field="status")
        filters["status"] = code

    if "date" in args:
        filters["date"] = args.get("date", "").strip() or None
    else:
        filters["date"] = date.today().isoformat()

    return filters


@orders_bp.route("/orders", methods=["GET"])
def list_orders():
    filters = _order_filters()
    with api_client() as client:
        orders = orders_from_api_data(client.list_orders(filters))
    logger.debug(f"Listed {len(orders)} orders with filters {filters}")
    return {
        "orders": [order.to_dict() for order in orders],
        "filters": {k: v for k, v in filters.items() if v is not None},
    }


@orders_bp.route("/orders/<int:order_id>", methods=["GET"])
def get_order(order_id: int):
    """Order detail; totals are recomputed from its lines, discount and paid amount."""
    with api_client() as client:
        detail = OrderDetail.from_api_data(client.get_order(order_id))
    data = detail.to_dict()
    data["totals"] = compute_totals(detail.cart().lines, detail.discount, detail.total_paid).to_dict()
    return data
