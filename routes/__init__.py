"""
Flask route blueprints for SupplyOrderDesk.

This module contains all route handlers organized by functionality:
- drafts: Order drafts (scan, cart edits, submission)
- orders: Order list and detail
- api: AJAX endpoints (notifications, session token, health)

Each blueprint is registered with the Flask app in create_app().
"""

from core.exceptions import SupplyOrderDeskError

from .drafts import drafts_bp
from .orders import orders_bp
from .api import api_bp
from .common import error_response

__all__ = [
    "drafts_bp",
    "orders_bp",
    "api_bp",
    "register_blueprints",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Application errors raised by any route are turned into JSON responses.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(drafts_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(api_bp)
    app.register_error_handler(SupplyOrderDeskError, error_response)
