"""
SupplyOrderDesk - Flask Application Entry Point.

This is a slim app factory that:
1. Configures logging
2. Starts the catalog service (separate thread)
3. Starts the live order watcher (separate thread)
4. Creates the draft store and submission service
5. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Flask request handling (short-lived API client per request)
    └── Cleanup on shutdown

    Catalog Thread (background)
    └── Periodic brief product list refresh with OWN API client

    OrderWatcher Thread (background)
    └── Fixed-interval order list poll with OWN API client

NO SHARED API CLIENTS between threads.
"""

from __future__ import annotations

import atexit
import logging
import os

from flask import Flask
from werkzeug.exceptions import RequestEntityTooLarge

from logging_config import setup_logging, get_logger
from core.api_client import OrderAPIClient
from services.catalog_service import CatalogService
from services.draft_service import DraftStore
from services.notification_service import OrderNotificationStore
from services.order_watcher import OrderWatcher
from services.submission_service import SubmissionService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def create_app(config_object: str = "config.Config") -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting SupplyOrderDesk in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    base_url = app.config["API_BASE_URL"]
    service_token = app.config.get("API_TOKEN") or None
    timeout_seconds = app.config.get("API_TIMEOUT_SECONDS", 10.0)

    def service_client() -> OrderAPIClient:
        """Fresh API client for a background thread (service token)."""
        return OrderAPIClient(base_url, token=service_token, timeout_seconds=timeout_seconds)

    catalog_service = CatalogService(
        service_client,
        refresh_interval_seconds=app.config.get("CATALOG_REFRESH_INTERVAL_SECONDS", 300.0)
    )
    app.config["CATALOG_SERVICE"] = catalog_service

    notification_store = OrderNotificationStore()
    app.config["NOTIFICATION_STORE"] = notification_store

    order_watcher = OrderWatcher(
        service_client,
        interval_seconds=app.config.get("ORDER_POLL_INTERVAL_SECONDS", 5.0),
        admin_user_type=app.config.get("ADMIN_USER_TYPE", "Admin")
    )
    order_watcher.on_new_order(notification_store.push_arrival)
    order_watcher.on_orders_changed(notification_store.bump_version)
    app.config["ORDER_WATCHER"] = order_watcher

    draft_store = DraftStore(max_age_seconds=app.config.get("DRAFT_MAX_AGE_SECONDS", 12 * 60 * 60))
    app.config["DRAFT_STORE"] = draft_store

    app.config["SUBMISSION_SERVICE"] = SubmissionService(
        draft_store,
        contact_placeholder=app.config.get("CONTACT_PLACEHOLDER", "-"),
        timeout_seconds=timeout_seconds
    )

    if app.config.get("START_BACKGROUND_SERVICES", True):
        catalog_service.start()
        order_watcher.start()
        logger.info("Background services started")

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")

        order_watcher.stop()
        catalog_service.stop()
        draft_store.clear()

        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(RequestEntityTooLarge)
    def handle_body_too_large(e):
        max_kb = app.config.get("MAX_CONTENT_LENGTH", 1024 * 1024) / 1024
        return {"error": f"Request too large. Maximum body size is {max_kb:.0f} KB.", "code": "too_large"}, 413

    @app.errorhandler(404)
    def handle_not_found(e):
        return {"error": "Not found", "code": "not_found"}, 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return {"error": "Method not allowed", "code": "method_not_allowed"}, 405

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": "An unexpected error occurred. Please try again.", "code": "server_error"}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
