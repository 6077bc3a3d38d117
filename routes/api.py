"""
API routes (AJAX endpoints).

Handles:
- /api/notifications - Poll for "new order" popups and order list changes
- /api/session       - Store or forget this browser session's API token
- /health            - Health check endpoint
"""

from flask import Blueprint, current_app, request, session

from core.exceptions import ValidationError
from .common import (
    TOKEN_SESSION_KEY,
    USER_SESSION_KEY,
    DRAFT_SESSION_KEY,
    api_client,
    current_user,
    request_data,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/api/notifications", methods=["GET"])
def notifications():
    """
    AJAX endpoint polled by every dashboard page.

    Returns at most one pending "new order" popup (consumed by this call)
    and the current orders version. Pass ``since`` with the last version
    seen to get ``orders_changed``.
    """
    store = current_app.config.get("NOTIFICATION_STORE")
    if store is None:
        return {"popup": None, "orders_version": 0, "orders_changed": False}

    since = request.args.get("since", type=int)
    return store.poll(since)


@api_bp.route("/api/session", methods=["POST"])
def open_session():
    """Store the bearer token for this browser session and load the user."""
    token = str(request_data().get("token") or "").strip()
    if not token:
        raise ValidationError("token required", code="token_required", field="token")

    session[TOKEN_SESSION_KEY] = token
    session.pop(USER_SESSION_KEY, None)
    session.modified = True

    with api_client() as client:
        user = current_user(client)
    return {"user": user.to_dict() if user else None, "user_loaded": user is not None}


@api_bp.route("/api/session", methods=["DELETE"])
def close_session():
    """Forget token, cached user and the open draft reference."""
    draft_id = session.pop(DRAFT_SESSION_KEY, None)
    session.pop(TOKEN_SESSION_KEY, None)
    session.pop(USER_SESSION_KEY, None)

    draft_store = current_app.config.get("DRAFT_STORE")
    if draft_id and draft_store is not None:
        draft_store.discard(draft_id)

    return {"closed": True}


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Check catalog service
    catalog_service = current_app.config.get("CATALOG_SERVICE")
    if catalog_service and catalog_service.is_running:
        snapshot = catalog_service.get_snapshot()
        if not snapshot.is_ready:
            health_status["checks"]["catalog"] = "loading"
        elif snapshot.is_stale:
            health_status["checks"]["catalog"] = "stale"
        else:
            health_status["checks"]["catalog"] = "ok"
    else:
        health_status["checks"]["catalog"] = "not_running"
        health_status["status"] = "degraded"

    # Check order watcher
    order_watcher = current_app.config.get("ORDER_WATCHER")
    if order_watcher and order_watcher.state.value == "polling":
        if order_watcher.consecutive_failures:
            health_status["checks"]["order_watcher"] = "failing"
        else:
            health_status["checks"]["order_watcher"] = "ok"
    else:
        health_status["checks"]["order_watcher"] = "not_running"
        health_status["status"] = "degraded"

    draft_store = current_app.config.get("DRAFT_STORE")
    health_status["checks"]["open_drafts"] = len(draft_store) if draft_store is not None else 0

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
