"""
Helpers shared by the route blueprints.

- Per-request API client built from the session token
- Cached acting-user profile
- Input sanitization
- Translation of application errors into JSON responses
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import bleach
from flask import current_app, request, session

from core.api_client import OrderAPIClient
from core.exceptions import (
    APIError,
    APITimeoutError,
    AuthenticationError,
    DraftNotFoundError,
    LookupMiss,
    LookupPending,
    SubmissionError,
    SubmissionTimeoutError,
    SupplyOrderDeskError,
    ValidationError,
)
from models.order import CurrentUser, OrderDraft
from modules.invoice import draft_totals
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

TOKEN_SESSION_KEY = "api_token"
USER_SESSION_KEY = "user"
DRAFT_SESSION_KEY = "draft_id"


def sanitize_text(text: Any, max_length: Optional[int] = None) -> str:
    """Sanitize user input text."""
    if text is None:
        return ""
    text = str(text).strip()
    if not text:
        return ""
    text = bleach.clean(text, tags=[], strip=True)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def request_data() -> Dict[str, Any]:
    """JSON body, or form fields for form posts."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def session_token() -> Optional[str]:
    """Bearer token of this browser session, falling back to the service token."""
    return session.get(TOKEN_SESSION_KEY) or current_app.config.get("API_TOKEN") or None


def api_client() -> OrderAPIClient:
    """Short-lived API client for this request."""
    return OrderAPIClient(
        current_app.config["API_BASE_URL"],
        token=session_token(),
        timeout_seconds=current_app.config.get("API_TIMEOUT_SECONDS", 10.0),
        logger=logger,
    )


def current_user(client: OrderAPIClient) -> Optional[CurrentUser]:
    """
    Acting user's profile, cached in the session.

    Returns None while the profile cannot be fetched; submission then
    reports "user not loaded".

    Raises:
        AuthenticationError: The session token was rejected
    """
    cached = session.get(USER_SESSION_KEY)
    if cached:
        return CurrentUser.from_dict(cached)

    try:
        data = client.get_current_user()
    except AuthenticationError:
        raise
    except APIError as e:
        logger.warning(f"Could not load current user: {e}")
        return None

    user = CurrentUser.from_api_data(data)
    session[USER_SESSION_KEY] = user.to_dict()
    session.modified = True
    return user


def draft_payload(draft: OrderDraft) -> Dict[str, Any]:
    """Draft with its freshly computed totals."""
    with draft.lock:
        data = draft.to_dict()
        data["totals"] = draft_totals(draft).to_dict()
    return data


# =============================================================================
# ERROR RESPONSES
# =============================================================================

def error_response(error: SupplyOrderDeskError):
    """
    JSON response for an application error.

    400 validation, 401 rejected token, 404 unknown product or draft,
    409 catalog still loading, 502/504 order API failures.
    """
    body: Dict[str, Any] = {"error": error.message}

    if isinstance(error, ValidationError):
        body["code"] = error.code
        if error.field:
            body["field"] = error.field
        return body, 400

    if isinstance(error, LookupPending):
        body["code"] = "catalog_loading"
        return body, 409

    if isinstance(error, LookupMiss):
        body["code"] = "product_not_found"
        return body, 404

    if isinstance(error, DraftNotFoundError):
        body["code"] = "draft_not_found"
        return body, 404

    if isinstance(error, AuthenticationError):
        session.pop(TOKEN_SESSION_KEY, None)
        session.pop(USER_SESSION_KEY, None)
        body["code"] = "unauthenticated"
        return body, 401

    if isinstance(error, SubmissionTimeoutError):
        body["code"] = "submission_timeout"
        return body, 504

    if isinstance(error, SubmissionError):
        body["code"] = "submission_failed"
        return body, 502

    if isinstance(error, APIError):
        body["error"] = error.server_message or error.message
        body["code"] = "api_error"
        return body, 504 if isinstance(error, APITimeoutError) else 502

    logger.error(f"Unhandled application error: {error}")
    body["code"] = "error"
    return body, 500
