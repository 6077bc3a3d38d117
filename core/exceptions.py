"""
Custom exceptions for SupplyOrderDesk.

Exception Hierarchy:
    SupplyOrderDeskError (base)
    ├── ValidationError        - Local guard failed before any network call
    ├── LookupMiss             - Scanned code matches no catalog product
    ├── LookupPending          - Catalog not loaded yet (retry, not an error)
    ├── DraftNotFoundError     - Unknown or already discarded draft
    ├── APIError               - Order API request failed
    │   ├── AuthenticationError  - Token rejected (401)
    │   └── APITimeoutError      - No answer within the client timeout
    ├── SubmissionError        - Order create/update failed, draft kept
    │   └── SubmissionTimeoutError - Client-side timeout
    └── PollError              - Live order poll failed (logged only)

Usage:
    Every error is handled at the boundary of the operation that raised it
    (cart edit, submission, poll). Routes turn them into JSON responses;
    the order watcher logs PollError and tries again on the next tick.
"""

from typing import Optional, Dict, Any


class SupplyOrderDeskError(Exception):
    """
    Base exception for all SupplyOrderDesk errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# DRAFT AND LOOKUP ERRORS - the user corrects the input and retries
# =============================================================================

class ValidationError(SupplyOrderDeskError):
    """
    A local guard rejected the input before any network call.

    The draft and its cart stay in their last valid state. ``code`` lets
    callers tell the failures apart without parsing the message, e.g.
    "user_not_loaded" is shown as "please wait" rather than a form error.
    """

    def __init__(self, message: str, code: str = "invalid", field: Optional[str] = None):
        details = {"code": code}
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.code = code
        self.field = field


class LookupMiss(SupplyOrderDeskError):
    """Scanned code or selected id matches no product in the catalog."""

    def __init__(self, code: str):
        super().__init__("product not found", {"code": code})
        self.code = code


class LookupPending(SupplyOrderDeskError):
    """
    The product catalog has not finished loading.

    Reported as "still loading, please wait" so the user is never told that
    a valid product does not exist. The caller retries the scan.
    """

    def __init__(self, message: str = "product catalog is still loading"):
        details = {
            "resolution": "Wait for the catalog refresh and scan again"
        }
        super().__init__(message, details)


class DraftNotFoundError(SupplyOrderDeskError):
    """The draft id is unknown (never created, submitted, or cancelled)."""

    def __init__(self, draft_id: str):
        super().__init__(f"Order draft not found: {draft_id}", {"draft_id": draft_id})
        self.draft_id = draft_id


# =============================================================================
# REMOTE ERRORS - the order API did not accept the request
# =============================================================================

class APIError(SupplyOrderDeskError):
    """
    Request to the order API failed.

    ``server_message`` carries the API's own ``message`` field when the
    response had one; it is what the user should see.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        server_message: Optional[str] = None,
        url: Optional[str] = None
    ):
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if url:
            details["url"] = url
        super().__init__(message, details)
        self.status_code = status_code
        self.server_message = server_message
        self.url = url


class AuthenticationError(APIError):
    """The order API rejected the bearer token (HTTP 401)."""


class APITimeoutError(APIError):
    """The order API did not answer within the client timeout."""


class SubmissionError(SupplyOrderDeskError):
    """
    Order create/update failed.

    The draft is left untouched so the user can correct and resubmit.
    There is no partial commit: either the whole draft was accepted or
    none of it was.
    """

    GENERIC_MESSAGE = "Failed to save the order, please try again"

    def __init__(
        self,
        message: Optional[str] = None,
        draft_id: Optional[str] = None,
        order_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if draft_id:
            error_details["draft_id"] = draft_id
        if order_id:
            error_details["order_id"] = order_id
        super().__init__(message or self.GENERIC_MESSAGE, error_details)
        self.draft_id = draft_id
        self.order_id = order_id


class SubmissionTimeoutError(SubmissionError):
    """The order API did not answer within the client-side timeout."""

    def __init__(
        self,
        timeout_seconds: float,
        draft_id: Optional[str] = None,
        order_id: Optional[int] = None
    ):
        message = f"Order API did not respond within {timeout_seconds:.1f}s"
        details = {
            "timeout_seconds": timeout_seconds,
            "resolution": "The order may still have been saved - check the order list before resubmitting."
        }
        super().__init__(message, draft_id, order_id, details)
        self.timeout_seconds = timeout_seconds


class PollError(SupplyOrderDeskError):
    """
    One poll of the live order watcher failed.

    Never shown to the user. The previous baseline is kept and the next
    scheduled poll retries.
    """
