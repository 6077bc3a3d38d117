"""
Core module for SupplyOrderDesk.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- api_client: HTTP client for the distributor's order API
"""

from .exceptions import (
    SupplyOrderDeskError,
    ValidationError,
    LookupMiss,
    LookupPending,
    DraftNotFoundError,
    APIError,
    AuthenticationError,
    APITimeoutError,
    SubmissionError,
    SubmissionTimeoutError,
    PollError,
)
from .api_client import OrderAPIClient

__all__ = [
    "SupplyOrderDeskError",
    "ValidationError",
    "LookupMiss",
    "LookupPending",
    "DraftNotFoundError",
    "APIError",
    "AuthenticationError",
    "APITimeoutError",
    "SubmissionError",
    "SubmissionTimeoutError",
    "PollError",
    "OrderAPIClient",
]
