"""
Services layer for SupplyOrderDesk.

This module contains the business logic services:
- CatalogService: Background catalog refresh and product lookup
- OrderWatcher: Background polling for newly created orders
- OrderNotificationStore: Watcher signals waiting for browser pages
- DraftStore: In-memory order drafts
- SubmissionService: Draft validation and submission

Thread Model:
    Main Thread (Flask)
    ├── Catalog thread (periodic brief product list refresh)
    └── OrderWatcher thread (fixed-interval order list poll)

Each background service creates its own OrderAPIClient instances;
request handlers use a short-lived client with the session's token.
"""

from .catalog_service import CatalogService
from .order_watcher import OrderWatcher, WatcherState
from .notification_service import OrderNotificationStore
from .draft_service import DraftStore
from .submission_service import SubmissionService

__all__ = [
    "CatalogService",
    "OrderWatcher",
    "WatcherState",
    "OrderNotificationStore",
    "DraftStore",
    "SubmissionService",
]
