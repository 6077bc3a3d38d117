"""
Order notification store.

Receives signals from the order watcher and hands them to browser pages,
which poll GET /api/notifications.

Two kinds of signal:
    - "new order" popups: consume-once, the first page to poll shows it
    - "orders changed": a version number that only grows; list pages
      re-apply their filters when the version they saw is older
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Dict, Any, Optional

from models.arrival import OrderArrival
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class OrderNotificationStore:
    """
    Thread-safe storage for order watcher signals.

    The watcher thread WRITES via the listener methods; request threads
    READ via consume_popup() / orders_version.

    Usage:
        watcher.on_new_order(store.push_arrival)
        watcher.on_orders_changed(store.bump_version)

        payload = store.poll(since_version)
    """

    def __init__(self, max_pending: int = 20):
        """
        Args:
            max_pending: Oldest popups are dropped beyond this many
        """
        self._pending: Deque[OrderArrival] = deque(maxlen=max_pending)
        self._orders_version = 0
        self._lock = threading.Lock()

    @property
    def orders_version(self) -> int:
        with self._lock:
            return self._orders_version

    def push_arrival(self, arrival: OrderArrival) -> None:
        """Queue a "new order" popup (called by the watcher thread)."""
        with self._lock:
            self._pending.append(arrival)
        logger.debug(f"Queued new-order popup for order {arrival.latest_order_id}")

    def bump_version(self, arrival: Optional[OrderArrival] = None) -> int:
        """Record that the order list changed. Returns the new version."""
        with self._lock:
            self._orders_version += 1
            return self._orders_version

    def consume_popup(self) -> Optional[OrderArrival]:
        """
        Get and remove the oldest pending popup.

        Consume-once: a popup is handed to exactly one caller.
        """
        with self._lock:
            if not self._pending:
                return None
            return self._pending.popleft()

    def poll(self, since_version: Optional[int] = None) -> Dict[str, Any]:
        """
        Payload for one browser poll.

        Args:
            since_version: Last orders_version the page has seen

        Returns:
            {"popup": {...} | None, "orders_version": n, "orders_changed": bool}
        """
        popup = self.consume_popup()
        version = self.orders_version
        changed = since_version is not None and version > since_version
        return {
            "popup": popup.to_dict() if popup else None,
            "orders_version": version,
            "orders_changed": changed,
        }

    def clear(self) -> int:
        """
        Drop all pending popups.

        Returns:
            Number of popups removed
        """
        with self._lock:
            count = len(self._pending)
            self._pending.clear()
        logger.info(f"Cleared {count} pending popups")
        return count
