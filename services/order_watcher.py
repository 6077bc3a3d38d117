"""
Live order watcher with background polling thread.

Polls the order list on a fixed interval and compares the ids against the
previous poll. When orders appear it signals listeners:

    - on_new_order:      a popup offering to open the latest new order
                         (skipped when an admin created that order)
    - on_orders_changed: order list pages should re-apply their filters

State machine:
    IDLE -> POLLING -> STOPPED

Thread Safety:
    - One background thread; polls never overlap (poll lock)
    - OrderArrivalSnapshot is immutable and swapped after each poll
    - Each watcher owns its snapshot; two watchers never share state

Usage:
    watcher = OrderWatcher(client_factory, interval_seconds=5)
    watcher.on_new_order(notifications.push_arrival)
    watcher.on_orders_changed(notifications.bump_version)
    watcher.start()
    ...
    watcher.stop()
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from core.api_client import OrderAPIClient
from core.exceptions import PollError
from models.arrival import OrderArrival, OrderArrivalSnapshot
from models.order import orders_from_api_data
from modules.user_types import is_admin
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)

ArrivalListener = Callable[[OrderArrival], None]


class WatcherState(Enum):
    """Lifecycle of an OrderWatcher."""

    IDLE = "idle"
    """Created, never started."""

    POLLING = "polling"
    """Background thread running."""

    STOPPED = "stopped"
    """Stopped; does not restart."""


class OrderWatcher:
    """
    Background service that detects newly created orders.

    A failed poll is logged and retried on the next interval; it never
    stops the watcher and never clears the baseline.

    Attributes:
        interval_seconds: Fixed time between polls (no backoff)
        state: Current WatcherState
    """

    def __init__(
        self,
        client_factory: Callable[[], OrderAPIClient],
        interval_seconds: float = 5.0,
        filters: Optional[Dict[str, Any]] = None,
        admin_user_type: str = "Admin"
    ):
        """
        Initialize the watcher.

        Args:
            client_factory: Builds a fresh OrderAPIClient (service token)
            interval_seconds: Seconds between polls
            filters: Optional order list filters (see OrderAPIClient.list_orders)
            admin_user_type: Creator role whose orders never pop a dialog
        """
        self._client_factory = client_factory
        self._interval = interval_seconds
        self._filters = dict(filters or {})
        self._admin_user_type = admin_user_type

        self._state = WatcherState.IDLE
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._poll_lock = threading.Lock()

        self._snapshot = OrderArrivalSnapshot()

        self._new_order_listeners: List[ArrivalListener] = []
        self._changed_listeners: List[ArrivalListener] = []
        self._listeners_lock = threading.Lock()

        self._consecutive_failures = 0

        logger.info(f"OrderWatcher initialized (interval: {interval_seconds}s)")

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def snapshot(self) -> OrderArrivalSnapshot:
        """Ids seen on the last successful poll."""
        return self._snapshot

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def on_new_order(self, callback: ArrivalListener) -> None:
        """Call ``callback(arrival)`` when a non-admin order appears."""
        with self._listeners_lock:
            self._new_order_listeners.append(callback)

    def on_orders_changed(self, callback: ArrivalListener) -> None:
        """Call ``callback(arrival)`` whenever new orders appear."""
        with self._listeners_lock:
            self._changed_listeners.append(callback)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """
        Start the polling thread.

        The first poll runs immediately and only records a baseline.
        """
        if self._state is WatcherState.POLLING:
            logger.warning("OrderWatcher already running")
            return
        if self._state is WatcherState.STOPPED:
            logger.warning("OrderWatcher was stopped and cannot be restarted")
            return

        logger.info("Starting order watcher thread...")

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            name="OrderWatcher",
            daemon=True
        )
        self._state = WatcherState.POLLING
        self._thread.start()

    def stop(self) -> None:
        """Cancel future polls and wait for the thread. Safe to call twice."""
        if self._state is WatcherState.STOPPED:
            return

        logger.info("Stopping order watcher thread...")

        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

            if self._thread.is_alive():
                logger.warning("Order watcher thread did not stop cleanly")

        self._state = WatcherState.STOPPED
        self._thread = None
        self._snapshot = OrderArrivalSnapshot()

        logger.info("Order watcher thread stopped")

    def _poll_loop(self) -> None:
        set_thread_name("OrderWatcher")

        logger.info("Order watcher loop starting")

        self.poll_once()

        while not self._stop_event.is_set():
            if self._stop_event.wait(timeout=self._interval):
                break

            self.poll_once()

        logger.info("Order watcher loop exiting")

    # =========================================================================
    # POLLING
    # =========================================================================

    def poll_once(self) -> Optional[OrderArrival]:
        """
        Run one poll.

        Returns:
            OrderArrival when new orders appeared, None otherwise (including
            baseline polls, failed polls, and a poll already in flight)
        """
        if self._state is WatcherState.STOPPED:
            return None

        if not self._poll_lock.acquire(blocking=False):
            logger.debug("Poll already in flight, skipping")
            return None

        try:
            try:
                orders = self._fetch_orders()
            except PollError as e:
                self._log_failure(e)
                return None

            # stop() may have run while the fetch was in flight
            if self._stop_event.is_set():
                logger.debug("Watcher stopped during poll, discarding result")
                return None

            if self._consecutive_failures > 0:
                logger.info(f"Order polling recovered after {self._consecutive_failures} failures")
            self._consecutive_failures = 0

            next_snapshot, arrival = self._snapshot.advance(orders, self._is_admin)
            if not self._snapshot.initialized and next_snapshot.initialized:
                logger.debug(f"Order baseline recorded: {len(next_snapshot.known_order_ids)} orders")
            elif self._snapshot.initialized and not next_snapshot.initialized:
                logger.debug("Order list came back empty, baseline reset")
            self._snapshot = next_snapshot

            if arrival is not None:
                logger.info(
                    f"{len(arrival.new_order_ids)} new order(s), latest #{arrival.latest_order_id} "
                    f"by {arrival.latest_user_type or 'unknown'}"
                )
                if arrival.notify:
                    self._dispatch(self._new_order_listeners, arrival)
                self._dispatch(self._changed_listeners, arrival)

            return arrival
        finally:
            self._poll_lock.release()

    def _is_admin(self, user_type: str) -> bool:
        return is_admin(user_type, self._admin_user_type)

    def _fetch_orders(self):
        try:
            with self._client_factory() as api_client:
                items = api_client.list_orders(self._filters)
        except Exception as e:
            raise PollError(f"Order poll failed: {e}") from e
        return orders_from_api_data(items)

    def _dispatch(self, listeners: List[ArrivalListener], arrival: OrderArrival) -> None:
        with self._listeners_lock:
            callbacks = list(listeners)
        for callback in callbacks:
            try:
                callback(arrival)
            except Exception as e:
                logger.error(f"Order listener {callback!r} failed: {e}", exc_info=True)

    def _log_failure(self, error: PollError) -> None:
        self._consecutive_failures += 1

        # Log with increasing severity based on consecutive failures
        if self._consecutive_failures == 1:
            logger.warning(str(error))
        elif self._consecutive_failures <= 3:
            logger.error(f"{error} ({self._consecutive_failures} consecutive)")
        elif self._consecutive_failures % 5 == 0:
            logger.error(f"Order polling still failing ({self._consecutive_failures} consecutive): {error}")
