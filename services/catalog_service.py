"""
Product catalog service with background refresh thread.

This service keeps the brief product list in memory so scans can be
resolved without a network round trip. It runs a background thread that
re-fetches the list every few minutes.

COMPLETE THREAD ISOLATION:
    - This service has its OWN OrderAPIClient instance per refresh
    - It does NOT share any state with request handlers or the watcher
    - Routes read the catalog via get_snapshot() which returns immutable data

Thread Safety:
    - Background thread creates new CatalogSnapshot on each refresh
    - Request threads read the current snapshot via atomic reference
    - No locks needed - Python's GIL + immutable data = thread-safe

Usage:
    # At app startup
    catalog_service = CatalogService(client_factory)
    catalog_service.start()

    # In routes (request thread)
    product = catalog_service.lookup_code(request_code)

    # At app shutdown
    catalog_service.stop()
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from core.api_client import OrderAPIClient
from core.exceptions import LookupMiss, LookupPending
from models.catalog import CatalogSnapshot, ProductBrief
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)


class CatalogService:
    """
    Background service for catalog refresh and product lookup.

    This service:
    1. Creates its OWN API client for each refresh
    2. Runs a background thread that fetches the catalog periodically
    3. Stores snapshots as immutable objects for thread-safe reading
    4. Resolves scanned codes and selected ids against the current snapshot

    Attributes:
        refresh_interval_seconds: Time between refreshes (default 300)
        is_running: Whether the background thread is active
    """

    def __init__(
        self,
        client_factory: Callable[[], OrderAPIClient],
        refresh_interval_seconds: float = 300.0
    ):
        """
        Initialize catalog service.

        Args:
            client_factory: Builds a fresh OrderAPIClient (service token)
            refresh_interval_seconds: Seconds between catalog refreshes
        """
        self._client_factory = client_factory
        self._refresh_interval = refresh_interval_seconds

        # Thread control
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False

        # Start with a not-loaded snapshot so lookups report LookupPending
        self._current_snapshot: CatalogSnapshot = CatalogSnapshot.create_empty()

        # Track consecutive failures for logging
        self._consecutive_failures = 0

        logger.info(f"CatalogService initialized (refresh interval: {refresh_interval_seconds}s)")

    @property
    def is_running(self) -> bool:
        """Whether the background refresh thread is active."""
        return self._is_running

    @property
    def refresh_interval_seconds(self) -> float:
        return self._refresh_interval

    def start(self) -> None:
        """
        Start the background refresh thread.

        The thread fetches the catalog immediately, then every
        refresh_interval_seconds until stop() is called.
        """
        if self._is_running:
            logger.warning("CatalogService already running")
            return

        logger.info("Starting catalog refresh thread...")

        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._refresh_loop,
            name="Catalog",
            daemon=True
        )
        self._is_running = True
        self._thread.start()

        logger.info("Catalog refresh thread started")

    def stop(self) -> None:
        """Signal the refresh thread to stop and wait for it. Safe to call twice."""
        if not self._is_running:
            return

        logger.info("Stopping catalog refresh thread...")

        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

            if self._thread.is_alive():
                logger.warning("Catalog thread did not stop cleanly")

        self._is_running = False
        self._thread = None

        logger.info("Catalog refresh thread stopped")

    def get_snapshot(self) -> CatalogSnapshot:
        """
        Get the current catalog snapshot (never None).

        May be stale if recent refreshes failed; check snapshot.is_stale.
        """
        return self._current_snapshot

    def lookup_code(self, code: Any) -> Optional[ProductBrief]:
        """
        Resolve a scanned barcode or slug.

        Args:
            code: Raw scan input; numbers are read as their digits and
                  surrounding whitespace is ignored

        Returns:
            The matching product, or None for empty input (a no-op scan)

        Raises:
            LookupPending: Catalog not loaded yet; retry the scan
            LookupMiss: No product has this barcode or slug
        """
        text = "" if code is None else str(code).strip()
        if not text:
            return None

        snapshot = self._ready_snapshot()
        product = snapshot.find_by_code(text)
        if product is None:
            logger.debug(f"Scan miss: {text!r}")
            raise LookupMiss(text)
        return product

    def lookup_id(self, product_id: int) -> ProductBrief:
        """
        Resolve a product picked from a selection control.

        Raises:
            LookupPending: Catalog not loaded yet
            LookupMiss: No product has this id
        """
        snapshot = self._ready_snapshot()
        product = snapshot.find_by_id(product_id)
        if product is None:
            raise LookupMiss(str(product_id))
        return product

    def _ready_snapshot(self) -> CatalogSnapshot:
        snapshot = self._current_snapshot
        if not snapshot.is_ready:
            raise LookupPending()
        return snapshot

    def force_refresh(self) -> bool:
        """
        Refresh the catalog now, in the calling thread.

        Returns:
            True if refresh succeeded, False otherwise
        """
        logger.info("Forcing catalog refresh...")
        return self._do_refresh()

    def _refresh_loop(self) -> None:
        """Background thread main loop: fetch now, then every interval until stopped."""
        set_thread_name("Catalog")

        logger.info("Catalog refresh loop starting")

        self._do_refresh()

        while not self._stop_event.is_set():
            if self._stop_event.wait(timeout=self._refresh_interval):
                break

            self._do_refresh()

        logger.info("Catalog refresh loop exiting")

    def _do_refresh(self) -> bool:
        """
        Perform a single catalog refresh.

        On failure the previous snapshot is kept.

        Returns:
            True if refresh succeeded, False otherwise
        """
        logger.debug("Refreshing catalog...")

        try:
            with self._client_factory() as api_client:
                items = api_client.list_products_brief()

            new_snapshot = CatalogSnapshot.from_api_data(items)

            # Atomic reference swap
            self._current_snapshot = new_snapshot

            if self._consecutive_failures > 0:
                logger.info(
                    f"Catalog refresh recovered after {self._consecutive_failures} failures"
                )
            self._consecutive_failures = 0

            logger.debug(f"Catalog refreshed: {len(new_snapshot.products)} products")

            return True

        except Exception as e:
            self._consecutive_failures += 1

            # Log with increasing severity based on consecutive failures
            if self._consecutive_failures == 1:
                logger.warning(f"Catalog refresh failed: {e}")
            elif self._consecutive_failures <= 3:
                logger.error(f"Catalog refresh failed ({self._consecutive_failures} consecutive): {e}")
            elif self._consecutive_failures % 5 == 0:
                logger.error(
                    f"Catalog refresh still failing ({self._consecutive_failures} consecutive): {e}"
                )

            return False
