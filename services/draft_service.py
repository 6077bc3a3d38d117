"""
Order draft storage.

Drafts live in process memory only. The browser session references a draft
by its id; everything else (cart, discount, paid amount) stays here.

Drafts that are never submitted or cancelled (a closed browser tab) are swept
once they are older than max_age_seconds; the sweep runs whenever a new
draft is stored.

Thread Safety:
    - DraftStore uses threading.Lock for its map of drafts
    - Each OrderDraft carries its own lock for cart mutations
    - Two rapid scans on the same draft serialize on the draft lock and
      both merge into the same line
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from core.exceptions import DraftNotFoundError
from models.order import OrderDetail, OrderDraft
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class DraftStore:
    """
    Thread-safe storage for order drafts.

    Usage:
        draft = store.create()
        draft = store.get(draft_id)      # raises DraftNotFoundError
        store.discard(draft_id)          # after submit or cancel
    """

    def __init__(self, max_age_seconds: Optional[float] = 12 * 60 * 60):
        """
        Initialize empty draft store.

        Args:
            max_age_seconds: Age after which an abandoned draft is swept
                             (None keeps drafts until discarded)
        """
        self._drafts: Dict[str, OrderDraft] = {}
        self._lock = threading.Lock()
        self._max_age_seconds = max_age_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._drafts)

    def create(self) -> OrderDraft:
        """Create and store an empty draft for a new order."""
        draft = OrderDraft()
        return self._put(draft)

    def hydrate(self, detail: OrderDetail) -> OrderDraft:
        """Create and store a draft for editing an existing order."""
        draft = OrderDraft.from_order_detail(detail)
        self._put(draft)
        logger.info(
            f"Draft {draft.draft_id[:8]} hydrated from order {detail.id} "
            f"({len(draft.cart)} lines)"
        )
        return draft

    def get(self, draft_id: str) -> OrderDraft:
        """
        Get a draft by id.

        Raises:
            DraftNotFoundError: Unknown, submitted, or cancelled draft
        """
        with self._lock:
            draft = self._drafts.get(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        return draft

    def find(self, draft_id: Optional[str]) -> Optional[OrderDraft]:
        """Like get(), but None for an unknown id."""
        if not draft_id:
            return None
        with self._lock:
            return self._drafts.get(draft_id)

    def discard(self, draft_id: str) -> bool:
        """
        Remove a draft.

        Returns:
            True if the draft existed
        """
        with self._lock:
            removed = self._drafts.pop(draft_id, None) is not None
        if removed:
            logger.debug(f"Discarded draft {draft_id[:8]}")
        return removed

    def draft_ids(self) -> List[str]:
        with self._lock:
            return list(self._drafts)

    def clear(self) -> int:
        """
        Remove all drafts.

        Returns:
            Number of drafts removed
        """
        with self._lock:
            count = len(self._drafts)
            self._drafts.clear()
        logger.info(f"Cleared {count} drafts from store")
        return count

    def sweep_expired(self) -> int:
        """
        Remove drafts older than max_age_seconds.

        Returns:
            Number of drafts removed
        """
        if self._max_age_seconds is None:
            return 0
        with self._lock:
            expired = [
                draft_id for draft_id, draft in self._drafts.items()
                if draft.age_seconds > self._max_age_seconds
            ]
            for draft_id in expired:
                del self._drafts[draft_id]
        if expired:
            logger.info(f"Swept {len(expired)} abandoned draft(s)")
        return len(expired)

    def _put(self, draft: OrderDraft) -> OrderDraft:
        self.sweep_expired()
        with self._lock:
            self._drafts[draft.draft_id] = draft
        logger.debug(f"Stored draft {draft.draft_id[:8]}")
        return draft
