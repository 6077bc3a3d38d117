"""
New-order detection models.

The order watcher keeps an OrderArrivalSnapshot of the order ids it saw on
its previous poll. Each successful poll advances the snapshot and may emit
an OrderArrival describing the orders that appeared since.

Thread Safety:
    - Both classes are frozen dataclasses
    - advance() is pure: it returns a new snapshot instead of mutating
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Any, FrozenSet, Optional, Sequence, Tuple

from .order import OrderSummary


@dataclass(frozen=True)
class OrderArrival:
    """
    Orders that appeared between two polls.

    ``notify`` is False when the latest new order was created by an
    administrative user; such orders only refresh order lists.
    """

    new_order_ids: Tuple[int, ...]
    """New ids in the order the API listed them."""

    latest_order_id: int
    """Last new id in list order."""

    latest_user_type: str
    """Creator role of the latest order."""

    notify: bool
    """Whether to pop a "new order" prompt for the latest order."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "new_order_ids": list(self.new_order_ids),
            "latest_order_id": self.latest_order_id,
            "latest_user_type": self.latest_user_type,
            "notify": self.notify,
        }


@dataclass(frozen=True)
class OrderArrivalSnapshot:
    """
    Order ids observed on the previous poll.

    Until the first non-empty poll the snapshot is uninitialized, so the
    initial full list is recorded as a baseline rather than reported as new.
    """

    known_order_ids: FrozenSet[int] = frozenset()
    initialized: bool = False

    def advance(
        self,
        orders: Sequence[OrderSummary],
        is_admin: Callable[[str], bool]
    ) -> Tuple["OrderArrivalSnapshot", Optional[OrderArrival]]:
        """
        Apply one successful poll.

        Args:
            orders: Fetched order list, in API order
            is_admin: Predicate on an order's user type

        Returns:
            (next snapshot, arrival or None)
        """
        if not orders:
            # An empty list after a non-empty one starts a fresh baseline
            if self.initialized and self.known_order_ids:
                return OrderArrivalSnapshot(), None
            return self, None

        current_ids = frozenset(order.id for order in orders)
        if not self.initialized:
            return OrderArrivalSnapshot(current_ids, True), None

        new_ids = []
        for order in orders:
            if order.id not in self.known_order_ids and order.id not in new_ids:
                new_ids.append(order.id)

        next_snapshot = OrderArrivalSnapshot(current_ids, True)
        if not new_ids:
            return next_snapshot, None

        latest_id = new_ids[-1]
        latest = next(order for order in orders if order.id == latest_id)
        arrival = OrderArrival(
            new_order_ids=tuple(new_ids),
            latest_order_id=latest_id,
            latest_user_type=latest.user_type,
            notify=not is_admin(latest.user_type),
        )
        return next_snapshot, arrival
