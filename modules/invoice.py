"""Invoice totals for an order cart."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable

from models.cart import CartLine
from models.money import ZERO, format_money, to_decimal
from models.order import OrderDraft, OrderStatus


@dataclass(frozen=True)
class InvoiceTotals:
    """
    Derived totals of a cart. Never stored; recompute on every change.

    Amounts keep full precision; use format_money() for display.
    """

    subtotal: Decimal
    discount: Decimal
    paid: Decimal
    total_after_discount: Decimal
    remaining: Decimal

    @property
    def status(self) -> OrderStatus:
        return derive_payment_status(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": format_money(self.subtotal),
            "discount": format_money(self.discount),
            "paid": format_money(self.paid),
            "total_after_discount": format_money(self.total_after_discount),
            "remaining": format_money(self.remaining),
            "status": self.status.value,
        }


def compute_totals(lines: Iterable[CartLine], discount: Any = ZERO, paid: Any = ZERO) -> InvoiceTotals:
    """
    Compute subtotal, total after discount and remaining balance.

    Unusable prices or quantities count as zero. The discount never takes
    the total below zero and overpayment never makes remaining negative.
    """
    subtotal = ZERO
    for line in lines:
        subtotal += to_decimal(line.unit_price) * to_decimal(line.quantity)

    discount_amount = to_decimal(discount)
    paid_amount = max(to_decimal(paid), ZERO)

    total_after_discount = max(subtotal - discount_amount, ZERO)
    remaining = max(total_after_discount - paid_amount, ZERO)

    return InvoiceTotals(
        subtotal=subtotal,
        discount=discount_amount,
        paid=paid_amount,
        total_after_discount=total_after_discount,
        remaining=remaining,
    )


def derive_payment_status(totals: InvoiceTotals) -> OrderStatus:
    """
    Payment status implied by the totals.

    paid:      nothing left and something was owed
    half-paid: something paid, something left
    unpaid:    everything else, including an empty invoice
    """
    if totals.remaining == ZERO and totals.total_after_discount > ZERO:
        return OrderStatus.PAID
    if totals.paid > ZERO and totals.remaining > ZERO:
        return OrderStatus.HALF_PAID
    return OrderStatus.UNPAID


def draft_totals(draft: OrderDraft) -> InvoiceTotals:
    """Totals of a draft's current cart, discount and paid amount."""
    return compute_totals(draft.cart.lines, draft.discount, draft.paid_amount)
