"""
Unit tests for invoice totals and payment status.
"""

from decimal import Decimal

import pytest

from models.cart import Cart, CartLine
from models.catalog import ProductBrief
from models.money import format_money, parse_decimal
from models.order import OrderDraft, OrderStatus
from modules.invoice import compute_totals, derive_payment_status, draft_totals


def _line(price, quantity=1, product_id=1):
    return CartLine(product_id=product_id, product_name="Item", unit_price=price, quantity=quantity)


class TestComputeTotals:

    def test_worked_example(self):
        # 2 x 12.50 + 1 x 0.50, discount 3, paid 15
        lines = [_line(Decimal("12.50"), 2, 1), _line(Decimal("0.50"), 1, 2)]

        totals = compute_totals(lines, Decimal("3"), Decimal("15"))

        assert totals.subtotal == Decimal("25.50")
        assert totals.total_after_discount == Decimal("22.50")
        assert totals.remaining == Decimal("7.50")
        assert totals.to_dict()["remaining"] == "7.50"
        assert totals.status is OrderStatus.HALF_PAID

    def test_empty_cart_is_all_zero(self):
        totals = compute_totals([], 0, 0)

        assert totals.subtotal == 0
        assert totals.total_after_discount == 0
        assert totals.remaining == 0
        assert totals.to_dict()["subtotal"] == "0.00"

    def test_discount_never_drives_total_negative(self):
        totals = compute_totals([_line(Decimal("10"))], Decimal("50"), 0)

        assert totals.total_after_discount == 0
        assert totals.remaining == 0

    def test_overpayment_floors_remaining(self):
        totals = compute_totals([_line(Decimal("10"))], 0, Decimal("25"))
        assert totals.remaining == 0

    def test_negative_paid_is_clamped(self):
        totals = compute_totals([_line(Decimal("10"))], 0, Decimal("-5"))
        assert totals.remaining == Decimal("10")

    @pytest.mark.parametrize("bad", [None, "abc", float("nan"), float("inf"), ""])
    def test_unusable_price_counts_as_zero(self, bad):
        lines = [_line(bad, 2, 1), _line(Decimal("4"), 1, 2)]
        totals = compute_totals(lines, 0, 0)
        assert totals.subtotal == Decimal("4")

    @pytest.mark.parametrize("discount,paid", [
        ("0", "0"), ("100", "0"), ("0", "100"), ("-5", "-5"), ("3.333", "1.111"),
    ])
    def test_totals_never_negative(self, discount, paid):
        lines = [_line(Decimal("9.99"), 3, 1), _line(Decimal("0.01"), 1, 2)]
        totals = compute_totals(lines, Decimal(discount), Decimal(paid))

        assert totals.subtotal >= 0
        assert totals.total_after_discount >= 0
        assert totals.remaining >= 0

    def test_full_precision_until_formatting(self):
        lines = [_line(Decimal("10") / Decimal("3"), 3)]
        totals = compute_totals(lines, 0, 0)

        assert totals.subtotal != Decimal("10")
        assert format_money(totals.subtotal) == "10.00"


class TestPaymentStatus:

    def test_paid_in_full(self):
        totals = compute_totals([_line(Decimal("10"))], 0, Decimal("10"))
        assert derive_payment_status(totals) is OrderStatus.PAID

    def test_nothing_paid(self):
        totals = compute_totals([_line(Decimal("10"))], 0, 0)
        assert derive_payment_status(totals) is OrderStatus.UNPAID

    def test_partly_paid(self):
        totals = compute_totals([_line(Decimal("10"))], 0, Decimal("4"))

        assert totals.remaining == Decimal("6")
        assert derive_payment_status(totals) is OrderStatus.HALF_PAID

    def test_empty_invoice_is_unpaid(self):
        assert derive_payment_status(compute_totals([], 0, 0)) is OrderStatus.UNPAID


class TestDraftTotals:

    def test_recomputed_on_every_change(self):
        draft = OrderDraft()
        draft.add_product(ProductBrief(id=1, name="A", price=Decimal("12.50")))
        draft.add_product(ProductBrief(id=1, name="A", price=Decimal("12.50")))
        assert draft_totals(draft).subtotal == Decimal("25.00")

        draft.set_discount("5")
        draft.set_paid("20")
        totals = draft_totals(draft)

        assert totals.total_after_discount == Decimal("20.00")
        assert totals.remaining == 0
        assert totals.status is OrderStatus.PAID


class TestMoney:

    @pytest.mark.parametrize("value,expected", [
        ("7.5", "7.50"), (Decimal("0.005"), "0.01"), (2, "2.00"), (None, "0.00"),
    ])
    def test_format_money(self, value, expected):
        assert format_money(value) == expected

    def test_parse_decimal_rejects_bool(self):
        assert parse_decimal(True) is None

    def test_parse_decimal_float_uses_short_repr(self):
        assert parse_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", ["1e30", "-1e30", 1e300, "1000000000000"])
    def test_parse_decimal_rejects_oversized(self, value):
        assert parse_decimal(value) is None

    def test_format_money_of_oversized_is_zero(self):
        assert format_money("1e30") == "0.00"
