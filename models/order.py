"""
Order data models.

These models represent orders as the order API reports them, and the
in-memory draft a representative builds before submitting one.

Thread Safety:
    - OrderSummary, OrderDetail, Doctor, CurrentUser are frozen (read models)
    - OrderDraft is mutable; every mutation goes through ``draft.lock``
    - The draft's cart is an immutable Cart that is swapped, never edited
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Any, List, Optional, Tuple

from core.exceptions import ValidationError
from .cart import Cart, CartLine
from .catalog import ProductBrief
from .money import ZERO, parse_decimal, to_decimal


class OrderStatus(Enum):
    """
    Status of an order as stored by the order API.

    The first six track fulfilment; the last three track payment.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    PAID = "paid"
    HALF_PAID = "half-paid"
    UNPAID = "unpaid"

    @classmethod
    def parse(cls, value: Any) -> Optional["OrderStatus"]:
        """Status from its wire value, or None when unknown."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


# Numeric codes accepted by the order list "status" filter
STATUS_CODE_MAP: Dict[str, OrderStatus] = {
    "0": OrderStatus.PENDING,
    "1": OrderStatus.PAID,
    "2": OrderStatus.HALF_PAID,
    "3": OrderStatus.UNPAID,
}


def status_filter_code(value: Any) -> Optional[str]:
    """
    Normalize a status filter to the API's numeric code.

    Accepts the code itself ("1") or a status name ("paid").
    Returns None for an empty or unsupported value.
    """
    if value is None:
        return None
    text = str(value).strip().lower()
    if not text:
        return None
    if text in STATUS_CODE_MAP:
        return text
    for code, status in STATUS_CODE_MAP.items():
        if status.value == text:
            return code
    return None


def _optional_int(value: Any) -> Optional[int]:
    number = parse_decimal(value)
    if number is None:
        return None
    return int(number)


@dataclass(frozen=True)
class Doctor:
    """Doctor (customer) an order is placed for."""

    id: int
    name: str
    phone: str = ""
    address: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "phone": self.phone, "address": self.address}

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "Doctor":
        return cls(
            id=int(data.get("id") or 0),
            name=str(data.get("name") or ""),
            phone=str(data.get("phone") or ""),
            address=str(data.get("address") or ""),
        )


@dataclass(frozen=True)
class CurrentUser:
    """Profile of the representative acting in this session."""

    full_name: str
    email: str = ""
    address: str = ""
    user_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "full_name": self.full_name,
            "email": self.email,
            "address": self.address,
            "user_type": self.user_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CurrentUser":
        """Create from dictionary (e.g., from session)."""
        return cls(
            full_name=data.get("full_name", ""),
            email=data.get("email", ""),
            address=data.get("address", ""),
            user_type=data.get("user_type", ""),
        )

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "CurrentUser":
        """Create from GET /users/self. The API spells the role ``UserType``."""
        return cls(
            full_name=str(data.get("fullName") or ""),
            email=str(data.get("email") or ""),
            address=str(data.get("address") or ""),
            user_type=str(data.get("UserType") or data.get("userType") or ""),
        )


@dataclass(frozen=True)
class OrderSummary:
    """One row of the order list."""

    id: int
    status: Optional[OrderStatus]
    total: Decimal
    rest: Decimal
    total_paid: Decimal
    discount: Decimal
    doctor_id: Optional[int] = None
    doctor_name: str = ""
    rep_name: str = ""
    user_type: str = ""
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value if self.status else None,
            "total": str(self.total),
            "rest": str(self.rest),
            "total_paid": str(self.total_paid),
            "discount": str(self.discount),
            "doctor_id": self.doctor_id,
            "doctor_name": self.doctor_name,
            "rep_name": self.rep_name,
            "user_type": self.user_type,
            "created_at": self.created_at,
        }

    @staticmethod
    def _common_fields(data: Dict[str, Any]) -> Dict[str, Any]:
        doctor = data.get("doctor") or {}
        return {
            "id": int(data.get("id") or 0),
            "status": OrderStatus.parse(data.get("status")),
            "total": to_decimal(data.get("total")),
            "rest": to_decimal(data.get("rest")),
            "total_paid": to_decimal(data.get("totalPaid", data.get("paid"))),
            "discount": to_decimal(data.get("discount")),
            "doctor_id": _optional_int(data.get("doctorId", doctor.get("id"))),
            "doctor_name": str(doctor.get("name") or ""),
            "rep_name": str(data.get("RepName") or ""),
            "user_type": str(data.get("userType") or ""),
            "created_at": str(data.get("createdAt") or data.get("date") or ""),
        }

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "OrderSummary":
        """Create from one item of GET /orders."""
        return cls(**cls._common_fields(data))


@dataclass(frozen=True)
class OrderDetail(OrderSummary):
    """An order with its contact details and line items."""

    phone: str = ""
    address: str = ""
    cart_products: Tuple[Dict[str, Any], ...] = ()

    def cart(self) -> Cart:
        """The order's line items as a cart."""
        return Cart.from_api_data(list(self.cart_products))

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["phone"] = self.phone
        data["address"] = self.address
        data["lines"] = [line.to_dict() for line in self.cart()]
        return data

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "OrderDetail":
        """Create from the merged GET /orders/{id} payload."""
        cart_products = tuple(p for p in (data.get("cartProducts") or []) if isinstance(p, dict))
        return cls(
            phone=str(data.get("phone") or ""),
            address=str(data.get("address") or ""),
            cart_products=cart_products,
            **cls._common_fields(data),
        )


def _parse_amount(value: Any, name: str) -> Decimal:
    """Non-negative amount from form/JSON input, or ValidationError."""
    amount = parse_decimal(value)
    if amount is None:
        raise ValidationError(f"{name} must be a valid amount", code=f"invalid_{name}", field=name)
    if amount < 0:
        raise ValidationError(f"{name} must not be negative", code=f"invalid_{name}", field=name)
    return amount


@dataclass
class OrderDraft:
    """
    An order being built in memory.

    Lifecycle:
        1. Created empty for a new order, or hydrated from an existing one
        2. Edited: scans, line edits, doctor/discount/paid
        3. Submitted (then discarded) or cancelled

    Totals are never stored here; they are recomputed from the cart each
    time they are needed.

    Callers hold ``lock`` around read-modify-write sequences. The helper
    methods below take it themselves.
    """

    draft_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    """Opaque handle referenced from the browser session."""

    order_id: Optional[int] = None
    """Set when editing an existing order."""

    doctor_id: Optional[int] = None
    discount: Decimal = ZERO
    paid_amount: Decimal = ZERO
    cart: Cart = field(default_factory=Cart)

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def is_edit(self) -> bool:
        return self.order_id is not None

    @property
    def age_seconds(self) -> float:
        """Seconds since the draft was opened."""
        return (datetime.now(timezone.utc) - self.created_at).total_seconds()

    def add_product(self, product: ProductBrief) -> CartLine:
        """Add or merge a product; returns the resulting line."""
        with self.lock:
            self.cart, line = self.cart.add_or_merge(product)
            return line

    def edit_line(self, index: int, changes: Dict[str, Any]) -> bool:
        """
        Apply line edits in a fixed order: quantity, unit_price, total, notes.

        Returns:
            True if the cart changed
        """
        with self.lock:
            cart = self.cart
            cart.line_at(index)
            if "quantity" in changes:
                cart = cart.set_quantity(index, changes["quantity"])
            if "unit_price" in changes:
                cart = cart.set_unit_price(index, changes["unit_price"])
            if "total" in changes:
                cart = cart.set_line_total(index, changes["total"])
            if "notes" in changes:
                cart = cart.set_notes(index, changes["notes"])
            changed = cart is not self.cart
            self.cart = cart
            return changed

    def remove_line(self, index: int) -> None:
        with self.lock:
            self.cart = self.cart.remove_line(index)

    def set_doctor(self, doctor_id: Any) -> None:
        """Select the doctor; None or "" clears the selection."""
        if doctor_id is None or doctor_id == "":
            value = None
        else:
            value = _optional_int(doctor_id)
            if value is None:
                raise ValidationError("doctor id must be a number", code="invalid_doctor", field="doctor_id")
        with self.lock:
            self.doctor_id = value

    def set_discount(self, value: Any) -> None:
        amount = _parse_amount(value, "discount")
        with self.lock:
            self.discount = amount

    def set_paid(self, value: Any) -> None:
        amount = _parse_amount(value, "paid")
        with self.lock:
            self.paid_amount = amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "draft_id": self.draft_id,
            "order_id": self.order_id,
            "doctor_id": self.doctor_id,
            "discount": str(self.discount),
            "paid": str(self.paid_amount),
            "lines": self.cart.to_dict()["lines"],
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_order_detail(cls, detail: OrderDetail) -> "OrderDraft":
        """
        Draft for editing an existing order.

        The amount already paid is carried over from the order.
        """
        return cls(
            order_id=detail.id,
            doctor_id=detail.doctor_id,
            discount=detail.discount,
            paid_amount=detail.total_paid,
            cart=detail.cart(),
        )


def orders_from_api_data(items: List[Dict[str, Any]]) -> List[OrderSummary]:
    """Order list rows, skipping items without an id."""
    return [
        OrderSummary.from_api_data(item)
        for item in items
        if isinstance(item, dict) and item.get("id") is not None
    ]
