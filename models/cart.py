"""
Order cart data models.

A cart is the ordered list of product lines of one order draft: what was
scanned or picked, how many, at what price, with which notes.

Immutability:
    - CartLine and Cart are frozen dataclasses
    - Every edit returns a NEW Cart; lines are never changed in place
    - A rejected edit (quantity < 1, negative total) returns the same Cart,
      so ``new_cart is cart`` tells the caller nothing changed

Usage:
    cart = Cart()
    cart, line = cart.add_or_merge(product)   # quantity 1
    cart, line = cart.add_or_merge(product)   # same line, quantity 2
    cart = cart.set_line_total(0, Decimal("30"))
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, Any, Iterator, List, Optional, Tuple

from core.exceptions import ValidationError
from .catalog import ProductBrief
from .money import parse_decimal, to_decimal

MAX_QUANTITY = 1000000


@dataclass(frozen=True)
class CartLine:
    """
    One product line of a cart.

    At most one line exists per product id; adding the same product again
    increments ``quantity``.
    """

    product_id: int
    """Catalog product id (merge identity)."""

    product_name: str
    """Display name captured when the line was added."""

    unit_price: Decimal
    """Editable price; starts at the catalog price."""

    quantity: int = 1
    """Always >= 1."""

    notes: str = ""
    """Free text, stored verbatim."""

    quantity_type: int = 0
    """Unit classifier, display only."""

    line_id: int = 0
    """Id the order API knows this line by; 0 for a line added in this draft."""

    @property
    def is_new(self) -> bool:
        """Line was added in this draft and is not persisted yet."""
        return self.line_id == 0

    @property
    def submission_id(self) -> int:
        """Id sent for this line: the persisted id, or the product id for a new line."""
        return self.line_id or self.product_id

    @property
    def line_total(self) -> Decimal:
        """unit_price x quantity; unusable values count as zero."""
        return to_decimal(self.unit_price) * to_decimal(self.quantity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "line_id": self.line_id,
            "product_name": self.product_name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "notes": self.notes,
            "quantity_type": self.quantity_type,
            "line_total": str(self.line_total),
        }

    @classmethod
    def from_product(cls, product: ProductBrief) -> "CartLine":
        """New line for a freshly scanned product."""
        return cls(
            product_id=product.id,
            product_name=product.name,
            unit_price=product.price,
            quantity=1,
            notes="",
            quantity_type=product.quantity_type,
            line_id=0,
        )

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "CartLine":
        """
        Create from one cart product of GET /orders/{id}.

        The line is keyed by its product id, which is also the id the
        update endpoint expects back.
        """
        product = data.get("product") or {}
        product_id = int(data.get("productId") or product.get("id") or 0)
        quantity = int(to_decimal(data.get("quantity"))) or 1
        return cls(
            product_id=product_id,
            product_name=str(product.get("name") or ""),
            unit_price=to_decimal(data.get("productPrice")),
            quantity=max(quantity, 1),
            notes=str(data.get("notes") or ""),
            quantity_type=int(product.get("quantityType") or 0),
            line_id=product_id,
        )


def _parse_quantity(value: Any) -> int:
    """Whole number up to MAX_QUANTITY from form/JSON input, or ValidationError."""
    number = parse_decimal(value)
    if number is None or number != number.to_integral_value() or number > MAX_QUANTITY:
        raise ValidationError(
            f"quantity must be a whole number up to {MAX_QUANTITY}", code="invalid_quantity", field="quantity"
        )
    return int(number)


@dataclass(frozen=True)
class Cart:
    """
    Ordered, immutable collection of cart lines.

    Line order is insertion order and is kept for display and for the
    products[i] indexes of the submitted form.
    """

    lines: Tuple[CartLine, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find_index(self, product_id: int) -> Optional[int]:
        """Index of the line for this product, or None."""
        for index, line in enumerate(self.lines):
            if line.product_id == product_id:
                return index
        return None

    def line_at(self, index: int) -> CartLine:
        """
        Line at ``index``.

        Raises:
            ValidationError: If no line exists at that index
        """
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(self.lines):
            raise ValidationError(f"no cart line at index {index}", code="invalid_line")
        return self.lines[index]

    # =========================================================================
    # EDITS (each returns a new Cart, or self when the edit is rejected)
    # =========================================================================

    def add_or_merge(self, product: ProductBrief) -> Tuple["Cart", CartLine]:
        """
        Add a product, or bump the quantity of its existing line.

        Returns:
            (new cart, the added or updated line)
        """
        index = self.find_index(product.id)
        if index is not None:
            current = self.lines[index]
            updated = replace(current, quantity=current.quantity + 1)
            return self._with_line(index, updated), updated

        line = CartLine.from_product(product)
        return Cart(self.lines + (line,)), line

    def set_quantity(self, index: int, value: Any) -> "Cart":
        """
        Replace the quantity; values below 1 are ignored.

        Raises:
            ValidationError: Not a whole number, or above MAX_QUANTITY
        """
        line = self.line_at(index)
        quantity = _parse_quantity(value)
        if quantity < 1 or quantity == line.quantity:
            return self
        return self._with_line(index, replace(line, quantity=quantity))

    def set_unit_price(self, index: int, value: Any) -> "Cart":
        """Replace the unit price. Non-negative is only enforced on submit."""
        line = self.line_at(index)
        price = parse_decimal(value)
        if price is None:
            raise ValidationError("unit price must be a valid amount", code="invalid_price", field="unit_price")
        return self._with_line(index, replace(line, unit_price=price))

    def set_notes(self, index: int, value: Any) -> "Cart":
        """Replace the notes verbatim."""
        line = self.line_at(index)
        notes = "" if value is None else str(value)
        return self._with_line(index, replace(line, notes=notes))

    def set_line_total(self, index: int, total: Any) -> "Cart":
        """
        Edit the displayed line total by back-solving the unit price.

        unit_price = total / quantity, stored at full precision. A negative
        total is ignored; repeating the same total changes nothing.
        """
        line = self.line_at(index)
        amount = parse_decimal(total)
        if amount is None:
            raise ValidationError("line total must be a valid amount", code="invalid_total", field="total")
        if amount < 0:
            return self
        unit_price = amount / Decimal(line.quantity)
        if unit_price == line.unit_price:
            return self
        return self._with_line(index, replace(line, unit_price=unit_price))

    def remove_line(self, index: int) -> "Cart":
        """Delete a line; later lines shift down by one."""
        self.line_at(index)
        return Cart(self.lines[:index] + self.lines[index + 1:])

    def _with_line(self, index: int, line: CartLine) -> "Cart":
        lines: List[CartLine] = list(self.lines)
        lines[index] = line
        return Cart(tuple(lines))

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        return {"lines": [line.to_dict() for line in self.lines]}

    @classmethod
    def from_api_data(cls, cart_products: List[Dict[str, Any]]) -> "Cart":
        """
        Hydrate from an existing order's cart products.

        Cart products of the same product are merged so the one-line-per-
        product invariant holds from the start.
        """
        cart = cls()
        for data in cart_products or []:
            if not isinstance(data, dict):
                continue
            line = CartLine.from_api_data(data)
            index = cart.find_index(line.product_id)
            if index is None:
                cart = Cart(cart.lines + (line,))
            else:
                current = cart.lines[index]
                cart = cart._with_line(index, replace(current, quantity=current.quantity + line.quantity))
        return cart
