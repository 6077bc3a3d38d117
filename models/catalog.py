"""
Product catalog data models.

These models represent point-in-time snapshots of the brief product list
used for barcode/slug lookups while building an order.

Thread Safety:
    - CatalogSnapshot is a frozen dataclass (immutable)
    - Safe to read from any thread without locks
    - New snapshots replace old ones atomically
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, Iterable, Optional

from .money import to_decimal


def _optional_code(value: Any) -> Optional[str]:
    """Barcodes may arrive as numbers; codes are compared as text."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ProductBrief:
    """
    One entry of the brief product list.

    Immutable; carries only what the cart needs.
    """

    id: int
    """Catalog product id."""

    name: str
    """Display name, captured into the cart line at add-time."""

    price: Decimal
    """Catalog unit price."""

    barcode: Optional[str] = None
    """Printed barcode, exact match only."""

    slug: Optional[str] = None
    """URL slug, also encoded in product QR labels."""

    quantity_type: int = 0
    """Unit classifier (piece, box, liter...). 0 when unknown."""

    def matches_code(self, code: str) -> bool:
        """Case-sensitive exact match against barcode or slug."""
        return (bool(self.barcode) and self.barcode == code) or (
            bool(self.slug) and self.slug == code
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "barcode": self.barcode,
            "slug": self.slug,
            "quantity_type": self.quantity_type,
        }

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "ProductBrief":
        """Create from one item of GET /products/all/brief."""
        return cls(
            id=int(data.get("id", 0)),
            name=str(data.get("name") or ""),
            price=to_decimal(data.get("price")),
            barcode=_optional_code(data.get("barcode")),
            slug=_optional_code(data.get("slug")),
            quantity_type=int(data.get("quantityType") or 0),
        )


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Point-in-time snapshot of the brief product list.

    This is a FROZEN dataclass - completely immutable after creation.
    The catalog service creates a new snapshot on each refresh.

    Lookups never mutate anything; a scan arriving before the first fetch
    completes sees ``is_loaded == False`` and is told to wait.
    """

    fetched_at: datetime
    """When this snapshot was fetched from the API."""

    products: tuple[ProductBrief, ...]
    """Products in the order the API listed them."""

    is_loaded: bool = True
    """False only for the placeholder created before the first fetch."""

    @property
    def age_seconds(self) -> float:
        """How old this snapshot is in seconds."""
        now = datetime.now(timezone.utc)
        return (now - self.fetched_at).total_seconds()

    @property
    def is_stale(self) -> bool:
        """Whether this snapshot is older than 15 minutes."""
        return self.age_seconds > 900.0

    @property
    def is_ready(self) -> bool:
        """Loaded and non-empty; an empty list is treated as not loaded yet."""
        return self.is_loaded and len(self.products) > 0

    def find_by_code(self, code: str) -> Optional[ProductBrief]:
        """
        First product whose barcode or slug equals ``code`` exactly.

        Args:
            code: Already trimmed scan input

        Returns:
            ProductBrief if found, None otherwise
        """
        for product in self.products:
            if product.matches_code(code):
                return product
        return None

    def find_by_id(self, product_id: int) -> Optional[ProductBrief]:
        """Product with this id, or None."""
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fetched_at": self.fetched_at.isoformat(),
            "products": [p.to_dict() for p in self.products],
            "is_loaded": self.is_loaded,
            "age_seconds": self.age_seconds,
            "is_stale": self.is_stale,
        }

    @classmethod
    def from_api_data(cls, items: Iterable[Dict[str, Any]]) -> "CatalogSnapshot":
        """
        Create snapshot from the brief product list.

        Items without an id are skipped.
        """
        products = tuple(
            ProductBrief.from_api_data(item)
            for item in items
            if isinstance(item, dict) and item.get("id") is not None
        )
        return cls(
            fetched_at=datetime.now(timezone.utc),
            products=products,
            is_loaded=True,
        )

    @classmethod
    def create_empty(cls) -> "CatalogSnapshot":
        """
        Create an empty, not-loaded snapshot (before the first fetch).

        Lookups against it raise LookupPending.
        """
        old_time = datetime(2000, 1, 1, tzinfo=timezone.utc)
        return cls(fetched_at=old_time, products=(), is_loaded=False)

