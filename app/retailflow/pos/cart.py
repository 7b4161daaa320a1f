"""In-memory cart for a single point-of-sale transaction.

A :class:`CartSession` is built by scanning barcodes against a snapshot of the
product catalog taken when the cart was opened (or last refreshed). Only the
first unit of a product is gated on the cached stock level; quantities set
afterwards are not checked against stock until commit.

Each cart runs one transaction at a time::

    IDLE -> BUILDING -> COMMITTING -> COMMITTED | FAILED

``COMMITTED`` and ``FAILED`` are terminal for the transaction. :meth:`CartSession.clear`
starts a new transaction with a fresh ``transaction_id``.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from app.retailflow.core.error_catalog import AppError, ErrorCatalog

CENT = Decimal("0.01")
MAX_LINE_QUANTITY = 2**31 - 1


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class CartState(str, Enum):
    IDLE = "IDLE"
    BUILDING = "BUILDING"
    COMMITTING = "COMMITTING"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"


_OPEN_STATES = {CartState.IDLE, CartState.BUILDING}


@dataclass(frozen=True)
class CachedProduct:
    id: str
    barcode: str
    name: str
    selling_price: Decimal
    quantity: int

    @classmethod
    def from_row(cls, row) -> CachedProduct:
        """Build a cache entry from a product row, rejecting incomplete rows."""
        missing = [field for field in ("id", "barcode", "name", "selling_price", "quantity") if getattr(row, field, None) is None]
        if missing:
            raise ValueError(f"product row is missing fields: {', '.join(missing)}")
        if not isinstance(row.quantity, int) or isinstance(row.quantity, bool):
            raise ValueError(f"product {row.id} has a non-integer quantity: {row.quantity!r}")
        price = to_money(row.selling_price)
        if price < 0:
            raise ValueError(f"product {row.id} has a negative selling price")
        return cls(
            id=str(row.id),
            barcode=str(row.barcode),
            name=str(row.name),
            selling_price=price,
            quantity=row.quantity,
        )


@dataclass
class CartLine:
    product_id: str
    barcode: str
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_id(self) -> str:
        return self.product_id

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    total: Decimal
    item_count: int


def compute_totals(lines: Iterable[CartLine], tax_rate: Decimal) -> CartTotals:
    lines = list(lines)
    subtotal = sum((line.line_total for line in lines), Decimal("0.00"))
    tax = to_money(subtotal * tax_rate)
    return CartTotals(
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax=tax,
        total=subtotal + tax,
        item_count=sum(line.quantity for line in lines),
    )


@dataclass(frozen=True)
class CommitSnapshot:
    transaction_id: str
    lines: tuple[CartLine, ...]
    totals: CartTotals


class CartSession:
    def __init__(
        self,
        *,
        owner_id: str,
        tax_rate: Decimal,
        products: Iterable[CachedProduct] = (),
        cart_id: str | None = None,
    ) -> None:
        self.cart_id = cart_id or str(uuid.uuid4())
        self.owner_id = owner_id
        self.tax_rate = Decimal(str(tax_rate))
        self.transaction_id = str(uuid.uuid4())
        self.state = CartState.IDLE
        self.failure_reason: str | None = None
        self.last_sale_id: str | None = None
        self._lines: dict[str, CartLine] = {}
        self._products_by_barcode: dict[str, CachedProduct] = {}
        self._lock = threading.RLock()
        self.refresh_products(products)

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def cached_product_count(self) -> int:
        return len(self._products_by_barcode)

    def refresh_products(self, products: Iterable[CachedProduct]) -> None:
        with self._lock:
            self._products_by_barcode = {product.barcode: product for product in products}

    def totals(self) -> CartTotals:
        return compute_totals(self._lines.values(), self.tax_rate)

    def ensure_open(self) -> None:
        if self.state not in _OPEN_STATES:
            raise AppError(
                ErrorCatalog.CART_CLOSED,
                details={"state": self.state.value, "transaction_id": self.transaction_id},
            )

    def _sync_state(self) -> None:
        self.state = CartState.BUILDING if self._lines else CartState.IDLE

    def add_by_barcode(self, barcode: str) -> CartLine:
        with self._lock:
            self.ensure_open()
            product = self._products_by_barcode.get(barcode.strip())
            if product is None:
                raise AppError(ErrorCatalog.PRODUCT_NOT_FOUND, details={"barcode": barcode})
            if product.quantity <= 0:
                raise AppError(ErrorCatalog.OUT_OF_STOCK, details={"barcode": barcode, "product_id": product.id})

            line = self._lines.get(product.id)
            if line is None:
                line = CartLine(
                    product_id=product.id,
                    barcode=product.barcode,
                    name=product.name,
                    unit_price=product.selling_price,
                    quantity=1,
                )
                self._lines[product.id] = line
            else:
                line.quantity += 1
            self._sync_state()
            return line

    def set_line_quantity(self, line_id: str, quantity: int) -> CartLine | None:
        """Set a line's quantity; zero removes the line and returns ``None``."""
        with self._lock:
            self.ensure_open()
            if quantity < 0 or quantity > MAX_LINE_QUANTITY:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={
                        "message": f"quantity must be between 0 and {MAX_LINE_QUANTITY}",
                        "quantity": quantity,
                    },
                )
            line = self._lines.get(line_id)
            if line is None:
                raise AppError(ErrorCatalog.CART_LINE_NOT_FOUND, details={"line_id": line_id})
            if quantity == 0:
                del self._lines[line_id]
                self._sync_state()
                return None
            line.quantity = quantity
            return line

    def remove_line(self, line_id: str) -> None:
        with self._lock:
            self.ensure_open()
            self._lines.pop(line_id, None)
            self._sync_state()

    def clear(self) -> None:
        with self._lock:
            if self.state == CartState.COMMITTING:
                raise AppError(ErrorCatalog.CART_CLOSED, details={"state": self.state.value})
            self._lines.clear()
            self.transaction_id = str(uuid.uuid4())
            self.failure_reason = None
            self.state = CartState.IDLE

    def begin_commit(self) -> CommitSnapshot:
        with self._lock:
            self.ensure_open()
            if self.is_empty:
                raise AppError(ErrorCatalog.EMPTY_CART)
            self.state = CartState.COMMITTING
            lines = tuple(
                CartLine(
                    product_id=line.product_id,
                    barcode=line.barcode,
                    name=line.name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                )
                for line in self._lines.values()
            )
            return CommitSnapshot(
                transaction_id=self.transaction_id,
                lines=lines,
                totals=compute_totals(lines, self.tax_rate),
            )

    def abort_commit(self) -> None:
        """Return to BUILDING after a rejection that wrote nothing."""
        with self._lock:
            if self.state == CartState.COMMITTING:
                self._sync_state()

    def mark_committed(self, sale_id: str) -> None:
        with self._lock:
            self.state = CartState.COMMITTED
            self.last_sale_id = sale_id

    def mark_failed(self, reason: str) -> None:
        with self._lock:
            self.state = CartState.FAILED
            self.failure_reason = reason
