"""Turns a cart into a persisted sale.

The sale header, its lines and every inventory decrement are written in a
single database transaction. Decrements are atomic ``UPDATE`` statements so
two registers selling the same product cannot lose an update. What happens
when a line sells more than is on hand is governed by the oversell policy:

* ``clamp``: the product quantity floors at zero and the sale goes through.
* ``reject``: the whole commit fails with ``INSUFFICIENT_STOCK`` and nothing
  is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import case, select, update
from sqlalchemy.exc import SQLAlchemyError

from app.retailflow.core.config import settings
from app.retailflow.core.error_catalog import AppError, ErrorCatalog
from app.retailflow.core.logging import log_event
from app.retailflow.core.metrics import metrics
from app.retailflow.db.models import Product, Sale, SaleLine, StockMovement
from app.retailflow.pos.cart import CartLine, CartSession, CommitSnapshot, to_money
from app.retailflow.services.inventory import MOVEMENT_SALE, derive_status

logger = logging.getLogger(__name__)

OVERSELL_CLAMP = "clamp"
OVERSELL_REJECT = "reject"


@dataclass(frozen=True)
class ReceiptLine:
    product_id: str
    barcode: str
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class Receipt:
    sale_id: str
    transaction_id: str
    subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    total: Decimal
    tendered: Decimal
    change: Decimal
    lines: tuple[ReceiptLine, ...]
    created_at: datetime
    clamped_product_ids: tuple[str, ...] = ()


class CheckoutService:
    def __init__(self, db, *, oversell_policy: str | None = None, low_stock_threshold: int | None = None):
        self.db = db
        self.oversell_policy = oversell_policy or settings.INVENTORY_OVERSELL_POLICY
        if self.oversell_policy not in (OVERSELL_CLAMP, OVERSELL_REJECT):
            raise ValueError(f"unknown oversell policy: {self.oversell_policy!r}")
        self.low_stock_threshold = (
            settings.LOW_STOCK_THRESHOLD if low_stock_threshold is None else low_stock_threshold
        )

    def commit(self, cart: CartSession, tendered_amount, *, cashier_id=None) -> Receipt:
        cart.ensure_open()
        if cart.is_empty:
            metrics.record_checkout("empty_cart")
            raise AppError(ErrorCatalog.EMPTY_CART)

        tendered = to_money(tendered_amount)
        if tendered < 0:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "tendered_amount must be >= 0"})
        total_due = cart.totals().total
        if tendered < total_due:
            metrics.record_checkout("insufficient_payment")
            raise AppError(
                ErrorCatalog.INSUFFICIENT_PAYMENT,
                details={"total": str(total_due), "tendered": str(tendered)},
            )

        snapshot = cart.begin_commit()
        if tendered < snapshot.totals.total:
            cart.abort_commit()
            metrics.record_checkout("insufficient_payment")
            raise AppError(
                ErrorCatalog.INSUFFICIENT_PAYMENT,
                details={"total": str(snapshot.totals.total), "tendered": str(tendered)},
            )

        try:
            receipt = self._persist(snapshot, tendered, cashier_id)
        except AppError as exc:
            self.db.rollback()
            cart.abort_commit()
            metrics.record_checkout(exc.error.code.lower())
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            cart.mark_failed(ErrorCatalog.PERSISTENCE_ERROR.code)
            metrics.record_checkout("persistence_error")
            logger.exception("Checkout commit failed for transaction %s", snapshot.transaction_id)
            raise AppError(
                ErrorCatalog.PERSISTENCE_ERROR,
                details={"transaction_id": snapshot.transaction_id, "type": exc.__class__.__name__},
            ) from exc
        except Exception as exc:
            self.db.rollback()
            cart.mark_failed(ErrorCatalog.INTERNAL_ERROR.code)
            metrics.record_checkout("internal_error")
            logger.exception(
                "Checkout failed unexpectedly for transaction %s (%s)",
                snapshot.transaction_id,
                exc.__class__.__name__,
            )
            raise

        cart.mark_committed(receipt.sale_id)
        metrics.record_checkout("committed", units=snapshot.totals.item_count)
        if receipt.clamped_product_ids:
            metrics.increment_inventory_clamped(len(receipt.clamped_product_ids))
            log_event(
                logger,
                "pos.inventory.clamped",
                level=logging.WARNING,
                sale_id=receipt.sale_id,
                product_ids=list(receipt.clamped_product_ids),
            )
        log_event(
            logger,
            "pos.sale.committed",
            sale_id=receipt.sale_id,
            transaction_id=receipt.transaction_id,
            total=receipt.total,
            lines=len(receipt.lines),
        )
        return receipt

    def _persist(self, snapshot: CommitSnapshot, tendered: Decimal, cashier_id) -> Receipt:
        now = datetime.utcnow()
        totals = snapshot.totals
        change = tendered - totals.total
        sale = Sale(
            subtotal_amount=float(totals.subtotal),
            tax_rate=float(totals.tax_rate),
            tax_amount=float(totals.tax),
            total_amount=float(totals.total),
            customer_payment=float(tendered),
            change_amount=float(change),
            cashier_user_id=cashier_id,
            created_at=now,
        )
        self.db.add(sale)
        self.db.flush()

        self.db.add_all(
            [
                SaleLine(
                    sale_id=sale.id,
                    product_id=line.product_id,
                    position=position,
                    product_name=line.name,
                    barcode=line.barcode,
                    quantity=line.quantity,
                    unit_price=float(line.unit_price),
                    total_price=float(line.line_total),
                )
                for position, line in enumerate(snapshot.lines)
            ]
        )

        clamped = []
        for line in snapshot.lines:
            if self._decrement(sale, line, cashier_id, now):
                clamped.append(line.product_id)
        self.db.commit()

        return Receipt(
            sale_id=str(sale.id),
            transaction_id=snapshot.transaction_id,
            subtotal=totals.subtotal,
            tax_rate=totals.tax_rate,
            tax=totals.tax,
            total=totals.total,
            tendered=tendered,
            change=change,
            lines=tuple(
                ReceiptLine(
                    product_id=line.product_id,
                    barcode=line.barcode,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    line_total=line.line_total,
                )
                for line in snapshot.lines
            ),
            created_at=now,
            clamped_product_ids=tuple(clamped),
        )

    def _decrement(self, sale: Sale, line: CartLine, cashier_id, now: datetime) -> bool:
        """Decrement one product; returns True when the quantity was clamped at zero."""
        product = (
            self.db.execute(select(Product).where(Product.id == line.product_id).with_for_update())
            .scalars()
            .first()
        )
        if product is None:
            raise AppError(ErrorCatalog.PRODUCT_NOT_FOUND, details={"product_id": line.product_id})
        before = product.quantity

        stmt = update(Product).where(Product.id == line.product_id)
        if self.oversell_policy == OVERSELL_REJECT:
            stmt = stmt.where(Product.quantity >= line.quantity).values(quantity=Product.quantity - line.quantity)
        else:
            stmt = stmt.values(
                quantity=case(
                    (Product.quantity >= line.quantity, Product.quantity - line.quantity),
                    else_=0,
                )
            )
        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount == 0:
            raise AppError(
                ErrorCatalog.INSUFFICIENT_STOCK,
                details={
                    "product_id": line.product_id,
                    "barcode": line.barcode,
                    "requested": line.quantity,
                    "on_hand": before,
                },
            )

        self.db.refresh(product)
        after = product.quantity
        product.status = derive_status(after, self.low_stock_threshold)
        product.updated_at = now
        self.db.add(
            StockMovement(
                product_id=product.id,
                product_name=line.name,
                movement_type=MOVEMENT_SALE,
                quantity=after - before,
                quantity_before=before,
                quantity_after=after,
                reason="Sale",
                sale_id=sale.id,
                user_id=cashier_id,
                created_at=now,
            )
        )
        return before < line.quantity
