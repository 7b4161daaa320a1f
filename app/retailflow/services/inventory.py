from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from app.retailflow.core.config import settings
from app.retailflow.core.error_catalog import AppError, ErrorCatalog
from app.retailflow.core.logging import log_event
from app.retailflow.db.models import Product, StockMovement
from app.retailflow.repos.products import ProductRepository
from app.retailflow.repos.stock_movements import StockMovementRepository

logger = logging.getLogger(__name__)

STATUS_IN_STOCK = "in-stock"
STATUS_LOW_STOCK = "low-stock"
STATUS_OUT_OF_STOCK = "out-of-stock"
PRODUCT_STATUSES = (STATUS_IN_STOCK, STATUS_LOW_STOCK, STATUS_OUT_OF_STOCK)

MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"
MOVEMENT_ADJUSTMENT = "adjustment"
MOVEMENT_SALE = "sale"


def derive_status(quantity: int, low_stock_threshold: int | None = None) -> str:
    threshold = settings.LOW_STOCK_THRESHOLD if low_stock_threshold is None else low_stock_threshold
    if quantity <= 0:
        return STATUS_OUT_OF_STOCK
    if quantity <= threshold:
        return STATUS_LOW_STOCK
    return STATUS_IN_STOCK


def alert_severity(quantity: int, critical_threshold: int | None = None) -> str:
    critical = settings.ALERT_CRITICAL_THRESHOLD if critical_threshold is None else critical_threshold
    if quantity <= 0:
        return "high"
    if quantity <= critical:
        return "medium"
    return "low"


@dataclass(frozen=True)
class StockAlert:
    product: Product
    alert_type: str
    severity: str


class InventoryService:
    def __init__(self, db, *, low_stock_threshold: int | None = None):
        self.db = db
        self.products = ProductRepository(db)
        self.movements = StockMovementRepository(db)
        self.low_stock_threshold = (
            settings.LOW_STOCK_THRESHOLD if low_stock_threshold is None else low_stock_threshold
        )

    def apply_quantity(self, product: Product, quantity: int, *, now: datetime | None = None) -> None:
        product.quantity = quantity
        product.status = derive_status(quantity, self.low_stock_threshold)
        product.updated_at = now or datetime.utcnow()

    def adjust_stock(self, product_id, *, adjustment: int, reason: str, user_id=None) -> tuple[Product, StockMovement]:
        reason = (reason or "").strip()
        if not reason:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "reason is required"})
        if adjustment == 0:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "adjustment must not be zero"})
        product = self.products.get_by_id(product_id)
        if product is None:
            raise AppError(ErrorCatalog.PRODUCT_NOT_FOUND, details={"product_id": str(product_id)})

        before = product.quantity
        after = max(0, before + adjustment)
        now = datetime.utcnow()
        self.apply_quantity(product, after, now=now)
        movement = self.movements.add(
            StockMovement(
                product_id=product.id,
                product_name=product.name,
                movement_type=MOVEMENT_IN if adjustment > 0 else MOVEMENT_ADJUSTMENT,
                quantity=after - before,
                quantity_before=before,
                quantity_after=after,
                reason=reason,
                user_id=user_id,
                created_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(product)
        log_event(
            logger,
            "stock.adjusted",
            product_id=str(product.id),
            requested=adjustment,
            quantity_before=before,
            quantity_after=after,
        )
        return product, movement

    def record_initial_stock(self, product: Product, *, user_id=None) -> None:
        """Record the opening quantity of a newly created product as an inbound movement."""
        if product.quantity <= 0:
            return
        self.movements.add(
            StockMovement(
                product_id=product.id,
                product_name=product.name,
                movement_type=MOVEMENT_IN,
                quantity=product.quantity,
                quantity_before=0,
                quantity_after=product.quantity,
                reason="Initial stock",
                user_id=user_id,
            )
        )

    def overview(self) -> dict[str, int]:
        counts = self.products.count_by_status()
        summary = {status: counts.get(status, 0) for status in PRODUCT_STATUSES}
        summary["total"] = sum(summary.values())
        return summary

    def alerts(self, *, critical_threshold: int | None = None) -> list[StockAlert]:
        rows = self.products.list_by_statuses([STATUS_LOW_STOCK, STATUS_OUT_OF_STOCK])
        return [
            StockAlert(
                product=product,
                alert_type=STATUS_OUT_OF_STOCK if product.status == STATUS_OUT_OF_STOCK else STATUS_LOW_STOCK,
                severity=alert_severity(product.quantity, critical_threshold),
            )
            for product in rows
        ]
