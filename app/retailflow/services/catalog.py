"""Products, categories and suppliers."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from app.retailflow.core.error_catalog import AppError, ErrorCatalog
from app.retailflow.core.logging import log_event
from app.retailflow.db.models import Category, Product, SaleLine, StockMovement, Supplier
from app.retailflow.repos.products import (
    CategoryRepository,
    ProductQueryFilters,
    ProductRepository,
    SupplierRepository,
)
from app.retailflow.services.inventory import PRODUCT_STATUSES, InventoryService

logger = logging.getLogger(__name__)

SUPPLIER_STATUSES = ("active", "inactive")


def _non_negative(field: str, value) -> None:
    if value is not None and value < 0:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": f"{field} must be >= 0", "field": field})


def _required_text(field: str, value: str) -> str:
    value = value.strip()
    if not value:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": f"{field} must not be blank", "field": field})
    return value


class ProductService:
    def __init__(self, db, *, low_stock_threshold: int | None = None):
        self.db = db
        self.repo = ProductRepository(db)
        self.categories = CategoryRepository(db)
        self.suppliers = SupplierRepository(db)
        self.inventory = InventoryService(db, low_stock_threshold=low_stock_threshold)

    def list_products(self, filters: ProductQueryFilters, *, limit: int | None = None, offset: int | None = None):
        if filters.status and filters.status not in PRODUCT_STATUSES:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "unknown status", "allowed": list(PRODUCT_STATUSES)},
            )
        return self.repo.list_products(filters, limit=limit, offset=offset)

    def get(self, product_id) -> Product:
        product = self.repo.get_by_id(product_id)
        if product is None:
            raise AppError(ErrorCatalog.PRODUCT_NOT_FOUND, details={"product_id": str(product_id)})
        return product

    def create(self, *, user_id=None, **fields) -> Product:
        barcode = _required_text("barcode", fields["barcode"])
        name = _required_text("name", fields["name"])
        if self.repo.get_by_barcode(barcode) is not None:
            raise AppError(ErrorCatalog.BARCODE_ALREADY_EXISTS, details={"barcode": barcode})
        for field in ("quantity", "cost_price", "selling_price"):
            _non_negative(field, fields.get(field))
        self._check_references(fields.get("category_id"), fields.get("supplier_id"))

        now = datetime.utcnow()
        product = Product(
            barcode=barcode,
            name=name,
            cost_price=fields.get("cost_price") or 0,
            selling_price=fields["selling_price"],
            category_id=fields.get("category_id"),
            supplier_id=fields.get("supplier_id"),
            created_at=now,
        )
        self.inventory.apply_quantity(product, fields.get("quantity") or 0, now=now)
        self.db.add(product)
        try:
            self.db.flush()
            self.inventory.record_initial_stock(product, user_id=user_id)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise AppError(ErrorCatalog.BARCODE_ALREADY_EXISTS, details={"barcode": barcode}) from exc
        self.db.refresh(product)
        log_event(logger, "catalog.product.created", product_id=str(product.id), barcode=product.barcode)
        return product

    def update(self, product_id, changes: dict) -> tuple[Product, dict]:
        """Apply a partial update. Quantity changes go through stock adjustments, not here."""
        product = self.get(product_id)
        before = product_snapshot(product)
        if "barcode" in changes and changes["barcode"] is not None:
            barcode = _required_text("barcode", changes["barcode"])
            existing = self.repo.get_by_barcode(barcode)
            if existing is not None and existing.id != product.id:
                raise AppError(ErrorCatalog.BARCODE_ALREADY_EXISTS, details={"barcode": barcode})
            product.barcode = barcode
        if changes.get("name") is not None:
            product.name = _required_text("name", changes["name"])
        for field in ("cost_price", "selling_price"):
            if field in changes and changes[field] is not None:
                _non_negative(field, changes[field])
                setattr(product, field, changes[field])
        self._check_references(changes.get("category_id"), changes.get("supplier_id"))
        for field in ("category_id", "supplier_id"):
            if field in changes:
                setattr(product, field, changes[field])
        product.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(product)
        return product, before

    def delete(self, product_id) -> dict:
        product = self.get(product_id)
        before = product_snapshot(product)
        # Sales history keeps its name snapshots.
        self.db.execute(update(SaleLine).where(SaleLine.product_id == product.id).values(product_id=None))
        self.db.execute(update(StockMovement).where(StockMovement.product_id == product.id).values(product_id=None))
        self.db.delete(product)
        self.db.commit()
        log_event(logger, "catalog.product.deleted", product_id=str(product_id))
        return before

    def _check_references(self, category_id, supplier_id) -> None:
        if category_id is not None and self.categories.get_by_id(category_id) is None:
            raise AppError(ErrorCatalog.CATEGORY_NOT_FOUND, details={"category_id": str(category_id)})
        if supplier_id is not None and self.suppliers.get_by_id(supplier_id) is None:
            raise AppError(ErrorCatalog.SUPPLIER_NOT_FOUND, details={"supplier_id": str(supplier_id)})


class CategoryService:
    def __init__(self, db):
        self.db = db
        self.repo = CategoryRepository(db)

    def list_with_counts(self) -> list[tuple[Category, int]]:
        counts = self.repo.product_counts()
        return [(category, counts.get(category.id, 0)) for category in self.repo.list_categories()]

    def create(self, name: str) -> Category:
        name = name.strip()
        if not name:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "name is required"})
        if self.repo.get_by_name(name) is not None:
            raise AppError(ErrorCatalog.CATEGORY_ALREADY_EXISTS, details={"name": name})
        category = Category(name=name, created_at=datetime.utcnow())
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete(self, category_id) -> dict:
        category = self.repo.get_by_id(category_id)
        if category is None:
            raise AppError(ErrorCatalog.CATEGORY_NOT_FOUND, details={"category_id": str(category_id)})
        before = {"name": category.name}
        self.db.execute(update(Product).where(Product.category_id == category.id).values(category_id=None))
        self.db.delete(category)
        self.db.commit()
        return before


class SupplierService:
    def __init__(self, db):
        self.db = db
        self.repo = SupplierRepository(db)

    def list_with_counts(self, *, q: str | None = None, status: str | None = None) -> list[tuple[Supplier, int]]:
        counts = self.repo.product_counts()
        return [(supplier, counts.get(supplier.id, 0)) for supplier in self.repo.list_suppliers(q=q, status=status)]

    def get(self, supplier_id) -> Supplier:
        supplier = self.repo.get_by_id(supplier_id)
        if supplier is None:
            raise AppError(ErrorCatalog.SUPPLIER_NOT_FOUND, details={"supplier_id": str(supplier_id)})
        return supplier

    def products_count(self, supplier: Supplier) -> int:
        return self.repo.product_counts().get(supplier.id, 0)

    def create(self, **fields) -> Supplier:
        status = fields.pop("status", None) or "active"
        self._check_status(status)
        supplier = Supplier(status=status, created_at=datetime.utcnow(), **fields)
        self.db.add(supplier)
        self.db.commit()
        self.db.refresh(supplier)
        return supplier

    def update(self, supplier_id, changes: dict) -> Supplier:
        supplier = self.get(supplier_id)
        if "status" in changes and changes["status"] is not None:
            self._check_status(changes["status"])
        for field, value in changes.items():
            if field == "name" and not value:
                continue
            setattr(supplier, field, value)
        supplier.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(supplier)
        return supplier

    def delete(self, supplier_id) -> dict:
        supplier = self.get(supplier_id)
        before = {"name": supplier.name}
        self.db.execute(update(Product).where(Product.supplier_id == supplier.id).values(supplier_id=None))
        self.db.delete(supplier)
        self.db.commit()
        return before

    @staticmethod
    def _check_status(status: str) -> None:
        if status not in SUPPLIER_STATUSES:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "unknown supplier status", "allowed": list(SUPPLIER_STATUSES)},
            )


def product_snapshot(product: Product) -> dict:
    return {
        "barcode": product.barcode,
        "name": product.name,
        "quantity": product.quantity,
        "cost_price": product.cost_price,
        "selling_price": product.selling_price,
        "status": product.status,
        "category_id": str(product.category_id) if product.category_id else None,
        "supplier_id": str(product.supplier_id) if product.supplier_id else None,
    }
