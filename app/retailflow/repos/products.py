from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, or_, select

from app.retailflow.db.models import Category, Product, Supplier


@dataclass(frozen=True)
class ProductQueryFilters:
    q: str | None = None
    status: str | None = None
    category_id: str | None = None
    supplier_id: str | None = None


class ProductRepository:
    def __init__(self, db):
        self.db = db

    def list_products(self, filters: ProductQueryFilters, *, limit: int | None = None, offset: int | None = None):
        query = self._apply_filters(filters)
        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        query = query.order_by(Product.name.asc())
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return self.db.execute(query).scalars().all(), total

    def _apply_filters(self, filters: ProductQueryFilters):
        query = select(Product).outerjoin(Category, Product.category_id == Category.id)
        if filters.q:
            like = f"%{filters.q.strip()}%"
            query = query.where(
                or_(
                    Product.name.ilike(like),
                    Product.barcode.ilike(like),
                    Category.name.ilike(like),
                )
            )
        if filters.status:
            query = query.where(Product.status == filters.status)
        if filters.category_id:
            query = query.where(Product.category_id == filters.category_id)
        if filters.supplier_id:
            query = query.where(Product.supplier_id == filters.supplier_id)
        return query

    def list_all(self) -> list[Product]:
        return self.db.execute(select(Product).order_by(Product.name.asc())).scalars().all()

    def list_by_statuses(self, statuses: list[str]) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.status.in_(statuses))
            .order_by(Product.quantity.asc(), Product.name.asc())
        )
        return self.db.execute(stmt).scalars().all()

    def list_at_or_below(self, quantity: int, *, limit: int | None = None) -> list[Product]:
        stmt = select(Product).where(Product.quantity <= quantity).order_by(Product.quantity.asc(), Product.name.asc())
        if limit:
            stmt = stmt.limit(limit)
        return self.db.execute(stmt).scalars().all()

    def count_at_or_below(self, quantity: int) -> int:
        stmt = select(func.count()).select_from(Product).where(Product.quantity <= quantity)
        return self.db.execute(stmt).scalar_one()

    def count(self) -> int:
        return self.db.execute(select(func.count()).select_from(Product)).scalar_one()

    def count_by_status(self) -> dict[str, int]:
        rows = self.db.execute(select(Product.status, func.count()).group_by(Product.status)).all()
        return {status: int(count) for status, count in rows}

    def get_by_id(self, product_id) -> Product | None:
        return self.db.get(Product, product_id)

    def get_by_barcode(self, barcode: str) -> Product | None:
        return self.db.execute(select(Product).where(Product.barcode == barcode)).scalars().first()


class CategoryRepository:
    def __init__(self, db):
        self.db = db

    def list_categories(self) -> list[Category]:
        return self.db.execute(select(Category).order_by(Category.name.asc())).scalars().all()

    def get_by_id(self, category_id) -> Category | None:
        return self.db.get(Category, category_id)

    def get_by_name(self, name: str) -> Category | None:
        return self.db.execute(select(Category).where(func.lower(Category.name) == name.lower())).scalars().first()

    def product_counts(self) -> dict:
        rows = self.db.execute(
            select(Product.category_id, func.count()).where(Product.category_id.is_not(None)).group_by(Product.category_id)
        ).all()
        return {category_id: int(count) for category_id, count in rows}


class SupplierRepository:
    def __init__(self, db):
        self.db = db

    def list_suppliers(self, *, q: str | None = None, status: str | None = None) -> list[Supplier]:
        query = select(Supplier)
        if q:
            like = f"%{q.strip()}%"
            query = query.where(
                or_(
                    Supplier.name.ilike(like),
                    Supplier.contact_person.ilike(like),
                    Supplier.email.ilike(like),
                )
            )
        if status:
            query = query.where(Supplier.status == status)
        return self.db.execute(query.order_by(Supplier.name.asc())).scalars().all()

    def get_by_id(self, supplier_id) -> Supplier | None:
        return self.db.get(Supplier, supplier_id)

    def product_counts(self) -> dict:
        rows = self.db.execute(
            select(Product.supplier_id, func.count()).where(Product.supplier_id.is_not(None)).group_by(Product.supplier_id)
        ).all()
        return {supplier_id: int(count) for supplier_id, count in rows}
