from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select

from app.retailflow.db.models import Sale, SaleLine


@dataclass(frozen=True)
class SaleQueryFilters:
    from_date: datetime | None = None
    to_date: datetime | None = None
    cashier_user_id: str | None = None


class SaleRepository:
    def __init__(self, db):
        self.db = db

    def _apply_filters(self, query, filters: SaleQueryFilters):
        if filters.from_date:
            query = query.where(Sale.created_at >= filters.from_date)
        if filters.to_date:
            query = query.where(Sale.created_at <= filters.to_date)
        if filters.cashier_user_id:
            query = query.where(Sale.cashier_user_id == filters.cashier_user_id)
        return query

    def list_sales(self, filters: SaleQueryFilters, *, limit: int | None = None) -> list[Sale]:
        query = self._apply_filters(select(Sale), filters).order_by(Sale.created_at.desc())
        if limit:
            query = query.limit(limit)
        return self.db.execute(query).scalars().all()

    def get_by_id(self, sale_id) -> Sale | None:
        return self.db.get(Sale, sale_id)

    def get_lines(self, sale_id) -> list[SaleLine]:
        return (
            self.db.execute(select(SaleLine).where(SaleLine.sale_id == sale_id).order_by(SaleLine.position))
            .scalars()
            .all()
        )

    def sales_totals(self, filters: SaleQueryFilters) -> tuple[int, float]:
        query = self._apply_filters(select(func.count(Sale.id), func.coalesce(func.sum(Sale.total_amount), 0)), filters)
        count, revenue = self.db.execute(query).one()
        return int(count or 0), float(revenue or 0)

    def items_sold(self, filters: SaleQueryFilters) -> int:
        query = select(func.coalesce(func.sum(SaleLine.quantity), 0)).join(Sale, SaleLine.sale_id == Sale.id)
        return int(self.db.execute(self._apply_filters(query, filters)).scalar_one() or 0)

    def product_sales(self, filters: SaleQueryFilters) -> list[tuple[str, int, float]]:
        query = (
            select(
                SaleLine.product_name,
                func.sum(SaleLine.quantity),
                func.sum(SaleLine.total_price),
            )
            .join(Sale, SaleLine.sale_id == Sale.id)
            .group_by(SaleLine.product_name)
        )
        rows = self.db.execute(self._apply_filters(query, filters)).all()
        return [(name, int(quantity or 0), float(revenue or 0)) for name, quantity, revenue in rows]
