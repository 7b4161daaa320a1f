from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from app.retailflow.schemas.pos import SaleResponse


class ReportMeta(BaseModel):
    timezone: str
    from_datetime: datetime
    to_datetime: datetime
    trace_id: str | None
    query_ms: float


class TopProductRow(BaseModel):
    name: str
    quantity: int
    revenue: Decimal


class SalesReportTotals(BaseModel):
    total_sales: int
    total_items_sold: int
    total_revenue: Decimal
    average_sale: Decimal


class SalesReportResponse(BaseModel):
    meta: ReportMeta
    totals: SalesReportTotals
    top_products: list[TopProductRow]


class LowStockRow(BaseModel):
    product_id: str
    name: str
    barcode: str
    quantity: int
    status: str


class DashboardResponse(BaseModel):
    total_revenue: Decimal
    today_sales: Decimal
    today_sales_count: int
    total_products: int
    low_stock_count: int
    low_stock_items: list[LowStockRow]
    recent_sales: list[SaleResponse]
    trace_id: str
