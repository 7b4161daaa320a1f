from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Query, Request

from app.retailflow.core.config import settings
from app.retailflow.core.deps import require_permission
from app.retailflow.db.session import get_db
from app.retailflow.routers.pos import sale_response
from app.retailflow.schemas.reports import (
    DashboardResponse,
    LowStockRow,
    ReportMeta,
    SalesReportResponse,
    SalesReportTotals,
    TopProductRow,
)
from app.retailflow.services.reports import (
    ReportService,
    resolve_date_range,
    resolve_timezone,
    validate_date_range,
)

router = APIRouter()


@router.get("/reports/sales", response_model=SalesReportResponse)
def sales_report(
    request: Request,
    from_value: str | None = Query(None, alias="from"),
    to_value: str | None = Query(None, alias="to"),
    timezone: str | None = Query(None),
    _permission=Depends(require_permission("REPORT_VIEW")),
    db=Depends(get_db),
):
    tz = resolve_timezone(timezone)
    date_range = resolve_date_range(from_value, to_value, tz)
    validate_date_range(date_range, max_days=settings.REPORTS_MAX_DATE_RANGE_DAYS)

    start_time = time.perf_counter()
    report = ReportService(db).sales_report(date_range)
    query_ms = (time.perf_counter() - start_time) * 1000

    return SalesReportResponse(
        meta=ReportMeta(
            timezone=date_range.timezone_name,
            from_datetime=date_range.start_local,
            to_datetime=date_range.end_local,
            trace_id=getattr(request.state, "trace_id", None),
            query_ms=query_ms,
        ),
        totals=SalesReportTotals(
            total_sales=report.total_sales,
            total_items_sold=report.total_items_sold,
            total_revenue=report.total_revenue,
            average_sale=report.average_sale,
        ),
        top_products=[
            TopProductRow(name=row.name, quantity=row.quantity, revenue=row.revenue) for row in report.top_products
        ],
    )


@router.get("/reports/dashboard", response_model=DashboardResponse)
def dashboard(
    request: Request,
    _permission=Depends(require_permission("REPORT_VIEW")),
    db=Depends(get_db),
):
    summary = ReportService(db).dashboard()
    return DashboardResponse(
        total_revenue=summary.total_revenue,
        today_sales=summary.today_sales,
        today_sales_count=summary.today_sales_count,
        total_products=summary.total_products,
        low_stock_count=summary.low_stock_count,
        low_stock_items=[
            LowStockRow(
                product_id=str(product.id),
                name=product.name,
                barcode=product.barcode,
                quantity=product.quantity,
                status=product.status,
            )
            for product in summary.low_stock_items
        ],
        recent_sales=[sale_response(sale) for sale in summary.recent_sales],
        trace_id=getattr(request.state, "trace_id", ""),
    )
