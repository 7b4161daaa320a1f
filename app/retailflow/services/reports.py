from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.retailflow.core.config import settings
from app.retailflow.core.error_catalog import AppError, ErrorCatalog
from app.retailflow.db.models import Product, Sale
from app.retailflow.pos.cart import to_money
from app.retailflow.repos.products import ProductRepository
from app.retailflow.repos.sales import SaleQueryFilters, SaleRepository

TOP_PRODUCTS_LIMIT = 5
DASHBOARD_LOW_STOCK_ITEMS = 3
DASHBOARD_RECENT_SALES = 4


@dataclass(frozen=True)
class ReportDateRange:
    start_local: datetime
    end_local: datetime
    timezone_name: str

    @property
    def start_date(self) -> date:
        return self.start_local.date()

    @property
    def end_date(self) -> date:
        return self.end_local.date()

    @property
    def start_utc(self) -> datetime:
        # Sale timestamps are stored as naive UTC.
        return self.start_local.astimezone(timezone.utc).replace(tzinfo=None)

    @property
    def end_utc(self) -> datetime:
        return self.end_local.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class TopProduct:
    name: str
    quantity: int
    revenue: Decimal


@dataclass(frozen=True)
class SalesReport:
    date_range: ReportDateRange
    total_sales: int
    total_items_sold: int
    total_revenue: Decimal
    average_sale: Decimal
    top_products: list[TopProduct]


@dataclass(frozen=True)
class Dashboard:
    total_revenue: Decimal
    today_sales: Decimal
    today_sales_count: int
    total_products: int
    low_stock_count: int
    low_stock_items: list[Product]
    recent_sales: list[Sale]


def resolve_timezone(timezone_name: str | None):
    if not timezone_name or timezone_name in ("UTC", "Z", "Etc/UTC"):
        return timezone.utc
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "invalid timezone"}) from exc


def resolve_date_range(from_value: str | None, to_value: str | None, tz, *, now: datetime | None = None) -> ReportDateRange:
    """Parse ``from``/``to`` as dates or datetimes; a bare ``to`` date covers the whole day.

    Defaults to the last 30 days ending now.
    """
    now_local = (now or datetime.now(timezone.utc)).astimezone(tz)
    default_start = (now_local - timedelta(days=29)).replace(hour=0, minute=0, second=0, microsecond=0)
    start_local, _ = _parse_datetime_or_date(from_value, tz, default=default_start)
    end_local, to_is_date = _parse_datetime_or_date(to_value, tz, default=now_local)
    if to_is_date:
        end_local = end_local + timedelta(days=1) - timedelta(microseconds=1)
    if end_local < start_local:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "to must be after from"})
    return ReportDateRange(start_local=start_local, end_local=end_local, timezone_name=str(tz))


def validate_date_range(date_range: ReportDateRange, *, max_days: int) -> None:
    if max_days <= 0:
        return
    days = (date_range.end_date - date_range.start_date).days + 1
    if days > max_days:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={
                "message": "date range exceeds limit",
                "reason_code": "REPORT_DATE_RANGE_LIMIT_EXCEEDED",
                "max_days": max_days,
            },
        )


def _parse_datetime_or_date(value: str | None, tz, *, default: datetime) -> tuple[datetime, bool]:
    if not value:
        return default, False
    normalized = value.replace("Z", "+00:00")
    if "T" in normalized or ":" in normalized:
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError as exc:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "invalid datetime"}) from exc
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=tz), False
        return parsed.astimezone(tz), False
    try:
        parsed_date = date.fromisoformat(normalized)
    except ValueError as exc:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "invalid date"}) from exc
    return datetime.combine(parsed_date, time.min, tzinfo=tz), True


class ReportService:
    def __init__(self, db, *, low_stock_threshold: int | None = None):
        self.sales = SaleRepository(db)
        self.products = ProductRepository(db)
        self.low_stock_threshold = (
            settings.LOW_STOCK_THRESHOLD if low_stock_threshold is None else low_stock_threshold
        )

    def sales_report(self, date_range: ReportDateRange) -> SalesReport:
        filters = SaleQueryFilters(from_date=date_range.start_utc, to_date=date_range.end_utc)
        count, revenue = self.sales.sales_totals(filters)
        total_revenue = to_money(revenue)
        average = to_money(total_revenue / count) if count else Decimal("0.00")
        ranked = sorted(self.sales.product_sales(filters), key=lambda row: (-row[2], row[0]))
        return SalesReport(
            date_range=date_range,
            total_sales=count,
            total_items_sold=self.sales.items_sold(filters),
            total_revenue=total_revenue,
            average_sale=average,
            top_products=[
                TopProduct(name=name, quantity=quantity, revenue=to_money(product_revenue))
                for name, quantity, product_revenue in ranked[:TOP_PRODUCTS_LIMIT]
            ],
        )

    def dashboard(self, *, now: datetime | None = None) -> Dashboard:
        now = now or datetime.utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        _, all_time_revenue = self.sales.sales_totals(SaleQueryFilters())
        today_count, today_revenue = self.sales.sales_totals(SaleQueryFilters(from_date=start_of_day, to_date=now))
        return Dashboard(
            total_revenue=to_money(all_time_revenue),
            today_sales=to_money(today_revenue),
            today_sales_count=today_count,
            total_products=self.products.count(),
            low_stock_count=self.products.count_at_or_below(self.low_stock_threshold),
            low_stock_items=self.products.list_at_or_below(self.low_stock_threshold, limit=DASHBOARD_LOW_STOCK_ITEMS),
            recent_sales=self.sales.list_sales(SaleQueryFilters(), limit=DASHBOARD_RECENT_SALES),
        )
