from decimal import Decimal
from typing import Literal

from pydantic import BaseModel


class StoreSettingsResponse(BaseModel):
    app_name: str
    tax_rate: Decimal
    low_stock_threshold: int
    alert_critical_threshold: int
    oversell_policy: Literal["clamp", "reject"]
    reports_max_date_range_days: int
    trace_id: str
