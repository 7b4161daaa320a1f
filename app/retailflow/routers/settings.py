from decimal import Decimal

from fastapi import APIRouter, Depends, Request

from app.retailflow.core.config import settings
from app.retailflow.core.deps import require_permission
from app.retailflow.schemas.settings import StoreSettingsResponse

router = APIRouter()


@router.get("/settings", response_model=StoreSettingsResponse)
async def store_settings(request: Request, _user=Depends(require_permission("SETTINGS_VIEW"))):
    return StoreSettingsResponse(
        app_name=settings.APP_NAME,
        tax_rate=Decimal(str(settings.POS_TAX_RATE)),
        low_stock_threshold=settings.LOW_STOCK_THRESHOLD,
        alert_critical_threshold=settings.ALERT_CRITICAL_THRESHOLD,
        oversell_policy=settings.INVENTORY_OVERSELL_POLICY,
        reports_max_date_range_days=settings.REPORTS_MAX_DATE_RANGE_DAYS,
        trace_id=getattr(request.state, "trace_id", ""),
    )
