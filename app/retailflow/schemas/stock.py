from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.retailflow.schemas.catalog import ProductItem

MovementType = Literal["in", "out", "adjustment", "sale"]


class StockAdjustmentRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "example": {"product_id": "6f1c1f0e-5d7a-4a51-9a4c-8d1c2b9e7f10", "adjustment": -3, "reason": "Damaged"}
        }
    }

    product_id: UUID
    adjustment: int
    reason: str = Field(..., min_length=1, max_length=255)


class StockMovementItem(BaseModel):
    id: str
    product_id: str | None
    product_name: str
    movement_type: MovementType
    quantity: int
    quantity_before: int
    quantity_after: int
    reason: str
    sale_id: str | None
    user_id: str | None
    created_at: datetime


class StockAdjustmentResponse(BaseModel):
    product: ProductItem
    movement: StockMovementItem
    trace_id: str


class StockMovementListResponse(BaseModel):
    movements: list[StockMovementItem]
    trace_id: str


class StockOverviewResponse(BaseModel):
    in_stock: int
    low_stock: int
    out_of_stock: int
    total: int
    trace_id: str


class StockAlertItem(BaseModel):
    product_id: str
    barcode: str
    product_name: str
    quantity: int
    alert_type: Literal["low-stock", "out-of-stock"]
    severity: Literal["high", "medium", "low"]


class StockAlertListResponse(BaseModel):
    alerts: list[StockAlertItem]
    trace_id: str
