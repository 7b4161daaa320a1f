from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.retailflow.core.config import settings
from app.retailflow.core.deps import require_permission
from app.retailflow.db.models import StockMovement
from app.retailflow.db.session import get_db
from app.retailflow.repos.stock_movements import StockMovementRepository
from app.retailflow.routers.products import product_item
from app.retailflow.schemas.stock import (
    MovementType,
    StockAdjustmentRequest,
    StockAdjustmentResponse,
    StockAlertItem,
    StockAlertListResponse,
    StockMovementItem,
    StockMovementListResponse,
    StockOverviewResponse,
)
from app.retailflow.services.audit import AuditEventPayload, AuditService
from app.retailflow.services.inventory import (
    STATUS_IN_STOCK,
    STATUS_LOW_STOCK,
    STATUS_OUT_OF_STOCK,
    InventoryService,
)

router = APIRouter()


def movement_item(movement: StockMovement) -> StockMovementItem:
    return StockMovementItem(
        id=str(movement.id),
        product_id=str(movement.product_id) if movement.product_id else None,
        product_name=movement.product_name,
        movement_type=movement.movement_type,
        quantity=movement.quantity,
        quantity_before=movement.quantity_before,
        quantity_after=movement.quantity_after,
        reason=movement.reason,
        sale_id=str(movement.sale_id) if movement.sale_id else None,
        user_id=str(movement.user_id) if movement.user_id else None,
        created_at=movement.created_at,
    )


@router.post("/stock/adjustments", response_model=StockAdjustmentResponse, status_code=201)
def adjust_stock(
    request: Request,
    payload: StockAdjustmentRequest,
    current_user=Depends(require_permission("STOCK_MANAGE")),
    db=Depends(get_db),
):
    product, movement = InventoryService(db).adjust_stock(
        payload.product_id,
        adjustment=payload.adjustment,
        reason=payload.reason,
        user_id=current_user.id,
    )
    AuditService(db).record_event(
        AuditEventPayload.for_user(
            request,
            current_user,
            action="stock.adjust",
            entity_type="product",
            entity_id=str(product.id),
            before={"quantity": movement.quantity_before},
            after={"quantity": movement.quantity_after, "status": product.status},
            metadata={"requested": payload.adjustment, "reason": payload.reason},
            result="success",
        )
    )
    return StockAdjustmentResponse(
        product=product_item(product),
        movement=movement_item(movement),
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.get("/stock/movements", response_model=StockMovementListResponse)
def list_movements(
    request: Request,
    product_id: UUID | None = Query(None),
    movement_type: MovementType | None = Query(None),
    limit: int = Query(50, ge=1),
    _user=Depends(require_permission("STOCK_VIEW")),
    db=Depends(get_db),
):
    rows = StockMovementRepository(db).list_movements(
        product_id=product_id,
        movement_type=movement_type,
        limit=min(limit, settings.STOCK_MOVEMENTS_MAX_PAGE_SIZE),
    )
    return StockMovementListResponse(
        movements=[movement_item(movement) for movement in rows],
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.get("/stock/overview", response_model=StockOverviewResponse)
def stock_overview(
    request: Request,
    _user=Depends(require_permission("STOCK_VIEW")),
    db=Depends(get_db),
):
    summary = InventoryService(db).overview()
    return StockOverviewResponse(
        in_stock=summary[STATUS_IN_STOCK],
        low_stock=summary[STATUS_LOW_STOCK],
        out_of_stock=summary[STATUS_OUT_OF_STOCK],
        total=summary["total"],
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.get("/stock/alerts", response_model=StockAlertListResponse)
def stock_alerts(
    request: Request,
    _user=Depends(require_permission("STOCK_VIEW")),
    db=Depends(get_db),
):
    alerts = InventoryService(db).alerts()
    return StockAlertListResponse(
        alerts=[
            StockAlertItem(
                product_id=str(alert.product.id),
                barcode=alert.product.barcode,
                product_name=alert.product.name,
                quantity=alert.product.quantity,
                alert_type=alert.alert_type,
                severity=alert.severity,
            )
            for alert in alerts
        ],
        trace_id=getattr(request.state, "trace_id", ""),
    )
