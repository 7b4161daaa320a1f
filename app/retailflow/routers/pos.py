from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.retailflow.core.config import settings
from app.retailflow.core.deps import require_permission
from app.retailflow.core.error_catalog import AppError, ErrorCatalog
from app.retailflow.db.models import Sale, SaleLine
from app.retailflow.db.session import get_db
from app.retailflow.pos.cart import CachedProduct, CartSession
from app.retailflow.pos.registry import CartRegistry
from app.retailflow.repos.products import ProductRepository
from app.retailflow.repos.sales import SaleQueryFilters, SaleRepository
from app.retailflow.schemas.errors import ApiErrorResponse, ApiValidationErrorResponse
from app.retailflow.schemas.pos import (
    CartLineResponse,
    CartLineUpdateRequest,
    CartResponse,
    CartScanRequest,
    CartTotalsResponse,
    CheckoutRequest,
    ReceiptLineResponse,
    ReceiptResponse,
    SaleHeaderResponse,
    SaleListResponse,
    SaleResponse,
)
from app.retailflow.services.audit import AuditEventPayload, AuditService
from app.retailflow.services.checkout import CheckoutService
from app.retailflow.services.idempotency import (
    IDEMPOTENCY_RESULT_HEADER,
    IdempotencyService,
    extract_idempotency_key,
)

router = APIRouter()


def get_cart_registry(request: Request) -> CartRegistry:
    return request.app.state.cart_registry


def load_product_cache(db) -> list[CachedProduct]:
    """Snapshot every product, including out-of-stock ones, for barcode lookups."""
    try:
        return [CachedProduct.from_row(product) for product in ProductRepository(db).list_all()]
    except ValueError as exc:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": str(exc)}) from exc


def _cart_response(cart: CartSession, request: Request) -> CartResponse:
    totals = cart.totals()
    return CartResponse(
        cart_id=cart.cart_id,
        transaction_id=cart.transaction_id,
        state=cart.state.value,
        owner_id=cart.owner_id,
        lines=[
            CartLineResponse(
                line_id=line.line_id,
                product_id=line.product_id,
                barcode=line.barcode,
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                line_total=line.line_total,
            )
            for line in cart.lines
        ],
        totals=CartTotalsResponse(
            subtotal=totals.subtotal,
            tax_rate=totals.tax_rate,
            tax=totals.tax,
            total=totals.total,
            item_count=totals.item_count,
        ),
        cached_products=cart.cached_product_count,
        failure_reason=cart.failure_reason,
        last_sale_id=cart.last_sale_id,
        trace_id=getattr(request.state, "trace_id", ""),
    )


def _sale_line_response(line: SaleLine) -> ReceiptLineResponse:
    return ReceiptLineResponse(
        product_id=str(line.product_id) if line.product_id else None,
        barcode=line.barcode,
        name=line.product_name,
        quantity=line.quantity,
        unit_price=Decimal(str(line.unit_price)),
        line_total=Decimal(str(line.total_price)),
    )


def sale_response(sale: Sale) -> SaleResponse:
    header = SaleHeaderResponse(
        id=str(sale.id),
        subtotal_amount=Decimal(str(sale.subtotal_amount)),
        tax_rate=Decimal(str(sale.tax_rate)),
        tax_amount=Decimal(str(sale.tax_amount)),
        total_amount=Decimal(str(sale.total_amount)),
        customer_payment=Decimal(str(sale.customer_payment)),
        change_amount=Decimal(str(sale.change_amount)),
        cashier_user_id=str(sale.cashier_user_id) if sale.cashier_user_id else None,
        created_at=sale.created_at,
    )
    return SaleResponse(header=header, lines=[_sale_line_response(line) for line in sale.items])


def _audit(db, request: Request, user, *, action: str, entity_type: str, entity_id: str | None, result: str, **extra):
    AuditService(db).record_event(
        AuditEventPayload.for_user(
            request,
            user,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            before=extra.get("before"),
            after=extra.get("after"),
            metadata=extra.get("metadata"),
            result=result,
        )
    )


@router.post("/pos/carts", response_model=CartResponse, status_code=201)
def open_cart(
    request: Request,
    current_user=Depends(require_permission("POS_SALE_MANAGE")),
    registry: CartRegistry = Depends(get_cart_registry),
    db=Depends(get_db),
):
    cart = registry.open(
        owner_id=str(current_user.id),
        tax_rate=Decimal(str(settings.POS_TAX_RATE)),
        products=load_product_cache(db),
    )
    return _cart_response(cart, request)


@router.get("/pos/carts", response_model=list[CartResponse])
def list_carts(
    request: Request,
    current_user=Depends(require_permission("POS_SALE_MANAGE")),
    registry: CartRegistry = Depends(get_cart_registry),
):
    return [_cart_response(cart, request) for cart in registry.list_for_owner(str(current_user.id))]


@router.get("/pos/carts/{cart_id}", response_model=CartResponse)
def get_cart(
    request: Request,
    cart_id: str,
    current_user=Depends(require_permission("POS_SALE_MANAGE")),
    registry: CartRegistry = Depends(get_cart_registry),
):
    cart = registry.get_for_user(cart_id, user_id=str(current_user.id), role=current_user.role)
    return _cart_response(cart, request)


@router.delete("/pos/carts/{cart_id}", status_code=204)
def discard_cart(
    cart_id: str,
    current_user=Depends(require_permission("POS_SALE_MANAGE")),
    registry: CartRegistry = Depends(get_cart_registry),
):
    cart = registry.get_for_user(cart_id, user_id=str(current_user.id), role=current_user.role)
    cart.ensure_open()
    registry.discard(cart.cart_id)


@router.post(
    "/pos/carts/{cart_id}/scan",
    response_model=CartResponse,
    responses={404: {"model": ApiErrorResponse}, 409: {"model": ApiErrorResponse}},
)
def scan_barcode(
    request: Request,
    cart_id: str,
    payload: CartScanRequest,
    current_user=Depends(require_permission("POS_SALE_MANAGE")),
    registry: CartRegistry = Depends(get_cart_registry),
):
    cart = registry.get_for_user(cart_id, user_id=str(current_user.id), role=current_user.role)
    cart.add_by_barcode(payload.barcode)
    return _cart_response(cart, request)


@router.patch("/pos/carts/{cart_id}/lines/{line_id}", response_model=CartResponse)
def update_cart_line(
    request: Request,
    cart_id: str,
    line_id: str,
    payload: CartLineUpdateRequest,
    current_user=Depends(require_permission("POS_SALE_MANAGE")),
    registry: CartRegistry = Depends(get_cart_registry),
):
    cart = registry.get_for_user(cart_id, user_id=str(current_user.id), role=current_user.role)
    cart.set_line_quantity(line_id, payload.quantity)
    return _cart_response(cart, request)


@router.delete("/pos/carts/{cart_id}/lines/{line_id}", response_model=CartResponse)
def remove_cart_line(
    request: Request,
    cart_id: str,
    line_id: str,
    current_user=Depends(require_permission("POS_SALE_MANAGE")),
    registry: CartRegistry = Depends(get_cart_registry),
):
    cart = registry.get_for_user(cart_id, user_id=str(current_user.id), role=current_user.role)
    cart.remove_line(line_id)
    return _cart_response(cart, request)


@router.post("/pos/carts/{cart_id}/clear", response_model=CartResponse)
def clear_cart(
    request: Request,
    cart_id: str,
    current_user=Depends(require_permission("POS_SALE_MANAGE")),
    registry: CartRegistry = Depends(get_cart_registry),
):
    cart = registry.get_for_user(cart_id, user_id=str(current_user.id), role=current_user.role)
    cart.clear()
    return _cart_response(cart, request)


@router.post("/pos/carts/{cart_id}/refresh-products", response_model=CartResponse)
def refresh_cart_products(
    request: Request,
    cart_id: str,
    current_user=Depends(require_permission("POS_SALE_MANAGE")),
    registry: CartRegistry = Depends(get_cart_registry),
    db=Depends(get_db),
):
    cart = registry.get_for_user(cart_id, user_id=str(current_user.id), role=current_user.role)
    cart.refresh_products(load_product_cache(db))
    return _cart_response(cart, request)


@router.post(
    "/pos/carts/{cart_id}/checkout",
    response_model=ReceiptResponse,
    responses={
        400: {"model": ApiErrorResponse},
        404: {"model": ApiErrorResponse},
        409: {"model": ApiErrorResponse},
        422: {"model": ApiValidationErrorResponse},
        503: {"model": ApiErrorResponse},
    },
)
def checkout(
    request: Request,
    cart_id: str,
    payload: CheckoutRequest,
    current_user=Depends(require_permission("POS_SALE_MANAGE")),
    registry: CartRegistry = Depends(get_cart_registry),
    db=Depends(get_db),
):
    cart = registry.get_for_user(cart_id, user_id=str(current_user.id), role=current_user.role)

    idempotency_key = extract_idempotency_key(request.headers, required=True)
    request_hash = IdempotencyService.fingerprint(payload.model_dump(mode="json"))
    context, replay = IdempotencyService(db).start(
        endpoint=str(request.url.path),
        method=request.method,
        idempotency_key=idempotency_key,
        request_hash=request_hash,
        user_id=str(current_user.id),
    )
    if replay:
        return JSONResponse(
            status_code=replay.status_code,
            content=replay.response_body,
            headers={IDEMPOTENCY_RESULT_HEADER: ErrorCatalog.IDEMPOTENCY_REPLAY.code},
        )
    request.state.idempotency = context

    transaction_id = cart.transaction_id
    try:
        receipt = CheckoutService(db).commit(cart, payload.tendered_amount, cashier_id=current_user.id)
    except AppError as exc:
        if exc.error is ErrorCatalog.PERSISTENCE_ERROR:
            _audit(
                db,
                request,
                current_user,
                action="pos.sale.commit",
                entity_type="sale",
                entity_id=None,
                result="failure",
                metadata={"cart_id": cart.cart_id, "transaction_id": transaction_id, "error_code": exc.error.code},
            )
        raise

    cart.clear()
    cart.refresh_products(load_product_cache(db))

    response = ReceiptResponse(
        sale_id=receipt.sale_id,
        transaction_id=receipt.transaction_id,
        subtotal=receipt.subtotal,
        tax_rate=receipt.tax_rate,
        tax=receipt.tax,
        total=receipt.total,
        tendered=receipt.tendered,
        change=receipt.change,
        lines=[
            ReceiptLineResponse(
                product_id=line.product_id,
                barcode=line.barcode,
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for line in receipt.lines
        ],
        created_at=receipt.created_at,
        next_transaction_id=cart.transaction_id,
        trace_id=getattr(request.state, "trace_id", ""),
    )
    context.record_success(status_code=200, response_body=response.model_dump(mode="json"))
    _audit(
        db,
        request,
        current_user,
        action="pos.sale.commit",
        entity_type="sale",
        entity_id=receipt.sale_id,
        result="success",
        after={"total": str(receipt.total), "lines": len(receipt.lines)},
        metadata={
            "cart_id": cart.cart_id,
            "transaction_id": receipt.transaction_id,
            "clamped_product_ids": list(receipt.clamped_product_ids),
        },
    )
    return response


@router.get("/pos/sales", response_model=SaleListResponse)
def list_sales(
    request: Request,
    from_date: datetime | None = Query(None, alias="from"),
    to_date: datetime | None = Query(None, alias="to"),
    cashier_user_id: UUID | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    _user=Depends(require_permission("POS_SALE_VIEW")),
    db=Depends(get_db),
):
    rows = SaleRepository(db).list_sales(
        SaleQueryFilters(from_date=from_date, to_date=to_date, cashier_user_id=cashier_user_id),
        limit=limit,
    )
    return SaleListResponse(rows=[sale_response(sale) for sale in rows], trace_id=getattr(request.state, "trace_id", ""))


@router.get("/pos/sales/{sale_id}", response_model=SaleResponse)
def get_sale(
    sale_id: UUID,
    _user=Depends(require_permission("POS_SALE_VIEW")),
    db=Depends(get_db),
):
    sale = SaleRepository(db).get_by_id(sale_id)
    if sale is None:
        raise AppError(ErrorCatalog.SALE_NOT_FOUND, details={"sale_id": str(sale_id)})
    return sale_response(sale)
