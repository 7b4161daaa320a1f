from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.retailflow.core.deps import require_permission
from app.retailflow.db.models import Supplier
from app.retailflow.db.session import get_db
from app.retailflow.schemas.catalog import (
    DeleteResponse,
    SupplierCreateRequest,
    SupplierItem,
    SupplierListResponse,
    SupplierResponse,
    SupplierStatus,
    SupplierUpdateRequest,
)
from app.retailflow.services.audit import AuditEventPayload, AuditService
from app.retailflow.services.catalog import SupplierService

router = APIRouter()


def _supplier_item(supplier: Supplier, products_count: int) -> SupplierItem:
    return SupplierItem(
        id=str(supplier.id),
        name=supplier.name,
        contact_person=supplier.contact_person,
        email=supplier.email,
        phone=supplier.phone,
        address=supplier.address,
        status=supplier.status,
        products_count=products_count,
        created_at=supplier.created_at,
        updated_at=supplier.updated_at,
    )


def _record(db, request: Request, user, action: str, supplier_id: str, *, before=None, after=None) -> None:
    AuditService(db).record_event(
        AuditEventPayload.for_user(
            request,
            user,
            action=action,
            entity_type="supplier",
            entity_id=supplier_id,
            before=before,
            after=after,
        )
    )


@router.get("/suppliers", response_model=SupplierListResponse)
def list_suppliers(
    request: Request,
    q: str | None = Query(None),
    status: SupplierStatus | None = Query(None),
    _user=Depends(require_permission("SUPPLIER_VIEW")),
    db=Depends(get_db),
):
    rows = SupplierService(db).list_with_counts(q=q, status=status)
    return SupplierListResponse(
        suppliers=[_supplier_item(supplier, count) for supplier, count in rows],
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.post("/suppliers", response_model=SupplierResponse, status_code=201)
def create_supplier(
    request: Request,
    payload: SupplierCreateRequest,
    current_user=Depends(require_permission("SUPPLIER_MANAGE")),
    db=Depends(get_db),
):
    fields = payload.model_dump()
    fields["email"] = str(payload.email) if payload.email else None
    supplier = SupplierService(db).create(**fields)
    _record(db, request, current_user, "supplier.create", str(supplier.id), after={"name": supplier.name})
    return SupplierResponse(supplier=_supplier_item(supplier, 0), trace_id=getattr(request.state, "trace_id", ""))


@router.get("/suppliers/{supplier_id}", response_model=SupplierResponse)
def get_supplier(
    request: Request,
    supplier_id: UUID,
    _user=Depends(require_permission("SUPPLIER_VIEW")),
    db=Depends(get_db),
):
    service = SupplierService(db)
    supplier = service.get(supplier_id)
    return SupplierResponse(
        supplier=_supplier_item(supplier, service.products_count(supplier)),
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.patch("/suppliers/{supplier_id}", response_model=SupplierResponse)
def update_supplier(
    request: Request,
    supplier_id: UUID,
    payload: SupplierUpdateRequest,
    current_user=Depends(require_permission("SUPPLIER_MANAGE")),
    db=Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("email") is not None:
        changes["email"] = str(changes["email"])
    service = SupplierService(db)
    supplier = service.update(supplier_id, changes)
    _record(db, request, current_user, "supplier.update", str(supplier.id), after=changes)
    return SupplierResponse(
        supplier=_supplier_item(supplier, service.products_count(supplier)),
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.delete("/suppliers/{supplier_id}", response_model=DeleteResponse)
def delete_supplier(
    request: Request,
    supplier_id: UUID,
    current_user=Depends(require_permission("SUPPLIER_MANAGE")),
    db=Depends(get_db),
):
    before = SupplierService(db).delete(supplier_id)
    _record(db, request, current_user, "supplier.delete", str(supplier_id), before=before)
    return DeleteResponse(ok=True, id=str(supplier_id), trace_id=getattr(request.state, "trace_id", ""))
