from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.retailflow.core.deps import require_permission
from app.retailflow.db.models import Product
from app.retailflow.db.session import get_db
from app.retailflow.repos.products import ProductQueryFilters
from app.retailflow.schemas.catalog import (
    CategoryCreateRequest,
    CategoryItem,
    CategoryListResponse,
    CategoryResponse,
    DeleteResponse,
    ProductCreateRequest,
    ProductItem,
    ProductListResponse,
    ProductResponse,
    ProductStatus,
    ProductUpdateRequest,
)
from app.retailflow.services.audit import AuditEventPayload, AuditService
from app.retailflow.services.catalog import CategoryService, ProductService, product_snapshot

router = APIRouter()


def product_item(product: Product) -> ProductItem:
    return ProductItem(
        id=str(product.id),
        barcode=product.barcode,
        name=product.name,
        quantity=product.quantity,
        cost_price=Decimal(str(product.cost_price)),
        selling_price=Decimal(str(product.selling_price)),
        status=product.status,
        category_id=str(product.category_id) if product.category_id else None,
        category_name=product.category.name if product.category else None,
        supplier_id=str(product.supplier_id) if product.supplier_id else None,
        supplier_name=product.supplier.name if product.supplier else None,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def _audit(db, request: Request, user, *, action: str, entity_type: str, entity_id: str, before=None, after=None):
    AuditService(db).record_event(
        AuditEventPayload.for_user(
            request,
            user,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            before=before,
            after=after,
        )
    )


@router.get("/products", response_model=ProductListResponse)
def list_products(
    request: Request,
    q: str | None = Query(None, description="Search by name, barcode or category name"),
    status: ProductStatus | None = Query(None),
    category_id: UUID | None = Query(None),
    supplier_id: UUID | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _user=Depends(require_permission("PRODUCT_VIEW")),
    db=Depends(get_db),
):
    filters = ProductQueryFilters(q=q, status=status, category_id=category_id, supplier_id=supplier_id)
    rows, total = ProductService(db).list_products(filters, limit=limit, offset=offset)
    return ProductListResponse(
        products=[product_item(product) for product in rows],
        total=total,
        limit=limit,
        offset=offset,
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(
    request: Request,
    payload: ProductCreateRequest,
    current_user=Depends(require_permission("PRODUCT_MANAGE")),
    db=Depends(get_db),
):
    product = ProductService(db).create(
        user_id=current_user.id,
        barcode=payload.barcode,
        name=payload.name,
        quantity=payload.quantity,
        cost_price=float(payload.cost_price),
        selling_price=float(payload.selling_price),
        category_id=payload.category_id,
        supplier_id=payload.supplier_id,
    )
    _audit(
        db,
        request,
        current_user,
        action="catalog.product.create",
        entity_type="product",
        entity_id=str(product.id),
        after=product_snapshot(product),
    )
    return ProductResponse(product=product_item(product), trace_id=getattr(request.state, "trace_id", ""))


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(
    request: Request,
    product_id: UUID,
    _user=Depends(require_permission("PRODUCT_VIEW")),
    db=Depends(get_db),
):
    product = ProductService(db).get(product_id)
    return ProductResponse(product=product_item(product), trace_id=getattr(request.state, "trace_id", ""))


@router.patch("/products/{product_id}", response_model=ProductResponse)
def update_product(
    request: Request,
    product_id: UUID,
    payload: ProductUpdateRequest,
    current_user=Depends(require_permission("PRODUCT_MANAGE")),
    db=Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    for field in ("cost_price", "selling_price"):
        if changes.get(field) is not None:
            changes[field] = float(changes[field])
    product, before = ProductService(db).update(product_id, changes)
    _audit(
        db,
        request,
        current_user,
        action="catalog.product.update",
        entity_type="product",
        entity_id=str(product.id),
        before=before,
        after=product_snapshot(product),
    )
    return ProductResponse(product=product_item(product), trace_id=getattr(request.state, "trace_id", ""))


@router.delete("/products/{product_id}", response_model=DeleteResponse)
def delete_product(
    request: Request,
    product_id: UUID,
    current_user=Depends(require_permission("PRODUCT_MANAGE")),
    db=Depends(get_db),
):
    before = ProductService(db).delete(product_id)
    _audit(
        db,
        request,
        current_user,
        action="catalog.product.delete",
        entity_type="product",
        entity_id=str(product_id),
        before=before,
    )
    return DeleteResponse(ok=True, id=str(product_id), trace_id=getattr(request.state, "trace_id", ""))


@router.get("/categories", response_model=CategoryListResponse)
def list_categories(
    request: Request,
    _user=Depends(require_permission("PRODUCT_VIEW")),
    db=Depends(get_db),
):
    return CategoryListResponse(
        categories=[
            CategoryItem(id=str(category.id), name=category.name, products_count=count, created_at=category.created_at)
            for category, count in CategoryService(db).list_with_counts()
        ],
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(
    request: Request,
    payload: CategoryCreateRequest,
    current_user=Depends(require_permission("PRODUCT_MANAGE")),
    db=Depends(get_db),
):
    category = CategoryService(db).create(payload.name)
    _audit(
        db,
        request,
        current_user,
        action="catalog.category.create",
        entity_type="category",
        entity_id=str(category.id),
        after={"name": category.name},
    )
    return CategoryResponse(
        category=CategoryItem(id=str(category.id), name=category.name, products_count=0, created_at=category.created_at),
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.delete("/categories/{category_id}", response_model=DeleteResponse)
def delete_category(
    request: Request,
    category_id: UUID,
    current_user=Depends(require_permission("PRODUCT_MANAGE")),
    db=Depends(get_db),
):
    before = CategoryService(db).delete(category_id)
    _audit(
        db,
        request,
        current_user,
        action="catalog.category.delete",
        entity_type="category",
        entity_id=str(category_id),
        before=before,
    )
    return DeleteResponse(ok=True, id=str(category_id), trace_id=getattr(request.state, "trace_id", ""))
