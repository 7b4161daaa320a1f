from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

ProductStatus = Literal["in-stock", "low-stock", "out-of-stock"]
SupplierStatus = Literal["active", "inactive"]


class ProductCreateRequest(BaseModel):
    model_config = {
        "str_strip_whitespace": True,
        "json_schema_extra": {
            "example": {
                "barcode": "4006381333931",
                "name": "Ballpoint pen",
                "quantity": 120,
                "cost_price": "0.40",
                "selling_price": "1.25",
                "category_id": None,
                "supplier_id": None,
            }
        }
    }

    barcode: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(0, ge=0)
    cost_price: Decimal = Field(Decimal("0"), ge=0)
    selling_price: Decimal = Field(..., ge=0)
    category_id: UUID | None = None
    supplier_id: UUID | None = None


class ProductUpdateRequest(BaseModel):
    model_config = {"str_strip_whitespace": True}

    barcode: str | None = Field(None, min_length=1, max_length=100)
    name: str | None = Field(None, min_length=1, max_length=255)
    cost_price: Decimal | None = Field(None, ge=0)
    selling_price: Decimal | None = Field(None, ge=0)
    category_id: UUID | None = None
    supplier_id: UUID | None = None


class ProductItem(BaseModel):
    id: str
    barcode: str
    name: str
    quantity: int
    cost_price: Decimal
    selling_price: Decimal
    status: ProductStatus
    category_id: str | None
    category_name: str | None
    supplier_id: str | None
    supplier_name: str | None
    created_at: datetime
    updated_at: datetime | None


class ProductResponse(BaseModel):
    product: ProductItem
    trace_id: str


class ProductListResponse(BaseModel):
    products: list[ProductItem]
    total: int
    limit: int
    offset: int
    trace_id: str


class DeleteResponse(BaseModel):
    ok: bool
    id: str
    trace_id: str


class CategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)


class CategoryItem(BaseModel):
    id: str
    name: str
    products_count: int
    created_at: datetime


class CategoryResponse(BaseModel):
    category: CategoryItem
    trace_id: str


class CategoryListResponse(BaseModel):
    categories: list[CategoryItem]
    trace_id: str


class SupplierCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_person: str | None = Field(None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    address: str | None = None
    status: SupplierStatus = "active"


class SupplierUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    contact_person: str | None = Field(None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    address: str | None = None
    status: SupplierStatus | None = None


class SupplierItem(BaseModel):
    id: str
    name: str
    contact_person: str | None
    email: str | None
    phone: str | None
    address: str | None
    status: SupplierStatus
    products_count: int
    created_at: datetime
    updated_at: datetime | None


class SupplierResponse(BaseModel):
    supplier: SupplierItem
    trace_id: str


class SupplierListResponse(BaseModel):
    suppliers: list[SupplierItem]
    trace_id: str
