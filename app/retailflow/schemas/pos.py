from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.retailflow.pos.cart import MAX_LINE_QUANTITY


class CartScanRequest(BaseModel):
    barcode: str = Field(..., min_length=1, max_length=100)


class CartLineUpdateRequest(BaseModel):
    quantity: int = Field(..., ge=0, le=MAX_LINE_QUANTITY)


class CheckoutRequest(BaseModel):
    model_config = {"json_schema_extra": {"example": {"tendered_amount": "30.00"}}}

    tendered_amount: Decimal = Field(..., ge=0)


class CartLineResponse(BaseModel):
    line_id: str
    product_id: str
    barcode: str
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class CartTotalsResponse(BaseModel):
    subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    total: Decimal
    item_count: int


class CartResponse(BaseModel):
    cart_id: str
    transaction_id: str
    state: str
    owner_id: str
    lines: list[CartLineResponse]
    totals: CartTotalsResponse
    cached_products: int
    failure_reason: str | None = None
    last_sale_id: str | None = None
    trace_id: str


class ReceiptLineResponse(BaseModel):
    product_id: str | None
    barcode: str | None
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class ReceiptResponse(BaseModel):
    sale_id: str
    transaction_id: str
    subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    total: Decimal
    tendered: Decimal
    change: Decimal
    lines: list[ReceiptLineResponse]
    created_at: datetime
    next_transaction_id: str
    trace_id: str


class SaleHeaderResponse(BaseModel):
    id: str
    subtotal_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    customer_payment: Decimal
    change_amount: Decimal
    cashier_user_id: str | None
    created_at: datetime


class SaleResponse(BaseModel):
    header: SaleHeaderResponse
    lines: list[ReceiptLineResponse]


class SaleListResponse(BaseModel):
    rows: list[SaleResponse]
    trace_id: str
