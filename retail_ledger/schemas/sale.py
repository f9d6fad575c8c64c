"""
Sale schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal


class CartLineIn(BaseModel):
    """One cart line; quantity is in the variant's selling unit"""
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: Decimal = Field(..., gt=0)


class SaleCreate(BaseModel):
    """Process sale request"""
    location_id: UUID
    items: List[CartLineIn] = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1, description="CASH, CARD, MOBILE, CREDIT")
    customer_id: Optional[UUID] = None
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None
    update_stock: bool = Field(default=True, description="False records the sale without decrementing stock")


class SaleResult(BaseModel):
    """Outcome of a sale attempt"""
    success: bool
    message: str
    sale_id: Optional[UUID] = None
    sale_number: Optional[str] = None
    receipt_url: Optional[str] = None
    error_kind: Optional[str] = None


class SaleItemResponse(BaseModel):
    id: UUID
    product_id: UUID
    variant_id: UUID
    stock_batch_id: UUID
    quantity: Decimal
    base_quantity: Decimal
    unit_price: Decimal
    unit_cost: Decimal
    total_amount: Decimal

    class Config:
        from_attributes = True


class SaleResponse(BaseModel):
    id: UUID
    sale_number: str
    location_id: UUID
    member_id: UUID
    customer_id: Optional[UUID] = None
    subtotal: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    final_amount: Decimal
    payment_method: str
    payment_status: str
    status: str
    stock_updated: bool
    receipt_url: Optional[str] = None
    sale_date: Optional[datetime] = None
    items: List[SaleItemResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True
