"""
Inventory schemas: restock, adjustments, stock position and reconciliation
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional, List
from datetime import datetime, date
from uuid import UUID
from decimal import Decimal


class RestockCreate(BaseModel):
    """Receive stock into a new batch"""
    product_id: UUID
    variant_id: Optional[UUID] = Field(None, description="Defaults to the product's default variant")
    location_id: UUID
    unit_id: UUID = Field(..., description="Unit the quantity and price are expressed in")
    unit_quantity: Decimal = Field(..., gt=0)
    purchase_price: Optional[Decimal] = Field(None, ge=0, description="Price per unit_id")
    supplier_id: Optional[UUID] = None
    purchase_item_id: Optional[UUID] = None
    expiry_date: Optional[date] = None
    received_date: Optional[datetime] = None
    notes: Optional[str] = None


class BulkRestockLine(BaseModel):
    """Bulk restock line; non-positive quantities are skipped"""
    product_id: UUID
    variant_id: Optional[UUID] = None
    unit_id: UUID
    unit_quantity: Decimal
    purchase_price: Optional[Decimal] = Field(None, ge=0)
    expiry_date: Optional[date] = None
    notes: Optional[str] = None


class BulkRestockCreate(BaseModel):
    location_id: UUID
    supplier_id: Optional[UUID] = None
    items: List[BulkRestockLine] = Field(..., min_length=1)


class StockBatchResponse(BaseModel):
    id: UUID
    variant_id: UUID
    location_id: UUID
    batch_number: str
    initial_quantity: Decimal
    current_quantity: Decimal
    purchase_price: Decimal
    expiry_date: Optional[date] = None
    received_date: Optional[datetime] = None
    supplier_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class StockAggregateResponse(BaseModel):
    variant_id: UUID
    location_id: UUID
    current_stock: Decimal
    reserved_stock: Decimal
    available_stock: Decimal
    reorder_point: Decimal
    reorder_qty: Decimal

    class Config:
        from_attributes = True


class RestockResponse(BaseModel):
    stock_batch: StockBatchResponse
    stock_aggregate: StockAggregateResponse
    adjustment_id: UUID
    movement_id: UUID
    variant_id: UUID
    variant_name: str
    unit_conversion: Dict[str, Any]


class BulkRestockResponse(BaseModel):
    restocked: int
    skipped: int
    batch_ids: List[UUID] = Field(default_factory=list)


class AdjustmentCreate(BaseModel):
    """Signed change to one batch, in base units"""
    stock_batch_id: UUID
    quantity: Decimal = Field(..., description="Positive adds stock, negative removes it (BASE UNITS)")
    reason: str = Field(..., description="INVENTORY_COUNT, DAMAGED, EXPIRED, LOST, STOLEN, RETURN_TO_SUPPLIER, CORRECTION")
    product_id: Optional[UUID] = None
    variant_id: Optional[UUID] = None
    notes: Optional[str] = None


class AdjustmentResponse(BaseModel):
    adjustment_id: UUID
    movement_id: UUID
    stock_batch: StockBatchResponse
    stock_aggregate: StockAggregateResponse


class StockPositionResponse(BaseModel):
    """Aggregate plus the batches behind it"""
    variant_id: UUID
    location_id: UUID
    current_stock: Decimal
    available_stock: Decimal
    ledger_quantity: Decimal
    batches: List[StockBatchResponse] = Field(default_factory=list)


class StockDriftResponse(BaseModel):
    variant_id: UUID
    location_id: UUID
    ledger_quantity: Decimal
    aggregate_quantity: Decimal
    difference: Decimal
