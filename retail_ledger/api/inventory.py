"""
Inventory API routes: restock, adjustments, stock position, low stock, reconciliation
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from retail_ledger.dependencies import AuthContext, get_auth_context, get_db
from retail_ledger.schemas.inventory import (
    AdjustmentCreate,
    AdjustmentResponse,
    BulkRestockCreate,
    BulkRestockResponse,
    RestockCreate,
    RestockResponse,
    StockAggregateResponse,
    StockBatchResponse,
    StockDriftResponse,
    StockPositionResponse,
)
from retail_ledger.services.adjustment_service import AdjustmentRequest, AdjustmentService
from retail_ledger.services.restock_service import RestockRequest, RestockService
from retail_ledger.services.stock_ledger import StockLedgerService

router = APIRouter()


@router.post("/restock", response_model=RestockResponse, status_code=status.HTTP_201_CREATED)
def restock_product(
    payload: RestockCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """
    Receive stock into a new batch.
    Quantity and price are in unit_id and are converted to the variant's base unit.
    """
    result = RestockService.restock_product(db, RestockRequest(
        organization_id=auth.organization_id,
        member_id=auth.member_id,
        product_id=payload.product_id,
        variant_id=payload.variant_id,
        location_id=payload.location_id,
        unit_id=payload.unit_id,
        unit_quantity=payload.unit_quantity,
        purchase_price=payload.purchase_price,
        supplier_id=payload.supplier_id,
        purchase_item_id=payload.purchase_item_id,
        expiry_date=payload.expiry_date,
        received_date=payload.received_date,
        notes=payload.notes,
    ))
    return RestockResponse(
        stock_batch=StockBatchResponse.model_validate(result.stock_batch),
        stock_aggregate=StockAggregateResponse.model_validate(result.stock_aggregate),
        adjustment_id=result.adjustment.id,
        movement_id=result.movement.id,
        variant_id=result.variant.id,
        variant_name=result.variant.name,
        unit_conversion={k: str(v) if not isinstance(v, str) else v for k, v in result.unit_conversion.items()},
    )


@router.post("/restock/bulk", response_model=BulkRestockResponse, status_code=status.HTTP_201_CREATED)
def bulk_restock(
    payload: BulkRestockCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Receive several lines at one location in a single transaction (all or nothing)."""
    requests = [
        RestockRequest(
            organization_id=auth.organization_id,
            member_id=auth.member_id,
            product_id=line.product_id,
            variant_id=line.variant_id,
            location_id=payload.location_id,
            unit_id=line.unit_id,
            unit_quantity=line.unit_quantity,
            purchase_price=line.purchase_price,
            supplier_id=payload.supplier_id,
            expiry_date=line.expiry_date,
            notes=line.notes,
        )
        for line in payload.items
    ]
    result = RestockService.bulk_restock(db, requests)
    return BulkRestockResponse(
        restocked=result.restocked,
        skipped=result.skipped,
        batch_ids=[r.stock_batch.id for r in result.results],
    )


@router.post("/adjustments", response_model=AdjustmentResponse, status_code=status.HTTP_201_CREATED)
def adjust_stock(
    payload: AdjustmentCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Apply a signed base-unit change to one batch"""
    result = AdjustmentService.adjust_stock(db, AdjustmentRequest(
        organization_id=auth.organization_id,
        member_id=auth.member_id,
        stock_batch_id=payload.stock_batch_id,
        quantity=payload.quantity,
        reason=payload.reason,
        product_id=payload.product_id,
        variant_id=payload.variant_id,
        notes=payload.notes,
    ))
    return AdjustmentResponse(
        adjustment_id=result.adjustment.id,
        movement_id=result.movement.id,
        stock_batch=StockBatchResponse.model_validate(result.stock_batch),
        stock_aggregate=StockAggregateResponse.model_validate(result.stock_aggregate),
    )


@router.get("/stock/{variant_id}/{location_id}", response_model=StockPositionResponse)
def get_stock_position(
    variant_id: UUID,
    location_id: UUID,
    include_empty: bool = Query(False, description="Include batches at zero"),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Aggregate stock for a variant at a location, with the batches behind it (base units)"""
    batches = StockLedgerService.get_batches(db, auth.organization_id, variant_id, location_id, include_empty)
    agg = StockLedgerService.get_aggregate(db, auth.organization_id, variant_id, location_id)
    return StockPositionResponse(
        variant_id=variant_id,
        location_id=location_id,
        current_stock=agg.current_stock if agg is not None else 0,
        available_stock=agg.available_stock if agg is not None else 0,
        ledger_quantity=StockLedgerService.get_ledger_quantity(db, auth.organization_id, variant_id, location_id),
        batches=[StockBatchResponse.model_validate(b) for b in batches],
    )


@router.get("/low-stock", response_model=List[StockAggregateResponse])
def get_low_stock(
    location_id: Optional[UUID] = Query(None),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Variants whose available stock is at or below their reorder point"""
    return StockLedgerService.get_low_stock(db, auth.organization_id, location_id)


@router.get("/reconcile", response_model=List[StockDriftResponse])
def reconcile_stock(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Read-only check that every aggregate equals the sum of its batches. Empty list = consistent."""
    return [
        StockDriftResponse(
            variant_id=d.variant_id,
            location_id=d.location_id,
            ledger_quantity=d.ledger_quantity,
            aggregate_quantity=d.aggregate_quantity,
            difference=d.difference,
        )
        for d in StockLedgerService.reconcile(db, auth.organization_id)
    ]
