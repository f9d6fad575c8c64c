"""
Sales API routes
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from retail_ledger.dependencies import AuthContext, get_auth_context, get_db
from retail_ledger.exceptions import status_for_code
from retail_ledger.schemas.sale import SaleCreate, SaleResponse, SaleResult
from retail_ledger.services.sale_service import CartLine, SaleRequest, SaleService

router = APIRouter()


@router.post("", response_model=SaleResult, status_code=status.HTTP_201_CREATED)
def process_sale(
    payload: SaleCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """
    Process a cart as one atomic sale.

    Business failures (insufficient stock, missing variant, discount above
    subtotal) come back as {success: false, message, error_kind} with a 4xx
    status; nothing is persisted for them.
    """
    request = SaleRequest(
        organization_id=auth.organization_id,
        member_id=auth.member_id,
        location_id=payload.location_id,
        items=[
            CartLine(product_id=line.product_id, variant_id=line.variant_id, quantity=line.quantity)
            for line in payload.items
        ],
        payment_method=payload.payment_method,
        customer_id=payload.customer_id,
        discount_amount=payload.discount_amount,
        notes=payload.notes,
        update_stock=payload.update_stock,
    )
    result = SaleService.process_sale(db, request)
    body = SaleResult(
        success=result.success,
        message=result.message,
        sale_id=result.sale_id,
        sale_number=result.sale_number,
        receipt_url=result.receipt_url,
        error_kind=result.error_kind,
    )
    if not result.success:
        return JSONResponse(status_code=status_for_code(result.error_kind), content=body.model_dump(mode="json"))
    return body


@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(
    sale_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Get a sale with its lines"""
    return SaleService.get_sale(db, auth.organization_id, sale_id)
