"""
Customer loyalty API routes
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from retail_ledger.database import transaction
from retail_ledger.dependencies import AuthContext, get_auth_context, get_db
from retail_ledger.schemas.customer import LoyaltyAdjustmentCreate, LoyaltyTransactionResponse
from retail_ledger.services.loyalty_service import LoyaltyService

router = APIRouter()


@router.post("/{customer_id}/loyalty", response_model=LoyaltyTransactionResponse, status_code=status.HTTP_201_CREATED)
def adjust_loyalty_points(
    customer_id: UUID,
    payload: LoyaltyAdjustmentCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Manually credit or deduct loyalty points"""
    with transaction(db):
        txn = LoyaltyService.adjust_points(
            db,
            auth.organization_id,
            customer_id,
            auth.member_id,
            payload.points_change,
            notes=payload.notes,
        )
        balance = txn.customer.loyalty_points
        response = LoyaltyTransactionResponse(
            id=txn.id,
            customer_id=txn.customer_id,
            points_change=txn.points_change,
            reason=txn.reason,
            notes=txn.notes,
            transaction_date=txn.transaction_date,
            balance=balance,
        )
    return response
