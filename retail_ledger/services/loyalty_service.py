"""
Loyalty points
"""
import logging
from decimal import ROUND_FLOOR, Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from retail_ledger.exceptions import NotFound, ValidationError
from retail_ledger.models import Customer, LoyaltyTransaction
from retail_ledger.services.audit_service import AuditService

logger = logging.getLogger(__name__)

SALE_EARNED = "SALE_EARNED"
MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"

# One point per this much of the final sale amount
POINTS_SPEND_UNIT = Decimal("10")


def points_for_amount(final_amount: Decimal) -> int:
    """floor(final_amount / 10), never negative."""
    if final_amount is None or Decimal(final_amount) <= 0:
        return 0
    return int((Decimal(final_amount) / POINTS_SPEND_UNIT).to_integral_value(rounding=ROUND_FLOOR))


class LoyaltyService:

    @staticmethod
    def _get_customer(db: Session, organization_id: UUID, customer_id: UUID, lock: bool = False) -> Customer:
        q = db.query(Customer).filter(
            Customer.id == customer_id,
            Customer.organization_id == organization_id,
        )
        if lock:
            q = q.with_for_update()
        customer = q.first()
        if customer is None:
            raise NotFound("Customer", customer_id)
        return customer

    @staticmethod
    def recompute_balance(db: Session, customer: Customer) -> int:
        """Set loyalty_points to the sum of the customer's transactions."""
        db.flush()
        total = db.query(func.coalesce(func.sum(LoyaltyTransaction.points_change), 0)).filter(
            LoyaltyTransaction.customer_id == customer.id
        ).scalar()
        customer.loyalty_points = int(total or 0)
        return customer.loyalty_points

    @staticmethod
    def award_for_sale(
        db: Session,
        organization_id: UUID,
        customer_id: UUID,
        member_id: UUID,
        sale_id: UUID,
        sale_number: str,
        final_amount: Decimal,
    ) -> Optional[LoyaltyTransaction]:
        """Record SALE_EARNED points for a completed sale. Returns None when the sale earns nothing."""
        points = points_for_amount(final_amount)
        if points <= 0:
            return None
        customer = LoyaltyService._get_customer(db, organization_id, customer_id, lock=True)
        txn = LoyaltyTransaction(
            organization_id=organization_id,
            customer_id=customer.id,
            member_id=member_id,
            points_change=points,
            reason=SALE_EARNED,
            related_sale_id=sale_id,
            notes=f"Earned from sale {sale_number}",
        )
        db.add(txn)
        LoyaltyService.recompute_balance(db, customer)
        return txn

    @staticmethod
    def adjust_points(
        db: Session,
        organization_id: UUID,
        customer_id: UUID,
        member_id: UUID,
        points_change: int,
        notes: Optional[str] = None,
        reason: str = MANUAL_ADJUSTMENT,
    ) -> LoyaltyTransaction:
        """Manual credit or debit. A debit may not take the balance below zero. Caller commits."""
        if points_change == 0:
            raise ValidationError("Points change cannot be zero", field="points_change")
        customer = LoyaltyService._get_customer(db, organization_id, customer_id, lock=True)
        current = LoyaltyService.recompute_balance(db, customer)
        if current + points_change < 0:
            raise ValidationError(
                f"Customer has {current} points; cannot deduct {-points_change}",
                field="points_change",
            )
        txn = LoyaltyTransaction(
            organization_id=organization_id,
            customer_id=customer.id,
            member_id=member_id,
            points_change=points_change,
            reason=reason,
            notes=notes,
        )
        db.add(txn)
        LoyaltyService.recompute_balance(db, customer)
        AuditService.log(
            db, organization_id, member_id, "UPDATE", "LOYALTY", customer.id,
            description=f"Loyalty points {points_change:+d} for {customer.name}",
            details={"points_change": points_change, "balance": customer.loyalty_points, "notes": notes},
        )
        logger.info("Loyalty adjustment %+d for customer %s", points_change, customer.id)
        return txn
