"""
Batch selection - choose the batch that funds a sale line (FIFO / FEFO)
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from retail_ledger.config import settings
from retail_ledger.exceptions import InsufficientStock, NoCostBasisAvailable
from retail_ledger.models import StockBatch
from retail_ledger.services.settings_service import FEFO
from retail_ledger.services.stock_ledger import StockDeltas, StockLedgerService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchSelection:
    batch: StockBatch
    unit_cost: Decimal
    # True when no batch could cover the line and negative stock was allowed
    is_fallback: bool = False


def _candidate_order(policy: str):
    if policy == FEFO:
        # earliest expiry first; undated batches after dated ones
        return (
            StockBatch.expiry_date.asc().nulls_last(),
            StockBatch.received_date.asc(),
            StockBatch.created_at.asc(),
        )
    return (StockBatch.received_date.asc(), StockBatch.created_at.asc())


def latest_batch(db: Session, organization_id: UUID, variant_id: UUID, location_id: UUID) -> Optional[StockBatch]:
    """Most recently received batch regardless of quantity (cost basis of last resort)."""
    return db.query(StockBatch).filter(
        StockBatch.organization_id == organization_id,
        StockBatch.variant_id == variant_id,
        StockBatch.location_id == location_id,
    ).order_by(
        StockBatch.received_date.desc(),
        StockBatch.created_at.desc(),
    ).with_for_update().first()


class BatchSelectionPolicy:
    """
    Picks one batch able to cover the whole line.

    A batch qualifies when its current quantity minus what earlier lines of
    the same sale already staged against it covers the required quantity.
    Candidate rows are locked; on PostgreSQL they stay locked until the sale
    commits or rolls back.
    """

    def __init__(
        self,
        policy: str,
        negative_stock_allowed: bool,
        exclude_expired: Optional[bool] = None,
        today: Optional[date] = None,
    ):
        self.policy = policy
        self.negative_stock_allowed = negative_stock_allowed
        self.exclude_expired = settings.EXCLUDE_EXPIRED_BATCHES if exclude_expired is None else exclude_expired
        self.today = today or datetime.now(timezone.utc).date()

    def select(
        self,
        db: Session,
        organization_id: UUID,
        variant_id: UUID,
        location_id: UUID,
        required: Decimal,
        staged: StockDeltas,
        variant_label: str = "",
        location_label: str = "",
    ) -> BatchSelection:
        """
        Return the batch for `required` base units, in policy order.

        No qualifying batch:
        - negative stock disallowed -> InsufficientStock (available = aggregate
          minus what this sale already staged)
        - allowed -> most recently received batch, whatever its quantity
        - allowed but nothing ever received here -> NoCostBasisAvailable
        """
        q = db.query(StockBatch).filter(
            StockBatch.organization_id == organization_id,
            StockBatch.variant_id == variant_id,
            StockBatch.location_id == location_id,
            StockBatch.current_quantity > 0,
        )
        if self.exclude_expired:
            q = q.filter(or_(StockBatch.expiry_date.is_(None), StockBatch.expiry_date >= self.today))
        candidates = q.order_by(*_candidate_order(self.policy)).with_for_update().all()

        for batch in candidates:
            # staged deltas are negative for sales
            remaining = Decimal(batch.current_quantity) + staged.staged_for_batch(batch.id)
            if remaining >= required:
                logger.info(
                    "Selected batch %s (%s) for variant %s: required=%s remaining=%s policy=%s",
                    batch.batch_number, batch.id, variant_id, required, remaining, self.policy,
                )
                return BatchSelection(batch=batch, unit_cost=Decimal(batch.purchase_price))

        if not self.negative_stock_allowed:
            available = (
                StockLedgerService.get_aggregate_quantity(db, variant_id, location_id)
                + staged.staged_for(variant_id, location_id)
            )
            raise InsufficientStock(
                variant_label or str(variant_id),
                required,
                max(available, Decimal("0")),
                location_label or str(location_id),
            )

        batch = latest_batch(db, organization_id, variant_id, location_id)
        if batch is None:
            raise NoCostBasisAvailable(variant_label or str(variant_id), location_label or str(location_id))
        logger.warning(
            "No batch covers %s of variant %s at location %s; negative stock allowed, using latest batch %s",
            required, variant_id, location_id, batch.batch_number,
        )
        return BatchSelection(batch=batch, unit_cost=Decimal(batch.purchase_price), is_fallback=True)
