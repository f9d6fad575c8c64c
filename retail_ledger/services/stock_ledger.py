"""
Stock ledger service: batch quantities and the per-location stock aggregate.

Every change to a StockBatch quantity goes through this module, which applies
the same delta to ProductVariantStock in the same transaction. reconcile()
reports any (variant, location) where the two disagree.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from retail_ledger.exceptions import ConcurrencyConflict, NotFound
from retail_ledger.models import ProductVariant, ProductVariantStock, StockBatch

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

AggregateKey = Tuple[UUID, UUID]  # (variant_id, location_id)


@dataclass
class StockDeltas:
    """
    Quantity changes staged during one transaction.

    Several sale lines may draw on the same batch; staging sums them so each
    batch and each aggregate row is written once, and lets batch selection see
    what earlier lines already took.
    """
    batch: Dict[UUID, Decimal] = field(default_factory=dict)
    aggregate: Dict[AggregateKey, Decimal] = field(default_factory=dict)
    products: Dict[AggregateKey, UUID] = field(default_factory=dict)

    def add(self, batch_id: UUID, product_id: UUID, variant_id: UUID, location_id: UUID, quantity: Decimal) -> None:
        self.batch[batch_id] = self.batch.get(batch_id, ZERO) + quantity
        key = (variant_id, location_id)
        self.aggregate[key] = self.aggregate.get(key, ZERO) + quantity
        self.products[key] = product_id

    def staged_for_batch(self, batch_id: UUID) -> Decimal:
        return self.batch.get(batch_id, ZERO)

    def staged_for(self, variant_id: UUID, location_id: UUID) -> Decimal:
        return self.aggregate.get((variant_id, location_id), ZERO)


@dataclass(frozen=True)
class StockDrift:
    variant_id: UUID
    location_id: UUID
    ledger_quantity: Decimal
    aggregate_quantity: Decimal

    @property
    def difference(self) -> Decimal:
        return self.aggregate_quantity - self.ledger_quantity


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StockLedgerService:
    """Batch and aggregate writes. Callers own the transaction."""

    @staticmethod
    def _locked_aggregate(db: Session, variant_id: UUID, location_id: UUID) -> Optional[ProductVariantStock]:
        return db.query(ProductVariantStock).filter(
            ProductVariantStock.variant_id == variant_id,
            ProductVariantStock.location_id == location_id,
        ).with_for_update().first()

    @staticmethod
    def get_or_create_aggregate(
        db: Session,
        organization_id: UUID,
        product_id: UUID,
        variant_id: UUID,
        location_id: UUID,
    ) -> ProductVariantStock:
        """
        Locked aggregate row for (variant, location), created at zero if missing.

        Creation runs in a SAVEPOINT. If a concurrent transaction inserted the
        row first, the unique constraint fires, the savepoint is rolled back and
        the row is read again once; failing that, ConcurrencyConflict.
        """
        agg = StockLedgerService._locked_aggregate(db, variant_id, location_id)
        if agg is not None:
            return agg

        variant = db.get(ProductVariant, variant_id)
        reorder_point = variant.reorder_point if variant and variant.reorder_point is not None else Decimal("5")
        reorder_qty = variant.reorder_qty if variant and variant.reorder_qty is not None else Decimal("10")
        try:
            with db.begin_nested():
                agg = ProductVariantStock(
                    organization_id=organization_id,
                    product_id=product_id,
                    variant_id=variant_id,
                    location_id=location_id,
                    current_stock=ZERO,
                    reserved_stock=ZERO,
                    available_stock=ZERO,
                    reorder_point=reorder_point,
                    reorder_qty=reorder_qty,
                )
                db.add(agg)
            return agg
        except IntegrityError:
            logger.info(
                "Stock aggregate for variant %s at location %s created concurrently; re-reading",
                variant_id, location_id,
            )
        agg = StockLedgerService._locked_aggregate(db, variant_id, location_id)
        if agg is None:
            raise ConcurrencyConflict(
                f"Could not create stock record for variant {variant_id} at location {location_id}"
            )
        return agg

    @staticmethod
    def apply_aggregate_delta(agg: ProductVariantStock, delta: Decimal) -> None:
        agg.current_stock = Decimal(agg.current_stock or 0) + delta
        agg.available_stock = agg.current_stock - Decimal(agg.reserved_stock or 0)
        agg.last_updated = _now()

    @staticmethod
    def add_batch(db: Session, batch: StockBatch, product_id: UUID) -> ProductVariantStock:
        """Insert a new batch and raise the aggregate by its quantity."""
        db.add(batch)
        db.flush()
        agg = StockLedgerService.get_or_create_aggregate(
            db, batch.organization_id, product_id, batch.variant_id, batch.location_id
        )
        StockLedgerService.apply_aggregate_delta(agg, Decimal(batch.initial_quantity))
        db.flush()
        return agg

    @staticmethod
    def change_batch_quantity(
        db: Session,
        batch: StockBatch,
        product_id: UUID,
        delta: Decimal,
    ) -> ProductVariantStock:
        """Apply a signed delta to one (already locked) batch and its aggregate."""
        batch.current_quantity = Decimal(batch.current_quantity) + delta
        agg = StockLedgerService.get_or_create_aggregate(
            db, batch.organization_id, product_id, batch.variant_id, batch.location_id
        )
        StockLedgerService.apply_aggregate_delta(agg, delta)
        db.flush()
        return agg

    @staticmethod
    def apply_deltas(db: Session, organization_id: UUID, deltas: StockDeltas) -> None:
        """
        Write staged deltas: each touched batch once, each touched aggregate once.
        A missing aggregate is created at zero and then receives the delta.
        """
        for batch_id, delta in deltas.batch.items():
            batch = db.query(StockBatch).filter(StockBatch.id == batch_id).with_for_update().first()
            if batch is None:
                raise NotFound("StockBatch", batch_id)
            batch.current_quantity = Decimal(batch.current_quantity) + delta
        for (variant_id, location_id), delta in deltas.aggregate.items():
            agg = StockLedgerService.get_or_create_aggregate(
                db, organization_id, deltas.products[(variant_id, location_id)], variant_id, location_id
            )
            StockLedgerService.apply_aggregate_delta(agg, delta)
        db.flush()

    @staticmethod
    def get_aggregate(db: Session, organization_id: UUID, variant_id: UUID, location_id: UUID) -> Optional[ProductVariantStock]:
        """Unlocked read of the aggregate row (reporting)."""
        return db.query(ProductVariantStock).filter(
            ProductVariantStock.organization_id == organization_id,
            ProductVariantStock.variant_id == variant_id,
            ProductVariantStock.location_id == location_id,
        ).first()

    @staticmethod
    def get_aggregate_quantity(db: Session, variant_id: UUID, location_id: UUID) -> Decimal:
        value = db.query(ProductVariantStock.current_stock).filter(
            ProductVariantStock.variant_id == variant_id,
            ProductVariantStock.location_id == location_id,
        ).scalar()
        return Decimal(value) if value is not None else ZERO

    @staticmethod
    def get_ledger_quantity(db: Session, organization_id: UUID, variant_id: UUID, location_id: UUID) -> Decimal:
        value = db.query(func.coalesce(func.sum(StockBatch.current_quantity), 0)).filter(
            StockBatch.organization_id == organization_id,
            StockBatch.variant_id == variant_id,
            StockBatch.location_id == location_id,
        ).scalar()
        return Decimal(str(value)) if value is not None else ZERO

    @staticmethod
    def reconcile(db: Session, organization_id: Optional[UUID] = None) -> List[StockDrift]:
        """
        Compare SUM(batch.current_quantity) with the aggregate for every
        (variant, location). Returns the pairs that disagree; empty means consistent.
        Read-only.
        """
        ledger_q = db.query(
            StockBatch.variant_id,
            StockBatch.location_id,
            func.sum(StockBatch.current_quantity).label("qty"),
        )
        agg_q = db.query(
            ProductVariantStock.variant_id,
            ProductVariantStock.location_id,
            ProductVariantStock.current_stock,
        )
        if organization_id is not None:
            ledger_q = ledger_q.filter(StockBatch.organization_id == organization_id)
            agg_q = agg_q.filter(ProductVariantStock.organization_id == organization_id)

        ledger = {
            (r.variant_id, r.location_id): Decimal(str(r.qty or 0))
            for r in ledger_q.group_by(StockBatch.variant_id, StockBatch.location_id).all()
        }
        aggregates = {
            (r.variant_id, r.location_id): Decimal(str(r.current_stock or 0))
            for r in agg_q.all()
        }

        drift = []
        for key in sorted(set(ledger) | set(aggregates), key=lambda k: (str(k[0]), str(k[1]))):
            ledger_qty = ledger.get(key, ZERO)
            agg_qty = aggregates.get(key, ZERO)
            if ledger_qty != agg_qty:
                drift.append(StockDrift(key[0], key[1], ledger_qty, agg_qty))
        if drift:
            logger.warning("Stock reconciliation found %s drifting (variant, location) pairs", len(drift))
        return drift

    @staticmethod
    def get_low_stock(
        db: Session,
        organization_id: UUID,
        location_id: Optional[UUID] = None,
    ) -> List[ProductVariantStock]:
        """Aggregates at or below their reorder point."""
        q = db.query(ProductVariantStock).filter(
            ProductVariantStock.organization_id == organization_id,
            ProductVariantStock.available_stock <= ProductVariantStock.reorder_point,
        )
        if location_id is not None:
            q = q.filter(ProductVariantStock.location_id == location_id)
        return q.order_by(ProductVariantStock.available_stock.asc()).all()

    @staticmethod
    def get_batches(
        db: Session,
        organization_id: UUID,
        variant_id: UUID,
        location_id: UUID,
        include_empty: bool = False,
    ) -> List[StockBatch]:
        q = db.query(StockBatch).filter(
            StockBatch.organization_id == organization_id,
            StockBatch.variant_id == variant_id,
            StockBatch.location_id == location_id,
        )
        if not include_empty:
            q = q.filter(StockBatch.current_quantity != 0)
        return q.order_by(StockBatch.received_date.asc()).all()
