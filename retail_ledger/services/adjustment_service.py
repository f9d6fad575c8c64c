"""
Manual stock adjustments against a single batch (counts, damage, write-offs)
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from retail_ledger.database import transaction
from retail_ledger.exceptions import InsufficientStock, NotFound, ValidationError
from retail_ledger.models import Location, ProductVariant, ProductVariantStock, StockAdjustment, StockBatch, StockMovement
from retail_ledger.models.inventory import ADJUSTMENT_IN, ADJUSTMENT_OUT, ADJUSTMENT_REASONS, EXPIRED
from retail_ledger.services.audit_service import AuditService
from retail_ledger.services.post_commit import STOCK_ADJUSTED, PostCommitHooks, hooks as default_hooks
from retail_ledger.services.settings_service import SettingsService
from retail_ledger.services.stock_ledger import StockLedgerService
from retail_ledger.services.unit_conversion import round_quantity

logger = logging.getLogger(__name__)


@dataclass
class AdjustmentRequest:
    organization_id: UUID
    member_id: UUID
    stock_batch_id: UUID
    quantity: Decimal  # Signed, base units
    reason: str
    product_id: Optional[UUID] = None
    variant_id: Optional[UUID] = None
    notes: Optional[str] = None


@dataclass
class AdjustmentResult:
    adjustment: StockAdjustment
    movement: StockMovement
    stock_batch: StockBatch
    stock_aggregate: ProductVariantStock


class AdjustmentService:

    @staticmethod
    def adjust_stock(
        db: Session,
        request: AdjustmentRequest,
        post_commit_hooks: Optional[PostCommitHooks] = None,
    ) -> AdjustmentResult:
        """
        Apply a signed quantity to one batch and its aggregate.

        The batch may not go below zero unless the organization allows
        negative stock. If product_id or variant_id are given they must match
        the batch.
        """
        quantity = round_quantity(request.quantity) if request.quantity is not None else Decimal("0")
        if quantity == 0:
            raise ValidationError("Adjustment quantity cannot be zero", field="quantity")
        reason = (request.reason or "").strip().upper()
        if reason not in ADJUSTMENT_REASONS:
            raise ValidationError(f"Unknown adjustment reason: {request.reason}", field="reason")

        with transaction(db):
            batch = db.query(StockBatch).filter(
                StockBatch.id == request.stock_batch_id,
                StockBatch.organization_id == request.organization_id,
            ).with_for_update().first()
            if batch is None:
                raise NotFound("StockBatch", request.stock_batch_id)
            variant = db.get(ProductVariant, batch.variant_id)
            if request.variant_id is not None and request.variant_id != batch.variant_id:
                raise ValidationError("Variant does not match the stock batch", field="variant_id")
            if request.product_id is not None and request.product_id != variant.product_id:
                raise ValidationError("Product does not match the stock batch", field="product_id")

            new_quantity = Decimal(batch.current_quantity) + quantity
            if new_quantity < 0:
                inv_settings = SettingsService.get_settings(db, request.organization_id)
                if not inv_settings.negative_stock_allowed:
                    location = db.get(Location, batch.location_id)
                    raise InsufficientStock(
                        variant.name,
                        -quantity,
                        Decimal(batch.current_quantity),
                        location.name if location else str(batch.location_id),
                    )
                logger.warning(
                    "Adjustment takes batch %s to %s; negative stock allowed", batch.batch_number, new_quantity
                )

            aggregate = StockLedgerService.change_batch_quantity(db, batch, variant.product_id, quantity)

            adjustment = StockAdjustment(
                organization_id=request.organization_id,
                product_id=variant.product_id,
                variant_id=variant.id,
                location_id=batch.location_id,
                stock_batch_id=batch.id,
                member_id=request.member_id,
                quantity=quantity,
                reason=reason,
                notes=request.notes,
            )
            db.add(adjustment)
            db.flush()
            if reason == EXPIRED and quantity < 0:
                movement_type = EXPIRED
            else:
                movement_type = ADJUSTMENT_IN if quantity > 0 else ADJUSTMENT_OUT
            movement = StockMovement(
                organization_id=request.organization_id,
                product_id=variant.product_id,
                variant_id=variant.id,
                stock_batch_id=batch.id,
                from_location_id=batch.location_id if quantity < 0 else None,
                to_location_id=batch.location_id if quantity > 0 else None,
                quantity=abs(quantity),
                movement_type=movement_type,
                adjustment_id=adjustment.id,
                reference_type="StockAdjustment",
                reference_id=adjustment.id,
                member_id=request.member_id,
                notes=f"Reason: {reason}. {request.notes or ''}".strip(),
            )
            db.add(movement)
            AuditService.log(
                db,
                request.organization_id,
                request.member_id,
                "CREATE",
                "STOCK_ADJUSTMENT",
                adjustment.id,
                description=f"{reason} {quantity:+} on batch {batch.batch_number}",
                details={
                    "stock_batch_id": batch.id,
                    "quantity": quantity,
                    "reason": reason,
                    "new_batch_quantity": new_quantity,
                },
            )
            db.flush()

        logger.info("Adjusted batch %s by %s (%s)", request.stock_batch_id, quantity, reason)
        (post_commit_hooks or default_hooks).fire(STOCK_ADJUSTED, {
            "organization_id": request.organization_id,
            "location_id": batch.location_id,
            "variant_ids": [batch.variant_id],
        })
        return AdjustmentResult(
            adjustment=adjustment,
            movement=movement,
            stock_batch=batch,
            stock_aggregate=aggregate,
        )
