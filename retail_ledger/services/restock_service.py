"""
Restock Service - receive stock into a new batch.

A restock converts the received quantity and price into the variant's base
unit, creates a StockBatch, raises the (variant, location) aggregate and
records an adjustment, a movement, supplier terms and an audit entry, all in
one transaction.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from retail_ledger.database import transaction
from retail_ledger.exceptions import NoVariantForStockTracking, NotFound, ValidationError
from retail_ledger.models import (
    Location,
    Product,
    ProductSupplier,
    ProductVariant,
    ProductVariantStock,
    StockAdjustment,
    StockBatch,
    StockMovement,
    Supplier,
)
from retail_ledger.models.inventory import (
    ADJUSTMENT_IN,
    INVENTORY_COUNT,
    PURCHASE_RECEIPT,
    RECEIVED_PURCHASE,
)
from retail_ledger.services.audit_service import AuditService
from retail_ledger.services.document_service import DocumentService
from retail_ledger.services.post_commit import STOCK_RECEIVED, PostCommitHooks, hooks as default_hooks
from retail_ledger.services.stock_ledger import StockLedgerService
from retail_ledger.services.unit_conversion import UnitConversionResolver, round_quantity
from retail_ledger.services.variant_resolution import NoVariant, get_active_product, resolve_variant

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class RestockRequest:
    organization_id: UUID
    member_id: UUID
    product_id: UUID
    location_id: UUID
    unit_id: UUID
    unit_quantity: Decimal
    variant_id: Optional[UUID] = None
    supplier_id: Optional[UUID] = None
    purchase_item_id: Optional[UUID] = None
    expiry_date: Optional[date] = None
    purchase_price: Optional[Decimal] = None  # Per `unit_id`
    notes: Optional[str] = None
    received_date: Optional[datetime] = None


@dataclass
class RestockResult:
    stock_batch: StockBatch
    stock_aggregate: ProductVariantStock
    adjustment: StockAdjustment
    movement: StockMovement
    variant: ProductVariant
    unit_conversion: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BulkRestockResult:
    restocked: int
    skipped: int
    results: List[RestockResult] = field(default_factory=list)


def _variant_base_cost(resolver: UnitConversionResolver, product: Product, variant: ProductVariant) -> Decimal:
    """Fallback cost per base unit when the restock carries no price."""
    if variant.buying_price is not None:
        stocking_unit_id = variant.stocking_unit_id or variant.base_unit_id
        return resolver.convert_price_per_unit_to_base(
            Decimal(variant.buying_price), stocking_unit_id, variant.base_unit_id
        )
    if product.base_cost is not None:
        return Decimal(product.base_cost)
    logger.warning("No purchase price or buying price for variant %s; batch cost recorded as 0", variant.id)
    return ZERO


class RestockService:

    @staticmethod
    def restock_product(
        db: Session,
        request: RestockRequest,
        post_commit_hooks: Optional[PostCommitHooks] = None,
    ) -> RestockResult:
        """Receive one restock line in its own transaction. Raises on any failure; nothing is persisted then."""
        with transaction(db):
            resolver = UnitConversionResolver(db, request.organization_id)
            result = RestockService._restock(db, request, resolver)
            batch_id = result.stock_batch.id
        logger.info("Restock committed: batch %s", batch_id)
        (post_commit_hooks or default_hooks).fire(STOCK_RECEIVED, {
            "organization_id": request.organization_id,
            "location_id": request.location_id,
            "variant_ids": [result.variant.id],
        })
        return result

    @staticmethod
    def bulk_restock(
        db: Session,
        requests: List[RestockRequest],
        post_commit_hooks: Optional[PostCommitHooks] = None,
    ) -> BulkRestockResult:
        """
        Receive several lines in one transaction; all are stored or none.
        Lines with a non-positive quantity are skipped rather than rejected.
        """
        if not requests:
            raise ValidationError("No restock lines given", field="items")
        results = []
        skipped = 0
        with transaction(db):
            resolver = UnitConversionResolver(db, requests[0].organization_id)
            for request in requests:
                if request.unit_quantity is None or Decimal(request.unit_quantity) <= 0:
                    skipped += 1
                    continue
                results.append(RestockService._restock(db, request, resolver))
        logger.info("Bulk restock committed: %s restocked, %s skipped", len(results), skipped)
        if results:
            (post_commit_hooks or default_hooks).fire(STOCK_RECEIVED, {
                "organization_id": requests[0].organization_id,
                "location_ids": sorted({str(r.location_id) for r in requests}),
                "variant_ids": [r.variant.id for r in results],
            })
        return BulkRestockResult(restocked=len(results), skipped=skipped, results=results)

    @staticmethod
    def _restock(db: Session, request: RestockRequest, resolver: UnitConversionResolver) -> RestockResult:
        unit_quantity = Decimal(request.unit_quantity) if request.unit_quantity is not None else ZERO
        if unit_quantity <= 0:
            raise ValidationError("Quantity must be greater than zero", field="unit_quantity")
        if request.purchase_price is not None and Decimal(request.purchase_price) < 0:
            raise ValidationError("Purchase price cannot be negative", field="purchase_price")

        product = get_active_product(db, request.organization_id, request.product_id)
        resolution = resolve_variant(db, product, request.variant_id, use_default=True)
        if isinstance(resolution, NoVariant):
            raise NoVariantForStockTracking(product.id, product.name)
        variant = resolution.variant

        location = db.query(Location).filter(
            Location.id == request.location_id,
            Location.organization_id == request.organization_id,
        ).first()
        if location is None or not location.is_active:
            raise NotFound("Location", request.location_id)
        if request.supplier_id is not None:
            supplier = db.query(Supplier.id).filter(
                Supplier.id == request.supplier_id,
                Supplier.organization_id == request.organization_id,
            ).first()
            if supplier is None:
                raise NotFound("Supplier", request.supplier_id)

        factor = resolver.factor_to_base(request.unit_id, variant.base_unit_id)
        base_quantity = round_quantity(unit_quantity * factor)
        if base_quantity <= 0:
            raise ValidationError("Quantity is too small to store in the base unit", field="unit_quantity")
        if request.purchase_price is not None:
            price_per_base = resolver.convert_price_per_unit_to_base(
                Decimal(request.purchase_price), request.unit_id, variant.base_unit_id
            )
        else:
            price_per_base = _variant_base_cost(resolver, product, variant)

        unit = resolver.get_unit(request.unit_id)
        base_unit = resolver.get_unit(variant.base_unit_id)
        received_at = request.received_date or datetime.now(timezone.utc)
        batch_number = DocumentService.generate_batch_number(product.id, variant.id, received_at.date())

        batch = StockBatch(
            organization_id=request.organization_id,
            variant_id=variant.id,
            location_id=location.id,
            batch_number=batch_number,
            initial_quantity=base_quantity,
            current_quantity=base_quantity,
            purchase_price=price_per_base,
            expiry_date=request.expiry_date,
            received_date=received_at,
            supplier_id=request.supplier_id,
            purchase_item_id=request.purchase_item_id,
            created_by=request.member_id,
        )
        aggregate = StockLedgerService.add_batch(db, batch, product.id)

        notes = request.notes or (
            f"Restocked {unit_quantity} {unit.name} ({base_quantity} base units). Batch: {batch_number}"
        )
        from_purchase = request.purchase_item_id is not None
        adjustment = StockAdjustment(
            organization_id=request.organization_id,
            product_id=product.id,
            variant_id=variant.id,
            location_id=location.id,
            stock_batch_id=batch.id,
            member_id=request.member_id,
            quantity=base_quantity,
            reason=RECEIVED_PURCHASE if from_purchase else INVENTORY_COUNT,
            notes=notes,
        )
        db.add(adjustment)
        db.flush()
        movement = StockMovement(
            organization_id=request.organization_id,
            product_id=product.id,
            variant_id=variant.id,
            stock_batch_id=batch.id,
            from_location_id=None,
            to_location_id=location.id,
            quantity=base_quantity,
            movement_type=PURCHASE_RECEIPT if from_purchase else ADJUSTMENT_IN,
            adjustment_id=adjustment.id,
            reference_type="PurchaseItem" if from_purchase else None,
            reference_id=request.purchase_item_id,
            member_id=request.member_id,
            notes=notes,
        )
        db.add(movement)

        if request.supplier_id is not None:
            RestockService._upsert_product_supplier(
                db, variant.id, request.supplier_id, price_per_base, request.unit_id
            )

        unit_conversion = {
            "from_unit": unit.name,
            "from_quantity": unit_quantity,
            "to_unit": base_unit.name,
            "to_quantity": base_quantity,
            "conversion_factor": factor,
        }
        AuditService.log(
            db,
            request.organization_id,
            request.member_id,
            "CREATE",
            "STOCK_BATCH",
            batch.id,
            description=f"Restocked {product.name}: {unit_quantity} {unit.name} at {location.name}",
            details={
                "batch_number": batch_number,
                "product_id": product.id,
                "variant_id": variant.id,
                "location_id": location.id,
                "supplier_id": request.supplier_id,
                "purchase_item_id": request.purchase_item_id,
                "purchase_price_per_base": price_per_base,
                "expiry_date": request.expiry_date,
                "unit_conversion": unit_conversion,
            },
        )
        db.flush()
        logger.info(
            "Restocked variant %s at %s: %s %s -> %s %s at %s per base unit (batch %s)",
            variant.id, location.id, unit_quantity, unit.name, base_quantity, base_unit.name,
            price_per_base, batch_number,
        )
        return RestockResult(
            stock_batch=batch,
            stock_aggregate=aggregate,
            adjustment=adjustment,
            movement=movement,
            variant=variant,
            unit_conversion=unit_conversion,
        )

    @staticmethod
    def _upsert_product_supplier(
        db: Session,
        variant_id: UUID,
        supplier_id: UUID,
        cost_per_base: Decimal,
        packaging_unit_id: UUID,
    ) -> ProductSupplier:
        """Refresh last-known supply terms for (variant, supplier)."""
        def _find():
            return db.query(ProductSupplier).filter(
                ProductSupplier.variant_id == variant_id,
                ProductSupplier.supplier_id == supplier_id,
            ).with_for_update().first()

        link = _find()
        if link is None:
            try:
                with db.begin_nested():
                    link = ProductSupplier(
                        variant_id=variant_id,
                        supplier_id=supplier_id,
                        cost_price=cost_per_base,
                        packaging_unit_id=packaging_unit_id,
                        is_preferred=False,
                    )
                    db.add(link)
                return link
            except IntegrityError:
                link = _find()
                if link is None:
                    raise
        link.cost_price = cost_per_base
        link.packaging_unit_id = packaging_unit_id
        return link
