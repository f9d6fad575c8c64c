"""
Sale Service - processes a point-of-sale cart as one atomic transaction.

Within a single transaction:
  1. Validate the cart and read organization settings once
  2. Resolve each line's variant, convert its quantity to base units and pick
     the funding batch (FIFO/FEFO), staging the decrement
  3. Compute subtotal, discount, tax and final amount
  4. Create the Sale and its SaleItems (each linked to its batch)
  5. Apply the staged batch and aggregate decrements and record movements
  6. Award loyalty points and write the audit entry
Then commit. Receipt generation and post-commit hooks run afterwards and can
never undo the sale.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.orm import Session

from retail_ledger.config import settings
from retail_ledger.database import transaction
from retail_ledger.exceptions import (
    DiscountExceedsSubtotal,
    MissingVariantForStockTracking,
    NoCostBasisAvailable,
    NotFound,
    PersistenceError,
    RetailLedgerError,
    ValidationError,
)
from retail_ledger.models import Customer, Location, Organization, Sale, SaleItem, StockMovement
from retail_ledger.models.inventory import SALE
from retail_ledger.services.audit_service import AuditService
from retail_ledger.services.batch_selection import BatchSelection, BatchSelectionPolicy, latest_batch
from retail_ledger.services.document_service import DocumentService
from retail_ledger.services.loyalty_service import LoyaltyService
from retail_ledger.services.post_commit import SALE_COMPLETED, PostCommitHooks, hooks as default_hooks
from retail_ledger.services.receipt_service import ReceiptService
from retail_ledger.services.settings_service import InventorySettings, SettingsService
from retail_ledger.services.stock_ledger import StockDeltas, StockLedgerService
from retail_ledger.services.unit_conversion import UnitConversionResolver, round_quantity
from retail_ledger.services.variant_resolution import NoVariant, get_active_product, resolve_variant
from retail_ledger.utils.tax import compute_tax, round_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class CartLine:
    product_id: UUID
    quantity: Decimal  # In the variant's selling unit
    variant_id: Optional[UUID] = None


@dataclass
class SaleRequest:
    organization_id: UUID
    member_id: UUID
    location_id: UUID
    items: List[CartLine]
    payment_method: str
    customer_id: Optional[UUID] = None
    discount_amount: Decimal = ZERO
    notes: Optional[str] = None
    # False records the sale with a cost basis but leaves stock untouched
    update_stock: bool = True


@dataclass
class ProcessSaleResult:
    success: bool
    message: str
    sale_id: Optional[UUID] = None
    sale_number: Optional[str] = None
    receipt_url: Optional[str] = None
    error_kind: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class _PricedLine:
    product_id: UUID
    variant_id: UUID
    quantity: Decimal
    base_quantity: Decimal
    unit_price: Decimal
    total: Decimal
    selection: BatchSelection


def _label(product, variant) -> str:
    if variant.name and variant.name != product.name:
        return f"{product.name} ({variant.name})"
    return product.name


class SaleService:

    @staticmethod
    def process_sale(
        db: Session,
        request: SaleRequest,
        post_commit_hooks: Optional[PostCommitHooks] = None,
        receipt_generator: Optional[Callable[[Sale, str], str]] = None,
    ) -> ProcessSaleResult:
        """
        Run a sale end to end. Never raises for business failures: the result
        carries success=False, the message and the error kind, and nothing
        from the failed sale is persisted.
        """
        post_commit_hooks = post_commit_hooks or default_hooks
        receipt_generator = receipt_generator or ReceiptService.generate
        logger.info(
            "Processing sale: organization=%s location=%s lines=%s update_stock=%s",
            request.organization_id, request.location_id, len(request.items or []), request.update_stock,
        )

        try:
            with transaction(db):
                sale = SaleService._execute(db, request)
                sale_id = sale.id
                sale_number = sale.sale_number
        except RetailLedgerError as e:
            logger.warning("Sale failed (%s): %s", e.code, e.message)
            SaleService._audit_failure(db, request, e.code, e.message)
            return ProcessSaleResult(success=False, message=e.message, error_kind=e.code)
        except Exception as e:
            logger.error("Sale failed unexpectedly: %s", e, exc_info=True)
            err = PersistenceError(f"Sale could not be saved: {e}")
            SaleService._audit_failure(db, request, err.code, err.message)
            return ProcessSaleResult(success=False, message=err.message, error_kind=err.code)

        logger.info("Sale %s committed (%s)", sale_number, sale_id)

        receipt_url = None
        try:
            sale = db.get(Sale, sale_id)
            org = db.get(Organization, request.organization_id)
            receipt_url = receipt_generator(sale, org.name if org else "")
            sale.receipt_url = receipt_url
            db.commit()
        except Exception as e:
            db.rollback()
            receipt_url = None
            logger.warning("Receipt generation for sale %s failed (non-fatal): %s", sale_number, e)

        post_commit_hooks.fire(SALE_COMPLETED, {
            "organization_id": request.organization_id,
            "location_id": request.location_id,
            "sale_id": sale_id,
            "sale_number": sale_number,
            "variant_ids": [line.variant_id for line in request.items if line.variant_id],
        })

        return ProcessSaleResult(
            success=True,
            message=f"Sale {sale_number} completed",
            sale_id=sale_id,
            sale_number=sale_number,
            receipt_url=receipt_url,
        )

    @staticmethod
    def _validate(db: Session, request: SaleRequest) -> Location:
        if not request.items:
            raise ValidationError("Cart is empty", field="items")
        for line in request.items:
            if line.quantity is None or Decimal(line.quantity) <= 0:
                raise ValidationError("Quantity must be greater than zero", field="quantity")
        if request.discount_amount is not None and Decimal(request.discount_amount) < 0:
            raise ValidationError("Discount cannot be negative", field="discount_amount")
        if not (request.payment_method or "").strip():
            raise ValidationError("Payment method is required", field="payment_method")

        location = db.query(Location).filter(
            Location.id == request.location_id,
            Location.organization_id == request.organization_id,
        ).first()
        if location is None or not location.is_active:
            raise NotFound("Location", request.location_id)
        if request.customer_id is not None:
            customer = db.query(Customer.id).filter(
                Customer.id == request.customer_id,
                Customer.organization_id == request.organization_id,
            ).first()
            if customer is None:
                raise NotFound("Customer", request.customer_id)
        return location

    @staticmethod
    def _price_lines(
        db: Session,
        request: SaleRequest,
        location: Location,
        inv_settings: InventorySettings,
        deltas: StockDeltas,
    ) -> List[_PricedLine]:
        resolver = UnitConversionResolver(db, request.organization_id)
        policy = BatchSelectionPolicy(inv_settings.inventory_policy, inv_settings.negative_stock_allowed)
        priced = []
        # Lines are priced in variant order so every cart locks batch rows in the same order
        for line in sorted(request.items, key=lambda l: str(l.variant_id or "")):
            product = get_active_product(db, request.organization_id, line.product_id)
            resolution = resolve_variant(db, product, line.variant_id, use_default=False)
            if isinstance(resolution, NoVariant):
                raise MissingVariantForStockTracking(product.id, product.name)
            variant = resolution.variant

            quantity = Decimal(line.quantity)
            selling_unit_id = variant.selling_unit_id or variant.base_unit_id
            base_quantity = round_quantity(
                resolver.convert_quantity_to_base(quantity, selling_unit_id, variant.base_unit_id)
            )
            if base_quantity <= 0:
                raise ValidationError("Quantity is too small to store in the base unit", field="quantity")

            if variant.retail_price is not None:
                unit_price = Decimal(variant.retail_price)
            else:
                unit_price = Decimal(product.base_price or 0) + Decimal(variant.price_modifier or 0)

            label = _label(product, variant)
            if request.update_stock:
                selection = policy.select(
                    db,
                    request.organization_id,
                    variant.id,
                    location.id,
                    base_quantity,
                    deltas,
                    variant_label=label,
                    location_label=location.name,
                )
                deltas.add(selection.batch.id, product.id, variant.id, location.id, -base_quantity)
            else:
                batch = latest_batch(db, request.organization_id, variant.id, location.id)
                if batch is None:
                    raise NoCostBasisAvailable(label, location.name)
                selection = BatchSelection(batch=batch, unit_cost=Decimal(batch.purchase_price))

            priced.append(_PricedLine(
                product_id=product.id,
                variant_id=variant.id,
                quantity=quantity,
                base_quantity=base_quantity,
                unit_price=unit_price,
                total=round_money(unit_price * quantity),
                selection=selection,
            ))
        return priced

    @staticmethod
    def _execute(db: Session, request: SaleRequest) -> Sale:
        if db.bind is not None and db.bind.dialect.name == "postgresql":
            db.execute(text(f"SET LOCAL statement_timeout = {int(settings.SALE_TRANSACTION_TIMEOUT_MS)}"))

        location = SaleService._validate(db, request)
        inv_settings = SettingsService.get_settings(db, request.organization_id)

        deltas = StockDeltas()
        lines = SaleService._price_lines(db, request, location, inv_settings, deltas)

        subtotal = round_money(sum((line.total for line in lines), ZERO))
        discount = round_money(Decimal(request.discount_amount or 0))
        if discount > subtotal:
            raise DiscountExceedsSubtotal(discount, subtotal)
        taxable = subtotal - discount
        tax_amount = compute_tax(taxable, inv_settings.default_tax_rate)
        final_amount = round_money(taxable + tax_amount)
        logger.info(
            "Sale totals: subtotal=%s discount=%s tax=%s (rate %s) final=%s",
            subtotal, discount, tax_amount, inv_settings.default_tax_rate, final_amount,
        )

        sale = Sale(
            organization_id=request.organization_id,
            sale_number=DocumentService.get_sale_number(db, request.organization_id),
            location_id=location.id,
            member_id=request.member_id,
            customer_id=request.customer_id,
            subtotal=subtotal,
            discount_amount=discount,
            tax_rate=inv_settings.default_tax_rate,
            tax_amount=tax_amount,
            final_amount=final_amount,
            payment_method=request.payment_method.strip().upper(),
            payment_status="COMPLETED",
            status="COMPLETED",
            stock_updated=request.update_stock,
            notes=request.notes,
        )
        for line in lines:
            sale.items.append(SaleItem(
                product_id=line.product_id,
                variant_id=line.variant_id,
                stock_batch_id=line.selection.batch.id,
                quantity=line.quantity,
                base_quantity=line.base_quantity,
                unit_price=line.unit_price,
                unit_cost=line.selection.unit_cost,
                tax_rate=inv_settings.default_tax_rate,
                total_amount=line.total,
            ))
        db.add(sale)
        db.flush()

        if request.update_stock:
            StockLedgerService.apply_deltas(db, request.organization_id, deltas)
            for line in lines:
                db.add(StockMovement(
                    organization_id=request.organization_id,
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    stock_batch_id=line.selection.batch.id,
                    from_location_id=location.id,
                    to_location_id=None,
                    quantity=line.base_quantity,
                    movement_type=SALE,
                    reference_type="Sale",
                    reference_id=sale.id,
                    member_id=request.member_id,
                ))

        if request.customer_id is not None:
            LoyaltyService.award_for_sale(
                db,
                request.organization_id,
                request.customer_id,
                request.member_id,
                sale.id,
                sale.sale_number,
                final_amount,
            )

        AuditService.log(
            db,
            request.organization_id,
            request.member_id,
            "CREATE",
            "SALE",
            sale.id,
            description=f"Sale {sale.sale_number} for {final_amount}",
            details={
                "sale_number": sale.sale_number,
                "location_id": location.id,
                "customer_id": request.customer_id,
                "subtotal": subtotal,
                "discount_amount": discount,
                "tax_amount": tax_amount,
                "final_amount": final_amount,
                "update_stock": request.update_stock,
                "lines": [
                    {
                        "variant_id": line.variant_id,
                        "quantity": line.quantity,
                        "base_quantity": line.base_quantity,
                        "stock_batch_id": line.selection.batch.id,
                        "negative_stock_fallback": line.selection.is_fallback,
                    }
                    for line in lines
                ],
            },
        )
        db.flush()
        return sale

    @staticmethod
    def _audit_failure(db: Session, request: SaleRequest, error_kind: str, message: str) -> None:
        """Best-effort record of a failed sale in its own transaction."""
        try:
            with transaction(db):
                AuditService.log(
                    db,
                    request.organization_id,
                    request.member_id,
                    "CREATE_FAILED",
                    "SALE",
                    None,
                    description=message,
                    details={
                        "error_kind": error_kind,
                        "location_id": request.location_id,
                        "items": [
                            {"product_id": line.product_id, "variant_id": line.variant_id, "quantity": line.quantity}
                            for line in request.items or []
                        ],
                    },
                )
        except Exception as e:
            logger.warning("Could not write audit entry for failed sale: %s", e)

    @staticmethod
    def get_sale(db: Session, organization_id: UUID, sale_id: UUID) -> Sale:
        sale = db.query(Sale).filter(
            Sale.id == sale_id,
            Sale.organization_id == organization_id,
        ).first()
        if sale is None:
            raise NotFound("Sale", sale_id)
        return sale
