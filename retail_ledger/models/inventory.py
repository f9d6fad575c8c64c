"""
Inventory models

StockBatch - lot-level ledger of received stock (base units)
ProductVariantStock - per (variant, location) aggregate, kept equal to the batch sum
StockAdjustment / StockMovement - append-only audit of every quantity change
"""
from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from retail_ledger.database import Base

# Adjustment reasons
RECEIVED_PURCHASE = "RECEIVED_PURCHASE"
INVENTORY_COUNT = "INVENTORY_COUNT"
DAMAGED = "DAMAGED"
EXPIRED = "EXPIRED"
LOST = "LOST"
STOLEN = "STOLEN"
RETURN_TO_SUPPLIER = "RETURN_TO_SUPPLIER"
CORRECTION = "CORRECTION"
ADJUSTMENT_REASONS = (
    RECEIVED_PURCHASE,
    INVENTORY_COUNT,
    DAMAGED,
    EXPIRED,
    LOST,
    STOLEN,
    RETURN_TO_SUPPLIER,
    CORRECTION,
)

# Movement types
PURCHASE_RECEIPT = "PURCHASE_RECEIPT"
SALE = "SALE"
ADJUSTMENT_IN = "ADJUSTMENT_IN"
ADJUSTMENT_OUT = "ADJUSTMENT_OUT"
MOVEMENT_TYPES = (PURCHASE_RECEIPT, SALE, ADJUSTMENT_IN, ADJUSTMENT_OUT, EXPIRED)


class StockBatch(Base):
    """
    Stock batch (lot) at one location.

    Quantities are in the variant's base unit. Batches are never deleted;
    current_quantity goes down with sales and adjustments and may go below
    zero only when the organization allows negative stock.
    """
    __tablename__ = "stock_batches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = Column(Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False)
    location_id = Column(Uuid, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)
    batch_number = Column(String(100), nullable=False)
    initial_quantity = Column(Numeric(20, 4), nullable=False)
    current_quantity = Column(Numeric(20, 4), nullable=False)
    purchase_price = Column(Numeric(20, 4), nullable=False)  # Cost per base unit
    expiry_date = Column(Date, nullable=True)
    received_date = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    supplier_id = Column(Uuid, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True)
    purchase_item_id = Column(Uuid, nullable=True)  # External purchase-order line
    created_by = Column(Uuid, ForeignKey("members.id"), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("initial_quantity > 0", name="stock_batch_initial_quantity_positive"),
        {"comment": "Lot-level stock in base units. Never deleted. Sum per (variant, location) = aggregate."},
    )

    variant = relationship("ProductVariant")
    location = relationship("Location")
    supplier = relationship("Supplier")


class ProductVariantStock(Base):
    """Precomputed stock per (variant_id, location_id). Updated in same transaction as batch writes."""
    __tablename__ = "product_variant_stock"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id = Column(Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False)
    location_id = Column(Uuid, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)
    current_stock = Column(Numeric(20, 4), nullable=False, default=0)
    reserved_stock = Column(Numeric(20, 4), nullable=False, default=0)
    available_stock = Column(Numeric(20, 4), nullable=False, default=0)  # current_stock - reserved_stock
    reorder_point = Column(Numeric(20, 4), nullable=False, default=5)
    reorder_qty = Column(Numeric(20, 4), nullable=False, default=10)
    last_updated = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("variant_id", "location_id", name="uq_variant_stock_variant_location"),
        {"comment": "Denormalized stock. current_stock = SUM(stock_batches.current_quantity) per (variant, location)."},
    )

    variant = relationship("ProductVariant")
    location = relationship("Location")


class StockAdjustment(Base):
    """Append-only record of a deliberate quantity change (receipt, count, write-off)"""
    __tablename__ = "stock_adjustments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id = Column(Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False)
    location_id = Column(Uuid, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)
    stock_batch_id = Column(Uuid, ForeignKey("stock_batches.id"), nullable=True)
    member_id = Column(Uuid, ForeignKey("members.id"), nullable=False)
    quantity = Column(Numeric(20, 4), nullable=False)  # Signed, base units
    reason = Column(String(50), nullable=False)  # see ADJUSTMENT_REASONS
    notes = Column(Text)
    adjustment_date = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("quantity != 0", name="stock_adjustment_quantity_not_zero"),
        {"comment": "Append-only. Never update or delete."},
    )


class StockMovement(Base):
    """Append-only record of stock moving into, out of, or between locations"""
    __tablename__ = "stock_movements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id = Column(Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False)
    stock_batch_id = Column(Uuid, ForeignKey("stock_batches.id"), nullable=True)
    from_location_id = Column(Uuid, ForeignKey("locations.id"), nullable=True)
    to_location_id = Column(Uuid, ForeignKey("locations.id"), nullable=True)
    quantity = Column(Numeric(20, 4), nullable=False)  # Always positive; direction from movement_type
    movement_type = Column(String(50), nullable=False)  # see MOVEMENT_TYPES
    adjustment_id = Column(Uuid, ForeignKey("stock_adjustments.id"), nullable=True)
    reference_type = Column(String(50))  # PurchaseItem, Sale
    reference_id = Column(Uuid, nullable=True)
    member_id = Column(Uuid, ForeignKey("members.id"), nullable=False)
    notes = Column(Text)
    movement_date = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("quantity > 0", name="stock_movement_quantity_positive"),
        {"comment": "Append-only. Never update or delete."},
    )
