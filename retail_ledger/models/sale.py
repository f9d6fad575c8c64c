"""
Sales, customer and loyalty models
"""
from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from retail_ledger.database import Base


class Customer(Base):
    """Customer with a running loyalty balance"""
    __tablename__ = "customers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50))
    email = Column(String(255))
    loyalty_points = Column(Integer, nullable=False, default=0)  # Always SUM(loyalty_transactions.points_change)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    loyalty_transactions = relationship("LoyaltyTransaction", back_populates="customer", cascade="all, delete-orphan")


class Sale(Base):
    """Completed point-of-sale transaction"""
    __tablename__ = "sales"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    sale_number = Column(String(50), nullable=False)  # SALE-{YYYY}-{NNNNNN}
    location_id = Column(Uuid, ForeignKey("locations.id"), nullable=False)
    member_id = Column(Uuid, ForeignKey("members.id"), nullable=False)
    customer_id = Column(Uuid, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    subtotal = Column(Numeric(20, 4), nullable=False)
    discount_amount = Column(Numeric(20, 4), nullable=False, default=0)
    tax_rate = Column(Numeric(7, 4), nullable=False, default=0)  # Fraction, e.g. 0.16
    tax_amount = Column(Numeric(20, 4), nullable=False, default=0)
    final_amount = Column(Numeric(20, 4), nullable=False)
    payment_method = Column(String(50), nullable=False)  # CASH, CARD, MOBILE, CREDIT
    payment_status = Column(String(20), nullable=False, default="COMPLETED")  # COMPLETED, PENDING, REFUNDED
    status = Column(String(20), nullable=False, default="COMPLETED")  # COMPLETED, VOIDED
    stock_updated = Column(Boolean, nullable=False, default=True)  # False when recorded without touching stock
    notes = Column(Text)
    receipt_url = Column(Text)
    sale_date = Column(TIMESTAMP(timezone=True), server_default=func.now())
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("organization_id", "sale_number", name="uq_sale_org_number"),
        CheckConstraint("discount_amount <= subtotal", name="sale_discount_within_subtotal"),
    )

    items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan")
    customer = relationship("Customer")
    location = relationship("Location")


class SaleItem(Base):
    """Sale line. Always linked to the batch that supplied its cost."""
    __tablename__ = "sale_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sale_id = Column(Uuid, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    variant_id = Column(Uuid, ForeignKey("product_variants.id"), nullable=False)
    stock_batch_id = Column(Uuid, ForeignKey("stock_batches.id"), nullable=False)
    quantity = Column(Numeric(20, 4), nullable=False)  # In selling unit
    base_quantity = Column(Numeric(20, 4), nullable=False)  # In variant base unit
    unit_price = Column(Numeric(20, 4), nullable=False)  # Per selling unit
    unit_cost = Column(Numeric(20, 4), nullable=False)  # Batch purchase_price per base unit
    tax_rate = Column(Numeric(7, 4), nullable=False, default=0)
    discount_amount = Column(Numeric(20, 4), nullable=False, default=0)
    total_amount = Column(Numeric(20, 4), nullable=False)  # unit_price * quantity

    sale = relationship("Sale", back_populates="items")
    variant = relationship("ProductVariant")
    stock_batch = relationship("StockBatch")


class LoyaltyTransaction(Base):
    """Append-only loyalty points ledger"""
    __tablename__ = "loyalty_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(Uuid, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    member_id = Column(Uuid, ForeignKey("members.id"), nullable=False)
    points_change = Column(Integer, nullable=False)
    reason = Column(String(50), nullable=False)  # SALE_EARNED, MANUAL_ADJUSTMENT, REDEMPTION
    related_sale_id = Column(Uuid, ForeignKey("sales.id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text)
    transaction_date = Column(TIMESTAMP(timezone=True), server_default=func.now())

    customer = relationship("Customer", back_populates="loyalty_transactions")
