"""
Supplier models
"""
from sqlalchemy import Boolean, Column, ForeignKey, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from retail_ledger.database import Base


class Supplier(Base):
    """Supplier model"""
    __tablename__ = "suppliers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    contact_person = Column(String(255))
    phone = Column(String(50))
    email = Column(String(255))
    address = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())


class ProductSupplier(Base):
    """Last known supply terms for a variant from a supplier. Refreshed on every restock."""
    __tablename__ = "product_suppliers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    variant_id = Column(Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False)
    supplier_id = Column(Uuid, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False)
    cost_price = Column(Numeric(20, 4), nullable=False)  # Per base unit
    packaging_unit_id = Column(Uuid, ForeignKey("units_of_measure.id"), nullable=True)
    minimum_order_quantity = Column(Numeric(20, 4), nullable=True)
    is_preferred = Column(Boolean, default=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("variant_id", "supplier_id", name="uq_product_supplier_variant_supplier"),
    )

    supplier = relationship("Supplier")
