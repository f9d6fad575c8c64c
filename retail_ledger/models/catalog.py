"""
Catalog models: units of measure, products and sellable variants
"""
from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from retail_ledger.database import Base


class UnitOfMeasure(Base):
    """
    Unit of measure, arranged as a forest per organization.

    A root unit has no base_unit_id and no conversion_factor. A derived unit
    points at its parent and says how many parent units equal one of itself
    (Case -> Piece, factor 24).
    """
    __tablename__ = "units_of_measure"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    symbol = Column(String(20), nullable=False)
    unit_type = Column(String(20), nullable=False, default="COUNT")  # COUNT, WEIGHT, VOLUME, LENGTH
    base_unit_id = Column(Uuid, ForeignKey("units_of_measure.id", ondelete="RESTRICT"), nullable=True)
    conversion_factor = Column(Numeric(20, 6), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_unit_org_name"),
        CheckConstraint(
            "(base_unit_id IS NULL AND conversion_factor IS NULL) OR "
            "(base_unit_id IS NOT NULL AND conversion_factor > 0)",
            name="unit_factor_matches_parent",
        ),
        {"comment": "Unit hierarchy. factor = parent units per one of this unit."},
    )

    base_unit = relationship("UnitOfMeasure", remote_side=[id])


class Product(Base):
    """Catalog product; stock is always tracked on its variants"""
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    sku = Column(String(100))
    description = Column(Text)
    base_price = Column(Numeric(20, 4), nullable=False, default=0)  # Selling price before variant modifier
    base_cost = Column(Numeric(20, 4), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.created_at",
    )


class ProductVariant(Base):
    """
    Sellable variant. All stock quantities for a variant are in its base unit;
    stocking_unit is how it is usually bought, selling_unit how it is sold.
    """
    __tablename__ = "product_variants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    sku = Column(String(100), nullable=False)
    base_unit_id = Column(Uuid, ForeignKey("units_of_measure.id"), nullable=False)
    stocking_unit_id = Column(Uuid, ForeignKey("units_of_measure.id"), nullable=True)
    selling_unit_id = Column(Uuid, ForeignKey("units_of_measure.id"), nullable=True)
    reorder_point = Column(Numeric(20, 4), nullable=False, default=5)
    reorder_qty = Column(Numeric(20, 4), nullable=False, default=10)
    buying_price = Column(Numeric(20, 4), nullable=True)  # Per stocking unit
    retail_price = Column(Numeric(20, 4), nullable=True)  # Per selling unit; overrides base_price + price_modifier
    wholesale_price = Column(Numeric(20, 4), nullable=True)
    price_modifier = Column(Numeric(20, 4), nullable=False, default=0)
    is_default = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("organization_id", "sku", name="uq_variant_org_sku"),
    )

    product = relationship("Product", back_populates="variants")
    base_unit = relationship("UnitOfMeasure", foreign_keys=[base_unit_id])
    stocking_unit = relationship("UnitOfMeasure", foreign_keys=[stocking_unit_id])
    selling_unit = relationship("UnitOfMeasure", foreign_keys=[selling_unit_id])
