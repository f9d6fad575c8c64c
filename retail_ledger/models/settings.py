"""
Per-organization business settings and document numbering
"""
from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from retail_ledger.database import Base


class OrganizationSettings(Base):
    """
    Inventory and tax settings for one organization.

    Read once at the start of a sale or restock; a missing row means defaults
    (tax 0, negative stock disallowed, FIFO).
    """
    __tablename__ = "organization_settings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, unique=True)
    default_tax_rate = Column(Numeric(7, 4), nullable=False, default=0)  # Fraction (0.16) or percent (16); normalized on read
    negative_stock_allowed = Column(Boolean, nullable=False, default=False)
    inventory_policy = Column(String(10), nullable=False, default="FIFO")  # FIFO, FEFO
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="settings")


class DocumentSequence(Base):
    """
    Document numbering sequences

    One counter per (organization, document type, year). Row-locked while a
    number is taken so concurrent sales never share a sale number.
    """
    __tablename__ = "document_sequences"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    document_type = Column(String(50), nullable=False)  # SALE
    prefix = Column(String(20))
    year = Column(Integer, nullable=False)
    current_number = Column(Integer, nullable=False, default=0)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("organization_id", "document_type", "year", name="uq_document_sequence_org_type_year"),
        {"comment": "Per-organization yearly document counters (sale numbers)."},
    )
