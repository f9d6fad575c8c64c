"""
Database models for retail_ledger
"""
from retail_ledger.database import Base

from .organization import Organization, Location, Member
from .settings import OrganizationSettings, DocumentSequence
from .catalog import UnitOfMeasure, Product, ProductVariant
from .supplier import Supplier, ProductSupplier
from .inventory import StockBatch, ProductVariantStock, StockAdjustment, StockMovement
from .sale import Customer, Sale, SaleItem, LoyaltyTransaction
from .audit import AuditLog

__all__ = [
    "Base",
    "Organization",
    "Location",
    "Member",
    "OrganizationSettings",
    "DocumentSequence",
    "UnitOfMeasure",
    "Product",
    "ProductVariant",
    "Supplier",
    "ProductSupplier",
    "StockBatch",
    "ProductVariantStock",
    "StockAdjustment",
    "StockMovement",
    "Customer",
    "Sale",
    "SaleItem",
    "LoyaltyTransaction",
    "AuditLog",
]
