"""
Business logic services for retail_ledger
"""
from .unit_conversion import UnitConversionResolver, UnitService
from .stock_ledger import StockDeltas, StockDrift, StockLedgerService
from .batch_selection import BatchSelection, BatchSelectionPolicy
from .settings_service import InventorySettings, SettingsService
from .document_service import DocumentService
from .sale_service import CartLine, ProcessSaleResult, SaleRequest, SaleService
from .restock_service import BulkRestockResult, RestockRequest, RestockResult, RestockService
from .adjustment_service import AdjustmentRequest, AdjustmentService
from .loyalty_service import LoyaltyService
from .audit_service import AuditService
from .receipt_service import ReceiptService

__all__ = [
    "UnitConversionResolver",
    "UnitService",
    "StockDeltas",
    "StockDrift",
    "StockLedgerService",
    "BatchSelection",
    "BatchSelectionPolicy",
    "InventorySettings",
    "SettingsService",
    "DocumentService",
    "CartLine",
    "ProcessSaleResult",
    "SaleRequest",
    "SaleService",
    "BulkRestockResult",
    "RestockRequest",
    "RestockResult",
    "RestockService",
    "AdjustmentRequest",
    "AdjustmentService",
    "LoyaltyService",
    "AuditService",
    "ReceiptService",
]
