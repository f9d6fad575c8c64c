"""
Pydantic schemas for request/response validation
"""
from .sale import CartLineIn, SaleCreate, SaleResult, SaleResponse, SaleItemResponse
from .inventory import (
    RestockCreate,
    BulkRestockCreate,
    BulkRestockLine,
    RestockResponse,
    BulkRestockResponse,
    AdjustmentCreate,
    AdjustmentResponse,
    StockBatchResponse,
    StockAggregateResponse,
    StockPositionResponse,
    StockDriftResponse,
)
from .unit import UnitCreate, UnitResponse, VariantUnitsUpdate, ConversionResponse
from .customer import LoyaltyAdjustmentCreate, LoyaltyTransactionResponse

__all__ = [
    "CartLineIn",
    "SaleCreate",
    "SaleResult",
    "SaleResponse",
    "SaleItemResponse",
    "RestockCreate",
    "BulkRestockCreate",
    "BulkRestockLine",
    "RestockResponse",
    "BulkRestockResponse",
    "AdjustmentCreate",
    "AdjustmentResponse",
    "StockBatchResponse",
    "StockAggregateResponse",
    "StockPositionResponse",
    "StockDriftResponse",
    "UnitCreate",
    "UnitResponse",
    "VariantUnitsUpdate",
    "ConversionResponse",
    "LoyaltyAdjustmentCreate",
    "LoyaltyTransactionResponse",
]
