"""
API routes for retail_ledger
"""
from .sales import router as sales_router
from .inventory import router as inventory_router
from .units import router as units_router
from .customers import router as customers_router

__all__ = [
    "sales_router",
    "inventory_router",
    "units_router",
    "customers_router",
]
