"""
Retail Ledger - Main FastAPI Application
"""
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from retail_ledger.api import customers_router, inventory_router, sales_router, units_router
from retail_ledger.config import settings
from retail_ledger.exceptions import RetailLedgerError
from retail_ledger.logging_config import configure_logging

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Multi-tenant inventory ledger and point-of-sale engine",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RetailLedgerError)
async def retail_ledger_error_handler(request: Request, exc: RetailLedgerError):
    """Render domain errors as {success: false, message, error_kind}."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


# Include routers
app.include_router(sales_router, prefix="/api/sales", tags=["Sales"])
app.include_router(inventory_router, prefix="/api/inventory", tags=["Inventory"])
app.include_router(units_router, prefix="/api/units", tags=["Units"])
app.include_router(customers_router, prefix="/api/customers", tags=["Customers"])

# Receipts written by ReceiptService
_receipts_dir = Path(settings.RECEIPTS_DIR)
_receipts_dir.mkdir(parents=True, exist_ok=True)
app.mount(settings.RECEIPTS_URL_PATH, StaticFiles(directory=str(_receipts_dir)), name="receipts")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("retail_ledger.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
