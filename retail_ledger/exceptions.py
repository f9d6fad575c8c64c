"""
Typed exceptions for inventory and sale processing.

Every error carries a machine-readable `code` (rendered as `error_kind` in API
responses) and the structured values it was raised with, so callers catch by
type and report without parsing messages.

    RetailLedgerError
    +-- ValidationError
    |   +-- DiscountExceedsSubtotal
    +-- NotFound
    +-- MissingVariantForStockTracking
    |   +-- NoVariantForStockTracking
    +-- UnitConversionError
    |   +-- UnknownUnit
    |   +-- CycleDetected
    |   +-- NoConversionPath
    |   +-- InvalidConversionFactor
    +-- InsufficientStock
    +-- NoCostBasisAvailable
    +-- ConcurrencyConflict
    +-- PersistenceError
    +-- AuthenticationRequired
"""
from decimal import Decimal
from typing import Any, Dict, Optional


class RetailLedgerError(Exception):
    """Base class for all domain errors raised by retail_ledger."""

    code: str = "RETAIL_LEDGER_ERROR"
    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, "error_kind": self.code}


class ValidationError(RetailLedgerError):
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class DiscountExceedsSubtotal(ValidationError):
    code = "DISCOUNT_EXCEEDS_SUBTOTAL"

    def __init__(self, discount: Decimal, subtotal: Decimal):
        self.discount = discount
        self.subtotal = subtotal
        super().__init__(
            f"Overall discount ({discount}) cannot exceed subtotal ({subtotal})",
            field="discount_amount",
        )


class NotFound(RetailLedgerError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class MissingVariantForStockTracking(RetailLedgerError):
    """A cart line names a product without a variant; stock cannot be tracked."""

    code = "MISSING_VARIANT_FOR_STOCK_TRACKING"

    def __init__(self, product_id: Any, product_name: Optional[str] = None):
        self.product_id = product_id
        self.product_name = product_name
        label = product_name or str(product_id)
        super().__init__(
            f"Product '{label}' requires a variant for stock tracking; select a variant"
        )


class NoVariantForStockTracking(MissingVariantForStockTracking):
    """The product has no variants at all, so there is nothing to restock into."""

    code = "NO_VARIANT_FOR_STOCK_TRACKING"

    def __init__(self, product_id: Any, product_name: Optional[str] = None):
        super().__init__(product_id, product_name)
        label = product_name or str(product_id)
        self.message = f"Product '{label}' must have at least one variant to track stock"
        self.args = (self.message,)


class UnitConversionError(RetailLedgerError):
    code = "UNIT_CONVERSION_ERROR"


class UnknownUnit(UnitConversionError):
    code = "UNKNOWN_UNIT"

    def __init__(self, unit_id: Any):
        self.unit_id = unit_id
        super().__init__(f"Unit of measure not found: {unit_id}")


class CycleDetected(UnitConversionError):
    code = "UNIT_CYCLE_DETECTED"

    def __init__(self, unit_id: Any):
        self.unit_id = unit_id
        super().__init__(f"Circular unit conversion detected at unit {unit_id}")


class NoConversionPath(UnitConversionError):
    code = "NO_CONVERSION_PATH"

    def __init__(self, source_unit_id: Any, target_unit_id: Any):
        self.source_unit_id = source_unit_id
        self.target_unit_id = target_unit_id
        super().__init__(
            f"No conversion path from unit {source_unit_id} to base unit {target_unit_id}"
        )


class InvalidConversionFactor(UnitConversionError):
    code = "INVALID_CONVERSION_FACTOR"

    def __init__(self, unit_id: Any, factor: Any):
        self.unit_id = unit_id
        self.factor = factor
        super().__init__(f"Invalid conversion factor {factor} on unit {unit_id}")


class InsufficientStock(RetailLedgerError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(
        self,
        variant_label: str,
        required: Decimal,
        available: Decimal,
        location_label: str,
    ):
        self.variant_label = variant_label
        self.required = required
        self.available = available
        self.location_label = location_label
        super().__init__(
            f"Insufficient stock for {variant_label}. Required: {required}, "
            f"Available: {available} at location {location_label}"
        )


class NoCostBasisAvailable(RetailLedgerError):
    """Negative stock is allowed but the variant has never been received at this location."""

    code = "NO_COST_BASIS_AVAILABLE"
    status_code = 409

    def __init__(self, variant_label: str, location_label: str):
        self.variant_label = variant_label
        self.location_label = location_label
        super().__init__(
            f"No stock batch has ever been received for {variant_label} at "
            f"location {location_label}; cannot determine cost"
        )


class ConcurrencyConflict(RetailLedgerError):
    code = "CONCURRENCY_CONFLICT"
    status_code = 409


class PersistenceError(RetailLedgerError):
    code = "PERSISTENCE_ERROR"
    status_code = 500


class AuthenticationRequired(RetailLedgerError):
    code = "AUTHENTICATION_REQUIRED"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


def _all_subclasses(cls):
    for sub in cls.__subclasses__():
        yield sub
        yield from _all_subclasses(sub)


def status_for_code(code: str) -> int:
    """HTTP status for an error_kind code (500 for unknown codes)."""
    for cls in (RetailLedgerError, *_all_subclasses(RetailLedgerError)):
        if cls.code == code:
            return cls.status_code
    return 500
