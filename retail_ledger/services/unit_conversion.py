"""
Unit conversion - resolve conversion factors over the unit-of-measure forest
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from retail_ledger.exceptions import (
    CycleDetected,
    InvalidConversionFactor,
    NoConversionPath,
    NotFound,
    UnknownUnit,
    ValidationError,
)
from retail_ledger.models import ProductVariant, StockBatch, UnitOfMeasure

logger = logging.getLogger(__name__)

ONE = Decimal("1")
# Scale of every stored quantity column (Numeric(20, 4))
QUANTITY_STEP = Decimal("0.0001")


def round_quantity(value: Decimal) -> Decimal:
    """Round a base quantity to the stored scale, half up."""
    return Decimal(value).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


class UnitConversionResolver:
    """
    Converts quantities and prices between a unit and a variant's base unit.

    Each unit stores how many of its parent units make one of itself, so the
    factor from a unit to one of its ancestors is the product of the factors
    along the parent chain. Unit rows are cached for the resolver's lifetime;
    create one per request or transaction.
    """

    def __init__(self, db: Session, organization_id: Optional[UUID] = None):
        self.db = db
        self.organization_id = organization_id
        self._units: Dict[UUID, UnitOfMeasure] = {}

    def get_unit(self, unit_id: UUID) -> UnitOfMeasure:
        unit = self._units.get(unit_id)
        if unit is not None:
            return unit
        q = self.db.query(UnitOfMeasure).filter(UnitOfMeasure.id == unit_id)
        if self.organization_id is not None:
            q = q.filter(UnitOfMeasure.organization_id == self.organization_id)
        unit = q.first()
        if unit is None:
            raise UnknownUnit(unit_id)
        self._units[unit_id] = unit
        return unit

    def factor_to_base(self, source_unit_id: UUID, target_base_unit_id: UUID) -> Decimal:
        """
        Multiplier that turns a quantity in source_unit into target_base_unit.

        Raises UnknownUnit, CycleDetected, NoConversionPath or
        InvalidConversionFactor.
        """
        self.get_unit(target_base_unit_id)
        factor = ONE
        current = source_unit_id
        visited = set()
        while current != target_base_unit_id:
            if current in visited:
                raise CycleDetected(current)
            visited.add(current)
            unit = self.get_unit(current)
            if unit.base_unit_id is None:
                raise NoConversionPath(source_unit_id, target_base_unit_id)
            step = unit.conversion_factor
            if step is None:
                raise NoConversionPath(source_unit_id, target_base_unit_id)
            if Decimal(step) <= 0:
                raise InvalidConversionFactor(unit.id, step)
            factor *= Decimal(step)
            current = unit.base_unit_id
        return factor

    def convert_quantity_to_base(self, quantity: Decimal, source_unit_id: UUID, base_unit_id: UUID) -> Decimal:
        return Decimal(quantity) * self.factor_to_base(source_unit_id, base_unit_id)

    def convert_base_to_unit(self, base_quantity: Decimal, unit_id: UUID, base_unit_id: UUID) -> Decimal:
        """Inverse of convert_quantity_to_base (display, reporting)."""
        factor = self.factor_to_base(unit_id, base_unit_id)
        return Decimal(base_quantity) / factor

    def convert_price_per_unit_to_base(self, price: Decimal, source_unit_id: UUID, base_unit_id: UUID) -> Decimal:
        """Price per source unit -> price per base unit (Case at 48, 24 per case -> 2 per piece)."""
        factor = self.factor_to_base(source_unit_id, base_unit_id)
        if factor == 0:
            raise InvalidConversionFactor(source_unit_id, factor)
        return Decimal(price) / factor


class UnitService:
    """Unit catalogue maintenance"""

    @staticmethod
    def create_unit(
        db: Session,
        organization_id: UUID,
        name: str,
        symbol: str,
        unit_type: str = "COUNT",
        base_unit_id: Optional[UUID] = None,
        conversion_factor: Optional[Decimal] = None,
    ) -> UnitOfMeasure:
        """
        Add a unit. A derived unit needs an existing parent in the same
        organization and a positive factor; a root unit takes no factor.
        Caller commits.
        """
        if base_unit_id is not None:
            if conversion_factor is None or Decimal(conversion_factor) <= 0:
                raise ValidationError(
                    "A derived unit requires a positive conversion factor",
                    field="conversion_factor",
                )
            parent = db.query(UnitOfMeasure).filter(
                UnitOfMeasure.id == base_unit_id,
                UnitOfMeasure.organization_id == organization_id,
            ).first()
            if parent is None:
                raise UnknownUnit(base_unit_id)
        elif conversion_factor is not None:
            raise ValidationError(
                "A root unit cannot have a conversion factor",
                field="conversion_factor",
            )

        unit = UnitOfMeasure(
            organization_id=organization_id,
            name=name.strip(),
            symbol=symbol.strip(),
            unit_type=unit_type,
            base_unit_id=base_unit_id,
            conversion_factor=Decimal(conversion_factor) if conversion_factor is not None else None,
        )
        db.add(unit)
        db.flush()
        logger.info("Created unit %s (%s) for organization %s", unit.name, unit.id, organization_id)
        return unit

    @staticmethod
    def configure_variant_units(
        db: Session,
        organization_id: UUID,
        variant_id: UUID,
        base_unit_id: UUID,
        stocking_unit_id: Optional[UUID] = None,
        selling_unit_id: Optional[UUID] = None,
    ) -> ProductVariant:
        """
        Set a variant's base, stocking and selling units. Stocking and selling
        units must convert to the base unit. Caller commits.
        """
        variant = db.query(ProductVariant).filter(
            ProductVariant.id == variant_id,
            ProductVariant.organization_id == organization_id,
        ).first()
        if variant is None:
            raise NotFound("ProductVariant", variant_id)

        if variant.base_unit_id != base_unit_id:
            has_stock = db.query(StockBatch.id).filter(StockBatch.variant_id == variant.id).first()
            if has_stock is not None:
                raise ValidationError(
                    "Base unit cannot change once stock has been received; batch quantities are stored in it",
                    field="base_unit_id",
                )

        resolver = UnitConversionResolver(db, organization_id)
        resolver.get_unit(base_unit_id)
        for unit_id in (stocking_unit_id, selling_unit_id):
            if unit_id is not None:
                resolver.factor_to_base(unit_id, base_unit_id)

        variant.base_unit_id = base_unit_id
        variant.stocking_unit_id = stocking_unit_id
        variant.selling_unit_id = selling_unit_id
        db.flush()
        return variant
