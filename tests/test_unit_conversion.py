from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from retail_ledger.exceptions import (
    CycleDetected,
    InvalidConversionFactor,
    NoConversionPath,
    NotFound,
    UnknownUnit,
    ValidationError,
)
from retail_ledger.models import UnitOfMeasure
from retail_ledger.services.unit_conversion import UnitConversionResolver, UnitService
from tests.conftest import add_batch


def test_factor_to_itself_is_one(db, seed):
    resolver = UnitConversionResolver(db, seed.organization.id)
    assert resolver.factor_to_base(seed.piece.id, seed.piece.id) == Decimal("1")


def test_case_converts_to_pieces(db, seed):
    resolver = UnitConversionResolver(db, seed.organization.id)
    assert resolver.factor_to_base(seed.case.id, seed.piece.id) == Decimal("24")
    assert resolver.convert_quantity_to_base(Decimal("2"), seed.case.id, seed.piece.id) == Decimal("48")


def test_factors_multiply_along_the_chain(db, seed):
    pallet = UnitService.create_unit(
        db, seed.organization.id, "Pallet", "plt", base_unit_id=seed.case.id, conversion_factor=Decimal("10")
    )
    db.commit()
    resolver = UnitConversionResolver(db, seed.organization.id)
    assert resolver.factor_to_base(pallet.id, seed.piece.id) == Decimal("240")


def test_price_per_case_becomes_price_per_piece(db, seed):
    resolver = UnitConversionResolver(db, seed.organization.id)
    assert resolver.convert_price_per_unit_to_base(Decimal("48"), seed.case.id, seed.piece.id) == Decimal("2")


def test_quantity_survives_conversion_to_base_and_back(db, seed):
    resolver = UnitConversionResolver(db, seed.organization.id)
    base = resolver.convert_quantity_to_base(Decimal("3"), seed.case.id, seed.piece.id)
    assert resolver.convert_base_to_unit(base, seed.case.id, seed.piece.id) == Decimal("3")


def test_unrelated_root_has_no_path(db, seed):
    kg = UnitService.create_unit(db, seed.organization.id, "Kilogram", "kg", unit_type="WEIGHT")
    db.commit()
    resolver = UnitConversionResolver(db, seed.organization.id)
    with pytest.raises(NoConversionPath):
        resolver.factor_to_base(kg.id, seed.piece.id)


def test_unknown_unit(db, seed):
    resolver = UnitConversionResolver(db, seed.organization.id)
    with pytest.raises(UnknownUnit):
        resolver.factor_to_base(uuid4(), seed.piece.id)


def test_cycle_is_detected(db, seed):
    a = UnitOfMeasure(organization_id=seed.organization.id, name="Alpha", symbol="a")
    db.add(a)
    db.flush()
    b = UnitOfMeasure(
        organization_id=seed.organization.id, name="Beta", symbol="b",
        base_unit_id=a.id, conversion_factor=Decimal("2"),
    )
    db.add(b)
    db.flush()
    a.base_unit_id = b.id
    a.conversion_factor = Decimal("3")
    db.commit()

    resolver = UnitConversionResolver(db, seed.organization.id)
    with pytest.raises(CycleDetected):
        resolver.factor_to_base(a.id, seed.piece.id)


def test_derived_unit_requires_positive_factor(db, seed):
    with pytest.raises(ValidationError):
        UnitService.create_unit(db, seed.organization.id, "Pack", "pk", base_unit_id=seed.piece.id)
    with pytest.raises(ValidationError):
        UnitService.create_unit(
            db, seed.organization.id, "Pack", "pk", base_unit_id=seed.piece.id, conversion_factor=Decimal("0")
        )


def test_root_unit_rejects_factor(db, seed):
    with pytest.raises(ValidationError):
        UnitService.create_unit(db, seed.organization.id, "Litre", "l", conversion_factor=Decimal("1000"))


def test_configure_variant_units_checks_convertibility(db, seed):
    kg = UnitService.create_unit(db, seed.organization.id, "Kilogram", "kg", unit_type="WEIGHT")
    db.commit()
    with pytest.raises(NoConversionPath):
        UnitService.configure_variant_units(
            db, seed.organization.id, seed.variant.id, seed.piece.id, stocking_unit_id=kg.id
        )


def test_configure_variant_units_unknown_variant(db, seed):
    with pytest.raises(NotFound):
        UnitService.configure_variant_units(db, seed.organization.id, seed.piece.id, seed.piece.id)


def test_base_unit_is_fixed_once_stock_exists(db, seed):
    add_batch(db, seed, 10, datetime(2024, 1, 1, tzinfo=timezone.utc))
    with pytest.raises(ValidationError):
        UnitService.configure_variant_units(db, seed.organization.id, seed.variant.id, seed.case.id)


def _cached_unit(resolver, seed, factor):
    # Bypasses the table's factor check to reach the resolver's handling of bad rows
    unit = UnitOfMeasure(
        id=uuid4(), organization_id=seed.organization.id, name="Loose", symbol="ls",
        base_unit_id=seed.piece.id, conversion_factor=factor,
    )
    resolver._units[unit.id] = unit
    return unit


def test_parent_without_factor_is_a_dead_end(db, seed):
    resolver = UnitConversionResolver(db, seed.organization.id)
    unit = _cached_unit(resolver, seed, None)
    with pytest.raises(NoConversionPath):
        resolver.factor_to_base(unit.id, seed.piece.id)


def test_non_positive_factor_is_invalid(db, seed):
    resolver = UnitConversionResolver(db, seed.organization.id)
    unit = _cached_unit(resolver, seed, Decimal("0"))
    with pytest.raises(InvalidConversionFactor):
        resolver.factor_to_base(unit.id, seed.piece.id)
