"""
Units of measure API routes
"""
from decimal import Decimal
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from retail_ledger.database import transaction
from retail_ledger.dependencies import AuthContext, get_auth_context, get_db
from retail_ledger.models import UnitOfMeasure
from retail_ledger.schemas.unit import ConversionResponse, UnitCreate, UnitResponse, VariantUnitsUpdate
from retail_ledger.services.unit_conversion import UnitConversionResolver, UnitService

router = APIRouter()


@router.get("", response_model=List[UnitResponse])
def list_units(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    return db.query(UnitOfMeasure).filter(
        UnitOfMeasure.organization_id == auth.organization_id
    ).order_by(UnitOfMeasure.name.asc()).all()


@router.post("", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
def create_unit(
    payload: UnitCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Create a root unit, or a derived unit with its parent and factor"""
    with transaction(db):
        unit = UnitService.create_unit(
            db,
            auth.organization_id,
            name=payload.name,
            symbol=payload.symbol,
            unit_type=payload.unit_type,
            base_unit_id=payload.base_unit_id,
            conversion_factor=payload.conversion_factor,
        )
    db.refresh(unit)
    return unit


@router.get("/convert", response_model=ConversionResponse)
def convert_quantity(
    from_unit_id: UUID = Query(...),
    to_unit_id: UUID = Query(..., description="Base unit to convert into"),
    quantity: Decimal = Query(Decimal("1")),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Convert a quantity from a unit to one of its ancestor units"""
    resolver = UnitConversionResolver(db, auth.organization_id)
    factor = resolver.factor_to_base(from_unit_id, to_unit_id)
    return ConversionResponse(
        from_unit_id=from_unit_id,
        to_unit_id=to_unit_id,
        quantity=quantity,
        factor=factor,
        converted_quantity=quantity * factor,
    )


@router.put("/variants/{variant_id}", response_model=dict)
def configure_variant_units(
    variant_id: UUID,
    payload: VariantUnitsUpdate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
):
    """Set a variant's base, stocking and selling units"""
    with transaction(db):
        variant = UnitService.configure_variant_units(
            db,
            auth.organization_id,
            variant_id,
            base_unit_id=payload.base_unit_id,
            stocking_unit_id=payload.stocking_unit_id,
            selling_unit_id=payload.selling_unit_id,
        )
    return {
        "variant_id": str(variant.id),
        "base_unit_id": str(variant.base_unit_id),
        "stocking_unit_id": str(variant.stocking_unit_id) if variant.stocking_unit_id else None,
        "selling_unit_id": str(variant.selling_unit_id) if variant.selling_unit_id else None,
    }
