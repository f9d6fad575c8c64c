"""
Unit of measure schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from decimal import Decimal


class UnitCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    symbol: str = Field(..., min_length=1, max_length=20)
    unit_type: str = Field(default="COUNT", description="COUNT, WEIGHT, VOLUME, LENGTH")
    base_unit_id: Optional[UUID] = Field(None, description="Parent unit; omit for a root unit")
    conversion_factor: Optional[Decimal] = Field(None, description="Parent units per one of this unit")


class UnitResponse(BaseModel):
    id: UUID
    name: str
    symbol: str
    unit_type: str
    base_unit_id: Optional[UUID] = None
    conversion_factor: Optional[Decimal] = None

    class Config:
        from_attributes = True


class VariantUnitsUpdate(BaseModel):
    base_unit_id: UUID
    stocking_unit_id: Optional[UUID] = None
    selling_unit_id: Optional[UUID] = None


class ConversionResponse(BaseModel):
    from_unit_id: UUID
    to_unit_id: UUID
    quantity: Decimal
    factor: Decimal
    converted_quantity: Decimal
