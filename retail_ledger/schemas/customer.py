"""
Customer loyalty schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID


class LoyaltyAdjustmentCreate(BaseModel):
    points_change: int = Field(..., description="Positive credits points, negative deducts them")
    notes: Optional[str] = None


class LoyaltyTransactionResponse(BaseModel):
    id: UUID
    customer_id: UUID
    points_change: int
    reason: str
    notes: Optional[str] = None
    transaction_date: Optional[datetime] = None
    balance: int = 0

    class Config:
        from_attributes = True
