"""
Audit log model
"""
from sqlalchemy import JSON, Column, ForeignKey, String, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from retail_ledger.database import Base


class AuditLog(Base):
    """Who did what to which entity. Written in the same transaction as the change it records."""
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Uuid, nullable=True)
    action = Column(String(50), nullable=False)  # CREATE, UPDATE, CREATE_FAILED
    entity_type = Column(String(50), nullable=False)  # SALE, STOCK_BATCH, STOCK_ADJUSTMENT, LOYALTY
    entity_id = Column(String(100), nullable=True)
    description = Column(Text)
    details = Column(JSON)
    performed_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    __table_args__ = ({"comment": "Append-only audit trail."},)
