"""
Audit trail writes
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from retail_ledger.models import AuditLog


def _jsonable(value: Any) -> Any:
    """Make details JSON-safe (Decimal, UUID and dates become strings)."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class AuditService:

    @staticmethod
    def log(
        db: Session,
        organization_id: UUID,
        member_id: Optional[UUID],
        action: str,
        entity_type: str,
        entity_id: Any = None,
        description: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> AuditLog:
        """Append an audit entry in the caller's transaction."""
        entry = AuditLog(
            organization_id=organization_id,
            member_id=member_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            description=description,
            details=_jsonable(details or {}),
        )
        db.add(entry)
        return entry
