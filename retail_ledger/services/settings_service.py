"""
Organization settings lookup
"""
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from retail_ledger.models import OrganizationSettings
from retail_ledger.utils.tax import tax_rate_to_fraction

FIFO = "FIFO"
FEFO = "FEFO"
INVENTORY_POLICIES = (FIFO, FEFO)


@dataclass(frozen=True)
class InventorySettings:
    """Settings an orchestrator reads once and passes down."""
    default_tax_rate: Decimal = Decimal("0")
    negative_stock_allowed: bool = False
    inventory_policy: str = FIFO


class SettingsService:

    @staticmethod
    def get_settings(db: Session, organization_id: UUID) -> InventorySettings:
        """Settings for the organization, or defaults (tax 0, no negative stock, FIFO) when unset."""
        row = db.query(OrganizationSettings).filter(
            OrganizationSettings.organization_id == organization_id
        ).first()
        if row is None:
            return InventorySettings()
        policy = (row.inventory_policy or FIFO).upper()
        if policy not in INVENTORY_POLICIES:
            policy = FIFO
        return InventorySettings(
            default_tax_rate=tax_rate_to_fraction(row.default_tax_rate),
            negative_stock_allowed=bool(row.negative_stock_allowed),
            inventory_policy=policy,
        )
