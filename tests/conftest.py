"""
Shared fixtures: a fresh in-memory SQLite database per test and a seeded
organization (location, member, Piece/Case units, one product with a variant).
"""
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RECEIPTS_DIR", tempfile.mkdtemp(prefix="retail-ledger-receipts-"))
os.environ.setdefault("SECRET_KEY", "test-secret")

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest
from sqlalchemy.orm import sessionmaker

from retail_ledger.database import build_engine
from retail_ledger.models import (
    Base,
    Customer,
    Location,
    Member,
    Organization,
    OrganizationSettings,
    Product,
    ProductVariant,
    StockBatch,
    Supplier,
    UnitOfMeasure,
)
from retail_ledger.services.post_commit import PostCommitHooks
from retail_ledger.services.stock_ledger import StockLedgerService


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    # Each engine owns its own in-memory database; disposing it discards the schema
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def hooks():
    return PostCommitHooks()


@dataclass
class Seed:
    organization: Organization
    location: Location
    other_location: Location
    member: Member
    piece: UnitOfMeasure
    case: UnitOfMeasure
    product: Product
    variant: ProductVariant
    customer: Customer
    supplier: Supplier


@pytest.fixture
def seed(db) -> Seed:
    org = Organization(name="Corner Shop")
    db.add(org)
    db.flush()
    location = Location(organization_id=org.id, name="Main Store", code="MAIN")
    other = Location(organization_id=org.id, name="Warehouse", code="WH")
    member = Member(organization_id=org.id, name="Cashier One", role="CASHIER")
    piece = UnitOfMeasure(organization_id=org.id, name="Piece", symbol="pc")
    db.add_all([location, other, member, piece])
    db.flush()
    case = UnitOfMeasure(
        organization_id=org.id, name="Case", symbol="cs", base_unit_id=piece.id, conversion_factor=Decimal("24")
    )
    db.add(case)
    product = Product(organization_id=org.id, name="Cola 330ml", base_price=Decimal("4.00"))
    db.add(product)
    db.flush()
    variant = ProductVariant(
        organization_id=org.id,
        product_id=product.id,
        name="Cola 330ml",
        sku="COLA-330",
        base_unit_id=piece.id,
        stocking_unit_id=case.id,
        selling_unit_id=piece.id,
        buying_price=Decimal("48.00"),
        retail_price=Decimal("10.00"),
        is_default=True,
    )
    customer = Customer(organization_id=org.id, name="Jane Buyer", phone="0700000000")
    supplier = Supplier(organization_id=org.id, name="Bottlers Ltd")
    db.add_all([variant, customer, supplier])
    db.commit()
    return Seed(org, location, other, member, piece, case, product, variant, customer, supplier)


def set_org_settings(db, organization_id, tax_rate=Decimal("0"), negative_stock=False, policy="FIFO"):
    row = db.query(OrganizationSettings).filter(OrganizationSettings.organization_id == organization_id).first()
    if row is None:
        row = OrganizationSettings(organization_id=organization_id)
        db.add(row)
    row.default_tax_rate = tax_rate
    row.negative_stock_allowed = negative_stock
    row.inventory_policy = policy
    db.commit()
    return row


def add_batch(
    db,
    seed: Seed,
    quantity,
    received: datetime,
    price=Decimal("2.00"),
    expiry=None,
    batch_number: Optional[str] = None,
    variant: Optional[ProductVariant] = None,
    location: Optional[Location] = None,
) -> StockBatch:
    """Insert a batch through the ledger service so the aggregate follows, and commit."""
    variant = variant or seed.variant
    location = location or seed.location
    batch = StockBatch(
        organization_id=seed.organization.id,
        variant_id=variant.id,
        location_id=location.id,
        batch_number=batch_number or f"B-{received:%m%d}-{quantity}",
        initial_quantity=Decimal(quantity),
        current_quantity=Decimal(quantity),
        purchase_price=Decimal(price),
        expiry_date=expiry,
        received_date=received,
    )
    StockLedgerService.add_batch(db, batch, variant.product_id)
    db.commit()
    return batch


def jan(day: int) -> datetime:
    return datetime(2024, 1, day, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def today():
    return datetime.now(timezone.utc).date()


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


@dataclass
class Weighed:
    product: Product
    variant: ProductVariant
    kg: UnitOfMeasure
    lb: UnitOfMeasure


def add_weighed_variant(db, seed: Seed) -> Weighed:
    """A product stocked in kilograms and sold in pounds (0.453592 kg per lb)."""
    org_id = seed.organization.id
    kg = UnitOfMeasure(organization_id=org_id, name="Kilogram", symbol="kg", unit_type="WEIGHT")
    db.add(kg)
    db.flush()
    lb = UnitOfMeasure(
        organization_id=org_id, name="Pound", symbol="lb", unit_type="WEIGHT",
        base_unit_id=kg.id, conversion_factor=Decimal("0.453592"),
    )
    product = Product(organization_id=org_id, name="Basmati Rice")
    db.add_all([lb, product])
    db.flush()
    variant = ProductVariant(
        organization_id=org_id,
        product_id=product.id,
        name="Basmati Rice",
        sku="RICE-BASMATI",
        base_unit_id=kg.id,
        stocking_unit_id=kg.id,
        selling_unit_id=lb.id,
        retail_price=Decimal("3.00"),
        is_default=True,
    )
    db.add(variant)
    db.commit()
    return Weighed(product, variant, kg, lb)
