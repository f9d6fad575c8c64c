from decimal import Decimal

from retail_ledger.models import ProductVariantStock
from retail_ledger.services.stock_ledger import StockLedgerService
from tests.conftest import add_batch, jan


def test_consistent_ledger_has_no_drift(db, seed):
    add_batch(db, seed, 10, jan(1))
    add_batch(db, seed, 6, jan(2), batch_number="WH", location=seed.other_location)
    assert StockLedgerService.reconcile(db) == []
    assert StockLedgerService.get_ledger_quantity(
        db, seed.organization.id, seed.variant.id, seed.location.id
    ) == Decimal("10")


def test_drift_is_reported(db, seed):
    add_batch(db, seed, 10, jan(1))
    agg = db.query(ProductVariantStock).one()
    agg.current_stock = Decimal("12")
    db.commit()

    drift = StockLedgerService.reconcile(db, seed.organization.id)

    assert len(drift) == 1
    assert drift[0].variant_id == seed.variant.id
    assert drift[0].ledger_quantity == Decimal("10")
    assert drift[0].aggregate_quantity == Decimal("12")
    assert drift[0].difference == Decimal("2")


def test_aggregate_without_batches_is_drift(db, seed):
    db.add(ProductVariantStock(
        organization_id=seed.organization.id,
        product_id=seed.product.id,
        variant_id=seed.variant.id,
        location_id=seed.other_location.id,
        current_stock=Decimal("3"),
        reserved_stock=Decimal("0"),
        available_stock=Decimal("3"),
    ))
    db.commit()
    drift = StockLedgerService.reconcile(db, seed.organization.id)
    assert [(d.location_id, d.ledger_quantity) for d in drift] == [(seed.other_location.id, Decimal("0"))]


def test_low_stock_uses_reorder_point(db, seed):
    add_batch(db, seed, 4, jan(1))
    add_batch(db, seed, 40, jan(1), batch_number="WH", location=seed.other_location)
    low = StockLedgerService.get_low_stock(db, seed.organization.id)
    assert [row.location_id for row in low] == [seed.location.id]
    assert StockLedgerService.get_low_stock(db, seed.organization.id, seed.other_location.id) == []


def test_get_batches_hides_empty_batches(db, seed):
    batch = add_batch(db, seed, 4, jan(1))
    StockLedgerService.change_batch_quantity(db, batch, seed.product.id, Decimal("-4"))
    db.commit()
    assert StockLedgerService.get_batches(db, seed.organization.id, seed.variant.id, seed.location.id) == []
    assert len(StockLedgerService.get_batches(
        db, seed.organization.id, seed.variant.id, seed.location.id, include_empty=True
    )) == 1
