from datetime import timedelta
from decimal import Decimal

import pytest

from retail_ledger.exceptions import InsufficientStock, NoCostBasisAvailable
from retail_ledger.services.batch_selection import BatchSelectionPolicy
from retail_ledger.services.settings_service import FEFO, FIFO
from retail_ledger.services.stock_ledger import StockDeltas
from tests.conftest import add_batch, jan


def _select(db, seed, required, policy=FIFO, negative=False, staged=None, today=None):
    return BatchSelectionPolicy(policy, negative, exclude_expired=True, today=today).select(
        db,
        seed.organization.id,
        seed.variant.id,
        seed.location.id,
        Decimal(required),
        staged or StockDeltas(),
        variant_label="Cola 330ml",
        location_label="Main Store",
    )


def test_fifo_takes_oldest_batch_that_covers_the_line(db, seed):
    a = add_batch(db, seed, 10, jan(1), batch_number="A")
    add_batch(db, seed, 10, jan(5), batch_number="B")
    selection = _select(db, seed, 7)
    assert selection.batch.id == a.id
    assert selection.unit_cost == Decimal("2.00")
    assert not selection.is_fallback


def test_fifo_skips_a_batch_too_small_for_the_whole_line(db, seed):
    add_batch(db, seed, 3, jan(1), batch_number="A")
    b = add_batch(db, seed, 10, jan(5), batch_number="B")
    assert _select(db, seed, 5).batch.id == b.id


def test_fefo_prefers_earliest_expiry_then_undated(db, seed, today):
    add_batch(db, seed, 10, jan(1), batch_number="NO-EXPIRY")
    late = add_batch(db, seed, 10, jan(2), batch_number="LATE", expiry=today + timedelta(days=60))
    soon = add_batch(db, seed, 10, jan(3), batch_number="SOON", expiry=today + timedelta(days=5))
    assert _select(db, seed, 4, policy=FEFO).batch.id == soon.id

    staged = StockDeltas()
    staged.add(soon.id, seed.product.id, seed.variant.id, seed.location.id, Decimal("-8"))
    assert _select(db, seed, 4, policy=FEFO, staged=staged).batch.id == late.id


def test_expired_batches_do_not_fund_sales(db, seed, yesterday):
    add_batch(db, seed, 10, jan(1), batch_number="OLD", expiry=yesterday)
    fresh = add_batch(db, seed, 10, jan(2), batch_number="FRESH")
    assert _select(db, seed, 5).batch.id == fresh.id


def test_staged_quantities_reduce_what_a_batch_can_give(db, seed):
    a = add_batch(db, seed, 10, jan(1), batch_number="A")
    b = add_batch(db, seed, 10, jan(5), batch_number="B")
    staged = StockDeltas()
    staged.add(a.id, seed.product.id, seed.variant.id, seed.location.id, Decimal("-6"))
    assert _select(db, seed, 5, staged=staged).batch.id == b.id


def test_insufficient_stock_reports_available_after_staging(db, seed):
    a = add_batch(db, seed, 4, jan(1), batch_number="A")
    add_batch(db, seed, 3, jan(5), batch_number="B")
    staged = StockDeltas()
    staged.add(a.id, seed.product.id, seed.variant.id, seed.location.id, Decimal("-2"))
    with pytest.raises(InsufficientStock) as excinfo:
        _select(db, seed, 6, staged=staged)
    assert excinfo.value.required == Decimal("6")
    assert excinfo.value.available == Decimal("5")
    assert "Main Store" in excinfo.value.message


def test_negative_stock_falls_back_to_latest_batch(db, seed):
    add_batch(db, seed, 2, jan(1), batch_number="A", price=Decimal("1.50"))
    b = add_batch(db, seed, 1, jan(5), batch_number="B", price=Decimal("1.75"))
    selection = _select(db, seed, 50, negative=True)
    assert selection.batch.id == b.id
    assert selection.unit_cost == Decimal("1.75")
    assert selection.is_fallback


def test_negative_stock_without_any_batch_has_no_cost_basis(db, seed):
    with pytest.raises(NoCostBasisAvailable):
        _select(db, seed, 1, negative=True)
