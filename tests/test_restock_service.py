from decimal import Decimal

import pytest

from retail_ledger.exceptions import NoVariantForStockTracking, NotFound, ValidationError
from retail_ledger.models import (
    AuditLog,
    Product,
    ProductSupplier,
    StockAdjustment,
    StockBatch,
    StockMovement,
)
from retail_ledger.models.inventory import ADJUSTMENT_IN, INVENTORY_COUNT, PURCHASE_RECEIPT, RECEIVED_PURCHASE
from retail_ledger.services.post_commit import STOCK_RECEIVED
from retail_ledger.services.restock_service import RestockRequest, RestockService
from retail_ledger.services.stock_ledger import StockLedgerService
from tests.conftest import add_weighed_variant, jan


def _request(seed, **overrides):
    values = dict(
        organization_id=seed.organization.id,
        member_id=seed.member.id,
        product_id=seed.product.id,
        location_id=seed.location.id,
        unit_id=seed.case.id,
        unit_quantity=Decimal("2"),
        purchase_price=Decimal("48"),
        received_date=jan(10),
    )
    values.update(overrides)
    return RestockRequest(**values)


def test_restock_in_cases_is_stored_in_pieces(db, seed, hooks):
    result = RestockService.restock_product(db, _request(seed), post_commit_hooks=hooks)

    batch = result.stock_batch
    assert batch.initial_quantity == Decimal("48")
    assert batch.current_quantity == Decimal("48")
    assert batch.purchase_price == Decimal("2")
    assert batch.batch_number.startswith("BATCH-")
    assert result.variant.id == seed.variant.id
    assert result.unit_conversion["from_unit"] == "Case"
    assert result.unit_conversion["to_unit"] == "Piece"
    assert result.unit_conversion["to_quantity"] == Decimal("48")
    assert result.unit_conversion["conversion_factor"] == Decimal("24")

    agg = StockLedgerService.get_aggregate(db, seed.organization.id, seed.variant.id, seed.location.id)
    assert agg.current_stock == Decimal("48")
    assert agg.available_stock == Decimal("48")


def test_restock_records_adjustment_movement_and_audit(db, seed, hooks):
    result = RestockService.restock_product(db, _request(seed), post_commit_hooks=hooks)

    adjustment = db.query(StockAdjustment).one()
    assert adjustment.reason == INVENTORY_COUNT
    assert adjustment.quantity == Decimal("48")
    movement = db.query(StockMovement).one()
    assert movement.movement_type == ADJUSTMENT_IN
    assert movement.to_location_id == seed.location.id
    assert movement.from_location_id is None
    audit = db.query(AuditLog).filter(AuditLog.entity_type == "STOCK_BATCH").one()
    assert audit.action == "CREATE"
    assert audit.entity_id == str(result.stock_batch.id)


def test_restock_from_purchase_order_line(db, seed, hooks):
    purchase_item_id = seed.product.id
    RestockService.restock_product(
        db, _request(seed, purchase_item_id=purchase_item_id), post_commit_hooks=hooks
    )
    assert db.query(StockAdjustment).one().reason == RECEIVED_PURCHASE
    movement = db.query(StockMovement).one()
    assert movement.movement_type == PURCHASE_RECEIPT
    assert movement.reference_type == "PurchaseItem"
    assert movement.reference_id == purchase_item_id


def test_restock_without_price_uses_buying_price_per_base_unit(db, seed, hooks):
    result = RestockService.restock_product(
        db, _request(seed, purchase_price=None), post_commit_hooks=hooks
    )
    assert result.stock_batch.purchase_price == Decimal("2")


def test_restock_refreshes_supplier_terms(db, seed, hooks):
    RestockService.restock_product(db, _request(seed, supplier_id=seed.supplier.id), post_commit_hooks=hooks)
    RestockService.restock_product(
        db, _request(seed, supplier_id=seed.supplier.id, purchase_price=Decimal("60")), post_commit_hooks=hooks
    )
    link = db.query(ProductSupplier).one()
    assert link.cost_price == Decimal("2.5")
    assert link.packaging_unit_id == seed.case.id


def test_restock_fires_stock_received_after_commit(db, seed, hooks):
    seen = []
    hooks.register(STOCK_RECEIVED, lambda event, payload: seen.append(payload))
    RestockService.restock_product(db, _request(seed), post_commit_hooks=hooks)
    assert seen and seen[0]["variant_ids"] == [seed.variant.id]


def test_restock_product_without_variants(db, seed, hooks):
    bare = Product(organization_id=seed.organization.id, name="Loose Sweets")
    db.add(bare)
    db.commit()
    with pytest.raises(NoVariantForStockTracking) as excinfo:
        RestockService.restock_product(db, _request(seed, product_id=bare.id), post_commit_hooks=hooks)
    assert "must have at least one variant" in excinfo.value.message
    assert db.query(StockBatch).count() == 0


def test_restock_rejects_non_positive_quantity(db, seed, hooks):
    with pytest.raises(ValidationError):
        RestockService.restock_product(db, _request(seed, unit_quantity=Decimal("0")), post_commit_hooks=hooks)


def test_restock_unknown_location(db, seed, hooks):
    with pytest.raises(NotFound):
        RestockService.restock_product(
            db, _request(seed, location_id=seed.member.id), post_commit_hooks=hooks
        )
    assert db.query(StockBatch).count() == 0


def test_bulk_restock_skips_empty_lines(db, seed, hooks):
    result = RestockService.bulk_restock(db, [
        _request(seed),
        _request(seed, unit_quantity=Decimal("0")),
        _request(seed, unit_id=seed.piece.id, unit_quantity=Decimal("6"), purchase_price=Decimal("2")),
    ], post_commit_hooks=hooks)
    assert result.restocked == 2
    assert result.skipped == 1
    agg = StockLedgerService.get_aggregate(db, seed.organization.id, seed.variant.id, seed.location.id)
    assert agg.current_stock == Decimal("54")


def test_bulk_restock_is_all_or_nothing(db, seed, hooks):
    with pytest.raises(NotFound):
        RestockService.bulk_restock(db, [
            _request(seed),
            _request(seed, location_id=seed.member.id),
        ], post_commit_hooks=hooks)
    assert db.query(StockBatch).count() == 0
    assert StockLedgerService.get_aggregate(db, seed.organization.id, seed.variant.id, seed.location.id) is None


def test_bulk_restock_requires_lines(db, hooks):
    with pytest.raises(ValidationError):
        RestockService.bulk_restock(db, [], post_commit_hooks=hooks)


def test_fractional_conversion_keeps_aggregate_equal_to_batches(db, seed, hooks):
    rice = add_weighed_variant(db, seed)
    line = dict(
        product_id=rice.product.id,
        unit_id=rice.lb.id,
        unit_quantity=Decimal("7"),
        purchase_price=Decimal("1.50"),
    )
    RestockService.bulk_restock(db, [_request(seed, **line), _request(seed, **line)], post_commit_hooks=hooks)

    batches = db.query(StockBatch).filter(StockBatch.variant_id == rice.variant.id).all()
    assert [b.initial_quantity for b in batches] == [Decimal("3.1751"), Decimal("3.1751")]
    agg = StockLedgerService.get_aggregate(db, seed.organization.id, rice.variant.id, seed.location.id)
    assert agg.current_stock == Decimal("6.3502")
    assert agg.current_stock == sum(b.current_quantity for b in batches)
    assert StockLedgerService.reconcile(db, seed.organization.id) == []


def test_quantity_below_stored_precision_is_rejected(db, seed, hooks):
    rice = add_weighed_variant(db, seed)
    with pytest.raises(ValidationError):
        RestockService.restock_product(db, _request(
            seed, product_id=rice.product.id, unit_id=rice.lb.id, unit_quantity=Decimal("0.0001"),
        ), post_commit_hooks=hooks)


def test_restock_into_inactive_variant_is_not_found(db, seed, hooks):
    seed.variant.is_active = False
    db.commit()
    with pytest.raises(NotFound):
        RestockService.restock_product(db, _request(seed, variant_id=seed.variant.id), post_commit_hooks=hooks)
    assert db.query(StockBatch).count() == 0


def test_restock_into_inactive_location_is_not_found(db, seed, hooks):
    seed.location.is_active = False
    db.commit()
    with pytest.raises(NotFound):
        RestockService.restock_product(db, _request(seed), post_commit_hooks=hooks)
    assert db.query(StockBatch).count() == 0
