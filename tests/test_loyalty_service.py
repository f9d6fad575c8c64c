from decimal import Decimal

import pytest

from retail_ledger.exceptions import NotFound, ValidationError
from retail_ledger.models import Customer, LoyaltyTransaction
from retail_ledger.services.loyalty_service import MANUAL_ADJUSTMENT, LoyaltyService, points_for_amount


@pytest.mark.parametrize("amount,points", [
    (Decimal("0"), 0),
    (Decimal("9.99"), 0),
    (Decimal("10"), 1),
    (Decimal("92.80"), 9),
    (Decimal("-50"), 0),
])
def test_points_for_amount(amount, points):
    assert points_for_amount(amount) == points


def test_manual_credit_and_debit(db, seed):
    LoyaltyService.adjust_points(db, seed.organization.id, seed.customer.id, seed.member.id, 15, notes="Welcome")
    db.commit()
    LoyaltyService.adjust_points(db, seed.organization.id, seed.customer.id, seed.member.id, -5)
    db.commit()
    assert db.get(Customer, seed.customer.id).loyalty_points == 10
    reasons = {t.reason for t in db.query(LoyaltyTransaction).all()}
    assert reasons == {MANUAL_ADJUSTMENT}


def test_balance_cannot_go_below_zero(db, seed):
    with pytest.raises(ValidationError):
        LoyaltyService.adjust_points(db, seed.organization.id, seed.customer.id, seed.member.id, -1)


def test_zero_change_is_rejected(db, seed):
    with pytest.raises(ValidationError):
        LoyaltyService.adjust_points(db, seed.organization.id, seed.customer.id, seed.member.id, 0)


def test_customer_must_belong_to_organization(db, seed):
    with pytest.raises(NotFound):
        LoyaltyService.adjust_points(db, seed.member.id, seed.customer.id, seed.member.id, 5)


def test_small_sale_earns_nothing(db, seed):
    assert LoyaltyService.award_for_sale(
        db, seed.organization.id, seed.customer.id, seed.member.id, seed.product.id, "SALE-X", Decimal("4")
    ) is None
