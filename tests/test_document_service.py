import re
from datetime import date

from retail_ledger.models import Organization
from retail_ledger.services.document_service import DocumentService


def test_sale_numbers_restart_each_year(db, seed):
    org = seed.organization.id
    assert DocumentService.get_sale_number(db, org, date(2025, 12, 31)) == "SALE-2025-000001"
    assert DocumentService.get_sale_number(db, org, date(2025, 12, 31)) == "SALE-2025-000002"
    assert DocumentService.get_sale_number(db, org, date(2026, 1, 1)) == "SALE-2026-000001"


def test_sale_numbers_are_per_organization(db, seed):
    other = Organization(name="Other Shop")
    db.add(other)
    db.flush()
    assert DocumentService.get_sale_number(db, seed.organization.id, date(2025, 1, 1)) == "SALE-2025-000001"
    assert DocumentService.get_sale_number(db, other.id, date(2025, 1, 1)) == "SALE-2025-000001"


def test_batch_number_format(seed):
    number = DocumentService.generate_batch_number(seed.product.id, seed.variant.id, date(2024, 3, 9))
    assert re.fullmatch(r"BATCH-[0-9A-F]{3}-[0-9A-F]{3}-240309-[A-Z0-9]{4}", number), number
