from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from retail_ledger.database import get_db
from retail_ledger.main import app
from retail_ledger.utils.auth_internal import create_access_token
from tests.conftest import add_batch, jan


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(seed):
    token = create_access_token(str(seed.member.id), str(seed.organization.id))
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_requests_without_token_are_rejected(client, seed):
    response = client.get("/api/inventory/reconcile")
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error_kind"] == "AUTHENTICATION_REQUIRED"


def test_garbage_token_is_rejected(client, seed):
    response = client.get("/api/inventory/reconcile", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_restock_then_sell(client, seed, auth_headers):
    response = client.post("/api/inventory/restock", headers=auth_headers, json={
        "product_id": str(seed.product.id),
        "location_id": str(seed.location.id),
        "unit_id": str(seed.case.id),
        "unit_quantity": "2",
        "purchase_price": "48",
    })
    assert response.status_code == 201, response.text
    restock = response.json()
    assert Decimal(restock["stock_batch"]["current_quantity"]) == Decimal("48")
    assert Decimal(restock["stock_batch"]["purchase_price"]) == Decimal("2")
    assert restock["variant_id"] == str(seed.variant.id)

    response = client.post("/api/sales", headers=auth_headers, json={
        "location_id": str(seed.location.id),
        "payment_method": "cash",
        "items": [{"product_id": str(seed.product.id), "variant_id": str(seed.variant.id), "quantity": "5"}],
    })
    assert response.status_code == 201, response.text
    result = response.json()
    assert result["success"] is True
    assert result["sale_number"].startswith("SALE-")

    response = client.get(f"/api/sales/{result['sale_id']}", headers=auth_headers)
    assert response.status_code == 200
    sale = response.json()
    assert Decimal(sale["final_amount"]) == Decimal("50")
    assert len(sale["items"]) == 1
    assert sale["items"][0]["stock_batch_id"] == restock["stock_batch"]["id"]

    response = client.get(
        f"/api/inventory/stock/{seed.variant.id}/{seed.location.id}", headers=auth_headers
    )
    position = response.json()
    assert Decimal(position["current_stock"]) == Decimal("43")
    assert Decimal(position["ledger_quantity"]) == Decimal("43")

    assert client.get("/api/inventory/reconcile", headers=auth_headers).json() == []


def test_insufficient_stock_is_a_conflict(client, seed, auth_headers, db):
    add_batch(db, seed, 2, jan(1))
    response = client.post("/api/sales", headers=auth_headers, json={
        "location_id": str(seed.location.id),
        "payment_method": "card",
        "items": [{"product_id": str(seed.product.id), "variant_id": str(seed.variant.id), "quantity": "3"}],
    })
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error_kind"] == "INSUFFICIENT_STOCK"


def test_unknown_sale_is_not_found(client, seed, auth_headers):
    response = client.get(f"/api/sales/{seed.product.id}", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error_kind"] == "NOT_FOUND"


def test_adjustment_endpoint(client, seed, auth_headers, db):
    batch = add_batch(db, seed, 10, jan(1))
    response = client.post("/api/inventory/adjustments", headers=auth_headers, json={
        "stock_batch_id": str(batch.id),
        "quantity": "-2",
        "reason": "DAMAGED",
    })
    assert response.status_code == 201, response.text
    assert Decimal(response.json()["stock_aggregate"]["current_stock"]) == Decimal("8")


def test_unit_conversion_endpoint(client, seed, auth_headers):
    response = client.get("/api/units/convert", headers=auth_headers, params={
        "from_unit_id": str(seed.case.id),
        "to_unit_id": str(seed.piece.id),
        "quantity": "3",
    })
    assert response.status_code == 200
    assert Decimal(response.json()["converted_quantity"]) == Decimal("72")


def test_loyalty_adjustment_endpoint(client, seed, auth_headers):
    response = client.post(f"/api/customers/{seed.customer.id}/loyalty", headers=auth_headers, json={
        "points_change": 25,
        "notes": "Launch bonus",
    })
    assert response.status_code == 201, response.text
    assert response.json()["balance"] == 25

    response = client.post(f"/api/customers/{seed.customer.id}/loyalty", headers=auth_headers, json={
        "points_change": -30,
    })
    assert response.status_code == 400
    assert response.json()["error_kind"] == "VALIDATION_ERROR"
