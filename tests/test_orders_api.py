from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.deps import get_db, get_provider_client, get_sync_service
from app.api.routes import health, orders, provider
from app.orders.normalizer import normalize
from app.orders.service import OrderSyncService


def _build_app():
    app = FastAPI()
    app.include_router(health.router, prefix="/api")
    app.include_router(orders.router, prefix="/api")
    app.include_router(provider.router, prefix="/api")
    return app


@pytest.fixture
def api(db, fake_client, yampi_order):
    """App wired to a temp database and a fake Yampi client."""
    app = _build_app()
    yampi = fake_client([yampi_order(order_id=1), yampi_order(order_id=2, customer_name="João Lima")])
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_sync_service] = lambda: OrderSyncService(client=yampi, db=db)
    app.dependency_overrides[get_provider_client] = lambda: yampi
    with TestClient(app) as client:
        yield client


def test_sync_endpoint_reports_counts(api):
    response = api.post("/api/orders/sync")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert (body["created"], body["updated"], body["errors"], body["total"]) == (2, 0, 0, 2)
    assert "2 created" in body["message"]

    again = api.post("/api/orders/sync").json()
    assert again["created"] == 0
    assert again["updated"] == 2


def test_sync_endpoint_provider_failure(db, provider_down):
    app = _build_app()
    app.dependency_overrides[get_sync_service] = lambda: OrderSyncService(client=provider_down, db=db)
    client = TestClient(app)

    response = client.post("/api/orders/sync")

    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert "503" in body["message"]
    assert db.get_order_count() == 0


def test_list_orders_with_filters(api):
    api.post("/api/orders/sync")

    everything = api.get("/api/orders").json()
    assert everything["total"] == 2
    assert len(everything["data"]) == 2

    found = api.get("/api/orders", params={"q": "LIMA"}).json()
    assert found["total"] == 1
    found = api.get("/api/orders", params={"q": "Lima", "status": "paid", "payment_method": "pix"}).json()
    assert found["total"] == 1
    assert found["data"][0]["cliente"] == "João Lima"

    page = api.get("/api/orders", params={"limit": 1}).json()
    assert len(page["data"]) == 1
    assert page["total"] == 2


def test_list_orders_rejects_bad_dates(api):
    assert api.get("/api/orders", params={"date_from": "03/10/2024"}).status_code == 422


def test_get_order(api, db, yampi_order):
    order_id = db.insert_order(normalize(yampi_order(order_id=9)))

    response = api.get(f"/api/orders/{order_id}")
    assert response.status_code == 200
    assert response.json()["data"]["yampi_order_id"] == 9

    assert api.get("/api/orders/999").status_code == 404


def test_patch_operator_field(api, db, yampi_order):
    order_id = db.insert_order(normalize(yampi_order(order_id=9)))

    response = api.patch(f"/api/orders/{order_id}", json={"field": "custo_pos", "value": "89,90"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["custo_pos"] == 89.9
    assert db.get_order(order_id)["custo_pos"] == 89.9


def test_patch_cpf_on_missing_order_is_not_found(api, db):
    response = api.patch("/api/orders/12345", json={"field": "cpf", "value": "123.456.789-00"})

    assert response.status_code == 404
    assert db.get_order_count() == 0


def test_patch_unsupported_field_never_touches_store():
    store = MagicMock()
    app = _build_app()
    app.dependency_overrides[get_db] = lambda: store
    client = TestClient(app)

    response = client.patch("/api/orders/1", json={"field": "valor_bruto", "value": 1})

    assert response.status_code == 400
    assert "not supported" in response.json()["detail"]
    assert store.method_calls == []


def test_patch_invalid_value(api, db, yampi_order):
    order_id = db.insert_order(normalize(yampi_order(order_id=9)))

    response = api.patch(f"/api/orders/{order_id}", json={"field": "data_aceite", "value": "ontem"})

    assert response.status_code == 400
    assert db.get_order(order_id)["data_aceite"] is None


def test_patch_rejects_bad_id(api):
    assert api.patch("/api/orders/0", json={"field": "cpf", "value": "1"}).status_code == 422
    assert api.patch("/api/orders/abc", json={"field": "cpf", "value": "1"}).status_code == 422


def test_health(api):
    api.post("/api/orders/sync")

    body = api.get("/api/health").json()
    assert body["status"] == "healthy"
    assert body["database_orders"] == 2
    assert body["last_synced_at"] is not None


def test_provider_orders_are_normalized(api):
    body = api.get("/api/provider/orders").json()

    assert body["total"] == 2
    assert body["data"][0]["model"] == "Mini"
    assert body["data"][0]["plan"] == "EXPRESS"
    assert body["data"][0]["net_amount"] == 85


def test_provider_orders_failure(provider_down):
    app = _build_app()
    app.dependency_overrides[get_provider_client] = lambda: provider_down
    client = TestClient(app)

    assert client.get("/api/provider/orders").status_code == 502


def test_provider_not_configured():
    app = _build_app()
    app.dependency_overrides[get_provider_client] = lambda: None
    client = TestClient(app)

    assert client.get("/api/provider/statuses").status_code == 503


def test_provider_statuses(api):
    body = api.get("/api/provider/statuses").json()
    assert {"id": 4, "name": "Pago", "alias": "paid"} in body


def test_list_filters_by_payment_code_after_sync(db, fake_client, yampi_order):
    app = _build_app()
    card = yampi_order(order_id=3, payments=[{"name": "Cartão de Crédito", "payment_method": "credit_card"}])
    yampi = fake_client([yampi_order(order_id=1), card])
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_sync_service] = lambda: OrderSyncService(client=yampi, db=db)
    client = TestClient(app)

    client.post("/api/orders/sync")
    body = client.get("/api/orders", params={"payment_method": "credit_card"}).json()

    assert body["total"] == 1
    assert body["data"][0]["yampi_order_id"] == 3
    assert body["data"][0]["forma_pagamento"] == "Cartão de Crédito"
    assert body["data"][0]["forma_pagamento_code"] == "credit_card"
