"""
Tests for the HTTP surface: routes, envelopes and error mapping.
"""
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from Database.db import get_db


def test_root_banner(client):
    resp = client.get("/")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert resp.text == "NICE Proxy API running 🚀"


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_cors_allows_any_origin(client):
    resp = client.get("/health", headers={"Origin": "https://crm.example.com"})

    assert resp.headers["access-control-allow-origin"] == "*"


def test_token_relays_upstream_json(client, http_session):
    upstream = MagicMock(ok=True, status_code=200)
    upstream.json.return_value = {"access_token": "abc", "token_type": "Bearer"}
    http_session.post.return_value = upstream

    resp = client.get("/token")

    assert resp.status_code == 200
    assert resp.json() == {"access_token": "abc", "token_type": "Bearer"}


def test_token_upstream_401_maps_to_500(client, http_session):
    http_session.post.return_value = MagicMock(ok=False, status_code=401, text="invalid_client")

    resp = client.get("/token")

    assert resp.status_code == 500
    body = resp.json()
    assert body["ok"] is False
    assert body["error"] == "invalid_client"
    assert body["code"] == "UPSTREAM_ERROR"


def test_init_db_is_idempotent(client):
    first = client.get("/init-db")
    second = client.get("/init-db")

    assert first.status_code == second.status_code == 200
    assert first.json()["ok"] is True
    assert first.json()["inserted"] == 4
    assert second.json()["inserted"] == 0


def test_list_customers_bare_array(seeded_client):
    resp = seeded_client.get("/customers")

    assert resp.status_code == 200
    customers = resp.json()
    assert isinstance(customers, list)
    assert [c["customer_id"] for c in customers] == ["CUST-1001", "CUST-1002", "CUST-1003", "CUST-1004"]
    assert all("notes" not in c and "id" not in c for c in customers)
    assert customers[2]["balance"] == -85.4


def test_get_customer(seeded_client):
    resp = seeded_client.get("/customer/CUST-1001")

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["customer"]["notes"] == "Prefers Spanish-speaking agents"


def test_get_customer_not_found(seeded_client):
    resp = seeded_client.get("/customer/UNKNOWN-ID")

    assert resp.status_code == 404
    assert resp.json()["error"] == "NOT_FOUND"


def test_validate_customer_lowercase_last_name(seeded_client):
    resp = seeded_client.post("/validate-customer", json={"customerId": "CUST-1001", "lastName": "perez"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["customer"]["last_name"] == "Perez"
    assert body["customer"]["notes"] == "Prefers Spanish-speaking agents"


def test_validate_customer_accepts_snake_case(seeded_client):
    resp = seeded_client.post("/validate-customer", json={"customer_id": "CUST-1002", "last_name": "GOMEZ"})

    assert resp.status_code == 200


def test_validate_customer_missing_fields(seeded_client):
    resp = seeded_client.post("/validate-customer", json={"customerId": "", "lastName": "Perez"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "MISSING_FIELDS"


def test_validate_customer_without_body(seeded_client):
    resp = seeded_client.post("/validate-customer")

    assert resp.status_code == 400
    assert resp.json()["error"] == "MISSING_FIELDS"


def test_validate_customer_wrong_type_is_rejected(seeded_client):
    resp = seeded_client.post("/validate-customer", json={"customerId": 1001, "lastName": "Perez"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_INPUT"


def test_validate_customer_same_404_for_unknown_and_wrong_name(seeded_client):
    unknown = seeded_client.post("/validate-customer", json={"customerId": "CUST-9999", "lastName": "Perez"})
    wrong = seeded_client.post("/validate-customer", json={"customerId": "CUST-1001", "lastName": "Gomez"})

    assert unknown.status_code == wrong.status_code == 404
    assert unknown.json() == wrong.json()


def test_adjust_customer(seeded_client):
    resp = seeded_client.post("/customer/CUST-1002/adjust", json={"pointsDelta": -20, "balanceDelta": 10.5})

    assert resp.status_code == 200
    customer = resp.json()["customer"]
    assert customer["points"] == 100
    assert customer["balance"] == 330.5
    assert customer["risk_level"] == "medium"
    assert "notes" not in customer


def test_adjust_customer_optional_fields(seeded_client):
    resp = seeded_client.post(
        "/customer/CUST-1001/adjust",
        json={"riskLevel": "high", "status": None, "delinquent": True},
    )

    customer = resp.json()["customer"]
    assert customer["risk_level"] == "high"
    assert customer["status"] == "active"
    assert customer["delinquent"] is True
    assert customer["points"] == 250


def test_adjust_customer_without_body(seeded_client):
    resp = seeded_client.post("/customer/CUST-1004/adjust")

    assert resp.status_code == 200
    assert resp.json()["customer"]["points"] == 980


def test_adjust_customer_rejects_string_delta(seeded_client):
    resp = seeded_client.post("/customer/CUST-1004/adjust", json={"pointsDelta": "10"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_INPUT"


def test_adjust_customer_not_found(seeded_client):
    resp = seeded_client.post("/customer/UNKNOWN-ID/adjust", json={"pointsDelta": 1})

    assert resp.status_code == 404
    assert resp.json()["error"] == "NOT_FOUND"


def test_storage_failure_maps_to_500(app, client):
    broken = MagicMock()
    broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
    app.dependency_overrides[get_db] = lambda: broken

    resp = client.get("/customers")

    assert resp.status_code == 500
    assert resp.json()["ok"] is False
    assert resp.json()["error"] == "ERROR"


def test_token_unexpected_failure_maps_to_upstream_error(client, http_session):
    http_session.post.side_effect = RuntimeError("boom")

    resp = client.get("/token")

    assert resp.status_code == 500
    assert resp.json()["code"] == "UPSTREAM_ERROR"
    assert "boom" in resp.json()["error"]


@pytest.mark.parametrize("raw_body", ['{"balanceDelta": 1e400}', '{"balanceDelta": NaN}', '{"balanceDelta": -Infinity}'])
def test_adjust_customer_rejects_non_finite_balance(seeded_client, raw_body):
    resp = seeded_client.post(
        "/customer/CUST-1002/adjust",
        content=raw_body,
        headers={"Content-Type": "application/json"},
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_INPUT"
    assert seeded_client.get("/customer/CUST-1002").json()["customer"]["balance"] == 320.0


def test_init_db_storage_failure(app, client):
    broken = MagicMock()
    broken.connection.side_effect = OperationalError("connect", {}, Exception("connection refused"))
    app.dependency_overrides[get_db] = lambda: broken

    resp = client.get("/init-db")

    assert resp.status_code == 500
    assert resp.json()["error"] == "ERROR"


def test_init_db_unexpected_failure(app, client):
    broken = MagicMock()
    broken.connection.side_effect = RuntimeError("driver exploded")
    app.dependency_overrides[get_db] = lambda: broken

    resp = client.get("/init-db")

    assert resp.status_code == 500
    assert resp.json() == {"ok": False, "error": "ERROR", "message": "Erro interno do servidor"}


def test_module_level_app_for_uvicorn():
    import main

    paths = {route.path for route in main.app.routes}
    assert {"/", "/health", "/token", "/init-db", "/customers"} <= paths
