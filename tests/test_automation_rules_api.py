import os
import uuid

# Local SQLite file DB and no background threads during API tests.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:////tmp/fortress_test.db")
os.environ.setdefault("AUTO_CREATE_DB", "true")
os.environ.setdefault("AUTO_SEED_ADMIN_USER", "false")
os.environ.setdefault("ENABLE_NOTIFICATION_WORKER", "false")
os.environ.setdefault("FORTRESS_JWT_SECRET", "test-jwt-secret-strong-value-123456")
os.environ.setdefault("FORTRESS_PASSWORD_HASH_ROUNDS", "1000")

from fastapi.testclient import TestClient

from fortress.main import create_app


def _client() -> TestClient:
    app = create_app()
    return TestClient(app)


def _register_admin(client: TestClient) -> tuple[dict, str]:
    username = f"admin_{uuid.uuid4().hex[:10]}"
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": username, "password": "secret123", "organization_name": f"Org {username}"},
    )
    assert resp.status_code == 201
    body = resp.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]["organization_id"]


def _add_member(client: TestClient, admin_headers: dict, role: str) -> dict:
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": f"user_{uuid.uuid4().hex[:10]}", "password": "secret123", "role": role},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def _rule_payload(**overrides) -> dict:
    payload = {
        "name": "Reorder widgets",
        "description": "Raise a PO when widgets run low",
        "trigger_type": "ON_STOCK_LEVEL_CHANGE",
        "condition_json": {"field": "quantity", "operator": "lt", "value": 5},
        "action_json": {"type": "CREATE_PURCHASE_ORDER", "quantity": 50},
    }
    payload.update(overrides)
    return payload


def test_admin_creates_and_lists_rules(monkeypatch):
    monkeypatch.setenv("FORTRESS_AUTH_DISABLED", "false")
    with _client() as client:
        headers, org_id = _register_admin(client)
        resp = client.post("/api/v1/automation-rules", json=_rule_payload(), headers=headers)
        assert resp.status_code == 201
        rule = resp.json()
        assert rule["organization_id"] == org_id
        assert rule["user_id"]
        assert rule["is_active"] is True
        assert rule["condition_json"] == {"field": "quantity", "operator": "lt", "value": 5}
        assert rule["action_json"] == {"type": "CREATE_PURCHASE_ORDER", "quantity": 50}

        listed = client.get("/api/v1/automation-rules", headers=headers)
        assert listed.status_code == 200
        assert [r["id"] for r in listed.json()] == [rule["id"]]
        assert listed.headers.get("X-Total-Count") == "1"


def test_viewer_can_read_but_not_write(monkeypatch):
    monkeypatch.setenv("FORTRESS_AUTH_DISABLED", "false")
    with _client() as client:
        admin, _ = _register_admin(client)
        viewer = _add_member(client, admin, "VIEWER")
        manager = _add_member(client, admin, "INVENTORY_MANAGER")

        assert client.post("/api/v1/automation-rules", json=_rule_payload(), headers=viewer).status_code == 403
        assert client.post("/api/v1/automation-rules", json=_rule_payload(), headers=manager).status_code == 403
        assert client.get("/api/v1/automation-rules", headers=viewer).status_code == 200


def test_condition_on_order_trigger_rejected(monkeypatch):
    monkeypatch.setenv("FORTRESS_AUTH_DISABLED", "false")
    with _client() as client:
        headers, _ = _register_admin(client)
        resp = client.post(
            "/api/v1/automation-rules",
            json=_rule_payload(trigger_type="ON_ORDER_STATUS_CHANGE"),
            headers=headers,
        )
        assert resp.status_code == 422


def test_unknown_action_rejected(monkeypatch):
    monkeypatch.setenv("FORTRESS_AUTH_DISABLED", "false")
    with _client() as client:
        headers, _ = _register_admin(client)
        resp = client.post(
            "/api/v1/automation-rules",
            json=_rule_payload(action_json={"type": "UPDATE_INVENTORY", "delta": 5}),
            headers=headers,
        )
        assert resp.status_code == 422


def test_patch_revalidates_merged_rule(monkeypatch):
    monkeypatch.setenv("FORTRESS_AUTH_DISABLED", "false")
    with _client() as client:
        headers, _ = _register_admin(client)
        rule_id = client.post("/api/v1/automation-rules", json=_rule_payload(), headers=headers).json()["id"]

        bad = client.patch(
            f"/api/v1/automation-rules/{rule_id}",
            json={"trigger_type": "ON_ORDER_STATUS_CHANGE"},
            headers=headers,
        )
        assert bad.status_code == 422

        ok = client.patch(
            f"/api/v1/automation-rules/{rule_id}",
            json={"is_active": False, "action_json": {"type": "SEND_NOTIFICATION", "message": "Low: {itemName}"}},
            headers=headers,
        )
        assert ok.status_code == 200
        body = ok.json()
        assert body["is_active"] is False
        assert body["trigger_type"] == "ON_STOCK_LEVEL_CHANGE"
        assert body["action_json"] == {"type": "SEND_NOTIFICATION", "message": "Low: {itemName}"}


def test_rules_are_tenant_scoped(monkeypatch):
    monkeypatch.setenv("FORTRESS_AUTH_DISABLED", "false")
    with _client() as client:
        owner, _ = _register_admin(client)
        intruder, _ = _register_admin(client)
        rule_id = client.post("/api/v1/automation-rules", json=_rule_payload(), headers=owner).json()["id"]

        assert client.get(f"/api/v1/automation-rules/{rule_id}", headers=intruder).status_code == 404
        assert client.delete(f"/api/v1/automation-rules/{rule_id}", headers=intruder).status_code == 404
        assert client.get("/api/v1/automation-rules", headers=intruder).json() == []


def test_delete_rule(monkeypatch):
    monkeypatch.setenv("FORTRESS_AUTH_DISABLED", "false")
    with _client() as client:
        headers, _ = _register_admin(client)
        rule_id = client.post("/api/v1/automation-rules", json=_rule_payload(), headers=headers).json()["id"]
        assert client.delete(f"/api/v1/automation-rules/{rule_id}", headers=headers).status_code == 204
        assert client.get(f"/api/v1/automation-rules/{rule_id}", headers=headers).status_code == 404
