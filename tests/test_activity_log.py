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
from fortress.services.activity_log import sanitize_html


def _client() -> TestClient:
    app = create_app()
    return TestClient(app)


def _register_admin(client: TestClient) -> dict:
    username = f"admin_{uuid.uuid4().hex[:10]}"
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": username, "password": "secret123", "organization_name": f"Org {username}"},
    )
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_sanitize_html_strips_scripts_handlers_and_data_urls():
    raw = (
        'Picked <b onclick="steal()">5</b><script>alert(1)</script>'
        "<img src='data:image/png;base64,AAAA'>"
    )
    assert sanitize_html(raw) == 'Picked <b >5</b><img src="">'


def test_sanitize_html_strips_unquoted_attributes():
    assert sanitize_html("<img src=x onerror=alert(1)>") == "<img src=x >"
    assert sanitize_html("<a href=data:text/html,abc>open</a>") == '<a href="">open</a>'


def test_sanitize_html_keeps_plain_text():
    assert sanitize_html("Moved 4 units to Aisle 3") == "Moved 4 units to Aisle 3"


def test_log_and_list_activity(monkeypatch):
    monkeypatch.setenv("FORTRESS_AUTH_DISABLED", "false")
    with _client() as client:
        headers = _register_admin(client)
        resp = client.post(
            "/api/v1/activity-logs",
            json={
                "activity_type": "Picking",
                "description": "Picked 5<script>x()</script>",
                "details": {"note": "<script>bad()</script>ok", "lines": ["<script>y</script>a"], "count": 5},
            },
            headers=headers,
        )
        assert resp.status_code == 201
        entry = resp.json()
        assert entry["description"] == "Picked 5"
        assert entry["details"] == {"note": "ok", "lines": ["a"], "count": 5}
        assert entry["user_id"]

        client.post("/api/v1/activity-logs", json={"activity_type": "Receiving", "description": "Received 10"}, headers=headers)

        all_entries = client.get("/api/v1/activity-logs", headers=headers)
        assert all_entries.status_code == 200
        assert all_entries.headers.get("X-Total-Count") == "2"
        assert {e["activity_type"] for e in all_entries.json()} == {"Picking", "Receiving"}

        picking = client.get("/api/v1/activity-logs", params={"activity_type": "Picking"}, headers=headers)
        assert [e["id"] for e in picking.json()] == [entry["id"]]


def test_activity_is_tenant_scoped(monkeypatch):
    monkeypatch.setenv("FORTRESS_AUTH_DISABLED", "false")
    with _client() as client:
        owner = _register_admin(client)
        other = _register_admin(client)
        client.post("/api/v1/activity-logs", json={"activity_type": "Picking", "description": "mine"}, headers=owner)
        assert client.get("/api/v1/activity-logs", headers=other).json() == []


def test_activity_requires_description(monkeypatch):
    monkeypatch.setenv("FORTRESS_AUTH_DISABLED", "false")
    with _client() as client:
        headers = _register_admin(client)
        resp = client.post("/api/v1/activity-logs", json={"activity_type": "Picking"}, headers=headers)
        assert resp.status_code == 422
