"""
Shared fixtures.

Settings are read once at import time, so the environment is pointed at
a throwaway SQLite database and media/data directories before anything
from ``menumagi`` is imported.
"""

import os
import tempfile
import uuid
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="menumagi-tests-"))

os.environ.update({
    "ENV_MODE": "development",
    "DATABASE_URL": f"sqlite+aiosqlite:///{_TMP / 'test.db'}",
    "SECRET_KEY": "test-secret-key",
    "MEDIA_DIRECTORY": str(_TMP / "media"),
    "DATA_DIRECTORY": str(_TMP / "data"),
    "APP_BASE_URL": "http://testserver",
    "MOCK_FAILURE_RATE": "0",
    "MOCK_MAX_LATENCY": "0",
    "TABLE_COUNT": "20",
    "GST_RATE": "5",
})

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from menumagi import tasks  # noqa: E402
from menumagi.main import app  # noqa: E402


@pytest.fixture
def client():
    """Fresh client (and cookie jar) per test; the lifespan creates tables."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def queued(monkeypatch):
    """Capture Celery dispatches instead of talking to a broker."""
    calls: list[tuple[str, dict]] = []
    for task in (
        tasks.send_new_order_alert,
        tasks.send_order_status_update,
        tasks.export_completed_order,
    ):
        short_name = task.name.rsplit(".", 1)[-1]
        monkeypatch.setattr(
            task, "delay", lambda payload, _name=short_name: calls.append((_name, payload))
        )
    return calls


def signup_owner(client: TestClient, **overrides) -> dict:
    """Create an owner with a unique email; returns id, token headers and raw body."""
    payload = {
        "email": f"owner-{uuid.uuid4().hex[:10]}@spicegarden.in",
        "password": "secret123",
        "restaurant_name": "Spice Garden",
        "phone": "9876543210",
    }
    payload.update(overrides)
    response = client.post("/api/auth/signup", json=payload)
    assert response.status_code == 201, response.text
    body = response.json()
    return {
        "id": body["owner"]["id"],
        "email": payload["email"],
        "password": payload["password"],
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
        "body": body,
    }


def add_menu_item(client: TestClient, owner: dict, **fields) -> dict:
    payload = {"name": "Paneer Tikka", "price": 100, "category": "Starters"}
    payload.update(fields)
    response = client.post("/api/owner/menu", json=payload, headers=owner["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def place_order(client: TestClient, owner: dict, lines: list[tuple[dict, int]], table: int = 7, **checkout) -> dict:
    """Scan, fill the cart and check out; returns the created order."""
    response = client.get("/customer/table", params={"restaurant": owner["id"], "table": table})
    assert response.status_code == 200, response.text
    for item, quantity in lines:
        response = client.post("/api/cart/items", json={"menu_item_id": item["id"], "quantity": quantity})
        assert response.status_code == 200, response.text
    response = client.post("/api/checkout", json=checkout)
    assert response.status_code == 201, response.text
    return response.json()["order"]


@pytest.fixture
def owner(client):
    return signup_owner(client)


@pytest.fixture
def menu(client, owner):
    """Two items: ₹100 and ₹150."""
    return {
        "tikka": add_menu_item(client, owner, name="Paneer Tikka", price=100, category="Starters"),
        "dal": add_menu_item(client, owner, name="Dal Makhani", price=150, category="Main Course"),
    }
