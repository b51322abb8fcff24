import time

import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import place_order
from menumagi.services.realtime import get_change_feed


def _token(owner) -> str:
    return owner["headers"]["Authorization"].split(" ", 1)[1]


def test_owner_feed_receives_new_orders(client, owner, menu):
    with client.websocket_connect(f"/ws/owner/orders?token={_token(owner)}&events=INSERT") as ws:
        greeting = ws.receive_json()
        assert greeting == {"type": "subscribed", "table": "orders", "owner_id": owner["id"]}

        order = place_order(client, owner, [(menu["tikka"], 1)])

        change = ws.receive_json()
        assert change["type"] == "change"
        assert change["event"] == "INSERT"
        assert change["record_id"] == order["id"]
        assert change["new"]["total"] == 105.0


def test_tracking_feed_receives_status_updates(client, owner, menu):
    order = place_order(client, owner, [(menu["tikka"], 1)])

    with client.websocket_connect(f"/ws/orders/{order['id']}") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "snapshot"
        assert snapshot["order"]["status"] == "waiting"

        client.patch(
            f"/api/owner/orders/{order['id']}/status",
            json={"status": "accepted"},
            headers=owner["headers"],
        )

        change = ws.receive_json()
        assert change["event"] == "UPDATE"
        assert change["new"]["status"] == "accepted"
        assert change["old"] == {"status": "waiting"}


def test_feed_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/ws/owner/orders?token=forged"):
            pass
    assert excinfo.value.code == 1008


def test_feed_rejects_unknown_event(client, owner):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(f"/ws/owner/orders?token={_token(owner)}&events=TRUNCATE"):
            pass
    assert excinfo.value.code == 1003


def test_feed_rejects_empty_event_list(client, owner):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(f"/ws/owner/orders?token={_token(owner)}&events=,"):
            pass
    assert excinfo.value.code == 1003


def test_tracking_unknown_order(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/ws/orders/does-not-exist"):
            pass
    assert excinfo.value.code == 1008


def test_subscription_released_on_disconnect(client, owner):
    before = get_change_feed().subscriber_count
    with client.websocket_connect(f"/ws/owner/orders?token={_token(owner)}") as ws:
        ws.receive_json()
        assert get_change_feed().subscriber_count == before + 1
    # the server tears the subscription down once it sees the close frame
    for _ in range(50):
        if get_change_feed().subscriber_count == before:
            break
        time.sleep(0.02)
    assert get_change_feed().subscriber_count == before
