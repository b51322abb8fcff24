from io import BytesIO

import pandas as pd
import pytest
from PIL import Image
from sqlalchemy import inspect

from conftest import add_menu_item, place_order, signup_owner


def _png_bytes(size=(1600, 1200)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, (240, 180, 20)).save(buffer, format="PNG")
    return buffer.getvalue()


def _advance(client, owner, order_id, status):
    return client.patch(
        f"/api/owner/orders/{order_id}/status",
        json={"status": status},
        headers=owner["headers"],
    )


# =============================================================================
# AUTH
# =============================================================================

def test_signup_and_login(client):
    owner = signup_owner(client, email="Chef@SpiceGarden.in", phone="+91 98765 43210")
    assert owner["body"]["token_type"] == "bearer"
    assert owner["body"]["owner"]["email"] == "chef@spicegarden.in"
    assert owner["body"]["owner"]["phone"] == "9876543210"

    login = client.post("/api/auth/login", json={"email": "chef@spicegarden.in", "password": "secret123"})
    assert login.status_code == 200
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {login.json()['access_token']}"})
    assert me.json()["id"] == owner["id"]


def test_signup_defaults_and_duplicates(client):
    owner = signup_owner(client, restaurant_name=None, phone=None)
    assert owner["body"]["owner"]["restaurant_name"] == "My Restaurant"

    response = client.post("/api/auth/signup", json={
        "email": owner["email"].upper(),
        "password": "another1",
    })
    assert response.status_code == 409


def test_bad_credentials(client, owner):
    response = client.post("/api/auth/login", json={"email": owner["email"], "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"

    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer forged.token"}).status_code == 401
    assert client.get("/api/owner/orders").status_code == 401


def test_update_profile(client, owner):
    response = client.patch(
        "/api/auth/me",
        json={"restaurant_name": "Spice Garden Express", "address": "MG Road, Pune"},
        headers=owner["headers"],
    )
    assert response.status_code == 200
    assert response.json()["restaurant_name"] == "Spice Garden Express"
    assert response.json()["address"] == "MG Road, Pune"
    assert response.json()["phone"] == "9876543210"


# =============================================================================
# MENU
# =============================================================================

def test_menu_crud(client, owner):
    item = add_menu_item(client, owner, name="Masala Dosa", price="89.50", category="South Indian")
    assert item["price"] == 89.5
    assert item["is_available"] is True

    updated = client.put(
        f"/api/owner/menu/{item['id']}",
        json={"price": 99, "is_available": False, "name": None},
        headers=owner["headers"],
    )
    assert updated.status_code == 200
    assert updated.json()["price"] == 99.0
    assert updated.json()["is_available"] is False
    assert updated.json()["name"] == "Masala Dosa"

    listing = client.get("/api/owner/menu", headers=owner["headers"]).json()
    assert [i["name"] for i in listing] == ["Masala Dosa"]

    assert client.delete(f"/api/owner/menu/{item['id']}", headers=owner["headers"]).status_code == 204
    assert client.get("/api/owner/menu", headers=owner["headers"]).json() == []


def test_menu_validation(client, owner):
    response = client.post("/api/owner/menu", json={"name": "Free Lunch", "price": 0}, headers=owner["headers"])
    assert response.status_code == 422


def test_menu_is_private_to_owner(client, owner, menu):
    intruder = signup_owner(client, restaurant_name="Intruder")
    item_id = menu["tikka"]["id"]

    assert client.put(f"/api/owner/menu/{item_id}", json={"price": 1}, headers=intruder["headers"]).status_code == 404
    assert client.delete(f"/api/owner/menu/{item_id}", headers=intruder["headers"]).status_code == 404
    assert client.get("/api/owner/menu", headers=intruder["headers"]).json() == []


def test_image_upload_replaces_previous(client, owner, menu):
    url = f"/api/owner/menu/{menu['tikka']['id']}/image"

    first = client.post(url, files={"file": ("dish.png", _png_bytes(), "image/png")}, headers=owner["headers"])
    assert first.status_code == 200
    first_url = first.json()["image_url"]
    assert f"/media/menu-images/{owner['id']}/" in first_url

    served = client.get(first_url)
    assert served.status_code == 200
    assert Image.open(BytesIO(served.content)).size == (800, 600)

    second = client.post(url, files={"file": ("dish.png", _png_bytes((400, 300)), "image/png")}, headers=owner["headers"])
    assert second.json()["image_url"] != first_url
    assert client.get(first_url).status_code == 404


def _upload(client, owner, item) -> str:
    response = client.post(
        f"/api/owner/menu/{item['id']}/image",
        files={"file": ("dish.png", _png_bytes((400, 300)), "image/png")},
        headers=owner["headers"],
    )
    assert response.status_code == 200
    return response.json()["image_url"]


def test_cannot_claim_another_restaurants_image(client, owner, menu):
    image_url = _upload(client, owner, menu["tikka"])

    intruder = signup_owner(client, restaurant_name="Intruder")
    theirs = add_menu_item(client, intruder, name="Copycat Tikka", price=90)
    claimed = client.put(
        f"/api/owner/menu/{theirs['id']}",
        json={"image_url": image_url},
        headers=intruder["headers"],
    )
    assert claimed.status_code == 400

    assert client.delete(f"/api/owner/menu/{theirs['id']}", headers=intruder["headers"]).status_code == 204
    assert client.get(image_url).status_code == 200


def test_shared_image_survives_until_last_item_goes(client, owner, menu):
    image_url = _upload(client, owner, menu["tikka"])
    client.put(f"/api/owner/menu/{menu['dal']['id']}", json={"image_url": image_url}, headers=owner["headers"])

    client.delete(f"/api/owner/menu/{menu['tikka']['id']}", headers=owner["headers"])
    assert client.get(image_url).status_code == 200

    client.delete(f"/api/owner/menu/{menu['dal']['id']}", headers=owner["headers"])
    assert client.get(image_url).status_code == 404


def test_menu_delete_is_published_after_commit(client, owner, menu, monkeypatch):
    from menumagi.routers import owner as owner_routes

    published = []
    monkeypatch.setattr(
        owner_routes,
        "publish_menu_change",
        lambda event, item, old=None: published.append((event.value, inspect(item).was_deleted)),
    )

    assert client.delete(f"/api/owner/menu/{menu['tikka']['id']}", headers=owner["headers"]).status_code == 204
    assert published == [("DELETE", True)]


def test_image_upload_rejections(client, owner, menu):
    url = f"/api/owner/menu/{menu['tikka']['id']}/image"
    not_image = client.post(url, files={"file": ("menu.pdf", b"%PDF-1.4", "application/pdf")}, headers=owner["headers"])
    assert not_image.status_code == 415

    garbage = client.post(url, files={"file": ("dish.png", b"garbage", "image/png")}, headers=owner["headers"])
    assert garbage.status_code == 415


# =============================================================================
# ORDER BOARD
# =============================================================================

def test_board_lists_orders_with_actions(client, owner, menu):
    order = place_order(client, owner, [(menu["tikka"], 2)], table=5)

    board = client.get("/api/owner/orders", headers=owner["headers"]).json()
    assert board["total"] == 1
    assert board["counts"]["waiting"] == 1
    assert set(board["counts"]) == {"waiting", "accepted", "preparing", "on-the-way", "completed", "cancelled"}

    listed = board["orders"][0]
    assert listed["id"] == order["id"]
    assert listed["action"] == {"label": "Accept Order", "next_status": "accepted", "toast": "Order accepted!"}

    assert client.get("/api/owner/orders", params={"status": "completed"}, headers=owner["headers"]).json()["total"] == 0
    assert client.get("/api/owner/orders", params={"active": True}, headers=owner["headers"]).json()["total"] == 1


def test_full_status_flow(client, owner, menu, queued):
    order = place_order(client, owner, [(menu["tikka"], 1)], customer_phone="9123456780")
    queued.clear()

    toasts = []
    for status in ("accepted", "preparing", "on-the-way", "completed"):
        response = _advance(client, owner, order["id"], status)
        assert response.status_code == 200, response.text
        assert response.json()["order"]["status"] == status
        toasts.append(response.json()["toast"])

    assert toasts == ["Order accepted!", "Now preparing...", "Order on the way!", "Order completed!"]

    final = response.json()["order"]
    assert final["completed_at"] is not None
    assert final["action"] is None

    names = [name for name, _ in queued]
    assert names.count("send_order_status_update") == 4
    assert names[-1] == "export_completed_order"
    assert queued[-1][1]["status"] == "completed"
    assert queued[-1][1]["total"] == 105.0

    # completed orders are closed
    assert client.post(f"/api/owner/orders/{order['id']}/mark-paid", headers=owner["headers"]).status_code == 409


def test_invalid_transitions(client, owner, menu):
    order = place_order(client, owner, [(menu["tikka"], 1)])

    skipped = _advance(client, owner, order["id"], "preparing")
    assert skipped.status_code == 409
    assert "waiting" in skipped.json()["detail"]

    assert _advance(client, owner, order["id"], "bogus").status_code == 422

    _advance(client, owner, order["id"], "accepted")
    assert _advance(client, owner, order["id"], "cancelled").status_code == 409


def test_cancel(client, owner, menu, queued):
    order = place_order(client, owner, [(menu["tikka"], 1)])
    response = _advance(client, owner, order["id"], "cancelled")
    assert response.status_code == 200
    assert response.json()["toast"] == "Order cancelled"
    assert "export_completed_order" not in [name for name, _ in queued]

    paid = client.post(f"/api/owner/orders/{order['id']}/mark-paid", headers=owner["headers"])
    assert paid.status_code == 409
    assert client.post(f"/api/orders/{order['id']}/payment-link").status_code == 409


def test_mark_paid(client, owner, menu):
    order = place_order(client, owner, [(menu["tikka"], 1)])
    response = client.post(f"/api/owner/orders/{order['id']}/mark-paid", headers=owner["headers"])
    assert response.status_code == 200
    assert response.json()["payment_status"] == "paid"
    assert response.json()["payment_method"] == "cash"

    tracking = client.get(f"/api/orders/{order['id']}").json()
    assert tracking["payment_display"]["title"] == "Paid"


def test_orders_are_private_to_owner(client, owner, menu):
    order = place_order(client, owner, [(menu["tikka"], 1)])
    intruder = signup_owner(client, restaurant_name="Intruder")

    assert _advance(client, intruder, order["id"], "accepted").status_code == 404
    assert client.post(f"/api/owner/orders/{order['id']}/mark-paid", headers=intruder["headers"]).status_code == 404
    assert client.get("/api/owner/orders", headers=intruder["headers"]).json()["total"] == 0


# =============================================================================
# QR CODE
# =============================================================================

def test_qr_png(client, owner):
    response = client.get("/api/owner/qr", params={"table": 3}, headers=owner["headers"])
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert 'filename="qr-table-3.png"' in response.headers["content-disposition"]
    assert response.content.startswith(b"\x89PNG")


def test_qr_share(client, owner):
    body = client.get("/api/owner/qr/share", headers=owner["headers"]).json()
    assert body["url"] == f"http://testserver/customer/table?restaurant={owner['id']}"
    assert body["url"] in body["message"]
    assert body["whatsapp_url"].startswith("https://wa.me/?text=")


# =============================================================================
# STATISTICS & REPORTS
# =============================================================================

def _complete(client, owner, order_id):
    for status in ("accepted", "preparing", "on-the-way", "completed"):
        assert _advance(client, owner, order_id, status).status_code == 200


def test_dashboard_stats(client, owner, menu):
    done = place_order(client, owner, [(menu["tikka"], 2), (menu["dal"], 1)])
    place_order(client, owner, [(menu["dal"], 1)])
    _complete(client, owner, done["id"])

    stats = client.get("/api/owner/stats", headers=owner["headers"]).json()
    assert stats == {
        "restaurant_name": "Spice Garden",
        "menu_item_count": 2,
        "category_count": 2,
        "active_order_count": 1,
        "today_order_count": 1,
        "today_revenue": 367.5,
    }


def test_daily_stats(client, owner, menu):
    for _ in range(2):
        order = place_order(client, owner, [(menu["dal"], 2)])
        _complete(client, owner, order["id"])

    days = client.get("/api/owner/stats/daily", params={"days": 7}, headers=owner["headers"]).json()["days"]
    assert len(days) == 1
    assert days[0]["order_count"] == 2
    assert days[0]["revenue"] == pytest.approx(630.0)


def test_sales_report_download(client, owner, menu):
    order = place_order(client, owner, [(menu["tikka"], 2), (menu["dal"], 1)], customer_name="Asha")
    _complete(client, owner, order["id"])
    place_order(client, owner, [(menu["tikka"], 1)])

    response = client.get("/api/owner/reports/sales.xlsx", headers=owner["headers"])
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "attachment" in response.headers["content-disposition"]

    sheets = pd.read_excel(BytesIO(response.content), sheet_name=None, engine="openpyxl")
    orders = sheets["Orders"]
    assert len(orders) == 1
    assert orders.loc[0, "invoice_number"] == order["invoice_number"]
    assert orders.loc[0, "items"] == "2x Paneer Tikka, 1x Dal Makhani"
    assert orders.loc[0, "total"] == pytest.approx(367.5)
    assert sheets["Daily"].loc[0, "orders"] == 1
