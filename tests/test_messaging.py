from urllib.parse import parse_qs, urlparse

from menumagi.services.qr import render_qr_png, shop_url
from menumagi.services.whatsapp import (
    format_phone_for_whatsapp,
    get_whatsapp_url,
    is_valid_indian_phone,
    new_order_alert_message,
    order_confirmation_message,
    qr_share_message,
)


def test_phone_formatting():
    assert format_phone_for_whatsapp("98765 43210") == "919876543210"
    assert format_phone_for_whatsapp("+91-98765-43210") == "919876543210"
    assert format_phone_for_whatsapp("9123456789") == "919123456789"


def test_phone_validation():
    assert is_valid_indian_phone("9876543210")
    assert is_valid_indian_phone("+91 98765 43210")
    assert not is_valid_indian_phone("5876543210")
    assert not is_valid_indian_phone("12345")
    assert not is_valid_indian_phone(None)


def test_whatsapp_url_encodes_message():
    url = get_whatsapp_url("Hi & bye", phone="9876543210")
    assert url.startswith("https://wa.me/919876543210?text=")
    assert parse_qs(urlparse(url).query)["text"] == ["Hi & bye"]
    assert get_whatsapp_url("hello").startswith("https://wa.me/?text=")


def test_confirmation_message():
    text = order_confirmation_message(
        order_reference="INV/2024/03/00001",
        restaurant_name="Spice Garden",
        table_number=7,
        total=367.5,
        items=[{"name": "Paneer Tikka", "quantity": 2, "price": 200}],
    )
    assert "🪑 Table: 7" in text
    assert "• Paneer Tikka x2 - ₹200.00" in text
    assert "*Total: ₹367.50*" in text


def test_alert_defaults_to_guest():
    text = new_order_alert_message("abcdef123456", 3, 1050, 2)
    assert "Order: abcdef12" in text
    assert "Guest" in text
    assert "₹1,050.00" in text


def test_shop_url_and_share_text():
    url = shop_url("https://menu.example/", "owner-1", 4)
    assert url == "https://menu.example/customer/table?restaurant=owner-1&table=4"
    assert shop_url("https://menu.example", "owner-1").endswith("?restaurant=owner-1")
    assert url in qr_share_message("Spice Garden", url)


def test_qr_png():
    png = render_qr_png("https://menu.example/customer/table?restaurant=owner-1")
    assert png.startswith(b"\x89PNG\r\n\x1a\n")
