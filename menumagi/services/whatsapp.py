"""
WhatsApp Messaging Helpers

Builds wa.me deep links and the preformatted messages shared with
customers and owners. Phone numbers are normalized to Indian format
(91 prefix, digits only).
"""

import re
from typing import Iterable, Mapping, Optional
from urllib.parse import quote

from menumagi.services.gst import format_indian_currency

WHATSAPP_BASE_URL = "https://wa.me"

_NON_DIGITS = re.compile(r"\D")


def format_phone_for_whatsapp(phone: str) -> str:
    """Strip formatting and add the 91 country code if missing."""
    cleaned = _NON_DIGITS.sub("", phone)
    # A bare mobile number may itself start with 91
    if len(cleaned) == 10 or not cleaned.startswith("91"):
        cleaned = "91" + cleaned
    return cleaned


def is_valid_indian_phone(phone: str) -> bool:
    """10-digit mobile starting 6-9, optionally prefixed with 91."""
    cleaned = _NON_DIGITS.sub("", phone or "")
    if len(cleaned) == 10:
        return bool(re.fullmatch(r"[6-9]\d{9}", cleaned))
    if len(cleaned) == 12:
        return bool(re.fullmatch(r"91[6-9]\d{9}", cleaned))
    return False


def get_whatsapp_url(message: str, phone: Optional[str] = None) -> str:
    """
    Deep link that opens WhatsApp with ``message`` prefilled.

    Without a phone number the link opens the contact picker.
    """
    text = quote(message, safe="")
    if phone:
        return f"{WHATSAPP_BASE_URL}/{format_phone_for_whatsapp(phone)}?text={text}"
    return f"{WHATSAPP_BASE_URL}/?text={text}"


def _rupees(amount) -> str:
    return f"₹{format_indian_currency(amount)}"


def order_confirmation_message(
    order_reference: str,
    restaurant_name: str,
    table_number: int,
    total,
    items: Iterable[Mapping],
    estimated_minutes: str = "15-20",
) -> str:
    items_list = "\n".join(
        f"• {item['name']} x{item['quantity']} - {_rupees(item['price'])}"
        for item in items
    )
    return "\n".join([
        "🍽️ *Order Confirmed!*",
        "",
        f"📍 Restaurant: {restaurant_name}",
        f"🪑 Table: {table_number}",
        f"🆔 Order ID: {order_reference}",
        "",
        "📋 *Items:*",
        items_list,
        "",
        f"💰 *Total: {_rupees(total)}*",
        "",
        "✅ Your order is being prepared.",
        f"⏱️ Estimated time: {estimated_minutes} minutes",
        "",
        "Thank you for your order! 🙏",
    ])


def new_order_alert_message(
    order_id: str,
    table_number: int,
    total,
    item_count: int,
    customer_name: Optional[str] = None,
) -> str:
    return "\n".join([
        "🔔 *New Order Alert!*",
        "",
        f"🆔 Order: {order_id[:8]}",
        f"🪑 Table: {table_number}",
        f"👤 Customer: {customer_name or 'Guest'}",
        f"📦 Items: {item_count}",
        f"💰 Amount: {_rupees(total)}",
        "",
        "⚡ Check your dashboard for details.",
    ])


def order_ready_message(order_id: str, table_number: int) -> str:
    return "\n".join([
        "✅ *Order Ready!*",
        "",
        f"🆔 Order: {order_id[:8]}",
        f"🪑 Table: {table_number}",
        "",
        "Your order is ready for pickup! 🎉",
    ])


def order_status_message(order_id: str, table_number: int, title: str, message: str) -> str:
    return "\n".join([
        f"*{title}*",
        "",
        f"🆔 Order: {order_id[:8]}",
        f"🪑 Table: {table_number}",
        "",
        message,
    ])


def qr_share_message(restaurant_name: str, qr_url: str) -> str:
    return "\n".join([
        f"🍽️ *{restaurant_name}*",
        "",
        "📱 Scan QR code to view menu and order!",
        f"🔗 {qr_url}",
        "",
        "✨ No app needed - Order directly from your phone!",
        "🚀 Fast, Easy, Contactless",
    ])
