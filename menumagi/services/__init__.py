"""
                        Services Module

Business logic behind the HTTP routes. External providers follow the
hybrid pattern: Mock (development) and Real (production) implementations
behind a cached factory.

Services:
    - gst, order_status, cart: pure ordering rules
    - payment: Stripe Checkout
    - notifications: Twilio WhatsApp/SMS and SendGrid email
    - images, qr, whatsapp, i18n: customer-facing helpers
    - realtime: change feed for WebSocket subscribers
    - excel_manager: locked per-restaurant sales ledgers
"""

from menumagi.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
