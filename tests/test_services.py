"""Mock providers and the Celery task bodies."""

import uuid
from decimal import Decimal

from kombu.exceptions import OperationalError

from menumagi import tasks
from menumagi.core.config import Settings
from menumagi.services.excel_manager import ExcelManager
from menumagi.services.notifications.base import NotificationResult
from menumagi.services.notifications.mock import MockNotificationService
from menumagi.services.payment.mock import MockPaymentService


def _payload(**overrides) -> dict:
    payload = {
        "id": str(uuid.uuid4()),
        "owner_id": f"owner-{uuid.uuid4().hex[:8]}",
        "invoice_number": "INV/2024/03/00001",
        "restaurant_name": "Spice Garden",
        "owner_phone": "9876543210",
        "owner_email": "owner@spicegarden.in",
        "table_number": 7,
        "customer_name": "Asha",
        "customer_phone": "9123456780",
        "status": "waiting",
        "payment_status": "pending",
        "payment_method": "cash",
        "subtotal": 350.0,
        "cgst": 8.75,
        "sgst": 8.75,
        "igst": 0.0,
        "tax": 17.5,
        "total": 367.5,
        "item_count": 3,
        "items": [{"name": "Paneer Tikka", "quantity": 3, "subtotal": 350.0}],
        "created_at": "2024-03-09T19:30:00",
    }
    payload.update(overrides)
    return payload


# =============================================================================
# PAYMENT
# =============================================================================

async def test_mock_checkout_is_paid_once_confirmed():
    service = MockPaymentService(failure_rate=0, max_latency=0)
    result = await service.create_checkout("order-1", Decimal("367.50"), "Table 7")

    assert result.success
    assert result.session_id.startswith("cs_mock_")
    assert result.checkout_url.endswith(result.session_id)

    status = await service.get_checkout_status(result.session_id)
    assert status.paid
    assert status.payment_reference.startswith("pi_mock_")
    # the outcome is fixed after the first query
    again = await service.get_checkout_status(result.session_id)
    assert again.payment_reference == status.payment_reference


async def test_mock_checkout_declines():
    service = MockPaymentService(failure_rate=1, max_latency=0)
    result = await service.create_checkout("order-1", Decimal("10"), "Table 1")
    status = await service.get_checkout_status(result.session_id)
    assert not status.paid
    assert status.status == "declined"
    assert status.error_message


async def test_mock_checkout_rejects_bad_input():
    service = MockPaymentService(failure_rate=0, max_latency=0)
    assert not (await service.create_checkout("order-1", Decimal("0"), "Table 1")).success
    assert (await service.get_checkout_status("cs_unknown")).status == "unknown"


# =============================================================================
# NOTIFICATIONS
# =============================================================================

async def test_new_order_alert_goes_to_owner():
    service = MockNotificationService(failure_rate=0, max_latency=0)
    result = await service.notify_new_order(_payload())

    assert result.success
    assert [m["channel"] for m in service.sent] == ["whatsapp", "email"]
    assert service.sent[0]["to"] == "9876543210"
    assert "New Order Alert" in service.sent[0]["text"]


async def test_new_order_alert_without_contacts():
    service = MockNotificationService(failure_rate=0, max_latency=0)
    result = await service.notify_new_order(_payload(owner_phone=None, owner_email=None))
    assert not result.success
    assert service.sent == []


async def test_status_update_messages():
    service = MockNotificationService(failure_rate=0, max_latency=0)

    await service.notify_order_status(_payload(status="on-the-way"))
    assert "Order Ready!" in service.sent[-1]["text"]

    await service.notify_order_status(_payload(status="accepted"))
    assert "Order Accepted!" in service.sent[-1]["text"]
    assert service.sent[-1]["to"] == "9123456780"

    result = await service.notify_order_status(_payload(customer_phone=None))
    assert not result.success


class WhatsAppDown(MockNotificationService):
    async def send_whatsapp(self, to_phone, message):
        return NotificationResult(success=False, error_message="Number not on WhatsApp", provider="mock")


async def test_falls_back_to_sms_when_whatsapp_fails():
    service = WhatsAppDown(failure_rate=0, max_latency=0)

    result = await service.notify_order_status(_payload(status="preparing"))
    assert result.success
    assert result.message_id.startswith("sms_mock_")
    assert service.sent[-1]["channel"] == "sms"
    assert service.sent[-1]["to"] == "9123456780"

    await service.notify_new_order(_payload(owner_email=None))
    assert service.sent[-1]["channel"] == "sms"
    assert "New Order Alert" in service.sent[-1]["text"]


async def test_no_sms_when_whatsapp_delivers():
    service = MockNotificationService(failure_rate=0, max_latency=0)
    await service.notify_order_status(_payload(status="accepted"))
    assert [m["channel"] for m in service.sent] == ["whatsapp"]


# =============================================================================
# TASKS
# =============================================================================

def test_enqueue_survives_broker_outage():
    class Unreachable:
        name = "menumagi.tasks.export_completed_order"

        def delay(self, payload):
            raise OperationalError("Connection refused")

    assert tasks.enqueue(Unreachable(), _payload()) is False


def test_enqueue_dispatches(queued):
    payload = _payload()
    assert tasks.enqueue(tasks.send_new_order_alert, payload)
    assert queued == [("send_new_order_alert", payload)]


def test_export_task_writes_ledger():
    payload = _payload(status="completed")
    try:
        result = tasks.export_completed_order.apply(args=[payload]).get()
        assert result["success"]
        assert "processing_time_seconds" in result
        assert [row["order_id"] for row in ExcelManager.get_ledger(payload["owner_id"])] == [payload["id"]]
    finally:
        ExcelManager.clear(payload["owner_id"])


def test_notification_tasks_run():
    alert = tasks.send_new_order_alert.apply(args=[_payload()]).get()
    assert alert["success"]
    assert alert["provider"] == "mock"

    update = tasks.send_order_status_update.apply(args=[_payload(status="preparing")]).get()
    assert update["success"]


def test_health_task():
    assert tasks.health_check.apply().get()["status"] == "healthy"


# =============================================================================
# CONFIG
# =============================================================================

def test_production_config_reports_missing_keys():
    settings = Settings(
        env_mode="PRODUCTION",
        secret_key="change-me-in-production",
        stripe_secret_key=None,
        twilio_account_sid=None,
        sendgrid_api_key=None,
    )
    assert settings.is_production
    assert settings.use_real_services
    missing = settings.validate_production_config()
    assert "STRIPE_SECRET_KEY" in missing
    assert "SECRET_KEY" in missing


def test_development_needs_no_keys():
    settings = Settings(env_mode="development")
    assert settings.validate_production_config() == []
    assert settings.max_upload_bytes == settings.max_upload_mb * 1024 * 1024
