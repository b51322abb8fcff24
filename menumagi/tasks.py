"""
Celery Tasks
Background work triggered by order events: owner alerts, customer
status updates and the sales-ledger export of completed orders.

Task arguments are JSON payloads built by ``order_payload`` so workers
never touch the request's database session.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any

from kombu.exceptions import OperationalError

from menumagi.celery_worker import celery_app
from menumagi.services.excel_manager import ExcelManager
from menumagi.services.notifications import get_notification_service

logger = logging.getLogger(__name__)


def order_payload(order, owner) -> dict[str, Any]:
    """JSON-serializable snapshot of an order for background tasks."""
    return {
        "id": order.id,
        "owner_id": order.owner_id,
        "invoice_number": order.invoice_number,
        "restaurant_name": owner.restaurant_name,
        "owner_phone": owner.phone,
        "owner_email": owner.email,
        "table_number": order.table_number,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "status": order.status.value,
        "payment_status": order.payment_status.value,
        "payment_method": order.payment_method,
        "subtotal": float(order.subtotal),
        "cgst": float(order.cgst),
        "sgst": float(order.sgst),
        "igst": float(order.igst),
        "tax": float(order.tax),
        "total": float(order.total),
        "item_count": sum(item.quantity for item in order.items),
        "items": [
            {"name": item.name, "quantity": item.quantity, "subtotal": float(item.subtotal)}
            for item in order.items
        ],
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


def enqueue(task, payload: dict[str, Any]) -> bool:
    """
    Queue a task without failing the request when the broker is down.

    Returns False if the broker refused the message.
    """
    try:
        task.delay(payload)
        return True
    except OperationalError as e:
        logger.error(f"Could not queue {task.name} for order {payload.get('id')}: {e}")
        return False


@celery_app.task(bind=True)
def send_new_order_alert(self, order_data: dict) -> dict:
    """Notify the owner that a table placed an order."""
    result = asyncio.run(get_notification_service().notify_new_order(order_data))
    if result.success:
        logger.info(f"Task {self.request.id}: new-order alert sent for {order_data['id']}")
    else:
        logger.warning(
            f"Task {self.request.id}: new-order alert failed for {order_data['id']} - "
            f"{result.error_message}"
        )
    return {"success": result.success, "message_id": result.message_id, "provider": result.provider}


@celery_app.task(bind=True)
def send_order_status_update(self, order_data: dict) -> dict:
    """Notify the customer that their order changed status."""
    result = asyncio.run(get_notification_service().notify_order_status(order_data))
    if not result.success:
        logger.info(
            f"Task {self.request.id}: status update for {order_data['id']} not sent - "
            f"{result.error_message}"
        )
    return {"success": result.success, "message_id": result.message_id, "provider": result.provider}


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(OSError,),
    retry_backoff=True,
)
def export_completed_order(self, order_data: dict) -> dict:
    """
    Append a completed order to the restaurant's sales ledger.

    A lock timeout is retried like an I/O error.
    """
    task_id = self.request.id
    logger.info(f"Task {task_id}: exporting order {order_data.get('invoice_number')}")
    start_time = time.time()

    result = ExcelManager.export_order(order_data)

    elapsed = round(time.time() - start_time, 3)
    result["task_id"] = task_id
    result["processing_time_seconds"] = elapsed

    if not result["success"]:
        logger.warning(f"Task {task_id}: export failed after {elapsed}s - {result['message']}")
        raise self.retry(countdown=5 * (self.request.retries + 1))

    logger.info(f"Task {task_id}: {result['message']} in {elapsed}s")
    return result


@celery_app.task
def health_check() -> dict:
    """Simple health check task to verify Celery is working."""
    return {
        "status": "healthy",
        "worker": "celery",
        "timestamp": datetime.now().isoformat(),
    }
