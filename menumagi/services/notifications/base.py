"""
Notification Service Abstract Base Class

Defines the interface for WhatsApp, SMS and email delivery, and builds
the two restaurant notifications on top of it: the new-order alert to
the owner and the status update to the customer.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from menumagi.services.order_status import OrderStatus, status_display
from menumagi.services.whatsapp import (
    new_order_alert_message,
    order_ready_message,
    order_status_message,
)

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_whatsapp(self, to_phone: str, message: str) -> NotificationResult:
        """Send a WhatsApp message."""
        pass

    @abstractmethod
    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        """Send an SMS message."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    async def send_to_phone(self, to_phone: str, message: str) -> NotificationResult:
        """WhatsApp first; plain SMS when WhatsApp delivery fails."""
        result = await self.send_whatsapp(to_phone, message)
        if result.success:
            return result

        logger.warning(f"WhatsApp to {to_phone} failed ({result.error_message}), falling back to SMS")
        return await self.send_sms(to_phone, message)

    async def notify_new_order(self, order: dict[str, Any]) -> NotificationResult:
        """
        Alert the owner that a table placed an order.

        ``order`` is the task payload built by ``menumagi.tasks.order_payload``.
        WhatsApp goes to the owner's phone and email to the owner's login.
        """
        message = new_order_alert_message(
            order_id=order["id"],
            table_number=order["table_number"],
            total=order["total"],
            item_count=order["item_count"],
            customer_name=order.get("customer_name"),
        )

        results = []
        if order.get("owner_phone"):
            results.append(await self.send_to_phone(order["owner_phone"], message))
        if order.get("owner_email"):
            results.append(await self.send_email(
                to_email=order["owner_email"],
                subject=f"New order - Table {order['table_number']} ({order['invoice_number']})",
                body_html=f"<pre>{message}</pre>",
                body_text=message,
            ))

        if not results:
            return NotificationResult(
                success=False,
                error_message="Owner has no contact details",
                provider=self.provider_name,
            )
        first = results[0]
        return NotificationResult(
            success=any(r.success for r in results),
            message_id=first.message_id,
            error_message=None if any(r.success for r in results) else first.error_message,
            provider=self.provider_name,
        )

    async def notify_order_status(self, order: dict[str, Any]) -> NotificationResult:
        """Tell the customer their order moved to a new status."""
        phone = order.get("customer_phone")
        if not phone:
            return NotificationResult(
                success=False,
                error_message="Customer left no phone number",
                provider=self.provider_name,
            )

        status = OrderStatus(order["status"])
        if status == OrderStatus.ON_THE_WAY:
            message = order_ready_message(order["id"], order["table_number"])
        else:
            display = status_display(status)
            message = order_status_message(
                order["id"], order["table_number"], display.title, display.message
            )
        return await self.send_to_phone(phone, message)
