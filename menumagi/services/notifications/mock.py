"""
Mock Notification Service

Simulates WhatsApp, SMS and email sending for development.
No actual messages are sent - just logged.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import random
import uuid
from typing import Optional

from menumagi.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """Mock notification service for development."""

    def __init__(self, failure_rate: float = 0.05, max_latency: float = 0.3):
        self.failure_rate = failure_rate
        self.max_latency = max_latency
        self.sent: list[dict] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        """Simulate network latency."""
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(0, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def _deliver(self, channel: str, to: str, text: str) -> NotificationResult:
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock {channel} failed (simulated) to {to}")
            return NotificationResult(
                success=False,
                error_message=f"Simulated {channel} failure",
                provider="mock",
            )

        message_id = f"{channel}_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append({"channel": channel, "to": to, "text": text, "id": message_id})
        logger.info(f"Mock {channel} sent to {to}: {text[:50]!r} (ID: {message_id})")

        return NotificationResult(success=True, message_id=message_id, provider="mock")

    async def send_whatsapp(self, to_phone: str, message: str) -> NotificationResult:
        return await self._deliver("whatsapp", to_phone, message)

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        return await self._deliver("sms", to_phone, message)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        return await self._deliver("email", to_email, subject)

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
