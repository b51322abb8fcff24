"""
Real Notification Service

Production implementation using:
- Twilio for WhatsApp and SMS
- SendGrid for email

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
from typing import Optional

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from menumagi.core.config import get_settings
from menumagi.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from menumagi.services.whatsapp import format_phone_for_whatsapp

logger = logging.getLogger(__name__)


class RealNotificationService(BaseNotificationService):
    """Production notification service using Twilio and SendGrid."""

    def __init__(self):
        settings = get_settings()

        if settings.twilio_account_sid and settings.twilio_auth_token:
            self.twilio_client = TwilioClient(
                settings.twilio_account_sid,
                settings.twilio_auth_token,
            )
            self.twilio_from_number = settings.twilio_whatsapp_number
        else:
            self.twilio_client = None
            logger.warning("Twilio credentials not configured")

        if settings.sendgrid_api_key:
            self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
            self.sendgrid_from_email = settings.sendgrid_from_email
        else:
            self.sendgrid_client = None
            logger.warning("SendGrid credentials not configured")

        logger.info("RealNotificationService initialized")

    @property
    def provider_name(self) -> str:
        return "real"

    async def _send_twilio(self, to: str, from_: str, body: str) -> NotificationResult:
        if not self.twilio_client:
            return NotificationResult(
                success=False,
                error_message="Twilio not configured",
                provider="twilio",
            )

        try:
            # The Twilio client is blocking
            result = await asyncio.to_thread(
                self.twilio_client.messages.create,
                body=body,
                from_=from_,
                to=to,
            )
            logger.info(f"Twilio message sent to {to}: {result.sid}")
            return NotificationResult(success=True, message_id=result.sid, provider="twilio")

        except TwilioException as e:
            logger.error(f"Twilio error: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="twilio")

    async def send_whatsapp(self, to_phone: str, message: str) -> NotificationResult:
        """Send a WhatsApp message through the Twilio sandbox/business sender."""
        return await self._send_twilio(
            to=f"whatsapp:+{format_phone_for_whatsapp(to_phone)}",
            from_=f"whatsapp:{self.twilio_from_number}" if self.twilio_client else "",
            body=message,
        )

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        return await self._send_twilio(
            to=f"+{format_phone_for_whatsapp(to_phone)}",
            from_=self.twilio_from_number if self.twilio_client else "",
            body=message,
        )

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send email via SendGrid."""
        if not self.sendgrid_client:
            return NotificationResult(
                success=False,
                error_message="SendGrid not configured",
                provider="sendgrid",
            )

        try:
            message = Mail(
                from_email=self.sendgrid_from_email,
                to_emails=to_email,
                subject=subject,
                html_content=body_html,
                plain_text_content=body_text,
            )
            response = await asyncio.to_thread(self.sendgrid_client.send, message)

            logger.info(f"Email sent to {to_email}: {response.status_code}")

            return NotificationResult(
                success=response.status_code in [200, 201, 202],
                message_id=response.headers.get("X-Message-Id"),
                provider="sendgrid",
            )

        except HTTPError as e:
            logger.error(f"SendGrid error: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="sendgrid")

    async def health_check(self) -> bool:
        """Configured means healthy; neither provider offers a cheap ping."""
        return self.twilio_client is not None or self.sendgrid_client is not None
