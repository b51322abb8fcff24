"""
Stripe Payment Service Implementation

Production implementation using Stripe Checkout in INR.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import stripe

from menumagi.core.config import get_settings
from menumagi.services.payment.base import (
    BasePaymentService,
    CheckoutResult,
    CheckoutStatus,
)

logger = logging.getLogger(__name__)


class StripePaymentService(BasePaymentService):
    """
    Production Stripe payment service implementation.

    The Stripe SDK is synchronous; calls run in a worker thread so the
    event loop keeps serving other tables.
    """

    def __init__(self):
        """
        Initialize Stripe with API key from settings.

        Raises:
            ValueError: If STRIPE_SECRET_KEY is not configured
        """
        settings = get_settings()

        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        stripe.api_key = settings.stripe_secret_key
        self._currency = settings.currency
        self._base_url = settings.app_base_url.rstrip("/")

        logger.info("StripePaymentService initialized")

    @property
    def provider_name(self) -> str:
        return "stripe"

    def _to_paise(self, amount: Decimal) -> int:
        """Stripe expects the smallest currency unit."""
        return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    async def create_checkout(
        self,
        order_id: str,
        amount: Decimal,
        description: str,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> CheckoutResult:
        start_time = datetime.now()
        logger.info(f"Stripe: Creating checkout for order {order_id} (₹{amount})")

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                mode="payment",
                line_items=[{
                    "price_data": {
                        "currency": self._currency,
                        "product_data": {"name": description[:250]},
                        "unit_amount": self._to_paise(amount),
                    },
                    "quantity": 1,
                }],
                success_url=success_url or f"{self._base_url}/?order={order_id}&paid=1",
                cancel_url=cancel_url or f"{self._base_url}/?order={order_id}",
                metadata={"order_id": order_id},
                idempotency_key=f"checkout-{order_id}-{self._to_paise(amount)}",
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout for {order_id}: {e}")
            return CheckoutResult(
                success=False,
                amount=amount,
                currency=self._currency,
                error_message=e.user_message or str(e),
                error_code=e.code,
                response_time_ms=(datetime.now() - start_time).total_seconds() * 1000,
            )

        return CheckoutResult(
            success=True,
            session_id=session.id,
            checkout_url=session.url,
            amount=amount,
            currency=self._currency,
            response_time_ms=(datetime.now() - start_time).total_seconds() * 1000,
        )

    async def get_checkout_status(self, session_id: str) -> CheckoutStatus:
        try:
            session = await asyncio.to_thread(stripe.checkout.Session.retrieve, session_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe error retrieving checkout {session_id}: {e}")
            return CheckoutStatus(paid=False, status="error", error_message=e.user_message or str(e))

        paid = session.payment_status == "paid"
        return CheckoutStatus(
            paid=paid,
            status=session.payment_status,
            payment_reference=session.payment_intent if paid else None,
        )

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(stripe.Account.retrieve)
            return True
        except stripe.StripeError as e:
            logger.warning(f"Stripe health check failed: {e}")
            return False
