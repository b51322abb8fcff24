"""
Mock Payment Service Implementation

Simulates Stripe Checkout without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Test the complete order and payment flow locally
    - Run simulations without incurring costs

Behavior:
    - Simulates response times up to MOCK_MAX_LATENCY
    - Randomly declines MOCK_FAILURE_RATE of checkouts when they are confirmed
    - Generates Stripe-like IDs (cs_mock_xxx, pi_mock_xxx)

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import random
import uuid
from decimal import Decimal
from typing import Optional

from menumagi.services.payment.base import (
    BasePaymentService,
    CheckoutResult,
    CheckoutStatus,
)

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Every checkout is remembered; the first status query decides (once)
    whether the customer "paid" or the card was declined.
    """

    # Simulated failure reasons (mimics real Stripe decline codes)
    DECLINE_REASONS = [
        ("card_declined", "Your card was declined."),
        ("insufficient_funds", "Your card has insufficient funds."),
        ("expired_card", "Your card has expired."),
        ("processing_error", "An error occurred while processing your card."),
    ]

    def __init__(self, failure_rate: float = 0.05, max_latency: float = 0.3, currency: str = "inr"):
        self.failure_rate = failure_rate
        self.max_latency = max_latency
        self.currency = currency
        self._sessions: dict[str, dict] = {}

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, max_latency={max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        """Sleep a random amount; returns milliseconds slept."""
        latency = random.uniform(0, self.max_latency) if self.max_latency > 0 else 0.0
        if latency:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def create_checkout(
        self,
        order_id: str,
        amount: Decimal,
        description: str,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> CheckoutResult:
        response_time = await self._simulate_latency()

        if amount <= 0:
            return CheckoutResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
                response_time_ms=response_time,
            )

        session_id = f"cs_mock_{uuid.uuid4().hex[:24]}"
        self._sessions[session_id] = {"order_id": order_id, "amount": amount, "status": "open"}

        logger.info(f"Mock checkout created for order {order_id}: ₹{amount} ({session_id})")

        return CheckoutResult(
            success=True,
            session_id=session_id,
            checkout_url=f"https://checkout.stripe.com/mock/{session_id}",
            amount=amount,
            currency=self.currency,
            response_time_ms=response_time,
        )

    async def get_checkout_status(self, session_id: str) -> CheckoutStatus:
        await self._simulate_latency()

        session = self._sessions.get(session_id)
        if session is None:
            return CheckoutStatus(paid=False, status="unknown", error_message="No such checkout session")

        if session["status"] == "open":
            if self._should_fail():
                code, message = random.choice(self.DECLINE_REASONS)
                session["status"] = "declined"
                session["error"] = message
                logger.warning(f"Mock checkout {session_id} declined ({code})")
            else:
                session["status"] = "paid"
                session["payment_intent"] = f"pi_mock_{uuid.uuid4().hex[:24]}"

        if session["status"] == "paid":
            return CheckoutStatus(paid=True, status="paid", payment_reference=session["payment_intent"])
        return CheckoutStatus(paid=False, status=session["status"], error_message=session.get("error"))

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
