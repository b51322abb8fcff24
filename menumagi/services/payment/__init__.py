"""
Payment Service Factory

Usage:
    from menumagi.services.payment import get_payment_service

    # Returns MockPaymentService or StripePaymentService based on ENV_MODE
    payment_service = get_payment_service()

    result = await payment_service.create_checkout(order.id, order.total, "Table 7")

Environment Switching:
    - ENV_MODE=development → MockPaymentService (no API calls)
    - ENV_MODE=staging → StripePaymentService (test keys)
    - ENV_MODE=production → StripePaymentService (live keys)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from menumagi.core.config import get_settings
from menumagi.services.payment.base import (
    BasePaymentService,
    CheckoutResult,
    CheckoutStatus,
)
from menumagi.services.payment.mock import MockPaymentService
from menumagi.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    """
    Get the configured payment service instance (cached).

    Raises:
        ValueError: If production mode but Stripe key not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Payment Service: Using MockPaymentService (development mode)")
        return MockPaymentService(
            failure_rate=settings.mock_failure_rate,
            max_latency=settings.mock_max_latency,
            currency=settings.currency,
        )
    else:
        logger.info(
            f"Payment Service: Using StripePaymentService "
            f"({settings.env_mode.value} mode)"
        )
        return StripePaymentService()


def reset_payment_service() -> None:
    """Clear the cached payment service instance."""
    get_payment_service.cache_clear()
    logger.debug("Payment service cache cleared")


__all__ = [
    "get_payment_service",
    "reset_payment_service",
    "BasePaymentService",
    "CheckoutResult",
    "CheckoutStatus",
    "MockPaymentService",
    "StripePaymentService",
]
