"""
Payment Service Abstract Base Class

Defines the interface contract for online payment of table orders.
Customers pay through a hosted checkout page; the order is settled once
the provider reports the checkout as paid. Cash orders never touch this
service, the owner marks them paid.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass
class CheckoutResult:
    """
    Standardized result from creating a hosted checkout.

    Attributes:
        success: Whether the checkout page was created
        session_id: Provider checkout identifier (Stripe format: cs_xxx)
        checkout_url: Page the customer is redirected to
        amount: Amount to collect in rupees
        currency: Currency code (e.g., "inr")
        error_message: Error description if creation failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the provider
    """
    success: bool
    session_id: Optional[str] = None
    checkout_url: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: str = "inr"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0


@dataclass
class CheckoutStatus:
    """Settlement state of a checkout as reported by the provider."""
    paid: bool
    status: str
    payment_reference: Optional[str] = None
    error_message: Optional[str] = None


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Example:
        >>> service = get_payment_service()  # Returns Mock or Stripe
        >>> result = await service.create_checkout(
        ...     order_id="0b6f...",
        ...     amount=Decimal("367.50"),
        ...     description="Table 7 - INV/2024/05/00012",
        ... )
        >>> if result.success:
        ...     print(result.checkout_url)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the payment provider ("mock", "stripe")."""
        pass

    @abstractmethod
    async def create_checkout(
        self,
        order_id: str,
        amount: Decimal,
        description: str,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> CheckoutResult:
        """
        Create a hosted checkout page for an order.

        Args:
            order_id: Order being paid, attached as metadata
            amount: Amount in rupees (converted to paise by the implementation)
            description: Line shown on the checkout page
            success_url: Where the provider redirects after payment
            cancel_url: Where the provider redirects on cancel
        """
        pass

    @abstractmethod
    async def get_checkout_status(self, session_id: str) -> CheckoutStatus:
        """Ask the provider whether a checkout has been paid."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the payment service."""
        pass
