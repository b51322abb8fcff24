"""
Pydantic Schemas for Request/Response Validation

Money arrives as Decimal and leaves as float; the database keeps
Numeric(10, 2) columns, rounded half-up to paise.

Author: Khalil Bannouri
Version: 1.0.0
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from menumagi.services.order_status import OrderStatus, PaymentStatus
from menumagi.services.whatsapp import is_valid_indian_phone


def _clean_phone(v: Optional[str]) -> Optional[str]:
    if v is None or v.strip() == "":
        return None
    if not is_valid_indian_phone(v):
        raise ValueError("Enter a valid 10-digit Indian mobile number")
    return re.sub(r"\D", "", v)[-10:]


# =============================================================================
# AUTH
# =============================================================================

class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    restaurant_name: Optional[str] = Field(None, max_length=150, examples=["Spice Garden"])
    phone: Optional[str] = Field(None, examples=["9876543210"])

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _clean_phone(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class OwnerUpdate(BaseModel):
    """Restaurant settings; omitted fields are left unchanged."""
    restaurant_name: Optional[str] = Field(None, min_length=1, max_length=150)
    phone: Optional[str] = None
    address: Optional[str] = Field(None, max_length=500)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _clean_phone(v)


class OwnerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    restaurant_name: str
    phone: Optional[str]
    address: Optional[str]
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    owner: OwnerResponse


# =============================================================================
# MENU
# =============================================================================

class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150, examples=["Paneer Tikka"])
    description: Optional[str] = Field(None, max_length=1000)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, examples=["249.00"])
    category: Optional[str] = Field(None, max_length=50, examples=["Starters"])
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: bool = True


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(None, max_length=50)
    image_url: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    description: Optional[str]
    price: float
    image_url: Optional[str]
    category: Optional[str]
    is_available: bool


class MenuResponse(BaseModel):
    restaurant_id: Optional[str] = None
    restaurant_name: Optional[str] = None
    categories: List[str]
    items: List[MenuItemResponse]


# =============================================================================
# CUSTOMER SESSION & CART
# =============================================================================

class TableSelection(BaseModel):
    table_number: int = Field(..., ge=1, examples=[7])
    restaurant_id: Optional[str] = None


class TableChoiceResponse(BaseModel):
    restaurant_id: Optional[str]
    restaurant_name: Optional[str]
    table_number: Optional[int]
    tables: List[int]


class SessionResponse(BaseModel):
    table_number: Optional[int]
    restaurant_id: Optional[str]
    cart_count: int = 0


class CartItemAdd(BaseModel):
    menu_item_id: str
    quantity: int = Field(default=1, ge=1, le=99)


class CartItemUpdate(BaseModel):
    """Quantity 0 removes the line."""
    quantity: int = Field(..., ge=0, le=99)


class CartLineResponse(BaseModel):
    menu_item_id: str
    name: str
    price: float
    quantity: int
    subtotal: float
    image_url: Optional[str] = None


class GSTRow(BaseModel):
    label: str
    value: str


class GSTSummary(BaseModel):
    subtotal: float
    cgst: float
    sgst: float
    igst: float
    gst_rate: float
    total_gst: float
    total: float
    rows: List[GSTRow]


class CartResponse(BaseModel):
    table_number: Optional[int]
    restaurant_id: Optional[str]
    items: List[CartLineResponse]
    item_count: int
    subtotal: float
    gst: GSTSummary


# =============================================================================
# ORDERS
# =============================================================================

class CheckoutRequest(BaseModel):
    customer_name: Optional[str] = Field(None, max_length=100, examples=["Asha"])
    customer_phone: Optional[str] = Field(None, examples=["9876543210"])
    notes: Optional[str] = Field(None, max_length=500, examples=["Less spicy"])
    payment_method: Literal["cash", "online"] = "cash"

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _clean_phone(v)


class OfflineOrderItem(BaseModel):
    menu_item_id: str
    quantity: int = Field(..., ge=1, le=99)


class OfflineOrderRequest(BaseModel):
    """Order queued by the service worker while the device was offline."""
    client_reference: str = Field(..., min_length=1, max_length=64)
    restaurant_id: str
    table_number: int = Field(..., ge=1)
    items: List[OfflineOrderItem] = Field(..., min_length=1)
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)
    payment_method: Literal["cash", "online"] = "cash"

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _clean_phone(v)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: Optional[str]
    name: str
    price: float
    quantity: int
    subtotal: float


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    table_number: int
    customer_name: Optional[str]
    customer_phone: Optional[str]
    notes: Optional[str]
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: Optional[str]
    payment_reference: Optional[str]
    subtotal: float
    tax: float
    total: float
    gst_rate: float
    cgst: float
    sgst: float
    igst: float
    invoice_number: str
    client_reference: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    completed_at: Optional[datetime]
    items: List[OrderItemResponse]


class CheckoutResponse(BaseModel):
    order: OrderResponse
    message: str
    estimated_time: str
    whatsapp_url: str


class OfflineOrderResponse(BaseModel):
    order: OrderResponse
    created: bool


class StatusDisplayResponse(BaseModel):
    label: str
    icon: str
    color: str
    title: str
    message: str


class TrackingStep(BaseModel):
    status: str
    label: str
    icon: str
    reached: bool
    current: bool


class OrderTrackingResponse(BaseModel):
    order: OrderResponse
    restaurant_name: str
    display: StatusDisplayResponse
    payment_display: StatusDisplayResponse
    progress: Optional[float]
    steps: List[TrackingStep]
    gst_rows: List[GSTRow]


class PaymentLinkResponse(BaseModel):
    order_id: str
    checkout_url: str
    session_id: str
    mode: str


class PaymentConfirmResponse(BaseModel):
    order_id: str
    payment_status: PaymentStatus
    message: str


# =============================================================================
# OWNER BOARD
# =============================================================================

class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OwnerAction(BaseModel):
    label: str
    next_status: OrderStatus
    toast: str


class OwnerOrderResponse(OrderResponse):
    action: Optional[OwnerAction] = None


class OrderListResponse(BaseModel):
    total: int
    counts: dict[str, int]
    orders: List[OwnerOrderResponse]


class StatusUpdateResponse(BaseModel):
    order: OwnerOrderResponse
    toast: str


class DashboardStats(BaseModel):
    restaurant_name: str
    menu_item_count: int
    category_count: int
    active_order_count: int
    today_order_count: int
    today_revenue: float


class DailyStat(BaseModel):
    day: date
    order_count: int
    revenue: float


class DailyStatsResponse(BaseModel):
    days: List[DailyStat]


class QRShareResponse(BaseModel):
    url: str
    message: str
    whatsapp_url: str


# =============================================================================
# INFRA
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    notification_service: str
    realtime_subscribers: int
    timestamp: datetime
