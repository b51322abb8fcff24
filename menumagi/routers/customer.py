"""
Customer Routes

Everything a diner does after scanning a table QR code: pick a table,
browse the menu, fill a cart held in the signed session cookie, check
out, track the order and pay. Also hosts the idempotent endpoint the
service worker replays offline orders against.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menumagi.core.config import get_settings
from menumagi.database import get_db
from menumagi.models import MenuItem, Order, Owner
from menumagi.routers.deps import publish_order_change
from menumagi.schemas import (
    CartItemAdd,
    CartItemUpdate,
    CartLineResponse,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    GSTSummary,
    MenuItemResponse,
    MenuResponse,
    OfflineOrderRequest,
    OfflineOrderResponse,
    OrderResponse,
    OrderTrackingResponse,
    PaymentConfirmResponse,
    PaymentLinkResponse,
    SessionResponse,
    StatusDisplayResponse,
    TableChoiceResponse,
    TableSelection,
)
from menumagi.services import orders as order_service
from menumagi.services.cart import Cart, CartError
from menumagi.services.gst import calculate_gst, format_gst_breakdown
from menumagi.services.order_status import (
    PAYMENT_DISPLAY,
    PaymentStatus,
    is_terminal,
    progress,
    status_display,
    tracking_steps,
)
from menumagi.services.payment import get_payment_service
from menumagi.services.realtime import ChangeType
from menumagi.services.whatsapp import get_whatsapp_url, order_confirmation_message
from menumagi.tasks import enqueue, order_payload, send_new_order_alert

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Customer"])

TABLE_KEY = "table_number"
RESTAURANT_KEY = "restaurant_id"

MISSING_RESTAURANT = "Restaurant information missing. Please scan QR code again."


# =============================================================================
# HELPERS
# =============================================================================

def _validate_table(table_number: int) -> int:
    table_count = get_settings().table_count
    if not 1 <= table_number <= table_count:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid table number. Choose a table between 1 and {table_count}.",
        )
    return table_number


async def _get_restaurant(db: AsyncSession, restaurant_id: str) -> Owner:
    owner = await db.get(Owner, restaurant_id)
    if owner is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return owner


def _switch_restaurant(session: dict, restaurant_id: str) -> None:
    """Point the session at a restaurant; a cart from another one is dropped."""
    cart = Cart.from_session(session)
    if cart.owner_id is not None and cart.owner_id != restaurant_id:
        cart.clear()
        cart.save(session)
    session[RESTAURANT_KEY] = restaurant_id


def _session_response(session: dict) -> SessionResponse:
    return SessionResponse(
        table_number=session.get(TABLE_KEY),
        restaurant_id=session.get(RESTAURANT_KEY),
        cart_count=Cart.from_session(session).item_count,
    )


def _gst_summary(subtotal: Any) -> GSTSummary:
    settings = get_settings()
    breakdown = calculate_gst(subtotal, settings.gst_rate, settings.gst_inter_state)
    return GSTSummary(**breakdown.to_dict(), rows=format_gst_breakdown(breakdown))


def _cart_response(session: dict, cart: Cart) -> CartResponse:
    return CartResponse(
        table_number=session.get(TABLE_KEY),
        restaurant_id=session.get(RESTAURANT_KEY) or cart.owner_id,
        items=[
            CartLineResponse(
                menu_item_id=line.menu_item_id,
                name=line.name,
                price=float(line.price),
                quantity=line.quantity,
                subtotal=float(line.subtotal),
                image_url=line.image_url,
            )
            for line in cart.lines
        ],
        item_count=cart.item_count,
        subtotal=float(cart.subtotal),
        gst=_gst_summary(cart.subtotal),
    )


async def _get_order(db: AsyncSession, order_id: str) -> Order:
    order = await order_service.load_order(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _announce_new_order(order: Order, owner: Owner) -> None:
    publish_order_change(ChangeType.INSERT, order)
    enqueue(send_new_order_alert, order_payload(order, owner))


# =============================================================================
# TABLE SESSION
# =============================================================================

@router.get("/customer/table", response_model=TableChoiceResponse)
async def scan_table(
    request: Request,
    restaurant: Optional[str] = Query(None, description="Owner id from the QR code"),
    table: Optional[int] = Query(None, description="Table number from the QR code"),
    db: AsyncSession = Depends(get_db),
) -> TableChoiceResponse:
    """QR code entry point: seed the session and list selectable tables."""
    session = request.session
    restaurant_name = None

    if restaurant:
        owner = await _get_restaurant(db, restaurant)
        _switch_restaurant(session, owner.id)
        restaurant_name = owner.restaurant_name
    elif session.get(RESTAURANT_KEY):
        owner = await db.get(Owner, session[RESTAURANT_KEY])
        restaurant_name = owner.restaurant_name if owner else None

    if table is not None:
        session[TABLE_KEY] = _validate_table(table)

    return TableChoiceResponse(
        restaurant_id=session.get(RESTAURANT_KEY),
        restaurant_name=restaurant_name,
        table_number=session.get(TABLE_KEY),
        tables=list(range(1, get_settings().table_count + 1)),
    )


@router.post("/api/session/table", response_model=SessionResponse)
async def select_table(
    data: TableSelection,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    if data.restaurant_id:
        owner = await _get_restaurant(db, data.restaurant_id)
        _switch_restaurant(request.session, owner.id)
    request.session[TABLE_KEY] = _validate_table(data.table_number)
    logger.debug(f"Table {data.table_number} selected")
    return _session_response(request.session)


@router.get("/api/session", response_model=SessionResponse)
async def get_session(request: Request) -> SessionResponse:
    return _session_response(request.session)


@router.delete("/api/session", response_model=SessionResponse)
async def clear_session(request: Request) -> SessionResponse:
    """Navigate home: forget table, restaurant and cart."""
    request.session.clear()
    return _session_response(request.session)


# =============================================================================
# MENU
# =============================================================================

@router.get("/api/menu", response_model=MenuResponse)
async def get_menu(request: Request, db: AsyncSession = Depends(get_db)) -> MenuResponse:
    """
    Available items of the session's restaurant. Without a restaurant in
    the session every restaurant's available items are listed.
    """
    restaurant_id = request.session.get(RESTAURANT_KEY)
    query = (
        select(MenuItem)
        .where(MenuItem.is_available.is_(True))
        .order_by(MenuItem.category, MenuItem.name)
    )

    restaurant_name = None
    if restaurant_id:
        owner = await _get_restaurant(db, restaurant_id)
        restaurant_name = owner.restaurant_name
        query = query.where(MenuItem.owner_id == restaurant_id)

    items = (await db.execute(query)).scalars().all()
    categories = sorted({item.category for item in items if item.category})

    return MenuResponse(
        restaurant_id=restaurant_id,
        restaurant_name=restaurant_name,
        categories=categories,
        items=[MenuItemResponse.model_validate(item) for item in items],
    )


# =============================================================================
# CART
# =============================================================================

@router.get("/api/cart", response_model=CartResponse)
async def get_cart(request: Request) -> CartResponse:
    return _cart_response(request.session, Cart.from_session(request.session))


@router.post("/api/cart/items", response_model=CartResponse)
async def add_to_cart(
    data: CartItemAdd,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> CartResponse:
    item = await db.get(MenuItem, data.menu_item_id)
    if item is None or not item.is_available:
        raise HTTPException(status_code=404, detail="Menu item not found")

    session = request.session
    restaurant_id = session.get(RESTAURANT_KEY)
    if restaurant_id and item.owner_id != restaurant_id:
        raise HTTPException(status_code=400, detail="This item belongs to a different restaurant")

    cart = Cart.from_session(session)
    try:
        cart.add(
            menu_item_id=item.id,
            owner_id=item.owner_id,
            name=item.name,
            price=item.price,
            image_url=item.image_url,
            quantity=data.quantity,
        )
    except CartError as e:
        raise HTTPException(status_code=400, detail=str(e))

    cart.save(session)
    session.setdefault(RESTAURANT_KEY, item.owner_id)
    return _cart_response(session, cart)


@router.put("/api/cart/items/{item_id}", response_model=CartResponse)
async def update_cart_item(item_id: str, data: CartItemUpdate, request: Request) -> CartResponse:
    """Set a line's quantity; 0 removes it."""
    cart = Cart.from_session(request.session)
    try:
        cart.set_quantity(item_id, data.quantity)
    except CartError as e:
        raise HTTPException(status_code=404, detail=str(e))
    cart.save(request.session)
    return _cart_response(request.session, cart)


@router.delete("/api/cart/items/{item_id}", response_model=CartResponse)
async def remove_from_cart(item_id: str, request: Request) -> CartResponse:
    """Decrement a line by one, dropping it at zero."""
    cart = Cart.from_session(request.session)
    try:
        cart.remove(item_id)
    except CartError as e:
        raise HTTPException(status_code=404, detail=str(e))
    cart.save(request.session)
    return _cart_response(request.session, cart)


@router.delete("/api/cart", response_model=CartResponse)
async def clear_cart(request: Request) -> CartResponse:
    cart = Cart.from_session(request.session)
    cart.clear()
    cart.save(request.session)
    return _cart_response(request.session, cart)


# =============================================================================
# CHECKOUT & TRACKING
# =============================================================================

@router.post("/api/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def checkout(
    data: CheckoutRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> CheckoutResponse:
    """Turn the session cart into an order and clear the cart."""
    settings = get_settings()
    session = request.session
    cart = Cart.from_session(session)

    restaurant_id = cart.owner_id or session.get(RESTAURANT_KEY)
    if not restaurant_id:
        raise HTTPException(status_code=400, detail=MISSING_RESTAURANT)
    table_number = session.get(TABLE_KEY)
    if not table_number:
        raise HTTPException(status_code=400, detail="Please select a table")
    if cart.is_empty():
        raise HTTPException(status_code=400, detail="Your cart is empty")

    owner = await db.get(Owner, restaurant_id)
    if owner is None:
        raise HTTPException(status_code=400, detail=MISSING_RESTAURANT)

    # Items switched off after they were added cannot be ordered
    result = await db.execute(
        select(MenuItem.id).where(
            MenuItem.id.in_([line.menu_item_id for line in cart.lines]),
            MenuItem.owner_id == owner.id,
            MenuItem.is_available.is_(True),
        )
    )
    available = set(result.scalars())
    unavailable = [line.name for line in cart.lines if line.menu_item_id not in available]
    if unavailable:
        raise HTTPException(
            status_code=400,
            detail=f"No longer available: {', '.join(unavailable)}",
        )

    order = await order_service.create_order(
        db,
        owner_id=owner.id,
        table_number=table_number,
        lines=[
            {
                "menu_item_id": line.menu_item_id,
                "name": line.name,
                "price": line.price,
                "quantity": line.quantity,
            }
            for line in cart.lines
        ],
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        notes=data.notes,
        payment_method=data.payment_method,
    )

    cart.clear()
    cart.save(session)
    _announce_new_order(order, owner)

    message = order_confirmation_message(
        order_reference=order.invoice_number,
        restaurant_name=owner.restaurant_name,
        table_number=order.table_number,
        total=order.total,
        items=[{"name": i.name, "quantity": i.quantity, "price": i.subtotal} for i in order.items],
        estimated_minutes=settings.estimated_prep_minutes,
    )

    return CheckoutResponse(
        order=OrderResponse.model_validate(order),
        message="Order placed successfully!",
        estimated_time=f"{settings.estimated_prep_minutes} minutes",
        whatsapp_url=get_whatsapp_url(message, phone=owner.phone),
    )


@router.get("/api/orders/{order_id}", response_model=OrderTrackingResponse)
async def track_order(order_id: str, db: AsyncSession = Depends(get_db)) -> OrderTrackingResponse:
    order = await _get_order(db, order_id)
    owner = await db.get(Owner, order.owner_id)
    display = status_display(order.status)
    payment = PAYMENT_DISPLAY[order.payment_status]

    breakdown = calculate_gst(
        order.subtotal, order.gst_rate, is_inter_state=order.igst > 0
    )

    return OrderTrackingResponse(
        order=OrderResponse.model_validate(order),
        restaurant_name=owner.restaurant_name,
        display=StatusDisplayResponse(**vars(display)),
        payment_display=StatusDisplayResponse(**vars(payment)),
        progress=progress(order.status),
        steps=tracking_steps(order.status),
        gst_rows=format_gst_breakdown(breakdown),
    )


# =============================================================================
# PAYMENT
# =============================================================================

@router.post("/api/orders/{order_id}/payment-link", response_model=PaymentLinkResponse)
async def create_payment_link(order_id: str, db: AsyncSession = Depends(get_db)) -> PaymentLinkResponse:
    """Start an online payment for an order."""
    order = await _get_order(db, order_id)
    if is_terminal(order.status):
        raise HTTPException(status_code=409, detail=f"Order is {order.status.value}")
    if order.payment_status == PaymentStatus.PAID:
        raise HTTPException(status_code=409, detail="Order already paid")

    payment_service = get_payment_service()
    result = await payment_service.create_checkout(
        order_id=order.id,
        amount=order.total,
        description=f"{order.invoice_number} - Table {order.table_number}",
    )
    if not result.success:
        logger.error(f"Checkout creation failed for {order.invoice_number}: {result.error_message}")
        raise HTTPException(status_code=502, detail=result.error_message or "Payment provider error")

    order.payment_method = "online"
    order.payment_reference = result.session_id
    order.payment_status = PaymentStatus.PENDING
    await db.commit()

    return PaymentLinkResponse(
        order_id=order.id,
        checkout_url=result.checkout_url,
        session_id=result.session_id,
        mode=payment_service.provider_name,
    )


@router.post("/api/orders/{order_id}/payment/confirm", response_model=PaymentConfirmResponse)
async def confirm_payment(order_id: str, db: AsyncSession = Depends(get_db)) -> PaymentConfirmResponse:
    """Ask the provider whether the checkout was paid. Safe to repeat."""
    order = await _get_order(db, order_id)
    if order.payment_status == PaymentStatus.PAID:
        return PaymentConfirmResponse(
            order_id=order.id,
            payment_status=order.payment_status,
            message="Payment already confirmed",
        )
    if order.payment_method != "online" or not order.payment_reference:
        raise HTTPException(status_code=400, detail="No online payment was started for this order")

    result = await get_payment_service().get_checkout_status(order.payment_reference)
    if result.status == "error":
        raise HTTPException(status_code=502, detail=result.error_message or "Payment provider error")

    if result.paid:
        try:
            order = await order_service.mark_paid(db, order, "online", result.payment_reference)
        except order_service.OrderLocked as e:
            raise HTTPException(status_code=409, detail=str(e))
        publish_order_change(ChangeType.UPDATE, order, old={"payment_status": PaymentStatus.PENDING.value})
        return PaymentConfirmResponse(
            order_id=order.id,
            payment_status=order.payment_status,
            message="Payment successful",
        )

    if result.status == "declined" and order.payment_status != PaymentStatus.FAILED:
        previous = order.payment_status
        order.payment_status = PaymentStatus.FAILED
        await db.commit()
        order = await order_service.load_order(db, order.id)
        publish_order_change(ChangeType.UPDATE, order, old={"payment_status": previous.value})

    return PaymentConfirmResponse(
        order_id=order.id,
        payment_status=order.payment_status,
        message=result.error_message or "Payment not completed yet",
    )


# =============================================================================
# OFFLINE SYNC
# =============================================================================

@router.post("/api/orders", response_model=OfflineOrderResponse)
async def sync_offline_order(
    data: OfflineOrderRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> OfflineOrderResponse:
    """
    Replay an order queued while offline.

    The client reference makes retries safe: a second submission returns
    the order created by the first. Prices come from the current menu.
    """
    owner = await _get_restaurant(db, data.restaurant_id)
    _validate_table(data.table_number)

    existing = await order_service.find_by_client_reference(db, owner.id, data.client_reference)
    if existing is not None:
        logger.info(f"Offline order {data.client_reference} already synced as {existing.invoice_number}")
        return OfflineOrderResponse(order=OrderResponse.model_validate(existing), created=False)

    try:
        lines = await order_service.resolve_menu_lines(
            db, owner.id, [item.model_dump() for item in data.items]
        )
    except LookupError as e:
        raise HTTPException(status_code=400, detail=f"Menu item {e.args[0]} is no longer available")

    try:
        order = await order_service.create_order(
            db,
            owner_id=owner.id,
            table_number=data.table_number,
            lines=lines,
            customer_name=data.customer_name,
            customer_phone=data.customer_phone,
            notes=data.notes,
            payment_method=data.payment_method,
            client_reference=data.client_reference,
        )
    except order_service.DuplicateOrder as e:
        return OfflineOrderResponse(order=OrderResponse.model_validate(e.order), created=False)

    _announce_new_order(order, owner)
    response.status_code = status.HTTP_201_CREATED
    return OfflineOrderResponse(order=OrderResponse.model_validate(order), created=True)
