"""
Order Persistence

Creation of orders from cart lines (with the GST breakdown and a
per-restaurant invoice number), owner-driven status changes, payment
settlement and the dashboard statistics.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from menumagi.core.config import get_settings
from menumagi.models import MenuItem, Order, OrderItem
from menumagi.services.gst import calculate_order_total, generate_invoice_number, round_money
from menumagi.services.order_status import (
    ACTIVE_STATUSES,
    OrderStatus,
    PaymentStatus,
    ensure_transition,
    is_terminal,
)

logger = logging.getLogger(__name__)

INVOICE_ATTEMPTS = 3


class DuplicateOrder(Exception):
    """An order with the same client reference already exists."""

    def __init__(self, order: Order):
        super().__init__(f"Order {order.id} already submitted")
        self.order = order


class OrderLocked(Exception):
    """The order is completed or cancelled and can no longer change."""


async def load_order(db: AsyncSession, order_id: str, owner_id: Optional[str] = None) -> Optional[Order]:
    """Fetch an order with its lines, refreshing any stale identity-map copy."""
    query = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    if owner_id is not None:
        query = query.where(Order.owner_id == owner_id)
    return (await db.execute(query)).scalar_one_or_none()


async def find_by_client_reference(db: AsyncSession, owner_id: str, client_reference: str) -> Optional[Order]:
    result = await db.execute(
        select(Order.id).where(
            Order.owner_id == owner_id,
            Order.client_reference == client_reference,
        )
    )
    order_id = result.scalar_one_or_none()
    return await load_order(db, order_id) if order_id else None


async def create_order(
    db: AsyncSession,
    owner_id: str,
    table_number: int,
    lines: Iterable[Mapping[str, Any]],
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
    notes: Optional[str] = None,
    payment_method: str = "cash",
    client_reference: Optional[str] = None,
) -> Order:
    """
    Persist an order and its line snapshots.

    ``lines`` are mappings with ``menu_item_id``, ``name``, ``price`` and
    ``quantity``. Invoice numbers count the restaurant's orders, so a
    concurrent checkout that takes the same number is retried.

    Raises:
        ValueError: if there are no lines
        DuplicateOrder: if ``client_reference`` was already used
    """
    lines = list(lines)
    if not lines:
        raise ValueError("Order has no items")

    settings = get_settings()
    breakdown = calculate_order_total(lines, settings.gst_rate, settings.gst_inter_state)

    for attempt in range(1, INVOICE_ATTEMPTS + 1):
        sequence = await db.scalar(
            select(func.count(Order.id)).where(Order.owner_id == owner_id)
        )
        order = Order(
            owner_id=owner_id,
            table_number=table_number,
            customer_name=customer_name,
            customer_phone=customer_phone,
            notes=notes,
            status=OrderStatus.WAITING,
            payment_status=PaymentStatus.PENDING,
            payment_method=payment_method,
            subtotal=breakdown.subtotal,
            tax=breakdown.total_gst,
            total=breakdown.total,
            gst_rate=breakdown.gst_rate,
            cgst=breakdown.cgst,
            sgst=breakdown.sgst,
            igst=breakdown.igst,
            invoice_number=generate_invoice_number((sequence or 0) + 1),
            client_reference=client_reference,
            items=[
                OrderItem(
                    menu_item_id=line["menu_item_id"],
                    name=line["name"],
                    price=round_money(line["price"]),
                    quantity=int(line["quantity"]),
                    subtotal=round_money(Decimal(str(line["price"])) * int(line["quantity"])),
                )
                for line in lines
            ],
        )
        db.add(order)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            if client_reference:
                existing = await find_by_client_reference(db, owner_id, client_reference)
                if existing is not None:
                    raise DuplicateOrder(existing)
            logger.warning(f"Invoice number collision for owner {owner_id} (attempt {attempt})")
            continue

        logger.info(
            f"Order {order.invoice_number} created: table {table_number}, "
            f"{len(lines)} line(s), ₹{breakdown.total}"
        )
        return await load_order(db, order.id)

    raise RuntimeError(f"Could not allocate an invoice number for owner {owner_id}")


async def resolve_menu_lines(
    db: AsyncSession,
    owner_id: str,
    requested: Iterable[Mapping[str, Any]],
) -> list[dict[str, Any]]:
    """
    Price requested ``{menu_item_id, quantity}`` pairs from the live menu.

    Raises:
        LookupError: naming the first item that is unknown or unavailable
    """
    requested = list(requested)
    ids = {line["menu_item_id"] for line in requested}
    result = await db.execute(
        select(MenuItem).where(MenuItem.owner_id == owner_id, MenuItem.id.in_(ids))
    )
    menu = {item.id: item for item in result.scalars()}

    lines = []
    for line in requested:
        item = menu.get(line["menu_item_id"])
        if item is None or not item.is_available:
            raise LookupError(line["menu_item_id"])
        lines.append({
            "menu_item_id": item.id,
            "name": item.name,
            "price": item.price,
            "quantity": line["quantity"],
        })
    return lines


async def change_status(db: AsyncSession, order: Order, requested: OrderStatus) -> Order:
    """
    Move an order along the status flow.

    Raises:
        InvalidStatusTransition: if the move is not allowed
    """
    previous = order.status
    order.status = ensure_transition(order.status, requested)
    if order.status == OrderStatus.COMPLETED:
        order.completed_at = datetime.now(timezone.utc)
    await db.commit()
    logger.info(f"Order {order.invoice_number}: {previous.value} -> {order.status.value}")
    return await load_order(db, order.id)


async def mark_paid(
    db: AsyncSession,
    order: Order,
    payment_method: str,
    payment_reference: Optional[str] = None,
) -> Order:
    """Settle an order; completed and cancelled orders are closed."""
    if is_terminal(order.status):
        raise OrderLocked(f"Order {order.invoice_number} is {order.status.value}")
    order.payment_status = PaymentStatus.PAID
    order.payment_method = payment_method
    if payment_reference:
        order.payment_reference = payment_reference
    await db.commit()
    logger.info(f"Order {order.invoice_number} paid ({payment_method})")
    return await load_order(db, order.id)


# =============================================================================
# OWNER QUERIES
# =============================================================================

async def list_orders(
    db: AsyncSession,
    owner_id: str,
    status: Optional[OrderStatus] = None,
    active_only: bool = False,
    limit: int = 100,
) -> list[Order]:
    query = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.owner_id == owner_id)
        .order_by(Order.created_at.desc())
        .limit(limit)
    )
    if status is not None:
        query = query.where(Order.status == status)
    elif active_only:
        query = query.where(Order.status.in_(ACTIVE_STATUSES))
    return list((await db.execute(query)).scalars().all())


async def status_counts(db: AsyncSession, owner_id: str) -> dict[str, int]:
    """Number of orders per status, every status present."""
    result = await db.execute(
        select(Order.status, func.count(Order.id))
        .where(Order.owner_id == owner_id)
        .group_by(Order.status)
    )
    counts = {status.value: 0 for status in OrderStatus}
    for status, count in result.all():
        counts[OrderStatus(status).value] = count
    return counts


def _start_of_day(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _as_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


async def completed_orders_since(db: AsyncSession, owner_id: str, since: date) -> list[Order]:
    result = await db.execute(
        select(Order)
        .options(selectinload(Order.items))
        .where(
            Order.owner_id == owner_id,
            Order.status == OrderStatus.COMPLETED,
            Order.created_at >= _start_of_day(since),
        )
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def dashboard_stats(db: AsyncSession, owner_id: str) -> dict[str, Any]:
    """Menu size, open orders and today's completed revenue."""
    menu_item_count = await db.scalar(
        select(func.count(MenuItem.id)).where(MenuItem.owner_id == owner_id)
    )
    category_count = await db.scalar(
        select(func.count(distinct(MenuItem.category))).where(
            MenuItem.owner_id == owner_id,
            MenuItem.category.is_not(None),
        )
    )
    active_order_count = await db.scalar(
        select(func.count(Order.id)).where(
            Order.owner_id == owner_id,
            Order.status.in_(ACTIVE_STATUSES),
        )
    )

    today = datetime.now(timezone.utc).date()
    completed_today = await completed_orders_since(db, owner_id, today)

    return {
        "menu_item_count": menu_item_count or 0,
        "category_count": category_count or 0,
        "active_order_count": active_order_count or 0,
        "today_order_count": len(completed_today),
        "today_revenue": float(sum((o.total for o in completed_today), Decimal("0"))),
    }


async def daily_stats(db: AsyncSession, owner_id: str, days: int = 30) -> list[dict[str, Any]]:
    """Completed-order count and revenue per day, newest day first."""
    since = datetime.now(timezone.utc).date() - timedelta(days=days - 1)
    buckets: "OrderedDict[date, dict[str, Any]]" = OrderedDict()

    for order in await completed_orders_since(db, owner_id, since):
        day = _as_date(order.created_at)
        bucket = buckets.setdefault(day, {"day": day, "order_count": 0, "revenue": Decimal("0")})
        bucket["order_count"] += 1
        bucket["revenue"] += order.total

    return [
        {**bucket, "revenue": float(bucket["revenue"])}
        for bucket in sorted(buckets.values(), key=lambda b: b["day"], reverse=True)
    ]
