"""
Owner Routes

Menu management, the live order board, QR codes, dashboard statistics
and sales reports. Every query is scoped to the signed-in owner; rows
of other restaurants are reported as not found.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from menumagi.core.config import get_settings
from menumagi.database import get_db
from menumagi.models import MenuItem, Order, Owner
from menumagi.routers.deps import get_current_owner, publish_menu_change, publish_order_change
from menumagi.schemas import (
    DailyStat,
    DailyStatsResponse,
    DashboardStats,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    OrderListResponse,
    OrderStatusUpdate,
    OwnerAction,
    OwnerOrderResponse,
    QRShareResponse,
    StatusUpdateResponse,
)
from menumagi.services import orders as order_service
from menumagi.services.excel_manager import build_sales_report, sales_row
from menumagi.services.i18n import translate
from menumagi.services.images import ImageRejected, get_image_storage
from menumagi.services.order_status import (
    InvalidStatusTransition,
    OrderStatus,
    owner_action,
    status_display,
)
from menumagi.services.qr import render_qr_png, shop_url
from menumagi.services.realtime import ChangeType
from menumagi.services.whatsapp import get_whatsapp_url, qr_share_message
from menumagi.tasks import (
    enqueue,
    export_completed_order,
    order_payload,
    send_order_status_update,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/owner", tags=["Owner"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


async def _get_menu_item(db: AsyncSession, item_id: str, owner: Owner) -> MenuItem:
    result = await db.execute(
        select(MenuItem).where(MenuItem.id == item_id, MenuItem.owner_id == owner.id)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return item


async def _get_order(db: AsyncSession, order_id: str, owner: Owner) -> Order:
    order = await order_service.load_order(db, order_id, owner_id=owner.id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _owner_order(order: Order) -> OwnerOrderResponse:
    response = OwnerOrderResponse.model_validate(order)
    action = owner_action(order.status)
    if action is not None:
        response.action = OwnerAction(**action)
    return response


async def _discard_image(db: AsyncSession, owner: Owner, image_url: Optional[str]) -> None:
    """Delete a replaced image unless another of the owner's items still shows it."""
    if not image_url:
        return
    still_used = await db.scalar(
        select(func.count(MenuItem.id)).where(
            MenuItem.owner_id == owner.id,
            MenuItem.image_url == image_url,
        )
    )
    if still_used:
        return
    get_image_storage().delete(image_url, owner.id)


# =============================================================================
# MENU
# =============================================================================

@router.get("/menu", response_model=list[MenuItemResponse])
async def list_menu(
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> list[MenuItemResponse]:
    """All of the owner's items, available or not."""
    result = await db.execute(
        select(MenuItem)
        .where(MenuItem.owner_id == owner.id)
        .order_by(MenuItem.category, MenuItem.name)
    )
    return [MenuItemResponse.model_validate(item) for item in result.scalars()]


@router.post("/menu", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    data: MenuItemCreate,
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = MenuItem(owner_id=owner.id, **data.model_dump())
    db.add(item)
    await db.commit()
    await db.refresh(item)

    logger.info(f"Menu item added by {owner.email}: {item.name} (₹{item.price})")
    publish_menu_change(ChangeType.INSERT, item)
    return MenuItemResponse.model_validate(item)


@router.put("/menu/{item_id}", response_model=MenuItemResponse)
async def update_menu_item(
    item_id: str,
    data: MenuItemUpdate,
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = await _get_menu_item(db, item_id, owner)
    old = MenuItemResponse.model_validate(item).model_dump(mode="json")

    changes = data.model_dump(exclude_unset=True)
    for field in ("name", "price", "is_available"):
        if field in changes and changes[field] is None:
            del changes[field]
    new_image = changes.get("image_url")
    storage = get_image_storage()
    if new_image and storage.path_for_url(new_image) and not storage.path_for_url(new_image, owner.id):
        raise HTTPException(status_code=400, detail="Image belongs to another restaurant")
    replaced_image = (
        old["image_url"] if "image_url" in changes and changes["image_url"] != old["image_url"] else None
    )
    for field, value in changes.items():
        setattr(item, field, value)

    await db.commit()
    await db.refresh(item)
    await _discard_image(db, owner, replaced_image)

    publish_menu_change(ChangeType.UPDATE, item, old=old)
    return MenuItemResponse.model_validate(item)


@router.delete("/menu/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_menu_item(
    item_id: str,
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Delete an item and its stored image. Past order lines keep their snapshot."""
    item = await _get_menu_item(db, item_id, owner)
    image_url = item.image_url

    await db.delete(item)
    await db.commit()
    publish_menu_change(ChangeType.DELETE, item)
    await _discard_image(db, owner, image_url)

    logger.info(f"Menu item deleted by {owner.email}: {item_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/menu/{item_id}/image", response_model=MenuItemResponse)
async def upload_menu_image(
    item_id: str,
    file: UploadFile = File(...),
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    """Compress and store a photo for a menu item, replacing any previous one."""
    item = await _get_menu_item(db, item_id, owner)
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(status_code=415, detail="Only image uploads are accepted")

    data = await file.read()
    try:
        stored = await run_in_threadpool(get_image_storage().upload, owner.id, data)
    except ImageRejected as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    old = MenuItemResponse.model_validate(item).model_dump(mode="json")
    previous_url = item.image_url
    item.image_url = stored.url
    await db.commit()
    await db.refresh(item)
    await _discard_image(db, owner, previous_url)

    publish_menu_change(ChangeType.UPDATE, item, old=old)
    return MenuItemResponse.model_validate(item)


# =============================================================================
# ORDER BOARD
# =============================================================================

@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    active: bool = Query(False, description="Only orders still in progress"),
    limit: int = Query(100, ge=1, le=500),
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Orders newest first, with per-status counts for the board tabs."""
    orders = await order_service.list_orders(
        db, owner.id, status=status_filter, active_only=active, limit=limit
    )
    counts = await order_service.status_counts(db, owner.id)
    return OrderListResponse(
        total=len(orders),
        counts=counts,
        orders=[_owner_order(order) for order in orders],
    )


@router.patch("/orders/{order_id}/status", response_model=StatusUpdateResponse)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> StatusUpdateResponse:
    order = await _get_order(db, order_id, owner)
    previous = order.status
    action = owner_action(previous)

    try:
        order = await order_service.change_status(db, order, data.status)
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))

    publish_order_change(ChangeType.UPDATE, order, old={"status": previous.value})
    payload = order_payload(order, owner)
    enqueue(send_order_status_update, payload)
    if order.status == OrderStatus.COMPLETED:
        enqueue(export_completed_order, payload)

    if order.status == OrderStatus.CANCELLED:
        toast = translate("orderCancelled")
    elif action and action["next_status"] == order.status.value:
        toast = action["toast"]
    else:
        toast = status_display(order.status).title

    return StatusUpdateResponse(order=_owner_order(order), toast=toast)


@router.post("/orders/{order_id}/mark-paid", response_model=OwnerOrderResponse)
async def mark_order_paid(
    order_id: str,
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> OwnerOrderResponse:
    """Record a cash payment collected at the table."""
    order = await _get_order(db, order_id, owner)
    previous = order.payment_status
    try:
        order = await order_service.mark_paid(db, order, order.payment_method or "cash")
    except order_service.OrderLocked as e:
        raise HTTPException(status_code=409, detail=str(e))

    publish_order_change(ChangeType.UPDATE, order, old={"payment_status": previous.value})
    return _owner_order(order)


# =============================================================================
# QR CODE
# =============================================================================

@router.get("/qr", responses={200: {"content": {"image/png": {}}}})
async def get_qr_code(
    table: Optional[int] = Query(None, ge=1),
    owner: Owner = Depends(get_current_owner),
) -> Response:
    """PNG QR code for the restaurant, optionally pinned to one table."""
    url = shop_url(get_settings().app_base_url, owner.id, table)
    png = await run_in_threadpool(render_qr_png, url)
    filename = f"qr-table-{table}.png" if table else "qr-restaurant.png"
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@router.get("/qr/share", response_model=QRShareResponse)
async def share_qr_code(owner: Owner = Depends(get_current_owner)) -> QRShareResponse:
    url = shop_url(get_settings().app_base_url, owner.id)
    message = qr_share_message(owner.restaurant_name, url)
    return QRShareResponse(url=url, message=message, whatsapp_url=get_whatsapp_url(message))


# =============================================================================
# STATISTICS & REPORTS
# =============================================================================

@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> DashboardStats:
    stats = await order_service.dashboard_stats(db, owner.id)
    return DashboardStats(restaurant_name=owner.restaurant_name, **stats)


@router.get("/stats/daily", response_model=DailyStatsResponse)
async def get_daily_stats(
    days: int = Query(30, ge=1, le=365),
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> DailyStatsResponse:
    """Completed orders and revenue per day."""
    rows = await order_service.daily_stats(db, owner.id, days=days)
    return DailyStatsResponse(days=[DailyStat(**row) for row in rows])


@router.get("/reports/sales.xlsx")
async def download_sales_report(
    days: int = Query(30, ge=1, le=365),
    owner: Owner = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Excel workbook of completed orders with a per-day summary sheet."""
    since = datetime.now(timezone.utc).date() - timedelta(days=days - 1)
    orders = await order_service.completed_orders_since(db, owner.id, since)
    rows = [sales_row(order_payload(order, owner)) for order in orders]
    content = await run_in_threadpool(build_sales_report, rows)

    filename = f"sales-{since.isoformat()}-to-{datetime.now(timezone.utc).date().isoformat()}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
