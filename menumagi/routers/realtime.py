"""
Realtime WebSocket Routes

Clients subscribe to the change feed and re-fetch when notified:

    WS /ws/owner/orders?token=...&events=INSERT,UPDATE
        The owner's order board. New rows double as new-order alerts.

    WS /ws/orders/{order_id}
        A customer's tracking page; receives that order's updates.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from menumagi.database import async_session_maker
from menumagi.routers.deps import owner_from_token
from menumagi.schemas import OrderResponse
from menumagi.services import orders as order_service
from menumagi.services.realtime import ChangeType, Subscription, get_change_feed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


def _parse_events(raw: Optional[str]) -> Optional[list[ChangeType]]:
    if not raw:
        return None
    event_types = [ChangeType(part.strip().upper()) for part in raw.split(",") if part.strip()]
    if not event_types:
        raise ValueError(f"No event types in {raw!r}")
    return event_types


async def _pump(websocket: WebSocket, subscription: Subscription, greeting: dict) -> None:
    """Send ``greeting``, then forward feed events until the client goes away."""
    feed = get_change_feed()

    async def forward() -> None:
        while True:
            change = await subscription.queue.get()
            await websocket.send_json({"type": "change", **change.to_dict()})

    async def watch_client() -> None:
        # Inbound frames are ignored; receiving detects the disconnect
        while True:
            await websocket.receive_text()

    tasks = []
    try:
        await websocket.send_json(greeting)
        tasks = [asyncio.create_task(forward()), asyncio.create_task(watch_client())]
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
    finally:
        for task in tasks:
            task.cancel()
        feed.unsubscribe(subscription)


@router.websocket("/ws/owner/orders")
async def owner_order_feed(
    websocket: WebSocket,
    token: str = Query(...),
    events: Optional[str] = Query(None, description="Comma-separated INSERT,UPDATE,DELETE"),
) -> None:
    async with async_session_maker() as db:
        owner = await owner_from_token(db, token)
    if owner is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        event_types = _parse_events(events)
    except ValueError:
        await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA)
        return

    await websocket.accept()
    subscription = get_change_feed().subscribe("orders", events=event_types, owner_id=owner.id)
    logger.info(f"Owner {owner.email} connected to the order feed")
    await _pump(websocket, subscription, {"type": "subscribed", "table": "orders", "owner_id": owner.id})
    logger.info(f"Owner {owner.email} left the order feed")


@router.websocket("/ws/orders/{order_id}")
async def order_tracking_feed(websocket: WebSocket, order_id: str) -> None:
    async with async_session_maker() as db:
        order = await order_service.load_order(db, order_id)
    if order is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    subscription = get_change_feed().subscribe(
        "orders", events=[ChangeType.UPDATE], record_id=order.id
    )
    await _pump(websocket, subscription, {
        "type": "snapshot",
        "order": OrderResponse.model_validate(order).model_dump(mode="json"),
    })
