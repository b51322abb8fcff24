"""Shared route dependencies and helpers."""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from menumagi.database import get_db
from menumagi.models import MenuItem, Order, Owner
from menumagi.schemas import MenuItemResponse, OrderResponse
from menumagi.services.auth import decode_access_token
from menumagi.services.realtime import ChangeEvent, ChangeType, get_change_feed

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def owner_from_token(db: AsyncSession, token: Optional[str]) -> Optional[Owner]:
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None
    return await db.get(Owner, payload["uid"])


async def get_current_owner(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Owner:
    """Resolve the bearer token to an owner, or 401."""
    owner = await owner_from_token(db, credentials.credentials if credentials else None)
    if owner is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return owner


def publish_order_change(event: ChangeType, order: Order, old: Optional[dict] = None) -> dict:
    """Push an order change to WebSocket subscribers; returns the new row."""
    new = OrderResponse.model_validate(order).model_dump(mode="json")
    get_change_feed().publish(ChangeEvent(
        table="orders",
        event=event,
        record_id=order.id,
        owner_id=order.owner_id,
        new=new if event != ChangeType.DELETE else None,
        old=old,
    ))
    return new


def publish_menu_change(event: ChangeType, item: MenuItem, old: Optional[dict] = None) -> None:
    snapshot = MenuItemResponse.model_validate(item).model_dump(mode="json")
    get_change_feed().publish(ChangeEvent(
        table="menu_items",
        event=event,
        record_id=item.id,
        owner_id=item.owner_id,
        new=None if event == ChangeType.DELETE else snapshot,
        old=snapshot if event == ChangeType.DELETE else old,
    ))
