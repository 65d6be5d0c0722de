"""Notification endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Query

from ..domain.schemas import NotificationOut
from ..ledger import NotificationEmitter
from .deps import current_user_id, get_notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationOut])
async def list_notifications(
    unread_only: bool = Query(default=False),
    user_id: str = Depends(current_user_id),
    emitter: NotificationEmitter = Depends(get_notifications),
) -> List[NotificationOut]:
    """Return the caller's notifications, newest first."""
    items = await emitter.list_for(user_id, unread_only=unread_only)
    return [NotificationOut.from_domain(n) for n in items]


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: str,
    user_id: str = Depends(current_user_id),
    emitter: NotificationEmitter = Depends(get_notifications),
) -> NotificationOut:
    """Mark one of the caller's notifications as read."""
    return NotificationOut.from_domain(await emitter.mark_read(notification_id, user_id))
