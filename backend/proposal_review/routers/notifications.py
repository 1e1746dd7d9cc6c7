"""Notification inbox router.  Every operation is scoped to the caller."""

import logging

from fastapi import APIRouter, Depends, Query, status

from proposal_review.deps import get_current_caller, get_store
from proposal_review.models.notification import (
    BulkUpdateResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from proposal_review.services import notification_service
from proposal_review.services.access_control import CallerIdentity
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["notifications"])


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """The caller's notifications, newest first."""
    notifications = await notification_service.list_notifications(
        store, caller.user_id, unread_only=unread_only
    )
    items = [NotificationResponse.model_validate(n) for n in notifications]
    return NotificationListResponse(
        notifications=items,
        total=len(items),
        unread_count=await notification_service.unread_count(store, caller.user_id),
    )


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return UnreadCountResponse(
        unread_count=await notification_service.unread_count(store, caller.user_id)
    )


@router.patch("/notifications/read-all", response_model=BulkUpdateResponse)
async def mark_all_read(
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    updated = await notification_service.mark_all_read(store, caller.user_id)
    return BulkUpdateResponse(updated=updated)


@router.patch(
    "/notifications/{notification_id}/read",
    response_model=NotificationResponse,
)
async def mark_read(
    notification_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    notification = await notification_service.mark_read(
        store, caller.user_id, notification_id
    )
    return NotificationResponse.model_validate(notification)


@router.delete("/notifications", response_model=BulkUpdateResponse)
async def dismiss_all(
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    removed = await notification_service.dismiss_all(store, caller.user_id)
    return BulkUpdateResponse(updated=removed)


@router.delete(
    "/notifications/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def dismiss(
    notification_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    await notification_service.dismiss(store, caller.user_id, notification_id)
