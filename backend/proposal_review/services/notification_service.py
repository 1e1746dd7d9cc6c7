"""Notification fan-out and per-user inbox operations.

Notifications are only ever created as a side effect of another record's
state change.  The actor that caused an event never receives it.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv

from proposal_review.exceptions import NotFoundError
from proposal_review.models.db.notification import Notification
from proposal_review.store import RecordStore

load_dotenv()

logger = logging.getLogger(__name__)

APP_BASE_PATH = os.getenv("APP_BASE_PATH", "/rfp").rstrip("/")

# Notification type tags
TYPE_COMMENT = "comment"
TYPE_SUGGESTION = "suggestion"
TYPE_SUGGESTION_ACCEPTED = "suggestion_accepted"
TYPE_SUGGESTION_REJECTED = "suggestion_rejected"


def proposal_questions_link(proposal_id: int) -> str:
    """Deep link to a proposal's question/answer page."""
    return f"{APP_BASE_PATH}/{proposal_id}/questions"


async def notify(
    store: RecordStore,
    target_user_id: Optional[int],
    title: str,
    message: str,
    type: str,
    link: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> Optional[Notification]:
    """Append an unread notification to *target_user_id*'s inbox.

    Returns ``None`` without writing when there is no target or when the
    target is the actor who caused the event.
    """
    if target_user_id is None:
        return None
    if actor_id is not None and target_user_id == actor_id:
        return None

    notification = await store.notifications.create(
        Notification(
            user_id=target_user_id,
            title=title,
            message=message,
            type=type,
            link=link,
            is_read=False,
        )
    )
    logger.info(
        "Notification %s (%s) queued for user %s", notification.id, type, target_user_id
    )
    return notification


async def list_notifications(
    store: RecordStore,
    user_id: int,
    unread_only: bool = False,
) -> list[Notification]:
    """Return *user_id*'s notifications, newest first."""
    filters = {"user_id": user_id}
    if unread_only:
        filters["is_read"] = False
    return await store.notifications.list(order_by=("-created_at", "-id"), **filters)


async def unread_count(store: RecordStore, user_id: int) -> int:
    return len(await list_notifications(store, user_id, unread_only=True))


async def _get_own_notification(
    store: RecordStore, user_id: int, notification_id: int
) -> Notification:
    notification = await store.notifications.get(notification_id)
    # Someone else's notification is reported as missing, not forbidden
    if notification is None or notification.user_id != user_id:
        raise NotFoundError("Notification not found")
    return notification


async def mark_read(
    store: RecordStore, user_id: int, notification_id: int
) -> Notification:
    notification = await _get_own_notification(store, user_id, notification_id)
    if notification.is_read:
        return notification
    return await store.notifications.update(
        notification, is_read=True, read_at=datetime.now(timezone.utc)
    )


async def mark_all_read(store: RecordStore, user_id: int) -> int:
    """Mark every unread notification read; return how many changed."""
    unread = await list_notifications(store, user_id, unread_only=True)
    now = datetime.now(timezone.utc)
    for notification in unread:
        await store.notifications.update(notification, is_read=True, read_at=now)
    return len(unread)


async def dismiss(store: RecordStore, user_id: int, notification_id: int) -> None:
    notification = await _get_own_notification(store, user_id, notification_id)
    await store.notifications.delete(notification)


async def dismiss_all(store: RecordStore, user_id: int) -> int:
    """Remove every notification for *user_id*; return how many were removed."""
    notifications = await store.notifications.list(user_id=user_id)
    for notification in notifications:
        await store.notifications.delete(notification)
    return len(notifications)
