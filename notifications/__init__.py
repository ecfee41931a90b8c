"""Notifications module for the per-user inbox and live push.

This module provides:
1. Persisting notifications and relaying them to connected users
2. Inbox listing, read/unread flags and deletion
3. The PushHub that tracks live WebSocket connections
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from common import NotFoundError, Page, page_window
from . import db
from .models import (
    TEMPLATES,
    AdminMessageRef,
    NotificationOut,
    NotificationType,
    RelatedRef,
    SwapRequestRef,
    UserRef,
)
from .push import PushHub

logger = logging.getLogger(__name__)


class NotificationNotFoundError(NotFoundError):
    """Raised when a notification is not found for its owner."""
    pass


class NotificationManager:
    """Manages the notification inbox and push delivery."""

    def __init__(self, pool, hub: Optional[PushHub] = None):
        """Initialize notification manager.

        Args:
            pool: Database pool
            hub: Push hub for live delivery. Without one, notifications are
                only persisted.
        """
        self.pool = pool
        self.hub = hub

    async def notify(
        self,
        user_id: UUID,
        type: NotificationType,
        title: Optional[str] = None,
        message: Optional[str] = None,
        related: Optional[RelatedRef] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Persist a notification and push it to the user if online.

        Title and message default to the template for the type. The row is
        written before the push; push failures never raise.

        Returns:
            The stored notification
        """
        type = NotificationType(type)
        default_title, default_message = TEMPLATES[type]

        async with self.pool.acquire() as conn:
            notification = await db.insert_notification(
                conn,
                user_id=user_id,
                type=type.value,
                title=title or default_title,
                message=message or default_message,
                related_type=related.kind if related else None,
                related_id=related.id if related else None,
                metadata=metadata
            )

        await self.emit(user_id, 'notification', NotificationOut.model_validate(notification))
        return notification

    async def emit(self, user_id: UUID, event: str, payload: Any = None) -> int:
        """Best-effort live event. Returns the number of connections reached."""
        if self.hub is None:
            return 0
        try:
            return await self.hub.emit(user_id, event, payload)
        except Exception as e:
            logger.warning(f"Push of {event} to user {user_id} failed: {e}")
            return 0

    async def list(
        self,
        user_id: UUID,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20
    ) -> Page:
        async with self.pool.acquire() as conn:
            notifications, total = await db.list_notifications(
                conn,
                user_id,
                unread_only=unread_only,
                offset=page_window(page, limit),
                limit=limit
            )
        return Page(items=notifications, total=total, page=page, limit=limit)

    async def unread_count(self, user_id: UUID) -> int:
        async with self.pool.acquire() as conn:
            return await db.unread_count(conn, user_id)

    async def _set_read(self, user_id: UUID, notification_id: UUID, is_read: bool) -> Dict[str, Any]:
        async with self.pool.acquire() as conn:
            notification = await db.set_read(conn, user_id, notification_id, is_read)
        if not notification:
            raise NotificationNotFoundError("Notification not found")
        return notification

    async def mark_read(self, user_id: UUID, notification_id: UUID) -> Dict[str, Any]:
        return await self._set_read(user_id, notification_id, True)

    async def mark_unread(self, user_id: UUID, notification_id: UUID) -> Dict[str, Any]:
        return await self._set_read(user_id, notification_id, False)

    async def mark_all_read(self, user_id: UUID) -> int:
        async with self.pool.acquire() as conn:
            return await db.mark_all_read(conn, user_id)

    async def delete(self, user_id: UUID, notification_id: UUID) -> None:
        async with self.pool.acquire() as conn:
            deleted = await db.delete_notification(conn, user_id, notification_id)
        if not deleted:
            raise NotificationNotFoundError("Notification not found")


# Export public interface
__all__ = [
    'NotificationManager',
    'NotificationNotFoundError',
    'NotificationType',
    'NotificationOut',
    'PushHub',
    'RelatedRef',
    'SwapRequestRef',
    'UserRef',
    'AdminMessageRef',
]
