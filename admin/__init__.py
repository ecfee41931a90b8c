"""Admin module for dashboards and broadcast messaging.

This module provides:
1. Platform statistics for the admin dashboard
2. Admin message CRUD and expiry handling
3. Broadcast fan-out of messages into user inboxes
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from common import NotFoundError, Page, page_window
from notifications import AdminMessageRef, NotificationType
from swaps import db as swaps_db
from swaps.lifecycle import SwapStatus
from users import db as users_db
from . import db
from .models import AdminMessageType

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5
POPULAR_SKILLS_LIMIT = 5


class AdminMessageNotFoundError(NotFoundError):
    """Raised when an admin message is not found."""
    pass


class AdminManager:
    """Manager class for admin-only operations."""

    def __init__(self, pool, notifications=None):
        """Initialize the admin manager.

        Args:
            pool: Database pool
            notifications: NotificationManager used to fan out messages
        """
        self.pool = pool
        self.notifications = notifications

    async def dashboard(self) -> Dict[str, Any]:
        """Collect user and swap statistics plus recent activity."""
        async with self.pool.acquire() as conn:
            users = await users_db.user_counts(conn)
            counts = await swaps_db.status_counts(conn)
            recent_users = await users_db.recent_users(conn, RECENT_ACTIVITY_LIMIT)
            recent_swaps, _ = await swaps_db.list_swaps(conn, limit=RECENT_ACTIVITY_LIMIT)
            popular = await users_db.popular_skills(conn, POPULAR_SKILLS_LIMIT)

        by_status = {status.value: counts.get(status.value, 0) for status in SwapStatus}
        return {
            'users': users,
            'swaps': {
                'total': sum(counts.values()),
                'completed': by_status[SwapStatus.COMPLETED.value],
                'pending': by_status[SwapStatus.PENDING.value],
                'by_status': by_status,
            },
            'recent_activity': {
                'users': recent_users,
                'swaps': recent_swaps,
            },
            'popular_skills': popular,
        }

    async def create_message(
        self,
        created_by: UUID,
        title: str,
        message: str,
        type: AdminMessageType = AdminMessageType.INFO,
        is_global: bool = False,
        target_users: Optional[List[UUID]] = None,
        expires_at: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Create an admin message and deliver it to user inboxes.

        Returns:
            Dict containing:
                - message: The stored admin message
                - delivered: Notifications written
                - failed: Notifications that could not be written
        """
        targets = list(dict.fromkeys(target_users or []))

        async with self.pool.acquire() as conn:
            admin_message = await db.insert_message(
                conn,
                title=title,
                message=message,
                type=AdminMessageType(type).value,
                is_global=is_global,
                target_users=targets,
                expires_at=expires_at,
                created_by=created_by
            )

        logger.info(
            f"Admin message {admin_message['id']} created by {created_by} "
            f"({'global' if is_global else f'{len(targets)} targets'})"
        )

        delivered, failed = await self.broadcast(admin_message)
        return {
            'message': admin_message,
            'delivered': delivered,
            'failed': failed,
        }

    async def broadcast(self, admin_message: Dict[str, Any]) -> Tuple[int, int]:
        """Write one notification per recipient.

        Each write is independent: a failure is logged and counted and the
        remaining recipients are still attempted. Nothing is rolled back.

        Returns:
            Tuple of (delivered, failed)
        """
        if self.notifications is None:
            return 0, 0

        if admin_message['is_global']:
            async with self.pool.acquire() as conn:
                recipients = await users_db.active_user_ids(conn)
        else:
            recipients = admin_message['target_users']

        delivered = failed = 0
        for user_id in recipients:
            try:
                await self.notifications.notify(
                    user_id,
                    NotificationType.ADMIN_MESSAGE,
                    title=admin_message['title'],
                    message=admin_message['message'],
                    related=AdminMessageRef(id=admin_message['id']),
                    metadata={'message_type': admin_message['type']}
                )
                delivered += 1
            except Exception as e:
                failed += 1
                logger.error(f"Failed to deliver admin message {admin_message['id']} to {user_id}: {e}")

        if failed:
            logger.warning(
                f"Admin message {admin_message['id']} delivered to {delivered} users, {failed} failed"
            )
        else:
            logger.info(f"Admin message {admin_message['id']} delivered to {delivered} users")
        return delivered, failed

    async def list_messages(
        self,
        type: Optional[AdminMessageType] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 20
    ) -> Page:
        async with self.pool.acquire() as conn:
            messages, total = await db.list_messages(
                conn,
                type=AdminMessageType(type).value if type else None,
                is_active=is_active,
                offset=page_window(page, limit),
                limit=limit
            )
        return Page(items=messages, total=total, page=page, limit=limit)

    async def get_message(self, message_id: UUID) -> Dict[str, Any]:
        async with self.pool.acquire() as conn:
            message = await db.get_message(conn, message_id)
        if not message:
            raise AdminMessageNotFoundError("Admin message not found")
        return message

    async def update_message(self, message_id: UUID, **fields) -> Dict[str, Any]:
        """Partially update a message. None values are ignored."""
        updates = {key: value for key, value in fields.items() if value is not None}
        if 'type' in updates:
            updates['type'] = AdminMessageType(updates['type']).value

        async with self.pool.acquire() as conn:
            message = await db.update_message(conn, message_id, updates)
        if not message:
            raise AdminMessageNotFoundError("Admin message not found")
        logger.info(f"Updated admin message {message_id}")
        return message

    async def delete_message(self, message_id: UUID) -> None:
        async with self.pool.acquire() as conn:
            deleted = await db.delete_message(conn, message_id)
        if not deleted:
            raise AdminMessageNotFoundError("Admin message not found")
        logger.info(f"Deleted admin message {message_id}")

    async def deactivate_expired(self) -> int:
        async with self.pool.acquire() as conn:
            count = await db.deactivate_expired(conn)
        if count:
            logger.info(f"Deactivated {count} expired admin messages")
        return count

    async def active_messages_for(self, user_id: UUID) -> List[Dict[str, Any]]:
        async with self.pool.acquire() as conn:
            return await db.active_messages_for(conn, user_id)


# Export public interface
__all__ = [
    'AdminManager',
    'AdminMessageNotFoundError',
    'AdminMessageType',
]
