"""Swaps module for managing skill swap requests.

This module provides functionality for:
- Creating swap requests between two members
- Accepting, rejecting, cancelling and completing them
- Listing a member's swaps and per-status statistics
- Notifying the counterparty after each change
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

import asyncpg

from common import ConflictError, InvalidRequestError, NotFoundError, Page, page_window
from notifications import NotificationType, SwapRequestRef
from users import db as users_db
from . import db
from .lifecycle import (
    SwapAction,
    SwapPermissionError,
    SwapStateError,
    SwapStatus,
    check_transition,
    counterparty,
    participant_role,
)
from .models import SwapDirection, SwapOut

logger = logging.getLogger(__name__)

# Notification sent to the counterparty after each action
ACTION_NOTIFICATIONS = {
    SwapAction.ACCEPT: NotificationType.SWAP_ACCEPTED,
    SwapAction.REJECT: NotificationType.SWAP_REJECTED,
    SwapAction.COMPLETE: NotificationType.SWAP_COMPLETED,
}

ACTION_PAST_TENSE = {
    SwapAction.ACCEPT: 'accepted',
    SwapAction.REJECT: 'rejected',
    SwapAction.CANCEL: 'cancelled',
    SwapAction.COMPLETE: 'completed',
}


class SwapNotFoundError(NotFoundError):
    """Raised when a swap request is not found."""
    pass


class RecipientNotFoundError(NotFoundError):
    """Raised when the requested swap partner doesn't exist or is banned."""
    pass


class DuplicateSwapError(ConflictError):
    """Raised when two users already have a pending swap."""
    pass


class SwapManager:
    """Manager class for swap request operations."""

    def __init__(self, pool, notifications=None):
        """Initialize the swap manager.

        Args:
            pool: Database pool
            notifications: Optional NotificationManager used for best-effort
                          notifications and push events
        """
        self.pool = pool
        self.notifications = notifications

    async def create(
        self,
        requester_id: UUID,
        to_user_id: UUID,
        skill_offered: str,
        skill_wanted: str,
        message: str
    ) -> Dict[str, Any]:
        """Create a pending swap request.

        Args:
            requester_id: User making the request
            to_user_id: User receiving the request
            skill_offered: Skill the requester will teach
            skill_wanted: Skill the requester wants to learn
            message: Note to the recipient

        Returns:
            The created swap

        Raises:
            InvalidRequestError: If requester and recipient are the same user
            RecipientNotFoundError: If the recipient doesn't exist or is banned
            DuplicateSwapError: If a pending swap already exists between the pair
        """
        if requester_id == to_user_id:
            raise InvalidRequestError(
                "Cannot create swap request with yourself",
                errors=[{'field': 'to_user_id', 'message': 'Cannot create swap request with yourself'}]
            )

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                recipient = await users_db.get_user(conn, to_user_id)
                if not recipient or recipient['is_banned']:
                    raise RecipientNotFoundError("User not found")

                if await db.find_pending_between(conn, requester_id, to_user_id):
                    raise DuplicateSwapError(
                        "A pending swap request already exists between these users"
                    )

                try:
                    swap = await db.insert_swap(
                        conn,
                        from_user_id=requester_id,
                        to_user_id=to_user_id,
                        skill_offered=skill_offered,
                        skill_wanted=skill_wanted,
                        message=message
                    )
                except asyncpg.UniqueViolationError:
                    raise DuplicateSwapError(
                        "A pending swap request already exists between these users"
                    )

        logger.info(f"Swap {swap['id']} created: {requester_id} -> {to_user_id}")

        await self._notify(swap, to_user_id, NotificationType.SWAP_REQUEST)
        await self._emit(to_user_id, 'new-swap-request', {
            'swap_request': SwapOut.model_validate(swap),
            'from_user': swap['from_user'],
        })
        return swap

    async def get(self, swap_id: UUID, viewer_id: UUID) -> Dict[str, Any]:
        """Get a swap visible to one of its participants.

        Raises:
            SwapNotFoundError: If the swap doesn't exist
            SwapPermissionError: If viewer is not a participant
        """
        async with self.pool.acquire() as conn:
            swap = await db.get_swap(conn, swap_id)
        if not swap:
            raise SwapNotFoundError("Swap request not found")
        if participant_role(swap, viewer_id) is None:
            raise SwapPermissionError("Not authorized to view this swap request")
        return swap

    async def _transition(self, swap_id: UUID, actor_id: UUID, action: SwapAction) -> Dict[str, Any]:
        """Lock, check and update a swap in one transaction."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                swap = await db.get_swap(conn, swap_id, for_update=True)
                if not swap:
                    raise SwapNotFoundError("Swap request not found")
                new_status = check_transition(swap, action, actor_id)
                swap = await db.update_status(conn, swap_id, new_status.value)

        logger.info(f"Swap {swap_id} {ACTION_PAST_TENSE[action]} by {actor_id}")
        await self._after_transition(swap, action, actor_id)
        return swap

    async def _after_transition(self, swap: Dict[str, Any], action: SwapAction, actor_id: UUID):
        if action not in ACTION_NOTIFICATIONS:
            return

        other = counterparty(swap, actor_id)
        notification_type = ACTION_NOTIFICATIONS[action]
        recipients = [swap['from_user_id'], swap['to_user_id']] if action == SwapAction.COMPLETE else [other]
        for user_id in recipients:
            await self._notify(swap, user_id, notification_type)

        await self._emit(other, 'swap-request-updated', {
            'swap_request': SwapOut.model_validate(swap),
            'action': ACTION_PAST_TENSE[action],
            'updated_by': actor_id,
        })

    async def _notify(self, swap: Dict[str, Any], user_id: UUID, notification_type: NotificationType):
        if self.notifications is None:
            return
        try:
            await self.notifications.notify(
                user_id,
                notification_type,
                related=SwapRequestRef(id=swap['id']),
                metadata={
                    'skill_offered': swap['skill_offered'],
                    'skill_wanted': swap['skill_wanted'],
                }
            )
        except Exception as e:
            logger.error(f"Failed to create {notification_type.value} notification for swap {swap['id']}: {e}")

    async def _emit(self, user_id: UUID, event: str, payload: Dict[str, Any]):
        if self.notifications is None:
            return
        try:
            await self.notifications.emit(user_id, event, payload)
        except Exception as e:
            logger.error(f"Failed to push {event} to user {user_id}: {e}")

    async def accept(self, swap_id: UUID, actor_id: UUID) -> Dict[str, Any]:
        return await self._transition(swap_id, actor_id, SwapAction.ACCEPT)

    async def reject(self, swap_id: UUID, actor_id: UUID) -> Dict[str, Any]:
        return await self._transition(swap_id, actor_id, SwapAction.REJECT)

    async def cancel(self, swap_id: UUID, actor_id: UUID) -> Dict[str, Any]:
        return await self._transition(swap_id, actor_id, SwapAction.CANCEL)

    async def complete(self, swap_id: UUID, actor_id: UUID) -> Dict[str, Any]:
        return await self._transition(swap_id, actor_id, SwapAction.COMPLETE)

    async def list_for_user(
        self,
        user_id: UUID,
        status: Optional[SwapStatus] = None,
        direction: Optional[SwapDirection] = None,
        page: int = 1,
        limit: int = 20
    ) -> Page:
        """List a user's swaps, newest first."""
        async with self.pool.acquire() as conn:
            swaps, total = await db.list_swaps(
                conn,
                user_id=user_id,
                status=SwapStatus(status).value if status else None,
                direction=SwapDirection(direction).value if direction else None,
                offset=page_window(page, limit),
                limit=limit
            )
        return Page(items=swaps, total=total, page=page, limit=limit)

    async def list_all(
        self,
        status: Optional[SwapStatus] = None,
        page: int = 1,
        limit: int = 20
    ) -> Page:
        """List every swap, for moderation."""
        async with self.pool.acquire() as conn:
            swaps, total = await db.list_swaps(
                conn,
                status=SwapStatus(status).value if status else None,
                offset=page_window(page, limit),
                limit=limit
            )
        return Page(items=swaps, total=total, page=page, limit=limit)

    async def stats_for_user(self, user_id: UUID) -> Dict[str, int]:
        """Per-status counts plus totals for a user's swaps."""
        async with self.pool.acquire() as conn:
            counts = await db.status_counts(conn, user_id)
            pending_received = await db.pending_received_count(conn, user_id)

        stats = {status.value: counts.get(status.value, 0) for status in SwapStatus}
        stats['total'] = sum(counts.values())
        stats['pending_received'] = pending_received
        return stats


# Export public interface
__all__ = [
    'SwapManager',
    'SwapNotFoundError',
    'RecipientNotFoundError',
    'DuplicateSwapError',
    'SwapPermissionError',
    'SwapStateError',
    'SwapStatus',
    'SwapAction',
]
