"""Feedback module for post-swap ratings.

Each completed swap has two feedback slots, one per participant. Filling a
slot folds the rating into the other participant's running average.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from common import (
    AuthorizationError,
    ConflictError,
    DuplicateFeedbackError,
    InvalidRequestError,
    NotFoundError,
    Page,
    page_window,
)
from notifications import NotificationType, SwapRequestRef
from swaps import db as swaps_db
from swaps.lifecycle import SwapRole, SwapStatus, counterparty, is_feedback_complete, participant_role
from swaps.models import SwapOut
from . import db
from .models import COMMENT_MAX_LENGTH, MAX_RATING, MIN_RATING
from .rating import fold_rating, mean_rating

logger = logging.getLogger(__name__)

# Slot written by each participant
SLOT_FOR_ROLE = {
    SwapRole.REQUESTER: 'from_user',
    SwapRole.RECIPIENT: 'to_user',
}


class FeedbackSwapNotFoundError(NotFoundError):
    """Raised when feedback refers to a missing swap."""
    pass


class FeedbackPermissionError(AuthorizationError):
    """Raised when a non-participant tries to read or leave feedback."""
    pass


class FeedbackStateError(ConflictError):
    """Raised when feedback is given for a swap that is not completed."""
    pass


def _validate(rating: Any, comment: Optional[str]):
    errors = []
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        errors.append({'field': 'rating', 'message': f'Rating must be between {MIN_RATING} and {MAX_RATING}'})
    if comment is not None and len(comment) > COMMENT_MAX_LENGTH:
        errors.append({'field': 'comment', 'message': f'Comment cannot exceed {COMMENT_MAX_LENGTH} characters'})
    if errors:
        raise InvalidRequestError("Validation error", errors=errors)


class FeedbackManager:
    """Records feedback and maintains rating aggregates."""

    def __init__(self, pool, notifications=None):
        self.pool = pool
        self.notifications = notifications

    async def submit(
        self,
        swap_id: UUID,
        user_id: UUID,
        rating: int,
        comment: Optional[str] = None
    ) -> Dict[str, Any]:
        """Leave feedback on a completed swap.

        The slot write and the rating fold happen in one transaction, with
        the swap row locked before the rated user's row.

        Args:
            swap_id: Swap being rated
            user_id: Participant leaving feedback
            rating: Integer 1-5
            comment: Optional comment up to 200 characters

        Returns:
            The updated swap

        Raises:
            InvalidRequestError: If rating or comment are out of range
            FeedbackSwapNotFoundError: If the swap doesn't exist
            FeedbackPermissionError: If user_id is not a participant
            FeedbackStateError: If the swap is not completed
            DuplicateFeedbackError: If this participant already left feedback
        """
        _validate(rating, comment)

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                swap = await swaps_db.get_swap(conn, swap_id, for_update=True)
                if not swap:
                    raise FeedbackSwapNotFoundError("Swap request not found")

                role = participant_role(swap, user_id)
                if role is None:
                    raise FeedbackPermissionError("Not authorized to give feedback for this swap")
                if swap['status'] != SwapStatus.COMPLETED.value:
                    raise FeedbackStateError("Can only give feedback for completed swaps")

                slot = SLOT_FOR_ROLE[role]
                if swap['feedback'][slot] is not None:
                    raise DuplicateFeedbackError("You have already given feedback for this swap")
                if not await db.set_feedback_slot(conn, swap_id, slot, rating, comment):
                    raise DuplicateFeedbackError("You have already given feedback for this swap")

                target_id = counterparty(swap, user_id)
                current = await db.get_rating(conn, target_id, for_update=True)
                new_rating, new_count = fold_rating(current['rating'], current['review_count'], rating)
                await db.set_rating(conn, target_id, new_rating, new_count)

                swap = await swaps_db.get_swap(conn, swap_id)

        logger.info(
            f"Feedback {rating} on swap {swap_id} from {user_id}; "
            f"user {target_id} now {new_rating:.2f} over {new_count}"
        )

        if is_feedback_complete(swap):
            await self._feedback_complete(swap)
        return swap

    async def _feedback_complete(self, swap: Dict[str, Any]):
        if self.notifications is None:
            return
        payload = {'swap_request': SwapOut.model_validate(swap)}
        for user_id in (swap['from_user_id'], swap['to_user_id']):
            try:
                await self.notifications.notify(
                    user_id,
                    NotificationType.FEEDBACK_RECEIVED,
                    related=SwapRequestRef(id=swap['id'])
                )
                await self.notifications.emit(user_id, 'feedback-received', payload)
            except Exception as e:
                logger.error(f"Failed to notify {user_id} of completed feedback on swap {swap['id']}: {e}")

    async def get(self, swap_id: UUID, viewer_id: UUID) -> Dict[str, Any]:
        """Feedback for a swap, visible to its participants."""
        async with self.pool.acquire() as conn:
            swap = await swaps_db.get_swap(conn, swap_id)
        if not swap:
            raise FeedbackSwapNotFoundError("Swap request not found")
        if participant_role(swap, viewer_id) is None:
            raise FeedbackPermissionError("Not authorized to view feedback for this swap")
        return {
            'swap_id': swap['id'],
            'status': swap['status'],
            'feedback': swap['feedback'],
            'is_feedback_complete': is_feedback_complete(swap),
        }

    async def list_for_user(self, user_id: UUID, page: int = 1, limit: int = 20) -> Page:
        """Completed swaps of a user with their feedback."""
        async with self.pool.acquire() as conn:
            swaps, total = await db.completed_swaps(
                conn,
                user_id,
                offset=page_window(page, limit),
                limit=limit
            )
        return Page(items=swaps, total=total, page=page, limit=limit)

    async def stats_for_user(self, user_id: UUID) -> Dict[str, Any]:
        """Stored aggregate next to a fold over the ratings actually received."""
        async with self.pool.acquire() as conn:
            stored = await db.get_rating(conn, user_id)
            summary = await db.feedback_summary(conn, user_id)
            ratings = await db.received_ratings(conn, user_id)

        if not stored:
            raise NotFoundError("User not found")

        average_received, received_count = mean_rating(ratings)
        return {
            'rating': stored['rating'],
            'review_count': stored['review_count'],
            'completed_swaps': summary['completed_swaps'],
            'swaps_with_feedback': summary['swaps_with_feedback'],
            'ratings_received': received_count,
            'average_received': round(average_received, 1),
        }


# Export public interface
__all__ = [
    'FeedbackManager',
    'FeedbackSwapNotFoundError',
    'FeedbackPermissionError',
    'FeedbackStateError',
    'DuplicateFeedbackError',
    'fold_rating',
]
