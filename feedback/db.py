"""SQL for feedback slots and user rating aggregates."""
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import asyncpg

from swaps.db import FEEDBACK_SLOTS, SWAP_SELECT, swap_record


async def set_feedback_slot(
    conn: asyncpg.Connection,
    swap_id: UUID,
    slot: str,
    rating: int,
    comment: Optional[str] = None
) -> bool:
    """Fill a feedback slot if the swap is completed and the slot is empty.

    Returns:
        True if the slot was written
    """
    if slot not in FEEDBACK_SLOTS:
        raise ValueError(f"Unknown feedback slot: {slot}")
    written = await conn.fetchval(
        f'''
        UPDATE swap_requests
        SET
            {slot}_rating = $2,
            {slot}_comment = $3,
            {slot}_submitted_at = now()
        WHERE id = $1
        AND status = 'completed'
        AND {slot}_rating IS NULL
        RETURNING id
        ''',
        swap_id,
        rating,
        comment
    )
    return written is not None


async def get_rating(
    conn: asyncpg.Connection,
    user_id: UUID,
    for_update: bool = False
) -> Optional[Dict[str, Any]]:
    lock = ' FOR UPDATE' if for_update else ''
    row = await conn.fetchrow(
        f'SELECT rating, review_count FROM users WHERE id = $1{lock}',
        user_id
    )
    return dict(row) if row else None


async def set_rating(conn: asyncpg.Connection, user_id: UUID, rating: float, review_count: int) -> None:
    await conn.execute(
        'UPDATE users SET rating = $2, review_count = $3 WHERE id = $1',
        user_id,
        rating,
        review_count
    )


async def completed_swaps(
    conn: asyncpg.Connection,
    user_id: UUID,
    offset: int = 0,
    limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    """A user's completed swaps, most recently completed first."""
    total = await conn.fetchval(
        '''
        SELECT COUNT(*) FROM swap_requests
        WHERE status = 'completed'
        AND (from_user_id = $1 OR to_user_id = $1)
        ''',
        user_id
    )
    rows = await conn.fetch(
        f'''
        {SWAP_SELECT}
        WHERE s.status = 'completed'
        AND (s.from_user_id = $1 OR s.to_user_id = $1)
        ORDER BY s.completed_at DESC, s.id
        LIMIT $2 OFFSET $3
        ''',
        user_id,
        limit,
        offset
    )
    return [swap_record(row) for row in rows], total


async def feedback_summary(conn: asyncpg.Connection, user_id: UUID) -> Dict[str, int]:
    row = await conn.fetchrow(
        '''
        SELECT
            COUNT(*) AS completed_swaps,
            COUNT(*) FILTER (
                WHERE from_user_rating IS NOT NULL OR to_user_rating IS NOT NULL
            ) AS swaps_with_feedback
        FROM swap_requests
        WHERE status = 'completed'
        AND (from_user_id = $1 OR to_user_id = $1)
        ''',
        user_id
    )
    return dict(row)


async def received_ratings(conn: asyncpg.Connection, user_id: UUID) -> List[int]:
    """Ratings other participants gave this user, oldest first."""
    rows = await conn.fetch(
        '''
        SELECT rating FROM (
            SELECT from_user_rating AS rating, from_user_submitted_at AS submitted_at
            FROM swap_requests
            WHERE to_user_id = $1 AND from_user_rating IS NOT NULL
            UNION ALL
            SELECT to_user_rating AS rating, to_user_submitted_at AS submitted_at
            FROM swap_requests
            WHERE from_user_id = $1 AND to_user_rating IS NOT NULL
        ) received
        ORDER BY submitted_at
        ''',
        user_id
    )
    return [row['rating'] for row in rows]
