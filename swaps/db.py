"""SQL for swap requests."""
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import asyncpg

SWAP_SELECT = '''
    SELECT
        s.id, s.from_user_id, s.to_user_id,
        s.skill_offered, s.skill_wanted, s.message, s.status,
        s.from_user_rating, s.from_user_comment, s.from_user_submitted_at,
        s.to_user_rating, s.to_user_comment, s.to_user_submitted_at,
        s.completed_at, s.created_at, s.updated_at,
        fu.name AS fu_name, fu.photo AS fu_photo,
        fu.rating AS fu_rating, fu.review_count AS fu_review_count,
        tu.name AS tu_name, tu.photo AS tu_photo,
        tu.rating AS tu_rating, tu.review_count AS tu_review_count
    FROM swap_requests s
    JOIN users fu ON fu.id = s.from_user_id
    JOIN users tu ON tu.id = s.to_user_id
'''

FEEDBACK_SLOTS = ('from_user', 'to_user')


def _feedback_entry(row: asyncpg.Record, slot: str) -> Optional[Dict[str, Any]]:
    if row[f'{slot}_rating'] is None:
        return None
    return {
        'rating': row[f'{slot}_rating'],
        'comment': row[f'{slot}_comment'],
        'submitted_at': row[f'{slot}_submitted_at'],
    }


def swap_record(row: Optional[asyncpg.Record]) -> Optional[Dict[str, Any]]:
    """Shape a SWAP_SELECT row into a nested swap dict."""
    if row is None:
        return None
    return {
        'id': row['id'],
        'from_user_id': row['from_user_id'],
        'to_user_id': row['to_user_id'],
        'from_user': {
            'id': row['from_user_id'],
            'name': row['fu_name'],
            'photo': row['fu_photo'],
            'rating': row['fu_rating'],
            'review_count': row['fu_review_count'],
        },
        'to_user': {
            'id': row['to_user_id'],
            'name': row['tu_name'],
            'photo': row['tu_photo'],
            'rating': row['tu_rating'],
            'review_count': row['tu_review_count'],
        },
        'skill_offered': row['skill_offered'],
        'skill_wanted': row['skill_wanted'],
        'message': row['message'],
        'status': row['status'],
        'feedback': {slot: _feedback_entry(row, slot) for slot in FEEDBACK_SLOTS},
        'completed_at': row['completed_at'],
        'created_at': row['created_at'],
        'updated_at': row['updated_at'],
    }


async def get_swap(
    conn: asyncpg.Connection,
    swap_id: UUID,
    for_update: bool = False
) -> Optional[Dict[str, Any]]:
    """Get a swap with participant summaries, optionally locking its row."""
    lock = ' FOR UPDATE OF s' if for_update else ''
    row = await conn.fetchrow(f'{SWAP_SELECT} WHERE s.id = $1{lock}', swap_id)
    return swap_record(row)


async def find_pending_between(
    conn: asyncpg.Connection,
    user_a: UUID,
    user_b: UUID
) -> Optional[UUID]:
    """Id of a pending swap between two users in either direction."""
    return await conn.fetchval(
        '''
        SELECT id FROM swap_requests
        WHERE status = 'pending'
        AND (
            (from_user_id = $1 AND to_user_id = $2)
            OR (from_user_id = $2 AND to_user_id = $1)
        )
        LIMIT 1
        ''',
        user_a,
        user_b
    )


async def insert_swap(
    conn: asyncpg.Connection,
    from_user_id: UUID,
    to_user_id: UUID,
    skill_offered: str,
    skill_wanted: str,
    message: str
) -> Dict[str, Any]:
    """Insert a pending swap.

    Raises asyncpg.UniqueViolationError when the pair already has a
    pending swap.
    """
    swap_id = await conn.fetchval(
        '''
        INSERT INTO swap_requests (
            from_user_id, to_user_id, skill_offered, skill_wanted, message
        ) VALUES ($1, $2, $3, $4, $5)
        RETURNING id
        ''',
        from_user_id,
        to_user_id,
        skill_offered,
        skill_wanted,
        message
    )
    return await get_swap(conn, swap_id)


async def update_status(conn: asyncpg.Connection, swap_id: UUID, status: str) -> Dict[str, Any]:
    """Set a swap's status. completed_at follows the completed status."""
    await conn.execute(
        '''
        UPDATE swap_requests
        SET
            status = $2,
            completed_at = CASE WHEN $2 = 'completed' THEN now() ELSE NULL END
        WHERE id = $1
        ''',
        swap_id,
        status
    )
    return await get_swap(conn, swap_id)


async def list_swaps(
    conn: asyncpg.Connection,
    user_id: Optional[UUID] = None,
    status: Optional[str] = None,
    direction: Optional[str] = None,
    offset: int = 0,
    limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    """List swaps newest first.

    Args:
        user_id: Restrict to swaps this user takes part in
        status: Restrict to one status
        direction: 'sent' or 'received' relative to user_id
    """
    where: List[str] = []
    params: List[Any] = []

    if user_id is not None:
        params.append(user_id)
        if direction == 'sent':
            where.append(f's.from_user_id = ${len(params)}')
        elif direction == 'received':
            where.append(f's.to_user_id = ${len(params)}')
        else:
            where.append(f'(s.from_user_id = ${len(params)} OR s.to_user_id = ${len(params)})')

    if status:
        params.append(status)
        where.append(f's.status = ${len(params)}')

    where_clause = f"WHERE {' AND '.join(where)}" if where else ''

    total = await conn.fetchval(
        f'SELECT COUNT(*) FROM swap_requests s {where_clause}',
        *params
    )
    rows = await conn.fetch(
        f'''
        {SWAP_SELECT}
        {where_clause}
        ORDER BY s.created_at DESC, s.id
        LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
        ''',
        *params,
        limit,
        offset
    )
    return [swap_record(row) for row in rows], total


async def status_counts(conn: asyncpg.Connection, user_id: Optional[UUID] = None) -> Dict[str, int]:
    """Count swaps per status, optionally for one participant."""
    if user_id is None:
        rows = await conn.fetch(
            'SELECT status, COUNT(*) AS count FROM swap_requests GROUP BY status'
        )
    else:
        rows = await conn.fetch(
            '''
            SELECT status, COUNT(*) AS count
            FROM swap_requests
            WHERE from_user_id = $1 OR to_user_id = $1
            GROUP BY status
            ''',
            user_id
        )
    return {row['status']: row['count'] for row in rows}


async def pending_received_count(conn: asyncpg.Connection, user_id: UUID) -> int:
    return await conn.fetchval(
        '''
        SELECT COUNT(*) FROM swap_requests
        WHERE to_user_id = $1 AND status = 'pending'
        ''',
        user_id
    )
