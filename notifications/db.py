from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import asyncpg

NOTIFICATION_COLUMNS = '''
    id, user_id, type, title, message, is_read,
    related_type, related_id, metadata, created_at
'''


def notification_record(row: Optional[asyncpg.Record]) -> Optional[Dict[str, Any]]:
    """Fold the related_type/related_id pair into a tagged reference."""
    if row is None:
        return None
    record = dict(row)
    related_type = record.pop('related_type')
    related_id = record.pop('related_id')
    record['related'] = {'kind': related_type, 'id': related_id} if related_type else None
    record['metadata'] = record.get('metadata') or {}
    return record


async def insert_notification(
    conn: asyncpg.Connection,
    user_id: UUID,
    type: str,
    title: str,
    message: str,
    related_type: Optional[str] = None,
    related_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    row = await conn.fetchrow(
        f'''
        INSERT INTO notifications (
            user_id, type, title, message,
            related_type, related_id, metadata
        ) VALUES ($1, $2, $3, $4, $5, $6, $7)
        RETURNING {NOTIFICATION_COLUMNS}
        ''',
        user_id,
        type,
        title,
        message,
        related_type,
        related_id,
        metadata or {}
    )
    return notification_record(row)


async def list_notifications(
    conn: asyncpg.Connection,
    user_id: UUID,
    unread_only: bool = False,
    offset: int = 0,
    limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    unread_clause = 'AND NOT is_read' if unread_only else ''
    total = await conn.fetchval(
        f'SELECT COUNT(*) FROM notifications WHERE user_id = $1 {unread_clause}',
        user_id
    )
    rows = await conn.fetch(
        f'''
        SELECT {NOTIFICATION_COLUMNS}
        FROM notifications
        WHERE user_id = $1 {unread_clause}
        ORDER BY created_at DESC, id
        LIMIT $2 OFFSET $3
        ''',
        user_id,
        limit,
        offset
    )
    return [notification_record(row) for row in rows], total


async def unread_count(conn: asyncpg.Connection, user_id: UUID) -> int:
    return await conn.fetchval(
        'SELECT COUNT(*) FROM notifications WHERE user_id = $1 AND NOT is_read',
        user_id
    )


async def set_read(
    conn: asyncpg.Connection,
    user_id: UUID,
    notification_id: UUID,
    is_read: bool
) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        f'''
        UPDATE notifications
        SET is_read = $3
        WHERE id = $1 AND user_id = $2
        RETURNING {NOTIFICATION_COLUMNS}
        ''',
        notification_id,
        user_id,
        is_read
    )
    return notification_record(row)


async def mark_all_read(conn: asyncpg.Connection, user_id: UUID) -> int:
    """Mark every unread notification read and return how many changed."""
    result = await conn.execute(
        'UPDATE notifications SET is_read = true WHERE user_id = $1 AND NOT is_read',
        user_id
    )
    # Command tag looks like "UPDATE 3"
    return int(result.split()[-1])


async def delete_notification(conn: asyncpg.Connection, user_id: UUID, notification_id: UUID) -> bool:
    deleted = await conn.fetchval(
        'DELETE FROM notifications WHERE id = $1 AND user_id = $2 RETURNING id',
        notification_id,
        user_id
    )
    return deleted is not None
