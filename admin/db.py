"""SQL for admin messages."""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import asyncpg

MESSAGE_COLUMNS = '''
    id, title, message, type, is_active, is_global,
    target_users, expires_at, created_by, created_at, updated_at
'''

MUTABLE_FIELDS = {
    'title',
    'message',
    'type',
    'is_active',
    'expires_at'
}


def _record(row: Optional[asyncpg.Record]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    message = dict(row)
    message['target_users'] = list(message.get('target_users') or [])
    return message


async def insert_message(
    conn: asyncpg.Connection,
    title: str,
    message: str,
    type: str,
    is_global: bool,
    target_users: List[UUID],
    expires_at: Optional[datetime],
    created_by: UUID
) -> Dict[str, Any]:
    row = await conn.fetchrow(
        f'''
        INSERT INTO admin_messages (
            title, message, type, is_global,
            target_users, expires_at, created_by
        ) VALUES ($1, $2, $3, $4, $5, $6, $7)
        RETURNING {MESSAGE_COLUMNS}
        ''',
        title,
        message,
        type,
        is_global,
        target_users,
        expires_at,
        created_by
    )
    return _record(row)


async def get_message(conn: asyncpg.Connection, message_id: UUID) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        f'SELECT {MESSAGE_COLUMNS} FROM admin_messages WHERE id = $1',
        message_id
    )
    return _record(row)


async def list_messages(
    conn: asyncpg.Connection,
    type: Optional[str] = None,
    is_active: Optional[bool] = None,
    offset: int = 0,
    limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    where: List[str] = []
    params: List[Any] = []

    if type:
        params.append(type)
        where.append(f'type = ${len(params)}')

    if is_active is not None:
        params.append(is_active)
        where.append(f'is_active = ${len(params)}')

    where_clause = f"WHERE {' AND '.join(where)}" if where else ''

    total = await conn.fetchval(
        f'SELECT COUNT(*) FROM admin_messages {where_clause}',
        *params
    )
    rows = await conn.fetch(
        f'''
        SELECT {MESSAGE_COLUMNS}
        FROM admin_messages
        {where_clause}
        ORDER BY created_at DESC, id
        LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
        ''',
        *params,
        limit,
        offset
    )
    return [_record(row) for row in rows], total


async def update_message(
    conn: asyncpg.Connection,
    message_id: UUID,
    fields: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    invalid = set(fields) - MUTABLE_FIELDS
    if invalid:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(invalid))}")
    if not fields:
        return await get_message(conn, message_id)

    assignments = []
    params: List[Any] = [message_id]
    for name, value in fields.items():
        params.append(value)
        assignments.append(f"{name} = ${len(params)}")

    row = await conn.fetchrow(
        f'''
        UPDATE admin_messages
        SET {', '.join(assignments)}
        WHERE id = $1
        RETURNING {MESSAGE_COLUMNS}
        ''',
        *params
    )
    return _record(row)


async def delete_message(conn: asyncpg.Connection, message_id: UUID) -> bool:
    deleted = await conn.fetchval(
        'DELETE FROM admin_messages WHERE id = $1 RETURNING id',
        message_id
    )
    return deleted is not None


async def deactivate_expired(conn: asyncpg.Connection) -> int:
    """Deactivate active messages past their expiry and return how many."""
    result = await conn.execute(
        '''
        UPDATE admin_messages
        SET is_active = false
        WHERE is_active AND expires_at IS NOT NULL AND expires_at <= now()
        '''
    )
    return int(result.split()[-1])


async def active_messages_for(conn: asyncpg.Connection, user_id: UUID) -> List[Dict[str, Any]]:
    """Visible messages that are global or addressed to the user."""
    rows = await conn.fetch(
        f'''
        SELECT {MESSAGE_COLUMNS}
        FROM admin_messages
        WHERE is_active
        AND (expires_at IS NULL OR expires_at > now())
        AND (is_global OR $1 = ANY(target_users))
        ORDER BY created_at DESC
        ''',
        user_id
    )
    return [_record(row) for row in rows]
