"""SQL for the users directory.

Every function takes an open connection so callers decide the transaction
boundaries.
"""
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import asyncpg

USER_COLUMNS = '''
    id, email, password_hash, name, location, photo,
    skills_offered, skills_wanted, availability,
    is_public, is_admin, is_banned, rating, review_count,
    joined_at, created_at, updated_at
'''

# User-mutable profile fields
MUTABLE_FIELDS = {
    'name',
    'location',
    'photo',
    'skills_offered',
    'skills_wanted',
    'availability',
    'is_public'
}

# Fields only moderation code may change
FLAG_FIELDS = {
    'is_banned',
    'is_admin'
}

SKILL_COLUMNS = {
    'offered': 'skills_offered',
    'wanted': 'skills_wanted'
}


def like_pattern(text: str) -> str:
    """Build a substring ILIKE pattern with wildcards in text escaped."""
    escaped = text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped}%"


def _record(row: Optional[asyncpg.Record]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    user = dict(row)
    user['skills_offered'] = list(user.get('skills_offered') or [])
    user['skills_wanted'] = list(user.get('skills_wanted') or [])
    return user


async def insert_user(
    conn: asyncpg.Connection,
    email: str,
    password_hash: str,
    name: str,
    location: Optional[str] = None,
    skills_offered: Optional[List[str]] = None,
    skills_wanted: Optional[List[str]] = None,
    availability: str = 'flexible',
    is_public: bool = True,
    is_admin: bool = False
) -> Dict[str, Any]:
    """Insert a user. Raises asyncpg.UniqueViolationError on a duplicate email."""
    row = await conn.fetchrow(
        f'''
        INSERT INTO users (
            email, password_hash, name, location,
            skills_offered, skills_wanted, availability,
            is_public, is_admin
        ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
        RETURNING {USER_COLUMNS}
        ''',
        email,
        password_hash,
        name,
        location,
        skills_offered or [],
        skills_wanted or [],
        availability,
        is_public,
        is_admin
    )
    return _record(row)


async def get_user(
    conn: asyncpg.Connection,
    user_id: UUID,
    for_update: bool = False
) -> Optional[Dict[str, Any]]:
    lock = ' FOR UPDATE' if for_update else ''
    row = await conn.fetchrow(
        f'SELECT {USER_COLUMNS} FROM users WHERE id = $1{lock}',
        user_id
    )
    return _record(row)


async def get_user_by_email(conn: asyncpg.Connection, email: str) -> Optional[Dict[str, Any]]:
    row = await conn.fetchrow(
        f'SELECT {USER_COLUMNS} FROM users WHERE email = $1',
        email.lower()
    )
    return _record(row)


async def update_user(
    conn: asyncpg.Connection,
    user_id: UUID,
    fields: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Apply a partial update of profile, flag or credential fields."""
    allowed = MUTABLE_FIELDS | FLAG_FIELDS | {'password_hash'}
    invalid = set(fields) - allowed
    if invalid:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(invalid))}")
    if not fields:
        return await get_user(conn, user_id)

    assignments = []
    params: List[Any] = [user_id]
    for name, value in fields.items():
        params.append(value)
        assignments.append(f"{name} = ${len(params)}")

    row = await conn.fetchrow(
        f'''
        UPDATE users
        SET {', '.join(assignments)}
        WHERE id = $1
        RETURNING {USER_COLUMNS}
        ''',
        *params
    )
    return _record(row)


async def add_skill(
    conn: asyncpg.Connection,
    user_id: UUID,
    kind: str,
    name: str
) -> Optional[Dict[str, Any]]:
    """Append a skill unless it is already listed."""
    column = SKILL_COLUMNS[kind]
    row = await conn.fetchrow(
        f'''
        UPDATE users
        SET {column} = array_append({column}, $2)
        WHERE id = $1 AND NOT ($2 = ANY({column}))
        RETURNING {USER_COLUMNS}
        ''',
        user_id,
        name
    )
    if row is None:
        return await get_user(conn, user_id)
    return _record(row)


async def remove_skill(
    conn: asyncpg.Connection,
    user_id: UUID,
    kind: str,
    name: str
) -> Optional[Dict[str, Any]]:
    column = SKILL_COLUMNS[kind]
    row = await conn.fetchrow(
        f'''
        UPDATE users
        SET {column} = array_remove({column}, $2)
        WHERE id = $1
        RETURNING {USER_COLUMNS}
        ''',
        user_id,
        name
    )
    return _record(row)


async def _paged(
    conn: asyncpg.Connection,
    where: List[str],
    params: List[Any],
    order_by: str,
    offset: int,
    limit: int
) -> Tuple[List[Dict[str, Any]], int]:
    where_clause = f"WHERE {' AND '.join(where)}" if where else ''

    total = await conn.fetchval(
        f'SELECT COUNT(*) FROM users {where_clause}',
        *params
    )
    rows = await conn.fetch(
        f'''
        SELECT {USER_COLUMNS}
        FROM users
        {where_clause}
        ORDER BY {order_by}
        LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
        ''',
        *params,
        limit,
        offset
    )
    return [_record(row) for row in rows], total


async def search_users(
    conn: asyncpg.Connection,
    search: Optional[str] = None,
    skill: Optional[str] = None,
    availability: Optional[str] = None,
    location: Optional[str] = None,
    offset: int = 0,
    limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    """Search public, non-banned users.

    Args:
        search: Case-insensitive substring of the name or any skill
        skill: Case-insensitive substring of any offered or wanted skill
        availability: Exact availability value
        location: Case-insensitive substring of the location

    Returns:
        Tuple of (users, total matching count)
    """
    where = ['is_public', 'NOT is_banned']
    params: List[Any] = []

    if search:
        params.append(like_pattern(search))
        where.append(
            f'''(name ILIKE ${len(params)} OR EXISTS (
                SELECT 1 FROM unnest(skills_offered || skills_wanted) AS s
                WHERE s ILIKE ${len(params)}
            ))'''
        )

    if skill:
        params.append(like_pattern(skill))
        where.append(
            f'''EXISTS (
                SELECT 1 FROM unnest(skills_offered || skills_wanted) AS s
                WHERE s ILIKE ${len(params)}
            )'''
        )

    if availability:
        params.append(availability)
        where.append(f'availability = ${len(params)}')

    if location:
        params.append(like_pattern(location))
        where.append(f'location ILIKE ${len(params)}')

    return await _paged(conn, where, params, 'rating DESC, review_count DESC, joined_at DESC', offset, limit)


async def search_by_skill(
    conn: asyncpg.Connection,
    skill: str,
    kind: str,
    offset: int = 0,
    limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    column = SKILL_COLUMNS[kind]
    where = [
        'is_public',
        'NOT is_banned',
        f'EXISTS (SELECT 1 FROM unnest({column}) AS s WHERE s ILIKE $1)'
    ]
    return await _paged(conn, where, [like_pattern(skill)], 'rating DESC, review_count DESC', offset, limit)


async def find_skill_matches(
    conn: asyncpg.Connection,
    user: Dict[str, Any],
    include_private: bool = False,
    offset: int = 0,
    limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    """Find users whose skills complement user's in either direction."""
    where = [
        'id <> $1',
        'NOT is_banned',
        '(is_public OR $2)',
        '(skills_offered && $3::text[] OR skills_wanted && $4::text[])'
    ]
    params = [
        user['id'],
        include_private,
        user['skills_wanted'],
        user['skills_offered']
    ]
    return await _paged(
        conn, where, params,
        'rating DESC, review_count DESC, joined_at ASC, id ASC',
        offset, limit
    )


async def popular_skills(conn: asyncpg.Connection, limit: int = 10) -> Dict[str, List[Dict[str, Any]]]:
    """Most common offered and wanted skills among active users."""
    result = {}
    for kind, column in SKILL_COLUMNS.items():
        rows = await conn.fetch(
            f'''
            SELECT skill, COUNT(*) AS count
            FROM users, unnest({column}) AS skill
            WHERE NOT is_banned
            GROUP BY skill
            ORDER BY count DESC, skill ASC
            LIMIT $1
            ''',
            limit
        )
        result[kind] = [{'skill': row['skill'], 'count': row['count']} for row in rows]
    return result


async def admin_list_users(
    conn: asyncpg.Connection,
    search: Optional[str] = None,
    status: Optional[str] = None,
    role: Optional[str] = None,
    offset: int = 0,
    limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    where: List[str] = []
    params: List[Any] = []

    if search:
        params.append(like_pattern(search))
        where.append(f'(name ILIKE ${len(params)} OR email ILIKE ${len(params)})')

    if status == 'active':
        where.append('NOT is_banned')
    elif status == 'banned':
        where.append('is_banned')

    if role == 'admin':
        where.append('is_admin')
    elif role == 'user':
        where.append('NOT is_admin')

    return await _paged(conn, where, params, 'created_at DESC', offset, limit)


async def user_counts(conn: asyncpg.Connection) -> Dict[str, int]:
    row = await conn.fetchrow(
        '''
        SELECT
            COUNT(*) AS total,
            COUNT(*) FILTER (WHERE NOT is_banned) AS active,
            COUNT(*) FILTER (WHERE is_banned) AS banned,
            COUNT(*) FILTER (WHERE is_admin) AS admins
        FROM users
        '''
    )
    return dict(row)


async def recent_users(conn: asyncpg.Connection, limit: int = 5) -> List[Dict[str, Any]]:
    rows = await conn.fetch(
        f'SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC LIMIT $1',
        limit
    )
    return [_record(row) for row in rows]


async def active_user_ids(conn: asyncpg.Connection) -> List[UUID]:
    """Ids of every user who is not banned."""
    rows = await conn.fetch('SELECT id FROM users WHERE NOT is_banned ORDER BY created_at')
    return [row['id'] for row in rows]
