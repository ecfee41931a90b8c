"""Database module for managing connections to PostgreSQL (or CockroachDB).

This module handles:
- Database creation and connection pool initialization
- JSONB codec registration
- Schema management
- Connection lifecycle

The pool is created explicitly and handed to whoever needs it; nothing in this
module keeps a process-wide connection.
"""

import json
import logging
from typing import Optional, Dict, Any
from urllib.parse import urlparse, urlunparse, parse_qs

import backoff
import asyncpg

from .exceptions import DatabaseError, DatabaseSchemaError
from .lib.schema_manager import SchemaManager

logger = logging.getLogger(__name__)

CONNECTION_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    ConnectionError,
    OSError,
)

def _get_connection_kwargs(db_url: str) -> Dict[str, Any]:
    """Get connection kwargs from database URL.

    Args:
        db_url: Database connection URL

    Returns:
        Dict of connection parameters
    """
    params = parse_qs(urlparse(db_url).query)
    kwargs: Dict[str, Any] = {
        'server_settings': {
            'statement_timeout': '300000',  # 5 minutes
        }
    }
    if 'application_name' in params:
        kwargs['server_settings']['application_name'] = params['application_name'][0]
    return kwargs

async def _init_connection(conn: asyncpg.Connection) -> None:
    """Register codecs on every new pooled connection."""
    await conn.set_type_codec(
        'jsonb',
        encoder=json.dumps,
        decoder=json.loads,
        schema='pg_catalog'
    )

def _database_name(db_url: str) -> str:
    parsed = urlparse(db_url)
    db_name = parsed.path.strip('/')
    if not db_name:
        params = parse_qs(parsed.query)
        db_name = params.get('database', ['postgres'])[0]
    return db_name

@backoff.on_exception(backoff.expo, CONNECTION_ERRORS, max_tries=5)
async def create_database_if_not_exists(db_url: str) -> None:
    """Create the database if it doesn't exist.

    Args:
        db_url: Database connection URL

    Raises:
        Exception: If database creation fails after retries
    """
    db_name = _database_name(db_url)
    parsed = urlparse(db_url)
    maintenance_url = urlunparse(parsed._replace(path='/postgres'))
    logger.info(f"Connecting to maintenance database to create {db_name} if needed")

    try:
        conn = await asyncpg.connect(maintenance_url)
    except asyncpg.exceptions.InvalidCatalogNameError:
        # No maintenance database (e.g. CockroachDB); assume the target exists
        logger.debug("Maintenance database not available, skipping creation check")
        return

    try:
        exists = await conn.fetchval(
            'SELECT EXISTS(SELECT 1 FROM pg_database WHERE datname = $1)',
            db_name
        )
        if not exists:
            await conn.execute(f'CREATE DATABASE "{db_name}"')
            logger.info(f"Created database {db_name}")
    finally:
        await conn.close()

@backoff.on_exception(backoff.expo, CONNECTION_ERRORS, max_tries=5)
async def create_pool(
    db_url: str,
    force_recreate: bool = False,
    create_database: bool = True
) -> asyncpg.Pool:
    """Create a connection pool and bring the schema up to date.

    Args:
        db_url: Database connection URL
        force_recreate: If True, drop and recreate all tables
        create_database: If True, create the database when it is missing

    Returns:
        The initialized connection pool

    Raises:
        DatabaseError: If initialization fails after retries
    """
    if not db_url:
        raise ValueError("Database URL not provided")

    if create_database:
        await create_database_if_not_exists(db_url)

    pool = await asyncpg.create_pool(
        db_url,
        min_size=2,          # Minimum idle connections
        max_size=20,         # Maximum connections
        max_queries=10000,   # Reset connection after this many queries
        max_inactive_connection_lifetime=300.0,  # 5 minutes
        command_timeout=60.0,  # 1 minute command timeout
        init=_init_connection,
        **_get_connection_kwargs(db_url)
    )

    try:
        schema_manager = SchemaManager(pool)
        await schema_manager.initialize(force_recreate=force_recreate)
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        await pool.close()
        if isinstance(e, DatabaseError):
            raise
        raise DatabaseError(f"Database initialization failed: {e}") from e

    logger.info("Database pool ready")
    return pool

async def close_pool(pool: Optional[asyncpg.Pool]) -> None:
    """Close a connection pool created by create_pool."""
    if pool is not None:
        await pool.close()
        logger.info("Database pool closed")

# Export public interface
__all__ = [
    'create_pool',
    'close_pool',
    'create_database_if_not_exists',
    'DatabaseError',
    'DatabaseSchemaError',
    'SchemaManager',
]
