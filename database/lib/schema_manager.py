"""Database schema management module.

Schemas are plain dictionaries in database/schema/vN.py. A fresh database
gets the latest definition in one pass; an existing one replays the
'migrations' statements of every newer version in order.

The *_sql helpers render DDL from those dictionaries and never touch the
database, so they can be checked without a server.
"""
import importlib
import logging
from pathlib import Path
from typing import Any, Dict, List

from ..exceptions import DatabaseSchemaError

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent.parent / 'schema'
SCHEMA_PACKAGE = 'database.schema'

VERSION_TABLE = 'schema_version'


def column_sql(column: Dict[str, Any]) -> str:
    parts = [column['name'], column['type']]
    if 'default' in column:
        parts.append(f"DEFAULT {column['default']}")
    if column.get('nullable') is False:
        parts.append('NOT NULL')
    return ' '.join(parts)


def create_table_sql(table: Dict[str, Any]) -> str:
    """CREATE TABLE for a table definition, without foreign keys or indexes."""
    body = [column_sql(column) for column in table['columns']]

    key_columns = [c['name'] for c in table['columns'] if c.get('primary_key')]
    if isinstance(table.get('primary_key'), list):
        key_columns = table['primary_key']
    if key_columns:
        body.append(f"PRIMARY KEY ({', '.join(key_columns)})")

    body.extend(
        f"UNIQUE ({c['name']})" for c in table['columns']
        if c.get('unique') and not c.get('primary_key')
    )
    body.extend(
        f"CONSTRAINT {check['name']} CHECK ({check['expression']})"
        for check in table.get('checks', [])
    )

    joined = ',\n    '.join(body)
    return f"CREATE TABLE IF NOT EXISTS {table['name']} (\n    {joined}\n)"


def foreign_key_sql(table_name: str, fk: Dict[str, Any]) -> str:
    statement = (
        f"ALTER TABLE {table_name} "
        f"ADD CONSTRAINT fk_{table_name}_{'_'.join(fk['columns'])} "
        f"FOREIGN KEY ({', '.join(fk['columns'])}) "
        f"REFERENCES {fk['references']}"
    )
    if 'on_delete' in fk:
        statement += f" ON DELETE {fk['on_delete']}"
    return statement


def index_sql(table_name: str, index: Dict[str, Any]) -> str:
    """CREATE INDEX supporting unique, partial (where) and method (gin, ...) options."""
    statement = 'CREATE UNIQUE INDEX' if index.get('unique') else 'CREATE INDEX'
    statement += f" IF NOT EXISTS {index['name']} ON {table_name}"
    if 'method' in index:
        statement += f" USING {index['method']}"
    statement += f" ({', '.join(index['columns'])})"
    if 'where' in index:
        statement += f" WHERE {index['where']}"
    return statement


def trigger_sql(trigger: Dict[str, Any]) -> List[str]:
    """Statements for a row trigger and the plpgsql function it runs."""
    return [
        f"CREATE OR REPLACE FUNCTION {trigger['function_name']}() RETURNS TRIGGER "
        f"AS $${trigger['function_body']}$$ LANGUAGE plpgsql",
        f"DROP TRIGGER IF EXISTS {trigger['name']} ON {trigger['table']}",
        f"CREATE TRIGGER {trigger['name']} {trigger['timing']} {trigger['event']} "
        f"ON {trigger['table']} FOR EACH ROW EXECUTE FUNCTION {trigger['function_name']}()",
    ]


def schema_statements(schema: Dict[str, Any]) -> List[str]:
    """Every statement needed to build a schema on an empty database.

    Tables come first so foreign keys can reference any of them.
    """
    tables = schema.get('tables', [])
    statements = [create_table_sql(table) for table in tables]
    for table in tables:
        statements.extend(foreign_key_sql(table['name'], fk) for fk in table.get('foreign_keys', []))
        statements.extend(index_sql(table['name'], index) for index in table.get('indexes', []))
    for trigger in schema.get('triggers', []):
        statements.extend(trigger_sql(trigger))
    return statements


def load_schemas(schema_dir: Path = SCHEMA_DIR, package: str = SCHEMA_PACKAGE) -> Dict[int, Dict[str, Any]]:
    """Import every vN.py under schema_dir, keyed and sorted by version.

    Raises:
        DatabaseSchemaError: If a file has no 'schema' or its version does not match its name
    """
    schemas = {}
    for path in Path(schema_dir).glob('v*.py'):
        try:
            version = int(path.stem[1:])
        except ValueError:
            logger.warning(f"Ignoring schema file with invalid name: {path.name}")
            continue

        module = importlib.import_module(f"{package}.{path.stem}")
        schema = getattr(module, 'schema', None)
        if schema is None:
            raise DatabaseSchemaError(f"Schema file {path.name} has no 'schema' definition")
        if schema.get('version') != version:
            raise DatabaseSchemaError(
                f"Schema version mismatch in {path.name}: expected {version}, got {schema.get('version')}"
            )
        schemas[version] = schema
    return dict(sorted(schemas.items()))


class SchemaManager:
    """Brings a database up to the latest schema version."""

    def __init__(self, pool, schema_dir: Path = SCHEMA_DIR, package: str = SCHEMA_PACKAGE) -> None:
        self.pool = pool
        self.schema_dir = Path(schema_dir)
        self.package = package
        self.current_version = 0

    async def initialize(self, force_recreate: bool = False) -> None:
        """Create the version table and apply whatever is pending.

        Args:
            force_recreate: Drop every table and install the latest schema from scratch

        Raises:
            DatabaseSchemaError: If no schema is found or applying it fails
        """
        schemas = load_schemas(self.schema_dir, self.package)
        if not schemas:
            raise DatabaseSchemaError(f"No schema files found in {self.schema_dir}")
        latest = max(schemas)

        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    f'CREATE TABLE IF NOT EXISTS {VERSION_TABLE} ('
                    'version INT8 PRIMARY KEY, '
                    'applied_at TIMESTAMPTZ NOT NULL DEFAULT now())'
                )
                if force_recreate:
                    logger.info("Force recreate requested, resetting schema version")
                    await conn.execute(f'DELETE FROM {VERSION_TABLE}')

                self.current_version = await conn.fetchval(
                    f'SELECT COALESCE(MAX(version), 0) FROM {VERSION_TABLE}'
                )
                if self.current_version >= latest:
                    logger.info(f"Schema is up to date (v{self.current_version})")
                    return

                async with conn.transaction():
                    if self.current_version == 0:
                        await self._install(conn, schemas[latest])
                    else:
                        await self._migrate(conn, schemas, latest)
        except DatabaseSchemaError:
            raise
        except Exception as e:
            logger.error(f"Schema initialization failed: {e}")
            raise DatabaseSchemaError(f"Failed to initialize schema: {e}") from e

        self.current_version = latest

    async def _install(self, conn, schema: Dict[str, Any]) -> None:
        await self._drop_tables(conn)
        for statement in schema_statements(schema):
            await conn.execute(statement)
        await conn.execute(f'INSERT INTO {VERSION_TABLE} (version) VALUES ($1)', schema['version'])
        logger.info(f"Installed schema v{schema['version']}")

    async def _migrate(self, conn, schemas: Dict[int, Dict[str, Any]], latest: int) -> None:
        for version in range(self.current_version + 1, latest + 1):
            if version not in schemas:
                continue
            for statement in schemas[version].get('migrations', []):
                await conn.execute(statement)
            await conn.execute(f'INSERT INTO {VERSION_TABLE} (version) VALUES ($1)', version)
            logger.info(f"Migrated schema to v{version}")

    async def _drop_tables(self, conn) -> None:
        rows = await conn.fetch(
            '''
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public'
            AND table_type = 'BASE TABLE'
            AND table_name <> $1
            ''',
            VERSION_TABLE
        )
        for row in rows:
            await conn.execute(f'DROP TABLE IF EXISTS "{row["table_name"]}" CASCADE')
            logger.info(f"Dropped table {row['table_name']}")
