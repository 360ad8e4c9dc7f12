"""
Schema introspection.

Reads one table's columns, primary key and foreign key constraints from
the database catalog. Servers that expose INFORMATION_SCHEMA (SQL Server,
PostgreSQL, MySQL) are queried directly; SQLite has no catalog views, so
SQLAlchemy's reflection Inspector answers the same questions there.

Nothing here caches. See tablebridge.core.cache.
"""

import logging
from typing import Any

from sqlalchemy import Connection, Engine, inspect, text
from sqlalchemy.exc import CompileError, SQLAlchemyError

from tablebridge.core.schema import ColumnMetadata, ForeignKeyMapping, TableSchema
from tablebridge.db.client import driver_message
from tablebridge.errors import SchemaError

logger = logging.getLogger(__name__)


# =============================================================================
# Catalog Queries
# =============================================================================

COLUMNS_QUERY = text("""
SELECT
    c.COLUMN_NAME AS column_name,
    c.DATA_TYPE AS data_type,
    MAX(CASE WHEN tc.CONSTRAINT_TYPE = 'PRIMARY KEY' THEN 1 ELSE 0 END) AS is_key,
    MAX(CASE WHEN tc.CONSTRAINT_TYPE = 'FOREIGN KEY' THEN k.CONSTRAINT_NAME END) AS foreign_key
FROM INFORMATION_SCHEMA.COLUMNS c
LEFT JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE k
    ON c.TABLE_NAME = k.TABLE_NAME
    AND c.COLUMN_NAME = k.COLUMN_NAME
    AND c.TABLE_SCHEMA = k.TABLE_SCHEMA
LEFT JOIN INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
    ON k.TABLE_NAME = tc.TABLE_NAME
    AND k.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
    AND k.TABLE_SCHEMA = tc.TABLE_SCHEMA
    AND tc.CONSTRAINT_TYPE IN ('PRIMARY KEY', 'FOREIGN KEY')
WHERE c.TABLE_NAME = :table
GROUP BY c.COLUMN_NAME, c.DATA_TYPE, c.ORDINAL_POSITION
ORDER BY c.ORDINAL_POSITION
""")

FOREIGN_KEY_QUERY = text("""
SELECT
    fk.CONSTRAINT_NAME AS constraint_name,
    pk.TABLE_NAME AS referenced_table,
    pk.COLUMN_NAME AS referenced_column
FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE fk
JOIN INFORMATION_SCHEMA.REFERENTIAL_CONSTRAINTS rc
    ON fk.CONSTRAINT_NAME = rc.CONSTRAINT_NAME
    AND fk.CONSTRAINT_SCHEMA = rc.CONSTRAINT_SCHEMA
JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE pk
    ON pk.CONSTRAINT_NAME = rc.UNIQUE_CONSTRAINT_NAME
    AND pk.CONSTRAINT_SCHEMA = rc.UNIQUE_CONSTRAINT_SCHEMA
    AND pk.ORDINAL_POSITION = fk.ORDINAL_POSITION
WHERE fk.CONSTRAINT_NAME = :name
ORDER BY fk.ORDINAL_POSITION
""")

# MySQL names every primary key PRIMARY, so the unique-constraint join above
# is ambiguous there; KEY_COLUMN_USAGE carries the referenced column directly.
MYSQL_FOREIGN_KEY_QUERY = text("""
SELECT
    CONSTRAINT_NAME AS constraint_name,
    REFERENCED_TABLE_NAME AS referenced_table,
    REFERENCED_COLUMN_NAME AS referenced_column
FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE
WHERE CONSTRAINT_NAME = :name
    AND TABLE_SCHEMA = DATABASE()
    AND REFERENCED_TABLE_NAME IS NOT NULL
ORDER BY ORDINAL_POSITION
""")

MYSQL_DIALECTS = {"mysql", "mariadb"}

TABLES_QUERY = text("""
SELECT TABLE_NAME AS table_name
FROM INFORMATION_SCHEMA.TABLES
WHERE TABLE_TYPE = 'BASE TABLE'
    AND TABLE_SCHEMA NOT IN ('information_schema', 'pg_catalog', 'sys', 'mysql', 'performance_schema')
ORDER BY TABLE_NAME
""")

# Dialects answered through the reflection Inspector instead of INFORMATION_SCHEMA
REFLECTION_DIALECTS = {"sqlite"}


def foreign_key_name(table: str, fk: dict[str, Any]) -> str:
    """Reflected constraint name, or a stable one for unnamed SQLite keys."""
    if fk.get("name"):
        return fk["name"]
    return f"fk_{table}_{'_'.join(fk['constrained_columns'])}"


def _native_type_name(column_type: Any, connection: Connection) -> str:
    try:
        return column_type.compile(dialect=connection.dialect)
    except CompileError:
        # NullType and friends have no DDL rendering
        return type(column_type).__name__.lower()


class SchemaIntrospector:
    """Answers catalog questions for one engine."""

    def __init__(self, engine: Engine):
        self._engine = engine

    @property
    def uses_reflection(self) -> bool:
        return self._engine.dialect.name in REFLECTION_DIALECTS

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    def introspect(self, table: str) -> TableSchema:
        """
        Describe one table.

        Raises:
            SchemaError: table missing (``not_found``) or catalog query failed
        """
        logger.debug(f"Introspecting table '{table}'")
        try:
            with self._engine.connect() as conn:
                if self.uses_reflection:
                    columns = self._reflect_columns(conn, table)
                else:
                    rows = conn.execute(COLUMNS_QUERY, {"table": table}).mappings().all()
                    columns = [
                        ColumnMetadata.from_catalog(
                            name=row["column_name"],
                            native_type=row["data_type"],
                            is_primary_key=row["is_key"] == 1,
                            foreign_key_constraint_name=row["foreign_key"],
                        )
                        for row in rows
                    ]
        except SQLAlchemyError as exc:
            logger.error(f"Catalog query failed for table '{table}': {exc}")
            raise SchemaError(
                f"Failed to read schema for table '{table}': {driver_message(exc)}",
                table=table,
            ) from exc

        if not columns:
            raise SchemaError(f"Table '{table}' not found", table=table, not_found=True)

        schema = TableSchema(table=table, columns=tuple(columns))
        logger.info(
            f"Introspected '{table}': {len(schema.columns)} columns, "
            f"key={sorted(schema.primary_keys)}"
        )
        return schema

    def _reflect_columns(self, conn: Connection, table: str) -> list[ColumnMetadata]:
        inspector = inspect(conn)
        if not inspector.has_table(table):
            return []

        primary_keys = set(inspector.get_pk_constraint(table).get("constrained_columns") or [])
        fk_by_column: dict[str, str] = {}
        for fk in inspector.get_foreign_keys(table):
            for column in fk["constrained_columns"]:
                fk_by_column.setdefault(column, foreign_key_name(table, fk))

        return [
            ColumnMetadata.from_catalog(
                name=col["name"],
                native_type=_native_type_name(col["type"], conn),
                is_primary_key=col["name"] in primary_keys,
                foreign_key_constraint_name=fk_by_column.get(col["name"]),
            )
            for col in inspector.get_columns(table)
        ]

    def list_tables(self) -> list[str]:
        """Names of all base tables visible to the connection."""
        try:
            with self._engine.connect() as conn:
                if self.uses_reflection:
                    return sorted(inspect(conn).get_table_names())
                return [row["table_name"] for row in conn.execute(TABLES_QUERY).mappings()]
        except SQLAlchemyError as exc:
            logger.error(f"Listing tables failed: {exc}")
            raise SchemaError(f"Failed to list tables: {driver_message(exc)}") from exc

    # -------------------------------------------------------------------------
    # Foreign Keys
    # -------------------------------------------------------------------------

    def resolve_foreign_key(self, name: str) -> ForeignKeyMapping:
        """
        Find the table/column a foreign key constraint references.

        Composite keys resolve to their first column pair.
        """
        logger.debug(f"Resolving foreign key '{name}'")
        try:
            with self._engine.connect() as conn:
                if self.uses_reflection:
                    mapping = self._reflect_foreign_key(conn, name)
                else:
                    query = (
                        MYSQL_FOREIGN_KEY_QUERY
                        if self._engine.dialect.name in MYSQL_DIALECTS
                        else FOREIGN_KEY_QUERY
                    )
                    row = conn.execute(query, {"name": name}).mappings().first()
                    mapping = None
                    if row is not None:
                        mapping = ForeignKeyMapping(
                            constraint_name=name,
                            referenced_table=row["referenced_table"],
                            referenced_column=row["referenced_column"],
                        )
        except SQLAlchemyError as exc:
            logger.error(f"Catalog query failed for foreign key '{name}': {exc}")
            raise SchemaError(
                f"Failed to resolve foreign key '{name}': {driver_message(exc)}"
            ) from exc

        if mapping is None:
            raise SchemaError(f"Foreign key '{name}' not found", not_found=True)
        return mapping

    def _reflect_foreign_key(self, conn: Connection, name: str) -> ForeignKeyMapping | None:
        inspector = inspect(conn)
        for table in inspector.get_table_names():
            for fk in inspector.get_foreign_keys(table):
                if foreign_key_name(table, fk) != name:
                    continue
                referred = fk.get("referred_columns") or []
                if not referred:
                    # SQLite allows REFERENCES parent with no column list
                    referred = inspector.get_pk_constraint(fk["referred_table"]).get(
                        "constrained_columns"
                    ) or []
                if not referred:
                    return None
                return ForeignKeyMapping(
                    constraint_name=name,
                    referenced_table=fk["referred_table"],
                    referenced_column=referred[0],
                )
        return None
