"""
tablebridge - Generic CRUD executor.

Operations that handle all table access:
- list_records: count + page of rows matching a predicate list
- count: total rows
- create / update / upsert / delete: single-row writes keyed by primary key

Every operation resolves the table through the schema cache first, so an
unknown table fails before any data statement runs. Statements are built
with SQLAlchemy Core against a lightweight table clause made from the
discovered columns; values are always bound parameters.
"""

import logging
from typing import Any

from sqlalchemy import (
    Engine,
    TableClause,
    and_,
    column,
    delete,
    func,
    insert,
    select,
    table as table_clause,
    update,
)
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from tablebridge.core.cache import ForeignKeyCache, SchemaCache
from tablebridge.core.records import GenericRecord, to_json_value
from tablebridge.core.schema import TableSchema
from tablebridge.core.types import SemanticType
from tablebridge.db.client import driver_message
from tablebridge.db.introspect import SchemaIntrospector
from tablebridge.errors import SchemaError, StorageError, ValidationError
from tablebridge.filters.predicates import Predicate, where_clause

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100

# Dialects with INSERT ... ON CONFLICT DO UPDATE
ON_CONFLICT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}

# Dialects with INSERT ... ON DUPLICATE KEY UPDATE
ON_DUPLICATE_INSERTS = {
    "mysql": mysql_insert,
    "mariadb": mysql_insert,
}


# =============================================================================
# Helpers
# =============================================================================


def resolve_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    """
    Apply pagination defaults.

    A missing or zero limit means DEFAULT_LIMIT; a missing offset means 0.
    """
    if limit is not None and limit < 0:
        raise ValidationError(f"limit must be >= 0, got {limit}")
    if offset is not None and offset < 0:
        raise ValidationError(f"offset must be >= 0, got {offset}")
    return (limit or DEFAULT_LIMIT), (offset or 0)


def build_table(schema: TableSchema) -> TableClause:
    return table_clause(schema.table, *(column(name) for name in schema.column_names))


def key_values(schema: TableSchema, record: GenericRecord, operation: str) -> dict[str, Any]:
    """
    Primary key values from a record, in table order.

    Every key column must be present and non-null, so a write can never
    target more than the row the caller named.
    """
    if not schema.primary_keys:
        raise ValidationError(f"Cannot {operation} table '{schema.table}': it has no primary key")

    keys, _ = record.split_keys(schema)
    missing = [col.name for col in schema.key_columns if col.name not in keys]
    if missing:
        raise ValidationError(
            f"Cannot {operation} '{schema.table}': missing primary key column(s) {', '.join(missing)}"
        )
    nulls = [name for name, value in keys.items() if value is None]
    if nulls:
        raise ValidationError(
            f"Cannot {operation} '{schema.table}': primary key column(s) {', '.join(nulls)} are null"
        )
    return {col.name: keys[col.name] for col in schema.key_columns}


def key_clause(table: TableClause, keys: dict[str, Any]):
    return and_(*(table.c[name] == value for name, value in keys.items()))


# =============================================================================
# Executor
# =============================================================================


class CrudExecutor:
    """Runs generic record operations against one database."""

    def __init__(
        self,
        engine: Engine,
        introspector: SchemaIntrospector,
        schema_cache: SchemaCache | None = None,
        fk_cache: ForeignKeyCache | None = None,
    ):
        self._engine = engine
        self._introspector = introspector
        self.schema_cache = schema_cache or SchemaCache(introspector)
        self.fk_cache = fk_cache or ForeignKeyCache(introspector)

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    def schema(self, table: str) -> TableSchema:
        return self.schema_cache.get(table)

    def list_tables(self) -> list[str]:
        return self._introspector.list_tables()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_records(
        self,
        table: str,
        limit: int | None = None,
        offset: int | None = None,
        predicates: list[Predicate] | None = None,
    ) -> tuple[list[GenericRecord], int]:
        """
        Fetch one page of rows plus the number of rows matching overall.

        Rows are ordered by primary key (first column when there is none)
        because some dialects refuse OFFSET without ORDER BY.
        """
        limit, offset = resolve_page(limit, offset)
        schema = self.schema(table)
        predicates = predicates or []

        unknown = schema.unknown_columns(sorted(set().union(*(p.fields for p in predicates))))
        if unknown:
            raise ValidationError(f"Unknown filter field '{unknown[0]}' for table '{table}'")

        t = build_table(schema)
        where = where_clause(t, predicates)
        order_by = [t.c[col.name] for col in schema.key_columns] or [t.c[schema.column_names[0]]]

        count_stmt = select(func.count()).select_from(t)
        page_stmt = select(*t.c).order_by(*order_by).limit(limit).offset(offset)
        if where is not None:
            count_stmt = count_stmt.where(where)
            page_stmt = page_stmt.where(where)

        try:
            with self._engine.connect() as conn:
                total = conn.execute(count_stmt).scalar_one()
                rows = conn.execute(page_stmt).mappings().all()
        except SQLAlchemyError as exc:
            logger.error(f"List failed for '{table}': {exc}")
            raise StorageError(f"Failed to read '{table}': {driver_message(exc)}") from exc

        logger.debug(f"Listed '{table}': {len(rows)} of {total} (limit={limit}, offset={offset})")
        return [GenericRecord.from_row(schema, row) for row in rows], total

    def count(self, table: str) -> int:
        schema = self.schema(table)
        stmt = select(func.count()).select_from(build_table(schema))
        try:
            with self._engine.connect() as conn:
                return conn.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            logger.error(f"Count failed for '{table}': {exc}")
            raise StorageError(f"Failed to count '{table}': {driver_message(exc)}") from exc

    def foreign_key_options(self, constraint_name: str) -> list[dict[str, Any]]:
        """
        Rows a foreign key may point at, as ``{"id", "name"}`` pairs.

        ``name`` is the first text column of the referenced table other
        than the referenced column itself, falling back to the id.
        """
        mapping = self.fk_cache.get(constraint_name)
        schema = self.schema(mapping.referenced_table)
        if not schema.has_column(mapping.referenced_column):
            raise SchemaError(
                f"Foreign key '{constraint_name}' references unknown column "
                f"'{mapping.referenced_table}.{mapping.referenced_column}'"
            )

        label = next(
            (
                col.name
                for col in schema.columns
                if col.semantic_type is SemanticType.TEXT and col.name != mapping.referenced_column
            ),
            mapping.referenced_column,
        )
        t = build_table(schema)
        id_col = t.c[mapping.referenced_column]
        stmt = select(id_col.label("id"), t.c[label].label("name")).order_by(id_col)

        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            logger.error(f"Foreign key options failed for '{constraint_name}': {exc}")
            raise StorageError(
                f"Failed to read options for '{constraint_name}': {driver_message(exc)}"
            ) from exc

        return [{"id": to_json_value(row["id"]), "name": to_json_value(row["name"])} for row in rows]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, table: str, payload: dict[str, Any]) -> None:
        """Insert the supplied record as a new row."""
        schema = self.schema(table)
        record = GenericRecord.from_payload(schema, payload)
        if not record:
            raise ValidationError(f"Cannot create a row in '{table}' from an empty record")

        stmt = insert(build_table(schema)).values(record.raw())
        self._write(table, "create", lambda conn: conn.execute(stmt))

    def update(self, table: str, payload: dict[str, Any]) -> None:
        """
        Update the row named by the record's primary key.

        Columns other than the key become the SET list. Matching zero rows
        is not an error.
        """
        schema = self.schema(table)
        record = GenericRecord.from_payload(schema, payload)
        keys = key_values(schema, record, "update")
        _, changes = record.split_keys(schema)
        if not changes:
            raise ValidationError(f"Nothing to update in '{table}': record only contains key columns")

        t = build_table(schema)
        stmt = update(t).where(key_clause(t, keys)).values(changes)
        self._write(table, "update", lambda conn: conn.execute(stmt))

    def upsert(self, table: str, payload: dict[str, Any]) -> None:
        """
        Insert the record, replacing the existing row on key conflict.

        Replacement is whole-row: non-key columns missing from the record
        are written as NULL.
        """
        schema = self.schema(table)
        record = GenericRecord.from_payload(schema, payload)
        keys = key_values(schema, record, "upsert")
        supplied = record.raw()
        values = {name: supplied.get(name) for name in schema.column_names}
        t = build_table(schema)

        self._write(table, "upsert", lambda conn: self._upsert(conn, t, keys, values))

    def delete(self, table: str, payload: dict[str, Any]) -> None:
        """Delete the row named by the record's primary key."""
        schema = self.schema(table)
        record = GenericRecord.from_payload(schema, payload)
        keys = key_values(schema, record, "delete")

        t = build_table(schema)
        stmt = delete(t).where(key_clause(t, keys))
        self._write(table, "delete", lambda conn: conn.execute(stmt))

    def _upsert(self, conn, t: TableClause, keys: dict[str, Any], values: dict[str, Any]):
        non_keys = {name: value for name, value in values.items() if name not in keys}

        if self.dialect in ON_CONFLICT_INSERTS:
            stmt = ON_CONFLICT_INSERTS[self.dialect](t).values(values)
            if non_keys:
                stmt = stmt.on_conflict_do_update(
                    index_elements=list(keys),
                    set_={name: stmt.excluded[name] for name in non_keys},
                )
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=list(keys))
            return conn.execute(stmt)

        if self.dialect in ON_DUPLICATE_INSERTS:
            stmt = ON_DUPLICATE_INSERTS[self.dialect](t).values(values)
            replaced = non_keys or keys
            stmt = stmt.on_duplicate_key_update({name: stmt.inserted[name] for name in replaced})
            return conn.execute(stmt)

        # No native upsert (SQL Server): update first, insert if nothing matched
        if non_keys:
            result = conn.execute(update(t).where(key_clause(t, keys)).values(non_keys))
            if result.rowcount > 0:
                return result
        else:
            exists = select(func.count()).select_from(t).where(key_clause(t, keys))
            if conn.execute(exists).scalar_one() > 0:
                return None
        return conn.execute(insert(t).values(values))

    def _write(self, table: str, operation: str, run) -> None:
        try:
            with self._engine.begin() as conn:
                result = run(conn)
        except SQLAlchemyError as exc:
            logger.error(f"{operation.capitalize()} failed for '{table}': {exc}")
            raise StorageError(f"Failed to {operation} '{table}': {driver_message(exc)}") from exc

        rowcount = getattr(result, "rowcount", None)
        logger.info(f"{operation.capitalize()} on '{table}' (rows affected: {rowcount})")
