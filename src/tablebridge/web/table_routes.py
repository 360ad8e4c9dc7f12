"""
Table API endpoints.

Generic endpoints that work for any table the database exposes. The table
name is only ever used after the schema cache has confirmed it exists.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from tablebridge.db.crud import CrudExecutor
from tablebridge.filters.expression import parse_expression
from tablebridge.filters.structured import QueryRequest, compile_filters
from tablebridge.web.deps import get_executor

router = APIRouter(prefix="/tables", tags=["tables"])


# =============================================================================
# Response Models
# =============================================================================


class ColumnOut(BaseModel):
    """One column as the grid needs it."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str  # "number" | "text" | native type name for anything else
    key: bool
    filterable: bool
    foreign_key_name: str | None = Field(default=None, alias="foreignKeyName")


class SchemaResponse(BaseModel):
    columns: list[ColumnOut]


class QueryResponse(BaseModel):
    data: list[dict[str, Any]]
    count: int


class CountResponse(BaseModel):
    count: int


class StatusResponse(BaseModel):
    status: str


# =============================================================================
# Discovery
# =============================================================================


@router.get("")
def list_tables(executor: CrudExecutor = Depends(get_executor)) -> list[str]:
    """List base tables visible to the configured connection."""
    return executor.list_tables()


@router.get("/{table}/schema")
def get_schema(table: str, executor: CrudExecutor = Depends(get_executor)) -> SchemaResponse:
    """Describe a table's columns, key flags and foreign keys."""
    schema = executor.schema(table)
    return SchemaResponse(
        columns=[
            ColumnOut(
                name=col.name,
                type=col.display_type,
                key=col.is_primary_key,
                filterable=col.filterable,
                foreign_key_name=col.foreign_key_constraint_name,
            )
            for col in schema.columns
        ]
    )


@router.get("/{table}/count")
def count_rows(table: str, executor: CrudExecutor = Depends(get_executor)) -> CountResponse:
    return CountResponse(count=executor.count(table))


# =============================================================================
# Reads
# =============================================================================


@router.get("/{table}/data")
def list_data(
    table: str,
    limit: int | None = None,
    offset: int | None = None,
    executor: CrudExecutor = Depends(get_executor),
) -> list[dict[str, Any]]:
    """Page through a table. limit defaults to 100, offset to 0."""
    records, _ = executor.list_records(table, limit=limit, offset=offset)
    return [record.to_json() for record in records]


@router.post("/{table}/query")
def query_data(
    table: str,
    body: QueryRequest,
    executor: CrudExecutor = Depends(get_executor),
) -> QueryResponse:
    """
    Filter with the structured dialect.

    ``count`` is the number of matching rows ignoring pagination.
    """
    predicates = compile_filters(body.filters, executor.schema(table))
    records, total = executor.list_records(
        table, limit=body.limit, offset=body.offset, predicates=predicates
    )
    return QueryResponse(data=[record.to_json() for record in records], count=total)


@router.get("/{table}/odata")
def odata_query(
    table: str,
    top: int | None = Query(default=None, alias="$top"),
    skip: int | None = Query(default=None, alias="$skip"),
    filter_expression: str | None = Query(default=None, alias="$filter"),
    executor: CrudExecutor = Depends(get_executor),
) -> list[dict[str, Any]]:
    """Filter with the expression dialect, e.g. ``$filter=status eq 'shipped'``."""
    predicates = parse_expression(filter_expression, executor.schema(table))
    records, _ = executor.list_records(table, limit=top, offset=skip, predicates=predicates)
    return [record.to_json() for record in records]


# =============================================================================
# Writes
# =============================================================================


@router.post("/{table}/data")
def create_row(
    table: str,
    body: dict[str, Any] = Body(...),
    upsert: bool = True,
    executor: CrudExecutor = Depends(get_executor),
) -> StatusResponse:
    """
    Save a row.

    By default this is an upsert: an existing row with the same key is
    replaced. Pass ``upsert=false`` for a plain insert.
    """
    if upsert:
        executor.upsert(table, body)
    else:
        executor.create(table, body)
    return StatusResponse(status="success")


@router.put("/{table}/data")
def update_row(
    table: str,
    body: dict[str, Any] = Body(...),
    executor: CrudExecutor = Depends(get_executor),
) -> StatusResponse:
    """Update the row identified by the key columns in the body."""
    executor.update(table, body)
    return StatusResponse(status="success")


@router.delete("/{table}/data")
def delete_row(
    table: str,
    body: dict[str, Any] = Body(...),
    executor: CrudExecutor = Depends(get_executor),
) -> StatusResponse:
    """Delete the row identified by the key columns in the body."""
    executor.delete(table, body)
    return StatusResponse(status="deleted")
