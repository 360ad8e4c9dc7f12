"""
Structured filter dialect.

Accepts the JSON filter list a data grid sends, e.g.

    [
        {"field": "status", "type": "equals", "filter": "shipped"},
        {"field": "total", "type": "inRange", "filter": 10, "filterTo": 20},
        {"field": "status", "operator": "OR", "conditions": [
            {"type": "equals", "filter": "shipped"},
            {"type": "blank"}
        ]}
    ]

and compiles it to a Predicate list. Top-level conditions are ANDed.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from tablebridge.core.records import coerce_number, require_scalar
from tablebridge.core.schema import ColumnMetadata, TableSchema
from tablebridge.core.types import SemanticType
from tablebridge.errors import ValidationError
from tablebridge.filters.predicates import Predicate, contains_pattern


# =============================================================================
# Pydantic Models
# =============================================================================


class FilterCondition(BaseModel):
    """A single filter condition, or a two-way AND/OR of sub-conditions."""

    model_config = ConfigDict(populate_by_name=True)

    field: str | None = None  # Sub-conditions inherit the parent's field
    type: str | None = None
    filter: Any = None
    filter_to: Any = Field(default=None, alias="filterTo")
    operator: Literal["AND", "OR"] | None = None
    conditions: list["FilterCondition"] = []


class QueryRequest(BaseModel):
    """Body of POST /tables/{table}/query."""

    filters: list[FilterCondition] = []
    limit: int | None = None
    offset: int | None = None


# =============================================================================
# Operators
# =============================================================================

COMPARISON_OPERATORS: dict[str, str] = {
    "equals": "=",
    "notEqual": "<>",
    "greaterThan": ">",
    "lessThan": "<",
    "greaterThanOrEqual": ">=",
    "lessThanOrEqual": "<=",
}

NULL_OPERATORS: dict[str, str] = {
    "blank": "IS NULL",
    "notBlank": "IS NOT NULL",
}

SUPPORTED_OPERATORS = [*COMPARISON_OPERATORS, "contains", "inRange", *NULL_OPERATORS]


def coerce_filter_value(column: ColumnMetadata, value: Any) -> Any:
    """Numeric strings compared against number columns are bound as numbers."""
    if column.semantic_type is SemanticType.NUMBER and isinstance(value, str):
        return coerce_number(column.name, value)
    return value


def compile_operation(
    schema: TableSchema,
    field: str,
    operation: str,
    value: Any = None,
    value_to: Any = None,
) -> Predicate:
    """
    Compile one named operation on an already validated field.

    Raises:
        ValidationError: unknown operation, missing value(s) or non-scalar value(s)
    """
    column = schema.column(field)
    value = require_scalar(field, value)
    value_to = require_scalar(field, value_to)

    if operation in COMPARISON_OPERATORS:
        if value is None:
            raise ValidationError(f"Filter '{operation}' on '{field}' requires a value")
        return Predicate(
            field=field,
            operator=COMPARISON_OPERATORS[operation],
            params=(coerce_filter_value(column, value),),
        )

    if operation == "contains":
        if value is None:
            raise ValidationError(f"Filter 'contains' on '{field}' requires a value")
        return Predicate(field=field, operator="LIKE", params=(contains_pattern(value),))

    if operation == "inRange":
        if value is None or value_to is None:
            raise ValidationError(
                f"Filter 'inRange' on '{field}' requires both 'filter' and 'filterTo'"
            )
        return Predicate(
            field=field,
            operator="BETWEEN",
            params=(coerce_filter_value(column, value), coerce_filter_value(column, value_to)),
        )

    if operation in NULL_OPERATORS:
        return Predicate(field=field, operator=NULL_OPERATORS[operation])

    raise ValidationError(
        f"Unsupported filter type '{operation}' on '{field}'. "
        f"Supported: {', '.join(SUPPORTED_OPERATORS)}"
    )


# =============================================================================
# Compilation
# =============================================================================


def _resolved_fields(condition: FilterCondition, parent_field: str | None = None) -> list[str]:
    field = condition.field or parent_field
    if condition.operator:
        fields: list[str] = []
        for sub in condition.conditions:
            fields.extend(_resolved_fields(sub, field))
        return fields
    if not field:
        raise ValidationError("Filter condition is missing 'field'")
    return [field]


def validate_fields(conditions: list[FilterCondition], schema: TableSchema) -> None:
    """Reject the whole filter list if any condition names an unknown column."""
    for condition in conditions:
        unknown = schema.unknown_columns(_resolved_fields(condition))
        if unknown:
            raise ValidationError(
                f"Unknown filter field '{unknown[0]}' for table '{schema.table}'"
            )


def _compile_condition(
    condition: FilterCondition,
    schema: TableSchema,
    parent_field: str | None = None,
) -> list[Predicate]:
    field = condition.field or parent_field

    if condition.operator:
        if len(condition.conditions) != 2:
            raise ValidationError(
                f"'{condition.operator}' filter on '{field}' needs exactly two conditions, "
                f"got {len(condition.conditions)}"
            )
        children = [_compile_condition(sub, schema, field) for sub in condition.conditions]
        if condition.operator == "AND":
            return [p for group in children for p in group]
        return [Predicate.any_of(*(_and_group(group) for group in children))]

    if not condition.type:
        raise ValidationError(f"Filter condition on '{field}' is missing 'type'")
    return [compile_operation(schema, field, condition.type, condition.filter, condition.filter_to)]


def _and_group(predicates: list[Predicate]) -> Predicate:
    # An AND nested inside an OR branch stays one parenthesised term
    if len(predicates) == 1:
        return predicates[0]
    return Predicate.all_of(*predicates)


def compile_filters(conditions: list[FilterCondition], schema: TableSchema) -> list[Predicate]:
    """
    Compile a structured filter list against a table schema.

    Every field is checked before anything is compiled, so one bad field
    rejects the whole list.

    Raises:
        ValidationError: unknown field, unknown type, missing value, bad combinator
    """
    validate_fields(conditions, schema)

    predicates: list[Predicate] = []
    for condition in conditions:
        predicates.extend(_compile_condition(condition, schema))
    return predicates
