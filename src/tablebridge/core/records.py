"""
Generic record - the one row type used for every table.

A GenericRecord is an ordered mapping from column name to a TaggedValue.
The tag comes from the column's semantic type in the TableSchema, so
filtering, persistence and JSON rendering never need per-table classes.
"""

import base64
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from tablebridge.core.schema import ColumnMetadata, TableSchema
from tablebridge.core.types import SemanticType
from tablebridge.errors import ValidationError


@dataclass(frozen=True)
class TaggedValue:
    kind: SemanticType
    value: Any


def coerce_number(column: str, value: Any) -> int | float | Decimal | None:
    """Accept ints, floats, Decimals and numeric strings for a number column."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Column '{column}' expects a number, got a boolean")
    if isinstance(value, (int, float, Decimal)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"Column '{column}' expects a number, got '{value}'") from None
        if not number.is_finite():
            raise ValidationError(f"Column '{column}' expects a finite number, got '{value}'")
        return float(number)
    raise ValidationError(f"Column '{column}' expects a number, got {type(value).__name__}")


def coerce_text(column: str, value: Any) -> str | None:
    """Strings pass through; plain numbers are rendered as text."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    raise ValidationError(f"Column '{column}' expects text, got {type(value).__name__}")


def require_scalar(column: str, value: Any) -> Any:
    """Only JSON scalars can be bound; arrays and objects are rejected."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    raise ValidationError(f"Column '{column}' expects a scalar value, got {type(value).__name__}")


def coerce_value(column: ColumnMetadata, value: Any) -> Any:
    """Coerce an inbound JSON value to what the column's semantic type allows."""
    if column.semantic_type is SemanticType.NUMBER:
        return coerce_number(column.name, value)
    if column.semantic_type is SemanticType.TEXT:
        return coerce_text(column.name, value)
    return require_scalar(column.name, value)


def to_json_value(value: Any) -> Any:
    """Render a driver value as something json.dumps accepts."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return str(value)


class GenericRecord(Mapping[str, TaggedValue]):
    """Ordered column name -> TaggedValue mapping for one row."""

    __slots__ = ("_values",)

    def __init__(self, items: Mapping[str, TaggedValue] | None = None):
        self._values: dict[str, TaggedValue] = dict(items or {})

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_row(cls, schema: TableSchema, row: Mapping[str, Any]) -> "GenericRecord":
        """Build a record from a result row, in schema column order."""
        return cls({
            col.name: TaggedValue(col.semantic_type, row[col.name])
            for col in schema.columns
            if col.name in row
        })

    @classmethod
    def from_payload(cls, schema: TableSchema, payload: Mapping[str, Any]) -> "GenericRecord":
        """
        Build a record from a client write payload.

        Keys that are not columns of the table are rejected rather than
        dropped, so a typo in a field name never turns into a silent no-op.
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("Record payload must be a JSON object")

        unknown = schema.unknown_columns(payload)
        if unknown:
            raise ValidationError(
                f"Unknown column(s) for table '{schema.table}': {', '.join(sorted(unknown))}"
            )

        values = {}
        for col in schema.columns:
            if col.name in payload:
                values[col.name] = TaggedValue(col.semantic_type, coerce_value(col, payload[col.name]))
        return cls(values)

    # -------------------------------------------------------------------------
    # Mapping protocol
    # -------------------------------------------------------------------------

    def __getitem__(self, key: str) -> TaggedValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"GenericRecord({self.raw()!r})"

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def raw(self) -> dict[str, Any]:
        """Untagged values, suitable as statement parameters."""
        return {name: tagged.value for name, tagged in self._values.items()}

    def to_json(self) -> dict[str, Any]:
        return {name: to_json_value(tagged.value) for name, tagged in self._values.items()}

    def split_keys(self, schema: TableSchema) -> tuple[dict[str, Any], dict[str, Any]]:
        """Split into (primary key values, other values)."""
        keys: dict[str, Any] = {}
        rest: dict[str, Any] = {}
        for name, tagged in self._values.items():
            target = keys if name in schema.primary_keys else rest
            target[name] = tagged.value
        return keys, rest
