"""Tests for GenericRecord and value coercion."""

import base64
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

import pytest

from tablebridge.core.records import (
    GenericRecord,
    TaggedValue,
    coerce_number,
    coerce_text,
    to_json_value,
)
from tablebridge.core.types import SemanticType
from tablebridge.errors import ValidationError


class TestCoercion:
    def test_numbers_pass_through(self):
        assert coerce_number("total", 5) == 5
        assert coerce_number("total", 2.5) == 2.5
        assert coerce_number("total", Decimal("1.10")) == Decimal("1.10")

    def test_numeric_strings(self):
        assert coerce_number("total", "42") == 42
        assert coerce_number("total", " 3.5 ") == 3.5

    def test_rejects_non_numbers(self):
        with pytest.raises(ValidationError, match="expects a number"):
            coerce_number("total", "abc")
        with pytest.raises(ValidationError, match="boolean"):
            coerce_number("total", True)
        with pytest.raises(ValidationError, match="finite"):
            coerce_number("total", "NaN")

    def test_text_accepts_numbers(self):
        assert coerce_text("status", "x") == "x"
        assert coerce_text("status", 7) == "7"
        assert coerce_text("status", None) is None

    def test_text_rejects_structures(self):
        with pytest.raises(ValidationError, match="expects text"):
            coerce_text("status", {"a": 1})


class TestJsonValues:
    def test_decimal(self):
        assert to_json_value(Decimal("150")) == 150
        assert isinstance(to_json_value(Decimal("150.00")), int)
        assert to_json_value(Decimal("2.50")) == 2.5

    def test_temporal_and_ids(self):
        assert to_json_value(datetime(2024, 1, 5, 10, 0)) == "2024-01-05T10:00:00"
        assert to_json_value(date(2024, 1, 5)) == "2024-01-05"
        uid = UUID("12345678-1234-5678-1234-567812345678")
        assert to_json_value(uid) == str(uid)

    def test_bytes_are_base64(self):
        assert to_json_value(b"\x00\x01") == base64.b64encode(b"\x00\x01").decode()


class TestGenericRecord:
    """Records built from rows and from client payloads."""

    def test_from_row_follows_schema_order(self, orders_schema):
        row = {"total": Decimal("80"), "id": 2, "status": "shipped"}
        record = GenericRecord.from_row(orders_schema, row)

        assert list(record) == ["id", "status", "total"]
        assert record["total"] == TaggedValue(SemanticType.NUMBER, Decimal("80"))
        assert record.to_json() == {"id": 2, "status": "shipped", "total": 80}

    def test_from_payload_coerces(self, orders_schema):
        record = GenericRecord.from_payload(orders_schema, {"id": "9", "status": "new", "total": "12.5"})
        assert record.raw() == {"id": 9, "status": "new", "total": 12.5}

    def test_from_payload_rejects_unknown_columns(self, orders_schema):
        with pytest.raises(ValidationError) as exc_info:
            GenericRecord.from_payload(orders_schema, {"id": 1, "zeta": 1, "alpha": 2})
        assert exc_info.value.message == "Unknown column(s) for table 'orders': alpha, zeta"

    def test_from_payload_requires_object(self, orders_schema):
        with pytest.raises(ValidationError, match="JSON object"):
            GenericRecord.from_payload(orders_schema, [1, 2])

    def test_opaque_values_untouched(self, orders_schema):
        record = GenericRecord.from_payload(orders_schema, {"placed_at": "2024-01-05T10:00:00"})
        assert record["placed_at"].kind is SemanticType.OPAQUE
        assert record["placed_at"].value == "2024-01-05T10:00:00"

    def test_split_keys(self, orders_schema):
        record = GenericRecord.from_payload(orders_schema, {"id": 1, "status": "shipped"})
        keys, rest = record.split_keys(orders_schema)
        assert keys == {"id": 1}
        assert rest == {"status": "shipped"}


class TestScalarValues:
    def test_opaque_column_rejects_objects(self, orders_schema):
        with pytest.raises(ValidationError, match="expects a scalar value, got dict"):
            GenericRecord.from_payload(orders_schema, {"id": 1, "placed_at": {"x": 1}})

    def test_opaque_column_rejects_arrays(self, orders_schema):
        with pytest.raises(ValidationError, match="got list"):
            GenericRecord.from_payload(orders_schema, {"id": 1, "placed_at": [1, 2]})

    def test_text_column_rejects_arrays(self, orders_schema):
        with pytest.raises(ValidationError, match="expects text"):
            GenericRecord.from_payload(orders_schema, {"id": 1, "status": ["a"]})
