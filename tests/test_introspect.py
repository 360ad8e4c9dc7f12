"""Tests for SchemaIntrospector (reflection and INFORMATION_SCHEMA paths)."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from tablebridge.core.types import SemanticType
from tablebridge.db.introspect import (
    FOREIGN_KEY_QUERY,
    MYSQL_FOREIGN_KEY_QUERY,
    SchemaIntrospector,
    foreign_key_name,
)
from tablebridge.errors import SchemaError


class TestReflectionPath:
    """SQLite is described through the reflection Inspector."""

    def test_describes_columns_in_order(self, introspector):
        schema = introspector.introspect("orders")

        assert schema.column_names == ["id", "status", "total", "customer_id", "placed_at"]
        assert schema.primary_keys == frozenset({"id"})
        assert schema.column("status").semantic_type is SemanticType.TEXT
        assert schema.column("total").semantic_type is SemanticType.NUMBER
        assert schema.column("placed_at").semantic_type is SemanticType.OPAQUE

    def test_foreign_key_resolves(self, introspector):
        fk_name = introspector.introspect("orders").column("customer_id").foreign_key_constraint_name
        assert fk_name is not None

        mapping = introspector.resolve_foreign_key(fk_name)
        assert mapping.referenced_table == "customers"
        assert mapping.referenced_column == "id"

    def test_composite_primary_key(self, introspector):
        schema = introspector.introspect("order_lines")
        assert schema.primary_keys == frozenset({"order_id", "line_no"})

    def test_missing_table(self, introspector):
        with pytest.raises(SchemaError) as exc_info:
            introspector.introspect("nope")
        assert exc_info.value.not_found
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Table 'nope' not found"

    def test_missing_foreign_key(self, introspector):
        with pytest.raises(SchemaError, match="not found") as exc_info:
            introspector.resolve_foreign_key("fk_does_not_exist")
        assert exc_info.value.not_found

    def test_list_tables(self, introspector):
        assert introspector.list_tables() == ["audit_log", "customers", "order_lines", "orders"]


def test_unnamed_foreign_key_gets_stable_name():
    fk = {"name": None, "constrained_columns": ["order_id", "line_no"]}
    assert foreign_key_name("shipments", fk) == "fk_shipments_order_id_line_no"
    assert foreign_key_name("shipments", {"name": "fk_x", "constrained_columns": ["a"]}) == "fk_x"


@pytest.fixture
def catalog_engine():
    """Engine stand-in for a server with INFORMATION_SCHEMA views."""
    engine = MagicMock()
    engine.dialect.name = "mssql"
    return engine


def catalog_result(engine):
    conn = engine.connect.return_value.__enter__.return_value
    return conn.execute.return_value.mappings.return_value


class TestCatalogPath:
    """Servers with INFORMATION_SCHEMA are queried directly."""

    def test_builds_schema_from_rows(self, catalog_engine):
        catalog_result(catalog_engine).all.return_value = [
            {"column_name": "id", "data_type": "int", "is_key": 1, "foreign_key": None},
            {"column_name": "name", "data_type": "nvarchar", "is_key": 0, "foreign_key": None},
            {"column_name": "owner_id", "data_type": "int", "is_key": 0, "foreign_key": "FK_Owner"},
            {"column_name": "created", "data_type": "datetime2", "is_key": 0, "foreign_key": None},
        ]
        schema = SchemaIntrospector(catalog_engine).introspect("Widgets")

        assert schema.column_names == ["id", "name", "owner_id", "created"]
        assert schema.primary_keys == frozenset({"id"})
        assert schema.column("owner_id").foreign_key_constraint_name == "FK_Owner"
        assert schema.column("created").display_type == "datetime2"

    def test_no_rows_means_not_found(self, catalog_engine):
        catalog_result(catalog_engine).all.return_value = []

        with pytest.raises(SchemaError) as exc_info:
            SchemaIntrospector(catalog_engine).introspect("Ghost")
        assert exc_info.value.not_found

    def test_driver_errors_are_wrapped(self, catalog_engine):
        conn = catalog_engine.connect.return_value.__enter__.return_value
        conn.execute.side_effect = OperationalError("SELECT", {}, Exception("login failed"))

        with pytest.raises(SchemaError) as exc_info:
            SchemaIntrospector(catalog_engine).introspect("Widgets")
        assert not exc_info.value.not_found
        assert exc_info.value.status_code == 500
        assert "login failed" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_resolve_foreign_key(self, catalog_engine):
        catalog_result(catalog_engine).first.return_value = {
            "constraint_name": "FK_Owner",
            "referenced_table": "Owners",
            "referenced_column": "OwnerId",
        }
        mapping = SchemaIntrospector(catalog_engine).resolve_foreign_key("FK_Owner")

        assert mapping.referenced_table == "Owners"
        assert mapping.referenced_column == "OwnerId"

    def test_unknown_foreign_key(self, catalog_engine):
        catalog_result(catalog_engine).first.return_value = None

        with pytest.raises(SchemaError, match="Foreign key 'FK_Nope' not found"):
            SchemaIntrospector(catalog_engine).resolve_foreign_key("FK_Nope")


class TestMySqlForeignKeys:
    """MySQL reads the referenced column straight from KEY_COLUMN_USAGE."""

    @pytest.mark.parametrize("dialect", ["mysql", "mariadb"])
    def test_uses_referenced_columns(self, catalog_engine, dialect):
        catalog_engine.dialect.name = dialect
        catalog_result(catalog_engine).first.return_value = {
            "constraint_name": "fk_orders_customer",
            "referenced_table": "customers",
            "referenced_column": "id",
        }
        mapping = SchemaIntrospector(catalog_engine).resolve_foreign_key("fk_orders_customer")

        conn = catalog_engine.connect.return_value.__enter__.return_value
        assert conn.execute.call_args.args[0] is MYSQL_FOREIGN_KEY_QUERY
        assert conn.execute.call_args.args[1] == {"name": "fk_orders_customer"}
        assert mapping.referenced_table == "customers"

    def test_other_servers_join_constraints(self, catalog_engine):
        catalog_result(catalog_engine).first.return_value = {
            "constraint_name": "FK_Owner",
            "referenced_table": "Owners",
            "referenced_column": "OwnerId",
        }
        SchemaIntrospector(catalog_engine).resolve_foreign_key("FK_Owner")

        conn = catalog_engine.connect.return_value.__enter__.return_value
        assert conn.execute.call_args.args[0] is FOREIGN_KEY_QUERY

    def test_constraint_join_is_schema_scoped(self):
        sql = str(FOREIGN_KEY_QUERY)
        assert "fk.CONSTRAINT_SCHEMA = rc.CONSTRAINT_SCHEMA" in sql
        assert "pk.CONSTRAINT_SCHEMA = rc.UNIQUE_CONSTRAINT_SCHEMA" in sql
        assert "REFERENCED_TABLE_NAME" in str(MYSQL_FOREIGN_KEY_QUERY)
