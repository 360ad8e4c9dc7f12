"""
Pytest configuration and fixtures for tablebridge tests.

Most tests run against an in-memory SQLite database seeded with a small
order-tracking schema:

    customers(id PK, name, email)
    orders(id PK, status, total, customer_id -> customers.id, placed_at)
    order_lines((order_id, line_no) PK, sku, qty)
    audit_log(message)            -- no primary key
"""

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, text
from sqlalchemy.pool import StaticPool

# Set test environment before importing tablebridge modules
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TABLEBRIDGE_ENV", "development")

from tablebridge.core.cache import ForeignKeyCache, SchemaCache  # noqa: E402
from tablebridge.core.schema import ColumnMetadata, TableSchema  # noqa: E402
from tablebridge.db.crud import CrudExecutor  # noqa: E402
from tablebridge.db.introspect import SchemaIntrospector  # noqa: E402
from tablebridge.web.app import create_app  # noqa: E402

SCHEMA_SQL = [
    """
    CREATE TABLE customers (
        id INTEGER PRIMARY KEY,
        name VARCHAR(50) NOT NULL,
        email TEXT
    )
    """,
    """
    CREATE TABLE orders (
        id INTEGER PRIMARY KEY,
        status VARCHAR(20),
        total NUMERIC,
        customer_id INTEGER,
        placed_at DATETIME,
        CONSTRAINT fk_orders_customer FOREIGN KEY (customer_id) REFERENCES customers (id)
    )
    """,
    """
    CREATE TABLE order_lines (
        order_id INTEGER NOT NULL,
        line_no INTEGER NOT NULL,
        sku VARCHAR(20),
        qty INTEGER,
        PRIMARY KEY (order_id, line_no)
    )
    """,
    """
    CREATE TABLE audit_log (
        message TEXT
    )
    """,
]

SEED_SQL = [
    "INSERT INTO customers (id, name, email) VALUES (1, 'Ada', 'ada@example.com')",
    "INSERT INTO customers (id, name, email) VALUES (2, 'Grace', NULL)",
    "INSERT INTO orders VALUES (1, 'shipped', 150, 1, '2024-01-05 10:00:00')",
    "INSERT INTO orders VALUES (2, 'shipped', 80, 2, '2024-01-06 11:30:00')",
    "INSERT INTO orders VALUES (3, 'pending', 200, 1, '2024-01-07 09:15:00')",
    "INSERT INTO orders VALUES (4, NULL, 50, NULL, NULL)",
    "INSERT INTO orders VALUES (5, 'shipped', 300, 2, '2024-01-09 16:45:00')",
    "INSERT INTO order_lines VALUES (1, 1, 'WIDGET', 2)",
    "INSERT INTO order_lines VALUES (1, 2, 'GADGET', 1)",
    "INSERT INTO audit_log VALUES ('seeded')",
]


@pytest.fixture
def engine():
    """In-memory SQLite shared by every thread of a test."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        for stmt in SCHEMA_SQL + SEED_SQL:
            conn.execute(text(stmt))
    yield engine
    engine.dispose()


@pytest.fixture
def statements(engine):
    """Every SQL statement sent to the engine during the test."""
    seen: list[str] = []

    def record(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    event.listen(engine, "before_cursor_execute", record)
    yield seen
    event.remove(engine, "before_cursor_execute", record)


@pytest.fixture
def introspector(engine):
    return SchemaIntrospector(engine)


@pytest.fixture
def executor(engine, introspector):
    return CrudExecutor(
        engine,
        introspector,
        schema_cache=SchemaCache(introspector),
        fk_cache=ForeignKeyCache(introspector),
    )


@pytest.fixture
def client(engine):
    """HTTP client over an app wired to the test engine."""
    with TestClient(create_app(engine=engine)) as test_client:
        yield test_client


@pytest.fixture
def orders_schema():
    """Hand-built schema for tests that never touch a database."""
    return TableSchema(
        table="orders",
        columns=(
            ColumnMetadata.from_catalog("id", "int", is_primary_key=True),
            ColumnMetadata.from_catalog("status", "varchar"),
            ColumnMetadata.from_catalog("total", "decimal"),
            ColumnMetadata.from_catalog("customer_id", "int", foreign_key_constraint_name="fk_orders_customer"),
            ColumnMetadata.from_catalog("placed_at", "datetime"),
        ),
    )


def fetch_rows(engine, sql: str) -> list[dict]:
    with engine.connect() as conn:
        return [dict(row) for row in conn.execute(text(sql)).mappings()]
