"""
tablebridge - Database access.

Engine construction, catalog introspection and the generic CRUD executor.
"""

from tablebridge.db.client import create_db_engine, get_engine
from tablebridge.db.crud import CrudExecutor
from tablebridge.db.introspect import SchemaIntrospector

__all__ = [
    "CrudExecutor",
    "SchemaIntrospector",
    "create_db_engine",
    "get_engine",
]
