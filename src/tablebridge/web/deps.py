"""
Request dependencies.

The executor (and with it the schema and foreign key caches) is built once
in create_app and stored on app.state; handlers receive it through Depends.
"""

from fastapi import Request

from tablebridge.db.crud import CrudExecutor


def get_executor(request: Request) -> CrudExecutor:
    return request.app.state.executor
