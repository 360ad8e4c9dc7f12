"""
Foreign key API endpoints.

Lets a grid offer a dropdown of valid values for a foreign key column.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tablebridge.db.crud import CrudExecutor
from tablebridge.web.deps import get_executor

router = APIRouter(prefix="/foreign-keys", tags=["foreign-keys"])


class ForeignKeyOption(BaseModel):
    id: int | float | str | None
    name: int | float | str | None


@router.get("/{name}/data")
def foreign_key_options(
    name: str,
    executor: CrudExecutor = Depends(get_executor),
) -> list[ForeignKeyOption]:
    """Rows of the referenced table as id/name pairs."""
    return [ForeignKeyOption(**option) for option in executor.foreign_key_options(name)]
