"""
tablebridge - Error taxonomy.

Every failure the engine reports is one of three kinds:
- ValidationError: the request is malformed; nothing was executed
- SchemaError: the table (or foreign key) could not be described
- StorageError: the database rejected a statement

The web layer maps them to HTTP status codes via ``status_code``.
"""


class TableBridgeError(Exception):
    """Base class for all engine errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TableBridgeError):
    """Bad pagination, unknown column, incomplete range, bad payload."""

    status_code = 400


class SchemaError(TableBridgeError):
    """Introspection failed or the object does not exist."""

    def __init__(self, message: str, *, table: str | None = None, not_found: bool = False):
        super().__init__(message)
        self.table = table
        self.not_found = not_found

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 400 if self.not_found else 500


class StorageError(TableBridgeError):
    """A statement failed against the database."""

    status_code = 500
