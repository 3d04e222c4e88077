"""
Domain error taxonomy and the database error mapping.

Nothing in here knows about HTTP. The feature services translate these
errors into responses; `core/db.py` raises them instead of driver errors.

`SQLSTATE_ERRORS` is the single place where backend error codes are
interpreted. Codes that are not listed are opaque `StorageError`s.
"""

from __future__ import annotations

from collections.abc import Sequence


class UsersApiError(RuntimeError):
    pass


class MissingFieldsError(UsersApiError):
    def __init__(self, fields: Sequence[str]):
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}.")


class InvalidFieldsError(UsersApiError):
    def __init__(self, fields: Sequence[str], reason: str):
        self.fields = list(fields)
        self.reason = reason
        super().__init__(f"Invalid fields: {', '.join(self.fields)} ({reason}).")


class NotFoundError(UsersApiError):
    pass


class StorageError(UsersApiError):
    """
    A backend failure during a live request.

    `sqlstate` is kept for server-side logs only.
    """

    def __init__(self, message: str, *, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


class DuplicateKeyError(StorageError):
    def __init__(self, message: str, *, sqlstate: str | None = None, constraint: str | None = None):
        super().__init__(message, sqlstate=sqlstate)
        self.constraint = constraint


class DatabaseConnectionError(UsersApiError):
    pass


class ServiceNotReadyError(UsersApiError):
    pass


UNIQUE_VIOLATION = "23505"

SQLSTATE_ERRORS: dict[str, type[StorageError]] = {
    UNIQUE_VIOLATION: DuplicateKeyError,
}


def from_driver_error(exc: BaseException) -> StorageError:
    """
    Classify a driver-level exception.

    Postgres server errors carry a SQLSTATE code; client-side failures
    (closed connections, socket errors, timeouts) do not and always map to
    `StorageError`.
    """
    sqlstate = getattr(exc, "sqlstate", None)
    error_cls = SQLSTATE_ERRORS.get(sqlstate or "", StorageError)
    message = str(exc) or type(exc).__name__
    if error_cls is DuplicateKeyError:
        return DuplicateKeyError(
            message,
            sqlstate=sqlstate,
            constraint=getattr(exc, "constraint_name", None),
        )
    return error_cls(message, sqlstate=sqlstate)
