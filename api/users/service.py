"""
Users business logic.

Each operation validates input, calls the repository and turns domain errors
into HTTP errors. Storage details are logged here and never sent to the
client.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, status

from core import errors
from core.db import Database

from . import repository, schemas

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "lastname", "email")

# Mirrors the VARCHAR sizes in repository.CREATE_USERS_TABLE.
FIELD_MAX_LENGTHS = {"name": 100, "lastname": 100, "email": 255}

USER_NOT_FOUND = "User not found."
DUPLICATE_EMAIL = "A user with this email already exists."
SERVICE_NOT_READY = "Service not ready."
INTERNAL_ERROR = "Internal server error."


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=int(user_row["id"]),
        name=str(user_row["name"]),
        lastname=str(user_row["lastname"]),
        email=str(user_row["email"]),
        created_at=user_row["created_at"],
        updated_at=user_row["updated_at"],
    )


def validate_payload(payload: schemas.UserPayload | None) -> dict[str, str]:
    """
    Return the stripped field values or raise a validation error.

    Whitespace-only values count as missing; so does a missing body.
    """
    if payload is None:
        payload = schemas.UserPayload()
    values = {field: (getattr(payload, field) or "").strip() for field in REQUIRED_FIELDS}

    missing = [field for field in REQUIRED_FIELDS if not values[field]]
    if missing:
        raise errors.MissingFieldsError(missing)

    too_long = [field for field in REQUIRED_FIELDS if len(values[field]) > FIELD_MAX_LENGTHS[field]]
    if too_long:
        raise errors.InvalidFieldsError(too_long, "value too long")

    return values


@contextmanager
def _http_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except errors.MissingFieldsError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Missing required fields.", "fields": exc.fields},
        ) from exc
    except errors.InvalidFieldsError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": f"Invalid fields: {exc.reason}.", "fields": exc.fields},
        ) from exc
    except errors.NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=USER_NOT_FOUND) from exc
    except errors.DuplicateKeyError as exc:
        logger.info("user_duplicate op=%s constraint=%s", operation, exc.constraint)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_EMAIL) from exc
    except errors.ServiceNotReadyError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=SERVICE_NOT_READY) from exc
    except errors.StorageError as exc:
        logger.error("storage_failed op=%s sqlstate=%s", operation, exc.sqlstate, exc_info=exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR) from exc


async def list_users(db: Database) -> list[schemas.UserResponse]:
    with _http_errors("list"):
        rows = await repository.list_users(db)
    return [_to_user_response(row) for row in rows]


async def get_user(db: Database, user_id: int) -> schemas.UserResponse:
    with _http_errors("get"):
        row = await repository.get_user(db, user_id)
    return _to_user_response(row)


async def create_user(db: Database, payload: schemas.UserPayload | None) -> schemas.UserResponse:
    with _http_errors("create"):
        values = validate_payload(payload)
        row = await repository.create_user(db, **values)
    logger.info("user_created id=%s", row["id"])
    return _to_user_response(row)


async def update_user(db: Database, user_id: int, payload: schemas.UserPayload | None) -> schemas.UserResponse:
    with _http_errors("update"):
        values = validate_payload(payload)
        row = await repository.update_user(db, user_id, **values)
    logger.info("user_updated id=%s", row["id"])
    return _to_user_response(row)


async def delete_user(db: Database, user_id: int) -> schemas.DeleteUserResponse:
    with _http_errors("delete"):
        row = await repository.delete_user(db, user_id)
    logger.info("user_deleted id=%s", row["id"])
    return schemas.DeleteUserResponse(message="User deleted.", user=_to_user_response(row))
