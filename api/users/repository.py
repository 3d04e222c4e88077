"""
Users persistence (raw SQL).

This is the only module that issues queries against `users`. A missing row
is decided by cardinality alone and raised as `NotFoundError`; backend
failures arrive already classified by `core.db`.
"""

from __future__ import annotations

from core import errors
from core.db import Database

# SERIAL is a 4-byte integer; anything outside this range cannot exist.
MIN_USER_ID = 1
MAX_USER_ID = 2_147_483_647

CREATE_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    lastname VARCHAR(100) NOT NULL,
    email VARCHAR(255) UNIQUE NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""

SCHEMA_STATEMENTS: tuple[str, ...] = (CREATE_USERS_TABLE,)


def _check_id(user_id: int) -> None:
    if not MIN_USER_ID <= user_id <= MAX_USER_ID:
        raise errors.NotFoundError(f"User {user_id} not found.")


async def list_users(db: Database) -> list[dict]:
    return await db.fetch_all(
        """
        SELECT id, name, lastname, email, created_at, updated_at
        FROM users
        ORDER BY id ASC
        """
    )


async def get_user(db: Database, user_id: int) -> dict:
    _check_id(user_id)
    row = await db.fetch_one(
        """
        SELECT id, name, lastname, email, created_at, updated_at
        FROM users
        WHERE id = $1
        """,
        user_id,
    )
    if row is None:
        raise errors.NotFoundError(f"User {user_id} not found.")
    return row


async def create_user(db: Database, *, name: str, lastname: str, email: str) -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO users (name, lastname, email)
        VALUES ($1, $2, $3)
        RETURNING id, name, lastname, email, created_at, updated_at
        """,
        name,
        lastname,
        email,
    )
    if row is None:
        raise errors.StorageError("INSERT returned no row.")
    return row


async def update_user(db: Database, user_id: int, *, name: str, lastname: str, email: str) -> dict:
    _check_id(user_id)
    row = await db.fetch_one(
        """
        UPDATE users
        SET name = $1,
            lastname = $2,
            email = $3,
            updated_at = now()
        WHERE id = $4
        RETURNING id, name, lastname, email, created_at, updated_at
        """,
        name,
        lastname,
        email,
        user_id,
    )
    if row is None:
        raise errors.NotFoundError(f"User {user_id} not found.")
    return row


async def delete_user(db: Database, user_id: int) -> dict:
    """
    Permanently delete a user and return the row as it was.
    """
    _check_id(user_id)
    row = await db.fetch_one(
        """
        DELETE FROM users
        WHERE id = $1
        RETURNING id, name, lastname, email, created_at, updated_at
        """,
        user_id,
    )
    if row is None:
        raise errors.NotFoundError(f"User {user_id} not found.")
    return row
