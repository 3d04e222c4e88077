# =============================================================================
# tests/test_users_repository.py - Users Repository Tests
# =============================================================================
# Repository operations against the in-memory pool: ordering, cardinality
# based not-found, duplicate classification and timestamp behaviour.
# =============================================================================

from __future__ import annotations

import pytest

from core import errors
from users import repository

from tests.fakes import run


def create(database, name="Ana", lastname="Silva", email="ana@x.com"):
    return run(repository.create_user(database, name=name, lastname=lastname, email=email))


class TestCreateAndGet:
    """Tests for create_user and get_user."""

    def test_create_returns_generated_fields(self, database):
        user = create(database)

        assert user["id"] == 1
        assert user["name"] == "Ana"
        assert user["created_at"] == user["updated_at"]

    def test_get_returns_created_record(self, database):
        created = create(database)
        assert run(repository.get_user(database, created["id"])) == created

    def test_get_missing_raises_not_found(self, database):
        with pytest.raises(errors.NotFoundError):
            run(repository.get_user(database, 999999))

    @pytest.mark.parametrize("user_id", [0, -5, 2_147_483_648])
    def test_out_of_range_id_is_not_found_without_query(self, database, fake_pool, user_id):
        issued = len(fake_pool.statements)

        with pytest.raises(errors.NotFoundError):
            run(repository.get_user(database, user_id))

        assert len(fake_pool.statements) == issued

    def test_duplicate_email_raises_and_keeps_first(self, database):
        first = create(database)

        with pytest.raises(errors.DuplicateKeyError):
            create(database, name="Other", lastname="Person", email="ana@x.com")

        assert run(repository.get_user(database, first["id"])) == first
        assert len(run(repository.list_users(database))) == 1

    def test_statements_are_parameterized(self, database, fake_pool):
        create(database, name="Robert'); DROP TABLE users;--")
        insert = [s for s in fake_pool.statements if s.startswith("INSERT")][0]
        assert "DROP TABLE" not in insert
        assert "VALUES ($1, $2, $3)" in insert


class TestList:
    """Tests for list_users."""

    def test_empty_table(self, database):
        assert run(repository.list_users(database)) == []

    def test_ordered_by_id_and_counts_deletions(self, database):
        ids = [create(database, email=f"user{i}@x.com")["id"] for i in range(4)]
        run(repository.delete_user(database, ids[1]))

        users = run(repository.list_users(database))

        assert [u["id"] for u in users] == [ids[0], ids[2], ids[3]]

    def test_list_sql_orders_by_id(self, database, fake_pool):
        run(repository.list_users(database))
        assert fake_pool.statements[-1].endswith("ORDER BY id ASC")


class TestUpdate:
    """Tests for update_user."""

    def test_update_replaces_fields_and_refreshes_updated_at(self, database):
        created = create(database)

        updated = run(
            repository.update_user(database, created["id"], name="Ana", lastname="Souza", email="ana@y.com")
        )

        assert updated["id"] == created["id"]
        assert updated["lastname"] == "Souza"
        assert updated["email"] == "ana@y.com"
        assert updated["created_at"] == created["created_at"]
        assert updated["updated_at"] >= created["updated_at"]

    def test_update_with_same_values(self, database):
        created = create(database)

        updated = run(repository.update_user(database, created["id"], name="Ana", lastname="Silva", email="ana@x.com"))

        assert updated["id"] == created["id"]
        assert updated["created_at"] == created["created_at"]
        assert updated["updated_at"] >= created["updated_at"]

    def test_update_to_taken_email_is_duplicate(self, database):
        create(database)
        other = create(database, name="Bea", email="bea@x.com")

        with pytest.raises(errors.DuplicateKeyError):
            run(repository.update_user(database, other["id"], name="Bea", lastname="Silva", email="ana@x.com"))

        assert run(repository.get_user(database, other["id"]))["email"] == "bea@x.com"

    def test_update_missing_raises_not_found(self, database):
        with pytest.raises(errors.NotFoundError):
            run(repository.update_user(database, 42, name="A", lastname="B", email="c@x.com"))


class TestDelete:
    """Tests for delete_user."""

    def test_delete_returns_prior_state(self, database):
        created = create(database)
        assert run(repository.delete_user(database, created["id"])) == created

    def test_deleted_record_is_gone(self, database):
        created = create(database)
        run(repository.delete_user(database, created["id"]))

        with pytest.raises(errors.NotFoundError):
            run(repository.get_user(database, created["id"]))
        with pytest.raises(errors.NotFoundError):
            run(repository.update_user(database, created["id"], name="A", lastname="B", email="c@x.com"))
        with pytest.raises(errors.NotFoundError):
            run(repository.delete_user(database, created["id"]))

    def test_ids_are_not_reused(self, database):
        first = create(database)
        run(repository.delete_user(database, first["id"]))

        second = create(database)

        assert second["id"] > first["id"]
