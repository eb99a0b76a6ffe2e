"""Tests for SQL statement generation."""

import pytest

from activerow.db.builder import SQLQueryBuilder, to_column, to_table
from activerow.exceptions import UnsupportedOperationError


@pytest.fixture
def builder():
    return SQLQueryBuilder("duckdb")


def test_select(builder):
    sql = builder.select("id", "email").from_("users").where("id", 42).to_sql()

    assert sql == 'SELECT "id", "email" FROM "users" WHERE "id" = 42'


def test_select_star_by_default(builder):
    assert builder.from_("users").to_sql() == 'SELECT * FROM "users"'


def test_select_expression(builder):
    sql = builder.select("COUNT(*) AS aggregate").from_("users").to_sql()

    assert sql == 'SELECT COUNT(*) AS aggregate FROM "users"'


def test_qualified_names(builder):
    sql = builder.from_("main.users").where("users.id", 1).to_sql()

    assert sql == 'SELECT * FROM "main"."users" WHERE "users"."id" = 1'


def test_where_forms(builder):
    sql = builder.from_("banners").where("hits", ">", 10).where("name", "Banner").where("hits < 100").to_sql()

    assert '"hits" > 10' in sql
    assert "\"name\" = 'Banner'" in sql
    assert "hits < 100" in sql
    assert sql.count(" AND ") == 2


def test_where_none_is_null(builder):
    sql = builder.from_("users").where("params", None).to_sql()

    assert sql == 'SELECT * FROM "users" WHERE "params" IS NULL'


def test_where_not_null(builder):
    sql = builder.from_("users").where_not_null("params").to_sql()

    assert "NOT" in sql
    assert '"params" IS NULL' in sql


def test_where_escapes_strings(builder):
    sql = builder.from_("users").where("name", "O'Brien").to_sql()

    assert "'O''Brien'" in sql


def test_where_rejects_bad_input(builder):
    with pytest.raises(ValueError):
        builder.where("hits", "~", 1)

    with pytest.raises(TypeError):
        builder.where("hits", "=", 1, 2)


def test_where_in(builder):
    assert builder.from_("users").where_in("id", [1, 2]).to_sql() == 'SELECT * FROM "users" WHERE "id" IN (1, 2)'


def test_where_in_empty_matches_nothing(builder):
    assert builder.from_("users").where_in("id", []).to_sql() == 'SELECT * FROM "users" WHERE FALSE'


def test_order_and_limit(builder):
    sql = builder.from_("users").order("name DESC").set_limit(10, 20).to_sql()

    assert "ORDER BY name DESC" in sql
    assert "LIMIT 10" in sql
    assert "OFFSET 20" in sql


def test_limit_not_supported(builder):
    builder.supports_limit = False

    with pytest.raises(UnsupportedOperationError):
        builder.set_limit(1)


def test_group_and_having(builder):
    sql = builder.select("user_id_to", "COUNT(*) AS total").from_("messages").group("user_id_to").having("COUNT(*) > 1").to_sql()

    assert 'GROUP BY "user_id_to"' in sql
    assert "HAVING COUNT(*) > 1" in sql


def test_join(builder):
    sql = builder.from_("users").join("messages", on="users.id = messages.user_id_from", join_type="left").to_sql()

    assert 'LEFT JOIN "messages"' in sql
    assert "users.id = messages.user_id_from" in sql


def test_clear(builder):
    builder.from_("users").where("id", 1).order("id").set_limit(1)

    builder.clear("where").clear("order").clear("limit")

    assert builder.to_sql() == 'SELECT * FROM "users"'

    with pytest.raises(ValueError):
        builder.clear("window")


def test_insert(builder):
    sql = builder.insert("users").columns("email", "block").values("a@b.c", 0).to_sql()

    assert sql == "INSERT INTO \"users\" (\"email\", \"block\") VALUES ('a@b.c', 0)"


def test_insert_returning(builder):
    builder.insert("users").columns("email").values("a@b.c").returning("id")

    assert builder.to_sql().endswith('RETURNING "id"')
    assert builder.returning_column is not None


def test_update(builder):
    sql = builder.update("users").set({"name": "x", "block": None}).where("id", 1).to_sql()

    assert sql == "UPDATE \"users\" SET \"name\" = 'x', \"block\" = NULL WHERE \"id\" = 1"


def test_update_keeps_from_table_and_filters(builder):
    sql = builder.from_("banners").where("category_id", 1).update().set({"hits": 0}).to_sql()

    assert sql == 'UPDATE "banners" SET "hits" = 0 WHERE "category_id" = 1'


def test_delete(builder):
    assert builder.delete("users").where("id", 1).to_sql() == 'DELETE FROM "users" WHERE "id" = 1'


def test_missing_table(builder):
    with pytest.raises(ValueError):
        builder.to_sql()


def test_sqlite_dialect():
    builder = SQLQueryBuilder("sqlite")

    assert builder.from_("users").where("id", 1).set_limit(1).to_sql() == 'SELECT * FROM "users" WHERE "id" = 1 LIMIT 1'


def test_identifier_validation():
    with pytest.raises(ValueError):
        to_column("id; DROP TABLE users")
    with pytest.raises(ValueError):
        to_column("a.b.c")
    with pytest.raises(ValueError):
        to_table("users--")


def test_str(builder):
    builder.from_("users")

    assert str(builder) == builder.to_sql()
