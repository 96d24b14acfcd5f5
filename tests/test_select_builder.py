"""Unit tests for SelectBuilder (complete SELECT statements)."""
from __future__ import annotations

import pytest

from spanql.builders.filter_builder import create_where
from spanql.builders.select_builder import create_select
from spanql.config import BuilderConfig, NamingRules
from spanql.errors import (
    ErrorCode,
    InvalidNameError,
    ParameterCollisionError,
    ValidationError,
)
from spanql.validate.naming import NameIssue
from tests.fixtures import assert_placeholders_complete


# ---------------------------------------------------------------------------
# SELECT list and FROM
# ---------------------------------------------------------------------------


def test_select_columns():
    r = create_select().select("id", "name").from_("users").build()
    assert r.sql == "SELECT id, name FROM users"
    assert r.parameters == {}


def test_select_all():
    assert create_select().select_all().from_("users").build().sql == "SELECT * FROM users"


def test_distinct():
    r = create_select().distinct().select("status").from_("orders").build()
    assert r.sql == "SELECT DISTINCT status FROM orders"


def test_aliases_and_expressions():
    r = (
        create_select()
        .select_as("name", "user_name")
        .select_expression("UPPER(email)", "email_upper")
        .from_("users")
        .build()
    )
    assert r.sql == "SELECT name AS user_name, UPPER(email) AS email_upper FROM users"


def test_table_alias():
    r = create_select().select("u.id").from_("users", alias="u").build()
    assert r.sql == "SELECT u.id FROM users AS u"


def test_table_name_is_trimmed():
    assert create_select().select("id").from_("  users ").build().sql == "SELECT id FROM users"


# ---------------------------------------------------------------------------
# Complete statements
# ---------------------------------------------------------------------------


def test_complete_query():
    r = (
        create_select()
        .select("id", "name")
        .from_("users")
        .inner_join("orders", lambda on: on.eq("user_id", 42))
        .where(lambda w: w.eq("active", True))
        .order_by("name")
        .limit(10)
        .offset(20)
        .build()
    )
    assert r.sql == (
        "SELECT id, name FROM users INNER JOIN orders ON user_id = @param1 "
        "WHERE active = @param2 ORDER BY name ASC LIMIT @param3 OFFSET @param4"
    )
    assert r.parameters == {"param1": 42, "param2": True, "param3": 10, "param4": 20}


def test_join_on_columns():
    r = (
        create_select()
        .select("u.name", "o.total")
        .from_("users", alias="u")
        .left_join("orders", lambda on: on.eq_column("u.id", "o.user_id"), alias="o")
        .build()
    )
    assert r.sql == (
        "SELECT u.name, o.total FROM users AS u LEFT JOIN orders AS o ON u.id = o.user_id"
    )


def test_join_with_several_conditions_is_parenthesized():
    r = (
        create_select()
        .select("u.name")
        .from_("users", alias="u")
        .inner_join(
            "orders",
            lambda on: on.eq_column("u.id", "o.user_id").eq("o.status", "paid"),
            alias="o",
        )
        .build()
    )
    assert r.sql.endswith("INNER JOIN orders AS o ON (u.id = o.user_id AND o.status = @param1)")
    assert r.parameters == {"param1": "paid"}


@pytest.mark.parametrize(
    "method, keyword",
    [
        ("inner_join", "INNER"),
        ("left_join", "LEFT"),
        ("right_join", "RIGHT"),
        ("full_join", "FULL"),
    ],
)
def test_conditioned_join_kinds(method, keyword):
    b = create_select().select("a.id").from_("a_table", alias="a")
    r = getattr(b, method)("b_table", lambda on: on.eq_column("a.id", "b.a_id"), alias="b").build()
    assert f"{keyword} JOIN b_table AS b ON a.id = b.a_id" in r.sql


def test_cross_and_natural_joins_have_no_on():
    r = (
        create_select()
        .select_all()
        .from_("users")
        .cross_join("regions")
        .natural_join("profiles", alias="p")
        .build()
    )
    assert r.sql == "SELECT * FROM users CROSS JOIN regions NATURAL JOIN profiles AS p"


def test_numbering_is_monotonic_whatever_the_call_order():
    r = (
        create_select()
        .select("u.id")
        .from_("users", alias="u")
        .where(lambda w: w.eq("u.active", True))
        .inner_join("orders", lambda on: on.eq("o.status", "paid"), alias="o")
        .build()
    )
    assert r.sql == (
        "SELECT u.id FROM users AS u INNER JOIN orders AS o ON o.status = @param2 "
        "WHERE u.active = @param1"
    )
    assert r.parameters == {"param1": True, "param2": "paid"}


def test_values_are_shared_across_clauses():
    r = (
        create_select()
        .select("u.id")
        .from_("users", alias="u")
        .inner_join("orders", lambda on: on.eq("o.status", "paid"), alias="o")
        .where(lambda w: w.eq("u.status", "paid"))
        .build()
    )
    assert "o.status = @param1" in r.sql
    assert "u.status = @param1" in r.sql
    assert r.parameters == {"param1": "paid"}


def test_repeated_where_calls_are_conjoined():
    r = (
        create_select()
        .select("id")
        .from_("users")
        .where(lambda w: w.eq("a", 1))
        .where(lambda w: w.eq("b", 2))
        .build()
    )
    assert r.sql == "SELECT id FROM users WHERE (a = @param1 AND b = @param2)"


def test_where_accepts_a_ready_builder():
    r = create_select().select("id").from_("users").where(create_where().eq("a", 1)).build()
    assert r.sql == "SELECT id FROM users WHERE a = @param1"
    assert r.parameters == {"param1": 1}


def test_independent_builder_with_clashing_placeholder_raises():
    b = create_select().select("id").from_("users").where(lambda w: w.eq("a", 1))
    with pytest.raises(ParameterCollisionError):
        b.where(create_where().eq("b", 2))


def test_callback_must_return_a_builder():
    with pytest.raises(TypeError):
        create_select().where(lambda w: "a = 1")


def test_null_rewrite_in_where():
    b = create_select().select("id").from_("users")
    r = b.where(lambda w: w.eq("deleted_at", None)).build()
    assert r.sql == "SELECT id FROM users WHERE deleted_at IS NULL"
    assert r.parameters == {}


def test_empty_where_is_omitted():
    r = create_select().select("id").from_("users").where(lambda w: w).build()
    assert r.sql == "SELECT id FROM users"


# ---------------------------------------------------------------------------
# Aggregates, GROUP BY, HAVING
# ---------------------------------------------------------------------------


def test_group_by_and_having():
    r = (
        create_select()
        .select("status")
        .count(alias="order_count")
        .from_("orders")
        .group_by("status")
        .having(lambda h: h.gt("COUNT(*)", 5))
        .build()
    )
    assert r.sql == (
        "SELECT status, COUNT(*) AS order_count FROM orders GROUP BY status "
        "HAVING COUNT(*) > @param1"
    )
    assert r.parameters == {"param1": 5}


def test_aggregate_helpers():
    r = (
        create_select()
        .select("user_id")
        .sum("total", alias="spent")
        .avg("total")
        .min("total")
        .max("total")
        .from_("orders")
        .group_by("user_id")
        .build()
    )
    assert r.sql == (
        "SELECT user_id, SUM(total) AS spent, AVG(total), MIN(total), MAX(total) "
        "FROM orders GROUP BY user_id"
    )


def test_generic_aggregate_is_upper_cased():
    r = create_select().aggregate("array_agg", "sku").from_("order_items").build()
    assert r.sql == "SELECT ARRAY_AGG(sku) FROM order_items"


def test_group_by_expression():
    r = (
        create_select()
        .select_expression("DATE(created_at)", alias="day")
        .count()
        .from_("orders")
        .group_by(expressions=("DATE(created_at)",))
        .build()
    )
    assert r.sql == "SELECT DATE(created_at) AS day, COUNT(*) FROM orders GROUP BY DATE(created_at)"


def test_having_parameters_follow_where_parameters():
    r = (
        create_select()
        .select("status")
        .count()
        .from_("orders")
        .where(lambda w: w.gt("total", 100))
        .group_by("status")
        .having(lambda h: h.ge("COUNT(*)", 3))
        .limit(5)
        .build()
    )
    assert r.sql == (
        "SELECT status, COUNT(*) FROM orders WHERE total > @param1 GROUP BY status "
        "HAVING COUNT(*) >= @param2 LIMIT @param3"
    )
    assert_placeholders_complete(r)


def test_repeated_having_calls_are_conjoined():
    r = (
        create_select()
        .select("status")
        .count()
        .from_("orders")
        .group_by("status")
        .having(lambda h: h.gt("COUNT(*)", 1))
        .having(lambda h: h.lt("COUNT(*)", 10))
        .build()
    )
    assert r.sql.endswith("HAVING (COUNT(*) > @param1 AND COUNT(*) < @param2)")


def test_aggregate_with_ungrouped_column_fails_before_generation():
    b = create_select().select("status", "region").count().from_("orders").group_by("status")
    with pytest.raises(ValidationError) as exc_info:
        b.build()
    assert exc_info.value.code == ErrorCode.INVALID_GROUP_BY_CLAUSE
    assert exc_info.value.details == {"column": "region"}


def test_aggregate_with_column_and_no_group_by_fails():
    with pytest.raises(ValidationError) as exc_info:
        create_select().select("status").count().from_("orders").build()
    assert exc_info.value.code == ErrorCode.INVALID_GROUP_BY_CLAUSE


def test_having_without_group_by_fails():
    b = create_select().count().from_("orders").having(lambda h: h.gt("COUNT(*)", 1))
    with pytest.raises(ValidationError) as exc_info:
        b.build()
    assert exc_info.value.code == ErrorCode.INVALID_HAVING_CLAUSE


# ---------------------------------------------------------------------------
# ORDER BY, LIMIT, OFFSET
# ---------------------------------------------------------------------------


def test_order_by_directions_and_nulls():
    r = (
        create_select()
        .select("name")
        .from_("users")
        .order_by("created_at", "desc", nulls_first=False)
        .order_by_expression("LENGTH(name)", nulls_first=True)
        .build()
    )
    assert r.sql.endswith("ORDER BY created_at DESC NULLS LAST, LENGTH(name) ASC NULLS FIRST")


def test_invalid_sort_direction():
    with pytest.raises(ValidationError) as exc_info:
        create_select().order_by("name", "sideways")
    assert exc_info.value.code == ErrorCode.INVALID_ORDER_BY_CLAUSE


@pytest.mark.parametrize("value", [0, -1, 2.5, True, "10"])
def test_invalid_limit(value):
    with pytest.raises(ValidationError) as exc_info:
        create_select().limit(value)
    assert exc_info.value.code == ErrorCode.INVALID_LIMIT_VALUE


@pytest.mark.parametrize("value", [-1, 1.0, None])
def test_invalid_offset(value):
    with pytest.raises(ValidationError) as exc_info:
        create_select().offset(value)
    assert exc_info.value.code == ErrorCode.INVALID_OFFSET_VALUE


def test_zero_offset_is_bound():
    r = create_select().select("id").from_("users").limit(10).offset(0).build()
    assert r.sql == "SELECT id FROM users LIMIT @param1 OFFSET @param2"
    assert r.parameters == {"param1": 10, "param2": 0}


def test_limit_reuses_an_equal_bound_value():
    b = create_select().select("id").from_("users")
    r = b.where(lambda w: w.eq("age", 10)).limit(10).build()
    assert r.sql == "SELECT id FROM users WHERE age = @param1 LIMIT @param1"
    assert r.parameters == {"param1": 10}


def test_limit_type_hint():
    r = create_select().select("id").from_("users").limit(10).build()
    assert r.type_hints() == {"param1": "int64"}


# ---------------------------------------------------------------------------
# Usage errors
# ---------------------------------------------------------------------------


def test_empty_select_fails():
    with pytest.raises(ValidationError) as exc_info:
        create_select().from_("users").build()
    assert exc_info.value.code == ErrorCode.INVALID_SELECT_CLAUSE


def test_missing_from_fails():
    with pytest.raises(ValidationError) as exc_info:
        create_select().select("id").build()
    assert exc_info.value.code == ErrorCode.INVALID_FROM_CLAUSE


def test_join_without_from_fails():
    b = create_select().select("id").inner_join("orders", lambda on: on.eq("a", 1))
    with pytest.raises(ValidationError) as exc_info:
        b.build()
    assert exc_info.value.code == ErrorCode.INVALID_JOIN_CLAUSE


def test_inner_join_without_condition_fails():
    b = create_select().select("id").from_("users").inner_join("orders", lambda on: on)
    with pytest.raises(ValidationError) as exc_info:
        b.build()
    assert exc_info.value.code == ErrorCode.INVALID_JOIN_CLAUSE


def test_duplicate_aliases_fail():
    b = create_select().select_as("a", "x").select_as("b", "x").from_("users")
    with pytest.raises(ValidationError) as exc_info:
        b.build()
    assert exc_info.value.code == ErrorCode.INVALID_SELECT_CLAUSE


def test_invalid_table_name():
    with pytest.raises(InvalidNameError) as exc_info:
        create_select().from_("1users")
    assert exc_info.value.code == ErrorCode.INVALID_TABLE_NAME
    assert exc_info.value.issue == NameIssue.STARTS_WITH_DIGIT


def test_reserved_alias():
    with pytest.raises(InvalidNameError) as exc_info:
        create_select().from_("users", alias="select")
    assert exc_info.value.code == ErrorCode.INVALID_TABLE_ALIAS
    assert exc_info.value.issue == NameIssue.RESERVED_KEYWORD


def test_configured_reserved_keyword():
    config = BuilderConfig(naming=NamingRules(extra_reserved_keywords=["accounts"]))
    with pytest.raises(InvalidNameError):
        create_select(config=config).from_("accounts")


def test_validate_without_building():
    create_select().select("id").from_("users").validate()
    with pytest.raises(ValidationError):
        create_select().select("id").validate()


# ---------------------------------------------------------------------------
# Schema columns
# ---------------------------------------------------------------------------


def test_unknown_column_is_rejected_when_schemas_are_known(users_schema):
    b = create_select().select("nickname").from_("users", schema=users_schema)
    with pytest.raises(ValidationError) as exc_info:
        b.build()
    assert exc_info.value.code == ErrorCode.INVALID_COLUMN_NAME


def test_qualified_columns_are_checked_by_name(users_schema, orders_schema):
    r = (
        create_select()
        .select("u.name", "o.total")
        .from_("users", alias="u", schema=users_schema)
        .inner_join(
            "orders", lambda on: on.eq_column("u.id", "o.user_id"), alias="o", schema=orders_schema
        )
        .build()
    )
    assert r.sql.startswith("SELECT u.name, o.total FROM users AS u")


def test_schema_check_skipped_when_a_table_has_no_schema(users_schema):
    r = (
        create_select()
        .select("nickname")
        .from_("users", schema=users_schema)
        .cross_join("regions")
        .build()
    )
    assert r.sql == "SELECT nickname FROM users CROSS JOIN regions"


def test_schema_check_can_be_disabled(users_schema, lenient_config):
    b = create_select(config=lenient_config).select("nickname")
    r = b.from_("users", schema=users_schema).build()
    assert r.sql == "SELECT nickname FROM users"


def test_group_by_columns_are_checked(orders_schema):
    b = create_select().count().from_("orders", schema=orders_schema).group_by("region")
    with pytest.raises(ValidationError) as exc_info:
        b.build()
    assert exc_info.value.code == ErrorCode.INVALID_COLUMN_NAME


# ---------------------------------------------------------------------------
# Immutability and idempotence
# ---------------------------------------------------------------------------


def test_builder_calls_do_not_modify_the_receiver():
    base = create_select().select("id").from_("users")
    base.limit(5)
    base.where(lambda w: w.eq("a", 1))
    assert base.tree.limit is None
    assert base.tree.where is None
    assert dict(base.registry.values) == {}
    assert base.build().sql == "SELECT id FROM users"


def test_branches_number_independently():
    base = create_select().select("id").from_("users")
    first = base.where(lambda w: w.eq("a", 1)).build()
    second = base.where(lambda w: w.eq("a", 2)).build()
    assert first.parameters == {"param1": 1}
    assert second.parameters == {"param1": 2}


def test_build_is_idempotent():
    b = (
        create_select()
        .select("id")
        .from_("users")
        .where(lambda w: w.in_("id", [1, 2]))
        .limit(3)
    )
    assert b.build() == b.build()
