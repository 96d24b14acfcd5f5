"""Unit tests for naming rules and QueryValidator."""
from __future__ import annotations

import pytest

from spanql.config import BuilderConfig, NamingRules
from spanql.errors import ErrorCode, InvalidNameError, ValidationError
from spanql.schema.conditions import ConditionGroup, LogicalOp, column_comparison
from spanql.schema.query_tree import (
    AggregateSelection,
    ColumnSelection,
    GroupByClause,
    JoinClause,
    OrderByClause,
    OrderByColumn,
    QueryTree,
    SelectClause,
    TableRef,
)
from spanql.validate.naming import (
    NameIssue,
    make_table_ref,
    validate_table_alias,
    validate_table_name,
)
from spanql.validate.validator import QueryValidator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _tree(**fields) -> QueryTree:
    """A valid ``SELECT id FROM users`` tree with ``fields`` replaced."""
    base = {
        "select": SelectClause(columns=(ColumnSelection(name="id"),)),
        "from_": TableRef(name="users"),
    }
    base.update(fields)
    return QueryTree(**base)


def _code(tree: QueryTree, config: BuilderConfig | None = None) -> ErrorCode:
    with pytest.raises(ValidationError) as exc_info:
        QueryValidator(config).validate(tree)
    return exc_info.value.code


# ---------------------------------------------------------------------------
# Naming rules
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("name", ["users", "_tmp", "Order_Items2", "  users  "])
def test_valid_table_names(name):
    assert validate_table_name(name) == name.strip()


@pytest.mark.parametrize(
    "name, issue",
    [
        ("", NameIssue.EMPTY),
        ("   ", NameIssue.EMPTY),
        ("2024_orders", NameIssue.STARTS_WITH_DIGIT),
        ("user-accounts", NameIssue.INVALID_CHARACTER),
        ("users; DROP TABLE users", NameIssue.INVALID_CHARACTER),
        ("select", NameIssue.RESERVED_KEYWORD),
        ("Order", NameIssue.RESERVED_KEYWORD),
        (42, NameIssue.INVALID_CHARACTER),
        (None, NameIssue.INVALID_CHARACTER),
    ],
)
def test_invalid_table_names(name, issue):
    with pytest.raises(InvalidNameError) as exc_info:
        validate_table_name(name)
    err = exc_info.value
    assert err.issue == issue
    assert err.code == ErrorCode.INVALID_TABLE_NAME
    assert err.details["issue"] == issue.value
    assert err.details["provided_value"] == name


def test_table_name_length_limit():
    assert validate_table_name("t" * 128) == "t" * 128
    with pytest.raises(InvalidNameError) as exc_info:
        validate_table_name("t" * 129)
    assert exc_info.value.issue == NameIssue.TOO_LONG
    assert str(exc_info.value) == "Table name too long: 129 characters. Maximum is 128."


def test_alias_length_limit():
    assert validate_table_alias("a" * 64) == "a" * 64
    with pytest.raises(InvalidNameError) as exc_info:
        validate_table_alias("a" * 65)
    assert exc_info.value.code == ErrorCode.INVALID_TABLE_ALIAS
    assert exc_info.value.issue == NameIssue.TOO_LONG


def test_alias_rules_mirror_table_rules():
    with pytest.raises(InvalidNameError) as exc_info:
        validate_table_alias("1u")
    assert exc_info.value.issue == NameIssue.STARTS_WITH_DIGIT
    assert str(exc_info.value) == "Table alias must start with a letter or underscore"


def test_custom_naming_rules():
    rules = NamingRules(max_table_name_length=5, extra_reserved_keywords=["audit"])
    with pytest.raises(InvalidNameError) as exc_info:
        validate_table_name("orders", rules)
    assert exc_info.value.issue == NameIssue.TOO_LONG
    with pytest.raises(InvalidNameError) as exc_info:
        validate_table_name("AUDIT", rules)
    assert exc_info.value.issue == NameIssue.RESERVED_KEYWORD


def test_error_response():
    with pytest.raises(InvalidNameError) as exc_info:
        validate_table_name("")
    assert exc_info.value.to_error_response() == {
        "error": "INVALID_TABLE_NAME",
        "message": "Table name cannot be empty",
        "details": {"provided_value": "", "issue": "empty"},
    }


def test_make_table_ref():
    ref = make_table_ref(" users ", "u", {"id": "INT64"})
    assert ref == TableRef(name="users", alias="u", column_types={"id": "INT64"})


def test_make_table_ref_copies_column_types():
    types = {"id": "INT64"}
    ref = make_table_ref("users", column_types=types)
    types["name"] = "STRING"
    assert ref.column_types == {"id": "INT64"}


# ---------------------------------------------------------------------------
# QueryValidator
# ---------------------------------------------------------------------------


def test_valid_tree_passes():
    QueryValidator().validate(_tree())


def test_hand_written_table_names_are_checked():
    with pytest.raises(InvalidNameError):
        QueryValidator().validate(_tree(from_=TableRef(name="user accounts")))


def test_dict_tree_alias_is_checked():
    tree = QueryTree.model_validate(
        {
            "select": {"columns": [{"kind": "column", "name": "id"}]},
            "from": {"name": "users", "alias": "from"},
        }
    )
    with pytest.raises(InvalidNameError) as exc_info:
        QueryValidator().validate(tree)
    assert exc_info.value.code == ErrorCode.INVALID_TABLE_ALIAS


def test_cross_join_with_condition():
    join = JoinClause(
        kind="CROSS",
        table=TableRef(name="orders"),
        condition=ConditionGroup(children=(column_comparison("a", "=", "b"),)),
    )
    assert _code(_tree(joins=(join,))) == ErrorCode.INVALID_JOIN_CLAUSE


@pytest.mark.parametrize("kind", ["CROSS", "NATURAL"])
def test_unconditioned_join_with_empty_or_group(kind):
    join = JoinClause(
        kind=kind, table=TableRef(name="orders"), condition=ConditionGroup(op=LogicalOp.OR)
    )
    assert _code(_tree(joins=(join,))) == ErrorCode.INVALID_JOIN_CLAUSE


def test_cross_join_with_empty_or_group_from_dict():
    tree = QueryTree.model_validate(
        {
            "select": {"columns": [{"kind": "column", "name": "id"}]},
            "from": {"name": "users"},
            "joins": [
                {"kind": "CROSS", "table": {"name": "orders"},
                 "condition": {"op": "or", "children": []}},
            ],
        }
    )
    with pytest.raises(ValidationError) as exc_info:
        QueryValidator().validate(tree)
    assert exc_info.value.code == ErrorCode.INVALID_JOIN_CLAUSE


def test_left_join_without_condition():
    join = JoinClause(kind="LEFT", table=TableRef(name="orders"))
    assert _code(_tree(joins=(join,))) == ErrorCode.INVALID_JOIN_CLAUSE


def test_unknown_aggregate():
    select = SelectClause(columns=(AggregateSelection(fn="MEDIAN", column="total"),))
    assert _code(_tree(select=select)) == ErrorCode.INVALID_SELECT_CLAUSE


def test_lower_case_aggregate_is_accepted():
    QueryValidator().validate(
        _tree(select=SelectClause(columns=(AggregateSelection(fn="sum", column="total"),)))
    )


def test_sum_requires_a_column():
    select = SelectClause(columns=(AggregateSelection(fn="SUM"),))
    assert _code(_tree(select=select)) == ErrorCode.INVALID_SELECT_CLAUSE


def test_empty_group_by():
    assert _code(_tree(group_by=GroupByClause())) == ErrorCode.INVALID_GROUP_BY_CLAUSE


def test_having_with_empty_group_by_reports_group_by():
    tree = _tree(group_by=GroupByClause(), having=ConditionGroup())
    assert _code(tree) == ErrorCode.INVALID_GROUP_BY_CLAUSE


def test_having_without_group_by():
    assert _code(_tree(having=ConditionGroup())) == ErrorCode.INVALID_HAVING_CLAUSE


def test_empty_order_by():
    assert _code(_tree(order_by=OrderByClause())) == ErrorCode.INVALID_ORDER_BY_CLAUSE


def test_order_by_item_without_target():
    order_by = OrderByClause(columns=(OrderByColumn(),))
    assert _code(_tree(order_by=order_by)) == ErrorCode.INVALID_ORDER_BY_CLAUSE


@pytest.mark.parametrize(
    "fields, code",
    [
        ({"limit": 0}, ErrorCode.INVALID_LIMIT_VALUE),
        ({"limit": -5}, ErrorCode.INVALID_LIMIT_VALUE),
        ({"offset": -1}, ErrorCode.INVALID_OFFSET_VALUE),
    ],
)
def test_pagination(fields, code):
    assert _code(_tree(**fields)) == code


def test_zero_offset_is_valid():
    QueryValidator().validate(_tree(limit=1, offset=0))


def test_columns_checked_against_merged_schemas(users_schema, orders_schema):
    join = JoinClause(
        table=TableRef(name="orders", alias="o", column_types=orders_schema),
        condition=ConditionGroup(children=(column_comparison("u.id", "=", "o.user_id"),)),
    )
    select = SelectClause(
        columns=(ColumnSelection(name="u.email"), ColumnSelection(name="o.total"))
    )
    tree = _tree(
        select=select,
        from_=TableRef(name="users", alias="u", column_types=users_schema),
        joins=(join,),
    )
    QueryValidator().validate(tree)

    bad = tree.model_copy(
        update={"select": SelectClause(columns=(ColumnSelection(name="o.discount"),))}
    )
    with pytest.raises(ValidationError) as exc_info:
        QueryValidator().validate(bad)
    assert exc_info.value.code == ErrorCode.INVALID_COLUMN_NAME
    assert exc_info.value.details["clause"] == "SELECT"
    assert "discount" not in exc_info.value.details["known_columns"]


def test_aggregate_column_checked_against_schema(orders_schema):
    tree = _tree(
        select=SelectClause(columns=(AggregateSelection(fn="SUM", column="discount"),)),
        from_=TableRef(name="orders", column_types=orders_schema),
    )
    assert _code(tree) == ErrorCode.INVALID_COLUMN_NAME
    assert QueryValidator(BuilderConfig(check_schema_columns=False)).validate(tree) is None
