"""Tests for column type mapping and generated names."""

import pytest

from ddl.naming import (
    constraint_name,
    enum_type_name,
    junction_column_names,
    junction_table_name,
)
from ddl.type_conversion import base_type, data_type_to_sql, quote, sql_to_string


@pytest.mark.parametrize(
    ("column_type", "expected"),
    [
        ("integer", "INTEGER"),
        ("int", "INTEGER"),
        ("uuid", "UUID"),
        ("date", "TIMESTAMP WITH TIME ZONE"),
        ("datetime", "TIMESTAMP WITH TIME ZONE"),
        ("boolean", "BOOLEAN"),
        ("json", "JSONB"),
        ("text", "TEXT"),
        ("string", "TEXT"),
    ],
)
def test_data_type_to_sql(column_type: str, expected: str) -> None:
    """Test editor types render as PostgreSQL types."""
    assert sql_to_string(data_type_to_sql(column_type)) == expected


def test_unknown_type_is_text() -> None:
    """Test free-form types fall back to text."""
    assert base_type("geography") == "text"
    assert sql_to_string(data_type_to_sql("geography")) == "TEXT"


def test_base_type_ignores_case_and_spacing() -> None:
    """Test type names are normalized before lookup."""
    assert base_type(" JSONB ") == "json"


def test_quote() -> None:
    """Test only identifiers that need it are quoted."""
    assert quote("users") == "users"
    assert quote("user") == '"user"'
    assert quote("BlogPosts") == '"BlogPosts"'
    assert quote("first name") == '"first name"'


def test_enum_type_name_is_lowercase() -> None:
    """Test enum type names are derived from table and column."""
    assert enum_type_name("Users", "Role") == "enum_users_role"


def test_constraint_name_truncates() -> None:
    """Test constraint names respect the identifier limit."""
    assert constraint_name("fk", "posts", "user_id") == "fk_posts_user_id"
    assert len(constraint_name("idx", "t" * 40, "c" * 40)) == 60


def test_junction_names_are_order_independent() -> None:
    """Test the same table pair always gives the same junction."""
    assert junction_table_name("students", "courses") == "_junction_courses_students"
    assert junction_table_name("courses", "students") == "_junction_courses_students"
    assert junction_column_names("students", "courses") == ("courses_id", "students_id")


def test_self_junction_columns_differ() -> None:
    """Test a table related to itself gets two distinct junction columns."""
    assert junction_column_names("users", "users") == ("users_id", "related_users_id")
