"""Tests for PostgreSQL DDL compilation."""

import pytest

from ddl import compile_schema
from erd.graph import column_ref, new_column
from erd.relations import create_relation
from erd.types import Cardinality, Column, Relation, Table


def table(table_id: str, *columns: Column, name: str | None = None) -> Table:
    """Table with fixed id and the given columns."""
    return {"id": table_id, "name": name or table_id, "x": 0, "y": 0, "columns": list(columns)}


def relation(
    relation_id: str,
    source: tuple[str, str],
    target: tuple[str, str],
    cardinality: Cardinality = "one-to-many",
) -> Relation:
    """Relation between two ``(table id, column id)`` pairs."""
    return {
        "id": relation_id,
        "source": column_ref(*source),
        "target": column_ref(*target),
        "cardinality": cardinality,
        "is_one_to_many_reversed": False,
        "delete_rule": "restrict",
        "update_rule": "cascade",
    }


@pytest.fixture(name="blog")
def blog_schema() -> tuple[list[Table], list[Relation]]:
    """Users and posts with uuid keys, posts.user_id referencing users.id."""
    users = table(
        "users",
        new_column("id", "uuid", column_id="id", is_primary=True),
        new_column("name", column_id="name"),
    )
    posts = table(
        "posts",
        new_column("id", "uuid", column_id="id", is_primary=True),
        new_column("user_id", "uuid", column_id="user_id", references=column_ref("users", "id")),
        new_column("title", column_id="title"),
    )
    return [users, posts], [relation("r", ("users", "id"), ("posts", "user_id"))]


@pytest.fixture(name="school")
def school_schema() -> tuple[list[Table], list[Relation]]:
    """Students and courses related many-to-many."""
    students = table("students", new_column("id", "integer", column_id="id", is_primary=True))
    courses = table("courses", new_column("id", "integer", column_id="id", is_primary=True))
    return (
        [students, courses],
        [relation("r", ("students", "id"), ("courses", "id"), "many-to-many")],
    )


def test_statement_order(blog: tuple[list[Table], list[Relation]]) -> None:
    """Test tables are created before foreign keys, and foreign keys before indexes."""
    sql = compile_schema(*blog)
    positions = [
        sql.index("CREATE TABLE users ("),
        sql.index("CREATE TABLE posts ("),
        sql.index("ALTER TABLE posts ADD CONSTRAINT fk_posts_user_id FOREIGN KEY (user_id)"),
        sql.index("CREATE INDEX idx_posts_user_id ON posts (user_id);"),
    ]
    assert positions == sorted(positions)


def test_table_definitions(blog: tuple[list[Table], list[Relation]]) -> None:
    """Test column definitions in declaration order with key defaults."""
    sql = compile_schema(*blog)
    assert (
        "CREATE TABLE users (\n"
        "  id UUID NOT NULL PRIMARY KEY DEFAULT gen_random_uuid(),\n"
        "  name TEXT\n"
        ");"
    ) in sql
    assert (
        "CREATE TABLE posts (\n"
        "  id UUID NOT NULL PRIMARY KEY DEFAULT gen_random_uuid(),\n"
        "  user_id UUID,\n"
        "  title TEXT\n"
        ");"
    ) in sql


def test_foreign_key_rules(blog: tuple[list[Table], list[Relation]]) -> None:
    """Test referential actions come from the matching relation."""
    sql = compile_schema(*blog)
    assert (
        "ALTER TABLE posts ADD CONSTRAINT fk_posts_user_id FOREIGN KEY (user_id) "
        "REFERENCES users (id) ON DELETE RESTRICT ON UPDATE CASCADE;"
    ) in sql


def test_foreign_key_without_relation(blog: tuple[list[Table], list[Relation]]) -> None:
    """Test a foreign key with no matching relation has no referential actions."""
    tables, _ = blog
    sql = compile_schema(tables, [])
    assert "REFERENCES users (id);" in sql
    assert "ON DELETE" not in sql


def test_compilation_is_deterministic(blog: tuple[list[Table], list[Relation]]) -> None:
    """Test identical graphs compile to identical text."""
    assert compile_schema(*blog) == compile_schema(*blog)


def test_one_to_one_index_is_unique(blog: tuple[list[Table], list[Relation]]) -> None:
    """Test one-to-one relations get a unique index on the foreign key."""
    tables, relations = blog
    relations[0]["cardinality"] = "one-to-one"
    sql = compile_schema(tables, relations)
    assert "CREATE UNIQUE INDEX idx_posts_user_id ON posts (user_id);" in sql


def test_cyclic_foreign_keys() -> None:
    """Test tables referencing each other compile with constraints after both tables."""
    a = table(
        "a",
        new_column("id", "integer", column_id="id", is_primary=True),
        new_column("b_id", "integer", column_id="b_id", references=column_ref("b", "id")),
    )
    b = table(
        "b",
        new_column("id", "integer", column_id="id", is_primary=True),
        new_column("a_id", "integer", column_id="a_id", references=column_ref("a", "id")),
    )
    sql = compile_schema([a, b], [])
    last_table = sql.index("CREATE TABLE b (")
    assert sql.index("ALTER TABLE a ") > last_table
    assert sql.index("ALTER TABLE b ") > last_table


def test_junction_table(school: tuple[list[Table], list[Relation]]) -> None:
    """Test many-to-many compiles to a junction table with a composite key."""
    sql = compile_schema(*school)
    assert (
        "CREATE TABLE _junction_courses_students (\n"
        "  courses_id INTEGER NOT NULL,\n"
        "  students_id INTEGER NOT NULL,\n"
        "  PRIMARY KEY (courses_id, students_id)\n"
        ");"
    ) in sql
    assert (
        "ALTER TABLE _junction_courses_students "
        "ADD CONSTRAINT fk__junction_courses_students_courses_id "
        "FOREIGN KEY (courses_id) REFERENCES courses (id) ON DELETE CASCADE;"
    ) in sql
    assert (
        "ALTER TABLE _junction_courses_students "
        "ADD CONSTRAINT fk__junction_courses_students_students_id "
        "FOREIGN KEY (students_id) REFERENCES students (id) ON DELETE CASCADE;"
    ) in sql
    assert "ON _junction_courses_students (students_id);" in sql


def test_junction_adds_no_columns(school: tuple[list[Table], list[Relation]]) -> None:
    """Test the participant tables get no foreign key constraints."""
    sql = compile_schema(*school)
    assert "ALTER TABLE students" not in sql
    assert "ALTER TABLE courses" not in sql
    assert "CREATE TABLE students (\n  id SERIAL NOT NULL PRIMARY KEY\n);" in sql


def test_junction_name_ignores_direction(school: tuple[list[Table], list[Relation]]) -> None:
    """Test duplicate many-to-many relations in either direction share one junction table."""
    tables, relations = school
    relations.append(relation("r2", ("courses", "id"), ("students", "id"), "many-to-many"))
    sql = compile_schema(tables, relations)
    assert sql.count("CREATE TABLE _junction_courses_students") == 1


def test_junction_skipped_without_primary_key(school: tuple[list[Table], list[Relation]]) -> None:
    """Test a side without a primary key produces a warning instead of a table."""
    tables, relations = school
    tables[1]["columns"][0]["is_primary"] = False
    sql = compile_schema(tables, relations)
    assert "-- WARNING: skipped junction table _junction_courses_students" in sql
    assert "CREATE TABLE _junction_courses_students" not in sql


def test_dangling_foreign_key_warns(blog: tuple[list[Table], list[Relation]]) -> None:
    """Test a foreign key to a removed table is skipped with a warning."""
    tables, relations = blog
    sql = compile_schema(tables[1:], relations)
    assert (
        "-- WARNING: skipped foreign key posts.user_id: referenced column no longer exists"
    ) in sql
    assert "ALTER TABLE posts" not in sql
    assert "CREATE INDEX" not in sql


def test_relation_without_foreign_key_warns(blog: tuple[list[Table], list[Relation]]) -> None:
    """Test a one-to-many relation without a backing column is reported."""
    tables, _ = blog
    sql = compile_schema(tables, [relation("r", ("users", "id"), ("posts", "title"))])
    assert "-- WARNING: relation users.id -> posts.title has no foreign key column" in sql


def test_enum_types() -> None:
    """Test enum columns get a named type with escaped values."""
    users = table(
        "users",
        new_column("mood", "enum", column_id="mood", enum_values=["it's", "fine"]),
    )
    sql = compile_schema([users], [])
    assert "CREATE TYPE enum_users_mood AS ENUM ('it''s', 'fine');" in sql
    assert "  mood enum_users_mood" in sql
    assert sql.index("CREATE TYPE") < sql.index("CREATE TABLE")


def test_reserved_words_are_quoted() -> None:
    """Test reserved and mixed case identifiers are double quoted."""
    user = table(
        "u",
        new_column("order", "integer", column_id="order"),
        new_column("Name", column_id="Name"),
        name="user",
    )
    sql = compile_schema([user], [])
    assert 'CREATE TABLE "user" (\n  "order" INTEGER,\n  "Name" TEXT\n);' in sql


def test_composite_primary_key() -> None:
    """Test multi-column keys become a table constraint."""
    pair = table(
        "pair",
        new_column("a", "integer", column_id="a", is_primary=True),
        new_column("b", "text", column_id="b", is_primary=True),
    )
    sql = compile_schema([pair], [])
    assert (
        "CREATE TABLE pair (\n"
        "  a SERIAL NOT NULL,\n"
        "  b TEXT NOT NULL,\n"
        "  PRIMARY KEY (a, b)\n"
        ");"
    ) in sql


def test_column_modifiers() -> None:
    """Test nullability, uniqueness and defaults."""
    column = new_column("email", column_id="email", is_unique=True, is_nullable=False)
    active = new_column("active", "bool", column_id="active")
    active["default"] = "true"
    created = new_column("created_at", "timestamp", column_id="created_at")
    sql = compile_schema([table("accounts", column, active, created)], [])
    assert "  email TEXT NOT NULL UNIQUE," in sql
    assert "  active BOOLEAN DEFAULT true," in sql
    assert "  created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP\n" in sql


def test_empty_table() -> None:
    """Test a table without columns still compiles."""
    assert "CREATE TABLE empty ();" in compile_schema([table("empty")], [])


def test_identifier_limit(blog: tuple[list[Table], list[Relation]]) -> None:
    """Test constraint and index names are truncated."""
    sql = compile_schema(*blog, identifier_limit=10)
    assert "ADD CONSTRAINT fk_posts_u FOREIGN KEY" in sql
    assert "CREATE INDEX idx_posts_ ON posts" in sql


def test_no_timestamp_in_header() -> None:
    """Test the header is fixed text."""
    sql = compile_schema([], [])
    assert sql.startswith("-- ====")
    assert "-- Database Schema Export" in sql


def test_foreign_key_to_enum_shares_type() -> None:
    """Test a foreign key to an enum key uses the referenced column's type."""
    code = new_column("code", "enum", column_id="code", enum_values=["a", "b"], is_primary=True)
    status = table("status", code)
    orders = table("orders", new_column("id", "integer", column_id="id", is_primary=True))
    graph = create_relation(
        {"tables": [status, orders], "relations": []},
        "status",
        "code",
        "orders",
        "id",
    )
    assert isinstance(graph, dict)

    sql = compile_schema(graph["tables"], graph["relations"])
    assert sql.count("CREATE TYPE") == 1
    assert "CREATE TYPE enum_status_code AS ENUM ('a', 'b');" in sql
    assert "  status_code enum_status_code" in sql
    assert "FOREIGN KEY (status_code) REFERENCES status (code)" in sql


def test_enum_name_collision_warns() -> None:
    """Test two columns mapping to one enum type name are reported."""
    first = table("t1", new_column("c", "enum", column_id="c", enum_values=["x"]), name="a_b")
    second = table("t2", new_column("b_c", "enum", column_id="b_c", enum_values=["y"]), name="a")
    sql = compile_schema([first, second], [])
    assert sql.count("CREATE TYPE") == 1
    assert "CREATE TYPE enum_a_b_c AS ENUM ('x');" in sql
    assert "-- WARNING: enum type enum_a_b_c of a_b.c is also used by a.b_c" in sql
