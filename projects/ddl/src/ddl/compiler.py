"""Multi-phase PostgreSQL DDL compiler for schema graphs.

Phases run in a fixed order and each one's output precedes the next:

1. enum types
2. tables
3. junction tables for many-to-many relations
4. foreign key constraints, added with ALTER TABLE after every CREATE TABLE so
   that tables referencing each other compile
5. one index per foreign key column

Column ``references`` decide which foreign keys exist; the matching relation
supplies their ON DELETE / ON UPDATE actions. Problems in the graph never stop
compilation, they become ``-- WARNING:`` comments where the statement would be.
Names only depend on table and column names, so an unchanged graph compiles to
the same text every time.
"""

from __future__ import annotations

from collections.abc import Sequence
from logging import getLogger
from typing import NamedTuple

from erd.types import Column, ColumnRef, Relation, Table

from ddl.naming import (
    IDENTIFIER_LIMIT,
    constraint_name,
    enum_type_name,
    junction_column_names,
    junction_table_name,
)
from ddl.type_conversion import (
    CURRENT_TIMESTAMP,
    RANDOM_UUID,
    SERIAL,
    base_type,
    data_type_to_sql,
    quote,
    sql_to_string,
)

logger = getLogger(__name__)

HEADER = (
    "-- =========================================================",
    "-- Database Schema Export",
    "-- =========================================================",
)

ON_DELETE = {"cascade": "CASCADE", "set-null": "SET NULL", "restrict": "RESTRICT"}
ON_UPDATE = {"cascade": "CASCADE", "restrict": "RESTRICT"}


class ForeignKey(NamedTuple):
    """A foreign key constraint and the index that goes with it."""

    table: str
    column: str
    ref_table: str
    ref_column: str
    on_delete: str | None = None
    on_update: str | None = None
    indexed: bool = True
    unique: bool = False


class SchemaLookup:
    """Id based access to the tables being compiled."""

    def __init__(self, tables: Sequence[Table]) -> None:
        """Index tables by id."""
        self._tables = {t["id"]: t for t in tables}

    def table(self, table_id: str) -> Table | None:
        """Find a table by id."""
        return self._tables.get(table_id)

    def column(self, ref: ColumnRef) -> tuple[Table, Column] | None:
        """Resolve a column pointer to its table and column."""
        if table := self._tables.get(ref["table_id"]):
            for column in table["columns"]:
                if column["id"] == ref["column_id"]:
                    return table, column
        return None

    def describe(self, ref: ColumnRef) -> str:
        """Readable ``table.column`` for a pointer, resolved as far as possible."""
        if resolved := self.column(ref):
            return f"{resolved[0]['name']}.{resolved[1]['name']}"
        if table := self.table(ref["table_id"]):
            return f"{table['name']}.?"
        return "?"

    def enum_owner(self, table: Table, column: Column) -> tuple[Table, Column]:
        """Column whose enum type a column uses.

        A foreign key to an enum column shares the referenced column's type, so
        the chain of references is followed to the column that owns it.
        """
        seen = {(table["id"], column["id"])}
        while column["is_foreign"] and column["references"]:
            resolved = self.column(column["references"])
            if resolved is None or base_type(resolved[1]["type"]) != "enum":
                break
            key = (resolved[0]["id"], resolved[1]["id"])
            if key in seen:
                break
            seen.add(key)
            table, column = resolved
        return table, column


def warning(message: str) -> str:
    """Inline warning comment."""
    logger.warning(message)
    return f"-- WARNING: {message}"


def string_literal(value: str) -> str:
    """Single-quoted SQL string literal."""
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def primary_keys(table: Table) -> list[Column]:
    """Primary key columns in declaration order."""
    return [c for c in table["columns"] if c["is_primary"]]


def key_type(lookup: SchemaLookup, table: Table, column: Column) -> str:
    """SQL type of a column when referenced, without auto-increment."""
    if base_type(column["type"]) == "enum":
        owner_table, owner = lookup.enum_owner(table, column)
        return quote(enum_type_name(owner_table["name"], owner["name"]))
    return sql_to_string(data_type_to_sql(column["type"]))


def column_type(lookup: SchemaLookup, table: Table, column: Column) -> str:
    """SQL type of a column in its own table."""
    if (
        base_type(column["type"]) == "integer"
        and column["is_primary"]
        and not column["is_foreign"]
    ):
        return SERIAL
    return key_type(lookup, table, column)


def column_default(column: Column) -> str | None:
    """Explicit default, or the generated one for UUID keys and creation times."""
    if column["default"]:
        return column["default"]
    match base_type(column["type"]):
        case "uuid" if column["is_primary"] and not column["is_foreign"]:
            return RANDOM_UUID
        case "date" if "created" in column["name"].lower():
            return CURRENT_TIMESTAMP
    return None


def column_definition(
    lookup: SchemaLookup,
    table: Table,
    column: Column,
    *,
    inline_primary: bool,
) -> str:
    """One column line of a CREATE TABLE statement."""
    parts = [quote(column["name"]), column_type(lookup, table, column)]
    if column["is_primary"]:
        parts.append("NOT NULL")
        if inline_primary:
            parts.append("PRIMARY KEY")
    elif column["is_nullable"] is False:
        parts.append("NOT NULL")
    if column["is_unique"] and not column["is_primary"]:
        parts.append("UNIQUE")
    if default := column_default(column):
        parts.append(f"DEFAULT {default}")
    return "  " + " ".join(parts)


# Phase 1


def enum_type_statements(lookup: SchemaLookup, tables: Sequence[Table]) -> list[str]:
    """CREATE TYPE for every enum column, once per table and column.

    Foreign keys to an enum column reuse the referenced column's type and get
    none of their own. Two columns whose names map to the same type name share
    the first one's type, with a warning.
    """
    statements: list[str] = []
    owners: dict[str, str] = {}
    for table in tables:
        for column in table["columns"]:
            if base_type(column["type"]) != "enum":
                continue
            if lookup.enum_owner(table, column)[1] is not column:
                continue
            name = enum_type_name(table["name"], column["name"])
            label = f"{table['name']}.{column['name']}"
            if owner := owners.get(name):
                statements.append(
                    warning(f"enum type {name} of {owner} is also used by {label}"),
                )
                continue
            owners[name] = label
            values = ", ".join(string_literal(v) for v in column["enum_values"])
            statements.append(f"CREATE TYPE {quote(name)} AS ENUM ({values});")
    return statements


# Phase 2


def table_statement(lookup: SchemaLookup, table: Table) -> str:
    """CREATE TABLE with columns in declaration order."""
    keys = primary_keys(table)
    definitions = [
        column_definition(lookup, table, column, inline_primary=len(keys) == 1)
        for column in table["columns"]
    ]
    if len(keys) > 1:
        names = ", ".join(quote(k["name"]) for k in keys)
        definitions.append(f"  PRIMARY KEY ({names})")
    if not definitions:
        return f"CREATE TABLE {quote(table['name'])} ();"
    body = ",\n".join(definitions)
    return f"CREATE TABLE {quote(table['name'])} (\n{body}\n);"


# Phase 3


def junction_statements(
    lookup: SchemaLookup,
    relations: Sequence[Relation],
) -> tuple[list[str], list[ForeignKey]]:
    """Junction tables for many-to-many relations and the foreign keys they need."""
    statements: list[str] = []
    foreign_keys: list[ForeignKey] = []
    seen: set[str] = set()

    for relation in relations:
        if relation["cardinality"] != "many-to-many":
            continue
        first = lookup.table(relation["source"]["table_id"])
        second = lookup.table(relation["target"]["table_id"])
        if first is None or second is None:
            statements.append(
                warning(f"skipped many-to-many relation {relation['id']}: missing table"),
            )
            continue

        name = junction_table_name(first["name"], second["name"])
        if name in seen:
            continue
        seen.add(name)

        left, right = sorted((first, second), key=lambda t: t["name"])
        sides: list[tuple[Table, Column]] = []
        for table in (left, right):
            match primary_keys(table):
                case [key]:
                    sides.append((table, key))
                case []:
                    statements.append(
                        warning(f"skipped junction table {name}: {table['name']} has no primary key"),
                    )
                case _:
                    statements.append(
                        warning(
                            f"skipped junction table {name}: "
                            f"{table['name']} has a composite primary key",
                        ),
                    )
        if len(sides) != 2:  # noqa: PLR2004
            continue

        columns = junction_column_names(left["name"], right["name"])
        definitions = [
            f"  {quote(column)} {key_type(lookup, table, key)} NOT NULL"
            for column, (table, key) in zip(columns, sides, strict=True)
        ]
        definitions.append(f"  PRIMARY KEY ({', '.join(quote(c) for c in columns)})")
        body = ",\n".join(definitions)
        statements.append(f"CREATE TABLE {quote(name)} (\n{body}\n);")

        # The composite primary key already indexes the first column
        foreign_keys.extend(
            ForeignKey(
                table=name,
                column=column,
                ref_table=table["name"],
                ref_column=key["name"],
                on_delete="CASCADE",
                indexed=position == 1,
            )
            for position, (column, (table, key)) in enumerate(zip(columns, sides, strict=True))
        )

    return statements, foreign_keys


# Phase 4


def _matching_relation(
    relations: Sequence[Relation],
    fk: ColumnRef,
    parent: ColumnRef,
) -> Relation | None:
    """Relation whose endpoints are this foreign key and its parent, either way round."""
    return next(
        (
            r
            for r in relations
            if r["cardinality"] != "many-to-many"
            and (r["source"], r["target"]) in ((parent, fk), (fk, parent))
        ),
        None,
    )


def collect_foreign_keys(
    lookup: SchemaLookup,
    tables: Sequence[Table],
    relations: Sequence[Relation],
) -> tuple[list[ForeignKey | str], list[str]]:
    """Foreign keys declared by columns, with warnings for dangling ones.

    Returns the constraints in table and column order (warnings interleaved
    where a constraint was skipped) and warnings about relations that no
    foreign key column backs.
    """
    items: list[ForeignKey | str] = []
    for table in tables:
        for column in table["columns"]:
            if not column["is_foreign"]:
                continue
            parent = column["references"]
            resolved = lookup.column(parent) if parent else None
            if parent is None or resolved is None:
                items.append(
                    warning(
                        f"skipped foreign key {table['name']}.{column['name']}: "
                        "referenced column no longer exists",
                    ),
                )
                continue
            ref_table, ref_column = resolved
            fk = ColumnRef(table_id=table["id"], column_id=column["id"])
            relation = _matching_relation(relations, fk, parent)
            items.append(
                ForeignKey(
                    table=table["name"],
                    column=column["name"],
                    ref_table=ref_table["name"],
                    ref_column=ref_column["name"],
                    on_delete=ON_DELETE[relation["delete_rule"]] if relation else None,
                    on_update=ON_UPDATE[relation["update_rule"]] if relation else None,
                    unique=bool(relation and relation["cardinality"] == "one-to-one"),
                ),
            )

    unbacked: list[str] = []
    for relation in relations:
        if relation["cardinality"] == "many-to-many":
            continue
        source = lookup.column(relation["source"])
        target = lookup.column(relation["target"])
        label = f"{lookup.describe(relation['source'])} -> {lookup.describe(relation['target'])}"
        if source is None or target is None:
            unbacked.append(warning(f"relation {label} points at a missing column"))
        elif (
            target[1]["references"] != relation["source"]
            and source[1]["references"] != relation["target"]
        ):
            unbacked.append(warning(f"relation {label} has no foreign key column"))
    return items, unbacked


def foreign_key_statement(fk: ForeignKey, limit: int = IDENTIFIER_LIMIT) -> str:
    """ALTER TABLE adding a foreign key constraint."""
    name = constraint_name("fk", fk.table, fk.column, limit)
    statement = (
        f"ALTER TABLE {quote(fk.table)} "
        f"ADD CONSTRAINT {quote(name)} "
        f"FOREIGN KEY ({quote(fk.column)}) "
        f"REFERENCES {quote(fk.ref_table)} ({quote(fk.ref_column)})"
    )
    if fk.on_delete:
        statement += f" ON DELETE {fk.on_delete}"
    if fk.on_update:
        statement += f" ON UPDATE {fk.on_update}"
    return f"{statement};"


# Phase 5


def index_statement(fk: ForeignKey, limit: int = IDENTIFIER_LIMIT) -> str:
    """CREATE INDEX on a foreign key column."""
    name = constraint_name("idx", fk.table, fk.column, limit)
    kind = "UNIQUE INDEX" if fk.unique else "INDEX"
    return f"CREATE {kind} {quote(name)} ON {quote(fk.table)} ({quote(fk.column)});"


def _section(title: str, statements: Sequence[str], *, spaced: bool = False) -> list[str]:
    lines = [f"-- {title}"]
    for statement in statements:
        lines.append(statement)
        if spaced:
            lines.append("")
    if not spaced:
        lines.append("")
    return lines


def compile_schema(
    tables: Sequence[Table],
    relations: Sequence[Relation],
    *,
    identifier_limit: int = IDENTIFIER_LIMIT,
) -> str:
    """Compile tables and relations to a PostgreSQL DDL script."""
    lookup = SchemaLookup(tables)

    enums = enum_type_statements(lookup, tables)
    creates = [table_statement(lookup, t) for t in tables]
    junctions, junction_keys = junction_statements(lookup, relations)
    items, unbacked = collect_foreign_keys(lookup, tables, relations)

    foreign_keys = [item for item in items if isinstance(item, ForeignKey)]
    foreign_keys.extend(junction_keys)
    constraints = [
        foreign_key_statement(item, identifier_limit) if isinstance(item, ForeignKey) else item
        for item in (*items, *junction_keys)
    ]
    constraints.extend(unbacked)
    indexes = [index_statement(fk, identifier_limit) for fk in foreign_keys if fk.indexed]

    lines = [
        *HEADER,
        "",
        *_section("[1] Enum types", enums),
        *_section("[2] Tables", creates, spaced=True),
        *_section("[3] Junction tables (many-to-many)", junctions, spaced=True),
        *_section("[4] Foreign keys", constraints),
        *_section("[5] Indexes", indexes),
    ]
    return "\n".join(lines)
