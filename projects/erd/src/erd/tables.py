"""Table and column operations on the schema graph."""

from __future__ import annotations

from collections.abc import Iterable
from logging import getLogger

from erd.graph import (
    column_ref,
    dependents,
    drop_columns,
    find_column,
    find_table,
    new_column,
    new_id,
    update_column,
    update_table,
)
from erd.relations import canonical_fk_name, clear_foreign_key, detach_column
from erd.types import ColumnField, ColumnFlag, Graph, Table

logger = getLogger(__name__)

DEFAULT_TABLE_NAME = "new_table"


def create_table(
    graph: Graph,
    *,
    name: str = DEFAULT_TABLE_NAME,
    x: float = 200.0,
    y: float = 150.0,
    table_id: str | None = None,
) -> Graph:
    """Append an empty table."""
    table: Table = {
        "id": table_id or new_id(),
        "name": name,
        "x": x,
        "y": y,
        "columns": [],
    }
    logger.debug("Created table %s", table["id"])
    return {**graph, "tables": [*graph["tables"], table]}


def rename_table(graph: Graph, table_id: str, name: str) -> Graph:
    """Rename a table."""
    return update_table(graph, table_id, lambda t: {**t, "name": name})


def move_table(graph: Graph, table_id: str, x: float, y: float) -> Graph:
    """Move a table on the canvas."""
    return update_table(graph, table_id, lambda t: {**t, "x": x, "y": y})


def add_column(
    graph: Graph,
    table_id: str,
    *,
    name: str | None = None,
    column_type: str = "text",
    column_id: str | None = None,
) -> Graph:
    """Append a nullable text column named after its position."""
    table = find_table(graph, table_id)
    if table is None:
        return graph
    column = new_column(
        name or f"column_{len(table['columns']) + 1}",
        column_type,
        column_id=column_id,
    )
    return update_table(
        graph,
        table_id,
        lambda t: {**t, "columns": [*t["columns"], column]},
    )


def remove_column(graph: Graph, table_id: str, column_id: str) -> Graph:
    """Remove a column together with the relations and foreign keys built on it."""
    ref = column_ref(table_id, column_id)
    if find_column(graph, ref) is None:
        return graph
    graph = detach_column(graph, ref)
    return drop_columns(
        graph,
        lambda t, c: t["id"] == table_id and c["id"] == column_id,
    )


def rename_column(graph: Graph, table_id: str, column_id: str, name: str) -> Graph:
    """Rename a column and the foreign keys derived from it.

    Dependent foreign key columns take the canonical ``<table>_<column>`` name
    of their new parent.
    """
    ref = column_ref(table_id, column_id)
    table = find_table(graph, table_id)
    if table is None or find_column(graph, ref) is None:
        return graph

    graph = update_column(graph, ref, lambda c: {**c, "name": name})
    renamed = find_column(graph, ref)
    if renamed is None:
        return graph
    derived = canonical_fk_name(table, renamed)
    for dependent in dependents(graph, ref):
        graph = update_column(graph, dependent, lambda c: {**c, "name": derived})
    return graph


def set_column_type(graph: Graph, table_id: str, column_id: str, column_type: str) -> Graph:
    """Change a column type; foreign keys to it follow."""
    ref = column_ref(table_id, column_id)
    if find_column(graph, ref) is None:
        return graph
    for target in (ref, *dependents(graph, ref)):
        graph = update_column(graph, target, lambda c: {**c, "type": column_type})
    return graph


def set_enum_values(
    graph: Graph,
    table_id: str,
    column_id: str,
    values: Iterable[str],
) -> Graph:
    """Replace the ordered values of an enum column; foreign keys to it follow."""
    ref = column_ref(table_id, column_id)
    if find_column(graph, ref) is None:
        return graph
    enum_values = list(values)
    for target in (ref, *dependents(graph, ref)):
        graph = update_column(
            graph,
            target,
            lambda c: {**c, "enum_values": list(enum_values)},
        )
    return graph


def set_column_default(
    graph: Graph,
    table_id: str,
    column_id: str,
    default: str | None,
) -> Graph:
    """Set or clear the SQL default expression of a column."""
    return update_column(
        graph,
        column_ref(table_id, column_id),
        lambda c: {**c, "default": default or None},
    )


def update_column_field(
    graph: Graph,
    table_id: str,
    column_id: str,
    field: ColumnField,
    value: str | Iterable[str] | None,
) -> Graph:
    """Dispatch a field edit coming from the column editor."""
    match field, value:
        case "name", str():
            return rename_column(graph, table_id, column_id, value)
        case "type", str():
            return set_column_type(graph, table_id, column_id, value)
        case "default", str() | None:
            return set_column_default(graph, table_id, column_id, value)
        case "enum_values", _ if value is not None and not isinstance(value, str):
            return set_enum_values(graph, table_id, column_id, value)
        case _:
            msg = f"Invalid value for column field {field!r}: {value!r}"
            raise ValueError(msg)


def toggle_primary(graph: Graph, table_id: str, column_id: str) -> Graph:
    """Toggle the primary key flag."""
    return update_column(
        graph,
        column_ref(table_id, column_id),
        lambda c: {**c, "is_primary": not c["is_primary"]},
    )


def toggle_unique(graph: Graph, table_id: str, column_id: str) -> Graph:
    """Toggle the unique flag."""
    return update_column(
        graph,
        column_ref(table_id, column_id),
        lambda c: {**c, "is_unique": not c["is_unique"]},
    )


def toggle_nullable(graph: Graph, table_id: str, column_id: str) -> Graph:
    """Toggle the nullable flag."""
    return update_column(
        graph,
        column_ref(table_id, column_id),
        lambda c: {**c, "is_nullable": not c["is_nullable"]},
    )


def toggle_foreign(graph: Graph, table_id: str, column_id: str) -> Graph:
    """Clear a foreign key.

    Foreign keys are only created through relations, so this never turns the
    flag on.
    """
    return clear_foreign_key(graph, column_ref(table_id, column_id))


def toggle_column_flag(
    graph: Graph,
    table_id: str,
    column_id: str,
    flag: ColumnFlag,
) -> Graph:
    """Dispatch a flag toggle coming from the column editor."""
    match flag:
        case "primary":
            return toggle_primary(graph, table_id, column_id)
        case "unique":
            return toggle_unique(graph, table_id, column_id)
        case "nullable":
            return toggle_nullable(graph, table_id, column_id)
        case "foreign":
            return toggle_foreign(graph, table_id, column_id)
        case _:
            msg = f"Unknown column flag: {flag}"
            raise ValueError(msg)
