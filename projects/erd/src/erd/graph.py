"""Lookups and copy-on-write helpers shared by the graph operations.

Every helper returns a new value and leaves its arguments untouched. When an
id does not resolve, the input graph itself is returned so callers can detect
a no-op with an identity check.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from uuid import uuid4

from erd.types import Column, ColumnRef, Graph, Relation, Table


def new_id() -> str:
    """Generate an opaque identifier."""
    return str(uuid4())


def column_ref(table_id: str, column_id: str) -> ColumnRef:
    """Build a column pointer."""
    return {"table_id": table_id, "column_id": column_id}


def empty_graph() -> Graph:
    """Graph without tables or relations."""
    return {"tables": [], "relations": []}


def new_column(
    name: str,
    column_type: str = "text",
    *,
    column_id: str | None = None,
    enum_values: Iterable[str] = (),
    is_primary: bool = False,
    is_unique: bool = False,
    is_nullable: bool = True,
    references: ColumnRef | None = None,
) -> Column:
    """Create a column; it is a foreign key exactly when it has a reference."""
    return {
        "id": column_id or new_id(),
        "name": name,
        "type": column_type,
        "enum_values": list(enum_values),
        "default": None,
        "is_primary": is_primary,
        "is_unique": is_unique,
        "is_nullable": is_nullable,
        "is_foreign": references is not None,
        "references": (
            column_ref(references["table_id"], references["column_id"])
            if references
            else None
        ),
    }


def find_table(graph: Graph, table_id: str) -> Table | None:
    """Find a table by id."""
    return next((t for t in graph["tables"] if t["id"] == table_id), None)


def find_column(graph: Graph, ref: ColumnRef) -> Column | None:
    """Resolve a column pointer."""
    if table := find_table(graph, ref["table_id"]):
        return next((c for c in table["columns"] if c["id"] == ref["column_id"]), None)
    return None


def find_relation(graph: Graph, relation_id: str) -> Relation | None:
    """Find a relation by id."""
    return next((r for r in graph["relations"] if r["id"] == relation_id), None)


def primary_keys(table: Table) -> list[Column]:
    """Primary key columns in declaration order."""
    return [c for c in table["columns"] if c["is_primary"]]


def references(column: Column, ref: ColumnRef) -> bool:
    """Check whether a column is a foreign key to the given column."""
    return column["is_foreign"] and column["references"] == ref


def dependents(graph: Graph, ref: ColumnRef) -> list[ColumnRef]:
    """All foreign key columns that reference the given column."""
    return [
        column_ref(table["id"], column["id"])
        for table in graph["tables"]
        for column in table["columns"]
        if references(column, ref)
    ]


def update_table(graph: Graph, table_id: str, change: Callable[[Table], Table]) -> Graph:
    """Apply a change to one table."""
    if find_table(graph, table_id) is None:
        return graph
    return {
        **graph,
        "tables": [change(t) if t["id"] == table_id else t for t in graph["tables"]],
    }


def update_column(
    graph: Graph,
    ref: ColumnRef,
    change: Callable[[Column], Column],
) -> Graph:
    """Apply a change to one column."""
    if find_column(graph, ref) is None:
        return graph

    def change_table(table: Table) -> Table:
        return {
            **table,
            "columns": [
                change(c) if c["id"] == ref["column_id"] else c
                for c in table["columns"]
            ],
        }

    return update_table(graph, ref["table_id"], change_table)


def update_relation(
    graph: Graph,
    relation_id: str,
    change: Callable[[Relation], Relation],
) -> Graph:
    """Apply a change to one relation."""
    if find_relation(graph, relation_id) is None:
        return graph
    return {
        **graph,
        "relations": [
            change(r) if r["id"] == relation_id else r for r in graph["relations"]
        ],
    }


def drop_columns(graph: Graph, doomed: Callable[[Table, Column], bool]) -> Graph:
    """Remove every column matching the predicate, across all tables."""
    if not any(doomed(t, c) for t in graph["tables"] for c in t["columns"]):
        return graph
    return {
        **graph,
        "tables": [
            {**t, "columns": [c for c in t["columns"] if not doomed(t, c)]}
            for t in graph["tables"]
        ],
    }


def drop_relations(graph: Graph, doomed: Callable[[Relation], bool]) -> Graph:
    """Remove every relation matching the predicate."""
    if not any(doomed(r) for r in graph["relations"]):
        return graph
    return {**graph, "relations": [r for r in graph["relations"] if not doomed(r)]}


def touches(relation: Relation, ref: ColumnRef) -> bool:
    """Check whether either endpoint of a relation is the given column."""
    return ref in (relation["source"], relation["target"])
