"""Relation engine keeping foreign key columns and relations in lockstep.

Column ``references`` decide whether a foreign key exists and what it points
at; relations decide how it behaves (cardinality, delete and update rules).
Every operation here rewrites both sides together so the SQL compiler never
has to reconcile them.
"""

from __future__ import annotations

from logging import getLogger

from erd.graph import (
    column_ref,
    drop_columns,
    drop_relations,
    find_column,
    find_relation,
    find_table,
    new_column,
    new_id,
    primary_keys,
    references,
    touches,
    update_column,
    update_relation,
    update_table,
)
from erd.types import (
    Cardinality,
    Column,
    ColumnRef,
    DanglingReference,
    DeleteRule,
    Graph,
    MissingPrimaryKey,
    Relation,
    Table,
    UpdateRule,
)

logger = getLogger(__name__)


def canonical_fk_name(parent_table: Table, parent_column: Column) -> str:
    """Name of the foreign key column pointing at a parent key."""
    return f"{parent_table['name']}_{parent_column['name']}"


def ensure_foreign_key(
    graph: Graph,
    parent_table: Table,
    parent_column: Column,
    child_table: Table,
    preferred: ColumnRef | None = None,
) -> tuple[Graph, ColumnRef]:
    """Make sure the child table has a foreign key column to the parent key.

    An existing foreign key is reused when ``preferred`` already points at the
    parent or when a column with the canonical name exists; a plain column
    with the canonical name is adopted. Otherwise a nullable column typed like
    the parent key is appended.
    """
    parent = column_ref(parent_table["id"], parent_column["id"])
    if preferred and (column := find_column(graph, preferred)) and references(column, parent):
        return graph, preferred

    name = canonical_fk_name(parent_table, parent_column)
    existing = next((c for c in child_table["columns"] if c["name"] == name), None)

    if existing is None:
        column = new_column(
            name,
            parent_column["type"],
            enum_values=parent_column["enum_values"],
            references=parent,
        )
        logger.debug("Adding foreign key %s.%s", child_table["name"], name)
        graph = update_table(
            graph,
            child_table["id"],
            lambda t: {**t, "columns": [*t["columns"], column]},
        )
        return graph, column_ref(child_table["id"], column["id"])

    fk = column_ref(child_table["id"], existing["id"])
    if references(existing, parent):
        return graph, fk

    logger.debug("Adopting %s.%s as foreign key", child_table["name"], name)
    graph = update_column(
        graph,
        fk,
        lambda c: {
            **c,
            "type": parent_column["type"],
            "enum_values": list(parent_column["enum_values"]),
            "is_foreign": True,
            "references": parent,
        },
    )
    return graph, fk


def create_relation(
    graph: Graph,
    source_table_id: str,
    source_column_id: str,
    target_table_id: str,
    target_column_id: str,
    *,
    relation_id: str | None = None,
) -> Graph | MissingPrimaryKey:
    """Link two columns with a one-to-many relation from the primary key side.

    Returns the graph unchanged when both endpoints are the same column or do
    not resolve, and ``MissingPrimaryKey`` when neither endpoint is a primary key.
    """
    source = column_ref(source_table_id, source_column_id)
    target = column_ref(target_table_id, target_column_id)
    if source == target:
        return graph

    source_column = find_column(graph, source)
    target_column = find_column(graph, target)
    if source_column is None or target_column is None:
        return graph

    if source_column["is_primary"]:
        parent, parent_column, child = source, source_column, target
    elif target_column["is_primary"]:
        parent, parent_column, child = target, target_column, source
    else:
        logger.info("Relation rejected: neither endpoint is a primary key")
        return MissingPrimaryKey(source, target)

    parent_table = find_table(graph, parent["table_id"])
    child_table = find_table(graph, child["table_id"])
    if parent_table is None or child_table is None:
        return graph

    graph, fk = ensure_foreign_key(
        graph,
        parent_table,
        parent_column,
        child_table,
        preferred=child,
    )
    relation: Relation = {
        "id": relation_id or new_id(),
        "source": parent,
        "target": fk,
        "cardinality": "one-to-many",
        "is_one_to_many_reversed": False,
        "delete_rule": "restrict",
        "update_rule": "cascade",
    }
    logger.debug("Created relation %s", relation["id"])
    return {**graph, "relations": [*graph["relations"], relation]}


def _anchor(graph: Graph, ref: ColumnRef) -> ColumnRef | None:
    """Key column a relation endpoint hangs off: itself or its table's primary key."""
    table = find_table(graph, ref["table_id"])
    if table is None:
        return None
    if (column := find_column(graph, ref)) and column["is_primary"]:
        return ref
    if keys := primary_keys(table):
        return column_ref(table["id"], keys[0]["id"])
    return None


def set_cardinality(
    graph: Graph,
    relation_id: str,
    cardinality: Cardinality,
    *,
    reverse_endpoints: bool = False,
) -> Graph | MissingPrimaryKey:
    """Change the cardinality of a relation and rebuild its foreign key.

    ``reverse_endpoints`` requests the flipped orientation (N to 1); endpoints
    are swapped only when it differs from the stored orientation, so repeated
    calls with the same arguments converge. Foreign keys on either table that
    point at an endpoint are removed first, unless another relation still owns
    them, then exactly one is rebuilt for one-to-one and one-to-many. Many-to-many
    keeps no foreign key column; its junction table only exists in the SQL.
    """
    relation = find_relation(graph, relation_id)
    if relation is None:
        return graph

    source, target = relation["source"], relation["target"]
    if reverse_endpoints != relation["is_one_to_many_reversed"]:
        source, target = target, source

    if find_table(graph, source["table_id"]) is None or find_table(
        graph,
        target["table_id"],
    ) is None:
        return graph

    many_to_many = cardinality == "many-to-many"
    parent = _anchor(graph, source)
    child = _anchor(graph, target) if many_to_many else target
    if parent is None or child is None:
        logger.info("Cardinality change rejected: missing primary key")
        return MissingPrimaryKey(source, target)

    parent_table = find_table(graph, parent["table_id"])
    parent_column = find_column(graph, parent)
    if parent_table is None or parent_column is None:
        return graph
    keep_name = None if many_to_many else canonical_fk_name(parent_table, parent_column)

    endpoints = [relation["source"], relation["target"], parent, child]
    owned = [
        r["target"]
        for r in graph["relations"]
        if r["id"] != relation_id and r["cardinality"] != "many-to-many"
    ]
    tables = {source["table_id"], target["table_id"]}

    def stale(table: Table, column: Column) -> bool:
        if table["id"] not in tables or not column["is_foreign"]:
            return False
        if column["references"] not in endpoints:
            return False
        if column_ref(table["id"], column["id"]) in owned:
            return False
        return not (
            table["id"] == target["table_id"]
            and column["name"] == keep_name
            and column["references"] == parent
        )

    graph = drop_columns(graph, stale)

    if many_to_many:
        new_target = child
    else:
        child_table = find_table(graph, target["table_id"])
        if child_table is None:
            return graph
        graph, new_target = ensure_foreign_key(
            graph,
            parent_table,
            parent_column,
            child_table,
        )

    logger.debug("Relation %s is now %s", relation_id, cardinality)
    return update_relation(
        graph,
        relation_id,
        lambda r: {
            **r,
            "source": parent,
            "target": new_target,
            "cardinality": cardinality,
            "is_one_to_many_reversed": reverse_endpoints,
        },
    )


def set_relation_rules(
    graph: Graph,
    relation_id: str,
    *,
    delete_rule: DeleteRule | None = None,
    update_rule: UpdateRule | None = None,
) -> Graph:
    """Change the ON DELETE / ON UPDATE behaviour of a relation."""
    relation = find_relation(graph, relation_id)
    if relation is None:
        return graph
    on_delete = delete_rule or relation["delete_rule"]
    on_update = update_rule or relation["update_rule"]
    if (on_delete, on_update) == (relation["delete_rule"], relation["update_rule"]):
        return graph
    return update_relation(
        graph,
        relation_id,
        lambda r: {**r, "delete_rule": on_delete, "update_rule": on_update},
    )


def _same_foreign_key(graph: Graph, relation: Relation, fk_table_id: str, fk: Column) -> bool:
    """Check whether a relation relies on a foreign key with the same name and target."""
    if relation["cardinality"] == "many-to-many":
        return False
    if relation["target"]["table_id"] != fk_table_id:
        return False
    column = find_column(graph, relation["target"])
    return (
        column is not None
        and column["name"] == fk["name"]
        and column["references"] == fk["references"]
    )


def delete_relation(graph: Graph, relation_id: str) -> Graph:
    """Remove a relation and, unless still shared, the foreign key it implied."""
    relation = find_relation(graph, relation_id)
    if relation is None:
        return graph

    graph = drop_relations(graph, lambda r: r["id"] == relation_id)
    logger.debug("Deleted relation %s", relation_id)
    if relation["cardinality"] == "many-to-many":
        return graph

    target = relation["target"]
    fk = find_column(graph, target)
    if fk is None or not references(fk, relation["source"]):
        return graph
    if any(_same_foreign_key(graph, r, target["table_id"], fk) for r in graph["relations"]):
        return graph

    return drop_columns(
        graph,
        lambda t, c: t["id"] == target["table_id"] and c["id"] == target["column_id"],
    )


def delete_table(graph: Graph, table_id: str) -> Graph:
    """Remove a table, every relation touching it and every foreign key to it."""
    if find_table(graph, table_id) is None:
        return graph

    logger.debug("Deleting table %s", table_id)
    graph = {
        "tables": [t for t in graph["tables"] if t["id"] != table_id],
        "relations": [
            r
            for r in graph["relations"]
            if table_id not in (r["source"]["table_id"], r["target"]["table_id"])
        ],
    }
    return drop_columns(
        graph,
        lambda _, c: c["is_foreign"]
        and c["references"] is not None
        and c["references"]["table_id"] == table_id,
    )


def detach_column(graph: Graph, ref: ColumnRef) -> Graph:
    """Drop the relations and foreign keys that depend on a column."""
    graph = drop_relations(graph, lambda r: touches(r, ref))
    return drop_columns(graph, lambda _, c: references(c, ref))


def clear_foreign_key(graph: Graph, ref: ColumnRef) -> Graph:
    """Turn a foreign key back into a plain column, dropping the relations it served."""
    column = find_column(graph, ref)
    if column is None or not column["is_foreign"]:
        return graph

    graph = update_column(
        graph,
        ref,
        lambda c: {**c, "is_foreign": False, "references": None},
    )
    return drop_relations(
        graph,
        lambda r: r["cardinality"] != "many-to-many" and r["target"] == ref,
    )


def find_dangling_references(graph: Graph) -> list[DanglingReference]:
    """List foreign keys and relations whose pointers no longer resolve."""
    dangling = [
        DanglingReference(
            kind="foreign-key",
            owner_id=table["id"],
            column_id=column["id"],
            detail=f"{table['name']}.{column['name']} references a missing column",
        )
        for table in graph["tables"]
        for column in table["columns"]
        if column["is_foreign"]
        and (column["references"] is None or find_column(graph, column["references"]) is None)
    ]
    dangling.extend(
        DanglingReference(
            kind="relation",
            owner_id=relation["id"],
            column_id=None,
            detail=f"relation {relation['id']} has an endpoint on a missing column",
        )
        for relation in graph["relations"]
        if find_column(graph, relation["source"]) is None
        or find_column(graph, relation["target"]) is None
    )
    return dangling
