"""Editable schema graph with relation consistency and undo/redo."""

from erd.editor import Editor
from erd.history import History
from erd.project import (
    empty_project,
    load_project,
    merge_projects,
    project_from_json,
    project_to_json,
    save_project,
)
from erd.relations import (
    create_relation,
    delete_relation,
    delete_table,
    find_dangling_references,
    set_cardinality,
    set_relation_rules,
)
from erd.tables import (
    add_column,
    create_table,
    move_table,
    remove_column,
    rename_table,
    toggle_column_flag,
    update_column_field,
)
from erd.types import (
    Column,
    ColumnRef,
    DanglingReference,
    Graph,
    MissingPrimaryKey,
    Project,
    Relation,
    Table,
)

__all__ = [
    "Column",
    "ColumnRef",
    "DanglingReference",
    "Editor",
    "Graph",
    "History",
    "MissingPrimaryKey",
    "Project",
    "Relation",
    "Table",
    "add_column",
    "create_relation",
    "create_table",
    "delete_relation",
    "delete_table",
    "empty_project",
    "find_dangling_references",
    "load_project",
    "merge_projects",
    "move_table",
    "project_from_json",
    "project_to_json",
    "remove_column",
    "rename_table",
    "save_project",
    "set_cardinality",
    "set_relation_rules",
    "toggle_column_flag",
    "update_column_field",
]
