"""Single owner of the editable schema state.

The editor holds the current graph value and replaces it with the result of a
pure graph operation on every user action, recording one history snapshot per
action that actually changed something. It also tracks the UI-side state the
operations depend on: selection and the pending relation link.
"""

from __future__ import annotations

from collections.abc import Iterable
from logging import getLogger
from typing import Literal

from erd import relations, tables
from erd.graph import column_ref, empty_graph, find_relation, find_table
from erd.history import HISTORY_LIMIT, History
from erd.project import default_viewport
from erd.tables import DEFAULT_TABLE_NAME
from erd.types import (
    Cardinality,
    ColumnField,
    ColumnFlag,
    ColumnRef,
    DeleteRule,
    Graph,
    MissingPrimaryKey,
    Project,
    Relation,
    Table,
    UpdateRule,
    Viewport,
)

logger = getLogger(__name__)

type LinkState = Literal["idle", "started"]


class Editor:
    """Controller applying schema operations with undo/redo support."""

    def __init__(
        self,
        graph: Graph | None = None,
        viewport: Viewport | None = None,
        *,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        """Initialize with an optional starting graph."""
        self.graph: Graph = graph or empty_graph()
        self.viewport: Viewport = viewport or default_viewport()
        self.history = History(history_limit)
        self.selected: list[str] = []
        self.selected_relation_id: str | None = None
        self.active_link: ColumnRef | None = None

    @classmethod
    def from_project(cls, project: Project, *, history_limit: int = HISTORY_LIMIT) -> Editor:
        """Open a loaded project with empty history."""
        graph: Graph = {"tables": project["tables"], "relations": project["relations"]}
        return cls(graph, project["viewport"], history_limit=history_limit)

    @property
    def tables(self) -> list[Table]:
        """Current tables."""
        return self.graph["tables"]

    @property
    def relations(self) -> list[Relation]:
        """Current relations."""
        return self.graph["relations"]

    @property
    def project(self) -> Project:
        """Current state in its persisted shape."""
        return {
            "tables": self.graph["tables"],
            "relations": self.graph["relations"],
            "viewport": self.viewport,
        }

    def _apply(self, graph: Graph) -> bool:
        """Make a new graph current, recording the previous one if it differs."""
        if graph is self.graph or graph == self.graph:
            return False
        self.history.record(self.graph)
        self.graph = graph
        self._drop_stale_selection()
        return True

    def _drop_stale_selection(self) -> None:
        """Deselect tables and relations the last action removed."""
        self.selected = [s for s in self.selected if find_table(self.graph, s)]
        if self.selected_relation_id and not find_relation(
            self.graph,
            self.selected_relation_id,
        ):
            self.selected_relation_id = None

    # Tables and columns

    def create_table(
        self,
        name: str = DEFAULT_TABLE_NAME,
        x: float = 200.0,
        y: float = 150.0,
    ) -> str:
        """Add a table and return its id."""
        graph = tables.create_table(self.graph, name=name, x=x, y=y)
        self._apply(graph)
        return graph["tables"][-1]["id"]

    def rename_table(self, table_id: str, name: str) -> None:
        """Rename a table; blank names fall back to ``table``."""
        self._apply(tables.rename_table(self.graph, table_id, name.strip() or "table"))

    def move_table(self, table_id: str, x: float, y: float, *, record: bool = True) -> None:
        """Move a table; drags record once up front and then pass ``record=False``."""
        graph = tables.move_table(self.graph, table_id, x, y)
        if record:
            self._apply(graph)
        else:
            self.graph = graph

    def add_column(self, table_id: str) -> str | None:
        """Add a column and return its id."""
        graph = tables.add_column(self.graph, table_id)
        if not self._apply(graph):
            return None
        table = find_table(graph, table_id)
        return table["columns"][-1]["id"] if table else None

    def update_column_field(
        self,
        table_id: str,
        column_id: str,
        field: ColumnField,
        value: str | Iterable[str] | None,
    ) -> None:
        """Edit one field of a column."""
        self._apply(tables.update_column_field(self.graph, table_id, column_id, field, value))

    def toggle_column_flag(self, table_id: str, column_id: str, flag: ColumnFlag) -> None:
        """Toggle one flag of a column."""
        self._apply(tables.toggle_column_flag(self.graph, table_id, column_id, flag))

    def remove_column(self, table_id: str, column_id: str) -> None:
        """Remove a column and what depends on it."""
        self._apply(tables.remove_column(self.graph, table_id, column_id))

    def delete_table(self, table_id: str) -> None:
        """Remove a table and what depends on it."""
        self._apply(relations.delete_table(self.graph, table_id))

    # Relations

    def create_relation(self, source: ColumnRef, target: ColumnRef) -> MissingPrimaryKey | None:
        """Link two columns, reporting a missing primary key instead of linking."""
        result = relations.create_relation(
            self.graph,
            source["table_id"],
            source["column_id"],
            target["table_id"],
            target["column_id"],
        )
        if isinstance(result, MissingPrimaryKey):
            return result
        self._apply(result)
        return None

    def set_cardinality(
        self,
        relation_id: str,
        cardinality: Cardinality,
        *,
        reverse_endpoints: bool = False,
    ) -> MissingPrimaryKey | None:
        """Change the cardinality of a relation."""
        result = relations.set_cardinality(
            self.graph,
            relation_id,
            cardinality,
            reverse_endpoints=reverse_endpoints,
        )
        if isinstance(result, MissingPrimaryKey):
            return result
        self._apply(result)
        return None

    def set_relation_rules(
        self,
        relation_id: str,
        *,
        delete_rule: DeleteRule | None = None,
        update_rule: UpdateRule | None = None,
    ) -> None:
        """Change the referential actions of a relation."""
        self._apply(
            relations.set_relation_rules(
                self.graph,
                relation_id,
                delete_rule=delete_rule,
                update_rule=update_rule,
            ),
        )

    def delete_relation(self, relation_id: str) -> None:
        """Remove a relation."""
        self._apply(relations.delete_relation(self.graph, relation_id))

    # Pending link: idle -> started -> committed | cancelled

    @property
    def link_state(self) -> LinkState:
        """Whether a first column has been picked for a new relation."""
        return "idle" if self.active_link is None else "started"

    def start_link(self, table_id: str, column_id: str) -> None:
        """Pick the first column, discarding any earlier pending pick."""
        self.active_link = column_ref(table_id, column_id)

    def cancel_link(self) -> None:
        """Forget the pending pick."""
        self.active_link = None

    def commit_link(self, table_id: str, column_id: str) -> MissingPrimaryKey | None:
        """Pick the second column and create the relation.

        Picking the same column again cancels the link.
        """
        pending, self.active_link = self.active_link, None
        if pending is None:
            return None
        target = column_ref(table_id, column_id)
        if pending == target:
            return None
        return self.create_relation(pending, target)

    def click_column(self, table_id: str, column_id: str) -> MissingPrimaryKey | None:
        """Handle a click on a column's link handle."""
        if self.active_link is None:
            self.start_link(table_id, column_id)
            return None
        return self.commit_link(table_id, column_id)

    # Selection

    def select_table(self, table_id: str, *, additive: bool = False) -> None:
        """Select a table, optionally adding to the selection."""
        if find_table(self.graph, table_id) is None:
            return
        if not additive:
            self.selected = [table_id]
        elif table_id not in self.selected:
            self.selected = [*self.selected, table_id]

    def select_relation(self, relation_id: str | None) -> None:
        """Select a relation, or clear the relation selection with None."""
        if relation_id is None or find_relation(self.graph, relation_id):
            self.selected_relation_id = relation_id

    def clear_selection(self) -> None:
        """Deselect everything."""
        self.selected = []
        self.selected_relation_id = None

    def delete_selected(self) -> None:
        """Delete the selected tables and relation as one undoable action."""
        graph = self.graph
        if self.selected_relation_id:
            graph = relations.delete_relation(graph, self.selected_relation_id)
        for table_id in self.selected:
            graph = relations.delete_table(graph, table_id)
        self._apply(graph)
        self.clear_selection()

    # Whole-graph actions

    def replace(self, new_tables: list[Table], new_relations: list[Relation]) -> None:
        """Swap in a whole new graph, e.g. after an import merge."""
        self._apply({"tables": list(new_tables), "relations": list(new_relations)})
        self.clear_selection()
        self.active_link = None

    def undo(self) -> bool:
        """Restore the state before the last action."""
        restored = self.history.undo(self.graph)
        if restored is None:
            return False
        self._restore(restored)
        return True

    def redo(self) -> bool:
        """Reapply the last undone action."""
        restored = self.history.redo(self.graph)
        if restored is None:
            return False
        self._restore(restored)
        return True

    def _restore(self, graph: Graph) -> None:
        self.graph = graph
        self.clear_selection()
        self.active_link = None
        logger.debug("Restored %d tables", len(graph["tables"]))
