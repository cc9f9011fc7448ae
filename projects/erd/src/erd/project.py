"""Project file reading and writing.

Project files keep the editor's camelCase save layout::

    {"tables": [...], "relations": [...], "viewport": {"x": 0, "y": 0, "scale": 1}}

Loading is lenient: missing fields get defaults and nothing is assumed about
the order of tables or relations. Dangling pointers are kept as they are.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from logging import getLogger
from pathlib import Path
from typing import Any

from erd.graph import column_ref, new_id
from erd.types import (
    CARDINALITIES,
    DELETE_RULES,
    UPDATE_RULES,
    Column,
    ColumnRef,
    Graph,
    Project,
    Relation,
    Table,
    Viewport,
)

logger = getLogger(__name__)

PROJECT_EXTENSIONS = {".dbb", ".json"}


def default_viewport() -> Viewport:
    """Viewport of a fresh canvas."""
    return {"x": 0.0, "y": 0.0, "scale": 1.0}


def empty_project() -> Project:
    """Project without tables or relations."""
    return {"tables": [], "relations": [], "viewport": default_viewport()}


def _choice[T: str](value: object, allowed: tuple[T, ...], default: T) -> T:
    """Pick value if it is one of the allowed literals."""
    return next((a for a in allowed if a == value), default)


def _number(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return default
    return float(value)


def _ref_from_json(data: object) -> ColumnRef | None:
    if not isinstance(data, Mapping):
        return None
    table_id, column_id = data.get("tableId"), data.get("columnId")
    if isinstance(table_id, str) and isinstance(column_id, str):
        return column_ref(table_id, column_id)
    return None


def _ref_to_json(ref: ColumnRef) -> dict[str, str]:
    return {"tableId": ref["table_id"], "columnId": ref["column_id"]}


def _column_from_json(data: Mapping[str, Any]) -> Column:
    reference = _ref_from_json(data.get("references"))
    is_foreign = bool(data.get("isForeign", reference is not None)) and reference is not None
    values = data.get("enumValues") or []
    return {
        "id": str(data.get("id") or new_id()),
        "name": str(data.get("name", "")),
        "type": str(data.get("type") or "text"),
        "enum_values": [str(v) for v in values],
        "default": str(data["default"]) if data.get("default") is not None else None,
        "is_primary": bool(data.get("isPrimary", False)),
        "is_unique": bool(data.get("isUnique", False)),
        "is_nullable": bool(data.get("isNullable", True)),
        "is_foreign": is_foreign,
        "references": reference if is_foreign else None,
    }


def _column_to_json(column: Column) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": column["id"],
        "name": column["name"],
        "type": column["type"],
        "isPrimary": column["is_primary"],
        "isUnique": column["is_unique"],
        "isNullable": column["is_nullable"],
        "isForeign": column["is_foreign"],
    }
    if column["enum_values"]:
        data["enumValues"] = list(column["enum_values"])
    if column["default"] is not None:
        data["default"] = column["default"]
    if column["references"] is not None:
        data["references"] = _ref_to_json(column["references"])
    return data


def _table_from_json(data: Mapping[str, Any]) -> Table:
    return {
        "id": str(data.get("id") or new_id()),
        "name": str(data.get("name") or "table"),
        "x": _number(data.get("x"), 0.0),
        "y": _number(data.get("y"), 0.0),
        "columns": [
            _column_from_json(c) for c in data.get("columns") or [] if isinstance(c, Mapping)
        ],
    }


def _table_to_json(table: Table) -> dict[str, Any]:
    return {
        "id": table["id"],
        "name": table["name"],
        "x": table["x"],
        "y": table["y"],
        "columns": [_column_to_json(c) for c in table["columns"]],
    }


def _relation_from_json(data: Mapping[str, Any]) -> Relation | None:
    source = _ref_from_json(data.get("from"))
    target = _ref_from_json(data.get("to"))
    if source is None or target is None:
        logger.warning("Skipping relation %s without endpoints", data.get("id"))
        return None
    return {
        "id": str(data.get("id") or new_id()),
        "source": source,
        "target": target,
        "cardinality": _choice(data.get("cardinality"), CARDINALITIES, "one-to-many"),
        "is_one_to_many_reversed": bool(data.get("isOneToManyReversed", False)),
        "delete_rule": _choice(data.get("deleteRule"), DELETE_RULES, "restrict"),
        "update_rule": _choice(data.get("updateRule"), UPDATE_RULES, "cascade"),
    }


def _relation_to_json(relation: Relation) -> dict[str, Any]:
    return {
        "id": relation["id"],
        "from": _ref_to_json(relation["source"]),
        "to": _ref_to_json(relation["target"]),
        "cardinality": relation["cardinality"],
        "isOneToManyReversed": relation["is_one_to_many_reversed"],
        "deleteRule": relation["delete_rule"],
        "updateRule": relation["update_rule"],
    }


def project_from_json(data: Mapping[str, Any]) -> Project:
    """Build a project from decoded JSON, substituting defaults for missing parts."""
    viewport = data.get("viewport")
    viewport = viewport if isinstance(viewport, Mapping) else {}
    relations = (
        _relation_from_json(r) for r in data.get("relations") or [] if isinstance(r, Mapping)
    )
    return {
        "tables": [
            _table_from_json(t) for t in data.get("tables") or [] if isinstance(t, Mapping)
        ],
        "relations": [r for r in relations if r is not None],
        "viewport": {
            "x": _number(viewport.get("x"), 0.0),
            "y": _number(viewport.get("y"), 0.0),
            "scale": _number(viewport.get("scale"), 1.0),
        },
    }


def project_to_json(project: Project) -> dict[str, Any]:
    """Encode a project in the save file layout."""
    return {
        "tables": [_table_to_json(t) for t in project["tables"]],
        "relations": [_relation_to_json(r) for r in project["relations"]],
        "viewport": dict(project["viewport"]),
    }


def loads(text: str) -> Project:
    """Parse a project from JSON text."""
    data = json.loads(text)
    if not isinstance(data, Mapping):
        msg = f"Project file must contain a JSON object, got {type(data).__name__}"
        raise TypeError(msg)
    return project_from_json(data)


def dumps(project: Project) -> str:
    """Serialize a project to JSON text."""
    return json.dumps(project_to_json(project), indent=2)


def load_project(location: Path) -> Project:
    """Read a project file."""
    return loads(location.read_text(encoding="utf-8"))


def save_project(location: Path, project: Project) -> None:
    """Write a project file."""
    location.write_text(dumps(project), encoding="utf-8")


def merge_projects(current: Graph, incoming: Graph) -> Graph:
    """Add incoming tables and relations whose ids are not already present."""
    table_ids = {t["id"] for t in current["tables"]}
    relation_ids = {r["id"] for r in current["relations"]}
    return {
        "tables": [
            *current["tables"],
            *(t for t in incoming["tables"] if t["id"] not in table_ids),
        ],
        "relations": [
            *current["relations"],
            *(r for r in incoming["relations"] if r["id"] not in relation_ids),
        ],
    }
