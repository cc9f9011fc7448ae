"""Tests for project file reading, writing and merging."""

import json
from pathlib import Path

import pytest

from erd.graph import column_ref
from erd.project import (
    dumps,
    empty_project,
    load_project,
    loads,
    merge_projects,
    project_from_json,
    save_project,
)
from erd.types import Graph

SAVED_PROJECT = {
    "tables": [
        {
            "id": "t1",
            "name": "users",
            "x": 10,
            "y": 20,
            "columns": [
                {"id": "c1", "name": "id", "type": "uuid", "isPrimary": True},
                {
                    "id": "c2",
                    "name": "role",
                    "type": "enum",
                    "enumValues": ["admin", "member"],
                    "isNullable": False,
                },
            ],
        },
        {
            "id": "t2",
            "name": "posts",
            "columns": [
                {"id": "c3", "name": "id", "type": "uuid", "isPrimary": True},
                {
                    "id": "c4",
                    "name": "users_id",
                    "type": "uuid",
                    "isForeign": True,
                    "references": {"tableId": "t1", "columnId": "c1"},
                },
            ],
        },
    ],
    "relations": [
        {
            "id": "r1",
            "from": {"tableId": "t1", "columnId": "c1"},
            "to": {"tableId": "t2", "columnId": "c4"},
            "cardinality": "one-to-many",
            "deleteRule": "cascade",
            "updateRule": "restrict",
        },
    ],
    "viewport": {"x": -5, "y": 3, "scale": 0.5},
}


def test_load_saved_layout() -> None:
    """Test camelCase fields map onto the model."""
    project = project_from_json(SAVED_PROJECT)
    users, posts = project["tables"]
    assert users["columns"][0]["is_primary"] is True
    assert users["columns"][1]["enum_values"] == ["admin", "member"]
    assert users["columns"][1]["is_nullable"] is False
    assert posts["columns"][1]["references"] == column_ref("t1", "c1")
    [relation] = project["relations"]
    assert relation["source"] == column_ref("t1", "c1")
    assert relation["delete_rule"] == "cascade"
    assert project["viewport"] == {"x": -5.0, "y": 3.0, "scale": 0.5}


def test_missing_fields_get_defaults() -> None:
    """Test an empty object loads as an empty project."""
    assert project_from_json({}) == empty_project()


def test_column_defaults() -> None:
    """Test a bare column is a nullable text column without a key."""
    project = project_from_json({"tables": [{"id": "t", "columns": [{"id": "c"}]}]})
    column = project["tables"][0]["columns"][0]
    assert column["type"] == "text"
    assert column["is_nullable"] is True
    assert column["is_foreign"] is False
    assert column["references"] is None


def test_unknown_enumerations_fall_back() -> None:
    """Test unknown cardinalities and rules load as the defaults."""
    relation = {
        "id": "r",
        "from": {"tableId": "a", "columnId": "b"},
        "to": {"tableId": "c", "columnId": "d"},
        "cardinality": "several",
        "deleteRule": "explode",
    }
    [loaded] = project_from_json({"relations": [relation]})["relations"]
    assert loaded["cardinality"] == "one-to-many"
    assert loaded["delete_rule"] == "restrict"
    assert loaded["update_rule"] == "cascade"


def test_relation_without_endpoints_is_skipped() -> None:
    """Test relations missing an endpoint are dropped on load."""
    project = project_from_json({"relations": [{"id": "r", "from": {"tableId": "a"}}]})
    assert project["relations"] == []


def test_dangling_pointers_are_kept() -> None:
    """Test loading does not repair references to missing columns."""
    data = {
        "tables": [
            {
                "id": "t",
                "columns": [
                    {
                        "id": "c",
                        "isForeign": True,
                        "references": {"tableId": "gone", "columnId": "gone"},
                    },
                ],
            },
        ],
    }
    column = project_from_json(data)["tables"][0]["columns"][0]
    assert column["references"] == column_ref("gone", "gone")


def test_save_and_load(tmp_path: Path) -> None:
    """Test a saved project reads back equal and keeps the camelCase layout."""
    project = project_from_json(SAVED_PROJECT)
    location = tmp_path / "blog.dbb"
    save_project(location, project)
    assert load_project(location) == project

    saved = json.loads(location.read_text(encoding="utf-8"))
    assert saved["relations"][0]["from"] == {"tableId": "t1", "columnId": "c1"}
    assert saved["tables"][0]["columns"][0]["isPrimary"] is True


def test_loads_rejects_non_object() -> None:
    """Test a JSON array is not a project."""
    with pytest.raises(TypeError, match="JSON object"):
        loads("[]")


def test_dumps_is_indented() -> None:
    """Test project text is pretty printed."""
    assert dumps(empty_project()).startswith('{\n  "tables"')


def test_merge_deduplicates_by_id() -> None:
    """Test incoming tables and relations with known ids are ignored."""
    project = project_from_json(SAVED_PROJECT)
    current: Graph = {"tables": project["tables"][:1], "relations": []}
    incoming: Graph = {"tables": project["tables"], "relations": project["relations"]}
    merged = merge_projects(current, incoming)
    assert [t["id"] for t in merged["tables"]] == ["t1", "t2"]
    assert [r["id"] for r in merged["relations"]] == ["r1"]
    assert merged["tables"][0] is current["tables"][0]
