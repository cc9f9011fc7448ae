"""TypedDict schemas for the editable schema graph."""

from __future__ import annotations

from typing import Literal, NamedTuple, TypedDict

# Types the SQL compiler understands; any other string is accepted on a column
# and compiled as text.
type ColumnType = Literal[
    "integer",
    "text",
    "uuid",
    "date",
    "boolean",
    "json",
    "enum",
]

type Cardinality = Literal["one-to-one", "one-to-many", "many-to-many"]

type DeleteRule = Literal["cascade", "set-null", "restrict"]

type UpdateRule = Literal["cascade", "restrict"]

type ColumnFlag = Literal["primary", "unique", "nullable", "foreign"]

type ColumnField = Literal["name", "type", "enum_values", "default"]

CARDINALITIES: tuple[Cardinality, ...] = ("one-to-one", "one-to-many", "many-to-many")
DELETE_RULES: tuple[DeleteRule, ...] = ("cascade", "set-null", "restrict")
UPDATE_RULES: tuple[UpdateRule, ...] = ("cascade", "restrict")


class ColumnRef(TypedDict):
    """Pointer to a column of a table."""

    table_id: str
    column_id: str


class Column(TypedDict):
    """A column of a table."""

    id: str
    name: str
    type: str
    enum_values: list[str]
    default: str | None
    is_primary: bool
    is_unique: bool
    is_nullable: bool
    is_foreign: bool
    references: ColumnRef | None  # Set if and only if is_foreign


class Table(TypedDict):
    """A table with its canvas position and ordered columns."""

    id: str
    name: str
    x: float
    y: float
    columns: list[Column]


class Relation(TypedDict):
    """Relation between a parent key (source) and a child column (target)."""

    id: str
    source: ColumnRef
    target: ColumnRef
    cardinality: Cardinality
    is_one_to_many_reversed: bool
    delete_rule: DeleteRule
    update_rule: UpdateRule


class Graph(TypedDict):
    """The logical state owned by the editor."""

    tables: list[Table]
    relations: list[Relation]


class Viewport(TypedDict):
    """Canvas pan and zoom, persisted with the project only."""

    x: float
    y: float
    scale: float


class Project(TypedDict):
    """Persisted unit of work."""

    tables: list[Table]
    relations: list[Relation]
    viewport: Viewport


class MissingPrimaryKey(NamedTuple):
    """A relation edit was rejected because no endpoint is a primary key."""

    source: ColumnRef
    target: ColumnRef

    @property
    def message(self) -> str:
        """Human readable description of the condition."""
        return "A relation needs a primary key on at least one of its columns"


class DanglingReference(NamedTuple):
    """A pointer in the graph that does not resolve."""

    kind: Literal["foreign-key", "relation"]
    owner_id: str  # Table id for foreign keys, relation id for relations
    column_id: str | None
    detail: str
