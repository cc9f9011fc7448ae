"""Mapping of editor column types onto SQLAlchemy PostgreSQL types."""

from typing import Any, Literal

from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.types import Boolean, Integer, Text, TypeEngine

DIALECT = postgresql.dialect()

type BaseType = Literal["integer", "text", "uuid", "date", "boolean", "json", "enum"]

# Spellings accepted from the editor and older project files
TYPE_ALIASES: dict[str, BaseType] = {
    "int": "integer",
    "integer": "integer",
    "text": "text",
    "string": "text",
    "uuid": "uuid",
    "date": "date",
    "datetime": "date",
    "timestamp": "date",
    "bool": "boolean",
    "boolean": "boolean",
    "json": "json",
    "jsonb": "json",
    "enum": "enum",
}

SERIAL = "SERIAL"
RANDOM_UUID = "gen_random_uuid()"
CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP"


def base_type(column_type: str) -> BaseType:
    """Normalize a column type, treating anything unknown as text."""
    return TYPE_ALIASES.get(column_type.strip().lower(), "text")


def data_type_to_sql(column_type: str) -> TypeEngine[Any]:
    """Convert an editor column type to a SQLAlchemy TypeEngine.

    Enums are not handled here: they compile to a named type created by the
    enum phase of the compiler.
    """
    sql_type: TypeEngine[Any]

    match base_type(column_type):
        case "integer":
            sql_type = Integer()
        case "uuid":
            sql_type = UUID()
        case "date":
            sql_type = TIMESTAMP(timezone=True)
        case "boolean":
            sql_type = Boolean()
        case "json":
            sql_type = JSONB()
        case _:
            sql_type = Text()

    return sql_type


def sql_to_string(sql_type: TypeEngine[Any]) -> str:
    """Render a SQLAlchemy type as PostgreSQL DDL."""
    return sql_type.compile(dialect=DIALECT)


def quote(identifier: str) -> str:
    """Quote an identifier if PostgreSQL requires it (reserved word, case, symbols)."""
    return DIALECT.identifier_preparer.quote(identifier)
