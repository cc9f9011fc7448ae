"""PostgreSQL DDL generation for schema graphs."""

from ddl.compiler import ForeignKey, compile_schema
from ddl.naming import (
    IDENTIFIER_LIMIT,
    constraint_name,
    enum_type_name,
    junction_column_names,
    junction_table_name,
)
from ddl.type_conversion import base_type, data_type_to_sql, quote, sql_to_string

__all__ = [
    "IDENTIFIER_LIMIT",
    "ForeignKey",
    "base_type",
    "compile_schema",
    "constraint_name",
    "data_type_to_sql",
    "enum_type_name",
    "junction_column_names",
    "junction_table_name",
    "quote",
    "sql_to_string",
]
