"""Deterministic names for generated schema objects."""

IDENTIFIER_LIMIT = 60  # PostgreSQL truncates identifiers at 63 bytes


def enum_type_name(table_name: str, column_name: str) -> str:
    """Name of the enum type backing a column."""
    return f"enum_{table_name}_{column_name}".lower()


def constraint_name(
    prefix: str,
    table_name: str,
    column_name: str,
    limit: int = IDENTIFIER_LIMIT,
) -> str:
    """Name of a constraint or index on a table column."""
    return f"{prefix}_{table_name}_{column_name}"[:limit]


def junction_table_name(first: str, second: str) -> str:
    """Name of the junction table between two tables, independent of order."""
    left, right = sorted((first, second))
    return f"_junction_{left}_{right}"


def junction_column_names(first: str, second: str) -> tuple[str, str]:
    """Foreign key column names of a junction table, in sorted table order.

    A table related to itself gets a ``related_`` prefix on the second column.
    """
    left, right = sorted((first, second))
    if left == right:
        return f"{left}_id", f"related_{right}_id"
    return f"{left}_id", f"{right}_id"
