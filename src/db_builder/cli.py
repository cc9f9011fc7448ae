"""Command line interface for DB Builder."""

import logging
import sys
from collections.abc import Iterable
from json import JSONDecodeError, dumps
from pathlib import Path
from sys import stdout
from typing import Any, Literal

from cyclopts import App
from ddl import compile_schema
from erd import Editor, MissingPrimaryKey, find_dangling_references, load_project, merge_projects
from erd.graph import column_ref, primary_keys
from erd.project import PROJECT_EXTENSIONS, project_to_json
from erd.types import Cardinality, ColumnRef, Graph, Project
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from db_builder.config import Config, load_config

app = App(help="DB Builder CLI tool")


type Format = Literal["table", "json"]


console = Console()
err_console = Console(stderr=True)

SQL_EXTENSIONS = {".sql"}


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[bold red]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print success message to stderr."""
    err_console.print(f"[bold green]✓[/] {message}")


def print_info(message: str) -> None:
    """Print info message to stderr."""
    err_console.print(f"[bold blue]i[/] {message}")


def configure(config_location: Path | None) -> Config:
    """Load settings and route log records to stderr."""
    try:
        config = load_config(config_location)
    except (OSError, ValueError, TypeError) as e:
        print_error(f"Invalid configuration: {e}")
        sys.exit(1)
    logging.basicConfig(
        level=config["log_level"],
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    return config


def validate_project_location(project_location: Path) -> None:
    """Validate project file location and extension."""
    if not project_location.exists():
        print_error(f"Project file does not exist: {project_location}")
        sys.exit(1)
    if project_location.suffix.lower() not in PROJECT_EXTENSIONS:
        print_error(
            f"Project file has invalid extension: {', '.join(sorted(PROJECT_EXTENSIONS))}",
        )
        sys.exit(1)


def validate_output_path(output: Path, file_extensions: Iterable[str]) -> None:
    """Validate output path is writable."""
    output_dir = output.parent
    if not output_dir.is_dir():
        print_error(f"Output directory does not exist: {output_dir}")
        sys.exit(1)
    if output.suffix.lower() not in file_extensions:
        print_error(f"Output file has invalid extension: {', '.join(file_extensions)}")
        sys.exit(1)


def read_project(project_location: Path) -> Project:
    """Validate and load a project file, exiting on failure."""
    validate_project_location(project_location)
    try:
        return load_project(project_location)
    except (OSError, JSONDecodeError, TypeError) as e:
        print_error(f"Failed to read project {project_location}: {e}")
        sys.exit(1)


def resolve_column(graph: Graph, qualified_name: str) -> ColumnRef:
    """Find a column from its ``table.column`` name, exiting if absent."""
    table_name, _, column_name = qualified_name.partition(".")
    for table in graph["tables"]:
        if table["name"] != table_name:
            continue
        for column in table["columns"]:
            if column["name"] == column_name:
                return column_ref(table["id"], column["id"])
    print_error(f"Column not found: {qualified_name}")
    sys.exit(1)


def write_project(project: Project) -> None:
    """Write project JSON to stdout."""
    stdout.write(dumps(project_to_json(project), indent=2))
    stdout.write("\n")


def summarize(graph: Graph) -> dict[str, Any]:
    """Counts and key columns per table plus consistency problems."""
    names = {t["id"]: t["name"] for t in graph["tables"]}
    return {
        "tables": [
            {
                "name": table["name"],
                "columns": len(table["columns"]),
                "primary_key": [c["name"] for c in primary_keys(table)],
                "foreign_keys": [c["name"] for c in table["columns"] if c["is_foreign"]],
            }
            for table in graph["tables"]
        ],
        "relations": [
            {
                "id": relation["id"],
                "source": names.get(relation["source"]["table_id"], "?"),
                "target": names.get(relation["target"]["table_id"], "?"),
                "cardinality": relation["cardinality"],
            }
            for relation in graph["relations"]
        ],
        "problems": [problem.detail for problem in find_dangling_references(graph)],
    }


def format_summary_tables(summary: dict[str, Any]) -> None:
    """Format a project summary as rich tables."""
    tables = Table(title="Tables")
    tables.add_column("Table", style="bold cyan")
    tables.add_column("Columns")
    tables.add_column("Primary Key", style="bold yellow")
    tables.add_column("Foreign Keys")
    for table in summary["tables"]:
        tables.add_row(
            table["name"],
            str(table["columns"]),
            ", ".join(table["primary_key"]),
            ", ".join(table["foreign_keys"]),
        )
    console.print(tables)

    if summary["relations"]:
        relations = Table(title="Relations")
        relations.add_column("Id", style="dim")
        relations.add_column("From", style="bold cyan")
        relations.add_column("To", style="bold cyan")
        relations.add_column("Cardinality")
        for relation in summary["relations"]:
            relations.add_row(
                relation["id"],
                relation["source"],
                relation["target"],
                relation["cardinality"],
            )
        console.print(relations)

    for problem in summary["problems"]:
        console.print(f"[bold red]![/] {problem}")


@app.command
def sql(
    project: Path,
    *,
    output: Path | None = None,
    config: Path | None = None,
) -> None:
    """Generate PostgreSQL DDL from a project file."""
    settings = configure(config)
    if output:
        validate_output_path(output, SQL_EXTENSIONS)
    loaded = read_project(project)
    print_info(f"Project: {project}")

    script = compile_schema(
        loaded["tables"],
        loaded["relations"],
        identifier_limit=settings["identifier_limit"],
    )

    if output:
        try:
            output.write_text(script, encoding="utf-8")
        except OSError as e:
            print_error(f"Failed to write output file: {e}")
            sys.exit(1)
        print_success(f"Schema written to {output}")
    else:
        stdout.write(script)
        print_success("Schema generated")


@app.command
def inspect(project: Path, fmt: Format = "table", *, config: Path | None = None) -> None:
    """Summarize the tables and relations of a project file."""
    configure(config)
    loaded = read_project(project)
    summary = summarize({"tables": loaded["tables"], "relations": loaded["relations"]})

    if fmt == "json":
        stdout.write(dumps(summary))
    elif fmt == "table":
        format_summary_tables(summary)


@app.command
def merge(current: Path, incoming: Path, *, config: Path | None = None) -> None:
    """Import the tables and relations of one project into another."""
    settings = configure(config)
    editor = Editor.from_project(read_project(current), history_limit=settings["history_limit"])
    imported = read_project(incoming)

    merged = merge_projects(
        editor.graph,
        {"tables": imported["tables"], "relations": imported["relations"]},
    )
    added = len(merged["tables"]) - len(editor.tables)
    editor.replace(merged["tables"], merged["relations"])

    write_project(editor.project)
    print_success(f"Merged {added} new tables from {incoming}")


@app.command
def relate(project: Path, source: str, target: str, *, config: Path | None = None) -> None:
    """Create a relation between two ``table.column`` names."""
    settings = configure(config)
    editor = Editor.from_project(read_project(project), history_limit=settings["history_limit"])

    problem = editor.create_relation(
        resolve_column(editor.graph, source),
        resolve_column(editor.graph, target),
    )
    if isinstance(problem, MissingPrimaryKey):
        print_error(problem.message)
        sys.exit(1)

    write_project(editor.project)
    print_success(f"Related {source} to {target}")


@app.command
def cardinality(
    project: Path,
    relation_id: str,
    value: Cardinality,
    *,
    reverse: bool = False,
    config: Path | None = None,
) -> None:
    """Change the cardinality of a relation."""
    settings = configure(config)
    editor = Editor.from_project(read_project(project), history_limit=settings["history_limit"])

    if not any(r["id"] == relation_id for r in editor.relations):
        print_error(f"Relation not found: {relation_id}")
        sys.exit(1)

    problem = editor.set_cardinality(relation_id, value, reverse_endpoints=reverse)
    if isinstance(problem, MissingPrimaryKey):
        print_error(problem.message)
        sys.exit(1)

    write_project(editor.project)
    print_success(f"Relation {relation_id} is now {value}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
