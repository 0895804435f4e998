"""
Command-line interface for pgmeta.
"""

import asyncio
import json
import sys
from functools import wraps
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import click
import pydantic
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import PgMetaConfig, setup_logging
from .database.connection import ConnectionPool
from .exceptions import PgMetaError
from .schema import Column, ColumnManager, ColumnPatch, ColumnSpec, MetaResult, column_ref


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PgMetaError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
        except pydantic.ValidationError as e:
            console.print(f"[red]Invalid input:[/red] {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
    return wrapper


def _load_config(path: Optional[str], debug: bool = False) -> PgMetaConfig:
    config = PgMetaConfig.from_yaml(path) if path else PgMetaConfig()
    setup_logging(config.logging, debug=debug or config.debug)
    return config


async def _with_manager(
    config: PgMetaConfig, operation: Callable[[ColumnManager], Awaitable[MetaResult]]
) -> MetaResult:
    """Open a pool, run one column operation and close the pool."""
    async with ConnectionPool(config.database.to_connection_config()) as pool:
        return await operation(ColumnManager(pool))


def _report(result: MetaResult, as_json: bool) -> None:
    """Print a result, or its error and exit non-zero."""
    if not result.ok:
        console.print(f"[red]✗[/red] {result.error.kind.value}: {result.error.message}")
        sys.exit(1)

    columns = result.data if isinstance(result.data, list) else [result.data]
    if as_json:
        payload = [column.model_dump(by_alias=True) for column in columns]
        click.echo(json.dumps(payload if isinstance(result.data, list) else payload[0], indent=2))
    else:
        _display_columns(columns)


def _display_columns(columns: List[Column]) -> None:
    table = Table(title="Columns")
    table.add_column("ID", style="cyan")
    table.add_column("Schema.Table", style="magenta")
    table.add_column("Name", style="green")
    table.add_column("Type", style="yellow")
    table.add_column("Nullable")
    table.add_column("Default")
    table.add_column("Flags")

    for column in columns:
        flags = [
            label
            for label, enabled in (
                ("pk", column.is_primary_key),
                ("unique", column.is_unique),
                (f"identity {column.identity_generation}", column.is_identity),
                ("generated", column.is_generated),
            )
            if enabled
        ]
        table.add_row(
            column.id,
            f"{column.schema}.{column.table}",
            column.name,
            column.format,
            "yes" if column.is_nullable else "no",
            column.default_value or "",
            ", ".join(flags),
        )

    console.print(table)


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """pgmeta: manage PostgreSQL table columns."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="pgmeta-config.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new pgmeta configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    PgMetaConfig().to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Edit the database section with your connection details")
    console.print("2. Run: pgmeta test-connection --config your-config.yaml")


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)
@handle_errors
def validate_config(config: str):
    """Validate configuration file."""
    console.print(f"Validating configuration: {config}")

    pgmeta_config = PgMetaConfig.from_yaml(config)
    pgmeta_config.database.to_connection_config()

    console.print("[green]✓[/green] Configuration is valid")

    db = pgmeta_config.database
    summary = Table(title="Database")
    summary.add_column("Host", style="magenta")
    summary.add_column("Database", style="green")
    summary.add_column("Pool", style="yellow")
    summary.add_row(db.host, db.database, f"{db.min_pool_size}-{db.max_pool_size}")
    console.print(summary)


@main.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path (environment variables are used otherwise)",
)
@click.pass_context
@handle_errors
def test_connection(ctx, config: Optional[str]):
    """Test the database connection."""
    pgmeta_config = _load_config(config, ctx.obj.get("debug", False))

    async def run_test():
        async with ConnectionPool(pgmeta_config.database.to_connection_config()) as pool:
            return await pool.test_connection()

    info = asyncio.run(run_test())
    if info["status"] != "connected":
        console.print(f"[red]✗[/red] Connection failed: {info['error']}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Connected to {info['database']} as {info['user']}")
    console.print(f"  {info['version']}")


@main.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path (environment variables are used otherwise)",
)
@click.pass_context
def columns(ctx, config: Optional[str]):
    """Inspect and change table columns."""
    ctx.obj["config_path"] = config


def _run(ctx, operation: Callable[[ColumnManager], Awaitable[MetaResult]]) -> MetaResult:
    config = _load_config(ctx.obj.get("config_path"), ctx.obj.get("debug", False))
    return asyncio.run(_with_manager(config, operation))


@columns.command("list")
@click.option(
    "--include-system-schemas/--exclude-system-schemas",
    default=None,
    help="Include information_schema, pg_catalog and pg_toast",
)
@click.option("--limit", type=click.IntRange(min=0), help="Maximum number of columns")
@click.option("--offset", type=click.IntRange(min=0), help="Number of columns to skip")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
@handle_errors
def list_columns(ctx, include_system_schemas: Optional[bool], limit: Optional[int], offset: Optional[int], as_json: bool):
    """List columns."""
    config = _load_config(ctx.obj.get("config_path"), ctx.obj.get("debug", False))
    if include_system_schemas is None:
        include_system_schemas = config.columns.include_system_schemas
    if limit is None:
        limit = config.columns.default_limit

    result = asyncio.run(
        _with_manager(
            config,
            lambda manager: manager.list(
                include_system_schemas=include_system_schemas, limit=limit, offset=offset
            ),
        )
    )
    _report(result, as_json)


@columns.command("get")
@click.option("--id", "column_id", help="Column id, <table_id>.<ordinal_position>")
@click.option("--name", help="Column name")
@click.option("--table", help="Table name")
@click.option("--schema", help="Schema name")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
@handle_errors
def get_column(ctx, column_id: Optional[str], name: Optional[str], table: Optional[str], schema: Optional[str], as_json: bool):
    """Show one column, by id or by name."""
    config = _load_config(ctx.obj.get("config_path"), ctx.obj.get("debug", False))
    ref = column_ref(
        id=column_id, name=name, table=table, schema=schema or config.columns.default_schema
    )
    result = asyncio.run(_with_manager(config, lambda manager: manager.retrieve(ref)))
    _report(result, as_json)


def _parse_default(value: str, value_format: str) -> Any:
    """Literal defaults given as JSON keep their type; anything else stays text."""
    if value_format == "expression":
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


@columns.command("create")
@click.option("--table-id", type=int, required=True, help="Owning table oid")
@click.option("--name", required=True, help="Column name")
@click.option("--type", "type_", required=True, help="Column type")
@click.option("--default", "default_value", help="Default value")
@click.option(
    "--default-format",
    type=click.Choice(["literal", "expression"]),
    default="literal",
    help="Quote the default as a literal or use it as an SQL expression",
)
@click.option("--identity", is_flag=True, help="Create an identity column")
@click.option(
    "--identity-generation",
    type=click.Choice(["BY DEFAULT", "ALWAYS"]),
    default="BY DEFAULT",
    help="Identity generation mode",
)
@click.option("--nullable/--not-null", default=None, help="Nullability")
@click.option("--primary-key", is_flag=True, help="Make the column the primary key")
@click.option("--unique", is_flag=True, help="Add a unique constraint")
@click.option("--comment", help="Column comment")
@click.option("--check", help="Check constraint expression")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
@handle_errors
def create_column(ctx, table_id, name, type_, default_value, default_format, identity,
                  identity_generation, nullable, primary_key, unique, comment, check, as_json):
    """Add a column to a table."""
    fields: Dict[str, Any] = {
        "table_id": table_id,
        "name": name,
        "type": type_,
        "default_value_format": default_format,
        "is_identity": identity,
        "identity_generation": identity_generation,
        "is_nullable": nullable,
        "is_primary_key": primary_key,
        "is_unique": unique,
        "comment": comment,
        "check": check,
    }
    if default_value is not None:
        fields["default_value"] = _parse_default(default_value, default_format)

    spec = ColumnSpec(**fields)
    result = _run(ctx, lambda manager: manager.create(spec))
    _report(result, as_json)


@columns.command("update")
@click.argument("column_id")
@click.option("--name", help="New column name")
@click.option("--type", "type_", help="New column type")
@click.option("--drop-default", is_flag=True, help="Drop the default")
@click.option("--default", "default_value", help="New default value")
@click.option(
    "--default-format",
    type=click.Choice(["literal", "expression"]),
    default="literal",
    help="Quote the default as a literal or use it as an SQL expression",
)
@click.option("--identity/--no-identity", default=None, help="Add or drop identity")
@click.option(
    "--identity-generation",
    type=click.Choice(["BY DEFAULT", "ALWAYS"]),
    help="Identity generation mode",
)
@click.option("--nullable/--not-null", default=None, help="Nullability")
@click.option("--unique/--no-unique", default=None, help="Add or drop the unique constraint")
@click.option("--comment", help="Column comment")
@click.option("--clear-comment", is_flag=True, help="Remove the column comment")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
@handle_errors
def update_column(ctx, column_id, name, type_, drop_default, default_value, default_format,
                  identity, identity_generation, nullable, unique, comment, clear_comment, as_json):
    """Change an existing column. Options left out are not touched."""
    options = {
        "name": name,
        "type": type_,
        "is_identity": identity,
        "identity_generation": identity_generation,
        "is_nullable": nullable,
        "is_unique": unique,
        "comment": comment,
    }
    # Only pass what was given so the patch knows what was supplied
    fields: Dict[str, Any] = {k: v for k, v in options.items() if v is not None}
    if clear_comment:
        fields["comment"] = None
    if drop_default:
        fields["drop_default"] = True
    if default_value is not None:
        fields["default_value"] = _parse_default(default_value, default_format)
        fields["default_value_format"] = default_format

    patch = ColumnPatch(**fields)
    result = _run(ctx, lambda manager: manager.update(column_id, patch))
    _report(result, as_json)


@columns.command("remove")
@click.argument("column_id")
@click.option("--cascade", is_flag=True, help="Also drop objects that depend on the column")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_context
@handle_errors
def remove_column(ctx, column_id: str, cascade: bool, yes: bool, as_json: bool):
    """Drop a column."""
    if not yes and not click.confirm(f"Drop column {column_id}?"):
        return

    result = _run(ctx, lambda manager: manager.remove(column_id, cascade=cascade))
    _report(result, as_json)


if __name__ == "__main__":
    main()
