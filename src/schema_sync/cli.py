"""
Command-line interface for schema-sync.
"""

import asyncio
import json
import sys
from functools import wraps
from pathlib import Path
from typing import List, Optional, Sequence

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ParseServerConfig, SchemaSyncConfig
from .exceptions import (
    ConfigurationError,
    InvalidSchemaError,
    OutOfSyncError,
    RemoteApplyError,
    SchemaSyncError,
)
from .logging_config import configure_logging
from .reconciler import SchemaReconciler
from .remote import ParseClient, ParseCommandExecutor
from .schema.commands import Command, render, to_dict
from .schema.models import Schema, dump_schema, load_schema
from .schema.verifier import ValidationIssue, verify_schema


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OutOfSyncError as e:
            console.print(f"[yellow]Out of sync:[/yellow] {escape(e.message)}")
            _display_commands(e.commands, title="Pending Commands")
            sys.exit(1)
        except InvalidSchemaError as e:
            console.print(f"[red]Error:[/red] {escape(e.message)}")
            _display_issues(e.errors)
            sys.exit(1)
        except RemoteApplyError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            if e.applied_commands:
                _display_commands(e.applied_commands, title="Applied Before Failure")
            sys.exit(1)
        except SchemaSyncError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(130)
    return wrapper


def plan_options(func):
    """Attach the plan option override flags to a command."""
    decorators = [
        click.option("--hook-url", default=None, help="Prefix for every webhook URL"),
        click.option(
            "--ignore-indexes", is_flag=True, help="Do not manage indexes",
        ),
        click.option(
            "--disallow-column-redefine", is_flag=True,
            help="Abort if a column would be updated or deleted",
        ),
        click.option(
            "--disallow-index-redefine", is_flag=True,
            help="Abort if an index would be updated or deleted",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    required=True,
    help="Configuration file path",
)

schema_argument = click.argument(
    "schema_file", type=click.Path(exists=True), required=False
)


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """schema-sync: Declarative schema migrations for Parse Server."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="schema-sync.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new schema-sync configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    _create_default_config().to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Set PARSE_SERVER_URL, PARSE_APP_ID and PARSE_MASTER_KEY")
    console.print("2. Run: schema-sync dump -c your-config.yaml -o schema.yaml")
    console.print("3. Run: schema-sync plan -c your-config.yaml schema.yaml")


@main.command()
@click.argument("schema_file", type=click.Path(exists=True))
@handle_errors
def validate(schema_file: str):
    """Validate a schema file without contacting the server."""
    schema = load_schema(schema_file)
    issues = verify_schema(schema)
    if issues:
        raise InvalidSchemaError(issues)

    console.print(f"[green]✓[/green] Schema is valid: {schema_file}")
    console.print(
        f"  Collections: {len(schema.collections)}, "
        f"Functions: {len(schema.functions)}, Triggers: {len(schema.triggers)}"
    )


@main.command()
@config_option
@schema_argument
@plan_options
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON")
@click.pass_context
@handle_errors
def plan(ctx, config: str, schema_file: Optional[str], as_json: bool, **overrides):
    """Show the commands needed to reconcile the live schema."""
    sync_config, desired = _load(ctx, config, schema_file, overrides)

    commands = asyncio.run(_compute_plan(sync_config, desired))

    if as_json:
        click.echo(json.dumps([to_dict(c) for c in commands], indent=2, sort_keys=True))
    elif commands:
        _display_commands(commands)
    else:
        console.print("[green]✓[/green] Schema is up to date")


@main.command()
@config_option
@schema_argument
@plan_options
@click.pass_context
@handle_errors
def check(ctx, config: str, schema_file: Optional[str], **overrides):
    """Exit non-zero when the live schema has drifted."""
    sync_config, desired = _load(ctx, config, schema_file, overrides)

    async def run_check():
        async with ParseClient(sync_config.server) as client:
            await SchemaReconciler(client, options=sync_config.options).check(desired)

    asyncio.run(run_check())
    console.print("[green]✓[/green] Schema is in sync")


@main.command()
@config_option
@schema_argument
@plan_options
@click.option("--yes", "-y", is_flag=True, help="Apply without confirmation")
@click.pass_context
@handle_errors
def apply(ctx, config: str, schema_file: Optional[str], yes: bool, **overrides):
    """Apply the commands needed to reconcile the live schema."""
    sync_config, desired = _load(ctx, config, schema_file, overrides)

    commands = asyncio.run(_compute_plan(sync_config, desired))
    if not commands:
        console.print("[green]✓[/green] Nothing applied")
        return

    _display_commands(commands)
    if not yes and not click.confirm(f"Apply {len(commands)} command(s)?"):
        console.print("[yellow]Aborted[/yellow]")
        return

    async def run_apply() -> List[Command]:
        async with ParseClient(sync_config.server) as client:
            reconciler = SchemaReconciler(
                client, ParseCommandExecutor(client), sync_config.options
            )
            return await reconciler.execute(commands)

    applied = asyncio.run(run_apply())
    console.print(f"[green]✓[/green] Applied {len(applied)} command(s)")


@main.command()
@config_option
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default=None,
    help="Write the live schema to this file instead of stdout",
)
@click.pass_context
@handle_errors
def dump(ctx, config: str, output: Optional[str]):
    """Export the live schema in schema-file format."""
    sync_config = SchemaSyncConfig.from_yaml(config)
    configure_logging(sync_config.logging, ctx.obj.get("debug", False))

    async def run_fetch() -> Schema:
        async with ParseClient(sync_config.server) as client:
            return await client.fetch_schema()

    schema = asyncio.run(run_fetch())
    if output:
        dump_schema(schema, output)
        console.print(f"[green]✓[/green] Live schema written to {output}")
    else:
        click.echo(json.dumps(schema.to_dict(), indent=2, sort_keys=True))


async def _compute_plan(sync_config: SchemaSyncConfig, desired: Schema) -> List[Command]:
    async with ParseClient(sync_config.server) as client:
        return await SchemaReconciler(client, options=sync_config.options).compute_plan(desired)


def _load(ctx, config: str, schema_file: Optional[str], overrides):
    # Flags can only switch options on; unset flags keep the config values
    overrides = {k: v for k, v in overrides.items() if v}
    sync_config = SchemaSyncConfig.from_yaml(config).with_overrides(**overrides)
    configure_logging(sync_config.logging, ctx.obj.get("debug", False))

    schema_file = schema_file or sync_config.schema_file
    if not schema_file:
        raise ConfigurationError(
            "No schema file given and no 'schema_file' in configuration"
        )
    return sync_config, load_schema(schema_file)


def _create_default_config() -> SchemaSyncConfig:
    """Create a default configuration with environment placeholders."""
    return SchemaSyncConfig(
        server=ParseServerConfig(
            url="${PARSE_SERVER_URL}",
            application_id="${PARSE_APP_ID}",
            master_key="${PARSE_MASTER_KEY}",
        ),
        schema_file="schema.yaml",
    )


def _display_commands(commands: Sequence[Command], title: str = "Planned Commands"):
    """Display commands in a table."""
    table = Table(title=title)
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Type", style="magenta")
    table.add_column("Change", style="green")

    for i, command in enumerate(commands, start=1):
        table.add_row(str(i), command.command_type.value, escape(render(command)))

    console.print(table)


def _display_issues(issues: Sequence[ValidationIssue]):
    """Display verification issues in a table."""
    table = Table(title="Schema Issues")
    table.add_column("Location", style="cyan")
    table.add_column("Code", style="magenta")
    table.add_column("Message", style="yellow")

    for issue in issues:
        table.add_row(escape(issue.location), issue.code, escape(issue.message))

    console.print(table)


if __name__ == "__main__":
    main()
