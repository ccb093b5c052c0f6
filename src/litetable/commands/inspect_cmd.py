"""litetable inspect - print a table's schema as stored in the database."""

from __future__ import annotations

import click
import yaml

from litetable.cli import LitetableContext, pass_ctx
from litetable.reconciler import SchemaReconciler
from litetable.schema import Schema


@click.command("inspect")
@click.argument("table_name")
@pass_ctx
def inspect_cmd(ctx: LitetableContext, table_name: str) -> None:
    """Show the introspected schema of TABLE_NAME."""
    db = ctx.ensure_open()

    # Only the name is needed to introspect
    reconciler = SchemaReconciler(db, Schema(name=table_name, columns={}))
    if not reconciler.table_exists():
        ctx.fail(f"table not found: {table_name}")

    data = reconciler.get_schema_from_database().to_dict()
    if ctx.json_output:
        ctx.output(data)
    else:
        click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), nl=False)
