"""litetable apply - create or migrate declared tables."""

from __future__ import annotations

import click

from litetable.cli import LitetableContext, pass_ctx
from litetable.errors import LitetableError
from litetable.table import Table
from litetable.utils import load_schema_file


@click.command("apply")
@click.argument("schema_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--strict", is_flag=True,
              help="Refuse to migrate tables that differ from their declaration")
@pass_ctx
def apply(ctx: LitetableContext, schema_file: str, strict: bool) -> None:
    """Bring every table declared in SCHEMA_FILE in line with the database."""
    try:
        schemas = load_schema_file(schema_file)
    except (OSError, ValueError, KeyError) as e:
        ctx.fail(f"cannot read {schema_file}: {e}")
    db = ctx.ensure_open()

    results = []
    for schema in schemas:
        table = Table(db, schema)
        try:
            if strict:
                result = table.create_table_if_not_exists()
            else:
                result = table.create_or_update_table()
        except LitetableError as e:
            ctx.fail(f"{schema.name}: {e}")

        if result.was_created:
            action = "created"
        elif result.was_updated:
            action = "migrated"
        else:
            action = "unchanged"
        results.append({"table": schema.name, "action": action})

    if ctx.json_output:
        ctx.output(results)
        return

    for r in results:
        click.echo(f"  {r['table']:<24} {r['action']}")
