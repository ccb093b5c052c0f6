"""litetable check - report schema drift without changing anything."""

from __future__ import annotations

import sys

import click

from litetable.cli import LitetableContext, pass_ctx
from litetable.table import Table
from litetable.utils import load_schema_file


@click.command("check")
@click.argument("schema_file", type=click.Path(exists=True, dir_okay=False))
@pass_ctx
def check(ctx: LitetableContext, schema_file: str) -> None:
    """Compare tables declared in SCHEMA_FILE with the database.

    Exits with status 1 when any table is absent or differs.
    """
    try:
        schemas = load_schema_file(schema_file)
    except (OSError, ValueError, KeyError) as e:
        ctx.fail(f"cannot read {schema_file}: {e}")
    db = ctx.ensure_open()

    results = []
    for schema in schemas:
        table = Table(db, schema)
        if not table.table_exists():
            state = "absent"
        elif table.schema_matches_database():
            state = "match"
        else:
            state = "mismatch"
        results.append({"table": schema.name, "state": state})

    if ctx.json_output:
        ctx.output(results)
    else:
        for r in results:
            marker = "[OK]" if r["state"] == "match" else "[DRIFT]"
            click.echo(f"  {marker:<8} {r['table']:<24} {r['state']}")

    if any(r["state"] != "match" for r in results):
        sys.exit(1)
