"""litetable count - count rows matching a filter."""

from __future__ import annotations

import click

from litetable.builder import build_query
from litetable.cli import LitetableContext, pass_ctx
from litetable.errors import LitetableError
from litetable.utils import parse_where


@click.command("count")
@click.argument("table_name")
@click.option("--where", "where_text", help="Filter as JSON")
@pass_ctx
def count(ctx: LitetableContext, table_name: str, where_text: str | None) -> None:
    """Count rows of TABLE_NAME."""
    try:
        where = parse_where(where_text)
    except ValueError as e:
        ctx.fail(f"invalid --where: {e}")
    db = ctx.ensure_open()

    query = build_query(db).from_(table_name)
    if where:
        query = query.find(where)
    try:
        n = query.count()
    except LitetableError as e:
        ctx.fail(str(e))

    if ctx.json_output:
        ctx.output({"table": table_name, "count": n})
    else:
        click.echo(n)
