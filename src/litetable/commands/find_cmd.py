"""litetable find - query rows with a JSON filter."""

from __future__ import annotations

import click

from litetable.builder import build_query
from litetable.cli import LitetableContext, pass_ctx
from litetable.errors import LitetableError
from litetable.utils import format_row, parse_columns, parse_order_by, parse_where


@click.command("find")
@click.argument("table_name")
@click.option("--where", "where_text", help='Filter as JSON, e.g. \'{"age": {"$gt": 30}}\'')
@click.option("--order-by", "order_by", multiple=True, help="COLUMN or COLUMN:desc")
@click.option("--limit", type=int, default=None, help="Maximum number of rows")
@click.option("--offset", type=int, default=None, help="Rows to skip")
@click.option("--columns", "columns_text", help="Comma-separated columns to select")
@pass_ctx
def find_cmd(ctx: LitetableContext, table_name: str, where_text: str | None,
             order_by: tuple[str, ...], limit: int | None, offset: int | None,
             columns_text: str | None) -> None:
    """Print rows of TABLE_NAME as JSON lines."""
    try:
        where = parse_where(where_text)
    except ValueError as e:
        ctx.fail(f"invalid --where: {e}")
    db = ctx.ensure_open()

    query = build_query(db).from_(table_name)
    if where:
        query = query.find(where)
    columns = parse_columns(columns_text)
    if columns:
        query = query.select(columns)
    if order_by:
        query = query.order_by([parse_order_by(o) for o in order_by])
    if limit is not None:
        query = query.limit(limit)
    if offset is not None:
        query = query.offset(offset)

    try:
        with query.stream() as rows:
            for row in rows:
                click.echo(format_row(row))
    except LitetableError as e:
        ctx.fail(str(e))
