"""Click CLI root and global flags for litetable."""

from __future__ import annotations

import json
import sys
from typing import NoReturn

import click

from litetable import __version__
from litetable.config import LitetableConfig, configure_logging, find_config_file
from litetable.db import Database
from litetable.errors import LitetableError


class LitetableContext:
    """Shared context for all commands."""

    def __init__(self) -> None:
        self.config_path: str | None = None
        self.db_path: str | None = None
        self.config: LitetableConfig | None = None
        self.db: Database | None = None
        self.json_output: bool = False
        self.verbose: bool = False

    def ensure_open(self) -> Database:
        """Load configuration and open the database once."""
        if self.db is not None:
            return self.db
        config_path = self.config_path or find_config_file()
        self.config = LitetableConfig.load(config_path)
        if self.db_path:
            self.config.database = self.db_path
        configure_logging("DEBUG" if self.verbose else self.config.log_level)
        try:
            self.db = Database(config=self.config)
        except LitetableError as e:
            self.fail(str(e))
        return self.db

    def close(self) -> None:
        if self.db is not None:
            self.db.close()
            self.db = None

    def fail(self, message: str, code: int = 1) -> NoReturn:
        click.echo(f"Error: {message}", err=True)
        sys.exit(code)

    def output(self, data: dict | list) -> None:
        """Output data as JSON."""
        click.echo(json.dumps(data, indent=2, default=str))


pass_ctx = click.make_pass_decorator(LitetableContext, ensure=True)


@click.group(invoke_without_command=True)
@click.option("--db", "db_path", envvar="LITETABLE_DB", help="Path to database file")
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="Path to litetable.yaml")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Log every SQL statement")
@click.version_option(__version__, prog_name="litetable")
@click.pass_context
def cli(ctx: click.Context, db_path: str | None, config_path: str | None,
        json_output: bool, verbose: bool) -> None:
    """litetable - declarative SQLite tables and Mongo-style queries"""
    lctx = ctx.ensure_object(LitetableContext)
    lctx.db_path = db_path
    lctx.config_path = config_path
    lctx.json_output = json_output
    lctx.verbose = verbose
    ctx.call_on_close(lctx.close)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# --- Register all commands ---

from litetable.commands.apply import apply
from litetable.commands.check import check
from litetable.commands.count import count
from litetable.commands.find_cmd import find_cmd
from litetable.commands.inspect_cmd import inspect_cmd

cli.add_command(apply, "apply")
cli.add_command(check, "check")
cli.add_command(inspect_cmd, "inspect")
cli.add_command(find_cmd, "find")
cli.add_command(count, "count")


def main() -> None:
    cli(auto_envvar_prefix="LITETABLE")
