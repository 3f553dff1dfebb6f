"""Main CLI entry point."""

import click

from bankrecon.config import Settings
from bankrecon.database.factories import create_sqlite_database
from bankrecon.logging_setup import configure_logging

# Import and register all commands at module level
from bankrecon.cli.commands import load, partition, rate, reconcile


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BANKRECON_DB_PATH environment variable)",
    envvar="BANKRECON_DB_PATH",
)
@click.option(
    "--log-level",
    help="Log level (overrides BANKRECON_LOG_LEVEL environment variable)",
    envvar="BANKRECON_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """Bankrecon - Bank movement reconciliation.

    Match bank movements against the invoices and payments recorded in the
    ledger, and fill in each movement's detail and matched document.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        configure_logging(log_level)
        try:
            settings = Settings.from_env()
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        ctx.call_on_close(db.disconnect)


# Register all commands
reconcile.register_commands(cli)
partition.register_commands(cli)
load.register_commands(cli)
rate.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()
