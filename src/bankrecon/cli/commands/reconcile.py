"""Reconcile command."""

import asyncio

import click

from bankrecon.cli.error_handling import handle_domain_error
from bankrecon.domain.matcher import DefaultMatcher
from bankrecon.domain.reconciliation import ReconciliationService


@click.command("reconcile")
@click.option(
    "--force",
    is_flag=True,
    help="Re-evaluate rows that already carry a match and overwrite them",
)
@click.pass_context
def reconcile(ctx, force: bool):
    """Match bank movements against the ledger and fill in their details.

    Examples:
        bankrecon reconcile
        bankrecon reconcile --force
    """
    db = ctx.obj["db"]
    service = ReconciliationService(
        lock_manager=db.create_lock_manager(),
        partition_provider=db,
        ledger_reader=db,
        movement_store=db,
        matcher=DefaultMatcher(exchange_rates=db.get_exchange_rates()),
        settings=ctx.obj["settings"],
    )

    result = asyncio.run(service.reconcile_all(force=force))
    if not result.ok:
        handle_domain_error(ctx, result.error)
        return

    outcome = result.value
    if outcome.skipped:
        click.echo("Skipped: reconciliation already running")
        return

    if not outcome.results:
        click.echo("No partitions to reconcile.")
    else:
        click.echo("\nPartitions:")
        click.echo("-" * 80)
        for r in outcome.results:
            click.echo(
                f"{r.partition:20s} | processed {r.processed:5d} | filled {r.filled:4d} "
                f"(debits {r.debits_filled}, credits {r.credits_filled}) | "
                f"no match {r.no_matches:4d} | errors {r.errors}"
            )

    totals = outcome.totals
    click.echo("-" * 80)
    click.echo(
        f"Total: processed {totals.total_processed}, filled {totals.total_filled}, "
        f"applied {totals.total_applied}, no match {totals.total_no_matches}, "
        f"errors {totals.total_errors} ({outcome.duration:.2f}s)"
    )


def register_commands(cli):
    """Register reconcile command with main CLI."""
    cli.add_command(reconcile)
