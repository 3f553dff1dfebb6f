"""Exchange rate commands."""

import click

from bankrecon.cli.error_handling import handle_domain_error
from bankrecon.domain.errors import DomainError
from bankrecon.domain.exchange_rates import ExchangeRateService


@click.group()
def rate_group():
    """Manage USD exchange rates used to match USD invoices."""
    pass


@rate_group.command("set")
@click.argument("rate_date", metavar="DATE")
@click.argument("sell_rate", metavar="RATE")
@click.pass_context
def set_rate(ctx, rate_date: str, sell_rate: str):
    """Set the USD sell rate (ARS per USD) for a day.

    Examples:
        bankrecon rate set 2025-03-05 1065.50
        bankrecon rate set 05/03/2025 "1.065,50"
    """
    service = ExchangeRateService(ctx.obj["db"])
    try:
        day, rate = service.set_rate(rate_date, sell_rate)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Rate for {day.isoformat()} set to {rate}")


@rate_group.command("list")
@click.pass_context
def list_rates(ctx):
    """List stored exchange rates."""
    rates = ExchangeRateService(ctx.obj["db"]).list_rates()
    if not rates:
        click.echo("No exchange rates found.")
        return

    for day, rate in rates:
        click.echo(f"{day.isoformat()} | {rate}")


def register_commands(cli):
    """Register exchange rate commands with main CLI."""
    cli.add_command(rate_group, name="rate")
