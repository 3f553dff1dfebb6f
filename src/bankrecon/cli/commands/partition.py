"""Ledger layout and bank partition commands."""

import click

from bankrecon.cli.error_handling import handle_domain_error
from bankrecon.domain.errors import DomainError
from bankrecon.domain.partitions import PartitionService


@click.group()
def layout_group():
    """Configure the ledger spreadsheets."""
    pass


@layout_group.command("set")
@click.argument("issued_id", metavar="ISSUED_ID")
@click.argument("received_id", metavar="RECEIVED_ID")
@click.pass_context
def set_layout(ctx, issued_id: str, received_id: str):
    """Set the issued-side and received-side ledger spreadsheets.

    ISSUED_ID holds "Facturas Emitidas", "Pagos Recibidos" and
    "Retenciones Recibidas"; RECEIVED_ID holds "Facturas Recibidas",
    "Pagos Enviados" and "Recibos".

    Examples:
        bankrecon layout set control-ingresos control-egresos
    """
    service = PartitionService(ctx.obj["db"])
    try:
        service.set_layout(issued_id, received_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Ledger layout set (issued: {issued_id}, received: {received_id})")


@click.group()
def partition_group():
    """Manage bank partitions."""
    pass


@partition_group.command("add")
@click.argument("bank", metavar="BANK")
@click.argument("store_id", metavar="STORE_ID")
@click.pass_context
def add_partition(ctx, bank: str, store_id: str):
    """Register a bank and the movement store holding its rows.

    Examples:
        bankrecon partition add "BBVA ARS" bbva-2025
    """
    service = PartitionService(ctx.obj["db"])
    try:
        service.add_partition(bank, store_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Added partition '{bank}' (store: {store_id})")


@partition_group.command("list")
@click.pass_context
def list_partitions(ctx):
    """List registered bank partitions."""
    service = PartitionService(ctx.obj["db"])

    partitions = service.list_partitions()
    if not partitions:
        click.echo("No partitions found.")
        return

    click.echo("\nPartitions:")
    click.echo("-" * 60)
    for bank_name, store_id in partitions.items():
        click.echo(f"{bank_name:30s} | Store: {store_id}")


def register_commands(cli):
    """Register layout and partition commands with main CLI."""
    cli.add_command(layout_group, name="layout")
    cli.add_command(partition_group, name="partition")
