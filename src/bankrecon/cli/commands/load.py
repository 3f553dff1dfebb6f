"""Data loading commands."""

import click

from bankrecon.cli.error_handling import handle_domain_error
from bankrecon.domain.data_import import DataImportService
from bankrecon.domain.errors import DomainError


@click.command("load-ledger")
@click.argument("spreadsheet_id", metavar="SPREADSHEET_ID")
@click.argument("tab", metavar="TAB")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def load_ledger(ctx, spreadsheet_id: str, tab: str, csv_file: str):
    """Load a ledger tab from a CSV file, replacing its rows.

    Examples:
        bankrecon load-ledger control-ingresos "Facturas Emitidas" emitidas.csv
    """
    service = DataImportService(ctx.obj["db"])
    try:
        stored = service.import_ledger_tab(spreadsheet_id, tab, csv_file)
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Loaded {stored} rows into {spreadsheet_id}!{tab}")


@click.command("load-movements")
@click.argument("store_id", metavar="STORE_ID")
@click.argument("sheet", metavar="SHEET")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def load_movements(ctx, store_id: str, sheet: str, csv_file: str):
    """Load a month tab of bank movements from a CSV file.

    The CSV needs fecha, concepto, debito and credito columns; saldo,
    matchedfileid and detalle are optional.

    Examples:
        bankrecon load-movements bbva-2025 2025-03 marzo.csv
    """
    service = DataImportService(ctx.obj["db"])
    try:
        stats = service.import_movements(store_id, sheet, csv_file)
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Loaded {stats['imported']} movements into {store_id}!{sheet}")
    if stats["errors"]:
        click.echo(f"\nErrors ({len(stats['errors'])}):", err=True)
        for error in stats["errors"][:10]:
            click.echo(f"  {error}", err=True)
        if len(stats["errors"]) > 10:
            click.echo(f"  ... and {len(stats['errors']) - 10} more", err=True)


def register_commands(cli):
    """Register load commands with main CLI."""
    cli.add_command(load_ledger)
    cli.add_command(load_movements)
