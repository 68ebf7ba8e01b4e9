"""
Main CLI entry point for the supplier invoice extraction tools.

This module provides the command group, its global options and the
``main()`` entry point.
"""

import logging
import sys

import click

from cli.commands import extract_commands, utils_commands
from cli.context import CLIContext
from cli.exceptions import CLIError
from cli.formatters import setup_logging
from cli.version import get_version


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-essential output')
@click.version_option(version=get_version(), prog_name="invoice-extract")
@click.pass_context
def cli(ctx, verbose, quiet):
    """
    Supplier Invoice Extraction - CLI Tool

    Extracts line items (SKU, description, quantity, unit price, total) and
    invoice metadata from supplier PDF invoices.

    Examples:
        # Parse one invoice
        invoice-extract parse invoice.pdf --supplier "IAF Network"

        # Debug the line assembly of a new layout
        invoice-extract lines invoice.pdf

        # Parse a folder and keep a JSON report
        invoice-extract batch ./invoices --supplier Bolero -o report.json
    """
    cli_ctx = CLIContext()
    cli_ctx.verbose = verbose
    cli_ctx.quiet = quiet
    ctx.obj = cli_ctx

    setup_logging(verbose, quiet)


cli.add_command(extract_commands.parse)
cli.add_command(extract_commands.lines)
cli.add_command(extract_commands.tables)
cli.add_command(extract_commands.batch)
cli.add_command(utils_commands.suppliers)
cli.add_command(utils_commands.version)


def main():
    """Main entry point for the CLI application."""
    try:
        cli()
    except CLIError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.", err=True)
        sys.exit(1)
    except Exception as e:
        logger = logging.getLogger(__name__)
        logger.exception("Unexpected error occurred")
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
