"""
Utility commands for the CLI interface.

This module implements:
- suppliers: List the supported suppliers and their strategies
- version: Show version information
"""

import click
from rich.console import Console
from rich.table import Table

from cli.context import pass_context
from cli.formatters import display_summary, format_json
from cli.version import get_version_info
from extraction.selector import SUPPLIER_PARSERS


@click.command()
@pass_context
def suppliers(ctx):
    """List supplier name fragments, their strategy and extraction mode."""
    pinned = ctx.get_config().pinned_table_suppliers
    table = Table(title="Suppliers", show_header=True, header_style="bold magenta")
    table.add_column("Name contains", style="cyan")
    table.add_column("Strategy")
    table.add_column("Extraction")

    fragments = [fragment for fragment, _ in SUPPLIER_PARSERS]
    for fragment, parser_class in SUPPLIER_PARSERS:
        table.add_row(fragment, parser_class.__name__, "tables" if fragment in pinned else "lines")
    for fragment in pinned:
        if fragment not in fragments:
            table.add_row(fragment, "TableInterpreter", "tables")
    table.add_row("(other)", "GenericParser", "lines")
    Console().print(table)


@click.command()
@click.option('--detailed', is_flag=True, help='Show detailed version information')
@click.option('--format', '-f', 'output_format', type=click.Choice(['table', 'json']), default='table')
def version(detailed, output_format):
    """Show version information."""
    info = get_version_info()
    if not detailed:
        info = {'version': info['version']}
    if output_format == 'json':
        click.echo(format_json(info))
    else:
        display_summary("Version", info)
