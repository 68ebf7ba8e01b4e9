"""
Output formatting utilities for the CLI interface.

This module sets up logging and renders extraction results: rich tables for
line items and batch summaries, JSON for scripting, and colored status
messages.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import click
from rich.console import Console
from rich.table import Table

from extraction.models import PdfExtractionResult, TextLine


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Setup logging configuration for the CLI application.

    Args:
        verbose: Enable verbose (DEBUG) logging
        quiet: Suppress non-essential output (WARNING+ only)
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # pdfminer and camelot log every page at INFO/DEBUG
    if not verbose:
        logging.getLogger('pdfminer').setLevel(logging.WARNING)
        logging.getLogger('camelot').setLevel(logging.WARNING)


def format_amount(amount: Optional[Union[Decimal, float, int]], currency: Optional[str] = None) -> str:
    """Format an amount with two decimals at least, keeping any extra precision."""
    if amount is None:
        return ""
    value = Decimal(str(amount))
    if value.as_tuple().exponent >= -2:
        text = f"{value:.2f}"
    else:
        text = str(value.normalize())
    return f"{text} {currency}" if currency else text


def truncate_text(text: Optional[str], max_length: int = 50) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def format_json(data: Any, indent: int = 2) -> str:
    """
    Format data as JSON string.

    Args:
        data: Data to format as JSON
        indent: JSON indentation level

    Returns:
        Formatted JSON string
    """
    def json_serializer(obj):
        if isinstance(obj, Decimal):
            return float(obj)
        elif isinstance(obj, (date, Path)):
            return str(obj)
        elif hasattr(obj, 'to_dict'):
            return obj.to_dict()
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

    return json.dumps(data, indent=indent, default=json_serializer, ensure_ascii=False)


def print_success(message: str) -> None:
    """Print a success message with green checkmark."""
    click.echo(click.style(f"✓ {message}", fg='green'))


def print_warning(message: str) -> None:
    """Print a warning message with yellow warning symbol."""
    click.echo(click.style(f"⚠ Warning: {message}", fg='yellow'))


def print_error(message: str) -> None:
    """Print an error message with red X symbol."""
    click.echo(click.style(f"✗ Error: {message}", fg='red'), err=True)


def print_info(message: str) -> None:
    """Print an info message with blue info symbol."""
    click.echo(click.style(f"ℹ {message}", fg='blue'))


def display_summary(title: str, stats: Dict[str, Any]) -> None:
    """
    Display a formatted summary with title and statistics.

    Args:
        title: Summary title
        stats: Dictionary of statistics to display
    """
    click.echo(f"\n{title}")
    click.echo("=" * len(title))
    for key, value in stats.items():
        formatted_key = key.replace('_', ' ').title()
        if isinstance(value, Decimal):
            formatted_value = format_amount(value)
        elif value is None:
            formatted_value = "-"
        else:
            formatted_value = str(value)
        click.echo(f"  {formatted_key}: {formatted_value}")


def line_items_table(result: PdfExtractionResult, title: str = "Line Items") -> Table:
    """Build a rich table of the extracted line items."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("SKU", style="cyan", no_wrap=True)
    table.add_column("Description", style="white")
    table.add_column("Qty", justify="right")
    table.add_column("Unit Price", justify="right")
    table.add_column("Total", justify="right", style="green")

    for item in result.line_items:
        table.add_row(
            item.supplier_sku,
            truncate_text(item.description, 60),
            format_amount(item.quantity) if item.quantity is not None else "",
            format_amount(item.unit_price),
            format_amount(item.total),
        )
    return table


def display_invoice(result: PdfExtractionResult, console: Optional[Console] = None) -> None:
    """Print metadata, line items and warnings of a successful extraction."""
    console = console or Console()
    metadata = result.data.invoice_metadata
    display_summary("Invoice", {
        'invoice_number': metadata.invoice_number,
        'invoice_date': metadata.invoice_date.isoformat() if metadata.invoice_date else None,
        'currency': metadata.currency,
        'shipping_fee': metadata.shipping_fee,
        'line_items': len(result.line_items),
        'items_total': result.data.get_items_total(),
    })
    console.print()
    console.print(line_items_table(result))
    for warning in result.warnings:
        print_warning(warning)


def display_lines(lines: Sequence[TextLine], console: Optional[Console] = None) -> None:
    """Print assembled lines with the x position of every token (debugging aid)."""
    console = console or Console()
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Page", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Tokens (x:text)", style="white")
    for line in lines:
        tokens = '  '.join(f"{token.x:g}:{token.text}" for token in line.items)
        table.add_row(str(line.page), f"{line.y_position:g}", tokens)
    console.print(table)


def display_batch(results: List[Tuple[Path, PdfExtractionResult]], summary: Dict[str, Any],
                  console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title="Batch Results", show_header=True, header_style="bold magenta")
    table.add_column("File", style="cyan")
    table.add_column("Status")
    table.add_column("Items", justify="right")
    table.add_column("Warnings", justify="right")
    table.add_column("Error", style="red")
    for pdf_path, result in results:
        status = "[green]OK[/green]" if result.success else "[red]FAILED[/red]"
        table.add_row(pdf_path.name, status, str(len(result.line_items)),
                      str(len(result.warnings)), truncate_text(result.error, 60))
    console.print(table)
    display_summary("Summary", summary)


def batch_report(results: List[Tuple[Path, PdfExtractionResult]], summary: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-ready report of a batch run."""
    return {
        'summary': summary,
        'files': [{'file': str(pdf_path), **result.to_dict()} for pdf_path, result in results],
    }
