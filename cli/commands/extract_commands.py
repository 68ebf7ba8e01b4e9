"""
Extraction commands for the CLI interface.

This module implements:
- parse: Extract line items from one invoice
- lines: Dump the assembled text lines of a PDF
- tables: Run the table backend and print its JSON
- batch: Extract every invoice of a folder
"""

import logging
from pathlib import Path

import click

from cli.context import pass_context
from cli.error_handlers import error_handler
from cli.exceptions import DirectoryNotFoundError, ProcessingError
from cli.formatters import (
    batch_report,
    display_batch,
    display_invoice,
    display_lines,
    format_json,
    print_info,
    print_success,
    print_warning,
)
from extraction.integration import process_invoice_directory
from extraction.table_backend import run_table_backend
from extraction.text_extractor import extract_structured_text


logger = logging.getLogger(__name__)


@click.command()
@click.argument('pdf_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--supplier', '-s', required=True, help='Supplier name (selects the parsing strategy)')
@click.option('--use-tables', is_flag=True, help='Try table extraction before the line strategies')
@click.option('--format', '-f', 'output_format', type=click.Choice(['table', 'json']), default='table',
              help='Output format')
@pass_context
@error_handler({'command': 'parse'})
def parse(ctx, pdf_path, supplier, use_tables, output_format):
    """
    Extract line items from a supplier invoice.

    Examples:
        # Line strategies
        invoice-extract parse invoice.pdf --supplier Bolero

        # Table extraction first, JSON output
        invoice-extract parse invoice.pdf -s "IAF Network" --use-tables -f json
    """
    result = ctx.get_extractor().parse_invoice(pdf_path, supplier, use_table_parser=use_tables)

    if output_format == 'json':
        click.echo(format_json(result.to_dict()))
        if not result.success:
            raise ProcessingError(result.error or "extraction failed", pdf_path=str(pdf_path))
        return

    if not result.success:
        raise ProcessingError(result.error or "extraction failed", pdf_path=str(pdf_path))
    display_invoice(result)
    print_success(f"Extracted {len(result.line_items)} line items from {pdf_path.name}")


@click.command()
@click.argument('pdf_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_context
@error_handler({'command': 'lines'})
def lines(ctx, pdf_path):
    """Show the assembled lines of a PDF with token x positions."""
    text = extract_structured_text(pdf_path, ctx.get_config())
    if not text.success:
        raise ProcessingError(text.error or "text extraction failed", pdf_path=str(pdf_path))
    display_lines(text.lines)
    print_info(f"{len(text.lines)} lines on {text.page_count} pages")


@click.command()
@click.argument('pdf_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_context
@error_handler({'command': 'tables'})
def tables(ctx, pdf_path):
    """Run the table backend on a PDF and print the tables it found as JSON."""
    output = run_table_backend(pdf_path, timeout=ctx.get_config().table_backend_timeout)
    click.echo(format_json(output))


@click.command()
@click.argument('directory', type=click.Path(path_type=Path))
@click.option('--supplier', '-s', required=True, help='Supplier name (selects the parsing strategy)')
@click.option('--use-tables', is_flag=True, help='Try table extraction before the line strategies')
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path),
              help='Write a JSON report of every result to this file')
@pass_context
@error_handler({'command': 'batch'})
def batch(ctx, directory, supplier, use_tables, output):
    """
    Extract every PDF invoice in a folder.

    Examples:
        invoice-extract batch ./invoices --supplier Swanson --output report.json
    """
    if not directory.is_dir():
        raise DirectoryNotFoundError(str(directory))

    results, summary = process_invoice_directory(directory, supplier, use_table_parser=use_tables,
                                                 extractor=ctx.get_extractor())
    if not results:
        print_warning(f"No PDF files found in {directory}")
        return

    display_batch(results, summary)
    if output:
        output.write_text(format_json(batch_report(results, summary)), encoding='utf-8')
        print_success(f"Report written to {output}")
