"""
Invoice extraction entry point.

``InvoiceExtractor`` decides which extraction passes run for a document and
in which order:

- suppliers pinned to table extraction run the table pass only, and its
  result is final;
- with ``use_table_parser`` the table pass runs first and the line pass is
  the fallback when it fails or finds no items;
- otherwise only the line pass runs.

Every pass returns a ``PdfExtractionResult``; nothing raises out of
:meth:`InvoiceExtractor.parse_invoice`.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .config import ExtractionConfig, get_config
from .exceptions import PDFProcessingError
from .models import PdfExtractionResult
from .selector import requires_table_backend, select_parser
from .table_backend import run_table_backend
from .table_interpreters import TableInterpreter
from .text_extractor import extract_structured_text


TableBackend = Callable[..., Dict[str, Any]]
Pass = Tuple[str, Callable[[Path, Optional[str]], PdfExtractionResult]]


def dedupe_warnings(warnings: List[str]) -> List[str]:
    """Drop repeated warnings, keeping the first occurrence order."""
    return list(dict.fromkeys(warnings))


class InvoiceExtractor:
    """
    Run the extraction passes chosen for a supplier.

    Args:
        config: Configuration shared with the strategies and interpreters
        table_backend: Callable ``(pdf_path, timeout=...) -> dict`` returning
            the backend's table list; defaults to the out-of-process camelot run
        logger: Optional logger instance
    """

    def __init__(self, config: Optional[ExtractionConfig] = None,
                 table_backend: Optional[TableBackend] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config or get_config()
        self.table_backend = table_backend or run_table_backend
        self.logger = logger or logging.getLogger(__name__)

    def passes_for(self, supplier_name: Optional[str], use_table_parser: bool) -> Tuple[List[Pass], bool]:
        """
        Ordered passes for a supplier.

        Returns:
            (passes, final) where ``final`` means the first pass's result is
            returned as-is even when it fails
        """
        if requires_table_backend(supplier_name, self.config):
            return [('table', self.table_pass)], True
        if use_table_parser:
            return [('table', self.table_pass), ('line', self.line_pass)], False
        return [('line', self.line_pass)], False

    def parse_invoice(self, pdf_path: Union[str, Path], supplier_name: Optional[str],
                      use_table_parser: bool = False) -> PdfExtractionResult:
        """
        Extract line items and metadata from one invoice.

        Args:
            pdf_path: Path to the PDF file
            supplier_name: Free-text supplier name used to pick the strategy
            use_table_parser: Try the table backend before the line strategies

        Returns:
            The result of the first pass that succeeds with items, or the
            last result when none does
        """
        pdf_path = Path(pdf_path)
        passes, final = self.passes_for(supplier_name, use_table_parser)
        self.logger.info(f"Starting extraction for {pdf_path.name} (supplier '{supplier_name}', "
                         f"passes: {', '.join(name for name, _ in passes)})")

        errors: List[str] = []
        result = PdfExtractionResult.fail("No extraction pass ran")
        for index, (name, run) in enumerate(passes):
            try:
                result = run(pdf_path, supplier_name)
            except Exception as e:
                self.logger.exception(f"Unexpected error in {name} pass: {e}")
                result = PdfExtractionResult.fail(f"{name.capitalize()} extraction failed: {e}")

            is_last = index == len(passes) - 1
            if result.has_items() or final or is_last:
                break
            reason = result.error or "no line items"
            self.logger.warning(f"{name.capitalize()} pass did not produce line items ({reason}); "
                                f"falling back to the next pass")
            if not result.success:
                errors.append(result.error)

        if not result.success and errors:
            result.error = '; '.join(errors + [result.error or 'extraction failed'])
        result.warnings = dedupe_warnings(result.warnings)

        if result.success:
            self.logger.info(f"Extraction finished for {pdf_path.name}: "
                             f"{len(result.line_items)} line items, {len(result.warnings)} warnings")
        else:
            self.logger.error(f"Extraction failed for {pdf_path.name}: {result.error}")
        return result

    def line_pass(self, pdf_path: Path, supplier_name: Optional[str]) -> PdfExtractionResult:
        """Read positioned text and hand the assembled lines to the supplier strategy."""
        text = extract_structured_text(pdf_path, self.config)
        if not text.success:
            return PdfExtractionResult.fail(text.error or "Text extraction failed")
        self.logger.info(f"[TEXT] Assembled {len(text.lines)} lines from {text.page_count} pages")

        parser = select_parser(supplier_name, self.config)
        return parser.parse(text.lines)

    def table_pass(self, pdf_path: Path, supplier_name: Optional[str]) -> PdfExtractionResult:
        """Run the table backend and interpret the tables it returns."""
        try:
            output = self.table_backend(pdf_path, timeout=self.config.table_backend_timeout)
        except PDFProcessingError as e:
            self.logger.error(f"[TABLES] {e}")
            return PdfExtractionResult.fail(str(e))

        tables = output.get('tables') or []
        self.logger.info(f"[TABLES] Backend returned {len(tables)} tables "
                         f"(method: {output.get('method')})")
        interpreter = TableInterpreter(supplier_name, self.config)
        return interpreter.interpret(tables)


def parse_invoice_from_pdf(pdf_path: Union[str, Path], supplier_name: Optional[str],
                           use_table_parser: bool = False,
                           config: Optional[ExtractionConfig] = None) -> PdfExtractionResult:
    return InvoiceExtractor(config=config).parse_invoice(pdf_path, supplier_name, use_table_parser)


async def parse_invoice_from_pdf_async(pdf_path: Union[str, Path], supplier_name: Optional[str],
                                       use_table_parser: bool = False,
                                       config: Optional[ExtractionConfig] = None) -> PdfExtractionResult:
    """Run :func:`parse_invoice_from_pdf` without blocking the event loop."""
    return await asyncio.to_thread(parse_invoice_from_pdf, pdf_path, supplier_name,
                                   use_table_parser, config)
