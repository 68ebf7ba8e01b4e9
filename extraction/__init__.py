"""
Supplier invoice extraction.

Reads positioned text (pdfplumber) or tables (camelot, out of process) from
supplier PDF invoices and turns them into line items with Decimal amounts,
using one parsing strategy per supplier layout.
"""

from .config import ExtractionConfig, get_config
from .exceptions import (
    PDFProcessingError,
    PDFReadabilityError,
    TextExtractionError,
    InvoiceParsingError,
    HeaderNotFoundError,
    LineItemParsingError,
    TableExtractionError,
)
from .models import (
    PositionedToken,
    TextLine,
    ColumnThresholds,
    LineItem,
    InvoiceMetadata,
    ParsedInvoiceData,
    PdfExtractionResult,
)
from .orchestrator import InvoiceExtractor, parse_invoice_from_pdf, parse_invoice_from_pdf_async
from .integration import process_invoice_directory
from .selector import select_parser

__all__ = [
    'ExtractionConfig',
    'get_config',
    'PDFProcessingError',
    'PDFReadabilityError',
    'TextExtractionError',
    'InvoiceParsingError',
    'HeaderNotFoundError',
    'LineItemParsingError',
    'TableExtractionError',
    'PositionedToken',
    'TextLine',
    'ColumnThresholds',
    'LineItem',
    'InvoiceMetadata',
    'ParsedInvoiceData',
    'PdfExtractionResult',
    'InvoiceExtractor',
    'parse_invoice_from_pdf',
    'parse_invoice_from_pdf_async',
    'process_invoice_directory',
    'select_parser',
]
