"""
Batch extraction over a folder of invoices.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .models import PdfExtractionResult
from .orchestrator import InvoiceExtractor


logger = logging.getLogger(__name__)


def find_invoice_pdfs(directory: Union[str, Path]) -> List[Path]:
    """PDF files directly inside ``directory``, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        raise NotADirectoryError(f"Not a directory: {directory}")
    return sorted(path for path in directory.iterdir()
                  if path.is_file() and path.suffix.lower() == '.pdf')


def summarize(results: List[Tuple[Path, PdfExtractionResult]]) -> Dict[str, Any]:
    succeeded = [result for _, result in results if result.success]
    return {
        'processed': len(results),
        'succeeded': len(succeeded),
        'failed': len(results) - len(succeeded),
        'with_warnings': sum(1 for result in succeeded if result.warnings),
        'line_items': sum(len(result.line_items) for result in succeeded),
    }


def process_invoice_directory(directory: Union[str, Path], supplier_name: Optional[str],
                              use_table_parser: bool = False,
                              extractor: Optional[InvoiceExtractor] = None
                              ) -> Tuple[List[Tuple[Path, PdfExtractionResult]], Dict[str, Any]]:
    """
    Parse every PDF in a folder with the same supplier strategy.

    One file's failure never stops the batch; it is reported in its result.

    Returns:
        ([(pdf_path, result), ...], summary dict)
    """
    extractor = extractor or InvoiceExtractor()
    pdf_files = find_invoice_pdfs(directory)
    logger.info(f"Found {len(pdf_files)} PDF files in {directory}")

    results: List[Tuple[Path, PdfExtractionResult]] = []
    for i, pdf_path in enumerate(pdf_files, 1):
        logger.info(f"Processing file {i}/{len(pdf_files)}: {pdf_path.name}")
        try:
            result = extractor.parse_invoice(pdf_path, supplier_name, use_table_parser)
        except Exception as e:
            logger.error(f"Unexpected error processing {pdf_path.name}: {e}")
            result = PdfExtractionResult.fail(f"Unexpected error: {e}")
        results.append((pdf_path, result))

    summary = summarize(results)
    logger.info(f"Batch finished: {summary['succeeded']}/{summary['processed']} succeeded, "
                f"{summary['line_items']} line items")
    return results, summary
