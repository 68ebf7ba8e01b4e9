"""Fallback for suppliers without a dedicated strategy."""

from typing import List

from ..metadata import find_invoice_date
from ..models import PdfExtractionResult, TextLine
from .base import InvoiceParser


GENERIC_WARNING = "Generic parser used - manual review recommended"


class GenericParser(InvoiceParser):
    """
    Keep the document text for manual review.

    Only the invoice date is extracted; every line text is returned as
    ``raw_text`` and no line items are produced.
    """

    name = 'generic'

    def _parse(self, lines: List[TextLine]) -> PdfExtractionResult:
        data = self.new_invoice()
        texts = [line.text for line in lines]
        data.invoice_metadata.invoice_date = find_invoice_date(texts)
        data.raw_text = texts
        return PdfExtractionResult.ok(data, [GENERIC_WARNING])
