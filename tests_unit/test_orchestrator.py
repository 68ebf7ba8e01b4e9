"""
Unit tests for pass ordering and fallback in InvoiceExtractor.
"""

import asyncio
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest

from extraction.config import ExtractionConfig
from extraction.exceptions import TableExtractionError
from extraction.models import PdfExtractionResult
from extraction.orchestrator import (
    InvoiceExtractor,
    dedupe_warnings,
    parse_invoice_from_pdf_async,
)
from extraction.strategies.generic import GENERIC_WARNING
from extraction.table_interpreters import NO_TABLES_ERROR
from extraction.text_extractor import StructuredText


ITEM_TABLE = {
    'page': 1,
    'method': 'lattice',
    'table_number': 1,
    'headers': ['Code', 'Description', 'Qty', 'Price', 'Total'],
    'data': [
        ['Code', 'Description', 'Qty', 'Price', 'Total'],
        ['IAF001', 'Whey', '2', '10,00', '20,00'],
    ],
}


@pytest.fixture
def bolero_text(line_at):
    lines = [
        line_at([(2, 'Code'), (8, 'Description'), (30, 'Qty'), (36, 'Price'), (44, 'Amount')], y=6.0),
        line_at([(2, 'BOL001'), (8, 'Protein'), (12, 'bar'), (30, '12'), (36, '2,50'), (44, '30,00')],
                y=8.0),
    ]
    return StructuredText(success=True, lines=lines, page_count=1)


class TestInvoiceExtractor:
    """Test cases for InvoiceExtractor.parse_invoice."""

    def setup_method(self):
        self.backend = Mock(return_value={'tables': [ITEM_TABLE], 'total_found': 1, 'method': 'lattice'})
        self.extractor = InvoiceExtractor(config=ExtractionConfig(), table_backend=self.backend)

    @patch('extraction.orchestrator.extract_structured_text')
    def test_pinned_supplier_uses_tables_only(self, mock_text):
        """Test that a pinned supplier only runs the table pass."""
        result = self.extractor.parse_invoice('invoice.pdf', 'IAF Network srl')

        assert result.success
        assert [item.supplier_sku for item in result.line_items] == ['IAF001']
        assert result.line_items[0].total == Decimal('20.00')
        self.backend.assert_called_once()
        assert self.backend.call_args.kwargs['timeout'] == 120.0
        mock_text.assert_not_called()

    @patch('extraction.orchestrator.extract_structured_text')
    def test_pinned_supplier_failure_is_final(self, mock_text):
        """Test that a pinned supplier's table failure is returned."""
        self.backend.side_effect = TableExtractionError("Table extraction timed out after 120.0s",
                                                        backend='camelot')

        result = self.extractor.parse_invoice('invoice.pdf', 'Swanson Health')

        assert not result.success
        assert 'timed out' in result.error
        mock_text.assert_not_called()

    @patch('extraction.orchestrator.extract_structured_text')
    def test_line_pass_by_default(self, mock_text, bolero_text):
        """Test that the line pass runs by default."""
        mock_text.return_value = bolero_text

        result = self.extractor.parse_invoice('invoice.pdf', 'Bolero')

        assert [item.supplier_sku for item in result.line_items] == ['BOL001']
        self.backend.assert_not_called()

    @patch('extraction.orchestrator.extract_structured_text')
    def test_table_flag_falls_back_to_lines(self, mock_text, bolero_text):
        """Test falling back to the line pass when tables give nothing."""
        self.backend.return_value = {'tables': [], 'total_found': 0, 'method': 'none'}
        mock_text.return_value = bolero_text

        result = self.extractor.parse_invoice('invoice.pdf', 'Bolero', use_table_parser=True)

        assert result.success
        assert [item.supplier_sku for item in result.line_items] == ['BOL001']
        self.backend.assert_called_once()

    @patch('extraction.orchestrator.extract_structured_text')
    def test_table_flag_keeps_table_items(self, mock_text):
        """Test that table items are kept when the table pass succeeds."""
        result = self.extractor.parse_invoice('invoice.pdf', 'Bolero', use_table_parser=True)

        assert [item.supplier_sku for item in result.line_items] == ['IAF001']
        mock_text.assert_not_called()

    @patch('extraction.orchestrator.extract_structured_text')
    def test_all_passes_failing_joins_errors(self, mock_text):
        """Test that the errors of every failed pass are joined."""
        self.backend.return_value = {'tables': [], 'total_found': 0, 'method': 'none'}
        mock_text.return_value = StructuredText(success=False, error='PDF file not found: invoice.pdf')

        result = self.extractor.parse_invoice('invoice.pdf', 'Bolero', use_table_parser=True)

        assert not result.success
        assert result.error == f"{NO_TABLES_ERROR}; PDF file not found: invoice.pdf"

    @patch('extraction.orchestrator.extract_structured_text')
    def test_unknown_supplier_gets_generic_parser(self, mock_text, make_line):
        """Test an unknown supplier parsed by the generic parser."""
        mock_text.return_value = StructuredText(success=True, lines=[make_line('Acme Foods Ltd')],
                                                page_count=1)

        result = self.extractor.parse_invoice('invoice.pdf', 'Acme Foods')

        assert result.success
        assert result.line_items == []
        assert result.warnings == [GENERIC_WARNING]
        assert result.data.raw_text == ['Acme Foods Ltd']

    @patch('extraction.orchestrator.extract_structured_text')
    def test_unexpected_errors_become_failures(self, mock_text):
        """Test that unexpected errors become failed results."""
        mock_text.side_effect = RuntimeError('pdfminer exploded')

        result = self.extractor.parse_invoice('invoice.pdf', 'Bolero')

        assert not result.success
        assert result.error == 'Line extraction failed: pdfminer exploded'

    def test_passes_for(self):
        """Test pass ordering per supplier and flag."""
        passes, final = self.extractor.passes_for('Rabeko', use_table_parser=False)
        assert [name for name, _ in passes] == ['table'] and final

        passes, final = self.extractor.passes_for('Addict', use_table_parser=True)
        assert [name for name, _ in passes] == ['table', 'line'] and not final

        passes, final = self.extractor.passes_for(None, use_table_parser=False)
        assert [name for name, _ in passes] == ['line'] and not final


class TestHelpers:
    """Test cases for the module level helpers."""

    def test_dedupe_warnings_keeps_order(self):
        """Test warning deduplication keeps first occurrences."""
        assert dedupe_warnings(['b', 'a', 'b', 'c', 'a']) == ['b', 'a', 'c']

    def test_async_helper(self):
        """Test the async parse helper."""
        expected = PdfExtractionResult.fail('nope')
        with patch('extraction.orchestrator.parse_invoice_from_pdf', return_value=expected) as mock_parse:
            result = asyncio.run(parse_invoice_from_pdf_async('invoice.pdf', 'Bolero'))

        assert result is expected
        mock_parse.assert_called_once_with('invoice.pdf', 'Bolero', False, None)
