"""
Unit tests for batch extraction over a folder.
"""

from unittest.mock import Mock

import pytest

from extraction.integration import find_invoice_pdfs, process_invoice_directory, summarize
from extraction.models import LineItem, ParsedInvoiceData, PdfExtractionResult


def result_with_items(*skus, warnings=None):
    data = ParsedInvoiceData(line_items=[LineItem(supplier_sku=sku, quantity=1) for sku in skus])
    return PdfExtractionResult.ok(data, warnings)


class TestFindInvoicePdfs:
    """Test cases for find_invoice_pdfs."""

    def test_sorted_pdfs_only(self, tmp_path):
        """Test that only PDF files are listed, in order."""
        for name in ('b.pdf', 'a.PDF', 'notes.txt'):
            (tmp_path / name).write_bytes(b'x')
        (tmp_path / 'nested.pdf').mkdir()

        assert [path.name for path in find_invoice_pdfs(tmp_path)] == ['a.PDF', 'b.pdf']

    def test_not_a_directory(self, tmp_path):
        """Test listing a missing directory."""
        with pytest.raises(NotADirectoryError):
            find_invoice_pdfs(tmp_path / 'missing')


class TestProcessInvoiceDirectory:
    """Test cases for process_invoice_directory."""

    def test_one_failure_does_not_stop_the_batch(self, tmp_path):
        """Test that one failing invoice does not stop the batch."""
        for name in ('a.pdf', 'b.pdf', 'c.pdf'):
            (tmp_path / name).write_bytes(b'x')
        extractor = Mock()
        extractor.parse_invoice.side_effect = [
            result_with_items('A1', 'A2'),
            RuntimeError('boom'),
            result_with_items('C1', warnings=['Total mismatch for C1']),
        ]

        results, summary = process_invoice_directory(tmp_path, 'Bolero', extractor=extractor)

        assert [path.name for path, _ in results] == ['a.pdf', 'b.pdf', 'c.pdf']
        assert results[1][1].error == 'Unexpected error: boom'
        assert summary == {'processed': 3, 'succeeded': 2, 'failed': 1,
                           'with_warnings': 1, 'line_items': 3}
        extractor.parse_invoice.assert_any_call(tmp_path / 'a.pdf', 'Bolero', False)

    def test_empty_folder(self, tmp_path):
        """Test processing an empty folder."""
        results, summary = process_invoice_directory(tmp_path, 'Bolero', extractor=Mock())

        assert results == []
        assert summary['processed'] == 0


def test_summarize_ignores_items_of_failures():
    """Test that failed results add no line items to the summary."""
    failed = PdfExtractionResult.fail('bad')
    summary = summarize([('a.pdf', result_with_items('X')), ('b.pdf', failed)])
    assert summary['line_items'] == 1
    assert summary['failed'] == 1
