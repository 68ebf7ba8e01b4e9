"""
Tests for the click commands using CliRunner.

The extraction engine is mocked; these tests cover option handling,
output formats and exit codes.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cli.main import cli
from extraction.models import LineItem, ParsedInvoiceData, PdfExtractionResult
from extraction.orchestrator import InvoiceExtractor
from extraction.text_extractor import StructuredText


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / 'invoice.pdf'
    path.write_bytes(b'%PDF-1.4 test')
    return path


def extraction_result():
    data = ParsedInvoiceData(line_items=[
        LineItem(supplier_sku='BOL001', description='Protein bar', quantity='12',
                 unit_price='2.50', total='30.00'),
    ])
    return PdfExtractionResult.ok(data, ['Total mismatch for BOL002'])


class TestParseCommand:
    """Test cases for the parse command."""

    def test_table_output(self, runner, pdf_file):
        """Test parse command with table output."""
        with patch.object(InvoiceExtractor, 'parse_invoice', return_value=extraction_result()) as mock_parse:
            result = runner.invoke(cli, ['-q', 'parse', str(pdf_file), '--supplier', 'Bolero'])

        assert result.exit_code == 0
        assert 'BOL001' in result.output
        assert 'Extracted 1 line items' in result.output
        assert 'Total mismatch for BOL002' in result.output
        mock_parse.assert_called_once_with(pdf_file, 'Bolero', use_table_parser=False)

    def test_json_output(self, runner, pdf_file):
        """Test parse command with JSON output."""
        with patch.object(InvoiceExtractor, 'parse_invoice', return_value=extraction_result()):
            result = runner.invoke(cli, ['-q', 'parse', str(pdf_file), '-s', 'Bolero', '-f', 'json'])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload['success'] is True
        assert payload['data']['lineItems'][0] == {
            'supplierSku': 'BOL001', 'description': 'Protein bar',
            'quantity': 12, 'unitPrice': 2.5, 'total': 30.0,
        }

    def test_use_tables_flag(self, runner, pdf_file):
        """Test that --use-tables is passed to the extractor."""
        with patch.object(InvoiceExtractor, 'parse_invoice', return_value=extraction_result()) as mock_parse:
            runner.invoke(cli, ['-q', 'parse', str(pdf_file), '-s', 'IAF', '--use-tables'])

        mock_parse.assert_called_once_with(pdf_file, 'IAF', use_table_parser=True)

    def test_failure_exit_code(self, runner, pdf_file):
        """Test the exit code of a failed extraction."""
        failed = PdfExtractionResult.fail('No text could be extracted from PDF')
        with patch.object(InvoiceExtractor, 'parse_invoice', return_value=failed):
            result = runner.invoke(cli, ['-q', 'parse', str(pdf_file), '-s', 'Bolero', '-f', 'json'])

        assert result.exit_code == 6
        assert '"success": false' in result.output
        assert 'No text could be extracted from PDF' in result.output

    def test_supplier_is_required(self, runner, pdf_file):
        """Test that parse fails without --supplier."""
        result = runner.invoke(cli, ['parse', str(pdf_file)])
        assert result.exit_code == 2

    def test_missing_file(self, runner, tmp_path):
        """Test parse command with a missing PDF file."""
        result = runner.invoke(cli, ['parse', str(tmp_path / 'missing.pdf'), '-s', 'Bolero'])
        assert result.exit_code == 2


class TestDebugCommands:
    """Test cases for the lines and tables commands."""

    def test_lines(self, runner, pdf_file, make_line):
        """Test lines command output."""
        text = StructuredText(success=True, lines=[make_line('IAF001 Whey', y=10.0)], page_count=1)
        with patch('cli.commands.extract_commands.extract_structured_text', return_value=text):
            result = runner.invoke(cli, ['-q', 'lines', str(pdf_file)])

        assert result.exit_code == 0
        assert 'IAF001' in result.output
        assert '1 lines on 1 pages' in result.output

    def test_lines_failure(self, runner, pdf_file):
        """Test lines command when text extraction fails."""
        text = StructuredText(success=False, error='PDF is password-protected')
        with patch('cli.commands.extract_commands.extract_structured_text', return_value=text):
            result = runner.invoke(cli, ['-q', 'lines', str(pdf_file)])

        assert result.exit_code == 6
        assert 'password-protected' in result.output

    def test_tables(self, runner, pdf_file):
        """Test tables command output."""
        output = {'tables': [{'page': 1, 'data': [['Code', 'Qty']]}], 'total_found': 1}
        with patch('cli.commands.extract_commands.run_table_backend', return_value=output):
            result = runner.invoke(cli, ['-q', 'tables', str(pdf_file)])

        assert result.exit_code == 0
        assert json.loads(result.output) == output


class TestBatchCommand:
    """Test cases for the batch command."""

    def test_report_is_written(self, runner, tmp_path, pdf_file):
        """Test that batch writes its JSON report."""
        report = tmp_path / 'report.json'
        results = [(pdf_file, extraction_result())]
        summary = {'processed': 1, 'succeeded': 1, 'failed': 0, 'with_warnings': 1, 'line_items': 1}

        with patch('cli.commands.extract_commands.process_invoice_directory',
                   return_value=(results, summary)):
            result = runner.invoke(cli, ['-q', 'batch', str(tmp_path), '-s', 'Bolero', '-o', str(report)])

        assert result.exit_code == 0
        saved = json.loads(report.read_text(encoding='utf-8'))
        assert saved['summary'] == summary
        assert saved['files'][0]['file'] == str(pdf_file)
        assert saved['files'][0]['data']['lineItems'][0]['supplierSku'] == 'BOL001'

    def test_empty_folder(self, runner, tmp_path):
        """Test batch command on a folder without PDFs."""
        result = runner.invoke(cli, ['-q', 'batch', str(tmp_path), '-s', 'Bolero'])

        assert result.exit_code == 0
        assert 'No PDF files found' in result.output

    def test_missing_folder(self, runner, tmp_path):
        """Test batch command on a missing folder."""
        result = runner.invoke(cli, ['batch', str(tmp_path / 'missing'), '-s', 'Bolero'])

        assert result.exit_code == 3
        assert 'Directory not found' in result.output


class TestUtilityCommands:
    """Test cases for suppliers and version."""

    def test_suppliers(self, runner):
        """Test suppliers command lists the strategies."""
        result = runner.invoke(cli, ['suppliers'])

        assert result.exit_code == 0
        assert 'YamamotoParser' in result.output
        assert 'rabeko' in result.output

    def test_version_json(self, runner):
        """Test detailed version output as JSON."""
        info = {'version': '1.0.7', 'base_version': '1.0.0', 'commit': 'abc1234',
                'python_version': '3.11.4', 'git_available': True}
        with patch('cli.commands.utils_commands.get_version_info', return_value=info):
            result = runner.invoke(cli, ['version', '--detailed', '-f', 'json'])

        assert result.exit_code == 0
        assert json.loads(result.output) == info
