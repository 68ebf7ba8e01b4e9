"""
Unit tests for turning backend tables into line items.
"""

from decimal import Decimal

from extraction.config import ExtractionConfig
from extraction.table_interpreters import (
    NO_TABLES_ERROR,
    TableInterpreter,
    identify_columns,
    infer_columns_from_data,
    is_multiline_layout,
    merge_tariff_lines,
)


def table(rows):
    return {'page': 1, 'method': 'lattice', 'table_number': 1, 'data': rows, 'headers': rows[0]}


SCENARIO_C = table([
    ['Description', 'Qty', 'Unit Price', 'Amount'],
    ['Protein Powder 25kg', '2', '45,00', '90,00'],
])

MULTILINE = table([
    ['Item', 'Description', 'Unit', 'Qty', 'Unit price', 'Disc.', 'Amount', 'VAT'],
    ['IAF001\nIAF002',
     "Whey 1kg\nCUSTOM'S TARIFF 21069092\nCasein 1kg",
     'PZ\nPZ',
     '2,00\n3,00',
     '20,00\n15,00',
     '',
     '40,00\n45,00',
     'NI41\nNI41'],
])

RABEKO = table([
    ['Description', 'Quantité', 'Prix unitaire', 'TVA', 'Total'],
    ['Zero Confiture Fraise', '6', '3,20', '5,5%', '19,20'],
    ['Transport', '1', '15,00', '20%', '15,00'],
    ['Total HT', '', '', '', '34,20'],
])


class TestTableInterpreter:
    """Test cases for TableInterpreter."""

    def setup_method(self):
        self.interpreter = TableInterpreter('Acme', ExtractionConfig())

    def test_no_tables(self):
        """Test interpreting an empty table list."""
        result = self.interpreter.interpret([])
        assert not result.success
        assert result.error == NO_TABLES_ERROR

    def test_scenario_c_row_without_sku_gets_pseudo_sku(self):
        """Test that a table row without SKU gets a pseudo-SKU."""
        result = self.interpreter.interpret([SCENARIO_C])

        assert result.success
        item = result.line_items[0]
        assert item.supplier_sku.startswith('GEN-')
        assert item.description == 'Protein Powder 25kg'
        assert item.quantity == Decimal('2')
        assert item.unit_price == Decimal('45')
        assert item.total == Decimal('90.00')

    def test_scenario_c_pseudo_sku_is_stable(self):
        """Test that table pseudo-SKUs are stable."""
        first = self.interpreter.interpret([SCENARIO_C]).line_items[0].supplier_sku
        second = TableInterpreter('Acme', ExtractionConfig()).interpret([SCENARIO_C]).line_items[0].supplier_sku
        assert first == second

    def test_multiline_layout(self):
        """Test the multi-line table layout."""
        result = TableInterpreter('IAF Network', ExtractionConfig()).interpret([MULTILINE])

        assert [item.supplier_sku for item in result.line_items] == ['IAF001', 'IAF002']
        assert result.line_items[0].description.startswith('Whey 1kg')
        assert result.line_items[1].description == 'Casein 1kg'
        assert result.line_items[0].total == Decimal('40.00')
        assert result.line_items[1].quantity == Decimal('3')

    def test_rabeko_layout(self):
        """Test the Rabeko table layout."""
        result = TableInterpreter('Rabeko', ExtractionConfig()).interpret([RABEKO])

        assert len(result.line_items) == 1
        item = result.line_items[0]
        assert item.supplier_sku.startswith('GEN-RABEKO-')
        assert item.description == 'Zero Confiture Fraise'
        assert item.quantity == Decimal('6')
        assert item.total == Decimal('19.20')
        assert result.data.invoice_metadata.shipping_fee == Decimal('15.00')

    def test_shipping_and_footer_rows_are_not_items(self):
        """Test that shipping and footer rows are not line items."""
        rows = table([
            ['Code', 'Description', 'Qty', 'Price', 'Total'],
            ['YAM001', 'Whey', '2', '10,00', '20,00'],
            ['', 'Shipping costs', '', '', '12,50'],
            ['', 'Total', '', '', '32,50'],
        ])
        result = self.interpreter.interpret([rows])

        assert [item.supplier_sku for item in result.line_items] == ['YAM001']
        assert result.data.invoice_metadata.shipping_fee == Decimal('12.50')

    def test_mismatch_warning(self):
        """Test the warning for a wrong printed total."""
        rows = table([
            ['Code', 'Description', 'Qty', 'Price', 'Total'],
            ['YAM001', 'Whey', '2', '10,00', '25,00'],
        ])
        result = self.interpreter.interpret([rows])

        assert result.line_items[0].total == Decimal('20.00')
        assert any('YAM001' in warning for warning in result.warnings)

    def test_metadata_from_cells(self):
        """Test metadata read from table cells."""
        rows = table([
            ['Invoice No: 2025-118', 'Date: 03/04/2025', ''],
            ['Code', 'Description', 'Qty'],
        ])
        result = self.interpreter.interpret([rows])

        metadata = result.data.invoice_metadata
        assert metadata.invoice_number == '2025-118'
        assert metadata.invoice_date.isoformat() == '2025-04-03'
        assert result.warnings == ['No line items found in extracted tables']


class TestColumnMapping:
    """Test cases for header mapping and column inference."""

    def test_english_and_french_headers(self):
        """Test mapping English and French headers."""
        assert identify_columns(['Réf.', 'Libellé', 'Qté', 'P.U.', 'Montant HT'], []) == {
            'sku': 0, 'description': 1, 'quantity': 2, 'unit_price': 3, 'total': 4,
        }

    def test_item_description_is_not_a_sku(self):
        """Test that "Item description" maps to description."""
        mapping = identify_columns(['Item description', 'Qty', 'Amount'], [])
        assert mapping == {'description': 0, 'quantity': 1, 'total': 2}

    def test_inference_from_cells(self):
        """Test inferring columns from cell contents."""
        rows = [
            ['SW100', 'Vitamin C', '2', '10,00', '20,00'],
            ['SW200', 'Zinc', '3', '5,00', '15,00'],
        ]
        column_map = {}
        infer_columns_from_data(rows, column_map)
        assert column_map == {'sku': 0, 'quantity': 2, 'unit_price': 3, 'total': 4}

    def test_multiline_detection(self):
        """Test multi-line layout detection."""
        assert is_multiline_layout(MULTILINE['data'])
        assert not is_multiline_layout(SCENARIO_C['data'])

    def test_merge_tariff_lines(self):
        """Test merging customs tariff lines into descriptions."""
        assert merge_tariff_lines(['Whey', "CUSTOM'S TARIFF 2106", 'Casein']) == [
            "Whey CUSTOM'S TARIFF 2106", 'Casein',
        ]
