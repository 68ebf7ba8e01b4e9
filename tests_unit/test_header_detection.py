"""
Unit tests for header detection and column threshold inference.
"""

from extraction.strategies.base import find_header_line, infer_thresholds, thresholds_from_header


RULES = (
    ('sku', lambda label: label in ('code', 'ref')),
    ('quantity', lambda label: label.startswith('qt')),
    ('unit_price', lambda label: label == 'price'),
    ('total', lambda label: label in ('amount', 'total')),
)


class TestHeaderDetection:
    """Test cases for find_header_line and thresholds_from_header."""

    def test_every_group_must_match(self, make_line):
        """Test that a header line must match every keyword group."""
        lines = [
            make_line('Code Description', y=2.0),
            make_line('code description qty price amount', y=4.0),
        ]
        assert find_header_line(lines, [('CODE',), ('QTY', 'QUANTITY'), ('PRICE',)]) == 1
        assert find_header_line(lines, [('CODE',), ('VAT',)]) is None

    def test_thresholds_from_label_positions(self, line_at):
        """Test column thresholds taken from header label positions."""
        header = line_at([(2, 'Code'), (8, 'Description'), (30, 'Qty'), (36, 'Price'),
                          (44, 'Amount'), (50, 'Total')], y=6.0)

        thresholds = thresholds_from_header(header, RULES, header_index=3)

        assert thresholds.as_dict() == {'sku': 2.0, 'quantity': 30.0, 'unit_price': 36.0, 'total': 44.0}
        assert thresholds.header_index == 3
        assert thresholds.source == 'header'


class TestInferThresholds:
    """Test cases for infer_thresholds."""

    def test_median_positions(self, line_at):
        """Test inferring column positions from row medians."""
        lines = [
            line_at([(2, 'BOL001'), (8, 'Protein'), (30, '12'), (36, '2,50'), (44, '30,00')], y=8.0),
            line_at([(2, 'BOL002'), (8, 'Gel'), (31, '6'), (37, '1,75'), (45, '10,50')], y=10.0),
            line_at([(2, 'Bolero'), (8, 'Distribution')], y=2.0),
        ]

        thresholds = infer_thresholds(lines)

        assert thresholds.as_dict() == {
            'sku': 2.0, 'description': 8.0, 'quantity': 30.5, 'unit_price': 36.5, 'total': 44.5,
        }
        assert thresholds.source == 'inferred'

    def test_nothing_to_infer(self, make_line):
        """Test inference on lines without amounts."""
        assert infer_thresholds([make_line('Thank you for your order')]).is_empty()
