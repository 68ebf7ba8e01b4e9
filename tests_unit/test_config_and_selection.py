"""
Unit tests for configuration, line assembly and strategy selection.
"""

from decimal import Decimal

from extraction.config import DEFAULT_PINNED_SUPPLIERS, ExtractionConfig
from extraction.line_assembler import assemble_lines, round_to_tolerance
from extraction.models import PositionedToken
from extraction.selector import parser_class_for, requires_table_backend, select_parser
from extraction.strategies import (
    AddictParser,
    BoleroParser,
    GenericParser,
    MaiavieParser,
    SwansonParser,
    YamamotoParser,
)


class TestExtractionConfig:
    """Test cases for ExtractionConfig."""

    def test_defaults(self):
        """Test default configuration values."""
        config = ExtractionConfig.from_env({})
        assert config.line_tolerance == 0.5
        assert config.points_per_unit == 16.0
        assert config.price_tolerance == Decimal('0.02')
        assert config.pinned_table_suppliers == DEFAULT_PINNED_SUPPLIERS

    def test_environment_overrides(self):
        """Test configuration overrides from environment variables."""
        config = ExtractionConfig.from_env({
            'INVOICE_PARSER_PRICE_TOLERANCE': '0.05',
            'INVOICE_PARSER_CURRENCY': 'usd',
            'INVOICE_PARSER_PINNED_SUPPLIERS': 'Acme, Foo ,',
            'INVOICE_PARSER_TABLE_TIMEOUT': '30',
        })
        assert config.price_tolerance == Decimal('0.05')
        assert config.default_currency == 'USD'
        assert config.pinned_table_suppliers == ('acme', 'foo')
        assert config.table_backend_timeout == 30.0

    def test_invalid_values_fall_back_to_defaults(self):
        """Test that invalid environment values keep the defaults."""
        config = ExtractionConfig.from_env({
            'INVOICE_PARSER_LINE_TOLERANCE': 'abc',
            'INVOICE_PARSER_SHIPPING_MAX': 'lots',
        })
        assert config.line_tolerance == 0.5
        assert config.shipping_max == Decimal('200')


class TestLineAssembler:
    """Test cases for assemble_lines."""

    def token(self, x, y, text, page=1):
        return PositionedToken(page=page, x=x, y=y, text=text)

    def test_round_to_tolerance(self):
        """Test rounding y positions to the line tolerance."""
        assert round_to_tolerance(10.2) == 10.0
        assert round_to_tolerance(10.3) == 10.5
        assert round_to_tolerance(10.25) == 10.5

    def test_clusters_close_tokens_and_sorts_by_x(self):
        """Test grouping tokens into lines sorted by x."""
        lines = assemble_lines([
            self.token(8.0, 10.2, 'Whey'),
            self.token(2.0, 10.0, 'YAM001'),
            self.token(2.0, 12.0, 'YAM002'),
        ])
        assert [line.text for line in lines] == ['YAM001 Whey', 'YAM002']
        assert lines[0].y_position == 10.0

    def test_pages_are_kept_apart(self):
        """Test that tokens on different pages never share a line."""
        lines = assemble_lines([
            self.token(2.0, 10.0, 'second', page=2),
            self.token(2.0, 10.0, 'first', page=1),
        ])
        assert [(line.page, line.text) for line in lines] == [(1, 'first'), (2, 'second')]

    def test_blank_lines_are_dropped(self):
        """Test that blank lines are dropped."""
        lines = assemble_lines([self.token(2.0, 10.0, '   '), self.token(2.0, 20.0, 'text')])
        assert [line.text for line in lines] == ['text']


class TestSelector:
    """Test cases for supplier to strategy selection."""

    def test_supplier_fragments(self):
        """Test strategy lookup by supplier name fragment."""
        assert parser_class_for('Yamamoto Nutrition') is YamamotoParser
        assert parser_class_for('IAF Network srl') is YamamotoParser
        assert parser_class_for('BOLERO S.L.') is BoleroParser
        assert parser_class_for('Swanson Health') is SwansonParser
        assert parser_class_for('Addict Sport Nutrition') is AddictParser
        assert parser_class_for('maiavie') is MaiavieParser

    def test_unknown_supplier_gets_generic_parser(self):
        """Test fallback to the generic parser."""
        assert parser_class_for('Acme Foods') is GenericParser
        assert parser_class_for(None) is GenericParser

    def test_select_parser_returns_fresh_instances(self):
        """Test that each selection builds a new parser."""
        config = ExtractionConfig()
        first = select_parser('Bolero', config)
        second = select_parser('Bolero', config)
        assert isinstance(first, BoleroParser)
        assert first is not second
        assert first.config is config

    def test_pinned_suppliers(self):
        """Test suppliers pinned to the table backend."""
        config = ExtractionConfig()
        assert requires_table_backend('Rabeko SAS', config)
        assert requires_table_backend('IAF Network', config)
        assert not requires_table_backend('Bolero', config)
        assert not requires_table_backend(None, config)
