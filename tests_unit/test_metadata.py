"""
Unit tests for invoice-level heuristics.
"""

from datetime import date
from decimal import Decimal

from extraction.metadata import (
    detect_currency,
    extract_shipping_fee,
    find_invoice_date,
    find_invoice_number,
    generate_pseudo_sku,
    is_footer_line,
    is_pseudo_sku,
    is_shipping_text,
)
from extraction.models import PositionedToken


def tokens(*words):
    return [PositionedToken(page=1, x=float(index * 2), y=10.0, text=word)
            for index, word in enumerate(words)]


class TestInvoiceDate:
    """Test cases for find_invoice_date."""

    def test_labelled_iso_date(self):
        """Test a labelled ISO date."""
        assert find_invoice_date(['Date: 2025-02-12']) == date(2025, 2, 12)

    def test_day_first_date(self):
        """Test a day-first date."""
        assert find_invoice_date(['Invoice 12/02/2025']) == date(2025, 2, 12)

    def test_impossible_dates_are_skipped(self):
        """Test that impossible dates are skipped."""
        assert find_invoice_date(['Date: 31/02/2025', 'Fecha: 12-02-2025']) == date(2025, 2, 12)

    def test_no_date(self):
        """Test text without a date."""
        assert find_invoice_date(['no date here']) is None


class TestInvoiceNumber:
    """Test cases for find_invoice_number."""

    def test_french_label(self):
        """Test a French invoice number label."""
        assert find_invoice_number(['Facture N° FA2025-001']) == 'FA2025-001'

    def test_no_label(self):
        """Test text without an invoice number label."""
        assert find_invoice_number(['Order: 12345']) is None


class TestCurrency:
    """Test cases for detect_currency."""

    def test_default_without_symbols(self):
        """Test the default currency when no symbol is present."""
        assert detect_currency(['nothing'], default='EUR') == 'EUR'

    def test_other_currency_only(self):
        """Test detecting a non-default currency."""
        assert detect_currency(['Total $ 12.00']) == 'USD'

    def test_default_wins_when_present(self):
        """Test that the default currency wins when present."""
        assert detect_currency(['€ 5,00', '$ 3.00']) == 'EUR'


class TestLineClassification:
    """Test cases for footer and shipping markers."""

    def test_footer_lines(self):
        """Test footer line detection."""
        assert is_footer_line('Total HT 37,50')
        assert is_footer_line('Sub-total 120,00')
        assert is_footer_line('TVA 20% 7,50')
        assert not is_footer_line('Totally Nutrition bar')

    def test_shipping_keywords(self):
        """Test shipping keywords in several languages."""
        assert is_shipping_text('Frais de port')
        assert is_shipping_text('Spedizione')
        assert is_shipping_text('Shipping & handling')
        assert is_shipping_text('Transport')

    def test_words_containing_keywords_are_not_shipping(self):
        """Test that longer words containing a keyword are not shipping."""
        assert not is_shipping_text('Zero Confiture Fraise')
        assert not is_shipping_text(None)


class TestShippingFee:
    """Test cases for extract_shipping_fee."""

    def test_detached_currency_symbol(self):
        """Test a fee with a detached currency symbol."""
        assert extract_shipping_fee(tokens('Shipping', '&', 'handling', '€', '6,00')) == Decimal('6.00')

    def test_rightmost_amount_wins(self):
        """Test that the rightmost amount is the fee."""
        assert extract_shipping_fee(tokens('Frais', 'de', 'port', '10,00', '12,00')) == Decimal('12.00')

    def test_plain_number_in_plausible_range(self):
        """Test a plain number within the shipping range."""
        assert extract_shipping_fee(tokens('Livraison', '15')) == Decimal('15')
        assert extract_shipping_fee(tokens('Livraison', '5000')) is None


class TestPseudoSku:
    """Test cases for generated SKUs."""

    def test_deterministic_and_normalized(self):
        """Test that pseudo-SKUs ignore case and spacing."""
        first = generate_pseudo_sku('Protein  powder 25kg')
        assert first == generate_pseudo_sku('PROTEIN POWDER 25KG')
        assert first.startswith('GEN-')
        assert len(first) == len('GEN-') + 12

    def test_tagged(self):
        """Test a pseudo-SKU with a supplier tag."""
        sku = generate_pseudo_sku('Sirop zero', 'rabeko')
        assert sku.startswith('GEN-RABEKO-')
        assert is_pseudo_sku(sku)
        assert not is_pseudo_sku('IAF00068182')

    def test_different_descriptions_differ(self):
        """Test that different descriptions give different pseudo-SKUs."""
        assert generate_pseudo_sku('Whey') != generate_pseudo_sku('Casein')
