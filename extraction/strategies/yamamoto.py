"""
Yamamoto Nutrition / IAF Network invoices.

Rows are found from their product codes (IAF..., FITT..., YAM...) rather
than from column boundaries, because descriptions, units and amounts of one
row often share runs. Typical row::

    IAF00068182 YAMAMOTO NUTRITION Glutamine POWDER 600 grammes - PZ 15,00 17,09 256,35 NI41
"""

import re
from typing import List, Optional, Sequence

from ..metadata import is_shipping_text
from ..models import ColumnThresholds, LineItem, PdfExtractionResult, PositionedToken, TextLine
from ..number_utils import STRICT_PRICE_RE, parse_price, parse_quantity
from .base import AnchorTokenParser, find_header_line, join_text, thresholds_from_header


QUANTITY_WORD_RE = re.compile(r'^-?\d+[.,]?\d*$')
TARIFF_CODE_RE = re.compile(r'^\d{8}$')
VAT_CODE_RE = re.compile(r'^(?:NI\d+|ESC\d+)$')
FILLER_RE = re.compile(r'^[-\s]*$')

HEADER_GROUPS = (('ITEM',), ('DESCRIPTION',), ('UNIT PRICE', 'PREZZO'))

LABEL_RULES = (
    ('sku', lambda label: any(key in label for key in ('item', 'sku', 'code'))),
    ('description', lambda label: 'description' in label or 'product' in label),
    ('quantity', lambda label: 'q' in label and 'unit' not in label),
    ('unit_price', lambda label: 'unit' in label or 'prezzo' in label),
    ('total', lambda label: 'amount' in label or 'total' in label or 'importo' in label),
)


class YamamotoParser(AnchorTokenParser):
    """Anchor-token strategy for Yamamoto and IAF Network invoices."""

    name = 'yamamoto'
    sku_pattern = re.compile(r'^(?:IAF|FITT|YAM)\w*\d+')

    def _parse(self, lines: List[TextLine]) -> PdfExtractionResult:
        data = self.new_invoice()
        warnings: List[str] = []
        self.extract_metadata(lines, data)

        thresholds = self.detect_columns(lines)
        words = self.document_words(lines)

        for anchor, row in self.anchor_rows(words):
            try:
                item = self.parse_row(anchor, row, thresholds, warnings)
            except Exception as e:
                self.logger.warning(f"[{self.name}] Skipping row for {anchor.text}: {e}")
                continue
            if item is None:
                continue
            if is_shipping_text(item.description):
                self.logger.info(f"[{self.name}] {item.supplier_sku} is a shipping row: {item.total}")
                data.invoice_metadata.record_shipping_fee(item.total)
                continue
            data.line_items.append(item)

        self.record_unanchored_shipping(lines, data)
        return self.finish(data, warnings)

    def detect_columns(self, lines: Sequence[TextLine]) -> Optional[ColumnThresholds]:
        index = find_header_line(lines, HEADER_GROUPS)
        if index is None:
            return None
        thresholds = thresholds_from_header(lines[index], LABEL_RULES, header_index=index)
        self.logger.info(f"[{self.name}] Found table header: '{lines[index].text}' "
                         f"-> {thresholds.as_dict()}")
        return thresholds

    def parse_row(self, anchor: PositionedToken, row: Sequence[PositionedToken],
                  thresholds: Optional[ColumnThresholds],
                  warnings: List[str]) -> Optional[LineItem]:
        sku = anchor.text
        quantity_word = self.find_quantity_word(row)
        quantity = parse_quantity(quantity_word.text) if quantity_word else None

        prices = [word for word in row if STRICT_PRICE_RE.match(word.text)]
        if len(prices) >= 3:
            unit_price = parse_price(prices[1].text)
        elif len(prices) == 2:
            unit_price = parse_price(prices[0].text)
        else:
            unit_price = None
        printed_total = parse_price(prices[-1].text) if prices else None

        if quantity is None or printed_total is None:
            self.logger.debug(f"[{self.name}] Missing required data for {sku}: "
                              f"quantity={quantity}, total={printed_total}")
            return None
        if unit_price is None and prices[-1] is quantity_word:
            return None

        description = self.description(row, quantity_word, thresholds)
        unit_price, total = self.reconcile_amounts(sku, quantity, unit_price, printed_total, warnings)
        item = LineItem(supplier_sku=sku, description=description or None,
                        quantity=quantity, unit_price=unit_price, total=total)
        self.logger.debug(f"[{self.name}] Extracted {item.to_dict()}")
        return item

    def find_quantity_word(self, row: Sequence[PositionedToken]) -> Optional[PositionedToken]:
        """The number following the unit ``PZ``, or the number closest to it."""
        for index, word in enumerate(row):
            if word.text.upper() != 'PZ':
                continue
            following = row[index + 1] if index + 1 < len(row) else None
            if following is not None and QUANTITY_WORD_RE.match(following.text):
                return following
            numbers = [other for other in row if QUANTITY_WORD_RE.match(other.text)]
            if numbers:
                return min(numbers, key=lambda other: abs(other.x - word.x))
        return None

    def description(self, row: Sequence[PositionedToken], quantity_word: Optional[PositionedToken],
                    thresholds: Optional[ColumnThresholds]) -> str:
        right_bound = thresholds.quantity if thresholds is not None else None
        parts = []
        for word in row[1:]:
            text = word.text
            if word is quantity_word or text.upper() == 'PZ':
                continue
            if right_bound is not None and word.x >= right_bound - 0.5:
                continue
            if self.sku_pattern.match(text) or STRICT_PRICE_RE.match(text):
                continue
            if TARIFF_CODE_RE.match(text) or VAT_CODE_RE.match(text) or FILLER_RE.match(text):
                continue
            parts.append(text)
        description = join_text(parts)
        return re.sub(r"\s*CUSTOM\s*'\s*S\s+TARIFF.*$", '', description, flags=re.IGNORECASE)
