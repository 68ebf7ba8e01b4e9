"""
Swanson Health pro-forma invoices.

Unit prices carry up to four decimals and the printed line amount is often
truncated ("€ 1519.8"), so the total is always recomputed. Typical row::

    SW141 1 BERBERINE 400 MG 60 CAPS 2026-10-31 150 10.132 € 1519.8
"""

import re
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from ..metadata import is_shipping_text
from ..models import ColumnThresholds, LineItem, PdfExtractionResult, PositionedToken, TextLine
from ..number_utils import parse_price
from .base import AnchorTokenParser, find_header_line, join_text, thresholds_from_header


SKU_FRAGMENT_RE = re.compile(r'^[A-Z0-9]{1,2}$')
DECIMAL_WORD_RE = re.compile(r'^\d+[.,]\d+$')
EXPIRY_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
CURRENCY_WORD_RE = re.compile(r'^(?:€|\$|£|EUR)$')

HEADER_GROUPS = (('SKU',), ('NAME',), ('QTY',), ('UNIT PRICE', 'PRICE'))

LABEL_RULES = (
    ('sku', lambda label: 'sku' in label),
    ('description', lambda label: 'name' in label),
    ('exp_date', lambda label: label.startswith('exp')),
    ('quantity', lambda label: 'qty' in label),
    ('unit_price', lambda label: 'price' in label or label == 'unit'),
    ('total', lambda label: 'amount' in label),
)

FRAGMENT_DISTANCE = 3.0
QUANTITY_WINDOW = 3.5


class SwansonParser(AnchorTokenParser):
    """Anchor-token strategy for Swanson invoices."""

    name = 'swanson'
    sku_pattern = re.compile(r'^SW[A-Z]*\d+')
    price_decimals = 4

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
                data.invoice_metadata.record_shipping_fee(item.total)
                continue
            data.line_items.append(item)

        self.record_unanchored_shipping(lines, data, max_decimals=self.price_decimals)
        return self.finish(data, warnings)

    def detect_columns(self, lines: Sequence[TextLine]) -> Optional[ColumnThresholds]:
        index = find_header_line(lines, HEADER_GROUPS)
        if index is None:
            return None
        thresholds = thresholds_from_header(lines[index], LABEL_RULES, header_index=index)
        self.logger.info(f"[{self.name}] Found table header: '{lines[index].text}' "
                         f"-> {thresholds.as_dict()}")
        return thresholds

    def reconstruct_sku(self, anchor: PositionedToken,
                        row: Sequence[PositionedToken]) -> Tuple[str, Optional[PositionedToken]]:
        """Re-attach a one or two character fragment split off the code ("SW141" + "1")."""
        for word in row:
            if word is anchor or word.x <= anchor.x:
                continue
            if word.x < anchor.x + FRAGMENT_DISTANCE and SKU_FRAGMENT_RE.match(word.text):
                return anchor.text + word.text, word
            break
        return anchor.text, None

    def parse_row(self, anchor: PositionedToken, row: Sequence[PositionedToken],
                  thresholds: Optional[ColumnThresholds],
                  warnings: List[str]) -> Optional[LineItem]:
        sku, fragment = self.reconstruct_sku(anchor, row)
        body = [word for word in row if word is not anchor and word is not fragment]

        unit_price_word = next((word for word in body if DECIMAL_WORD_RE.match(word.text)), None)
        quantity_word = self.find_quantity_word(body, thresholds, unit_price_word)
        if quantity_word is None or unit_price_word is None:
            self.logger.debug(f"[{self.name}] Missing required data for {sku}")
            return None

        quantity = Decimal(int(quantity_word.text))
        unit_price = parse_price(unit_price_word.text, max_decimals=self.price_decimals)
        printed_total = self.printed_total(body, unit_price, quantity)

        unit_price, total = self.reconcile_amounts(sku, quantity, unit_price, printed_total, warnings)
        description = self.description(body, (quantity_word, unit_price_word))
        item = LineItem(supplier_sku=sku, description=description or None,
                        quantity=quantity, unit_price=unit_price, total=total)
        self.logger.debug(f"[{self.name}] Extracted {item.to_dict()}")
        return item

    def find_quantity_word(self, words: Sequence[PositionedToken],
                           thresholds: Optional[ColumnThresholds],
                           unit_price_word: Optional[PositionedToken] = None) -> Optional[PositionedToken]:
        """
        Pick the quantity among the integer words of a row.

        The integer closest to the QTY column wins when a header was found,
        then the integer printed right before the unit price. Otherwise the
        largest integer between 10 and 1000 is taken, falling
        back to the first integer above 1.
        """
        integers = [word for word in words if word.text.isdigit()]
        if not integers:
            return None

        if thresholds is not None and thresholds.quantity is not None:
            near = [word for word in integers
                    if abs(word.x - thresholds.quantity) < QUANTITY_WINDOW]
            if near:
                return min(near, key=lambda word: abs(word.x - thresholds.quantity))

        if unit_price_word is not None:
            position = next(index for index, word in enumerate(words) if word is unit_price_word)
            if position and words[position - 1].text.isdigit():
                return words[position - 1]

        plausible = [word for word in integers if 10 <= int(word.text) <= 1000]
        if plausible:
            return max(plausible, key=lambda word: int(word.text))
        return next((word for word in integers if int(word.text) > 1), None)

    def printed_total(self, words: Sequence[PositionedToken], unit_price: Decimal,
                      quantity: Decimal) -> Optional[Decimal]:
        """The amount printed as "€ 1519.8", or a decimal above 50 larger than price and quantity."""
        total = None
        for index, word in enumerate(words):
            previous = words[index - 1].text if index else ''
            if not DECIMAL_WORD_RE.match(word.text) and not word.text.isdigit():
                continue
            value = parse_price(word.text, max_decimals=self.price_decimals)
            if value is None or value <= unit_price or value <= quantity:
                continue
            if CURRENCY_WORD_RE.match(previous) or (DECIMAL_WORD_RE.match(word.text) and value > 50):
                total = value
        return total

    def description(self, words: Sequence[PositionedToken],
                    used: Sequence[PositionedToken]) -> str:
        """Words before the expiry date, quantity and price columns."""
        stops = [word.x for word in words
                 if EXPIRY_DATE_RE.match(word.text) or any(word is other for other in used)]
        limit = min(stops) if stops else None
        parts = []
        for word in words:
            if limit is not None and word.x >= limit:
                break
            if CURRENCY_WORD_RE.match(word.text) or EXPIRY_DATE_RE.match(word.text):
                continue
            parts.append(word.text)
        return join_text(parts)
