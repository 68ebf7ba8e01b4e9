"""
Column-threshold row segmentation.

Used for suppliers whose rows are column aligned but whose product codes are
not self-describing. Each body line is split into fields by looking at the
tokens that sit near the x position of each header label; lines that do not
form a row are treated as continuation text of a neighbouring item.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from ..exceptions import HeaderNotFoundError, LineItemParsingError
from ..metadata import (
    extract_shipping_fee,
    generate_pseudo_sku,
    is_footer_line,
    is_shipping_text,
)
from ..models import ColumnThresholds, LineItem, ParsedInvoiceData, PdfExtractionResult, PositionedToken, TextLine
from ..number_utils import is_price_like, parse_price, parse_quantity
from .base import (
    AMOUNT_IN_TEXT_RE,
    InvoiceParser,
    LabelRule,
    append_description,
    find_header_line,
    infer_thresholds,
    join_text,
    thresholds_from_header,
)


LABEL_TOKEN_RE = re.compile(r'^(?:q\.?|pu|p\.u\.?|qty|qté|ref\.?|réf\.?)$', re.IGNORECASE)


@dataclass
class RowFields:
    """Raw values read from one table row before amounts are reconciled."""
    sku: Optional[str]
    description: str
    quantity: Optional[Decimal]
    unit_price: Optional[Decimal]
    total: Optional[Decimal]


class ColumnLayoutParser(InvoiceParser):
    """
    Base strategy for column-aligned layouts.

    Subclasses declare the header keywords that identify the table, the
    label rules mapping header tokens to columns, and whether a header is
    mandatory.
    """

    name = 'columns'
    header_groups: Sequence[Sequence[str]] = ()
    label_rules: Sequence[LabelRule] = ()
    require_header = True
    sku_pattern: Optional[re.Pattern] = None
    pseudo_sku_tag: Optional[str] = None
    header_labels: Sequence[str] = ()
    near_window = 2.5
    price_window = 3.5
    max_decimals = 2

    def _parse(self, lines: List[TextLine]) -> PdfExtractionResult:
        data = self.new_invoice()
        warnings: List[str] = []
        self.extract_metadata(lines, data)

        thresholds = self.detect_columns(lines)
        if thresholds is None and not self.require_header:
            thresholds = infer_thresholds(lines, self.sku_pattern)
            self.logger.info(f"[{self.name}] Inferred column thresholds: {thresholds.as_dict()}")
        if thresholds is None:
            labels = list(self.header_labels) or ['/'.join(group) for group in self.header_groups]
            raise HeaderNotFoundError(f"{self.name.capitalize()} header not found ({'/'.join(labels)})",
                                      expected_labels=labels)

        data.line_items = self.segment_rows(lines, thresholds, data, warnings)
        return self.finish(data, warnings, f"No line items parsed for {self.name.capitalize()}")

    # -- header -----------------------------------------------------------------

    def detect_columns(self, lines: Sequence[TextLine]) -> Optional[ColumnThresholds]:
        """Thresholds from the first header line, or None when there is none."""
        index = find_header_line(lines, self.header_groups)
        if index is None:
            self.logger.warning(f"[{self.name}] No table header found")
            return None
        thresholds = thresholds_from_header(lines[index], self.label_rules, header_index=index)
        self.logger.info(f"[{self.name}] Header at line {index}: '{lines[index].text}'")
        self.logger.info(f"[{self.name}] Column thresholds set: {thresholds.as_dict()}")
        return thresholds

    def is_header_repeat(self, line: TextLine) -> bool:
        return bool(self.header_groups) and find_header_line([line], self.header_groups) is not None

    # -- body -------------------------------------------------------------------

    def segment_rows(self, lines: Sequence[TextLine], thresholds: ColumnThresholds,
                     data: ParsedInvoiceData, warnings: List[str]) -> List[LineItem]:
        """
        Turn the lines below the header into line items.

        Scanning for rows stops at the first footer line; the totals block
        below it is only read for shipping lines. Without a header (inferred
        thresholds) a footer only counts once a row has been read, since
        letterheads carry "VAT ..." and "Net 30" lines above the table.
        Shipping lines feed the invoice shipping fee. Lines that are not rows
        add their description text to the previous item, or to the next one
        when no item exists yet.
        """
        items: List[LineItem] = []
        pending_description = ''
        start = 0 if thresholds.header_index is None else thresholds.header_index + 1

        for index in range(start, len(lines)):
            line = lines[index]
            if self.is_header_repeat(line):
                continue
            if is_footer_line(line.text) and (items or thresholds.source == 'header'):
                self.logger.debug(f"[{self.name}] Footer reached at line {index}: '{line.text}'")
                for trailing_index in range(index + 1, len(lines)):
                    self.record_shipping_line(lines[trailing_index], trailing_index, data)
                break

            if self.record_shipping_line(line, index, data):
                continue
            tokens = [token.stripped() for token in line.items if token.text.strip()]

            try:
                row = self.parse_row(tokens, thresholds, index)
                item = self.build_item(row, warnings)
            except LineItemParsingError as e:
                self.logger.debug(f"[{self.name}] Line {index} is not a row: {e}")
                continuation = self.continuation_text(tokens, thresholds)
                if not continuation:
                    continue
                if items:
                    append_description(items[-1], continuation)
                elif thresholds.source == 'header':
                    pending_description = join_text([pending_description, continuation])
                continue
            except Exception as e:
                self.logger.warning(f"[{self.name}] Skipping line {index} '{line.text}': {e}")
                continue

            if pending_description:
                append_description(item, pending_description, prepend=True)
                pending_description = ''
            items.append(item)
            self.logger.debug(f"[{self.name}] Row {index}: {item.to_dict()}")

        return items

    def record_shipping_line(self, line: TextLine, index: int, data: ParsedInvoiceData) -> bool:
        """Record the fee of a shipping line carrying an amount; False for other lines."""
        if not (is_shipping_text(line.text) and AMOUNT_IN_TEXT_RE.search(line.text)):
            return False
        tokens = [token.stripped() for token in line.items if token.text.strip()]
        fee = extract_shipping_fee(tokens, self.config.shipping_min,
                                   self.config.shipping_max, self.max_decimals)
        self.logger.info(f"[{self.name}] Shipping line {index}: '{line.text}' -> {fee}")
        data.invoice_metadata.record_shipping_fee(fee)
        return True

    def build_item(self, row: RowFields, warnings: List[str]) -> LineItem:
        description = row.description
        if row.quantity is not None:
            description = strip_quantity(description, row.quantity)

        sku = row.sku
        if not sku:
            if not description:
                raise LineItemParsingError("Row has neither a product code nor a description")
            sku = generate_pseudo_sku(description, self.pseudo_sku_tag)

        quantity = row.quantity
        if quantity is None:
            quantity = quantity_from_prices(row.unit_price, row.total)

        unit_price, total = self.reconcile_amounts(sku, quantity, row.unit_price, row.total,
                                                   warnings)
        return LineItem(supplier_sku=sku, description=description or None,
                        quantity=quantity, unit_price=unit_price, total=total)

    def parse_row(self, tokens: Sequence[PositionedToken], thresholds: ColumnThresholds,
                  line_number: Optional[int] = None) -> RowFields:
        """
        Read the fields of a row from the tokens near each column.

        Raises:
            LineItemParsingError: When the line has neither SKU and quantity
                nor both price columns, or no amount at all
        """
        tokens = sorted(tokens, key=lambda token: token.x)
        line_text = ' '.join(token.text for token in tokens)

        sku = self.read_sku(tokens, thresholds)
        description = self.read_description(tokens, thresholds)
        quantity = self.read_quantity(tokens, thresholds)
        unit_price = self.price_near_column(tokens, thresholds.unit_price)
        total = self.price_near_column(tokens, thresholds.total)

        if unit_price is None or total is None:
            right_of = thresholds.quantity
            price_tokens = [token.text for token in tokens
                            if (right_of is None or token.x > right_of) and is_price_like(token.text)]
            # A single printed amount is the total; it never fills both columns
            if len(price_tokens) >= 2:
                if unit_price is None:
                    unit_price = parse_price(price_tokens[0], self.max_decimals)
                if total is None:
                    total = parse_price(price_tokens[-1], self.max_decimals)
            elif price_tokens and unit_price is None and total is None:
                total = parse_price(price_tokens[0], self.max_decimals)

        has_code_and_quantity = bool(sku) and quantity is not None
        has_prices = unit_price is not None and total is not None
        if not (has_code_and_quantity or has_prices):
            raise LineItemParsingError("Line has no SKU/quantity pair and no price columns",
                                       line_number=line_number, line_text=line_text)
        if unit_price is None and total is None:
            raise LineItemParsingError("Line has no amounts",
                                       line_number=line_number, line_text=line_text)
        if not sku and not description:
            raise LineItemParsingError("Line has amounts but no product text",
                                       line_number=line_number, line_text=line_text)

        return RowFields(sku=sku, description=description, quantity=quantity,
                         unit_price=unit_price, total=total)

    def read_sku(self, tokens: Sequence[PositionedToken],
                 thresholds: ColumnThresholds) -> Optional[str]:
        for token in thresholds.tokens_near(tokens, 'sku', self.near_window):
            text = token.text.strip()
            if not text or LABEL_TOKEN_RE.match(text) or 'libell' in text.lower():
                continue
            if is_price_like(text):
                continue
            if self.sku_pattern is not None and not self.sku_pattern.match(text):
                continue
            return text
        return None

    def description_bounds(self, thresholds: ColumnThresholds):
        left = thresholds.description
        right_candidates = [x for x in (thresholds.quantity, thresholds.unit_price, thresholds.total)
                            if x is not None and (left is None or x > left)]
        right = min(right_candidates) if right_candidates else None
        return left, right

    def description_tokens(self, tokens: Sequence[PositionedToken],
                           thresholds: ColumnThresholds) -> List[str]:
        left, right = self.description_bounds(thresholds)
        if left is None or right is None:
            return []
        texts = []
        for token in tokens:
            if not (left - 0.5 <= token.x < right - 0.5):
                continue
            text = token.text.strip()
            if not text or LABEL_TOKEN_RE.match(text):
                continue
            if is_price_like(text):
                continue
            texts.append(text)
        return texts

    def read_description(self, tokens: Sequence[PositionedToken],
                         thresholds: ColumnThresholds) -> str:
        return join_text(self.description_tokens(tokens, thresholds))

    def continuation_text(self, tokens: Sequence[PositionedToken],
                          thresholds: ColumnThresholds) -> str:
        return join_text(self.description_tokens(tokens, thresholds))

    def read_quantity(self, tokens: Sequence[PositionedToken],
                      thresholds: ColumnThresholds) -> Optional[Decimal]:
        for token in thresholds.tokens_near(tokens, 'quantity', self.near_window):
            value = parse_quantity(token.text)
            if value is not None:
                return value
        return None

    def price_near_column(self, tokens: Sequence[PositionedToken],
                          x_threshold: Optional[float]) -> Optional[Decimal]:
        """
        Amount printed in the column at ``x_threshold``.

        Two adjacent fragments are also tried merged ("2" + "478,42") since
        extraction sometimes splits a number at its thousands group.
        """
        if x_threshold is None:
            return None
        within = sorted((token for token in tokens
                         if abs(token.x - x_threshold) < self.price_window and token.text.strip()),
                        key=lambda token: token.x)
        if not within:
            return None

        candidates = [(token.x, token.text.strip()) for token in within if is_price_like(token.text)]
        for left, right in zip(within, within[1:]):
            merged = f"{left.text.strip()}{right.text.strip()}"
            if is_price_like(merged):
                candidates.append(((left.x + right.x) / 2, merged))

        if candidates:
            _, best = min(candidates, key=lambda candidate: abs(candidate[0] - x_threshold))
            value = parse_price(best, self.max_decimals)
            if value is not None:
                return value

        merged_all = ''.join(token.text.strip() for token in within)
        if is_price_like(merged_all):
            return parse_price(merged_all, self.max_decimals)
        return None


def strip_quantity(description: str, quantity: Decimal) -> str:
    """Remove a standalone token equal to the quantity from the description."""
    if not description:
        return description
    number = format(quantity, 'f')
    if '.' in number:
        number = number.rstrip('0').rstrip('.')
    pattern = re.compile(rf'(?:^|\s){re.escape(number)}(?:[.,]0+)?(?=\s|$)')
    return join_text([pattern.sub(' ', description, count=1)])


def quantity_from_prices(unit_price: Optional[Decimal], total: Optional[Decimal]) -> Decimal:
    """Quantity implied by a row that only printed its two amounts."""
    if unit_price and total is not None:
        ratio = total / unit_price
        rounded = ratio.to_integral_value()
        if abs(ratio - rounded) <= Decimal('0.01'):
            return rounded.quantize(Decimal(1))
        return ratio.quantize(Decimal('0.0001'))
    return Decimal(1)
