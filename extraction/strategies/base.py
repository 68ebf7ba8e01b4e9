"""
Common contract and helpers for supplier parsing strategies.

Every strategy turns the assembled lines of one document into a
``PdfExtractionResult``. Strategies keep no per-document state on the
instance: column thresholds, warnings and partial results live in local
variables, so one instance can parse any number of documents.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import replace
from decimal import Decimal
from statistics import median
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..config import ExtractionConfig, get_config
from ..exceptions import PDFProcessingError
from ..metadata import (
    detect_currency,
    extract_shipping_fee,
    find_invoice_date,
    find_invoice_number,
    is_shipping_text,
)
from ..models import (
    ColumnThresholds,
    InvoiceMetadata,
    LineItem,
    ParsedInvoiceData,
    PdfExtractionResult,
    PositionedToken,
    TextLine,
)
from ..number_utils import is_integer_token, is_price_like, round_money


# A header rule maps a lowercase label token to a semantic column
LabelRule = Tuple[str, Callable[[str], bool]]

AMOUNT_IN_TEXT_RE = re.compile(r'\d[.,]\d{2}\b')


class InvoiceParser(ABC):
    """
    Base class for supplier parsing strategies.

    Subclasses implement ``_parse`` and may raise; ``parse`` converts any
    exception into a failure envelope so nothing escapes the strategy.
    """

    name = 'base'

    def __init__(self, config: Optional[ExtractionConfig] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config or get_config()
        self.logger = logger or logging.getLogger(f"{__name__}.{self.name}")

    def parse(self, lines: Sequence[TextLine]) -> PdfExtractionResult:
        """Parse assembled lines into a result envelope. Never raises."""
        self.logger.info(f"[{self.name}] Parsing {len(lines)} lines")
        try:
            result = self._parse(list(lines))
        except PDFProcessingError as e:
            self.logger.error(f"[{self.name}] {e}")
            return PdfExtractionResult.fail(str(e))
        except Exception as e:
            self.logger.exception(f"[{self.name}] Unexpected parsing error: {e}")
            return PdfExtractionResult.fail(f"Failed to parse {self.name} invoice: {e}")

        if result.success:
            self.logger.info(f"[{self.name}] Parsed {len(result.line_items)} line items "
                             f"({len(result.warnings)} warnings)")
        return result

    @abstractmethod
    def _parse(self, lines: List[TextLine]) -> PdfExtractionResult:
        """Supplier-specific parsing."""

    # -- metadata -----------------------------------------------------------

    def new_invoice(self) -> ParsedInvoiceData:
        return ParsedInvoiceData(
            invoice_metadata=InvoiceMetadata(currency=self.config.default_currency)
        )

    def extract_metadata(self, lines: Sequence[TextLine], data: ParsedInvoiceData) -> None:
        """Fill date, invoice number and currency from the line texts."""
        texts = [line.text for line in lines]
        metadata = data.invoice_metadata
        metadata.invoice_date = find_invoice_date(texts)
        metadata.invoice_number = find_invoice_number(texts)
        metadata.currency = detect_currency(texts, default=self.config.default_currency)
        self.logger.debug(f"[{self.name}] Metadata - Invoice: {metadata.invoice_number}, "
                          f"Date: {metadata.invoice_date}, Currency: {metadata.currency}")

    def finish(self, data: ParsedInvoiceData, warnings: List[str],
               empty_warning: Optional[str] = None) -> PdfExtractionResult:
        """Wrap parsed data, adding the empty-document warning when needed."""
        if not data.line_items:
            warnings.append(empty_warning or "No line items found")
        return PdfExtractionResult.ok(data, warnings)

    # -- amounts --------------------------------------------------------------

    def reconcile_amounts(self, sku: str, quantity: Optional[Decimal],
                          unit_price: Optional[Decimal], printed_total: Optional[Decimal],
                          warnings: List[str]) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        """
        Settle unit price and total for a row.

        The total is recomputed from quantity * unit price whenever both are
        known; a printed total that disagrees beyond the price tolerance is
        reported as a warning and the computed value is kept. When only the
        total is known the unit price is derived from it.

        Returns:
            (unit_price, total)
        """
        unit_price, total, mismatch = reconcile_amounts(sku, quantity, unit_price, printed_total,
                                                        self.config.price_tolerance)
        if mismatch:
            self.logger.warning(f"[{self.name}] {mismatch}")
            warnings.append(mismatch)
        return unit_price, total


class AnchorTokenParser(InvoiceParser):
    """
    Strategy base for layouts whose product codes identify rows.

    Every word matching ``sku_pattern`` anchors a row made of the words on
    the same page and within ``row_tolerance`` of its y, from the anchor up to
    the next anchor on that row.
    """

    sku_pattern: re.Pattern = re.compile(r'^$')
    row_tolerance = 0.5

    def document_words(self, lines: Sequence[TextLine]) -> List[PositionedToken]:
        tokens = [token for line in lines for token in line.items if token.text.strip()]
        return split_words(tokens, self.config.points_per_unit)

    def anchor_rows(self, words: Sequence[PositionedToken]) -> List[Tuple[PositionedToken, List[PositionedToken]]]:
        anchors = [word for word in words if self.sku_pattern.match(word.text)]
        self.logger.info(f"[{self.name}] Found {len(anchors)} SKU anchors")

        rows = []
        for anchor in anchors:
            row = same_row(words, anchor, self.row_tolerance)
            next_x = min((other.x for other in anchors
                          if other is not anchor and other in row and other.x > anchor.x),
                         default=None)
            row = [word for word in row
                   if word.x >= anchor.x and (next_x is None or word.x < next_x)]
            self.logger.debug(f"[{self.name}] Row for {anchor.text}: "
                              f"{[f'{word.x}:{word.text}' for word in row]}")
            rows.append((anchor, row))
        return rows

    def record_unanchored_shipping(self, lines: Sequence[TextLine], data: ParsedInvoiceData,
                                   max_decimals: int = 2) -> None:
        """Shipping lines carrying no product code contribute the invoice shipping fee."""
        for line in lines:
            if not is_shipping_text(line.text):
                continue
            words = split_words(line.items, self.config.points_per_unit)
            if any(self.sku_pattern.match(word.text) for word in words):
                continue
            if not AMOUNT_IN_TEXT_RE.search(line.text):
                continue
            fee = extract_shipping_fee(words, self.config.shipping_min,
                                       self.config.shipping_max, max_decimals)
            self.logger.info(f"[{self.name}] Shipping line '{line.text}' -> {fee}")
            data.invoice_metadata.record_shipping_fee(fee)


# -- row and column helpers ---------------------------------------------------

def reconcile_amounts(sku: str, quantity: Optional[Decimal], unit_price: Optional[Decimal],
                      printed_total: Optional[Decimal],
                      tolerance: Decimal = Decimal('0.02')) -> Tuple[Optional[Decimal], Optional[Decimal], Optional[str]]:
    """
    Returns:
        (unit_price, total, mismatch message or None)
    """
    if quantity is not None and unit_price is not None:
        total = round_money(quantity * unit_price, 2)
        if printed_total is not None and abs(total - printed_total) > tolerance:
            return unit_price, total, (f"{sku}: printed total {printed_total} differs from "
                                       f"{quantity} x {unit_price} = {total}; computed total kept")
        return unit_price, total, None
    if quantity and printed_total is not None:
        return round_money(printed_total / quantity, 4), printed_total, None
    return unit_price, printed_total, None


def same_row(tokens: Iterable[PositionedToken], anchor: PositionedToken,
             tolerance: float = 0.5) -> List[PositionedToken]:
    """Tokens on the anchor's page whose y is within ``tolerance`` of it, left to right."""
    return sorted((token for token in tokens
                   if token.page == anchor.page and abs(token.y - anchor.y) <= tolerance),
                  key=lambda token: token.x)


def split_words(tokens: Iterable[PositionedToken], points_per_unit: float = 16.0,
                default_font_size: float = 8.0) -> List[PositionedToken]:
    """
    Split multi-word runs into one token per word.

    Runs read with blank characters kept may hold several fields ("PZ 15,00").
    Each word gets an x estimated from its character offset in the run, using
    half the font size as the average glyph width.
    """
    words = []
    for token in tokens:
        text = token.text
        if ' ' not in text.strip():
            if text.strip():
                words.append(token.stripped())
            continue
        char_width = (token.font_size or default_font_size) * 0.5 / (points_per_unit or 1.0)
        for match in re.finditer(r'\S+', text):
            words.append(replace(token, x=round(token.x + match.start() * char_width, 3),
                                 text=match.group(0)))
    return words


def find_header_line(lines: Sequence[TextLine],
                     keyword_groups: Sequence[Sequence[str]],
                     start: int = 0) -> Optional[int]:
    """
    Index of the first line containing one keyword of every group.

    Matching is case-insensitive substring containment on the line text.
    """
    for index in range(start, len(lines)):
        upper = lines[index].text.upper()
        if all(any(keyword.upper() in upper for keyword in group) for group in keyword_groups):
            return index
    return None


def thresholds_from_header(line: TextLine, rules: Sequence[LabelRule],
                           header_index: Optional[int] = None) -> ColumnThresholds:
    """
    Record the x position of each recognized header label.

    Rules are tried in order for each label token; the first rule whose
    predicate accepts the lowercase token text names its column. A column
    keeps the first label that claimed it.
    """
    mapping = {}
    for token in sorted(line.items, key=lambda t: t.x):
        label = token.text.strip().lower()
        if not label:
            continue
        for column, predicate in rules:
            if predicate(label):
                mapping.setdefault(column, token.x)
                break
    return ColumnThresholds.from_mapping(mapping, header_index=header_index, source='header')


def infer_thresholds(lines: Sequence[TextLine], sku_pattern: Optional[re.Pattern] = None,
                     sample_size: int = 25) -> ColumnThresholds:
    """
    Infer column positions from the data when no header line exists.

    Rows carrying at least two price-shaped tokens are sampled. The median x
    of the rightmost price is the total column, of the one before it the
    unit price column, and of the integer-shaped token left of the prices the
    quantity column. A SKU column is the median x of the first token when it
    matches ``sku_pattern`` (or looks like a product code).
    """
    code_re = sku_pattern or re.compile(r'^(?=.*\d)[A-Z0-9][A-Z0-9\-_.]{2,}$')
    totals, unit_prices, quantities, skus, descriptions = [], [], [], [], []

    for line in lines:
        if len(totals) >= sample_size:
            break
        tokens = [token.stripped() for token in line.items if token.text.strip()]
        prices = [token for token in tokens if is_price_like(token.text)]
        if len(prices) < 2:
            continue
        totals.append(prices[-1].x)
        unit_prices.append(prices[-2].x)

        left_of_prices = [token for token in tokens if token.x < prices[-2].x]
        integers = [token for token in left_of_prices
                    if is_integer_token(token.text) or token in prices[:-2]]
        if integers:
            quantities.append(integers[-1].x)
        if tokens and code_re.match(tokens[0].text) and not is_price_like(tokens[0].text):
            skus.append(tokens[0].x)
            if len(tokens) > 1:
                descriptions.append(tokens[1].x)

    if not totals:
        return ColumnThresholds(source='inferred')

    mapping = {'total': median(totals), 'unit_price': median(unit_prices)}
    if quantities:
        mapping['quantity'] = median(quantities)
    if skus:
        mapping['sku'] = median(skus)
    if descriptions:
        mapping['description'] = median(descriptions)
    return ColumnThresholds.from_mapping(mapping, source='inferred')


def join_text(parts: Iterable[str]) -> str:
    return ' '.join(' '.join(part.split()) for part in parts if part and part.strip()).strip()


def append_description(item: LineItem, text: str, prepend: bool = False) -> None:
    if not text:
        return
    if prepend:
        item.description = join_text([text, item.description or '']) or None
    else:
        item.description = join_text([item.description or '', text]) or None
