"""
Turns tables found by the table backend into invoice data.

Three table shapes are recognised, tried in order:

- multi-line layout: a header row plus one data row whose cells hold every
  item of the page separated by newlines (Yamamoto / IAF Network)
- Rabeko layout: French ``Description / Quantité / Unitaire / Total``
  columns and no product codes
- any other table: columns mapped from English or French header labels,
  or inferred from the cell contents when the header says too little
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from .config import ExtractionConfig, get_config
from .metadata import (
    detect_currency,
    extract_shipping_fee,
    find_invoice_date,
    find_invoice_number,
    generate_pseudo_sku,
    is_footer_line,
    is_shipping_text,
)
from .models import InvoiceMetadata, LineItem, ParsedInvoiceData, PdfExtractionResult, PositionedToken
from .number_utils import parse_price, parse_quantity
from .strategies.base import reconcile_amounts


NO_TABLES_ERROR = "No tables found in PDF using table extraction"

MULTILINE_SKU_RE = re.compile(r'^(?:IAF|FITT|YAM)[A-Z0-9]*\d+')
KNOWN_SKU_RE = re.compile(r'^(?:IAF|FITT|YAM|SW)[A-Z0-9]*\d+')
GENERIC_CODE_RE = re.compile(r'^[A-Za-z0-9\-_.]{3,}$')
QUANTITY_CELL_RE = re.compile(r'^\d+(?:[.,]\d+)?$')
PRICE_CELL_RE = re.compile(r'^-?\d+[.,]\d{2,}$|^€?\s*-?\d+[.,]?\d*$')

RABEKO_PRODUCTS = ('zero confiture', 'sirop zero', 'sauce zero', 'choco sirop', 'salted caramel')

# Positions of the multi-line layout columns
MULTILINE_COLUMNS = {'sku': 0, 'description': 1, 'unit': 2, 'quantity': 3,
                     'unit_price': 4, 'discount': 5, 'total': 6, 'vat': 7}


def _cell(row: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ''
    return row[index]


def _clean_rows(rows: Any) -> List[List[str]]:
    return [[str(cell).strip() if cell is not None else '' for cell in row]
            for row in (rows or []) if isinstance(row, (list, tuple))]


def header_column(label: str) -> Optional[str]:
    """Semantic column named by a header label (English or French), if any."""
    label = label.lower().strip()
    if not label:
        return None
    if 'exp' in label and 'date' in label:
        return 'exp_date'
    if ('sku' in label or 'code' in label or 'réf' in label or label.startswith('ref')
            or ('item' in label and 'desc' not in label)):
        return 'sku'
    if any(key in label for key in ('description', 'libell', 'signation', 'product', 'name')):
        return 'description'
    if 'qty' in label or 'quant' in label or label in ('q.', 'qté', 'qte') or label.startswith('q '):
        return 'quantity'
    if ('unit' in label and ('price' in label or 'prix' in label)) or 'unitaire' in label \
            or label in ('pu', 'p.u.', 'p.u', 'price', 'prix', 'precio'):
        return 'unit_price'
    if any(key in label for key in ('amount', 'total', 'prix ht', 'montant')):
        return 'total'
    if label in ('tva', 'vat', 'iva') or label.startswith('tva'):
        return 'vat'
    return None


def identify_columns(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> Dict[str, int]:
    """
    Map semantic columns to cell indexes.

    Header labels are used first; when fewer than three columns are
    recognised the rest are inferred from the first rows' contents.
    """
    column_map: Dict[str, int] = {}
    for index, header in enumerate(headers):
        column = header_column(header)
        if column:
            column_map.setdefault(column, index)

    if len(column_map) < 3:
        infer_columns_from_data(rows, column_map)
    return column_map


def infer_columns_from_data(rows: Sequence[Sequence[str]], column_map: Dict[str, int],
                            sample_size: int = 5) -> None:
    """
    Fill unmapped columns from the shape of their values.

    A column is a SKU column when 60% of the sampled values look like
    product codes, a quantity column when 80% are plain numbers, and a price
    column when 60% are amounts (the first such column is the unit price,
    the second the total).
    """
    if not rows:
        return
    sample = rows[:sample_size]
    column_count = max(len(row) for row in sample)

    for col in range(column_count):
        if col in column_map.values():
            continue
        values = [row[col] for row in sample if col < len(row) and row[col]]
        if not values:
            continue

        known = [value for value in values if KNOWN_SKU_RE.match(value)]
        if len(known) >= len(values) * 0.6:
            column_map.setdefault('sku', col)
            continue
        codes = [value for value in values
                 if GENERIC_CODE_RE.match(value) and not value.isdigit()
                 and not QUANTITY_CELL_RE.match(value)]
        if 'sku' not in column_map and len(codes) >= len(values) * 0.6:
            column_map['sku'] = col
            continue

        quantities = [value for value in values if QUANTITY_CELL_RE.match(value)]
        if 'quantity' not in column_map and len(quantities) >= len(values) * 0.8:
            column_map['quantity'] = col
            continue

        prices = [value for value in values if PRICE_CELL_RE.match(value)]
        if len(prices) >= len(values) * 0.6:
            if 'unit_price' not in column_map:
                column_map['unit_price'] = col
            elif 'total' not in column_map:
                column_map['total'] = col


def is_multiline_layout(rows: Sequence[Sequence[str]]) -> bool:
    """A header row plus a single row with newline-separated values in 3+ cells."""
    if len(rows) != 2:
        return False
    return sum(1 for cell in rows[1][:8] if '\n' in cell) >= 3


def is_rabeko_layout(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> bool:
    if len(headers) >= 4:
        header_text = ' '.join(headers).lower()
        if all(key in header_text for key in ('description', 'quantité', 'unitaire', 'total')):
            return True
    for row in rows[1:5]:
        if len(row) >= 4 and any(product in row[0].lower() for product in RABEKO_PRODUCTS):
            return True
    return False


def is_swanson_table(headers: Sequence[str]) -> bool:
    return any('exp. date' in header.lower() or 'unit price' in header.lower() for header in headers)


class TableInterpreter:
    """
    Convert backend tables into a :class:`PdfExtractionResult`.

    Totals are recomputed from quantity x unit price like in the line
    strategies; printed totals that disagree become warnings. Shipping rows
    feed the invoice shipping fee and are never returned as items.
    """

    def __init__(self, supplier_name: Optional[str] = None,
                 config: Optional[ExtractionConfig] = None,
                 logger: Optional[logging.Logger] = None):
        self.supplier_name = supplier_name
        self.config = config or get_config()
        self.logger = logger or logging.getLogger(__name__)

    def interpret(self, tables: Optional[Sequence[Dict[str, Any]]]) -> PdfExtractionResult:
        if not tables:
            return PdfExtractionResult.fail(NO_TABLES_ERROR)

        self.logger.info(f"[TABLES] Interpreting {len(tables)} tables for '{self.supplier_name}'")
        data = ParsedInvoiceData(invoice_metadata=InvoiceMetadata(currency=self.config.default_currency))
        warnings: List[str] = []

        for number, table in enumerate(tables, 1):
            try:
                items = self.interpret_table(table, data, warnings)
            except Exception as e:
                self.logger.warning(f"[TABLES] Skipping table {number}: {e}")
                continue
            self.logger.info(f"[TABLES] Table {number}: {len(items)} line items")
            data.line_items.extend(items)

        self.extract_metadata(tables, data)
        if not data.line_items:
            warnings.append("No line items found in extracted tables")
        self.logger.info(f"[TABLES] {len(data.line_items)} line items, "
                         f"shipping fee {data.invoice_metadata.shipping_fee}")
        return PdfExtractionResult.ok(data, warnings)

    def interpret_table(self, table: Dict[str, Any], data: ParsedInvoiceData,
                        warnings: List[str]) -> List[LineItem]:
        rows = _clean_rows(table.get('data'))
        headers = [str(header).strip() for header in (table.get('headers') or [])]
        if not rows:
            return []

        if is_multiline_layout(rows):
            self.logger.info("[TABLES] Detected multi-line layout")
            return self.parse_multiline(rows, data, warnings)
        if is_rabeko_layout(headers, rows):
            self.logger.info("[TABLES] Detected Rabeko layout")
            return self.parse_rabeko(rows, headers, data, warnings)

        column_map = identify_columns(headers, rows)
        max_decimals = 4 if is_swanson_table(headers) else 2
        self.logger.debug(f"[TABLES] Column map: {column_map}")

        items = []
        for index, row in enumerate(rows):
            if index == 0 and [cell.lower() for cell in row] == [header.lower() for header in headers]:
                continue
            row_text = ' '.join(cell for cell in row if cell)
            if is_shipping_text(row_text):
                data.invoice_metadata.record_shipping_fee(self.shipping_fee(row, column_map))
                continue
            if is_footer_line(row_text):
                continue
            item = self.parse_row(row, column_map, max_decimals, warnings)
            if item is not None:
                items.append(item)
        return items

    def parse_row(self, row: Sequence[str], column_map: Dict[str, int], max_decimals: int,
                  warnings: List[str], pseudo_sku_tag: Optional[str] = None) -> Optional[LineItem]:
        sku = _cell(row, column_map.get('sku'))
        description = _cell(row, column_map.get('description'))
        quantity = parse_quantity(_cell(row, column_map.get('quantity')) or None)
        unit_price = parse_price(_cell(row, column_map.get('unit_price')) or None, max_decimals)
        printed_total = parse_price(_cell(row, column_map.get('total')) or None, max_decimals)

        if not sku and description and quantity:
            sku = generate_pseudo_sku(description, pseudo_sku_tag)
        if not sku or not quantity:
            return None

        unit_price, total, mismatch = reconcile_amounts(sku, quantity, unit_price, printed_total,
                                                        self.config.price_tolerance)
        if mismatch:
            self.logger.warning(f"[TABLES] {mismatch}")
            warnings.append(mismatch)
        return LineItem(supplier_sku=sku, description=description or None,
                        quantity=quantity, unit_price=unit_price, total=total)

    def parse_multiline(self, rows: Sequence[Sequence[str]], data: ParsedInvoiceData,
                        warnings: List[str]) -> List[LineItem]:
        """Split the newline-packed cells and zip them back into rows."""
        cells = rows[1]

        def column(name: str) -> List[str]:
            return [part.strip() for part in _cell(cells, MULTILINE_COLUMNS[name]).split('\n')]

        skus = column('sku')
        quantities = column('quantity')
        unit_prices = column('unit_price')
        totals = column('total')
        descriptions = merge_tariff_lines(column('description'))

        items = []
        for index in range(min(len(skus), len(quantities), len(unit_prices), len(totals))):
            sku = skus[index]
            if not MULTILINE_SKU_RE.match(sku):
                self.logger.debug(f"[TABLES] Skipping invalid SKU: {sku}")
                continue
            quantity = parse_quantity(quantities[index])
            unit_price = parse_price(unit_prices[index], max_decimals=4)
            if quantity is None or unit_price is None:
                self.logger.debug(f"[TABLES] Skipping {sku}: qty={quantities[index]}, "
                                  f"price={unit_prices[index]}")
                continue
            description = descriptions[index] if index < len(descriptions) else ''
            printed_total = parse_price(totals[index], max_decimals=4)

            unit_price, total, mismatch = reconcile_amounts(sku, quantity, unit_price, printed_total,
                                                            self.config.price_tolerance)
            if mismatch:
                warnings.append(mismatch)
            if is_shipping_text(description):
                data.invoice_metadata.record_shipping_fee(total)
                continue
            items.append(LineItem(supplier_sku=sku, description=description or None,
                                  quantity=quantity, unit_price=unit_price, total=total))
        return items

    def parse_rabeko(self, rows: Sequence[Sequence[str]], headers: Sequence[str],
                     data: ParsedInvoiceData, warnings: List[str]) -> List[LineItem]:
        column_map: Dict[str, int] = {}
        for index, header in enumerate(headers):
            label = header.lower()
            if 'description' in label:
                column_map.setdefault('description', index)
            elif 'quantité' in label:
                column_map.setdefault('quantity', index)
            elif 'unitaire' in label:
                column_map.setdefault('unit_price', index)
            elif 'tva' in label:
                column_map.setdefault('vat', index)
            elif 'total' in label:
                column_map.setdefault('total', index)
        column_map.setdefault('description', 0)

        items = []
        for row in rows[1:]:
            description = _cell(row, column_map.get('description'))
            if not description or is_footer_line(description):
                continue
            if is_shipping_text(description):
                data.invoice_metadata.record_shipping_fee(self.shipping_fee(row, column_map))
                continue

            quantity = parse_quantity(_cell(row, column_map.get('quantity')) or None) or 1
            unit_price = parse_price(_cell(row, column_map.get('unit_price')) or None, max_decimals=4)
            printed_total = parse_price(_cell(row, column_map.get('total')) or None, max_decimals=4)
            if not unit_price and not printed_total:
                continue

            sku = generate_pseudo_sku(description, 'RABEKO')
            unit_price, total, mismatch = reconcile_amounts(sku, quantity, unit_price, printed_total,
                                                            self.config.price_tolerance)
            if mismatch:
                warnings.append(mismatch)
            items.append(LineItem(supplier_sku=sku, description=description,
                                  quantity=quantity, unit_price=unit_price, total=total))
        return items

    def shipping_fee(self, row: Sequence[str], column_map: Dict[str, int]):
        """Fee of a shipping row: the total cell when it parses, else the row's amounts."""
        total_cell = _cell(row, column_map.get('total'))
        fee = parse_price(re.sub(r'[€\s]', '', total_cell) or None)
        if fee is not None and fee > 0:
            return fee
        cells = [PositionedToken(page=1, x=float(index), y=0.0, text=cell)
                 for index, cell in enumerate(row) if cell and not is_shipping_text(cell)]
        return extract_shipping_fee(cells, self.config.shipping_min, self.config.shipping_max)

    def extract_metadata(self, tables: Sequence[Dict[str, Any]], data: ParsedInvoiceData) -> None:
        """Invoice date, number and currency scraped from every cell."""
        texts = [cell for table in tables for row in _clean_rows(table.get('data'))
                 for cell in row if cell]
        metadata = data.invoice_metadata
        metadata.invoice_date = find_invoice_date(texts)
        metadata.invoice_number = find_invoice_number(texts)
        metadata.currency = detect_currency(texts, default=self.config.default_currency)


def merge_tariff_lines(descriptions: Sequence[str]) -> List[str]:
    """Append customs tariff lines to the product line above them."""
    merged: List[str] = []
    for line in descriptions:
        lowered = line.lower()
        if merged and ('tariff' in lowered or 'custom' in lowered):
            merged[-1] = f"{merged[-1]} {line}".strip()
        elif line:
            merged.append(line)
    return merged
