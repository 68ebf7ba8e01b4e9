"""
Bolero invoices (English / Spanish).

Bolero documents come in several layouts, so parsing runs an ordered list
of passes and keeps the first one that yields items:

1. header pass: column thresholds from an English or Spanish header line
2. hyphen pass: ``CODE - description ... qty price total`` lines
3. heuristic pass: column thresholds inferred from the data itself
"""

import re
from typing import Callable, List, Sequence, Tuple

from ..metadata import is_shipping_text
from ..models import LineItem, ParsedInvoiceData, PdfExtractionResult, TextLine
from ..number_utils import parse_price, parse_quantity
from .base import infer_thresholds
from .columns import ColumnLayoutParser


HYPHEN_ROW_RE = re.compile(
    r'^(?P<sku>[A-Z0-9][A-Z0-9.\-/]{2,})\s+-\s+(?P<description>.+?)\s+'
    r'(?P<quantity>-?\d+(?:[.,]\d+)?)\s+'
    r'(?P<unit_price>-?\d{1,3}(?:[.,\s]\d{3})*[.,]\d{2,4})\s+'
    r'(?P<total>-?\d{1,3}(?:[.,\s]\d{3})*[.,]\d{2})'
    r'(?:\s+\d+(?:[.,]\d+)?\s*%)?\s*$'
)

PassResult = List[LineItem]
Pass = Callable[[Sequence[TextLine], ParsedInvoiceData, List[str]], PassResult]


class BoleroParser(ColumnLayoutParser):
    """Cascade of header, hyphen-forward and heuristic passes."""

    name = 'bolero'
    header_groups = (
        ('DESCRIPTION', 'DESCRIPCIÓN', 'DESCRIPCION', 'CONCEPTO'),
        ('QTY', 'QUANTITY', 'CANTIDAD', 'UDS', 'UNITS'),
        ('PRICE', 'PRECIO'),
    )
    label_rules = (
        ('sku', lambda label: label in ('code', 'código', 'codigo', 'ref', 'ref.', 'referencia',
                                        'sku', 'item')),
        ('description', lambda label: label.startswith('descrip') or label == 'concepto'),
        ('quantity', lambda label: label in ('qty', 'quantity', 'cantidad', 'cant.', 'uds', 'ud.',
                                             'units')),
        ('unit_price', lambda label: 'price' in label or 'precio' in label),
        ('total', lambda label: 'amount' in label or 'importe' in label or 'total' in label),
    )
    require_header = False
    sku_pattern = re.compile(r'^(?=.*\d)[A-Z0-9][A-Z0-9\-_./]{2,}$')

    def passes(self) -> Sequence[Tuple[str, Pass]]:
        return (
            ('header', self.header_pass),
            ('hyphen', self.hyphen_pass),
            ('heuristic', self.heuristic_pass),
        )

    def _parse(self, lines: List[TextLine]) -> PdfExtractionResult:
        data = self.new_invoice()
        warnings: List[str] = []
        self.extract_metadata(lines, data)

        for pass_name, run_pass in self.passes():
            pass_warnings: List[str] = []
            try:
                items = run_pass(lines, data, pass_warnings)
            except Exception as e:
                self.logger.warning(f"[{self.name}] {pass_name} pass failed: {e}")
                continue
            if items:
                self.logger.info(f"[{self.name}] {pass_name} pass found {len(items)} items")
                data.line_items = items
                warnings.extend(pass_warnings)
                break
            self.logger.info(f"[{self.name}] {pass_name} pass found no items")

        return self.finish(data, warnings, "No line items parsed for Bolero")

    def header_pass(self, lines: Sequence[TextLine], data: ParsedInvoiceData,
                    warnings: List[str]) -> PassResult:
        thresholds = self.detect_columns(lines)
        if thresholds is None:
            return []
        return self.segment_rows(lines, thresholds, data, warnings)

    def hyphen_pass(self, lines: Sequence[TextLine], data: ParsedInvoiceData,
                    warnings: List[str]) -> PassResult:
        items = []
        for line in lines:
            match = HYPHEN_ROW_RE.match(line.text.strip())
            if not match:
                continue
            sku = match.group('sku')
            description = match.group('description')
            quantity = parse_quantity(match.group('quantity'))
            unit_price = parse_price(match.group('unit_price'), max_decimals=4)
            printed_total = parse_price(match.group('total'))
            if is_shipping_text(description):
                data.invoice_metadata.record_shipping_fee(printed_total)
                continue
            unit_price, total = self.reconcile_amounts(sku, quantity, unit_price, printed_total, warnings)
            items.append(LineItem(supplier_sku=sku, description=description,
                                  quantity=quantity, unit_price=unit_price, total=total))
        return items

    def heuristic_pass(self, lines: Sequence[TextLine], data: ParsedInvoiceData,
                       warnings: List[str]) -> PassResult:
        thresholds = infer_thresholds(lines, self.sku_pattern)
        if thresholds.total is None:
            return []
        self.logger.info(f"[{self.name}] Inferred column thresholds: {thresholds.as_dict()}")
        return self.segment_rows(lines, thresholds, data, warnings)
