"""
Data models for extracted invoice information.

This module defines the data structures passed between the extraction
stages: positioned tokens read from the PDF, assembled text lines, column
thresholds derived from a header, and the parsed invoice envelope returned
to callers.
"""

import json
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import List, Optional, Dict, Any, Iterable, Tuple, Union


Number = Union[Decimal, int, float, str]


def _to_decimal(value: Optional[Number]) -> Optional[Decimal]:
    if value is None or isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (ValueError, ArithmeticError):
        return None


def _json_number(value: Optional[Decimal]) -> Optional[Union[int, float]]:
    """Render a Decimal as an int when integral, otherwise as a float."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass(frozen=True)
class PositionedToken:
    """
    A decoded text run with its position on the page.

    Coordinates are layout units (PDF points divided by the configured
    points-per-unit), with y growing downwards from the top of the page.
    """
    page: int
    x: float
    y: float
    text: str
    font_size: Optional[float] = None
    font_name: Optional[str] = None
    font_style: Optional[str] = None
    font_weight: Optional[str] = None
    # Fill colour as reported by pdfplumber (grey, RGB or CMYK components)
    font_color: Optional[Tuple[Any, ...]] = None

    def stripped(self) -> 'PositionedToken':
        """Return a copy whose text has surrounding whitespace removed."""
        text = self.text.strip()
        if text == self.text:
            return self
        return replace(self, text=text)


@dataclass
class TextLine:
    """
    A horizontal cluster of tokens.

    Attributes:
        y_position: Rounded y value shared by the clustered tokens
        text: Token texts joined by single spaces
        items: Tokens sorted left to right
        page: Page the line belongs to
    """
    y_position: float
    text: str
    items: List[PositionedToken] = field(default_factory=list)
    page: int = 1

    @classmethod
    def from_tokens(cls, tokens: Iterable[PositionedToken], y_position: float,
                    page: int = 1) -> 'TextLine':
        items = sorted(tokens, key=lambda token: token.x)
        text = ' '.join(token.text for token in items).strip()
        return cls(y_position=y_position, text=text, items=items, page=page)


COLUMN_NAMES = ('sku', 'description', 'quantity', 'unit_price', 'total', 'exp_date', 'vat')


@dataclass(frozen=True)
class ColumnThresholds:
    """
    X positions of the semantic columns of an invoice table.

    Instances are produced by header detection (or statistical inference)
    and passed explicitly to the row parsers.
    """
    sku: Optional[float] = None
    description: Optional[float] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    total: Optional[float] = None
    exp_date: Optional[float] = None
    vat: Optional[float] = None
    header_index: Optional[int] = None
    source: str = 'header'

    @classmethod
    def from_mapping(cls, mapping: Dict[str, float], header_index: Optional[int] = None,
                     source: str = 'header') -> 'ColumnThresholds':
        known = {name: mapping[name] for name in COLUMN_NAMES if name in mapping}
        return cls(header_index=header_index, source=source, **known)

    def get(self, column: str) -> Optional[float]:
        return getattr(self, column, None) if column in COLUMN_NAMES else None

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in COLUMN_NAMES
                if getattr(self, name) is not None}

    def is_empty(self) -> bool:
        return not self.as_dict()

    def tokens_near(self, tokens: Iterable[PositionedToken], column: str,
                    window: float) -> List[PositionedToken]:
        """Tokens whose x lies strictly within ``window`` of a column threshold."""
        target = self.get(column)
        if target is None:
            return []
        return sorted((token for token in tokens if abs(token.x - target) < window),
                      key=lambda token: token.x)


@dataclass
class LineItem:
    """
    Represents a single line item from a supplier invoice.

    Attributes:
        supplier_sku: Supplier product code, or a generated pseudo-SKU
        description: Product description (may span several PDF lines)
        quantity: Quantity ordered (negative for returns)
        unit_price: Unit price (negative for discounts)
        total: Line total, normally quantity * unit_price
    """
    supplier_sku: str
    description: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    total: Optional[Decimal] = None

    def __post_init__(self):
        """Normalize numeric fields to Decimal."""
        self.quantity = _to_decimal(self.quantity)
        self.unit_price = _to_decimal(self.unit_price)
        self.total = _to_decimal(self.total)
        if self.description is not None:
            self.description = ' '.join(self.description.split()) or None

    def is_consistent(self, tolerance: Decimal = Decimal('0.02')) -> bool:
        """Check that total matches quantity * unit_price within tolerance."""
        if self.quantity is None or self.unit_price is None or self.total is None:
            return False
        return abs(self.quantity * self.unit_price - self.total) <= tolerance

    def to_dict(self) -> Dict[str, Any]:
        """Convert line item to dictionary for serialization."""
        return {
            'supplierSku': self.supplier_sku,
            'description': self.description,
            'quantity': _json_number(self.quantity),
            'unitPrice': _json_number(self.unit_price),
            'total': _json_number(self.total),
        }


@dataclass
class SupplierInfo:
    name: Optional[str] = None
    address: Optional[str] = None
    vat_number: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'address': self.address, 'vatNumber': self.vat_number}


@dataclass
class InvoiceMetadata:
    """
    Invoice level values.

    Shipping is tracked here, never as a line item, so that allocating it
    across items stays the caller's concern.
    """
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    currency: str = 'EUR'
    shipping_fee: Decimal = Decimal('0')
    subtotal: Optional[Decimal] = None
    total: Optional[Decimal] = None

    def __post_init__(self):
        self.shipping_fee = _to_decimal(self.shipping_fee) or Decimal('0')
        self.subtotal = _to_decimal(self.subtotal)
        self.total = _to_decimal(self.total)

    def record_shipping_fee(self, amount: Optional[Decimal]) -> None:
        """Keep the largest shipping amount seen on the document."""
        if amount is not None and amount > self.shipping_fee:
            self.shipping_fee = amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            'invoiceNumber': self.invoice_number,
            'invoiceDate': self.invoice_date.isoformat() if self.invoice_date else None,
            'currency': self.currency,
            'shippingFee': _json_number(self.shipping_fee),
            'subtotal': _json_number(self.subtotal),
            'total': _json_number(self.total),
        }


@dataclass
class ParsedInvoiceData:
    """
    Represents complete extracted invoice data.

    Attributes:
        supplier_info: Supplier name, address and VAT number when found
        invoice_metadata: Invoice number, date, currency, shipping fee, totals
        line_items: Extracted line items
        raw_text: Line texts kept for manual review (generic parser only)
    """
    supplier_info: SupplierInfo = field(default_factory=SupplierInfo)
    invoice_metadata: InvoiceMetadata = field(default_factory=InvoiceMetadata)
    line_items: List[LineItem] = field(default_factory=list)
    raw_text: Optional[List[str]] = None

    def get_items_total(self) -> Decimal:
        """Sum of all line item totals."""
        return sum((item.total for item in self.line_items if item.total is not None),
                   Decimal('0'))

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'supplierInfo': self.supplier_info.to_dict(),
            'invoiceMetadata': self.invoice_metadata.to_dict(),
            'lineItems': [item.to_dict() for item in self.line_items],
        }
        if self.raw_text is not None:
            data['rawText'] = list(self.raw_text)
        return data

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True, ensure_ascii=False)


@dataclass
class PdfExtractionResult:
    """Uniform envelope returned by every parsing strategy and the orchestrator."""
    success: bool
    data: Optional[ParsedInvoiceData] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, data: ParsedInvoiceData,
           warnings: Optional[List[str]] = None) -> 'PdfExtractionResult':
        return cls(success=True, data=data, warnings=list(warnings or []))

    @classmethod
    def fail(cls, error: str, warnings: Optional[List[str]] = None) -> 'PdfExtractionResult':
        return cls(success=False, error=error, warnings=list(warnings or []))

    @property
    def line_items(self) -> List[LineItem]:
        return self.data.line_items if self.data else []

    def has_items(self) -> bool:
        return self.success and bool(self.line_items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'data': self.data.to_dict() if self.data else None,
            'error': self.error,
            'warnings': list(self.warnings),
        }
