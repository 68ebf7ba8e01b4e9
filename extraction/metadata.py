"""
Invoice-level heuristics shared by the parsing strategies.

Covers invoice dates and numbers, currency detection, footer (totals)
markers, shipping keywords and fee extraction, and pseudo-SKU generation
for suppliers that do not print product codes.
"""

import hashlib
import logging
import re
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from .models import PositionedToken
from .number_utils import is_price_like, parse_price


logger = logging.getLogger(__name__)


# Date patterns, most specific first. Each yields (day, month, year) or
# (year, month, day) groups as named below.
DATE_PATTERNS = [
    ('ymd', re.compile(r'(?:Date|Datum|Fecha)\s*:?\s*(\d{4})-(\d{1,2})-(\d{1,2})', re.IGNORECASE)),
    ('dmy', re.compile(r'(?:Date|Data|Datum|Fecha)(?:\s+de\s+facture)?\s*:?\s*(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})', re.IGNORECASE)),
    ('dmy', re.compile(r'\b(\d{1,2})/(\d{1,2})/(\d{4})\b')),
    ('ymd', re.compile(r'\b(\d{4})-(\d{1,2})-(\d{1,2})\b')),
    ('dmy', re.compile(r'\b(\d{1,2})[.\-](\d{1,2})[.\-](\d{4})\b')),
]

INVOICE_NUMBER_PATTERNS = [
    re.compile(r'\bNo\s*[:.]\s*([A-Z0-9][A-Z0-9\-_/]*)', re.IGNORECASE),
    re.compile(r'\bFacture\s+(?:N[°ºo]\.?|num[ée]ro)\s*:?\s*([A-Z0-9][A-Z0-9\-_/]*)', re.IGNORECASE),
    re.compile(r'\bFactura\s+(?:N[°ºo]\.?|n[úu]mero)?\s*:?\s*([A-Z0-9][A-Z0-9\-_/]*\d[A-Z0-9\-_/]*)', re.IGNORECASE),
    re.compile(r'\bInvoice\s+(?:Number|No\.?|#)?\s*:?\s*([A-Z0-9][A-Z0-9\-_/]*\d[A-Z0-9\-_/]*)', re.IGNORECASE),
    re.compile(r'\bN[°º]\s*:?\s*([A-Z0-9][A-Z0-9\-_/]*\d[A-Z0-9\-_/]*)', re.IGNORECASE),
]

CURRENCY_MARKERS = [
    ('USD', re.compile(r'\$|\bUSD\b')),
    ('GBP', re.compile(r'£|\bGBP\b')),
    ('CHF', re.compile(r'\bCHF\b')),
    ('EUR', re.compile(r'€|\bEUR\b')),
]

SHIPPING_KEYWORDS = (
    'shipping', 'delivery', 'freight', 'spedizione', 'envío', 'envio',
    'livraison', 'transport', 'fracht', 'frais de port', 'frais', 'porto',
    'versand',
)

# Word-start anchored so that "fraise" or "importo" do not count as shipping
SHIPPING_RE = re.compile(
    r'\b(?:shipping|delivery|freight|spedizion[ei]|env[íi]os?\b|livraison|transport'
    r'|fracht|frais\b|porto\b|versand)',
    re.IGNORECASE,
)

FOOTER_RE = re.compile(
    r'^\s*(?:sub\s*-?\s*total|sous[\s-]*total|total|vat|tva|iva|net|r[èe]glement)\b'
    r'|\b(?:total\s+ht|total\s+ttc|total\s+due|net\s+[àa]\s+payer|montant\s+ttc)\b',
    re.IGNORECASE,
)

PSEUDO_SKU_PREFIX = 'GEN-'


def find_invoice_date(texts: Iterable[str]) -> Optional[date]:
    """
    Return the first valid invoice date found in the given line texts.

    Labelled dates ("Date: 2025-02-12") win over bare ones on the same line.
    Impossible dates (31/02) are skipped.
    """
    for text in texts:
        for order, pattern in DATE_PATTERNS:
            for match in pattern.finditer(text):
                if order == 'ymd':
                    year, month, day = match.groups()
                else:
                    day, month, year = match.groups()
                try:
                    return date(int(year), int(month), int(day))
                except ValueError:
                    logger.debug(f"Skipping invalid date candidate '{match.group(0)}'")
    return None


def find_invoice_number(texts: Iterable[str],
                        patterns: Optional[Sequence[re.Pattern]] = None) -> Optional[str]:
    """Return the first label-prefixed invoice number found in the line texts."""
    patterns = patterns or INVOICE_NUMBER_PATTERNS
    for text in texts:
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                return match.group(1).strip('-_/')
    return None


def detect_currency(texts: Iterable[str], default: str = 'EUR') -> str:
    """
    Return the currency implied by the document's symbols.

    The default wins whenever its own symbol appears; another currency is
    reported only when its symbol appears and the default's does not.
    """
    seen = set()
    for text in texts:
        for code, pattern in CURRENCY_MARKERS:
            if pattern.search(text):
                seen.add(code)
    if not seen or default in seen:
        return default
    for code, _ in CURRENCY_MARKERS:
        if code in seen:
            return code
    return default


def is_footer_line(text: str) -> bool:
    """True for summary lines (subtotal, totals, VAT, payment terms)."""
    return bool(FOOTER_RE.search(text or ''))


def is_shipping_text(text: Optional[str]) -> bool:
    """True when the text mentions shipping in any supported language."""
    if not text:
        return False
    return bool(SHIPPING_RE.search(text))


def _merge_currency_fragments(tokens: Sequence[PositionedToken]) -> List[PositionedToken]:
    """Glue a detached currency symbol to the amount that follows it ("€" "6,00")."""
    merged: List[PositionedToken] = []
    for token in sorted(tokens, key=lambda t: t.x):
        text = token.text.strip()
        if merged and merged[-1].text.strip() in ('€', '$', '£', 'EUR'):
            previous = merged.pop()
            merged.append(PositionedToken(token.page, previous.x, token.y,
                                          f"{previous.text.strip()} {text}"))
        else:
            merged.append(token)
    return merged


def extract_shipping_fee(tokens: Sequence[PositionedToken],
                         minimum: Decimal = Decimal('10'),
                         maximum: Decimal = Decimal('200'),
                         max_decimals: int = 2) -> Optional[Decimal]:
    """
    Pick the shipping amount printed on a shipping line.

    The rightmost price-shaped token wins. When no token is price-shaped the
    largest plain number inside the plausible range is used instead.
    """
    candidates = []
    for token in _merge_currency_fragments(tokens):
        text = re.sub(r'^(?:€|\$|£|EUR)\s*', '', token.text.strip())
        text = re.sub(r'\s*(?:€|EUR)$', '', text)
        if is_price_like(text):
            value = parse_price(text, max_decimals=max_decimals)
            if value is not None and value > 0:
                candidates.append((token.x, value))
    if candidates:
        return max(candidates, key=lambda candidate: candidate[0])[1]

    plausible = []
    for token in tokens:
        for number in re.findall(r'\d+(?:[.,]\d+)?', token.text):
            value = parse_price(number, max_decimals=4)
            if value is not None and minimum <= value <= maximum:
                plausible.append(value)
    return max(plausible) if plausible else None


def normalize_description(description: str) -> str:
    return ' '.join((description or '').split()).upper()


def generate_pseudo_sku(description: str, tag: Optional[str] = None) -> str:
    """
    Build a deterministic SKU for a product printed without a code.

    The code is ``GEN-`` (plus an optional supplier tag) followed by the first
    12 hex digits of the SHA-256 of the normalized description, so identical
    descriptions always map to the same code.
    """
    digest = hashlib.sha256(normalize_description(description).encode('utf-8')).hexdigest()
    prefix = PSEUDO_SKU_PREFIX + (f"{tag.upper()}-" if tag else '')
    return f"{prefix}{digest[:12].upper()}"


def is_pseudo_sku(sku: Optional[str]) -> bool:
    return bool(sku) and sku.startswith(PSEUDO_SKU_PREFIX)
