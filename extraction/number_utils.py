"""
Locale-tolerant number parsing for invoice amounts.

Suppliers print amounts with either a comma or a period as the decimal
separator and may use the other one (or spaces) for thousands grouping.
Everything here returns ``Decimal`` so that computed totals do not drift.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union


CURRENCY_SYMBOLS_RE = re.compile(r'[€$£¥%]|\bEUR\b|\bUSD\b|\bGBP\b|\bCHF\b', re.IGNORECASE)

# 123,45 / 1.234,56 / 1,234.56 / -0,31 / 2 478,42
PRICE_RE = re.compile(r'^-?\d{1,3}(?:[\s.,]\d{3})*[.,]\d{2,}$')
SIMPLE_PRICE_RE = re.compile(r'^-?\d+[.,]\d{2,}$')
STRICT_PRICE_RE = re.compile(r'^-?\d{1,3}(?:[.,]\d{3})*[.,]\d{2}$')
INTEGER_RE = re.compile(r'^-?\d+$')
NUMBER_RE = re.compile(r'^-?\d+(?:[.,]\d+)?$')

TWO_PLACES = Decimal('0.01')


def quantizer(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def round_money(value: Union[Decimal, int], places: int = 2) -> Decimal:
    """Round a computed amount half-up to ``places`` decimals."""
    return Decimal(value).quantize(quantizer(places), rounding=ROUND_HALF_UP)


def is_price_like(text: Optional[str]) -> bool:
    """True for tokens shaped like an amount with decimals, spaces allowed as grouping."""
    if not text:
        return False
    text = text.strip()
    return bool(PRICE_RE.match(text) or SIMPLE_PRICE_RE.match(text))


def is_strict_price(text: Optional[str]) -> bool:
    """True for amounts with exactly two decimals and optional thousands groups."""
    return bool(text) and bool(STRICT_PRICE_RE.match(text.strip()))


def is_integer_token(text: Optional[str]) -> bool:
    return bool(text) and bool(INTEGER_RE.match(text.strip()))


def is_number_token(text: Optional[str]) -> bool:
    return bool(text) and bool(NUMBER_RE.match(text.strip()))


def normalize_number_text(text: str, max_decimals: int = 2) -> Optional[str]:
    """
    Turn a localized number into a plain ``-1234.56`` string.

    Rules:
        - both separators present: the rightmost one is the decimal point
        - a single separator is decimal when followed by exactly 2 digits
          (1 to ``max_decimals`` digits when more precision is allowed),
          otherwise it groups thousands
        - whitespace between digit groups is thousands grouping

    Returns:
        Normalized string, or None when the text is not a number
    """
    cleaned = CURRENCY_SYMBOLS_RE.sub('', text or '').strip()
    negative = cleaned.startswith('-')
    if negative:
        cleaned = cleaned[1:].strip()
    elif cleaned.endswith('-'):
        # Some ERPs print credit amounts as "12,50-"
        negative = True
        cleaned = cleaned[:-1].strip()
    cleaned = re.sub(r'(?<=\d)\s+(?=\d)', '', cleaned)

    if not cleaned or not re.fullmatch(r'[\d.,]+', cleaned) or not re.search(r'\d', cleaned):
        return None

    last_comma = cleaned.rfind(',')
    last_period = cleaned.rfind('.')

    if last_comma >= 0 and last_period >= 0:
        decimal_sep = ',' if last_comma > last_period else '.'
        thousands_sep = '.' if decimal_sep == ',' else ','
        integer_part, _, fraction = cleaned.rpartition(decimal_sep)
        integer_part = integer_part.replace(thousands_sep, '')
        if decimal_sep in integer_part:
            return None
        normalized = f"{integer_part or '0'}.{fraction}"
    elif last_comma >= 0 or last_period >= 0:
        sep = ',' if last_comma >= 0 else '.'
        parts = cleaned.split(sep)
        fraction = parts[-1]
        if max_decimals > 2:
            is_decimal = len(parts) == 2 and 1 <= len(fraction) <= max_decimals
        else:
            is_decimal = len(parts) == 2 and len(fraction) == 2
        if is_decimal:
            normalized = f"{parts[0] or '0'}.{fraction}"
        else:
            normalized = ''.join(parts)
    else:
        normalized = cleaned

    if not re.fullmatch(r'\d+(\.\d+)?', normalized):
        return None
    return f"-{normalized}" if negative else normalized


def parse_price(text: Optional[str], max_decimals: int = 2) -> Optional[Decimal]:
    """
    Parse a localized amount into a Decimal rounded to ``max_decimals`` places.

    >>> parse_price('1.234,56')
    Decimal('1234.56')
    >>> parse_price('-0,31')
    Decimal('-0.31')
    """
    if text is None:
        return None
    normalized = normalize_number_text(text, max_decimals=max_decimals)
    if normalized is None:
        return None
    try:
        return round_money(Decimal(normalized), max_decimals)
    except InvalidOperation:
        return None


def parse_quantity(text: Optional[str]) -> Optional[Decimal]:
    """
    Parse a quantity such as ``15``, ``15,00`` or ``2,5``.

    Quantities are short numbers, so a single separator is always decimal
    unless it groups exactly three digits after a leading group ("1.000").
    Integral values come back without a fractional part.
    """
    if text is None:
        return None
    cleaned = re.sub(r'\s+', '', text.strip())
    if cleaned.upper().startswith('PZ'):
        cleaned = cleaned[2:]
    if not cleaned:
        return None

    if re.fullmatch(r'-?\d{1,3}([.,])\d{3}', cleaned) and not re.fullmatch(r'-?0[.,]\d{3}', cleaned):
        normalized = normalize_number_text(cleaned, max_decimals=2)
    elif cleaned.count(',') + cleaned.count('.') > 1:
        normalized = normalize_number_text(cleaned, max_decimals=2)
    else:
        normalized = cleaned.replace(',', '.')

    if normalized is None or not re.fullmatch(r'-?\d+(\.\d+)?', normalized):
        return None
    value = Decimal(normalized)
    if value == value.to_integral_value():
        return value.quantize(Decimal(1))
    return value.normalize()
