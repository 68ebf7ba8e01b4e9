"""
Configuration for the extraction engine.

Values default to the constants the parsers were tuned against and can be
overridden through ``INVOICE_PARSER_*`` environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional, Tuple


logger = logging.getLogger(__name__)

ENV_PREFIX = 'INVOICE_PARSER_'

DEFAULT_PINNED_SUPPLIERS = ('yamamoto', 'iaf', 'swanson', 'rabeko')


def _parse_suppliers(value: str) -> Tuple[str, ...]:
    return tuple(part.strip().lower() for part in value.split(',') if part.strip())


@dataclass(frozen=True)
class ExtractionConfig:
    """
    Tunable values shared by the extractor, the strategies and the orchestrator.

    Attributes:
        line_tolerance: Vertical clustering tolerance for lines (layout units)
        points_per_unit: PDF points per layout unit
        default_currency: Currency reported when no symbol says otherwise
        price_tolerance: Allowed gap between printed and computed totals
        shipping_min: Lower bound of a plausible shipping fee
        shipping_max: Upper bound of a plausible shipping fee
        table_backend_timeout: Seconds before the table backend is killed
        pinned_table_suppliers: Supplier name fragments that always use tables
    """
    line_tolerance: float = 0.5
    points_per_unit: float = 16.0
    default_currency: str = 'EUR'
    price_tolerance: Decimal = Decimal('0.02')
    shipping_min: Decimal = Decimal('10')
    shipping_max: Decimal = Decimal('200')
    table_backend_timeout: float = 120.0
    pinned_table_suppliers: Tuple[str, ...] = field(default=DEFAULT_PINNED_SUPPLIERS)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'ExtractionConfig':
        """
        Build a configuration from environment variables.

        Invalid values are logged and replaced by the defaults.
        """
        environ = os.environ if environ is None else environ
        converters: Dict[str, Tuple[str, Callable[[str], object]]] = {
            'line_tolerance': ('LINE_TOLERANCE', float),
            'points_per_unit': ('POINTS_PER_UNIT', float),
            'default_currency': ('CURRENCY', lambda value: value.strip().upper()),
            'price_tolerance': ('PRICE_TOLERANCE', Decimal),
            'shipping_min': ('SHIPPING_MIN', Decimal),
            'shipping_max': ('SHIPPING_MAX', Decimal),
            'table_backend_timeout': ('TABLE_TIMEOUT', float),
            'pinned_table_suppliers': ('PINNED_SUPPLIERS', _parse_suppliers),
        }

        values = {}
        for attr, (suffix, convert) in converters.items():
            raw = environ.get(ENV_PREFIX + suffix)
            if raw is None or raw.strip() == '':
                continue
            try:
                values[attr] = convert(raw)
            except (ValueError, InvalidOperation) as e:
                logger.warning(f"Ignoring invalid {ENV_PREFIX + suffix}={raw!r}: {e}")

        return cls(**values)


def get_config() -> ExtractionConfig:
    """Return the configuration for the current environment."""
    return ExtractionConfig.from_env()
