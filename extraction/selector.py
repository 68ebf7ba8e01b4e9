"""
Supplier name to parsing strategy mapping.

Selection is a case-insensitive substring match against an ordered table;
the first matching fragment wins and unknown suppliers get the generic
parser.
"""

import logging
from typing import Optional, Sequence, Tuple, Type

from .config import ExtractionConfig, get_config
from .strategies import (
    AddictParser,
    BoleroParser,
    GenericParser,
    InvoiceParser,
    MaiavieParser,
    SwansonParser,
    YamamotoParser,
)


logger = logging.getLogger(__name__)

SUPPLIER_PARSERS: Sequence[Tuple[str, Type[InvoiceParser]]] = (
    ('yamamoto', YamamotoParser),
    ('iaf', YamamotoParser),
    ('bolero', BoleroParser),
    ('swanson', SwansonParser),
    ('addict', AddictParser),
    ('maiavie', MaiavieParser),
)


def parser_class_for(supplier_name: Optional[str]) -> Type[InvoiceParser]:
    normalized = (supplier_name or '').lower()
    for fragment, parser_class in SUPPLIER_PARSERS:
        if fragment in normalized:
            return parser_class
    return GenericParser


def select_parser(supplier_name: Optional[str],
                  config: Optional[ExtractionConfig] = None,
                  parser_logger: Optional[logging.Logger] = None) -> InvoiceParser:
    """
    Return a parser instance for the supplier.

    Args:
        supplier_name: Free-text supplier name ("IAF Network srl", "Bolero")
        config: Configuration handed to the parser
        parser_logger: Optional logger for the parser

    Returns:
        A fresh strategy instance; the generic parser when nothing matches
    """
    parser_class = parser_class_for(supplier_name)
    logger.info(f"Selected {parser_class.__name__} for supplier '{supplier_name}'")
    return parser_class(config=config, logger=parser_logger)


def requires_table_backend(supplier_name: Optional[str],
                           config: Optional[ExtractionConfig] = None) -> bool:
    """True when the supplier is pinned to table extraction."""
    config = config or get_config()
    normalized = (supplier_name or '').lower()
    return any(fragment in normalized for fragment in config.pinned_table_suppliers)
