"""Supplier parsing strategies."""

from .addict import AddictParser
from .base import InvoiceParser
from .bolero import BoleroParser
from .generic import GenericParser
from .maiavie import MaiavieParser
from .swanson import SwansonParser
from .yamamoto import YamamotoParser

__all__ = [
    'InvoiceParser',
    'YamamotoParser',
    'SwansonParser',
    'AddictParser',
    'BoleroParser',
    'MaiavieParser',
    'GenericParser',
]
