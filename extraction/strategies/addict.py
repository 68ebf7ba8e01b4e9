"""
Addict invoices (French).

The table header reads ``Réf. Libellé Q. PU Prix HT``; rows are segmented
from the x positions of those labels. Long product names wrap onto extra
lines that carry no amounts.
"""

from .columns import ColumnLayoutParser


def _is_quantity_label(label: str) -> bool:
    return label in ('q', 'q.', 'qté', 'qte') or label.startswith('q ') or 'quant' in label


def _is_unit_price_label(label: str) -> bool:
    return label in ('pu', 'p.u', 'p.u.') or ('unit' in label and 'prix' in label)


class AddictParser(ColumnLayoutParser):
    """Column-threshold strategy for Addict invoices. A header is required."""

    name = 'addict'
    header_groups = (
        ('LIBELL',),
        ('PU', 'P.U'),
        ('PRIX HT', 'MONTANT HT', 'TOTAL HT'),
    )
    header_labels = ('Libellé', 'PU', 'Prix HT')
    label_rules = (
        ('sku', lambda label: 'réf' in label or label == 'ref' or label == 'ref.' or 'code' in label),
        ('description', lambda label: 'libell' in label),
        ('quantity', _is_quantity_label),
        ('unit_price', _is_unit_price_label),
        ('total', lambda label: 'prix ht' in label or 'montant ht' in label or 'total' in label),
    )
    require_header = True
