"""
Maiavie invoices (French).

Products are usually listed without a reference, so rows are identified by
description and amounts and receive a generated ``GEN-MAIAVIE-...`` code.
"Frais de port" lines carry the shipping fee.
"""

from .columns import ColumnLayoutParser


class MaiavieParser(ColumnLayoutParser):
    """Column-threshold strategy for Maiavie invoices. A header is required."""

    name = 'maiavie'
    header_groups = (
        ('DÉSIGNATION', 'DESIGNATION'),
        ('QTÉ', 'QTE', 'QUANTITÉ', 'QUANTITE'),
        ('P.U', 'PRIX UNITAIRE', 'PU HT'),
    )
    header_labels = ('Désignation', 'Qté', 'P.U.')
    label_rules = (
        ('sku', lambda label: label.startswith('réf') or label.startswith('ref') or label == 'code'),
        ('description', lambda label: 'signation' in label),
        ('quantity', lambda label: label.startswith('qt') or 'quantit' in label),
        ('unit_price', lambda label: label.startswith('p.u') or label.startswith('pu')
                                     or 'unitaire' in label),
        ('total', lambda label: 'montant' in label or 'total' in label),
    )
    require_header = True
    pseudo_sku_tag = 'MAIAVIE'
