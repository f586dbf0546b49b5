"""
Pipeline services: normalization, reconciliation and the document gate.
"""

from .document_gate import DocumentGateResult, validate_document
from .normalizer import (
    TransactionNormalizer,
    normalize_metadata,
    normalize_transactions,
    parse_amount,
    parse_date,
)
from .reconciliation import StatementReconciler, count_flagged_rows, reconcile

__all__ = [
    "DocumentGateResult",
    "StatementReconciler",
    "TransactionNormalizer",
    "count_flagged_rows",
    "normalize_metadata",
    "normalize_transactions",
    "parse_amount",
    "parse_date",
    "reconcile",
    "validate_document",
]
