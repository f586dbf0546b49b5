"""
SSOT (Single Source of Truth) schemas for the pipeline.

These canonical schemas are the ONLY models used across all modules.
No duplicated "near-same" models allowed.
"""

from .fingerprint import (
    FIELD_SEPARATOR,
    FITID_LENGTH,
    TransactionHash,
    compute_transaction_hash,
    compute_transaction_hashes,
    fingerprint_transaction,
    generate_fitid,
)
from .statement import (
    EditableField,
    EditRecord,
    Severity,
    StatementMetadata,
    StatementSnapshot,
    Transaction,
    ValidationFlag,
    ValidationResult,
    ValidationStatus,
    statement_from_dict,
)

__all__ = [
    # Statement (canonical pipeline records)
    "Transaction",
    "StatementMetadata",
    "StatementSnapshot",
    "ValidationFlag",
    "ValidationResult",
    "ValidationStatus",
    "Severity",
    "EditableField",
    "EditRecord",
    "statement_from_dict",
    # Fingerprint (dedupe contract)
    "TransactionHash",
    "FIELD_SEPARATOR",
    "FITID_LENGTH",
    "compute_transaction_hash",
    "compute_transaction_hashes",
    "fingerprint_transaction",
    "generate_fitid",
]
