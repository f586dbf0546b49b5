"""
Transaction fingerprints (CRITICAL).

This module defines THE deterministic transaction identity used for
duplicate-import detection and for OFX FITIDs. It is the ONLY way to derive
a transaction hash in the system, and its output is an external contract:
future re-imports compare against hashes computed here.

Hash input, in order, joined with FIELD_SEPARATOR:
- row_id
- normalized_date (YYYY-MM-DD)
- normalized_amount (2 decimal places)
- description (exactly as currently stored, post-edit, untruncated)
- account_last_four

Absent values contribute an empty string. The hash must be:
- Stable: Same inputs always produce same output, across processes
- Sensitive: Changing any one input changes the hash
"""

import hashlib
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from .statement import Transaction

# Separator between hash components
FIELD_SEPARATOR = "|"

# Default OFX FITID width
FITID_LENGTH = 32

# Padding used when a FITID is wider than the digest
FITID_PAD_CHAR = "0"


@dataclass(frozen=True)
class TransactionHash:
    """
    Fingerprint of one transaction plus the values it was derived from.

    Never persisted here; storing hashes for future re-imports is the
    caller's concern.
    """

    row_id: str
    hash: str
    date: str
    amount: Decimal
    description: str
    account_last_four: str

    def to_dict(self) -> dict:
        return {
            "row_id": self.row_id,
            "hash": self.hash,
            "date": self.date,
            "amount": f"{self.amount:.2f}",
            "description": self.description,
            "account_last_four": self.account_last_four,
        }


def _format_amount(amount: Optional[Decimal]) -> str:
    """Amount as a fixed 2-decimal string, or empty when absent."""
    if amount is None:
        return ""
    return f"{amount:.2f}"


def compute_transaction_hash(
    row_id: str,
    normalized_date: Optional[str],
    normalized_amount: Optional[Decimal],
    description: Optional[str],
    account_last_four: Optional[str],
) -> str:
    """
    Compute the deterministic hash for a transaction's identity fields.

    Args:
        row_id: Stable row identifier
        normalized_date: ISO date or None
        normalized_amount: Signed Decimal or None
        description: Current description (not truncated)
        account_last_four: Last four digits of the account number

    Returns:
        64-character lowercase hex SHA256 hash

    Examples:
        >>> compute_transaction_hash("row_1", "2024-01-05", Decimal("-25.00"), "ATM", "1234")
        '...'  # Deterministic hash
    """
    canonical = FIELD_SEPARATOR.join(
        [
            row_id,
            normalized_date or "",
            _format_amount(normalized_amount),
            description or "",
            account_last_four or "",
        ]
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def fingerprint_transaction(transaction: Transaction, account_last_four: str) -> TransactionHash:
    """Fingerprint a normalized transaction."""
    digest = compute_transaction_hash(
        transaction.row_id,
        transaction.normalized_date,
        transaction.normalized_amount,
        transaction.description,
        account_last_four,
    )
    return TransactionHash(
        row_id=transaction.row_id,
        hash=digest,
        date=transaction.normalized_date or "",
        amount=transaction.normalized_amount if transaction.normalized_amount is not None else Decimal("0.00"),
        description=transaction.description or "",
        account_last_four=account_last_four,
    )


def generate_fitid(
    transaction: Transaction,
    account_last_four: str,
    length: int = FITID_LENGTH,
) -> str:
    """
    Generate the OFX FITID for a transaction.

    The fingerprint hash truncated, or right-padded with zeros, to exactly
    `length` characters.
    """
    if length <= 0:
        raise ValueError(f"FITID length must be positive, got: {length}")
    digest = fingerprint_transaction(transaction, account_last_four).hash
    return digest[:length].ljust(length, FITID_PAD_CHAR)


def compute_transaction_hashes(
    transactions: Iterable[Transaction],
    account_last_four: str,
) -> list[TransactionHash]:
    """Fingerprint every transaction of a statement, in order."""
    return [fingerprint_transaction(tx, account_last_four) for tx in transactions]
