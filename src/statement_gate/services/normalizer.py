"""Transaction normalization.

Turns the literal text of extracted rows into canonical values:
- normalized_date: ISO YYYY-MM-DD
- normalized_amount: signed Decimal, debit negative / credit positive
- normalized_balance: Decimal

Bad row data never raises. Problems are returned as ValidationFlag values
next to the normalized rows, and raw fields are never touched.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional

from ..config import NormalizationConfig
from ..schemas.statement import (
    EditableField,
    Severity,
    StatementMetadata,
    Transaction,
    ValidationFlag,
)

logger = logging.getLogger(__name__)

# Rounding precision for currency amounts
CURRENCY_PRECISION = Decimal("0.01")

ZERO = Decimal("0.00")

# Everything except digits, the decimal point and a minus sign is noise
# (currency symbols, thousands separators, whitespace)
_AMOUNT_NOISE = re.compile(r"[^0-9.\-]")


def _is_blank(raw: Optional[str]) -> bool:
    return raw is None or not raw.strip()


def round_currency(value: Decimal) -> Decimal:
    """Round half away from zero to 2 places. Zero is always positive."""
    rounded = value.quantize(CURRENCY_PRECISION, rounding=ROUND_HALF_UP)
    if rounded == 0:
        return ZERO
    return rounded


def parse_amount(raw: Optional[str]) -> Optional[Decimal]:
    """
    Parse amount text into a Decimal, rounded to 2 places.

    Args:
        raw: Amount as extracted, e.g. "$1,234.50" or "250.00"

    Returns:
        Decimal, or None when absent or not a number
    """
    if _is_blank(raw):
        return None
    cleaned = _AMOUNT_NOISE.sub("", raw)
    if not cleaned:
        return None
    try:
        return round_currency(Decimal(cleaned))
    except InvalidOperation:
        return None


def parse_date(raw: Optional[str], formats: Iterable[str]) -> Optional[str]:
    """Parse a posted date with the first matching format.

    Returns:
        ISO date string, or None when absent or unparsable
    """
    if _is_blank(raw):
        return None
    value = raw.strip()
    for fmt in formats:
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    return None


class TransactionNormalizer:
    """Normalizes transactions according to a NormalizationConfig.

    Stateless apart from its configuration; safe to reuse across calls.
    """

    def __init__(self, config: NormalizationConfig | None = None) -> None:
        self.config = config or NormalizationConfig()
        self.unparsable_severity = Severity(self.config.unparsable_amount_severity)
        self.dual_severity = Severity(self.config.dual_amount_severity)

    def normalize(
        self,
        transactions: Iterable[Transaction],
    ) -> tuple[tuple[Transaction, ...], tuple[ValidationFlag, ...]]:
        """Normalize every transaction, preserving order.

        Returns:
            (normalized transactions, normalization flags)
        """
        normalized: list[Transaction] = []
        flags: list[ValidationFlag] = []

        for tx in transactions:
            normalized_date = self._normalize_date(tx, flags)
            amount = self._normalize_amount(tx, flags)
            balance = parse_amount(tx.running_balance)

            normalized.append(
                replace(
                    tx,
                    normalized_date=normalized_date,
                    normalized_amount=amount,
                    normalized_balance=balance,
                )
            )

        logger.debug("Normalized %d transactions, %d flags", len(normalized), len(flags))
        return tuple(normalized), tuple(flags)

    def _normalize_date(self, tx: Transaction, flags: list[ValidationFlag]) -> Optional[str]:
        normalized_date = parse_date(tx.posted_date, self.config.date_formats)
        if normalized_date is not None:
            return normalized_date

        if _is_blank(tx.posted_date):
            message = "Missing posted date"
        else:
            message = f"Invalid date format: {tx.posted_date}"
        flags.append(
            ValidationFlag(
                row_id=tx.row_id,
                severity=Severity.ERROR,
                message=message,
                field=EditableField.POSTED_DATE.value,
                suggested_fix="Enter the posted date as YYYY-MM-DD",
            )
        )
        return None

    def _normalize_amount(self, tx: Transaction, flags: list[ValidationFlag]) -> Decimal:
        amount = ZERO

        debit = self._parse_side(tx, EditableField.DEBIT, flags)
        if debit is not None:
            amount = round_currency(-abs(debit))

        credit = self._parse_side(tx, EditableField.CREDIT, flags)
        if credit is not None:
            # Credit overrides a debit on malformed dual-value rows
            amount = round_currency(abs(credit))
            if debit is not None:
                flags.append(
                    ValidationFlag(
                        row_id=tx.row_id,
                        severity=self.dual_severity,
                        message="Both debit and credit present; credit used",
                        field=EditableField.CREDIT.value,
                        suggested_fix="Clear whichever of debit or credit does not apply",
                    )
                )

        return amount

    def _parse_side(
        self,
        tx: Transaction,
        side: EditableField,
        flags: list[ValidationFlag],
    ) -> Optional[Decimal]:
        raw = tx.get_field(side)
        value = parse_amount(raw)
        if value is None and not _is_blank(raw):
            flags.append(
                ValidationFlag(
                    row_id=tx.row_id,
                    severity=self.unparsable_severity,
                    message=f"Unparsable {side.value} amount: {raw}",
                    field=side.value,
                    suggested_fix=f"Correct the {side.value} amount or clear it",
                )
            )
        return value


def normalize_transactions(
    transactions: Iterable[Transaction],
    config: NormalizationConfig | None = None,
) -> tuple[tuple[Transaction, ...], tuple[ValidationFlag, ...]]:
    """Normalize transactions. See TransactionNormalizer.normalize."""
    return TransactionNormalizer(config).normalize(transactions)


def normalize_metadata(metadata: StatementMetadata) -> StatementMetadata:
    """Fill the normalized balance fields from their raw text."""
    return replace(
        metadata,
        normalized_opening_balance=parse_amount(metadata.opening_balance),
        normalized_closing_balance=parse_amount(metadata.closing_balance),
        normalized_total_debits=parse_amount(metadata.total_debits),
        normalized_total_credits=parse_amount(metadata.total_credits),
    )
