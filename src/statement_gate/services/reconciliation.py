"""Statement reconciliation.

Checks a statement's internal arithmetic over normalized transactions and
produces the verdict that gates export. The checks run in a fixed order,
which only affects the order of flags:

1. Balance identity: opening + sum(amounts) == closing (error, blocking)
2. Running balance continuity per row (warning)
3. Posted date within the statement period per row (warning)

The result is the single source of truth for export readiness. It folds in
the normalizer's flags, so BLOCK means "at least one error anywhere".
Reconciliation is deterministic: equal inputs give equal results, with no
clock, counters or randomness involved.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ..config import ReconciliationConfig
from ..schemas.statement import (
    Severity,
    StatementMetadata,
    Transaction,
    ValidationFlag,
    ValidationResult,
    ValidationStatus,
)
from .normalizer import ZERO

logger = logging.getLogger(__name__)


def _parse_iso_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def count_flagged_rows(flags: Iterable[ValidationFlag]) -> int:
    """Number of distinct rows with at least one flag (statement-level flags excluded)."""
    return len({f.row_id for f in flags if f.row_id is not None})


class StatementReconciler:
    """Runs the reconciliation checks for one configuration.

    Usage:
        reconciler = StatementReconciler(config.reconciliation)
        result = reconciler.reconcile(metadata, normalized, normalization_flags)
    """

    def __init__(self, config: ReconciliationConfig | None = None) -> None:
        self.config = config or ReconciliationConfig()
        self.tolerance = self.config.tolerance

    def reconcile(
        self,
        metadata: StatementMetadata,
        transactions: Sequence[Transaction],
        normalization_flags: Iterable[ValidationFlag] = (),
    ) -> ValidationResult:
        """Reconcile normalized transactions against statement metadata.

        Args:
            metadata: Statement metadata with normalized balances.
            transactions: Normalized transactions in statement order.
            normalization_flags: Flags from the normalizer; they lead the
                returned flag list and take part in the verdict.

        Returns:
            ValidationResult combining normalizer and reconciliation flags.
        """
        flags: list[ValidationFlag] = list(normalization_flags)

        opening = metadata.normalized_opening_balance or ZERO
        closing = metadata.normalized_closing_balance or ZERO

        flags.extend(self._check_balance_identity(opening, closing, transactions))
        flags.extend(self._check_running_balances(opening, transactions))
        flags.extend(self._check_date_range(metadata, transactions))

        has_errors = any(f.severity == Severity.ERROR for f in flags)
        status = ValidationStatus.BLOCK if has_errors else ValidationStatus.PASS

        result = ValidationResult(
            status=status,
            flags=tuple(flags),
            is_reconciled=status == ValidationStatus.PASS,
            total_transactions=len(transactions),
            flagged_rows_count=count_flagged_rows(flags),
        )
        logger.info(
            "Reconciliation %s: %d transactions, %d flags, %d flagged rows",
            result.status.value,
            result.total_transactions,
            len(result.flags),
            result.flagged_rows_count,
        )
        return result

    def _check_balance_identity(
        self,
        opening: Decimal,
        closing: Decimal,
        transactions: Sequence[Transaction],
    ) -> list[ValidationFlag]:
        total = sum((tx.normalized_amount or ZERO for tx in transactions), ZERO)
        computed_closing = opening + total
        difference = computed_closing - closing

        if abs(difference) <= self.tolerance:
            return []

        return [
            ValidationFlag(
                row_id=None,
                severity=Severity.ERROR,
                message=(
                    f"Reconciliation mismatch: opening {opening:.2f} + transactions "
                    f"{total:.2f} = {computed_closing:.2f}, but statement closing balance "
                    f"is {closing:.2f} (difference {difference:+.2f})"
                ),
                field="closingBalance",
                suggested_fix="Check for missing, duplicated or mis-signed transactions",
            )
        ]

    def _check_running_balances(
        self,
        opening: Decimal,
        transactions: Sequence[Transaction],
    ) -> list[ValidationFlag]:
        flags: list[ValidationFlag] = []
        expected = opening

        for tx in transactions:
            expected += tx.normalized_amount or ZERO
            if tx.normalized_balance is None:
                continue
            if abs(expected - tx.normalized_balance) > self.tolerance:
                flags.append(
                    ValidationFlag(
                        row_id=tx.row_id,
                        severity=Severity.WARNING,
                        message=(
                            f"Running balance mismatch: expected {expected:.2f}, "
                            f"statement shows {tx.normalized_balance:.2f}"
                        ),
                        field="runningBalance",
                        suggested_fix="Verify this row's debit/credit against the statement",
                    )
                )

        return flags

    def _check_date_range(
        self,
        metadata: StatementMetadata,
        transactions: Sequence[Transaction],
    ) -> list[ValidationFlag]:
        start = _parse_iso_date(metadata.statement_start_date)
        end = _parse_iso_date(metadata.statement_end_date)
        if start is None or end is None:
            logger.debug("Statement period incomplete; skipping date range check")
            return []

        flags: list[ValidationFlag] = []
        for tx in transactions:
            posted = _parse_iso_date(tx.normalized_date)
            # Rows without a normalized date were already flagged by the normalizer
            if posted is None:
                continue
            if posted < start or posted > end:
                flags.append(
                    ValidationFlag(
                        row_id=tx.row_id,
                        severity=Severity.WARNING,
                        message=(
                            f"Transaction date {tx.normalized_date} outside statement "
                            f"period {start.isoformat()} to {end.isoformat()}"
                        ),
                        field="postedDate",
                        suggested_fix="Confirm the posted date or the statement period",
                    )
                )

        return flags


def reconcile(
    metadata: StatementMetadata,
    transactions: Sequence[Transaction],
    normalization_flags: Iterable[ValidationFlag] = (),
    config: ReconciliationConfig | None = None,
) -> ValidationResult:
    """Reconcile a statement. See StatementReconciler.reconcile."""
    return StatementReconciler(config).reconcile(metadata, transactions, normalization_flags)
