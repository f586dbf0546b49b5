"""Tests for statement reconciliation.

These tests verify:
- Balance identity check and the BLOCK verdict it drives
- Running balance and date range warnings (never blocking)
- Normalizer flags folded into the verdict, in front
- Deterministic, idempotent results
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from statement_gate.config import ReconciliationConfig
from statement_gate.schemas.statement import (
    Severity,
    StatementMetadata,
    Transaction,
    ValidationFlag,
    ValidationStatus,
)
from statement_gate.services.normalizer import normalize_metadata, normalize_transactions
from statement_gate.services.reconciliation import (
    StatementReconciler,
    count_flagged_rows,
    reconcile,
)


def _tx(row_id: str, amount: str, date: str = "2024-01-10", balance: str | None = None):
    """Build an already-normalized transaction."""
    return Transaction(
        row_id=row_id,
        normalized_date=date,
        normalized_amount=Decimal(amount),
        normalized_balance=Decimal(balance) if balance is not None else None,
    )


def _metadata(opening="5000.00", closing="5847.50", start="2024-01-01", end="2024-01-31"):
    return StatementMetadata(
        statement_start_date=start,
        statement_end_date=end,
        normalized_opening_balance=Decimal(opening) if opening is not None else None,
        normalized_closing_balance=Decimal(closing) if closing is not None else None,
    )


@pytest.fixture
def balanced_rows() -> list[Transaction]:
    """Rows netting to +847.50."""
    return [
        _tx("row_1", "1500.00", "2024-01-03"),
        _tx("row_2", "-652.50", "2024-01-20"),
    ]


class TestBalanceIdentity:
    """Tests for opening + sum(amounts) == closing."""

    def test_balanced_statement_passes(self, balanced_rows):
        """5000.00 + 847.50 == 5847.50 reconciles."""
        result = reconcile(_metadata(), balanced_rows)

        assert result.status == ValidationStatus.PASS
        assert result.is_reconciled is True
        assert result.is_ready is True
        assert result.flags == ()
        assert result.total_transactions == 2
        assert result.flagged_rows_count == 0

    def test_mismatch_blocks(self, balanced_rows):
        """Stated closing 6000.00 vs computed 5847.50 gives one statement-level error."""
        result = reconcile(_metadata(closing="6000.00"), balanced_rows)

        assert result.status == ValidationStatus.BLOCK
        assert result.is_reconciled is False
        assert len(result.flags) == 1

        flag = result.flags[0]
        assert flag.row_id is None
        assert flag.severity == Severity.ERROR
        assert flag.field == "closingBalance"
        assert "5847.50" in flag.message
        assert "6000.00" in flag.message
        assert "-152.50" in flag.message
        # Statement-level flags are not counted as flagged rows
        assert result.flagged_rows_count == 0

    def test_within_tolerance(self, balanced_rows):
        """A one-cent difference is tolerated by default."""
        result = reconcile(_metadata(closing="5847.51"), balanced_rows)

        assert result.status == ValidationStatus.PASS

    def test_just_outside_tolerance(self, balanced_rows):
        result = reconcile(_metadata(closing="5847.52"), balanced_rows)

        assert result.status == ValidationStatus.BLOCK

    def test_custom_tolerance(self, balanced_rows):
        config = ReconciliationConfig(tolerance=Decimal("1.00"))
        result = reconcile(_metadata(closing="5848.00"), balanced_rows, config=config)

        assert result.status == ValidationStatus.PASS

    def test_missing_balances_treated_as_zero(self):
        """Absent opening/closing balances count as 0.00."""
        result = reconcile(_metadata(opening=None, closing=None), [_tx("r1", "0.00")])
        assert result.status == ValidationStatus.PASS

        result = reconcile(_metadata(opening=None, closing=None), [_tx("r1", "10.00")])
        assert result.status == ValidationStatus.BLOCK

    def test_missing_amount_counts_as_zero(self):
        tx = Transaction(row_id="r1", normalized_date="2024-01-10")
        result = reconcile(_metadata(opening="100.00", closing="100.00"), [tx])

        assert result.status == ValidationStatus.PASS

    def test_empty_statement(self):
        result = reconcile(_metadata(opening="100.00", closing="100.00"), [])

        assert result.status == ValidationStatus.PASS
        assert result.total_transactions == 0


class TestRunningBalances:
    """Tests for per-row running balance continuity."""

    def test_consistent_balances_no_flags(self):
        rows = [
            _tx("r1", "1500.00", balance="6500.00"),
            _tx("r2", "-652.50", balance="5847.50"),
        ]
        result = reconcile(_metadata(), rows)

        assert result.flags == ()

    def test_mismatch_is_warning_only(self):
        """A bad running balance flags the row but does not block."""
        rows = [
            _tx("r1", "1500.00", balance="6400.00"),
            _tx("r2", "-652.50", balance="5847.50"),
        ]
        result = reconcile(_metadata(), rows)

        assert result.status == ValidationStatus.PASS
        assert len(result.flags) == 1
        flag = result.flags[0]
        assert flag.row_id == "r1"
        assert flag.severity == Severity.WARNING
        assert flag.field == "runningBalance"
        assert "6500.00" in flag.message
        assert "6400.00" in flag.message
        assert result.flagged_rows_count == 1

    def test_expected_carries_from_computed_not_stated(self):
        """One bad printed balance does not cascade into later rows."""
        rows = [
            _tx("r1", "100.00", balance="999.00"),
            _tx("r2", "100.00", balance="5200.00"),
        ]
        result = reconcile(_metadata(closing="5200.00"), rows)

        assert [f.row_id for f in result.flags] == ["r1"]

    def test_rows_without_balance_are_skipped(self):
        rows = [
            _tx("r1", "1500.00"),
            _tx("r2", "-652.50", balance="5847.50"),
        ]
        result = reconcile(_metadata(), rows)

        assert result.flags == ()


class TestDateRange:
    """Tests for posted dates within the statement period."""

    def test_outside_period_is_single_warning(self):
        """A February row on a January statement warns once and still passes."""
        rows = [
            _tx("r1", "1500.00", "2024-01-03"),
            _tx("r2", "-652.50", "2024-02-05"),
        ]
        result = reconcile(_metadata(), rows)

        assert result.status == ValidationStatus.PASS
        assert len(result.flags) == 1
        flag = result.flags[0]
        assert flag.row_id == "r2"
        assert flag.severity == Severity.WARNING
        assert flag.field == "postedDate"
        assert "2024-02-05" in flag.message

    def test_period_bounds_inclusive(self):
        rows = [
            _tx("r1", "1500.00", "2024-01-01"),
            _tx("r2", "-652.50", "2024-01-31"),
        ]
        result = reconcile(_metadata(), rows)

        assert result.flags == ()

    def test_incomplete_period_skips_check(self):
        rows = [_tx("r1", "847.50", "1999-12-31")]
        result = reconcile(_metadata(end=None), rows)

        assert result.flags == ()

    def test_rows_without_date_are_skipped(self):
        tx = Transaction(row_id="r1", normalized_amount=Decimal("847.50"))
        result = reconcile(_metadata(), [tx])

        assert result.flags == ()


class TestNormalizationFlags:
    """Tests for folding normalizer flags into the verdict."""

    def test_normalizer_error_blocks(self, balanced_rows):
        error = ValidationFlag(
            row_id="row_1",
            severity=Severity.ERROR,
            message="Missing posted date",
            field="postedDate",
        )
        result = reconcile(_metadata(), balanced_rows, [error])

        assert result.status == ValidationStatus.BLOCK
        assert result.flags == (error,)
        assert result.flagged_rows_count == 1

    def test_normalizer_warning_does_not_block(self, balanced_rows):
        warning = ValidationFlag(row_id="row_2", severity=Severity.WARNING, message="odd")
        result = reconcile(_metadata(), balanced_rows, [warning])

        assert result.status == ValidationStatus.PASS

    def test_normalizer_flags_come_first(self, balanced_rows):
        warning = ValidationFlag(row_id="row_2", severity=Severity.WARNING, message="odd")
        result = reconcile(_metadata(closing="1.00"), balanced_rows, [warning])

        assert result.flags[0] == warning
        assert result.flags[1].field == "closingBalance"


class TestDeterminism:
    """Tests for idempotent reconciliation."""

    def test_same_input_same_result(self, balanced_rows):
        metadata = _metadata(closing="6000.00")
        first = reconcile(metadata, balanced_rows)
        second = reconcile(metadata, balanced_rows)

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_reconciler_reusable(self, balanced_rows):
        reconciler = StatementReconciler()
        first = reconciler.reconcile(_metadata(), balanced_rows)
        second = reconciler.reconcile(_metadata(), balanced_rows)

        assert first == second


class TestCountFlaggedRows:
    """Tests for distinct flagged row counting."""

    def test_distinct_rows(self):
        flags = [
            ValidationFlag(row_id="a", severity=Severity.WARNING, message="x"),
            ValidationFlag(row_id="a", severity=Severity.ERROR, message="y"),
            ValidationFlag(row_id="b", severity=Severity.WARNING, message="z"),
            ValidationFlag(row_id=None, severity=Severity.ERROR, message="stmt"),
        ]
        assert count_flagged_rows(flags) == 2


class TestSampleStatement:
    """End-to-end reconciliation of the sample statement."""

    def test_sample_reconciles(self, sample_metadata, sample_transactions):
        metadata = normalize_metadata(sample_metadata)
        normalized, flags = normalize_transactions(sample_transactions)
        result = reconcile(metadata, normalized, flags)

        assert result.status == ValidationStatus.PASS
        assert result.flags == ()
        assert result.total_transactions == 7

    def test_sample_wrong_sign_blocks(self, sample_metadata, sample_transactions):
        """A debit keyed as a credit breaks both the identity and the running balances."""
        rows = list(sample_transactions)
        rows[1] = replace(rows[1], debit=None, credit="250.00")

        metadata = normalize_metadata(sample_metadata)
        normalized, flags = normalize_transactions(rows)
        result = reconcile(metadata, normalized, flags)

        assert result.status == ValidationStatus.BLOCK
        assert result.errors[0].row_id is None
        assert {f.row_id for f in result.warnings} == {
            "row_2", "row_3", "row_4", "row_5", "row_6", "row_7"
        }
        assert result.flagged_rows_count == 6
