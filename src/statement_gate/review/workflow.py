"""
Review workflow management.

Edits are field-level corrections to a single transaction. After any edit
the whole pipeline (normalize -> reconcile) is re-run over every row and the
caller's snapshot is replaced wholesale; nothing is patched incrementally.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Sequence, Union

from ..config import Config
from ..exceptions import InvalidEditFieldError, StatementFormatError, UnknownRowError
from ..exporters import export_csv, export_ofx
from ..exporters.ofx_export import DEFAULT_ACCOUNT_LAST_FOUR
from ..schemas.fingerprint import TransactionHash, compute_transaction_hashes
from ..schemas.statement import (
    EditableField,
    EditRecord,
    StatementMetadata,
    StatementSnapshot,
    Transaction,
    ValidationFlag,
)
from ..services.normalizer import normalize_metadata, normalize_transactions
from ..services.reconciliation import reconcile

logger = logging.getLogger(__name__)

FieldName = Union[EditableField, str]


class ExportStatus(str, Enum):
    """Whether the statement may be exported."""

    READY = "READY"
    BLOCKED = "BLOCKED"


@dataclass(frozen=True)
class EditRequest:
    """A reviewer's correction of one field of one row."""

    row_id: str
    field: EditableField
    new_value: Optional[str]

    @classmethod
    def from_dict(cls, data: dict) -> "EditRequest":
        if not isinstance(data, dict):
            raise StatementFormatError(f"edit must be a JSON object, got {data!r}")
        new_value = data.get("new_value")
        if new_value is not None and not isinstance(new_value, str):
            raise StatementFormatError(f"edit new_value must be a string or null: {new_value!r}")
        try:
            return cls(
                row_id=str(data["row_id"]),
                field=resolve_field(data["field"]),
                new_value=new_value,
            )
        except KeyError as e:
            raise StatementFormatError(f"edit is missing {e}") from e

    def to_dict(self) -> dict:
        return {"row_id": self.row_id, "field": self.field.value, "new_value": self.new_value}


@dataclass(frozen=True)
class ReviewStatus:
    """Summary shown to the reviewer."""

    total_transactions: int
    flagged_rows_count: int
    unresolved_flags: tuple[ValidationFlag, ...]
    export_status: ExportStatus
    blocked_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "total_transactions": self.total_transactions,
            "flagged_rows_count": self.flagged_rows_count,
            "unresolved_flags": [f.to_dict() for f in self.unresolved_flags],
            "export_status": self.export_status.value,
            "blocked_reason": self.blocked_reason,
        }


def resolve_field(field_name: FieldName) -> EditableField:
    """Map a field name onto the closed set of editable fields.

    Raises:
        InvalidEditFieldError: For anything that is not user-editable
    """
    if isinstance(field_name, EditableField):
        return field_name
    try:
        return EditableField(field_name)
    except ValueError as e:
        allowed = ", ".join(f.value for f in EditableField)
        raise InvalidEditFieldError(
            f"field {field_name!r} is not editable (allowed: {allowed})"
        ) from e


def apply_edit(
    transaction: Transaction,
    field_name: FieldName,
    new_value: Optional[str],
) -> Transaction:
    """
    Apply a single field edit to a transaction.

    The first edit of a field copies the pre-edit value into its original_*
    shadow; later edits leave the shadow alone, so it always holds the value
    from before the first edit. No other row is touched and nothing is
    re-normalized here.

    Args:
        transaction: The transaction to edit (not modified)
        field_name: postedDate, description, debit or credit
        new_value: New raw value; None clears the field

    Returns:
        New Transaction with the edit applied
    """
    editable = resolve_field(field_name)
    old_value = transaction.get_field(editable)

    changes: dict = {editable.attribute: new_value}
    if editable not in transaction.edited_fields:
        changes[editable.shadow_attribute] = old_value

    record = EditRecord(
        field=editable,
        old_value=old_value,
        new_value=new_value,
        sequence=len(transaction.edit_history) + 1,
    )

    return replace(
        transaction,
        **changes,
        is_edited=True,
        edited_fields=transaction.edited_fields | {editable},
        edit_history=transaction.edit_history + (record,),
    )


def run_pipeline(
    metadata: StatementMetadata,
    transactions: Iterable[Transaction],
    config: Config | None = None,
) -> StatementSnapshot:
    """Normalize and reconcile a whole statement into a fresh snapshot."""
    config = config or Config()
    normalized_metadata = normalize_metadata(metadata)
    normalized, normalization_flags = normalize_transactions(transactions, config.normalization)
    validation = reconcile(
        normalized_metadata,
        normalized,
        normalization_flags,
        config.reconciliation,
    )
    return StatementSnapshot(
        metadata=normalized_metadata,
        transactions=normalized,
        validation=validation,
    )


def generate_review_status(snapshot: StatementSnapshot) -> ReviewStatus:
    """Summarize a snapshot for review. BLOCKED iff any error flag remains."""
    validation = snapshot.validation
    error_count = len(validation.errors)

    if validation.is_ready:
        export_status = ExportStatus.READY
        blocked_reason = None
    else:
        export_status = ExportStatus.BLOCKED
        blocked_reason = f"{error_count} critical issues must be resolved"

    return ReviewStatus(
        total_transactions=validation.total_transactions,
        flagged_rows_count=validation.flagged_rows_count,
        unresolved_flags=validation.flags,
        export_status=export_status,
        blocked_reason=blocked_reason,
    )


class ReviewSession:
    """
    Holds the current snapshot of one statement under review.

    Responsibilities:
    - Run the pipeline on ingestion
    - Apply edits and re-run the full pipeline
    - Swap in the new snapshot only once it is complete
    - Gate exports on the current verdict
    """

    def __init__(
        self,
        metadata: StatementMetadata,
        transactions: Iterable[Transaction],
        config: Config | None = None,
    ) -> None:
        self.config = config or Config()
        self._snapshot = run_pipeline(metadata, transactions, self.config)

    @property
    def snapshot(self) -> StatementSnapshot:
        return self._snapshot

    def _index_rows(self, transactions: Sequence[Transaction]) -> dict[str, int]:
        return {tx.row_id: i for i, tx in enumerate(transactions)}

    def apply_edit(
        self,
        row_id: str,
        field_name: FieldName,
        new_value: Optional[str],
    ) -> StatementSnapshot:
        """Edit one field of one row and re-run the pipeline."""
        return self.replay([EditRequest(row_id, resolve_field(field_name), new_value)])

    def replay(self, edits: Iterable[EditRequest]) -> StatementSnapshot:
        """
        Apply a sequence of edits in order, then re-run the pipeline.

        All-or-nothing: if any edit is invalid the current snapshot is kept.

        Raises:
            UnknownRowError: If an edit references a row not in the statement
        """
        transactions = list(self._snapshot.transactions)
        positions = self._index_rows(transactions)

        applied = 0
        for edit in edits:
            if edit.row_id not in positions:
                raise UnknownRowError(f"no transaction with row_id {edit.row_id!r}")
            index = positions[edit.row_id]
            transactions[index] = apply_edit(transactions[index], edit.field, edit.new_value)
            applied += 1

        new_snapshot = run_pipeline(self._snapshot.metadata, transactions, self.config)
        self._snapshot = new_snapshot
        logger.info(
            "Applied %d edit(s); statement is now %s",
            applied,
            new_snapshot.validation.status.value,
        )
        return new_snapshot

    def review_status(self) -> ReviewStatus:
        return generate_review_status(self._snapshot)

    def export_csv(self) -> str | None:
        snapshot = self._snapshot
        return export_csv(snapshot.transactions, snapshot.validation.is_ready)

    def export_ofx(self, generated_at: datetime | None = None) -> str | None:
        snapshot = self._snapshot
        return export_ofx(
            snapshot.metadata,
            snapshot.transactions,
            snapshot.validation.is_ready,
            config=self.config.export,
            generated_at=generated_at,
        )

    def transaction_hashes(self) -> list[TransactionHash]:
        snapshot = self._snapshot
        last_four = snapshot.metadata.account_number_last_four or DEFAULT_ACCOUNT_LAST_FOUR
        return compute_transaction_hashes(snapshot.transactions, last_four)
