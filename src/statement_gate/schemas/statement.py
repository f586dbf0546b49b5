"""
Canonical statement objects (SSOT).

This is THE single source of truth for statement data flowing through the
pipeline. Every stage takes these records and returns new ones; nothing is
mutated in place (all records are frozen, use dataclasses.replace).

Conventions:
- Raw fields hold the literal extracted text, or None when absent
  (never "" standing in for "unknown")
- Amounts are Decimal, signed: debit negative, credit positive
- Dates are ISO YYYY-MM-DD strings
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from ..exceptions import StatementFormatError


class EditableField(str, Enum):
    """Transaction fields a reviewer may correct."""

    POSTED_DATE = "postedDate"
    DESCRIPTION = "description"
    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def attribute(self) -> str:
        """Name of the raw field on Transaction."""
        return _FIELD_ATTRIBUTES[self][0]

    @property
    def shadow_attribute(self) -> str:
        """Name of the original-value shadow on Transaction."""
        return _FIELD_ATTRIBUTES[self][1]


_FIELD_ATTRIBUTES = {
    EditableField.POSTED_DATE: ("posted_date", "original_posted_date"),
    EditableField.DESCRIPTION: ("description", "original_description"),
    EditableField.DEBIT: ("debit", "original_debit"),
    EditableField.CREDIT: ("credit", "original_credit"),
}


class Severity(str, Enum):
    """Flag severity. Only errors block export."""

    ERROR = "error"
    WARNING = "warning"


class ValidationStatus(str, Enum):
    """Overall statement verdict."""

    PASS = "PASS"
    BLOCK = "BLOCK"


def _text_field(data: dict, key: str) -> Optional[str]:
    """Raw text field: a string or absent. Anything else is a malformed document."""
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise StatementFormatError(
            f"{key} must be a string or null, got {type(value).__name__}: {value!r}"
        )
    return value


def _decimal_field(data: dict, key: str) -> Optional[Decimal]:
    """Serialized Decimal field: a finite number as text, or absent."""
    value = _text_field(data, key)
    if value is None:
        return None
    try:
        result = Decimal(value)
    except InvalidOperation as e:
        raise StatementFormatError(f"{key} is not a decimal number: {value!r}") from e
    if not result.is_finite():
        raise StatementFormatError(f"{key} must be finite, got {value!r}")
    return result


def _editable_field(value: object) -> EditableField:
    try:
        return EditableField(value)
    except ValueError as e:
        raise StatementFormatError(f"unknown edited field: {value!r}") from e


def _str_or_none(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


@dataclass(frozen=True)
class EditRecord:
    """One applied edit. Sequence numbers are 1-based per transaction."""

    field: EditableField
    old_value: Optional[str]
    new_value: Optional[str]
    sequence: int

    def to_dict(self) -> dict:
        return {
            "field": self.field.value,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EditRecord":
        try:
            field, sequence = data["field"], int(data["sequence"])
        except (KeyError, TypeError, ValueError) as e:
            raise StatementFormatError(f"malformed edit_history entry: {data!r}") from e
        return cls(
            field=_editable_field(field),
            old_value=_text_field(data, "old_value"),
            new_value=_text_field(data, "new_value"),
            sequence=sequence,
        )


@dataclass(frozen=True)
class Transaction:
    """
    One ledger line of a statement.

    row_id is assigned once at extraction and never changes. The
    normalized_* fields are written only by the normalizer. An original_*
    shadow is meaningful only once its field appears in edited_fields; it
    then holds the value from before the first ever edit of that field.
    """

    # Identity
    row_id: str

    # Raw fields, as extracted
    posted_date: Optional[str] = None
    description: Optional[str] = None
    debit: Optional[str] = None
    credit: Optional[str] = None
    running_balance: Optional[str] = None

    # Derived (normalizer only)
    normalized_date: Optional[str] = None
    normalized_amount: Optional[Decimal] = None
    normalized_balance: Optional[Decimal] = None

    # Audit shadows
    original_posted_date: Optional[str] = None
    original_description: Optional[str] = None
    original_debit: Optional[str] = None
    original_credit: Optional[str] = None

    # Edit tracking
    is_edited: bool = False
    edited_fields: frozenset[EditableField] = frozenset()
    edit_history: tuple[EditRecord, ...] = ()

    def get_field(self, editable: EditableField) -> Optional[str]:
        """Current raw value of an editable field."""
        return getattr(self, editable.attribute)

    def get_original(self, editable: EditableField) -> Optional[str]:
        """Value the field held before it was first edited (current value if never edited)."""
        if editable in self.edited_fields:
            return getattr(self, editable.shadow_attribute)
        return self.get_field(editable)

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON storage."""
        return {
            "row_id": self.row_id,
            "posted_date": self.posted_date,
            "description": self.description,
            "debit": self.debit,
            "credit": self.credit,
            "running_balance": self.running_balance,
            "normalized_date": self.normalized_date,
            "normalized_amount": _str_or_none(self.normalized_amount),
            "normalized_balance": _str_or_none(self.normalized_balance),
            "original_posted_date": self.original_posted_date,
            "original_description": self.original_description,
            "original_debit": self.original_debit,
            "original_credit": self.original_credit,
            "is_edited": self.is_edited,
            "edited_fields": sorted(f.value for f in self.edited_fields),
            "edit_history": [record.to_dict() for record in self.edit_history],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        """Deserialize from dictionary.

        Only row_id is required; an extraction supplies raw fields alone.
        """
        if not data.get("row_id"):
            raise StatementFormatError("transaction is missing row_id")
        for key in ("edited_fields", "edit_history"):
            if not isinstance(data.get(key, []), list):
                raise StatementFormatError(f"{key} must be a list")
        return cls(
            row_id=str(data["row_id"]),
            posted_date=_text_field(data, "posted_date"),
            description=_text_field(data, "description"),
            debit=_text_field(data, "debit"),
            credit=_text_field(data, "credit"),
            running_balance=_text_field(data, "running_balance"),
            normalized_date=_text_field(data, "normalized_date"),
            normalized_amount=_decimal_field(data, "normalized_amount"),
            normalized_balance=_decimal_field(data, "normalized_balance"),
            original_posted_date=_text_field(data, "original_posted_date"),
            original_description=_text_field(data, "original_description"),
            original_debit=_text_field(data, "original_debit"),
            original_credit=_text_field(data, "original_credit"),
            is_edited=bool(data.get("is_edited", False)),
            edited_fields=frozenset(_editable_field(f) for f in data.get("edited_fields", [])),
            edit_history=tuple(EditRecord.from_dict(r) for r in data.get("edit_history", [])),
        )


@dataclass(frozen=True)
class StatementMetadata:
    """Statement-level facts. Produced once by extraction; edits never target it.

    Period dates are expected pre-formatted as YYYY-MM-DD.
    """

    financial_institution: Optional[str] = None
    account_name: Optional[str] = None
    account_number_last_four: Optional[str] = None
    account_type: Optional[str] = None
    currency: Optional[str] = None
    statement_start_date: Optional[str] = None
    statement_end_date: Optional[str] = None

    # Raw balance text
    opening_balance: Optional[str] = None
    closing_balance: Optional[str] = None
    total_debits: Optional[str] = None
    total_credits: Optional[str] = None

    # Normalized balances (informational totals are never reconciled)
    normalized_opening_balance: Optional[Decimal] = None
    normalized_closing_balance: Optional[Decimal] = None
    normalized_total_debits: Optional[Decimal] = None
    normalized_total_credits: Optional[Decimal] = None

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON storage."""
        return {
            "financial_institution": self.financial_institution,
            "account_name": self.account_name,
            "account_number_last_four": self.account_number_last_four,
            "account_type": self.account_type,
            "currency": self.currency,
            "statement_start_date": self.statement_start_date,
            "statement_end_date": self.statement_end_date,
            "opening_balance": self.opening_balance,
            "closing_balance": self.closing_balance,
            "total_debits": self.total_debits,
            "total_credits": self.total_credits,
            "normalized_opening_balance": _str_or_none(self.normalized_opening_balance),
            "normalized_closing_balance": _str_or_none(self.normalized_closing_balance),
            "normalized_total_debits": _str_or_none(self.normalized_total_debits),
            "normalized_total_credits": _str_or_none(self.normalized_total_credits),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StatementMetadata":
        """Deserialize from dictionary."""
        return cls(
            financial_institution=_text_field(data, "financial_institution"),
            account_name=_text_field(data, "account_name"),
            account_number_last_four=_text_field(data, "account_number_last_four"),
            account_type=_text_field(data, "account_type"),
            currency=_text_field(data, "currency"),
            statement_start_date=_text_field(data, "statement_start_date"),
            statement_end_date=_text_field(data, "statement_end_date"),
            opening_balance=_text_field(data, "opening_balance"),
            closing_balance=_text_field(data, "closing_balance"),
            total_debits=_text_field(data, "total_debits"),
            total_credits=_text_field(data, "total_credits"),
            normalized_opening_balance=_decimal_field(data, "normalized_opening_balance"),
            normalized_closing_balance=_decimal_field(data, "normalized_closing_balance"),
            normalized_total_debits=_decimal_field(data, "normalized_total_debits"),
            normalized_total_credits=_decimal_field(data, "normalized_total_credits"),
        )


@dataclass(frozen=True)
class ValidationFlag:
    """A single problem found in a statement.

    row_id None means the flag is statement-level. Flags are recomputed on
    every run and cannot be dismissed individually.
    """

    row_id: Optional[str]
    severity: Severity
    message: str
    field: Optional[str] = None
    suggested_fix: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict:
        return {
            "row_id": self.row_id,
            "severity": self.severity.value,
            "message": self.message,
            "field": self.field,
            "suggested_fix": self.suggested_fix,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ValidationFlag":
        return cls(
            row_id=data.get("row_id"),
            severity=Severity(data["severity"]),
            message=data["message"],
            field=data.get("field"),
            suggested_fix=data.get("suggested_fix"),
        )


@dataclass(frozen=True)
class ValidationResult:
    """Reconciliation verdict over one statement snapshot."""

    status: ValidationStatus
    flags: tuple[ValidationFlag, ...]
    is_reconciled: bool
    total_transactions: int
    flagged_rows_count: int

    @property
    def is_ready(self) -> bool:
        """True when export is allowed."""
        return self.status == ValidationStatus.PASS

    @property
    def errors(self) -> list[ValidationFlag]:
        return [f for f in self.flags if f.is_error]

    @property
    def warnings(self) -> list[ValidationFlag]:
        return [f for f in self.flags if not f.is_error]

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "flags": [f.to_dict() for f in self.flags],
            "is_reconciled": self.is_reconciled,
            "total_transactions": self.total_transactions,
            "flagged_rows_count": self.flagged_rows_count,
        }


@dataclass(frozen=True)
class StatementSnapshot:
    """Everything the caller holds for one statement at one point in time.

    Snapshots are replaced wholesale after every edit, never patched.
    """

    metadata: StatementMetadata
    transactions: tuple[Transaction, ...]
    validation: ValidationResult

    def to_dict(self) -> dict:
        return {
            "metadata": self.metadata.to_dict(),
            "transactions": [tx.to_dict() for tx in self.transactions],
            "validation": self.validation.to_dict(),
        }


def statement_from_dict(data: dict) -> tuple[StatementMetadata, tuple[Transaction, ...]]:
    """Load metadata and transactions from a statement document.

    Raises:
        StatementFormatError: If the document shape is wrong or row ids repeat
    """
    if not isinstance(data, dict):
        raise StatementFormatError("statement document must be a JSON object")
    metadata_data = data.get("metadata") or {}
    transactions_data = data.get("transactions") or []
    if not isinstance(metadata_data, dict) or not isinstance(transactions_data, list):
        raise StatementFormatError("statement needs a metadata object and a transactions list")

    if not all(isinstance(item, dict) for item in transactions_data):
        raise StatementFormatError("every transaction must be a JSON object")
    transactions = tuple(Transaction.from_dict(item) for item in transactions_data)

    seen: set[str] = set()
    for tx in transactions:
        if tx.row_id in seen:
            raise StatementFormatError(f"duplicate row_id: {tx.row_id}")
        seen.add(tx.row_id)

    return StatementMetadata.from_dict(metadata_data), transactions
