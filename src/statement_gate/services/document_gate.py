"""
Document gate.

Pre-flight check that an extracted statement carries the metadata a
reconciliation needs. Advisory only: the export verdict comes from
reconciliation, never from here.
"""

import logging
from dataclasses import dataclass, field

from ..schemas.statement import StatementMetadata, ValidationStatus

logger = logging.getLogger(__name__)

# (attribute, reason) in reporting order
REQUIRED_METADATA = (
    ("financial_institution", "Financial institution not identified"),
    ("account_name", "Account name not found"),
    ("statement_start_date", "Statement start date missing"),
    ("statement_end_date", "Statement end date missing"),
    ("opening_balance", "Opening balance not found"),
    ("closing_balance", "Closing balance not found"),
    ("currency", "Currency not identified"),
)


@dataclass(frozen=True)
class DocumentGateResult:
    """Outcome of the document gate."""

    status: ValidationStatus
    reasons: tuple[str, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return self.status == ValidationStatus.PASS

    def to_dict(self) -> dict:
        return {"status": self.status.value, "reasons": list(self.reasons)}


def validate_document(metadata: StatementMetadata) -> DocumentGateResult:
    """Check that all required statement metadata is present."""
    reasons = tuple(
        reason
        for attribute, reason in REQUIRED_METADATA
        if not (getattr(metadata, attribute) or "").strip()
    )

    if reasons:
        logger.info("Document gate BLOCK: %s", "; ".join(reasons))
        return DocumentGateResult(status=ValidationStatus.BLOCK, reasons=reasons)
    return DocumentGateResult(status=ValidationStatus.PASS)
