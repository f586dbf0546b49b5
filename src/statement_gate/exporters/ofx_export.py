"""
OFX (Open Financial Exchange) export.

Emits a single-statement OFX 1.x SGML document. Tag literals and their
nesting order are a fixed schema that accounting importers rely on; change
values, never structure.

Rules:
- DTSTART/DTEND come from the statement period (YYYYMMDD)
- One STMTTRN per row: TRNTYPE from the amount sign, DTPOSTED from the
  normalized date, TRNAMT from the normalized amount
- FITID is the transaction fingerprint, exactly 32 characters
- MEMO is the current description on one line, capped at 255 characters,
  with &, < and > written as entities
- LEDGERBAL uses the STATED closing balance, not the computed one
"""

import html
import logging
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence

from ..config import ExportConfig
from ..schemas.fingerprint import generate_fitid
from ..schemas.statement import StatementMetadata, Transaction

logger = logging.getLogger(__name__)

OFX_HEADER_LINES = (
    "OFXHEADER:100",
    "SECURITY:NONE",
    "ENCODING:USASCII",
    "CHARSET:1252",
    "COMPRESSION:NONE",
    "OLDFILEFORMAT:NO",
    "NEWFILEFORMAT:YES",
)

DEFAULT_ACCOUNT_LAST_FOUR = "0000"

_LINE_BREAKS = re.compile(r"\s*[\r\n]+\s*")

# Substring of the statement's account type -> OFX ACCTTYPE
ACCOUNT_TYPE_KEYWORDS = (
    ("saving", "SAVINGS"),
    ("money market", "MONEYMRKT"),
    ("credit line", "CREDITLINE"),
    ("line of credit", "CREDITLINE"),
    ("checking", "CHECKING"),
    ("current", "CHECKING"),
)


def ofx_date(iso_date: Optional[str]) -> str:
    """YYYY-MM-DD -> YYYYMMDD (separators stripped)."""
    return (iso_date or "").strip().replace("-", "")


def ofx_account_type(account_type: Optional[str], default: str) -> str:
    """Map a free-text account type onto an OFX ACCTTYPE."""
    lowered = (account_type or "").lower()
    for keyword, ofx_type in ACCOUNT_TYPE_KEYWORDS:
        if keyword in lowered:
            return ofx_type
    return default


def ofx_memo(description: Optional[str], max_length: int) -> str:
    """Description as MEMO text: one line, capped, with SGML special characters escaped."""
    text = _LINE_BREAKS.sub(" ", (description or "").strip())
    return html.escape(text[:max_length], quote=False)


def _period_bounds(
    metadata: StatementMetadata,
    transactions: Sequence[Transaction],
) -> tuple[str, str]:
    """Statement period as OFX dates, falling back to the transaction date span."""
    dates = sorted(tx.normalized_date for tx in transactions if tx.normalized_date)
    start = metadata.statement_start_date or (dates[0] if dates else None)
    end = metadata.statement_end_date or (dates[-1] if dates else None)
    return ofx_date(start), ofx_date(end)


def _stmttrn_lines(
    tx: Transaction,
    account_last_four: str,
    fallback_date: str,
    config: ExportConfig,
) -> list[str]:
    amount = tx.normalized_amount if tx.normalized_amount is not None else Decimal("0.00")
    trntype = "DEBIT" if amount < 0 else "CREDIT"
    dtposted = ofx_date(tx.normalized_date) or fallback_date
    fitid = generate_fitid(tx, account_last_four, length=config.fitid_length)
    memo = ofx_memo(tx.description, config.memo_max_length)

    return [
        "<STMTTRN>",
        f"<TRNTYPE>{trntype}",
        f"<DTPOSTED>{dtposted}",
        f"<TRNAMT>{amount:.2f}",
        f"<FITID>{fitid}",
        f"<MEMO>{memo}",
        "</STMTTRN>",
    ]


def export_ofx(
    metadata: StatementMetadata,
    transactions: Sequence[Transaction],
    is_ready: bool,
    *,
    config: ExportConfig | None = None,
    generated_at: datetime | None = None,
) -> str | None:
    """
    Serialize a normalized statement to OFX.

    Args:
        metadata: Statement metadata with normalized closing balance
        transactions: Normalized transactions in statement order
        is_ready: Current verdict is PASS
        config: Export settings (defaults when omitted)
        generated_at: Server timestamp for DTSERVER (UTC now when omitted)

    Returns:
        OFX document, or None when export is blocked
    """
    if not is_ready:
        logger.info("OFX export refused: statement is blocked")
        return None

    config = config or ExportConfig()
    generated_at = generated_at or datetime.now(timezone.utc)

    start_date, end_date = _period_bounds(metadata, transactions)
    account_last_four = metadata.account_number_last_four or DEFAULT_ACCOUNT_LAST_FOUR
    closing_balance = (
        metadata.normalized_closing_balance
        if metadata.normalized_closing_balance is not None
        else Decimal("0.00")
    )
    currency = metadata.currency or config.default_currency
    account_type = ofx_account_type(metadata.account_type, config.ofx_default_account_type)

    lines = list(OFX_HEADER_LINES)
    lines.append("")
    lines += [
        "<OFX>",
        "<SIGNONMSGSRSV1>",
        "<SONRS>",
        "<STATUS>",
        "<CODE>0",
        "<SEVERITY>INFO",
        "</STATUS>",
        f"<DTSERVER>{generated_at.strftime('%Y%m%d%H%M%S')}",
        f"<LANGUAGE>{config.ofx_language}",
        "</SONRS>",
        "</SIGNONMSGSRSV1>",
        "<BANKMSGSRSV1>",
        "<STMTTRNRS>",
        "<STATUS>",
        "<CODE>0",
        "<SEVERITY>INFO",
        "</STATUS>",
        "<STMTRS>",
        f"<CURDEF>{currency}",
        "<BANKACCTFROM>",
        f"<BANKID>{config.ofx_bank_id}",
        f"<ACCTID>{account_last_four}",
        f"<ACCTTYPE>{account_type}",
        "</BANKACCTFROM>",
        "<BANKTRANLIST>",
        f"<DTSTART>{start_date}",
        f"<DTEND>{end_date}",
    ]

    for tx in transactions:
        lines += _stmttrn_lines(tx, account_last_four, end_date, config)

    lines += [
        "</BANKTRANLIST>",
        "<LEDGERBAL>",
        f"<BALAMT>{closing_balance:.2f}",
        f"<DTASOF>{end_date}",
        "</LEDGERBAL>",
        "</STMTRS>",
        "</STMTTRNRS>",
        "</BANKMSGSRSV1>",
        "</OFX>",
    ]

    logger.info("OFX export: %d transactions, account ...%s", len(transactions), account_last_four)
    return "\n".join(lines) + "\n"
