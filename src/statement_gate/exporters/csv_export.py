"""
Delimited-text (CSV) export.

Format:
- Header: date,description,amount,balance
- One line per transaction, statement order
- description always double-quoted, inner quotes doubled; nothing else escaped
- amount/balance with exactly 2 decimals, 0.00 when absent
- LF between lines, no trailing newline, no summary row

The gate is the caller's verdict: pass is_ready = (status == PASS).
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from ..schemas.statement import Transaction

logger = logging.getLogger(__name__)

CSV_HEADER = "date,description,amount,balance"


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _money(value: Optional[Decimal]) -> str:
    if value is None:
        return "0.00"
    return f"{value:.2f}"


def format_csv_row(tx: Transaction) -> str:
    """Render a single normalized transaction as a CSV line."""
    return ",".join(
        [
            tx.normalized_date or "",
            _quote(tx.description or ""),
            _money(tx.normalized_amount),
            _money(tx.normalized_balance),
        ]
    )


def export_csv(transactions: Iterable[Transaction], is_ready: bool) -> str | None:
    """
    Serialize normalized transactions to CSV.

    Args:
        transactions: Normalized transactions in statement order
        is_ready: Current verdict is PASS

    Returns:
        CSV text, or None when export is blocked (nothing partial is produced)
    """
    if not is_ready:
        logger.info("CSV export refused: statement is blocked")
        return None

    lines = [CSV_HEADER]
    lines.extend(format_csv_row(tx) for tx in transactions)
    logger.info("CSV export: %d transactions", len(lines) - 1)
    return "\n".join(lines)
