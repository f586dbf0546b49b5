"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from ..config import Config, create_default_config, load_config
from ..exceptions import ConfigValidationError, StatementFormatError, StatementGateError
from ..review import EditRequest, ReviewSession, generate_review_status
from ..schemas.statement import StatementSnapshot, statement_from_dict
from ..services.document_gate import validate_document

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="statement-gate",
        description="Normalize, reconcile, review and export extracted bank statements",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file",
    )

    # validate command
    validate_parser = subparsers.add_parser(
        "validate", help="Run normalization and reconciliation, show flags"
    )
    validate_parser.add_argument("statement", type=Path, help="Statement JSON file")
    _add_edits_argument(validate_parser)
    validate_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON",
    )

    # edit command
    edit_parser = subparsers.add_parser(
        "edit", help="Correct one field of one transaction and re-validate"
    )
    edit_parser.add_argument("statement", type=Path, help="Statement JSON file")
    edit_parser.add_argument("--row", required=True, help="Row ID of the transaction")
    edit_parser.add_argument(
        "--field",
        required=True,
        choices=["postedDate", "description", "debit", "credit"],
        help="Field to edit",
    )
    value_group = edit_parser.add_mutually_exclusive_group(required=True)
    value_group.add_argument("--value", help="New value")
    value_group.add_argument("--clear", action="store_true", help="Clear the field")
    edit_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write the edited statement here (default: stdout)",
    )

    # export command
    export_parser = subparsers.add_parser(
        "export", help="Export a reconciled statement as CSV or OFX"
    )
    export_parser.add_argument("statement", type=Path, help="Statement JSON file")
    export_parser.add_argument(
        "--format",
        dest="export_format",
        choices=["csv", "ofx"],
        default="csv",
        help="Export format (default: csv)",
    )
    _add_edits_argument(export_parser)
    export_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output file (default: stdout)",
    )

    # hashes command
    hashes_parser = subparsers.add_parser(
        "hashes", help="Print duplicate-detection hashes for every transaction"
    )
    hashes_parser.add_argument("statement", type=Path, help="Statement JSON file")
    _add_edits_argument(hashes_parser)

    return parser


def _add_edits_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--edits",
        type=Path,
        help="JSON list of edits to replay before validating",
    )


def _read_json(path: Path) -> object:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise StatementFormatError(f"cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise StatementFormatError(f"{path} is not valid JSON: {e}") from e


def load_edits(path: Path) -> list[EditRequest]:
    """Load a JSON list of {row_id, field, new_value} edits."""
    data = _read_json(path)
    if not isinstance(data, list):
        raise StatementFormatError(f"{path} must contain a JSON list of edits")
    return [EditRequest.from_dict(item) for item in data]


def open_session(config: Config, statement_path: Path, edits_path: Optional[Path]) -> ReviewSession:
    """Load a statement, run the pipeline and replay any edits."""
    metadata, transactions = statement_from_dict(_read_json(statement_path))
    session = ReviewSession(metadata, transactions, config)
    logger.info("Loaded %d transactions from %s", len(transactions), statement_path)

    if edits_path is not None:
        session.replay(load_edits(edits_path))
    return session


def _write_output(text: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    print(f"✓ Written to {output}", file=sys.stderr)


def _print_snapshot_summary(snapshot: StatementSnapshot) -> None:
    gate = validate_document(snapshot.metadata)
    status = generate_review_status(snapshot)

    print("\n📊 Statement Review")
    print("=" * 40)
    print(f"  Document gate:          {gate.status.value}")
    for reason in gate.reasons:
        print(f"    - {reason}")
    print(f"  Transactions:           {status.total_transactions}")
    print(f"  Flagged rows:           {status.flagged_rows_count}")
    print(f"  Export status:          {status.export_status.value}")
    if status.blocked_reason:
        print(f"  Blocked:                {status.blocked_reason}")

    if status.unresolved_flags:
        print("\n  Flags:")
        for flag in status.unresolved_flags:
            marker = "❌" if flag.is_error else "⚠"
            row = flag.row_id or "statement"
            print(f"  {marker} [{row}] {flag.message}")
            if flag.suggested_fix:
                print(f"       → {flag.suggested_fix}")
    print()


def cmd_init_config(config_path: Path, force: bool) -> int:
    """Write the default configuration file."""
    if config_path.exists() and not force:
        print(f"❌ {config_path} already exists (use --force to overwrite)")
        return 1
    create_default_config(config_path)
    print(f"✓ Default config written to {config_path}")
    return 0


def cmd_validate(config: Config, statement: Path, edits: Optional[Path], as_json: bool) -> int:
    """Validate a statement. Exit 0 when export is allowed, 1 when blocked."""
    session = open_session(config, statement, edits)
    snapshot = session.snapshot

    if as_json:
        payload = {
            "document_gate": validate_document(snapshot.metadata).to_dict(),
            "review_status": generate_review_status(snapshot).to_dict(),
            "snapshot": snapshot.to_dict(),
        }
        print(json.dumps(payload, indent=2))
    else:
        _print_snapshot_summary(snapshot)

    return 0 if snapshot.validation.is_ready else 1


def cmd_edit(
    config: Config,
    statement: Path,
    row_id: str,
    field_name: str,
    value: Optional[str],
    output: Optional[Path],
) -> int:
    """Apply one edit and write the edited statement."""
    session = open_session(config, statement, None)
    snapshot = session.apply_edit(row_id, field_name, value)

    document = {
        "metadata": snapshot.metadata.to_dict(),
        "transactions": [tx.to_dict() for tx in snapshot.transactions],
    }
    _write_output(json.dumps(document, indent=2), output)

    status = generate_review_status(snapshot)
    print(
        f"✓ Edited {row_id}.{field_name}; export status {status.export_status.value}",
        file=sys.stderr,
    )
    return 0


def cmd_export(
    config: Config,
    statement: Path,
    export_format: str,
    edits: Optional[Path],
    output: Optional[Path],
) -> int:
    """Export a statement. Nothing is written while it is blocked."""
    session = open_session(config, statement, edits)

    if export_format == "ofx":
        text = session.export_ofx()
    else:
        text = session.export_csv()

    if text is None:
        status = session.review_status()
        print(f"❌ Export blocked: {status.blocked_reason}", file=sys.stderr)
        return 1

    _write_output(text, output)
    return 0


def cmd_hashes(config: Config, statement: Path, edits: Optional[Path]) -> int:
    """Print transaction hashes as JSON."""
    session = open_session(config, statement, edits)
    hashes = [h.to_dict() for h in session.transaction_hashes()]
    print(json.dumps(hashes, indent=2))
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config, parsed.force)

    # Load config
    try:
        config = load_config(parsed.config)
    except ConfigValidationError as e:
        print(f"❌ Invalid config: {e}")
        return 1

    if not parsed.verbose:
        logging.getLogger().setLevel(config.log_level.upper())

    # Route to command
    try:
        if parsed.command == "validate":
            return cmd_validate(config, parsed.statement, parsed.edits, parsed.json)
        elif parsed.command == "edit":
            value = None if parsed.clear else parsed.value
            return cmd_edit(config, parsed.statement, parsed.row, parsed.field, value, parsed.output)
        elif parsed.command == "export":
            return cmd_export(
                config, parsed.statement, parsed.export_format, parsed.edits, parsed.output
            )
        elif parsed.command == "hashes":
            return cmd_hashes(config, parsed.statement, parsed.edits)
        else:
            parser.print_help()
            return 1
    except StatementGateError as e:
        logger.error("%s", e)
        print(f"❌ {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
