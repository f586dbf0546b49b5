"""
Configuration management (SSOT).

This module defines ALL configuration for statement-gate.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- Defaults reproduce the documented pipeline behavior exactly
- Config only tunes tolerances and output details, never the verdict rule
  (BLOCK iff at least one error flag)
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

import yaml

from .exceptions import ConfigValidationError

VALID_SEVERITIES = ("error", "warning")

VALID_OFX_ACCOUNT_TYPES = ("CHECKING", "SAVINGS", "MONEYMRKT", "CREDITLINE")

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %b %Y",
)


@dataclass
class NormalizationConfig:
    """Normalizer settings.

    The two severities decide how loudly ambiguous amount data is reported.
    Set either to "error" to block export until the row is fixed.
    """

    # strptime formats tried in order for posted dates
    date_formats: tuple[str, ...] = DEFAULT_DATE_FORMATS
    # Non-empty debit/credit that does not parse as a number
    unparsable_amount_severity: str = "warning"
    # Row carrying both a debit and a credit (credit wins)
    dual_amount_severity: str = "warning"


@dataclass
class ReconciliationConfig:
    """Reconciliation settings."""

    # Absolute tolerance for balance comparisons
    tolerance: Decimal = Decimal("0.01")


@dataclass
class ExportConfig:
    """CSV/OFX export settings."""

    # OFX MEMO field cap
    memo_max_length: int = 255
    # OFX FITID width (hash truncated or zero-padded)
    fitid_length: int = 32
    ofx_bank_id: str = "000000000"
    ofx_default_account_type: str = "CHECKING"
    ofx_language: str = "ENG"
    # Used when the statement does not state a currency
    default_currency: str = "USD"


@dataclass
class Config:
    """Application configuration (SSOT).

    All configuration is centralized here. No other module should define
    configuration keys or defaults.
    """

    normalization: NormalizationConfig = field(default_factory=NormalizationConfig)
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    log_level: str = "INFO"

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.normalization.date_formats:
            errors.append("normalization.date_formats must not be empty")
        for key in ("unparsable_amount_severity", "dual_amount_severity"):
            value = getattr(self.normalization, key)
            if value not in VALID_SEVERITIES:
                errors.append(f"normalization.{key} must be one of {VALID_SEVERITIES}, got {value!r}")

        tolerance = self.reconciliation.tolerance
        if not tolerance.is_finite():
            errors.append("reconciliation.tolerance must be finite")
        elif tolerance < 0:
            errors.append("reconciliation.tolerance must not be negative")

        if self.export.memo_max_length <= 0:
            errors.append("export.memo_max_length must be positive")
        if self.export.fitid_length <= 0:
            errors.append("export.fitid_length must be positive")
        if self.export.ofx_default_account_type not in VALID_OFX_ACCOUNT_TYPES:
            errors.append(
                f"export.ofx_default_account_type must be one of {VALID_OFX_ACCOUNT_TYPES}"
            )
        if len(self.export.default_currency) != 3:
            errors.append("export.default_currency must be a 3-letter ISO code")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of {VALID_LOG_LEVELS}, got {self.log_level!r}")

        return errors


def _parse_tolerance(value: object) -> Decimal:
    try:
        tolerance = Decimal(str(value))
    except InvalidOperation as e:
        raise ConfigValidationError(f"reconciliation.tolerance is not a number: {value!r}") from e
    if not tolerance.is_finite():
        raise ConfigValidationError(f"reconciliation.tolerance must be finite, got {value!r}")
    return tolerance


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    A missing file yields the defaults. Environment variables can override
    config values:
    - STATEMENT_GATE_TOLERANCE
    - STATEMENT_GATE_DEFAULT_CURRENCY
    - STATEMENT_GATE_LOG_LEVEL

    Raises:
        ConfigValidationError: If the resulting configuration is invalid
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    # Normalization
    norm_data = data.get("normalization", {})
    normalization = NormalizationConfig(
        date_formats=tuple(norm_data.get("date_formats", DEFAULT_DATE_FORMATS)),
        unparsable_amount_severity=norm_data.get("unparsable_amount_severity", "warning"),
        dual_amount_severity=norm_data.get("dual_amount_severity", "warning"),
    )

    # Reconciliation
    recon_data = data.get("reconciliation", {})
    reconciliation = ReconciliationConfig(
        tolerance=_parse_tolerance(
            os.environ.get("STATEMENT_GATE_TOLERANCE", recon_data.get("tolerance", "0.01"))
        ),
    )

    # Export
    export_data = data.get("export", {})
    export = ExportConfig(
        memo_max_length=int(export_data.get("memo_max_length", 255)),
        fitid_length=int(export_data.get("fitid_length", 32)),
        ofx_bank_id=str(export_data.get("ofx_bank_id", "000000000")),
        ofx_default_account_type=str(
            export_data.get("ofx_default_account_type", "CHECKING")
        ).upper(),
        ofx_language=str(export_data.get("ofx_language", "ENG")),
        default_currency=os.environ.get(
            "STATEMENT_GATE_DEFAULT_CURRENCY", export_data.get("default_currency", "USD")
        ).upper(),
    )

    config = Config(
        normalization=normalization,
        reconciliation=reconciliation,
        export=export,
        log_level=os.environ.get("STATEMENT_GATE_LOG_LEVEL", data.get("log_level", "INFO")),
    )

    errors = config.validate()
    if errors:
        raise ConfigValidationError("; ".join(errors))
    return config


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# statement-gate configuration
#
# The verdict rule is fixed: export is blocked iff at least one flag has
# severity "error". These settings only tune what gets flagged and how
# exports are rendered.

normalization:
  date_formats:                            # strptime formats, tried in order
    - "%Y-%m-%d"
    - "%m/%d/%Y"
    - "%Y/%m/%d"
    - "%B %d, %Y"
    - "%b %d, %Y"
    - "%B %d %Y"
    - "%b %d %Y"
    - "%d %b %Y"
  unparsable_amount_severity: warning      # garbled debit/credit text
  dual_amount_severity: warning            # row with both debit and credit

reconciliation:
  tolerance: "0.01"                        # absolute balance tolerance

export:
  memo_max_length: 255                     # OFX MEMO cap
  fitid_length: 32                         # OFX FITID width
  ofx_bank_id: "000000000"
  ofx_default_account_type: CHECKING       # CHECKING, SAVINGS, MONEYMRKT, CREDITLINE
  ofx_language: ENG
  default_currency: USD

log_level: INFO
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
