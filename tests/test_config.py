"""Tests for configuration loading and validation."""

from decimal import Decimal

import pytest

from statement_gate.config import (
    DEFAULT_DATE_FORMATS,
    Config,
    create_default_config,
    load_config,
)
from statement_gate.exceptions import ConfigValidationError

ENV_VARS = (
    "STATEMENT_GATE_TOLERANCE",
    "STATEMENT_GATE_DEFAULT_CURRENCY",
    "STATEMENT_GATE_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep overrides from the outer environment out of these tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Tests for default configuration values."""

    def test_defaults(self):
        config = Config()

        assert config.normalization.date_formats == DEFAULT_DATE_FORMATS
        assert config.normalization.unparsable_amount_severity == "warning"
        assert config.normalization.dual_amount_severity == "warning"
        assert config.reconciliation.tolerance == Decimal("0.01")
        assert config.export.memo_max_length == 255
        assert config.export.fitid_length == 32
        assert config.export.default_currency == "USD"
        assert config.log_level == "INFO"

    def test_defaults_are_valid(self):
        assert Config().validate() == []

    def test_missing_file_yields_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")
        assert config == Config()


class TestLoadConfig:
    """Tests for YAML loading."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            """
normalization:
  date_formats: ["%d.%m.%Y"]
  dual_amount_severity: error
reconciliation:
  tolerance: "0.05"
export:
  memo_max_length: 32
  ofx_default_account_type: savings
  default_currency: eur
log_level: DEBUG
"""
        )
        config = load_config(path)

        assert config.normalization.date_formats == ("%d.%m.%Y",)
        assert config.normalization.dual_amount_severity == "error"
        assert config.normalization.unparsable_amount_severity == "warning"
        assert config.reconciliation.tolerance == Decimal("0.05")
        assert config.export.memo_max_length == 32
        assert config.export.ofx_default_account_type == "SAVINGS"
        assert config.export.default_currency == "EUR"
        assert config.log_level == "DEBUG"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(path) == Config()

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("reconciliation:\n  tolerance: '0.05'\n")
        monkeypatch.setenv("STATEMENT_GATE_TOLERANCE", "0.10")
        monkeypatch.setenv("STATEMENT_GATE_DEFAULT_CURRENCY", "gbp")
        monkeypatch.setenv("STATEMENT_GATE_LOG_LEVEL", "WARNING")

        config = load_config(path)

        assert config.reconciliation.tolerance == Decimal("0.10")
        assert config.export.default_currency == "GBP"
        assert config.log_level == "WARNING"

    def test_invalid_severity(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("normalization:\n  unparsable_amount_severity: fatal\n")

        with pytest.raises(ConfigValidationError, match="unparsable_amount_severity"):
            load_config(path)

    def test_invalid_tolerance(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STATEMENT_GATE_TOLERANCE", "lots")

        with pytest.raises(ConfigValidationError):
            load_config(tmp_path / "absent.yaml")

    @pytest.mark.parametrize("value", ["nan", "NaN", "inf", "-Infinity", "sNaN"])
    def test_non_finite_tolerance(self, tmp_path, monkeypatch, value):
        """An infinite tolerance would pass every statement; NaN cannot be compared."""
        monkeypatch.setenv("STATEMENT_GATE_TOLERANCE", value)

        with pytest.raises(ConfigValidationError, match="finite"):
            load_config(tmp_path / "absent.yaml")

    def test_non_finite_tolerance_in_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("reconciliation:\n  tolerance: .inf\n")

        with pytest.raises(ConfigValidationError, match="finite"):
            load_config(path)

    def test_negative_tolerance(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("reconciliation:\n  tolerance: '-1'\n")

        with pytest.raises(ConfigValidationError, match="tolerance"):
            load_config(path)


class TestValidate:
    """Tests for Config.validate."""

    def test_collects_every_error(self):
        config = Config()
        config.normalization.date_formats = ()
        config.export.fitid_length = 0
        config.export.ofx_default_account_type = "BROKERAGE"
        config.export.default_currency = "DOLLARS"

        errors = config.validate()

        assert len(errors) == 4

    def test_non_finite_tolerance_reported(self):
        config = Config()
        config.reconciliation.tolerance = Decimal("NaN")

        assert config.validate() == ["reconciliation.tolerance must be finite"]

    def test_log_level(self):
        assert Config(log_level="debug").validate() == []
        assert Config(log_level="chatty").validate() == [
            "log_level must be one of ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'), got 'chatty'"
        ]


class TestCreateDefaultConfig:
    """Tests for the default config template."""

    def test_template_round_trips(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        create_default_config(path)

        assert path.exists()
        assert load_config(path) == Config()
