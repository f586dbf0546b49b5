"""Exception hierarchy for statement-gate.

Data-quality problems in a statement are never raised; they are reported as
validation flags. Exceptions are reserved for callers breaking a contract.
"""


class StatementGateError(Exception):
    """Base exception for all statement-gate errors."""


class InvalidEditFieldError(StatementGateError, ValueError):
    """Raised when an edit targets a field that is not user-editable."""


class UnknownRowError(StatementGateError, KeyError):
    """Raised when an edit references a row id not present in the statement."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class StatementFormatError(StatementGateError):
    """Raised when a statement or edits document cannot be loaded."""


class ConfigValidationError(StatementGateError):
    """Raised when configuration validation fails."""
