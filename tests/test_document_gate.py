"""Tests for the document gate (required statement metadata)."""

from dataclasses import replace

from statement_gate.schemas.statement import StatementMetadata, ValidationStatus
from statement_gate.services.document_gate import REQUIRED_METADATA, validate_document


class TestValidateDocument:
    """Tests for metadata completeness checks."""

    def test_complete_metadata_passes(self, sample_metadata):
        result = validate_document(sample_metadata)

        assert result.status == ValidationStatus.PASS
        assert result.passed is True
        assert result.reasons == ()

    def test_empty_metadata_lists_every_reason_in_order(self):
        result = validate_document(StatementMetadata())

        assert result.status == ValidationStatus.BLOCK
        assert result.reasons == tuple(reason for _, reason in REQUIRED_METADATA)

    def test_single_missing_field(self, sample_metadata):
        result = validate_document(replace(sample_metadata, closing_balance=None))

        assert result.passed is False
        assert result.reasons == ("Closing balance not found",)

    def test_blank_counts_as_missing(self, sample_metadata):
        result = validate_document(replace(sample_metadata, currency="  "))

        assert result.reasons == ("Currency not identified",)

    def test_optional_fields_not_required(self, sample_metadata):
        """Account number and type are not needed to reconcile."""
        metadata = replace(sample_metadata, account_number_last_four=None, account_type=None)

        assert validate_document(metadata).passed is True

    def test_to_dict(self):
        result = validate_document(StatementMetadata(financial_institution="Bank"))
        data = result.to_dict()

        assert data["status"] == "BLOCK"
        assert "Financial institution not identified" not in data["reasons"]
        assert "Account name not found" in data["reasons"]
