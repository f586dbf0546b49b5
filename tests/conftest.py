"""Shared pytest fixtures."""

import json
from pathlib import Path

import pytest

from statement_gate.config import Config
from statement_gate.schemas.statement import (
    StatementMetadata,
    Transaction,
    statement_from_dict,
)

from fixtures import FIXTURES_DIR, get_sample_statement


@pytest.fixture
def sample_statement_dict() -> dict:
    """Sample statement document as a dictionary."""
    return get_sample_statement()


@pytest.fixture
def sample_statement_path() -> Path:
    """Path to the sample statement JSON file."""
    return FIXTURES_DIR / "sample_statement.json"


@pytest.fixture
def sample_metadata(sample_statement_dict) -> StatementMetadata:
    """Raw (not yet normalized) sample metadata."""
    metadata, _ = statement_from_dict(sample_statement_dict)
    return metadata


@pytest.fixture
def sample_transactions(sample_statement_dict) -> tuple[Transaction, ...]:
    """Raw (not yet normalized) sample transactions."""
    _, transactions = statement_from_dict(sample_statement_dict)
    return transactions


@pytest.fixture
def config() -> Config:
    """Default configuration."""
    return Config()


@pytest.fixture
def write_statement(tmp_path):
    """Write a statement dict to a temporary JSON file and return its path."""

    def _write(data: dict, name: str = "statement.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write
