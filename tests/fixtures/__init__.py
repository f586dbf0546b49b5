"""
Test fixtures for statement documents.

This module provides sample statements for testing:
- sample_statement.json: a reconciling January 2024 checking statement
  (opening 5000.00, seven rows netting +847.50, closing 5847.50)
"""

import json
from pathlib import Path

FIXTURES_DIR = Path(__file__).parent


def load_fixture(name: str) -> str:
    """Load a fixture file as string."""
    filepath = FIXTURES_DIR / name
    return filepath.read_text(encoding="utf-8")


def get_sample_statement() -> dict:
    """Get the reconciling sample statement as a dict."""
    return json.loads(load_fixture("sample_statement.json"))


# Normalized amounts of the sample statement, in row order
SAMPLE_AMOUNTS = ["1500.00", "-250.00", "-3000.00", "2500.00", "-25.00", "347.50", "-225.00"]
