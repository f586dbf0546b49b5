"""
Bank statement → Normalization → Reconciliation → Human review → CSV/OFX export

A deterministic, testable pipeline that takes the extracted rows of a monthly
statement, normalizes them, checks the statement's arithmetic, lets a reviewer
correct individual fields and only exports once the statement reconciles.
"""

__version__ = "0.1.0"
