"""
Export gate: CSV and OFX serializers.

Both refuse (return None) unless the caller's current verdict is PASS.
"""

from .csv_export import CSV_HEADER, export_csv, format_csv_row
from .ofx_export import OFX_HEADER_LINES, export_ofx, ofx_account_type, ofx_date, ofx_memo

__all__ = [
    "CSV_HEADER",
    "OFX_HEADER_LINES",
    "export_csv",
    "export_ofx",
    "format_csv_row",
    "ofx_account_type",
    "ofx_date",
    "ofx_memo",
]
