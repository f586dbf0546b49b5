"""
Human-in-the-loop review module.

Provides:
- Field-level edit application with audit shadows
- Full pipeline re-runs after every edit
- Review status and export gating over the current snapshot
"""

from .workflow import (
    EditRequest,
    ExportStatus,
    ReviewSession,
    ReviewStatus,
    apply_edit,
    generate_review_status,
    resolve_field,
    run_pipeline,
)

__all__ = [
    "EditRequest",
    "ExportStatus",
    "ReviewSession",
    "ReviewStatus",
    "apply_edit",
    "generate_review_status",
    "resolve_field",
    "run_pipeline",
]
