"""Structured logging helpers (PII-safe).

Answer values are never part of a log context; only identifiers and outcome codes.
"""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    form_id: UUID | str | None = None,
    field_name: str | None = None,
    submission_id: UUID | str | None = None,
    error_code: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict for use as ``extra``."""
    context: dict[str, Any] = {}
    if form_id:
        context["form_id"] = str(form_id)
    if field_name:
        context["field_name"] = field_name
    if submission_id:
        context["submission_id"] = str(submission_id)
    if error_code:
        context["error_code"] = error_code
    return context
