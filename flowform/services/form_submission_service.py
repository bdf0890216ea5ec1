"""Submission finalizer: completeness, full re-validation, file materialization, persistence.

A single pass with no intermediate persisted state. The submission row is
written first, then one file record per file answer, concurrently. A failure
while writing file records is reported but does not remove the submission row;
the result still carries ``submission_id`` so callers can reconcile.
"""

import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Mapping
from uuid import UUID

import anyio

from flowform.core.errors import (
    IncompleteSubmissionError,
    PersistenceError,
    SubmissionValidationError,
)
from flowform.core.structured_logging import build_log_context
from flowform.schemas.forms import (
    FileField,
    FileMetadata,
    FileUploadMetadata,
    Form,
    RawAnswer,
    SubmissionResult,
)
from flowform.services import field_validation_service, file_validation_service
from flowform.services.field_validation_service import is_empty_answer
from flowform.services.submission_store import SubmissionStore
from flowform.utils.datetime_parsing import to_iso_utc

logger = logging.getLogger(__name__)

SUBMITTED_VIA = "conversational"
SUCCESS_MESSAGE = "Your response has been submitted successfully!"
PERSISTENCE_FAILURE_MESSAGE = "Failed to save submission. Please try again."
DEFAULT_FILE_SIZE = "0"


async def submit_form_response(
    form: Form,
    responses: Mapping[str, RawAnswer],
    file_metadata: Mapping[str, FileUploadMetadata] | None = None,
    *,
    store: SubmissionStore,
) -> SubmissionResult:
    """Finalize a conversation: re-validate every answer and persist exactly one submission."""
    file_metadata = file_metadata or {}
    context = build_log_context(form_id=form.id)

    try:
        _check_required_fields(form, responses)
        canonical = _revalidate_answers(form, responses, file_metadata)
    except IncompleteSubmissionError as exc:
        logger.info("form_submission_incomplete", extra={**context, "error_code": exc.code})
        return SubmissionResult(
            success=False,
            error=exc.message,
            error_code=exc.code,
            missing_fields=exc.missing_fields,
        )
    except SubmissionValidationError as exc:
        logger.info("form_submission_invalid", extra={**context, "error_code": exc.code})
        return SubmissionResult(
            success=False, error=exc.message, error_code=exc.code, errors=exc.errors
        )

    stored_responses = _materialize_file_answers(form, canonical, file_metadata)
    return await _persist_submission(form, stored_responses, file_metadata, store)


def _check_required_fields(form: Form, responses: Mapping[str, RawAnswer]) -> None:
    missing = [
        field.label
        for field in form.fields
        if field.required and is_empty_answer(responses.get(field.name))
    ]
    if missing:
        raise IncompleteSubmissionError(
            f"Missing required fields: {', '.join(missing)}", missing_fields=missing
        )


def _revalidate_answers(
    form: Form,
    responses: Mapping[str, RawAnswer],
    file_metadata: Mapping[str, FileUploadMetadata],
) -> dict[str, Any]:
    """Re-run every validator; collect all errors rather than stopping at the first."""
    canonical: dict[str, Any] = {}
    errors: list[str] = []
    for field in form.fields:
        value = responses.get(field.name)
        if is_empty_answer(value):
            continue

        if isinstance(field, FileField):
            meta = file_metadata.get(field.name)
            if meta is None:
                errors.append(f"{field.label}: Missing file metadata for uploaded file")
                continue
            file_url = value[0] if isinstance(value, list) else value
            outcome = file_validation_service.validate_file(
                field, file_url, meta.name, meta.mime_type, meta.size
            )
        else:
            outcome = field_validation_service.validate_field(field, value, field.label)

        if not outcome.valid:
            errors.append(f"{field.label}: {outcome.error}")
        elif outcome.canonical_value is not None:
            canonical[field.name] = outcome.canonical_value

    if errors:
        raise SubmissionValidationError(f"Validation errors: {'; '.join(errors)}", errors=errors)
    return canonical


def _materialize_file_answers(
    form: Form,
    canonical: dict[str, Any],
    file_metadata: Mapping[str, FileUploadMetadata],
) -> dict[str, Any]:
    """Replace file answers (bare URLs) with durable ``{url, filename, mimeType}`` records."""
    stored: dict[str, Any] = {}
    for field in form.fields:
        if field.name not in canonical:
            continue
        value = canonical[field.name]
        if isinstance(field, FileField) and isinstance(value, FileMetadata):
            meta = file_metadata[field.name]
            stored[field.name] = {
                "url": meta.url,
                "filename": meta.name,
                "mimeType": value.mime_type,
            }
        else:
            stored[field.name] = value
    return stored


async def _persist_submission(
    form: Form,
    stored_responses: dict[str, Any],
    file_metadata: Mapping[str, FileUploadMetadata],
    store: SubmissionStore,
) -> SubmissionResult:
    context = build_log_context(form_id=form.id)
    metadata = {
        "submitted_via": SUBMITTED_VIA,
        "completed_at": to_iso_utc(datetime.now(timezone.utc)),
    }

    try:
        submission = await store.create_submission(
            form_id=form.id, responses=stored_responses, metadata=metadata
        )
    except Exception:
        logger.exception("form_submission_persist_failed", extra=context)
        return _persistence_failure()

    file_fields = [
        field
        for field in form.fields
        if isinstance(field, FileField) and field.name in stored_responses
    ]
    try:
        async with anyio.create_task_group() as task_group:
            for field in file_fields:
                meta = file_metadata[field.name]
                task_group.start_soon(
                    partial(
                        store.create_file_record,
                        submission_id=submission.id,
                        form_id=form.id,
                        field_name=field.name,
                        url=meta.url,
                        file_name=meta.name,
                        size=str(meta.size) if meta.size else DEFAULT_FILE_SIZE,
                        mime_type=stored_responses[field.name]["mimeType"],
                    )
                )
    except Exception:
        # The submission row stays; it lacks some file records and needs reconciliation.
        logger.exception(
            "form_file_records_persist_failed",
            extra=build_log_context(form_id=form.id, submission_id=submission.id),
        )
        return _persistence_failure(submission.id)

    logger.info(
        "form_submission_created",
        extra={
            **build_log_context(form_id=form.id, submission_id=submission.id),
            "file_count": len(file_fields),
        },
    )
    return SubmissionResult(success=True, submission_id=submission.id, message=SUCCESS_MESSAGE)


def _persistence_failure(submission_id: UUID | None = None) -> SubmissionResult:
    error = PersistenceError(PERSISTENCE_FAILURE_MESSAGE)
    return SubmissionResult(
        success=False,
        submission_id=submission_id,
        error=error.message,
        error_code=error.code,
    )
