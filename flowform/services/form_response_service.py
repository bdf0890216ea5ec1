"""Collection and preview steps of a conversational form response.

Both steps are stateless: nothing is persisted, and the calling agent may
invoke them repeatedly and in any field order.
"""

import logging
from typing import Any

from flowform.core.errors import MissingFileMetadataError, UnknownFieldError
from flowform.core.structured_logging import build_log_context
from flowform.schemas.forms import (
    FieldCollectionResult,
    FileField,
    FileMetadata,
    Form,
    FormResponsePreview,
    PreviewSchema,
    RawAnswer,
)
from flowform.services import field_validation_service, file_validation_service

logger = logging.getLogger(__name__)


def collect_field_response(
    form: Form,
    field_name: str,
    field_value: RawAnswer,
    file_name: str | None = None,
    mime_type: str | None = None,
) -> FieldCollectionResult:
    """Validate one answer the user just gave. Never persists anything."""
    field = form.get_field(field_name)
    if field is None:
        logger.info(
            "collect_field_unknown",
            extra=build_log_context(form_id=form.id, field_name=field_name),
        )
        error = UnknownFieldError(f'Field "{field_name}" not found in form schema')
        return FieldCollectionResult(valid=False, error=error.message, error_code=error.code)

    if isinstance(field, FileField):
        if not file_name or not mime_type:
            error = MissingFileMetadataError("Please upload a file")
            return FieldCollectionResult(
                valid=False,
                field_name=field.name,
                field_label=field.label,
                error=error.message,
                error_code=error.code,
            )
        if isinstance(field_value, list):
            file_url = field_value[0] if field_value else ""
        else:
            file_url = field_value
        outcome = file_validation_service.validate_file(field, file_url, file_name, mime_type)
    else:
        outcome = field_validation_service.validate_field(field, field_value, field.label)

    if not outcome.valid:
        logger.debug(
            "collect_field_invalid",
            extra=build_log_context(
                form_id=form.id, field_name=field.name, error_code=outcome.error_code
            ),
        )
        return FieldCollectionResult(
            valid=False,
            field_name=field.name,
            field_label=field.label,
            error=outcome.error,
            error_code=outcome.error_code,
        )

    canonical_value = outcome.canonical_value
    file_metadata: FileMetadata | None = None
    if isinstance(canonical_value, FileMetadata):
        # The agent keeps the blob URL as the answer and the metadata alongside it.
        file_metadata = canonical_value
        canonical_value = canonical_value.url

    return FieldCollectionResult(
        valid=True,
        field_name=field.name,
        field_label=field.label,
        canonical_value=canonical_value,
        file_metadata=file_metadata,
    )


def preview_form_response(form: Form, responses: dict[str, Any]) -> FormResponsePreview:
    """Project the answers collected so far for the user to confirm. No validation."""
    return FormResponsePreview(
        form_schema=PreviewSchema(
            title=form.title,
            description=form.description,
            tone=form.tone,
            fields=list(form.fields),
        ),
        responses=dict(responses),
    )
