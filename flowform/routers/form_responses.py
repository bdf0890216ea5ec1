"""Form response tool endpoints for the conversational agent."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from flowform.core.config import settings
from flowform.core.deps import get_submission_store
from flowform.schemas.forms import (
    FieldCollectionResult,
    FieldCollectRequest,
    Form,
    FormResponsePreview,
    FormResponsePreviewRequest,
    FormSubmissionCreate,
    SubmissionResult,
)
from flowform.services import (
    form_response_service,
    form_submission_service,
    submission_export_service,
)
from flowform.services.submission_store import SubmissionStore

router = APIRouter(prefix="/forms", tags=["form-responses"])


async def _get_form(store: SubmissionStore, form_id: UUID) -> Form:
    form = await store.get_form(form_id)
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


async def _get_active_form(store: SubmissionStore, form_id: UUID) -> Form:
    form = await _get_form(store, form_id)
    if not form.is_active:
        raise HTTPException(status_code=403, detail="Form is not active")
    return form


@router.get("/{form_id}", response_model=Form)
async def get_form(form_id: UUID, store: SubmissionStore = Depends(get_submission_store)):
    return await _get_form(store, form_id)


@router.post("/{form_id}/responses/collect", response_model=FieldCollectionResult)
async def collect_field_response(
    form_id: UUID,
    body: FieldCollectRequest,
    store: SubmissionStore = Depends(get_submission_store),
):
    form = await _get_active_form(store, form_id)
    return form_response_service.collect_field_response(
        form,
        body.field_name,
        body.field_value,
        file_name=body.file_name,
        mime_type=body.mime_type,
    )


@router.post("/{form_id}/responses/preview", response_model=FormResponsePreview)
async def preview_form_response(
    form_id: UUID,
    body: FormResponsePreviewRequest,
    store: SubmissionStore = Depends(get_submission_store),
):
    form = await _get_active_form(store, form_id)
    return form_response_service.preview_form_response(form, body.responses)


@router.post("/{form_id}/responses", response_model=SubmissionResult)
async def submit_form_response(
    form_id: UUID,
    body: FormSubmissionCreate,
    store: SubmissionStore = Depends(get_submission_store),
):
    form = await _get_active_form(store, form_id)
    return await form_submission_service.submit_form_response(
        form, body.responses, body.file_metadata, store=store
    )


@router.get("/{form_id}/submissions/export")
async def export_submissions(
    form_id: UUID, store: SubmissionStore = Depends(get_submission_store)
):
    form = await _get_form(store, form_id)
    submissions = await store.list_submissions(form_id, limit=settings.EXPORT_SUBMISSION_LIMIT)
    content = submission_export_service.submissions_to_csv(form, submissions)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="form-{form_id}-submissions.csv"'},
    )
