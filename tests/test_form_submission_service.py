import pytest

from flowform.schemas.forms import FileUploadMetadata
from flowform.services import form_submission_service

FIELDS = [
    {"name": "full_name", "label": "Full Name", "type": "text", "required": True},
    {"name": "email", "label": "Email", "type": "email", "required": True},
    {
        "name": "color",
        "label": "Favourite colour",
        "type": "choice",
        "options": {"choices": ["Red", "Blue"]},
    },
    {"name": "start", "label": "Preferred start date", "type": "date"},
    {"name": "guests", "label": "Guests", "type": "number", "validation": {"min": 0, "max": 4}},
]

FILE_FIELDS = [
    {"name": "full_name", "label": "Full Name", "type": "text", "required": True},
    {
        "name": "resume",
        "label": "Resume",
        "type": "file",
        "required": True,
        "validation": {"acceptedTypes": [".pdf"]},
    },
    {"name": "photo", "label": "Photo", "type": "file", "validation": {"acceptedTypes": [".png"]}},
]


def _resume(**overrides) -> FileUploadMetadata:
    data = {
        "url": "https://blob.example/cv.pdf",
        "name": "cv.pdf",
        "mime_type": "application/pdf",
        **overrides,
    }
    return FileUploadMetadata(**data)


@pytest.mark.asyncio
async def test_submit_persists_canonical_answers(make_form, fake_store):
    form = make_form(FIELDS)

    result = await form_submission_service.submit_form_response(
        form,
        {
            "full_name": "Ada Lovelace",
            "email": "ada@example.com",
            "color": "red",
            "start": "January 15, 2026",
        },
        store=fake_store,
    )

    assert result.success is True
    assert result.message == "Your response has been submitted successfully!"
    assert len(fake_store.submissions) == 1
    submission = fake_store.submissions[0]
    assert result.submission_id == submission.id
    assert submission.form_id == form.id
    assert submission.responses["color"] == "Red"
    assert submission.responses["start"].startswith("2026-01-15T")
    assert "guests" not in submission.responses
    assert submission.metadata["submitted_via"] == "conversational"
    assert submission.metadata["completed_at"].endswith("Z")
    assert fake_store.file_records == []


@pytest.mark.asyncio
async def test_submit_reports_missing_required_fields(make_form, fake_store):
    form = make_form(FIELDS)

    result = await form_submission_service.submit_form_response(
        form, {"full_name": "Ada Lovelace", "email": "  "}, store=fake_store
    )

    assert result.success is False
    assert result.error == "Missing required fields: Email"
    assert result.error_code == "incomplete_submission"
    assert result.missing_fields == ["Email"]
    assert fake_store.submissions == []


@pytest.mark.asyncio
async def test_submit_lists_all_missing_fields_in_schema_order(make_form, fake_store):
    form = make_form(FIELDS)

    result = await form_submission_service.submit_form_response(form, {}, store=fake_store)

    assert result.missing_fields == ["Full Name", "Email"]
    assert result.error == "Missing required fields: Full Name, Email"


@pytest.mark.asyncio
async def test_submit_aggregates_validation_errors(make_form, fake_store):
    form = make_form(FIELDS)

    result = await form_submission_service.submit_form_response(
        form,
        {
            "full_name": "Ada Lovelace",
            "email": "not-an-email",
            "color": "Green",
            "guests": "9",
        },
        store=fake_store,
    )

    assert result.success is False
    assert result.error_code == "validation_failed"
    assert len(result.errors) == 3
    assert result.errors[0].startswith("Email: ")
    assert result.errors[1] == "Favourite colour: Please choose one of: Red, Blue"
    assert result.errors[2] == "Guests: Number must be at most 4"
    assert result.error == "Validation errors: " + "; ".join(result.errors)
    assert fake_store.submissions == []


@pytest.mark.asyncio
async def test_submit_materializes_file_answers(make_form, fake_store):
    form = make_form(FILE_FIELDS)

    result = await form_submission_service.submit_form_response(
        form,
        {"full_name": "Ada Lovelace", "resume": "https://blob.example/cv.pdf"},
        {"resume": _resume(size=2048)},
        store=fake_store,
    )

    assert result.success is True
    submission = fake_store.submissions[0]
    assert submission.responses["resume"] == {
        "url": "https://blob.example/cv.pdf",
        "filename": "cv.pdf",
        "mimeType": "application/pdf",
    }
    assert len(fake_store.file_records) == 1
    record = fake_store.file_records[0]
    assert record.submission_id == submission.id
    assert record.form_id == form.id
    assert record.field_name == "resume"
    assert record.blob_url == "https://blob.example/cv.pdf"
    assert record.file_name == "cv.pdf"
    assert record.file_size == "2048"
    assert record.mime_type == "application/pdf"


@pytest.mark.asyncio
async def test_submit_defaults_unknown_file_size(make_form, fake_store):
    form = make_form(FILE_FIELDS)

    await form_submission_service.submit_form_response(
        form,
        {"full_name": "Ada Lovelace", "resume": "https://blob.example/cv.pdf"},
        {"resume": _resume()},
        store=fake_store,
    )

    assert fake_store.file_records[0].file_size == "0"


@pytest.mark.asyncio
async def test_submit_writes_one_record_per_file_field(make_form, fake_store):
    form = make_form(FILE_FIELDS)

    result = await form_submission_service.submit_form_response(
        form,
        {
            "full_name": "Ada Lovelace",
            "resume": "https://blob.example/cv.pdf",
            "photo": "https://blob.example/me.png",
        },
        {
            "resume": _resume(),
            "photo": FileUploadMetadata(
                url="https://blob.example/me.png", name="me.png", mime_type="image/png"
            ),
        },
        store=fake_store,
    )

    assert result.success is True
    assert sorted(record.field_name for record in fake_store.file_records) == ["photo", "resume"]


@pytest.mark.asyncio
async def test_submit_requires_metadata_for_file_answers(make_form, fake_store):
    form = make_form(FILE_FIELDS)

    result = await form_submission_service.submit_form_response(
        form,
        {"full_name": "Ada Lovelace", "resume": "https://blob.example/cv.pdf"},
        store=fake_store,
    )

    assert result.success is False
    assert result.errors == ["Resume: Missing file metadata for uploaded file"]
    assert fake_store.submissions == []


@pytest.mark.asyncio
async def test_submit_rechecks_file_type(make_form, fake_store):
    form = make_form(FILE_FIELDS)

    result = await form_submission_service.submit_form_response(
        form,
        {"full_name": "Ada Lovelace", "resume": "https://blob.example/cv.png"},
        {"resume": _resume(url="https://blob.example/cv.png", name="cv.png", mime_type="image/png")},
        store=fake_store,
    )

    assert result.success is False
    assert result.errors[0].startswith("Resume: File type not accepted")


@pytest.mark.asyncio
async def test_submit_reports_persistence_failure(make_form, fake_store):
    form = make_form(FIELDS)
    fake_store.fail_on_submission = True

    result = await form_submission_service.submit_form_response(
        form, {"full_name": "Ada Lovelace", "email": "ada@example.com"}, store=fake_store
    )

    assert result.success is False
    assert result.error == "Failed to save submission. Please try again."
    assert result.error_code == "persistence_error"
    assert result.submission_id is None


@pytest.mark.asyncio
async def test_file_record_failure_keeps_submission_id(make_form, fake_store):
    form = make_form(FILE_FIELDS)
    fake_store.fail_on_file_record = True

    result = await form_submission_service.submit_form_response(
        form,
        {"full_name": "Ada Lovelace", "resume": "https://blob.example/cv.pdf"},
        {"resume": _resume()},
        store=fake_store,
    )

    assert result.success is False
    assert result.error_code == "persistence_error"
    assert len(fake_store.submissions) == 1
    assert result.submission_id == fake_store.submissions[0].id


@pytest.mark.asyncio
async def test_submit_rejects_oversized_upload(make_form, fake_store):
    form = make_form(FILE_FIELDS)

    result = await form_submission_service.submit_form_response(
        form,
        {"full_name": "Ada Lovelace", "resume": "https://blob.example/cv.pdf"},
        {"resume": _resume(size=50 * 1024 * 1024)},
        store=fake_store,
    )

    assert result.success is False
    assert result.errors == ["Resume: File size should be less than 10MB"]
    assert fake_store.submissions == []
