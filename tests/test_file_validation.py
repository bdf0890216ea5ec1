from pydantic import TypeAdapter

from flowform.schemas.forms import FileMetadata, FormField
from flowform.services import file_validation_service

_FIELD_ADAPTER = TypeAdapter(FormField)


def _file_field(*, accepted_types=None, required: bool = True):
    data = {"name": "resume", "label": "Resume", "type": "file", "required": required}
    if accepted_types is not None:
        data["validation"] = {"acceptedTypes": accepted_types}
    return _FIELD_ADAPTER.validate_python(data)


def test_accepts_allowed_mime_type():
    field = _file_field(accepted_types=[".pdf"])

    outcome = file_validation_service.validate_file(
        field, "https://blob.example/cv.pdf", "cv.pdf", "application/pdf"
    )

    assert outcome.valid is True
    assert outcome.canonical_value == FileMetadata(
        url="https://blob.example/cv.pdf", name="cv.pdf", mime_type="application/pdf"
    )


def test_rejects_mime_type_outside_allow_list():
    field = _file_field(accepted_types=[".pdf"])

    outcome = file_validation_service.validate_file(
        field, "https://blob.example/photo.png", "photo.png", "image/png"
    )

    assert outcome.valid is False
    assert outcome.error_code == "file_type_error"
    assert ".pdf" in outcome.error


def test_extensions_are_normalized():
    field = _file_field(accepted_types=["pdf", ".PNG"])

    outcome = file_validation_service.validate_file(
        field, "https://blob.example/photo.png", "photo.png", "Image/PNG"
    )

    assert outcome.valid is True
    assert outcome.canonical_value.mime_type == "image/png"


def test_mime_alias_and_parameters_are_normalized():
    field = _file_field(accepted_types=[".jpg"])

    outcome = file_validation_service.validate_file(
        field, "https://blob.example/a.jpg", "a.jpg", "image/jpg; charset=binary"
    )

    assert outcome.valid is True
    assert outcome.canonical_value.mime_type == "image/jpeg"


def test_unknown_extensions_contribute_nothing():
    only_unknown = _file_field(accepted_types=[".xyz"])
    outcome = file_validation_service.validate_file(
        only_unknown, "https://blob.example/a.bin", "a.bin", "application/x-anything"
    )
    assert outcome.valid is True

    mixed = _file_field(accepted_types=[".pdf", ".xyz"])
    outcome = file_validation_service.validate_file(
        mixed, "https://blob.example/a.png", "a.png", "image/png"
    )
    assert outcome.valid is False
    assert ".pdf, .xyz" in outcome.error


def test_no_accepted_types_accepts_any_file():
    field = _file_field()

    outcome = file_validation_service.validate_file(
        field, "https://blob.example/a.zip", "a.zip", ""
    )

    assert outcome.valid is True
    assert outcome.canonical_value.mime_type == "application/octet-stream"


def test_required_file_missing_metadata():
    field = _file_field(accepted_types=[".pdf"])

    for url, name in (("", "cv.pdf"), ("https://blob.example/cv.pdf", None)):
        outcome = file_validation_service.validate_file(field, url, name, "application/pdf")
        assert outcome.valid is False
        assert outcome.error == "Please upload a file"


def test_optional_file_missing_is_valid_without_value():
    field = _file_field(required=False)

    outcome = file_validation_service.validate_file(field, None, None, None)

    assert outcome.valid is True
    assert outcome.canonical_value is None


def test_accepted_mime_types_table():
    assert file_validation_service.accepted_mime_types([".jpg", "jpeg", ".csv", ".svg"]) == [
        "image/jpeg",
        "text/csv",
        "application/csv",
        "image/svg+xml",
    ]
    assert file_validation_service.accepted_mime_types(None) == []


def test_rejects_files_over_the_upload_limit():
    field = _file_field(accepted_types=[".pdf"])

    outcome = file_validation_service.validate_file(
        field,
        "https://blob.example/cv.pdf",
        "cv.pdf",
        "application/pdf",
        size=str(11 * 1024 * 1024),
    )

    assert outcome.valid is False
    assert outcome.error_code == "file_too_large"
    assert outcome.error == "File size should be less than 10MB"


def test_unknown_or_small_sizes_pass():
    field = _file_field(accepted_types=[".pdf"])

    for size in (None, "", "unknown", 2048, "10485760"):
        outcome = file_validation_service.validate_file(
            field, "https://blob.example/cv.pdf", "cv.pdf", "application/pdf", size=size
        )
        assert outcome.valid is True
