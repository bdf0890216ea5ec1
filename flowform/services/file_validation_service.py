"""File answer validation against a field's accepted-type allow-list."""

from flowform.core.config import settings
from flowform.core.errors import (
    FileTooLargeError,
    FileTypeError,
    FormEngineError,
    MissingFileMetadataError,
)
from flowform.schemas.forms import FileMetadata, FormField, ValidationOutcome


DEFAULT_MIME_TYPE = "application/octet-stream"

# Accepted extensions on a field are translated to MIME types through this table.
# Extensions missing from it contribute nothing to the allow-list.
EXTENSION_MIME_TYPES: dict[str, tuple[str, ...]] = {
    "pdf": ("application/pdf",),
    "doc": ("application/msword",),
    "docx": ("application/vnd.openxmlformats-officedocument.wordprocessingml.document",),
    "xls": ("application/vnd.ms-excel",),
    "xlsx": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",),
    "csv": ("text/csv", "application/csv"),
    "txt": ("text/plain",),
    "jpg": ("image/jpeg",),
    "jpeg": ("image/jpeg",),
    "png": ("image/png",),
    "gif": ("image/gif",),
    "svg": ("image/svg+xml",),
    "webp": ("image/webp",),
    "mp4": ("video/mp4",),
    "mov": ("video/quicktime",),
}

_MIME_TYPE_ALIASES: dict[str, str] = {
    # Non-standard but commonly seen in the wild.
    "image/jpg": "image/jpeg",
}


def normalize_extension(extension: str) -> str:
    return extension.strip().lstrip(".").lower()


def normalize_mime_type(mime_type: str | None) -> str:
    cleaned = (mime_type or "").split(";", 1)[0].strip().lower()
    return _MIME_TYPE_ALIASES.get(cleaned, cleaned)


def accepted_mime_types(accepted_types: list[str] | None) -> list[str]:
    """Translate accepted extensions (".pdf", "PNG") to an ordered MIME allow-list."""
    allowed: list[str] = []
    for extension in accepted_types or []:
        for mime in EXTENSION_MIME_TYPES.get(normalize_extension(extension), ()):
            if mime not in allowed:
                allowed.append(mime)
    return allowed


def parse_file_size(size: str | int | None) -> int | None:
    """Reported sizes arrive as ints or numeric strings; anything else is unknown."""
    if size is None or isinstance(size, bool):
        return None
    try:
        return int(str(size).strip())
    except ValueError:
        return None


def validate_file(
    field: FormField,
    file_url: str | None,
    file_name: str | None,
    mime_type: str | None,
    size: str | int | None = None,
) -> ValidationOutcome:
    try:
        metadata = _validate_file_metadata(field, file_url, file_name, mime_type, size)
    except FormEngineError as exc:
        return ValidationOutcome.from_error(exc)
    return ValidationOutcome(valid=True, canonical_value=metadata)


def _validate_file_metadata(
    field: FormField,
    file_url: str | None,
    file_name: str | None,
    mime_type: str | None,
    size: str | int | None,
) -> FileMetadata | None:
    if not (file_url or "").strip() or not (file_name or "").strip():
        if field.required:
            raise MissingFileMetadataError("Please upload a file")
        return None

    normalized_mime = normalize_mime_type(mime_type)
    accepted_types = field.validation.accepted_types if field.validation else None
    allowed = accepted_mime_types(accepted_types)
    if allowed and normalized_mime not in allowed:
        extensions = ", ".join(f".{normalize_extension(ext)}" for ext in accepted_types or [])
        raise FileTypeError(f"File type not accepted. Please upload one of: {extensions}")

    size_bytes = parse_file_size(size)
    if size_bytes is not None and size_bytes > settings.MAX_UPLOAD_SIZE_BYTES:
        limit_mb = settings.MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)
        raise FileTooLargeError(f"File size should be less than {limit_mb}MB")

    return FileMetadata(
        url=file_url.strip(),
        name=file_name.strip(),
        mime_type=normalized_mime or DEFAULT_MIME_TYPE,
    )
