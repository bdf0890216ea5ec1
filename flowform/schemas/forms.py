"""Schemas for conversational forms, field definitions, and submissions."""

from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from flowform.core.errors import FormEngineError


FieldType = Literal[
    "text",
    "longtext",
    "email",
    "url",
    "number",
    "date",
    "choice",
    "scale",
    "file",
]

FormTone = Literal["friendly", "professional", "playful", "formal"]

# A single string for most fields, a list of strings for multi-select choice.
RawAnswer = str | list[str]


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input and serializes camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SchemaModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class FormFieldValidation(SchemaModel):
    pattern: str | None = None
    min: float | None = None
    max: float | None = None
    accepted_types: list[str] | None = None


class FormFieldOptions(SchemaModel):
    min: float | None = None
    max: float | None = None
    labels: list[str] | None = None
    choices: list[str] | None = None
    multi_select: bool = False


class BaseFormField(SchemaModel):
    name: str = Field(..., min_length=1, max_length=100)
    label: str = Field(..., min_length=1)
    required: bool = False
    validation: FormFieldValidation | None = None
    options: FormFieldOptions | None = None


class TextField(BaseFormField):
    type: Literal["text"]


class LongTextField(BaseFormField):
    type: Literal["longtext"]


class EmailField(BaseFormField):
    type: Literal["email"]


class UrlField(BaseFormField):
    type: Literal["url"]


class NumberField(BaseFormField):
    type: Literal["number"]


class DateField(BaseFormField):
    type: Literal["date"]


class ChoiceField(BaseFormField):
    type: Literal["choice"]

    @property
    def is_multi_select(self) -> bool:
        return bool(self.options and self.options.multi_select)


class ScaleField(BaseFormField):
    type: Literal["scale"]


class FileField(BaseFormField):
    type: Literal["file"]


FormField = Annotated[
    Union[
        TextField,
        LongTextField,
        EmailField,
        UrlField,
        NumberField,
        DateField,
        ChoiceField,
        ScaleField,
        FileField,
    ],
    Field(discriminator="type"),
]


class FormSchema(SchemaModel):
    fields: list[FormField]

    @field_validator("fields")
    @classmethod
    def _unique_field_names(cls, fields: list[FormField]) -> list[FormField]:
        seen: set[str] = set()
        for field in fields:
            if field.name in seen:
                raise ValueError(f"Duplicate field name: {field.name}")
            seen.add(field.name)
        return fields


class Form(SchemaModel):
    """A form as supplied by the schema source, read-only for a conversation."""

    id: UUID
    title: str
    description: str | None = None
    tone: FormTone | str = "friendly"
    form_schema: FormSchema = Field(..., alias="schema")
    is_active: bool = True

    @property
    def fields(self) -> list[FormField]:
        return self.form_schema.fields

    def get_field(self, name: str) -> FormField | None:
        for field in self.form_schema.fields:
            if field.name == name:
                return field
        return None


# =============================================================================
# Validation outcomes
# =============================================================================


class FileMetadata(CamelModel):
    url: str
    name: str
    mime_type: str


class ValidationOutcome(CamelModel):
    valid: bool
    error: str | None = None
    error_code: str | None = None
    canonical_value: Any = None

    @classmethod
    def from_error(cls, exc: FormEngineError) -> "ValidationOutcome":
        return cls(valid=False, error=exc.message, error_code=exc.code)


class FieldCollectionResult(CamelModel):
    valid: bool
    field_name: str | None = None
    field_label: str | None = None
    error: str | None = None
    error_code: str | None = None
    canonical_value: Any = None
    file_metadata: FileMetadata | None = None


class PreviewSchema(CamelModel):
    title: str
    description: str | None = None
    tone: str
    fields: list[FormField]


class FormResponsePreview(CamelModel):
    type: Literal["preview"] = "preview"
    form_schema: PreviewSchema = Field(..., alias="schema")
    responses: dict[str, Any]


# =============================================================================
# Submissions
# =============================================================================


class FileUploadMetadata(CamelModel):
    """Upload details the agent supplies for a file answer at submission time."""

    url: str
    name: str
    mime_type: str
    size: str | int | None = None


class SubmissionResult(CamelModel):
    success: bool
    submission_id: UUID | None = None
    message: str | None = None
    error: str | None = None
    error_code: str | None = None
    errors: list[str] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)


class StoredSubmission(CamelModel):
    id: UUID
    form_id: UUID
    responses: dict[str, Any]
    metadata: dict[str, Any] = Field(default_factory=dict)
    submitted_at: datetime


class StoredFileRecord(CamelModel):
    id: UUID
    submission_id: UUID
    form_id: UUID
    field_name: str
    blob_url: str
    file_name: str
    file_size: str
    mime_type: str
    created_at: datetime


# =============================================================================
# Tool requests
# =============================================================================


class FieldCollectRequest(CamelModel):
    field_name: str
    field_value: RawAnswer
    file_name: str | None = None
    mime_type: str | None = None


class FormResponsePreviewRequest(CamelModel):
    responses: dict[str, Any] = Field(default_factory=dict)


class FormSubmissionCreate(CamelModel):
    responses: dict[str, RawAnswer]
    file_metadata: dict[str, FileUploadMetadata] | None = None
